"""Watched project working copies and their discovery."""

from .discovery import discover_projects
from .project import DEFAULT_BUILD_SCRIPT, InvalidProject, Project

__all__ = [
    "DEFAULT_BUILD_SCRIPT",
    "InvalidProject",
    "Project",
    "discover_projects",
]
