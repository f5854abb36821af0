"""Project discovery under a watched root directory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .project import InvalidProject, Project

logger = logging.getLogger(__name__)


def discover_projects(root: Path | str, **project_options: Any) -> list[Project]:
    """Return a Project for every immediate subdirectory of ``root``.

    Plain files and hidden entries are ignored. Projects are returned in
    name order so every pass visits them in the same sequence.
    """

    base = Path(root)
    if not base.is_dir():
        logger.warning("Watched root does not exist", extra={"root": str(base)})
        return []

    projects: list[Project] = []
    for entry in sorted(base.iterdir(), key=lambda path: path.name):
        if entry.name.startswith(".") or not entry.is_dir():
            continue
        try:
            projects.append(Project(entry, **project_options))
        except InvalidProject as exc:
            logger.warning("Skipping project: %s", exc, extra={"path": str(entry)})
    return projects


__all__ = ["discover_projects"]
