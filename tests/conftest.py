from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest

GIT_ENV = {
    **os.environ,
    "GIT_AUTHOR_NAME": "Nitpicker Tests",
    "GIT_AUTHOR_EMAIL": "tests@example.com",
    "GIT_COMMITTER_NAME": "Nitpicker Tests",
    "GIT_COMMITTER_EMAIL": "tests@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(*args: str, cwd: Path) -> str:
    process = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        env=GIT_ENV,
        check=True,
        capture_output=True,
        text=True,
    )
    return process.stdout.strip()


@dataclass
class GitProject:
    origin: Path
    clone: Path

    def commit(self, message: str, *, build_script: str | None = None) -> str:
        """Add a commit to the origin repository and return its hash."""

        if build_script is not None:
            write_build_script(self.origin, build_script)
        marker = self.origin / "CHANGES"
        with marker.open("a", encoding="utf-8") as handle:
            handle.write(message + "\n")
        git("add", "-A", cwd=self.origin)
        git("commit", "-q", "-m", message, cwd=self.origin)
        return git("rev-parse", "HEAD", cwd=self.origin)

    def head(self) -> str:
        return git("rev-parse", "HEAD", cwd=self.clone)


def write_build_script(repo: Path, body: str) -> None:
    script = repo / "script" / "build"
    script.parent.mkdir(exist_ok=True)
    script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    script.chmod(0o755)


@pytest.fixture
def watch_root(tmp_path: Path) -> Path:
    root = tmp_path / "projects"
    root.mkdir()
    return root


@pytest.fixture
def make_git_project(tmp_path: Path, watch_root: Path):
    """Create an origin repository and a clone of it under the watched root."""

    def factory(name: str = "foobar", *, build_script: str = "echo compiled\n") -> GitProject:
        origin = tmp_path / "origins" / name
        origin.mkdir(parents=True)
        git("init", "-q", cwd=origin)
        project = GitProject(origin=origin, clone=watch_root / name)
        project.commit("initial", build_script=build_script)
        git("clone", "-q", str(origin), str(project.clone), cwd=tmp_path)
        return project

    return factory
