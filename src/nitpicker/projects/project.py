"""Source control and build commands for a single working copy."""

from __future__ import annotations

import shlex
from pathlib import Path

from ..process import CommandFailed, CommandRunner

DEFAULT_BUILD_SCRIPT = "./script/build"
DEFAULT_VERSION_FILE = ".ruby-version"
DEFAULT_VERSION_WRAPPER = "rvm {version} do {command}"
DEFAULT_REMOTE = "origin"


class InvalidProject(ValueError):
    """Raised when a project path does not denote an existing directory."""


class Project:
    """A git working copy that can be fetched, reset and built.

    Every command goes through the runner with the working copy passed as
    the explicit working directory. The project keeps no state beyond its
    path; the current branch and version pin are read on every call.
    """

    def __init__(
        self,
        working_dir: Path | str,
        *,
        runner: CommandRunner | None = None,
        build_script: str = DEFAULT_BUILD_SCRIPT,
        version_file: str = DEFAULT_VERSION_FILE,
        version_wrapper: str = DEFAULT_VERSION_WRAPPER,
        remote: str = DEFAULT_REMOTE,
    ) -> None:
        path = Path(working_dir)
        if not path.is_dir():
            raise InvalidProject(f"{path} doesn't exist or is not a directory")
        self._working_dir = path
        self._runner = runner or CommandRunner()
        self.build_script = build_script
        self.version_file = version_file
        self.version_wrapper = version_wrapper
        self.remote = remote

    def __repr__(self) -> str:
        return f"Project({str(self._working_dir)!r})"

    @property
    def working_dir(self) -> Path:
        return self._working_dir

    @property
    def name(self) -> str:
        return self._working_dir.name

    def interpreter_version(self) -> str | None:
        """Return the pinned interpreter version, if the project has one."""

        try:
            version = (self._working_dir / self.version_file).read_text(encoding="utf-8").strip()
        except (FileNotFoundError, IsADirectoryError):
            return None
        return version or None

    async def update(self) -> str:
        """Fetch the latest remote metadata without touching the working copy."""

        return await self._run(f"git fetch {shlex.quote(self.remote)}")

    async def current_branch(self) -> str:
        output = await self._run("git rev-parse --abbrev-ref HEAD")
        return output.strip()

    async def latest_revision(self) -> str:
        """Return the remote tip of the currently checked out branch."""

        branch = await self.current_branch()
        ref = f"{self.remote}/{branch}"
        output = await self._run(f"git rev-parse --verify {shlex.quote(ref)}")
        return output.strip()

    async def checkout(self, revision: str) -> str:
        """Hard reset the working copy to ``revision``, discarding local changes."""

        return await self._run(f"git reset --hard {shlex.quote(revision)}")

    async def build(self, revision: str | None = None) -> str:
        """Run the build script, optionally after resetting to ``revision``."""

        if revision:
            await self.checkout(revision)
        try:
            command = self.build_command()
        except (OSError, UnicodeDecodeError) as exc:
            raise CommandFailed(self.build_script, -1, f"Cannot read {self.version_file}: {exc}\n") from exc
        return await self._run(command)

    def build_command(self) -> str:
        version = self.interpreter_version()
        if version is None:
            return self.build_script
        return self.version_wrapper.format(version=shlex.quote(version), command=self.build_script)

    async def _run(self, line: str) -> str:
        return await self._runner.run(line, cwd=self._working_dir)


__all__ = ["DEFAULT_BUILD_SCRIPT", "InvalidProject", "Project"]
