"""Async runner for shell commands executed inside a working directory."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

logger = logging.getLogger(__name__)

DEFAULT_STRIPPED_VARS = frozenset(
    {
        "GIT_DIR",
        "GIT_WORK_TREE",
        "GIT_INDEX_FILE",
        "GIT_OBJECT_DIRECTORY",
        "PYTHONHOME",
        "PYTHONPATH",
        "VIRTUAL_ENV",
    }
)


class CommandRunnerError(RuntimeError):
    """Base class for command runner errors."""


class CommandFailed(CommandRunnerError):
    """Raised when a command exits with a non-zero status.

    The combined output is kept on the error so callers can persist it
    without running anything again.
    """

    def __init__(self, command: str, returncode: int, output: str) -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(output or f"`{command}` exited with status {returncode}")


@dataclass(slots=True)
class CommandResult:
    """Holds the outcome of a single command invocation."""

    command: str
    cwd: Path
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Execute shell command lines, one process per call.

    Children inherit the watcher's environment minus ``strip_vars`` (git
    repository overrides and the watcher's own interpreter settings), with
    ``env_overrides`` applied last.
    """

    def __init__(
        self,
        *,
        strip_vars: Iterable[str] = DEFAULT_STRIPPED_VARS,
        env_overrides: Mapping[str, str] | None = None,
    ) -> None:
        self.strip_vars = frozenset(strip_vars)
        self.env_overrides = dict(env_overrides or {})

    def environment(self) -> dict[str, str]:
        env = {key: value for key, value in os.environ.items() if key not in self.strip_vars}
        env.update(self.env_overrides)
        return env

    async def run(self, command: str, *, cwd: Path) -> str:
        """Run ``command`` in ``cwd`` and return its combined output.

        Raises :class:`CommandFailed` when the exit status is non-zero.
        """

        result = await self._invoke(command, Path(cwd))
        if not result.ok:
            logger.debug(
                "Command failed",
                extra={"command": command, "cwd": str(cwd), "returncode": result.returncode},
            )
            raise CommandFailed(command, result.returncode, result.output)
        return result.output

    async def _invoke(self, command: str, cwd: Path) -> CommandResult:
        logger.debug("Running command", extra={"command": command, "cwd": str(cwd)})
        process = await asyncio.create_subprocess_shell(
            command,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            env=self.environment(),
        )
        output_bytes, _ = await process.communicate()
        output = output_bytes.decode("utf-8", errors="replace")
        return CommandResult(command=command, cwd=cwd, returncode=process.returncode, output=output)


class FakeCommandRunner(CommandRunner):
    """Test double that replays scripted command results in order."""

    def __init__(self, responses: Iterable[CommandResult | tuple[int, str]] | None = None) -> None:
        super().__init__()
        self._responses = list(responses or [])
        self._invocations: list[tuple[str, Path]] = []

    def push(self, returncode: int = 0, output: str = "") -> None:
        self._responses.append((returncode, output))

    async def _invoke(self, command: str, cwd: Path) -> CommandResult:  # type: ignore[override]
        self._invocations.append((command, cwd))
        if not self._responses:
            return CommandResult(command=command, cwd=cwd, returncode=0, output="")
        response = self._responses.pop(0)
        if isinstance(response, CommandResult):
            return response
        returncode, output = response
        return CommandResult(command=command, cwd=cwd, returncode=returncode, output=output)

    @property
    def invocations(self) -> list[tuple[str, Path]]:
        return self._invocations

    @property
    def commands(self) -> list[str]:
        return [command for command, _ in self._invocations]
