"""External process execution utilities."""

from .runner import CommandFailed, CommandResult, CommandRunner, CommandRunnerError, FakeCommandRunner

__all__ = [
    "CommandRunner",
    "CommandResult",
    "CommandRunnerError",
    "CommandFailed",
    "FakeCommandRunner",
]
