"""Polling loop that builds every new revision of every watched project once."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol, TextIO

from .ledger import BuildLedger, BuildOutcome, LedgerError, short_revision
from .process import CommandFailed, CommandRunner
from .projects import Project, discover_projects

logger = logging.getLogger(__name__)

StatusSnapshot = dict[str, bool]


class ReportSink(Protocol):
    """Line-oriented destination for human readable status."""

    def write_line(self, line: str) -> None:
        ...


class StreamSink:
    """Write report lines to a text stream such as stdout."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def write_line(self, line: str) -> None:
        self._stream.write(line + "\n")
        self._stream.flush()


class CycleState(str, Enum):
    UPDATING = "updating"
    RESOLVING = "resolving"
    CHECKING = "checking"
    IDLE = "idle"
    BUILDING = "building"
    RECORDING = "recording"
    DONE = "done"
    ERROR_REPORTED = "error_reported"


@dataclass(slots=True)
class ProjectCycle:
    """Outcome of one update-resolve-check-build-record pass over a project."""

    project: str
    state: CycleState
    healthy: bool
    revision: str | None = None
    outcome: BuildOutcome | None = None
    built: bool = False
    message: str | None = None


class Nitpicker:
    """Watch every project under ``root`` and build new revisions.

    Projects are processed strictly one after another. The only state
    kept between passes is the previous status snapshot, used to avoid
    repeating an unchanged report; everything else is read back from the
    ledger. Running two watchers against the same root is not supported.
    """

    def __init__(
        self,
        root: Path | str,
        *,
        ledger: BuildLedger | None = None,
        runner: CommandRunner | None = None,
        sink: ReportSink | None = None,
        project_options: dict[str, Any] | None = None,
        delay: float = 60.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.root = Path(root)
        self.ledger = ledger or BuildLedger()
        self.runner = runner or CommandRunner()
        self.sink = sink
        self.project_options = dict(project_options or {})
        self.delay = delay
        self._sleep = sleep
        self._last_snapshot: StatusSnapshot | None = None

    def projects(self) -> list[Project]:
        return discover_projects(self.root, runner=self.runner, **self.project_options)

    async def update_and_build(self, project: Project) -> ProjectCycle:
        """Run one cycle for ``project`` and report what happened."""

        name = project.name
        logger.debug("Cycle state", extra={"project": name, "state": CycleState.UPDATING.value})
        try:
            await project.update()
        except CommandFailed as exc:
            return self._error(name, "Cannot update project", command=exc.command, returncode=exc.returncode)

        logger.debug("Cycle state", extra={"project": name, "state": CycleState.RESOLVING.value})
        try:
            revision = await project.latest_revision()
        except CommandFailed as exc:
            return self._error(
                name, "Cannot get latest revision", command=exc.command, returncode=exc.returncode
            )

        logger.debug("Cycle state", extra={"project": name, "state": CycleState.CHECKING.value})
        status = self.ledger.status_of(project, revision)
        if status is not BuildOutcome.UNKNOWN:
            logger.debug(
                "Revision already built",
                extra={
                    "project": name,
                    "revision": revision,
                    "outcome": status.value,
                    "state": CycleState.IDLE.value,
                },
            )
            return ProjectCycle(
                project=name,
                state=CycleState.DONE,
                healthy=status.healthy,
                revision=revision,
                outcome=status,
            )

        logger.debug("Cycle state", extra={"project": name, "state": CycleState.BUILDING.value})
        try:
            output = await project.build(revision)
            outcome = BuildOutcome.SUCCESS
        except CommandFailed as exc:
            output = exc.output
            outcome = BuildOutcome.FAILURE

        logger.debug("Cycle state", extra={"project": name, "state": CycleState.RECORDING.value})
        try:
            entry = self.ledger.record(project, revision, outcome, output)
        except (OSError, LedgerError) as exc:
            # Nothing terminal was published, so the revision is built again next pass.
            return self._error(name, "Cannot record build", revision=revision, error=str(exc))
        verb = "succeed" if outcome is BuildOutcome.SUCCESS else "failed"
        message = f"Build {verb} ({short_revision(revision)})"
        self._report(f"{name}: {message}", project=name, revision=revision, log_path=str(entry.path))
        return ProjectCycle(
            project=name,
            state=CycleState.DONE,
            healthy=outcome.healthy,
            revision=revision,
            outcome=outcome,
            built=True,
            message=message,
        )

    async def iterate(self) -> StatusSnapshot:
        """Run one cycle over every project and return the status snapshot."""

        snapshot: StatusSnapshot = {}
        for project in self.projects():
            cycle = await self.update_and_build(project)
            snapshot[cycle.project] = cycle.healthy
        return snapshot

    def report_if_changed(self, snapshot: StatusSnapshot) -> bool:
        """Emit the aggregate report unless it matches the previous one."""

        if snapshot == self._last_snapshot:
            return False
        self._last_snapshot = dict(snapshot)
        for line in format_snapshot(snapshot):
            self._report(line)
        return True

    async def run_forever(self, *, max_cycles: int | None = None) -> None:
        """Poll until cancelled, or for ``max_cycles`` passes when given."""

        cycles = 0
        while True:
            snapshot = await self.iterate()
            self.report_if_changed(snapshot)
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            await self._sleep(self.delay)

    def run(self) -> None:
        """Blocking entry point; returns cleanly on Ctrl-C."""

        logger.info("Watching projects", extra={"root": str(self.root), "delay": self.delay})
        try:
            asyncio.run(self.run_forever())
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping watcher")

    def _error(self, name: str, message: str, *, revision: str | None = None, **context: Any) -> ProjectCycle:
        self._report(f"{name}: {message}", level=logging.WARNING, project=name, revision=revision, **context)
        return ProjectCycle(
            project=name,
            state=CycleState.ERROR_REPORTED,
            healthy=False,
            revision=revision,
            message=message,
        )

    def _report(self, line: str, *, level: int = logging.INFO, **context: Any) -> None:
        logger.log(level, line, extra=context)
        if self.sink is not None:
            self.sink.write_line(line)


def format_snapshot(snapshot: StatusSnapshot) -> list[str]:
    return [f"{name}: {'OK' if healthy else 'FAILED'}" for name, healthy in sorted(snapshot.items())]


__all__ = [
    "CycleState",
    "Nitpicker",
    "ProjectCycle",
    "ReportSink",
    "StatusSnapshot",
    "StreamSink",
    "format_snapshot",
]
