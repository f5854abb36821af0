"""Filesystem-backed record of build outcomes.

Each (project, revision) pair maps to at most one terminal artifact in
the project's ``log/`` directory (or the project root when there is no
such directory)::

    abcdef1.log            build output being written
    abcdef1.succeed.log    the build passed
    abcdef1.failed.log     the build failed

The existence of a tagged file is the outcome. Nothing is cached in
memory, so a restarted process sees exactly what the previous one
recorded.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ..projects import Project
from .models import SHORT_REVISION_LENGTH, BuildOutcome, LedgerEntry, short_revision

logger = logging.getLogger(__name__)

LOG_EXTENSION = ".log"


class LedgerError(RuntimeError):
    """Base class for ledger errors."""


class LedgerConflictError(LedgerError):
    """Raised when a terminal artifact already exists for a revision."""


class BuildLedger:
    """Maps (project, revision) pairs to persisted build outcomes."""

    def __init__(self, *, short_length: int = SHORT_REVISION_LENGTH, log_dir_name: str = "log") -> None:
        self.short_length = short_length
        self.log_dir_name = log_dir_name

    def log_dir(self, project: Project) -> Path:
        candidate = project.working_dir / self.log_dir_name
        if candidate.is_dir():
            return candidate
        return project.working_dir

    def path_for(self, project: Project, revision: str, tag: str | None = None) -> Path:
        """Return the artifact path, untagged for the in-progress file."""

        stem = short_revision(revision, self.short_length)
        if tag:
            stem = f"{stem}.{tag}"
        return self.log_dir(project) / f"{stem}{LOG_EXTENSION}"

    def status_of(self, project: Project, revision: str) -> BuildOutcome:
        succeeded = self.path_for(project, revision, BuildOutcome.SUCCESS.tag).exists()
        failed = self.path_for(project, revision, BuildOutcome.FAILURE.tag).exists()
        if succeeded and failed:
            logger.warning(
                "Ledger holds both outcomes for one revision; treating it as failed",
                extra={"project": project.name, "revision": revision},
            )
            return BuildOutcome.FAILURE
        if succeeded:
            return BuildOutcome.SUCCESS
        if failed:
            return BuildOutcome.FAILURE
        return BuildOutcome.UNKNOWN

    def entry_for(self, project: Project, revision: str) -> LedgerEntry | None:
        outcome = self.status_of(project, revision)
        if outcome is BuildOutcome.UNKNOWN:
            return None
        return LedgerEntry(
            project=project.name,
            revision=revision,
            outcome=outcome,
            path=self.path_for(project, revision, outcome.tag),
        )

    def record(self, project: Project, revision: str, outcome: BuildOutcome, content: str) -> LedgerEntry:
        """Persist ``content`` as the terminal artifact for ``outcome``.

        The content goes to the in-progress path first and is renamed onto
        the tagged name only once fully on disk, so a terminal artifact is
        never observed half written. If the write fails the in-progress
        file is removed and the error propagates; the revision stays
        UNKNOWN and will be built again.
        """

        if outcome.tag is None:
            raise ValueError("Only terminal outcomes can be recorded")
        existing = self.status_of(project, revision)
        if existing is not BuildOutcome.UNKNOWN:
            raise LedgerConflictError(
                f"{project.name}@{short_revision(revision, self.short_length)} "
                f"is already recorded as {existing.value}"
            )

        pending = self.path_for(project, revision)
        target = self.path_for(project, revision, outcome.tag)
        try:
            with open(pending, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
        except BaseException:
            pending.unlink(missing_ok=True)
            raise
        os.replace(pending, target)

        logger.debug(
            "Recorded build outcome",
            extra={"project": project.name, "revision": revision, "outcome": outcome.value, "path": str(target)},
        )
        return LedgerEntry(project=project.name, revision=revision, outcome=outcome, path=target)


__all__ = ["BuildLedger", "LedgerConflictError", "LedgerError"]
