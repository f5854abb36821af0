"""Value types for the build ledger."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

SHORT_REVISION_LENGTH = 7


class BuildOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    UNKNOWN = "unknown"

    @property
    def tag(self) -> str | None:
        """Filename tag of the terminal artifact, ``None`` for UNKNOWN."""

        return _TAGS.get(self)

    @property
    def healthy(self) -> bool:
        return self is BuildOutcome.SUCCESS


_TAGS = {
    BuildOutcome.SUCCESS: "succeed",
    BuildOutcome.FAILURE: "failed",
}


def short_revision(revision: str, length: int = SHORT_REVISION_LENGTH) -> str:
    return revision[:length]


@dataclass(slots=True)
class LedgerEntry:
    project: str
    revision: str
    outcome: BuildOutcome
    path: Path

    @property
    def short_revision(self) -> str:
        return short_revision(self.revision)

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8", errors="replace")


__all__ = ["BuildOutcome", "LedgerEntry", "SHORT_REVISION_LENGTH", "short_revision"]
