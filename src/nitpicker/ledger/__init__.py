"""On-disk build ledger."""

from .ledger import BuildLedger, LedgerConflictError, LedgerError
from .models import BuildOutcome, LedgerEntry, short_revision

__all__ = [
    "BuildLedger",
    "BuildOutcome",
    "LedgerConflictError",
    "LedgerEntry",
    "LedgerError",
    "short_revision",
]
