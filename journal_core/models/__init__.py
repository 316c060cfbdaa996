"""
Journal data model: entries, queued operations, pages and outcomes.
"""

from journal_core.models.entry import Coords, Entry, EntryData, utc_now_iso
from journal_core.models.sync import EntryPage, OperationKind, PendingOperation, SyncOutcome

__all__ = [
    "Coords",
    "Entry",
    "EntryData",
    "EntryPage",
    "OperationKind",
    "PendingOperation",
    "SyncOutcome",
    "utc_now_iso",
]
