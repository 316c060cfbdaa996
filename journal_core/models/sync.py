# =============================================================================
# journal_core/models/sync.py
# Queue, Page and Outcome Types
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from journal_core.errors.exceptions import EntryValidationError
from journal_core.models.entry import Entry, EntryData


class OperationKind(Enum):
    """Queued mutation kinds (values are the persisted queue tags)."""
    CREATE = "ADD"
    UPDATE = "UPDATE"


class SyncOutcome(Enum):
    """Result of a create/update call."""
    ONLINE = "online"   # Accepted by the remote store
    QUEUED = "queued"   # Applied locally, waiting for replay

    @property
    def is_online(self) -> bool:
        return self is SyncOutcome.ONLINE


@dataclass(frozen=True)
class PendingOperation:
    """A mutation waiting to be replayed against the remote store."""
    kind: OperationKind
    payload: EntryData
    entry_id: Optional[str] = None  # Only for UPDATE
    local_id: Optional[str] = None  # Temp id a CREATE is shown under; never sent

    def __post_init__(self):
        if self.kind is OperationKind.UPDATE and not self.entry_id:
            raise EntryValidationError("UPDATE operations need a target id", field="id")
        if self.kind is OperationKind.CREATE and self.entry_id is not None:
            raise EntryValidationError("CREATE operations carry no id", field="id", actual=self.entry_id)
        if self.kind is OperationKind.UPDATE and self.local_id is not None:
            raise EntryValidationError("UPDATE operations have no local id", field="localId", actual=self.local_id)

    @classmethod
    def create(cls, payload: EntryData, local_id: Optional[str] = None) -> PendingOperation:
        return cls(kind=OperationKind.CREATE, payload=payload, local_id=local_id)

    @classmethod
    def update(cls, entry_id: str, payload: EntryData) -> PendingOperation:
        return cls(kind=OperationKind.UPDATE, payload=payload, entry_id=entry_id)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> PendingOperation:
        try:
            kind = OperationKind(raw.get("type"))
        except ValueError:
            raise EntryValidationError("unknown queued operation type", field="type", actual=raw.get("type"))
        return cls(
            kind=kind,
            payload=EntryData.from_dict(raw.get("data") or {}),
            entry_id=raw.get("id"),
            local_id=raw.get("localId"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind.value, "data": self.payload.to_dict()}
        if self.entry_id is not None:
            data["id"] = self.entry_id
        if self.local_id is not None:
            data["localId"] = self.local_id
        return data


@dataclass
class EntryPage:
    """One page of the remote collection."""
    entries: List[Entry] = field(default_factory=list)
    total: int = 0
    page: int = 1
    has_more: bool = False

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], page: int = 1) -> EntryPage:
        return cls(
            entries=[Entry.from_dict(item) for item in raw.get("entries") or []],
            total=int(raw.get("total") or 0),
            page=int(raw.get("page") or page),
            has_more=bool(raw.get("hasMore", False)),
        )
