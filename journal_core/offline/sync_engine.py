# =============================================================================
# journal_core/offline/sync_engine.py
# Offline-First Journal Synchronization Engine
# =============================================================================
"""
SyncEngine - Keeps the journal usable with or without a network.

Features:
- Online-first mutations with optimistic offline fallback
- Durable FIFO queue of pending operations, replayed on reconnect
- Paged reads mirrored into the local cache
- Live push-event merging (entry_added / entry_updated)
- Snapshot callbacks for the UI

The engine is the only writer of the cached collection and the queue. The
UI reads snapshots and starts operations, nothing else.
"""

from __future__ import annotations
import json
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
import logging

import pandas as pd

from journal_core.errors.exceptions import (
    ConnectivityUnavailable,
    EntryValidationError,
    RequestFailed,
)
from journal_core.errors.handlers import handle_error, safe_execute
from journal_core.logging import LogContext, get_logger
from journal_core.models import Entry, EntryData, OperationKind, PendingOperation, SyncOutcome
from journal_core.offline.local_cache import ENTRIES_KEY, QUEUE_KEY

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 50

DATAFRAME_COLUMNS = ["id", "date", "temperature", "description", "photoUrl", "latitude", "longitude"]


class SyncPhase(Enum):
    """Engine connectivity session state."""
    OFFLINE = "offline"
    ONLINE_IDLE = "online_idle"
    ONLINE_SYNCING = "online_syncing"


@dataclass
class SyncState:
    """Sync bookkeeping."""
    is_syncing: bool = False
    last_sync: Optional[datetime] = None
    last_sync_success: Optional[datetime] = None
    last_refresh: Optional[datetime] = None
    failed_count: int = 0
    total_synced: int = 0


@dataclass(frozen=True)
class JournalSnapshot:
    """Read-only view handed to UI observers."""
    entries: Tuple[Entry, ...] = ()
    page: int = 0
    has_more: bool = False
    is_online: bool = False
    pending_count: int = 0
    phase: SyncPhase = SyncPhase.OFFLINE


class SyncEngine:
    """
    Offline-first synchronization between the local cache and the entry store.

    Usage:
        engine = SyncEngine(gateway, cache, connection)
        engine.initialize()
        outcome = engine.create_entry({"temperature": 18, ...})
        if outcome.is_online:
            ...
    """

    def __init__(
        self,
        gateway,
        cache,
        connection,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        """
        Args:
            gateway: EntryGateway (fetch_page/create/update/subscribe)
            cache: LocalCache (get/set)
            connection: ConnectionManager (check_connection/register_callback)
            page_size: Entries per fetched page
        """
        self._gateway = gateway
        self._cache = cache
        self._connection = connection
        self.page_size = page_size

        self._entries: List[Entry] = []
        self._queue: List[PendingOperation] = []
        self._page = 0
        self._has_more = False
        self._online = False
        self._phase = SyncPhase.OFFLINE

        self._state = SyncState()
        self._lock = threading.RLock()
        self._subscription = None
        self._callbacks: List[Callable[[JournalSnapshot], None]] = []
        self._initialized = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def entries(self) -> Tuple[Entry, ...]:
        with self._lock:
            return tuple(self._entries)

    @property
    def pending_operations(self) -> Tuple[PendingOperation, ...]:
        with self._lock:
            return tuple(self._queue)

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def page(self) -> int:
        return self._page

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def connection(self):
        return self._connection

    def snapshot(self) -> JournalSnapshot:
        with self._lock:
            return JournalSnapshot(
                entries=tuple(self._entries),
                page=self._page,
                has_more=self._has_more,
                is_online=self._online,
                pending_count=len(self._queue),
                phase=self._phase,
            )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize(self) -> None:
        """
        Load the cached journal, read connectivity and refresh when online.

        Never raises: a failed remote fetch leaves the cached copy in place.
        """
        if self._initialized:
            return

        self._load_cached()

        state = self._connection.check_connection()
        with self._lock:
            self._online = state.connected
            self._phase = SyncPhase.ONLINE_IDLE if state.connected else SyncPhase.OFFLINE

        self._connection.register_callback(self._on_connection_change)
        self._initialized = True
        logger.info(
            f"SyncEngine initialized: {len(self._entries)} cached entries, "
            f"{len(self._queue)} pending, online={self._online}"
        )

        if self._online:
            self.refresh()
            self._ensure_subscription()

        self._notify_callbacks()

    def shutdown(self) -> None:
        """Stop reacting to connectivity and close the push channel."""
        self._connection.unregister_callback(self._on_connection_change)
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self._initialized = False
        logger.info("SyncEngine stopped")

    def _on_connection_change(self, state) -> None:
        """Edge-triggered: only the transition into connected does work."""
        connected = state.connected
        with self._lock:
            was_online = self._online
            self._online = connected
            if not connected:
                self._phase = SyncPhase.OFFLINE
            elif not was_online:
                self._phase = SyncPhase.ONLINE_SYNCING

        if not connected:
            if was_online:
                logger.info("Connection lost, mutations will be queued")
            self._notify_callbacks()
            return

        if was_online:
            return

        logger.info("Connection restored, flushing pending operations")
        self._notify_callbacks()
        self._ensure_subscription()
        try:
            self.flush_queue()
        finally:
            with self._lock:
                if self._online and not self._state.is_syncing:
                    self._phase = SyncPhase.ONLINE_IDLE
            self._notify_callbacks()

    # =========================================================================
    # READS
    # =========================================================================

    def refresh(self) -> bool:
        """
        Replace the collection with the first remote page.

        Returns:
            True if the collection was refreshed; False when offline or failed
        """
        if not self._online:
            logger.debug("Refresh skipped: offline")
            return False

        try:
            result = self._gateway.fetch_page(1, self.page_size)
        except (RequestFailed, ConnectivityUnavailable) as e:
            handle_error(e, user_message=f"Refresh failed, keeping cached journal: {e.message}",
                         level=logging.WARNING)
            return False

        with self._lock:
            self._entries = self._unique(result.entries)
            self._page = 1
            self._has_more = result.has_more
            self._persist_entries()
        self._state.last_refresh = datetime.now()

        logger.info(f"Journal refreshed: {len(result.entries)} entries, has_more={result.has_more}")
        self._notify_callbacks()
        return True

    def load_more(self) -> bool:
        """
        Append the next remote page to the tail of the collection.

        Returns:
            True if a page was appended
        """
        if not self._online or not self._has_more:
            return False

        next_page = self._page + 1
        try:
            result = self._gateway.fetch_page(next_page, self.page_size)
        except (RequestFailed, ConnectivityUnavailable) as e:
            handle_error(e, user_message=f"Loading page {next_page} failed: {e.message}",
                         level=logging.WARNING)
            return False

        with self._lock:
            self._entries.extend(result.entries)
            self._page = next_page
            self._has_more = result.has_more
            self._persist_entries()

        logger.debug(f"Loaded page {next_page}: {len(result.entries)} entries")
        self._notify_callbacks()
        return True

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def create_entry(self, data: Union[EntryData, Mapping[str, Any]]) -> SyncOutcome:
        """
        Create an entry, online if possible, queued otherwise.

        Raises:
            EntryValidationError: invalid fields (nothing is changed)
        """
        payload = self._coerce(data)

        try:
            self._require_connectivity()
            created = self._gateway.create(payload)
        except (ConnectivityUnavailable, RequestFailed) as e:
            handle_error(e, user_message=f"Create not accepted online, queuing: {e.message}",
                         level=logging.WARNING)
            return self._create_offline(payload)

        with self._lock:
            # A push echo may have delivered it already
            if self._index_of(created.id) is None:
                self._entries.insert(0, created)
            self._persist_entries()

        logger.info(f"Entry {created.id} created online")
        self._notify_callbacks()
        return SyncOutcome.ONLINE

    def _create_offline(self, payload: EntryData) -> SyncOutcome:
        entry = payload.with_id(str(uuid.uuid4()))
        with self._lock:
            self._entries.insert(0, entry)
            self._persist_entries()
            self._queue.append(PendingOperation.create(payload, local_id=entry.id))
            self._persist_queue()

        logger.info(f"Entry {entry.id} stored offline ({len(self._queue)} pending)")
        self._notify_callbacks()
        return SyncOutcome.QUEUED

    def update_entry(self, entry_id: str, data: Union[EntryData, Mapping[str, Any]]) -> SyncOutcome:
        """
        Update an entry, online if possible, queued otherwise.

        The offline path keeps ``entry_id``; no new id is minted.

        Raises:
            EntryValidationError: invalid fields (nothing is changed)
        """
        if not entry_id:
            raise EntryValidationError("entry id is required for updates", field="id")
        payload = self._coerce(data)

        if self._fold_into_pending_create(entry_id, payload):
            return SyncOutcome.QUEUED

        try:
            self._require_connectivity()
            updated = self._gateway.update(entry_id, payload)
        except (ConnectivityUnavailable, RequestFailed) as e:
            handle_error(e, user_message=f"Update of {entry_id} not accepted online, queuing: {e.message}",
                         level=logging.WARNING)
            return self._update_offline(entry_id, payload)

        with self._lock:
            self._replace(entry_id, updated)
            self._persist_entries()

        logger.info(f"Entry {entry_id} updated online")
        self._notify_callbacks()
        return SyncOutcome.ONLINE

    def _update_offline(self, entry_id: str, payload: EntryData) -> SyncOutcome:
        with self._lock:
            self._replace(entry_id, payload.with_id(entry_id))
            self._persist_entries()
            self._queue.append(PendingOperation.update(entry_id, payload))
            self._persist_queue()

        logger.info(f"Entry {entry_id} updated offline ({len(self._queue)} pending)")
        self._notify_callbacks()
        return SyncOutcome.QUEUED

    def _fold_into_pending_create(self, entry_id: str, payload: EntryData) -> bool:
        """
        Edit an entry whose CREATE has not been replayed yet.

        The server has never seen the temp id, so the queued CREATE is
        rewritten with the new fields instead of queueing an UPDATE for it.
        """
        with self._lock:
            for index, operation in enumerate(self._queue):
                if operation.kind is OperationKind.CREATE and operation.local_id == entry_id:
                    break
            else:
                return False
            self._queue[index] = PendingOperation.create(payload, local_id=entry_id)
            self._replace(entry_id, payload.with_id(entry_id))
            self._persist_entries()
            self._persist_queue()

        logger.info(f"Entry {entry_id} edited before its create was synced, queued create updated")
        self._notify_callbacks()
        return True

    def _require_connectivity(self) -> None:
        """Fresh reachability check; the recorded flag may be stale."""
        state = self._connection.check_connection()
        with self._lock:
            self._online = state.connected
        if not state.connected:
            raise ConnectivityUnavailable(host=getattr(self._connection, "host", None))

    # =========================================================================
    # QUEUE REPLAY
    # =========================================================================

    def flush_queue(self) -> bool:
        """
        Replay queued operations in FIFO order, one request at a time.

        Stops at the first failure and keeps that operation and everything
        after it. A full drain clears the queue and refreshes the journal.

        Returns:
            True when every operation taken at the start was replayed
        """
        with self._lock:
            if self._state.is_syncing:
                logger.debug("Flush already in progress")
                return False
            queue = self._read_persisted_queue()
            if not queue:
                return True
            self._queue = list(queue)
            self._state.is_syncing = True
            self._state.last_sync = datetime.now()
            self._phase = SyncPhase.ONLINE_SYNCING
        self._notify_callbacks()

        replayed = 0
        drained = False
        try:
            with LogContext(logger, f"Flushing {len(queue)} queued operations"):
                for operation in queue:
                    self._replay(operation)
                    replayed += 1
            drained = True
        except (RequestFailed, ConnectivityUnavailable) as e:
            logger.warning(
                f"Sync failed for {queue[replayed].kind.value}; {len(queue) - replayed} operations "
                f"kept for the next reconnect: {e.message}"
            )
        except Exception as e:
            handle_error(e, user_message=f"Unexpected error replaying {queue[replayed].kind.value}, "
                                         f"{len(queue) - replayed} operations kept")
        finally:
            self._finish_flush(replayed)

        if not drained:
            self._state.failed_count += 1
            return False

        self._state.last_sync_success = datetime.now()
        self.refresh()
        return True

    def _replay(self, operation: PendingOperation) -> None:
        if operation.kind is OperationKind.UPDATE:
            self._gateway.update(operation.entry_id, operation.payload)
            return

        created = self._gateway.create(operation.payload)
        if operation.local_id is None:
            return
        # Swap the temp entry for the server's so later edits target a real id
        with self._lock:
            index = self._index_of(operation.local_id)
            if index is None:
                return
            if self._index_of(created.id) is None:
                self._entries[index] = created
            else:
                del self._entries[index]
            self._persist_entries()

    def _finish_flush(self, replayed: int) -> None:
        with self._lock:
            # self._queue still holds the drained list plus anything queued meanwhile
            self._queue = self._queue[replayed:]
            self._persist_queue()
            self._state.total_synced += replayed
            self._state.is_syncing = False
            self._phase = SyncPhase.ONLINE_IDLE if self._online else SyncPhase.OFFLINE
        self._notify_callbacks()

    # =========================================================================
    # PUSH EVENTS
    # =========================================================================

    def ingest_added(self, payload: Union[Entry, Mapping[str, Any]]) -> bool:
        """
        Merge an entry_added event. Known ids are ignored.

        Returns:
            True if the collection changed
        """
        entry = self._parse_event(payload, "entry_added")
        if entry is None:
            return False

        with self._lock:
            if self._index_of(entry.id) is not None:
                return False
            self._entries.insert(0, entry)
            self._persist_entries()

        logger.debug(f"Push: entry {entry.id} added")
        self._notify_callbacks()
        return True

    def ingest_updated(self, payload: Union[Entry, Mapping[str, Any]]) -> bool:
        """
        Merge an entry_updated event. Unknown ids are ignored.

        Returns:
            True if the collection changed
        """
        entry = self._parse_event(payload, "entry_updated")
        if entry is None:
            return False

        with self._lock:
            if not self._replace(entry.id, entry):
                return False
            self._persist_entries()

        logger.debug(f"Push: entry {entry.id} updated")
        self._notify_callbacks()
        return True

    def _parse_event(self, payload, event: str) -> Optional[Entry]:
        if isinstance(payload, Entry):
            return payload
        try:
            return Entry.from_dict(payload)
        except EntryValidationError as e:
            handle_error(e, user_message=f"Dropping malformed {event} event: {e.message}",
                         level=logging.WARNING)
            return None

    def _ensure_subscription(self) -> None:
        if self._subscription is not None and not self._subscription.closed:
            return
        try:
            self._subscription = self._gateway.subscribe(self.ingest_added, self.ingest_updated)
        except RequestFailed as e:
            self._subscription = None
            handle_error(e, user_message=f"Live updates unavailable: {e.message}", level=logging.WARNING)

    # =========================================================================
    # CACHE MIRRORING
    # =========================================================================

    def _load_cached(self) -> None:
        """Best-effort load of the cached collection and queue."""
        entries: List[Entry] = []
        for item in self._read_json_list(ENTRIES_KEY):
            try:
                entries.append(Entry.from_dict(item))
            except EntryValidationError as e:
                logger.warning(f"Skipping unreadable cached entry: {e}")

        with self._lock:
            self._entries = self._unique(entries)
            self._queue = self._parse_queue(self._read_json_list(QUEUE_KEY))

    def _read_persisted_queue(self) -> List[PendingOperation]:
        """
        Queue to drain: the persisted one, reconciled with memory.

        A dropped queue write leaves a stale blob behind. Persisted order is
        kept, each operation takes its in-memory version when one exists, and
        operations only memory knows about follow.
        """
        blob = self._cache.get(QUEUE_KEY)
        if blob is None:
            # Absent or unreadable; in memory is authoritative
            return list(self._queue)
        try:
            items = json.loads(blob)
        except json.JSONDecodeError as e:
            logger.warning(f"Persisted queue is corrupt, using in-memory queue: {e}")
            return list(self._queue)

        persisted = self._parse_queue(items if isinstance(items, list) else [])
        in_memory = {self._operation_key(op): op for op in self._queue}
        merged = [in_memory.get(self._operation_key(op), op) for op in persisted]
        seen = {self._operation_key(op) for op in persisted}
        memory_only = [op for op in self._queue if self._operation_key(op) not in seen]
        if memory_only:
            logger.warning(f"{len(memory_only)} queued operations were missing from the cache, keeping them")
        return merged + memory_only

    @staticmethod
    def _operation_key(operation: PendingOperation):
        # A create edited offline keeps its local id but not its payload
        return ("local", operation.local_id) if operation.local_id else operation

    def _read_json_list(self, key: str) -> List[Any]:
        blob = self._cache.get(key)
        if not blob:
            return []
        try:
            value = json.loads(blob)
        except json.JSONDecodeError as e:
            logger.warning(f"Cached {key} is corrupt, ignoring it: {e}")
            return []
        return value if isinstance(value, list) else []

    @staticmethod
    def _parse_queue(items: List[Any]) -> List[PendingOperation]:
        queue = []
        for item in items:
            try:
                queue.append(PendingOperation.from_dict(item))
            except (EntryValidationError, AttributeError) as e:
                logger.warning(f"Dropping unreadable queued operation: {e}")
        return queue

    def _persist_entries(self) -> None:
        self._cache.set(ENTRIES_KEY, json.dumps([entry.to_dict() for entry in self._entries]))

    def _persist_queue(self) -> None:
        self._cache.set(QUEUE_KEY, json.dumps([op.to_dict() for op in self._queue]))

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _coerce(data: Union[EntryData, Mapping[str, Any]]) -> EntryData:
        if isinstance(data, EntryData):
            return data
        if isinstance(data, Entry):
            return data.data
        return EntryData.from_dict(data)

    @staticmethod
    def _unique(entries: List[Entry]) -> List[Entry]:
        seen = set()
        unique = []
        for entry in entries:
            if entry.id not in seen:
                seen.add(entry.id)
                unique.append(entry)
        return unique

    def _index_of(self, entry_id: str) -> Optional[int]:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return index
        return None

    def _replace(self, entry_id: str, entry: Entry) -> bool:
        index = self._index_of(entry_id)
        if index is None:
            return False
        self._entries[index] = entry
        return True

    # =========================================================================
    # OBSERVERS AND DISPLAY
    # =========================================================================

    def register_callback(self, callback: Callable[[JournalSnapshot], None]) -> None:
        """Register a callback receiving a JournalSnapshot after each change."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[JournalSnapshot], None]) -> None:
        """Remove a registered callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self) -> None:
        if not self._callbacks:
            return
        snapshot = self.snapshot()
        for callback in list(self._callbacks):
            safe_execute(callback, snapshot, error_message="Error in journal callback")

    def to_dataframe(self) -> pd.DataFrame:
        """Flatten the collection for list and map widgets."""
        rows = []
        for entry in self.entries:
            rows.append({
                "id": entry.id,
                "date": entry.date,
                "temperature": entry.temperature,
                "description": entry.description,
                "photoUrl": entry.photo_url,
                "latitude": entry.coords.latitude,
                "longitude": entry.coords.longitude,
            })
        df = pd.DataFrame(rows, columns=DATAFRAME_COLUMNS)
        df["date"] = pd.to_datetime(df["date"], utc=True, format="ISO8601", errors="coerce")
        return df

    def get_status_display(self) -> Dict[str, Any]:
        """Get sync status for UI display."""
        return {
            "phase": self._phase.value,
            "is_online": self._online,
            "is_syncing": self._state.is_syncing,
            "entries": len(self._entries),
            "page": self._page,
            "has_more": self._has_more,
            "pending_count": self.pending_count,
            "last_sync": self._state.last_sync.isoformat() if self._state.last_sync else None,
            "last_success": self._state.last_sync_success.isoformat() if self._state.last_sync_success else None,
            "last_refresh": self._state.last_refresh.isoformat() if self._state.last_refresh else None,
            "failed_count": self._state.failed_count,
            "total_synced": self._state.total_synced,
        }


# =============================================================================
# SINGLETON ACCESSOR
# =============================================================================

_sync_engine: Optional[SyncEngine] = None
_engine_lock = threading.Lock()


def build_sync_engine(config=None, credential_provider=None) -> SyncEngine:
    """
    Wire a SyncEngine from JournalConfig (not initialized).

    Args:
        config: JournalConfig; resolved with load_config() when None
        credential_provider: Callable returning the current bearer token
    """
    from journal_core.api.config_manager import load_config
    from journal_core.api.entry_gateway import EntryGateway
    from journal_core.offline.connection_manager import ConnectionManager
    from journal_core.offline.local_cache import LocalCache

    config = config or load_config()
    return SyncEngine(
        gateway=EntryGateway.from_config(config, credential_provider=credential_provider),
        cache=LocalCache(config.cache_path),
        connection=ConnectionManager.from_config(config),
        page_size=config.page_size,
    )


def get_sync_engine(config=None, credential_provider=None) -> SyncEngine:
    """Get the process-wide SyncEngine, initialized and monitoring."""
    global _sync_engine
    if _sync_engine is None:
        with _engine_lock:
            if _sync_engine is None:
                engine = build_sync_engine(config, credential_provider)
                engine.initialize()
                engine.connection.start_monitoring()
                _sync_engine = engine
    return _sync_engine
