# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import pytest
from typing import Callable, List, Optional
from unittest.mock import MagicMock

from journal_core.errors.exceptions import RequestFailed
from journal_core.models import Entry, EntryData, EntryPage
from journal_core.offline.connection_manager import ConnectionState, ConnectionStatus
from journal_core.offline.local_cache import LocalCache
from journal_core.offline.sync_engine import SyncEngine


# =============================================================================
# SAMPLE DATA
# =============================================================================

def make_data(
    description: str = "sunny",
    temperature: float = 20.0,
    date: str = "2024-05-01T10:00:00.000Z",
    latitude: float = 41.38,
    longitude: float = 2.17,
    photo_url: Optional[str] = None,
) -> EntryData:
    return EntryData(
        temperature=temperature,
        description=description,
        coords={"latitude": latitude, "longitude": longitude},
        date=date,
        photo_url=photo_url,
    )


def make_entry(entry_id: str, date: str = "2024-05-01T10:00:00.000Z", **kwargs) -> Entry:
    return make_data(date=date, **kwargs).with_id(entry_id)


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeConnection:
    """ConnectionManager stand-in with a switch instead of a socket probe."""

    def __init__(self, connected: bool = True):
        self.host = "journal.test"
        self.state = ConnectionState(
            status=ConnectionStatus.ONLINE if connected else ConnectionStatus.OFFLINE
        )
        self.callbacks: List[Callable] = []
        self.checks = 0

    def check_connection(self) -> ConnectionState:
        self.checks += 1
        return self.state

    def register_callback(self, callback):
        if callback not in self.callbacks:
            self.callbacks.append(callback)

    def unregister_callback(self, callback):
        if callback in self.callbacks:
            self.callbacks.remove(callback)

    def start_monitoring(self):
        pass

    def set_connected(self, connected: bool, notify: bool = True):
        """Flip the status; callbacks fire only when it actually changes."""
        new_status = ConnectionStatus.ONLINE if connected else ConnectionStatus.OFFLINE
        changed = new_status != self.state.status
        self.state.status = new_status
        if changed and notify:
            self.notify()

    def notify(self):
        for callback in list(self.callbacks):
            callback(self.state)


class FakeSubscription:
    def __init__(self, on_added, on_updated):
        self.on_added = on_added
        self.on_updated = on_updated
        self.closed = False

    def close(self):
        self.closed = True


class FakeGateway:
    """
    In-memory entry store behind the gateway interface.

    ``failing`` holds method names ("fetch_page", "create", "update",
    "subscribe") that raise RequestFailed. ``fail_update_ids`` makes
    updates of specific ids fail.
    """

    def __init__(self, entries: Optional[List[Entry]] = None):
        self.server: List[Entry] = list(entries or [])
        self.calls: List[tuple] = []
        self.failing = set()
        self.fail_update_ids = set()
        self.subscriptions: List[FakeSubscription] = []
        self._next_id = 0

    def _maybe_fail(self, name: str, status_code: int = 503):
        if name in self.failing:
            raise RequestFailed(f"{name} failed", method=name, status_code=status_code)

    def fetch_page(self, page: int, page_size: int) -> EntryPage:
        self.calls.append(("fetch_page", page, page_size))
        self._maybe_fail("fetch_page")
        offset = (page - 1) * page_size
        return EntryPage(
            entries=list(self.server[offset:offset + page_size]),
            total=len(self.server),
            page=page,
            has_more=offset + page_size < len(self.server),
        )

    def create(self, data: EntryData) -> Entry:
        self.calls.append(("create", data))
        self._maybe_fail("create")
        self._next_id += 1
        entry = data.with_id(f"srv-{self._next_id}")
        self.server.insert(0, entry)
        return entry

    def update(self, entry_id: str, data: EntryData) -> Entry:
        self.calls.append(("update", entry_id, data))
        self._maybe_fail("update")
        if entry_id in self.fail_update_ids:
            raise RequestFailed("Entry not found or unauthorized", method="PUT", status_code=404)
        entry = data.with_id(entry_id)
        self.server = [entry if e.id == entry_id else e for e in self.server]
        return entry

    def subscribe(self, on_added, on_updated) -> FakeSubscription:
        self.calls.append(("subscribe",))
        self._maybe_fail("subscribe")
        subscription = FakeSubscription(on_added, on_updated)
        self.subscriptions.append(subscription)
        return subscription

    def calls_to(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def cache(tmp_path):
    """Real SQLite cache in a temporary directory"""
    local_cache = LocalCache(tmp_path / "journal.db")
    yield local_cache
    local_cache.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def connection():
    return FakeConnection(connected=True)


@pytest.fixture
def offline_connection():
    return FakeConnection(connected=False)


@pytest.fixture
def engine(gateway, cache, connection):
    """Engine wired to fakes, online, not yet initialized"""
    return SyncEngine(gateway, cache, connection, page_size=2)


@pytest.fixture
def offline_engine(gateway, cache, offline_connection):
    """Initialized engine that starts offline"""
    sync = SyncEngine(gateway, cache, offline_connection, page_size=2)
    sync.initialize()
    return sync


@pytest.fixture
def mock_streamlit(monkeypatch):
    """Mock Streamlit inside the modules that render messages"""
    from journal_core.errors import handlers
    from journal_core.state import session

    mock_st = MagicMock()
    mock_st.session_state = {}
    monkeypatch.setattr(handlers, "st", mock_st)
    monkeypatch.setattr(session, "st", mock_st)
    return mock_st
