# =============================================================================
# journal_core/offline/__init__.py
# Offline-First Architecture for the Weather Journal
# =============================================================================
"""
Offline-First Sync Module

The journal works the same whether the entry store is reachable or not.

Architecture:
------------
┌─────────────────────────────────────────────────────────────────┐
│                    OFFLINE-FIRST ARCHITECTURE                    │
├─────────────────────────────────────────────────────────────────┤
│                                                                  │
│   ┌──────────────────────────────────────────────────────────┐  │
│   │                      SyncEngine                           │  │
│   │        (Single API - the journal UI uses this only)       │  │
│   └──────────────────────────────────────────────────────────┘  │
│          │                    │                     │            │
│          ▼                    ▼                     ▼            │
│   ┌──────────────┐   ┌──────────────────┐   ┌──────────────┐    │
│   │ConnectionMgr │   │   EntryGateway   │   │  LocalCache  │    │
│   │(Online/Off)  │   │ (HTTP + pushes)  │   │(SQLite k/v)  │    │
│   └──────────────┘   └──────────────────┘   └──────────────┘    │
│                                                                  │
└─────────────────────────────────────────────────────────────────┘

Usage:
------
from journal_core.offline import get_sync_engine

engine = get_sync_engine()

outcome = engine.create_entry({
    "temperature": 18,
    "description": "cloudy",
    "coords": {"latitude": 41.38, "longitude": 2.17},
})
print(outcome.is_online)      # False when it was queued
print(engine.pending_count)   # Operations waiting for a reconnect
"""

from journal_core.offline.connection_manager import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
)

from journal_core.offline.local_cache import (
    LocalCache,
    ENTRIES_KEY,
    QUEUE_KEY,
)

from journal_core.offline.sync_engine import (
    SyncEngine,
    SyncPhase,
    SyncState,
    JournalSnapshot,
    build_sync_engine,
    get_sync_engine,
)

__all__ = [
    # Connection Management
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    # Local Cache
    "LocalCache",
    "ENTRIES_KEY",
    "QUEUE_KEY",
    # Sync Engine
    "SyncEngine",
    "SyncPhase",
    "SyncState",
    "JournalSnapshot",
    "build_sync_engine",
    "get_sync_engine",
]
