# =============================================================================
# journal_core/offline/local_cache.py
# Local SQLite Key/Value Cache for Offline Operations
# =============================================================================
"""
LocalCache - Durable key/value storage for the journal's offline state.

Holds serialized blobs under two keys:
- ``journal_entries``: the last-known entry collection
- ``sync_queue``: the pending-operation queue

Failures never propagate: a failed read yields ``None`` and a failed write is
dropped, both logged as StorageUnavailable warnings.
"""

from __future__ import annotations
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

from journal_core.errors.exceptions import StorageUnavailable
from journal_core.errors.handlers import handle_error

logger = logging.getLogger(__name__)

ENTRIES_KEY = "journal_entries"
QUEUE_KEY = "sync_queue"


class LocalCache:
    """
    SQLite-backed key/value cache.

    Usage:
        cache = LocalCache(Path("local_data/journal.db"))
        cache.set("journal_entries", json.dumps(entries))
        blob = cache.get("journal_entries")
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._schema_lock = threading.Lock()
        self._initialized = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._local.connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        if self._initialized:
            return
        with self._schema_lock:
            if not self._initialized:
                with self.transaction() as conn:
                    conn.execute(self.SCHEMA)
                self._initialized = True
                logger.info(f"Local cache initialized at: {self.db_path}")

    def get(self, key: str) -> Optional[str]:
        """Return the stored blob, or None when absent or unreadable."""
        try:
            self._ensure_schema()
            row = self._get_connection().execute(
                "SELECT value FROM kv_store WHERE key = ?", [key]
            ).fetchone()
        except (sqlite3.Error, OSError) as e:
            self._report(StorageUnavailable(f"Cache read failed: {e}", key=key, operation="get"))
            return None
        return row[0] if row else None

    def set(self, key: str, blob: str) -> None:
        """Store a blob; failures are logged and dropped."""
        try:
            self._ensure_schema()
            with self.transaction() as conn:
                conn.execute(
                    "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                    [key, blob, datetime.now().isoformat()],
                )
        except (sqlite3.Error, OSError) as e:
            self._report(StorageUnavailable(f"Cache write failed: {e}", key=key, operation="set"))

    def delete(self, key: str) -> None:
        """Remove a key; failures are logged and dropped."""
        try:
            self._ensure_schema()
            with self.transaction() as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", [key])
        except (sqlite3.Error, OSError) as e:
            self._report(StorageUnavailable(f"Cache delete failed: {e}", key=key, operation="delete"))

    def close(self) -> None:
        """Close this thread's connection."""
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
            self._local.connection = None

    @staticmethod
    def _report(error: StorageUnavailable) -> None:
        handle_error(error, level=logging.WARNING)
