# =============================================================================
# journal_core/offline/connection_manager.py
# Reachability Monitor for the Remote Entry Store
# =============================================================================
"""
ConnectionManager - Answers "can we reach the journal API right now?"

A TCP connect to the API host is the probe. A daemon thread repeats it,
more often while offline so reconnects are noticed quickly. Observers are
told about transitions only, never about a status that stayed the same.
"""

from __future__ import annotations
import socket
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

StatusCallback = Callable[["ConnectionState"], None]


class ConnectionStatus(Enum):
    """Reachability of the entry store."""
    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"     # Not probed yet


@dataclass
class ConnectionState:
    """Outcome of the latest probe."""
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    last_check: Optional[datetime] = None
    last_online: Optional[datetime] = None
    consecutive_failures: int = 0
    error_message: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self.status is ConnectionStatus.ONLINE

    def record(self, reachable: bool, error: Optional[str] = None) -> ConnectionStatus:
        """Apply a probe result; returns the previous status."""
        previous = self.status
        self.last_check = datetime.now()
        if reachable:
            self.status = ConnectionStatus.ONLINE
            self.last_online = self.last_check
            self.consecutive_failures = 0
            self.error_message = None
        else:
            self.status = ConnectionStatus.OFFLINE
            self.consecutive_failures += 1
            self.error_message = error
        return previous


class ConnectionManager:
    """
    Tracks whether the remote entry store can be reached.

    Usage:
        manager = ConnectionManager("journal.example.com", 443)
        manager.register_callback(engine_on_change)
        manager.initialize()            # first probe + background thread
        manager.current_status().connected
    """

    CHECK_INTERVAL_ONLINE = 30      # Seconds between probes while reachable
    CHECK_INTERVAL_OFFLINE = 10     # Seconds between probes while unreachable
    CONNECTION_TIMEOUT = 5          # Seconds allowed for one TCP connect

    def __init__(
        self,
        host: str,
        port: int,
        check_interval_online: Optional[float] = None,
        check_interval_offline: Optional[float] = None,
        connection_timeout: Optional[float] = None,
    ):
        self.host = host
        self.port = port
        self.check_interval_online = check_interval_online or self.CHECK_INTERVAL_ONLINE
        self.check_interval_offline = check_interval_offline or self.CHECK_INTERVAL_OFFLINE
        self.connection_timeout = connection_timeout or self.CONNECTION_TIMEOUT

        self._state = ConnectionState()
        self._state_lock = threading.Lock()
        self._observers: List[StatusCallback] = []
        self._monitor_thread: Optional[threading.Thread] = None
        self._halt = threading.Event()
        self._initialized = False

    @classmethod
    def from_config(cls, config) -> ConnectionManager:
        """Build from a JournalConfig."""
        return cls(
            config.api_host,
            config.api_port,
            check_interval_online=config.check_interval_online,
            check_interval_offline=config.check_interval_offline,
            connection_timeout=config.connection_timeout,
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def is_online(self) -> bool:
        return self._state.connected

    @property
    def is_offline(self) -> bool:
        return self._state.status is ConnectionStatus.OFFLINE

    def current_status(self) -> ConnectionState:
        """Last recorded state; can be one probe interval old."""
        return self._state

    def initialize(self, start_monitoring: bool = True) -> None:
        """Probe once, then (optionally) keep probing in the background."""
        if self._initialized:
            return
        self.check_connection()
        if start_monitoring:
            self.start_monitoring()
        self._initialized = True
        logger.info(f"Reachability of {self.host}:{self.port}: {self._state.status.value}")

    # =========================================================================
    # PROBING
    # =========================================================================

    def check_connection(self) -> ConnectionState:
        """
        Probe the API host now and record the result.

        Observers run after the state lock is released, and only when the
        status differs from the previous probe.

        Returns:
            The updated ConnectionState
        """
        reachable, error = self._probe()
        with self._state_lock:
            previous = self._state.record(reachable, error)
        current = self._state.status

        if previous is not current:
            logger.info(f"Entry store {previous.value} -> {current.value}")
            self._notify_callbacks()
        return self._state

    def _probe(self) -> Tuple[bool, Optional[str]]:
        try:
            with socket.create_connection((self.host, self.port), timeout=self.connection_timeout):
                return True, None
        except OSError as e:
            logger.debug(f"Probe of {self.host}:{self.port} failed: {e}")
            return False, str(e)

    def _next_interval(self) -> float:
        return self.check_interval_online if self.is_online else self.check_interval_offline

    # =========================================================================
    # BACKGROUND MONITOR
    # =========================================================================

    def start_monitoring(self) -> None:
        """Start the probe thread (no-op if it is already running)."""
        if self._monitor_thread is not None and self._monitor_thread.is_alive():
            return
        self._halt.clear()
        self._monitor_thread = threading.Thread(
            target=self._watch,
            name="ConnectionMonitor",
            daemon=True,
        )
        self._monitor_thread.start()
        logger.debug(f"Monitoring {self.host}:{self.port}")

    def stop_monitoring(self) -> None:
        """Ask the probe thread to exit and wait briefly for it."""
        self._halt.set()
        if self._monitor_thread is not None:
            self._monitor_thread.join(timeout=self.connection_timeout + 1)
        logger.debug("Reachability monitor stopped")

    def _watch(self) -> None:
        # wait() returns True once stop_monitoring() sets the event
        while not self._halt.wait(timeout=self._next_interval()):
            try:
                self.check_connection()
            except Exception as e:
                logger.error(f"Reachability probe crashed: {e}")

    # =========================================================================
    # OBSERVERS
    # =========================================================================

    def register_callback(self, callback: StatusCallback) -> None:
        """
        Subscribe to status transitions.

        Args:
            callback: Called with the ConnectionState after each change
        """
        if callback not in self._observers:
            self._observers.append(callback)

    def unregister_callback(self, callback: StatusCallback) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify_callbacks(self) -> None:
        for callback in list(self._observers):
            try:
                callback(self._state)
            except Exception as e:
                logger.error(f"Connectivity observer {callback!r} failed: {e}")

    def force_offline(self) -> None:
        """Mark the store unreachable until the next successful probe."""
        with self._state_lock:
            previous = self._state.record(False, "forced offline")
        if previous is not ConnectionStatus.OFFLINE:
            self._notify_callbacks()
        logger.info("Connectivity forced offline")

    def get_status_display(self) -> dict:
        """Reachability summary for the UI."""
        state = self._state
        return {
            "status": state.status.value,
            "is_online": state.connected,
            "host": f"{self.host}:{self.port}",
            "last_check": state.last_check.isoformat() if state.last_check else None,
            "last_online": state.last_online.isoformat() if state.last_online else None,
            "failures": state.consecutive_failures,
            "error": state.error_message,
        }
