"""
Live push channel for journal entries
Socket.IO client delivering entry_added / entry_updated events
"""
from typing import Any, Callable, Dict, Optional
import logging

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError, SocketIOError

from journal_core.errors.exceptions import RequestFailed

logger = logging.getLogger(__name__)

ENTRY_ADDED_EVENT = "entry_added"
ENTRY_UPDATED_EVENT = "entry_updated"

EventHandler = Callable[[Dict[str, Any]], None]


class PushSubscription:
    """Handle for an open push connection"""

    def __init__(self, client: socketio.Client):
        self._client = client
        self._closed = False

    @property
    def active(self) -> bool:
        return not self._closed and self._client.connected

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Disconnect; safe to call more than once"""
        if self._closed:
            return
        self._closed = True
        try:
            self._client.disconnect()
        except SocketIOError as e:
            logger.debug(f"Push channel disconnect error: {e}")


class PushChannel:
    """
    Opens authenticated Socket.IO connections to the entry store.

    The server scopes events to the authenticated user's room, so every
    event received here belongs to the signed-in journal. Events emitted while
    disconnected are not redelivered.
    """

    def __init__(
        self,
        url: str,
        credential_provider: Optional[Callable[[], Optional[str]]] = None,
        timeout: float = 5.0,
        client_factory: Callable[..., socketio.Client] = socketio.Client,
    ):
        self.url = url
        self.credential_provider = credential_provider
        self.timeout = timeout
        self._client_factory = client_factory

    def subscribe(self, on_added: EventHandler, on_updated: EventHandler) -> PushSubscription:
        """
        Connect and route events to the given handlers.

        Raises:
            RequestFailed: the connection (or its auth handshake) failed
        """
        client = self._client_factory(reconnection=True, logger=False)

        def _on_connect():
            logger.info("Connected to journal push channel")

        def _on_disconnect(*args):
            logger.info("Disconnected from journal push channel")

        client.on("connect", _on_connect)
        client.on("disconnect", _on_disconnect)
        client.on(ENTRY_ADDED_EVENT, on_added)
        client.on(ENTRY_UPDATED_EVENT, on_updated)

        token = self.credential_provider() if self.credential_provider else None
        try:
            client.connect(
                self.url,
                auth={"token": token},
                wait_timeout=self.timeout,
            )
        except SocketConnectionError as e:
            raise RequestFailed(
                f"Push channel connection failed: {e}",
                method="CONNECT",
                endpoint=self.url,
            ) from e

        return PushSubscription(client)
