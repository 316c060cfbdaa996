# =============================================================================
# tests/unit/test_push_channel.py
# Unit Tests for the Socket.IO push channel
# =============================================================================

from unittest.mock import MagicMock

import pytest
from socketio.exceptions import ConnectionError as SocketConnectionError, SocketIOError

from journal_core.api.push_channel import (
    ENTRY_ADDED_EVENT,
    ENTRY_UPDATED_EVENT,
    PushChannel,
)
from journal_core.errors.exceptions import RequestFailed


@pytest.fixture
def client():
    mock_client = MagicMock()
    mock_client.connected = True
    return mock_client


@pytest.fixture
def channel(client):
    return PushChannel(
        "http://journal.test:3001",
        credential_provider=lambda: "tok-1",
        timeout=2.0,
        client_factory=MagicMock(return_value=client),
    )


def _handlers(client):
    return {call.args[0]: call.args[1] for call in client.on.call_args_list}


class TestPushChannel:
    """Connecting and routing events"""

    def test_connects_with_token_in_handshake(self, channel, client):
        channel.subscribe(MagicMock(), MagicMock())

        client.connect.assert_called_once_with(
            "http://journal.test:3001",
            auth={"token": "tok-1"},
            wait_timeout=2.0,
        )

    def test_routes_entry_events(self, channel, client):
        on_added, on_updated = MagicMock(), MagicMock()

        channel.subscribe(on_added, on_updated)
        handlers = _handlers(client)
        handlers[ENTRY_ADDED_EVENT]({"id": "a"})
        handlers[ENTRY_UPDATED_EVENT]({"id": "b"})

        on_added.assert_called_once_with({"id": "a"})
        on_updated.assert_called_once_with({"id": "b"})

    def test_client_reconnects_on_its_own(self, channel):
        channel.subscribe(MagicMock(), MagicMock())

        channel._client_factory.assert_called_once_with(reconnection=True, logger=False)

    def test_connection_failure_is_request_failed(self, channel, client):
        client.connect.side_effect = SocketConnectionError("Authentication error")

        with pytest.raises(RequestFailed) as exc:
            channel.subscribe(MagicMock(), MagicMock())

        assert exc.value.details["method"] == "CONNECT"

    def test_anonymous_connect(self, client):
        channel = PushChannel("http://journal.test:3001", client_factory=MagicMock(return_value=client))

        channel.subscribe(MagicMock(), MagicMock())

        assert client.connect.call_args.kwargs["auth"] == {"token": None}


class TestPushSubscription:
    """Closing the connection"""

    def test_close_disconnects_once(self, channel, client):
        subscription = channel.subscribe(MagicMock(), MagicMock())
        assert subscription.active

        subscription.close()
        subscription.close()

        client.disconnect.assert_called_once()
        assert subscription.closed
        assert not subscription.active

    def test_close_swallows_disconnect_errors(self, channel, client):
        client.disconnect.side_effect = SocketIOError("already gone")
        subscription = channel.subscribe(MagicMock(), MagicMock())

        subscription.close()

        assert subscription.closed

    def test_inactive_when_client_dropped(self, channel, client):
        subscription = channel.subscribe(MagicMock(), MagicMock())
        client.connected = False

        assert not subscription.active
