"""Tests for the WebSocket transport."""

from unittest.mock import patch

import pytest
from websockets.exceptions import ConnectionClosedError, InvalidURI

from dxfeed_app.config.defaults import TransportParams
from dxfeed_app.errors import TransportError
from dxfeed_app.transport.base import TransportListener
from dxfeed_app.transport.websocket import WebSocketTransport

URL = "wss://feed.example.test/realtime"


class FakeConnection:
    """Stands in for a websockets ClientConnection."""

    def __init__(self, incoming=(), error=None):
        self.incoming = list(incoming)
        self.error = error
        self.sent = []
        self.close_calls = 0
        self.exited = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.exited = True
        return False

    def __iter__(self):
        for message in self.incoming:
            if self.close_calls:
                return
            yield message
        if self.error is not None:
            raise self.error

    def send(self, text):
        if self.close_calls:
            raise ConnectionClosedError(None, None)
        self.sent.append(text)

    def close(self):
        self.close_calls += 1


class RecordingListener(TransportListener):

    def __init__(self, transport=None, reply=None, close_after=None):
        self.events = []
        self.transport = transport
        self.reply = reply
        self.close_after = close_after

    def on_open(self):
        self.events.append(("open",))
        if self.reply is not None:
            self.transport.send(self.reply)

    def on_message(self, text):
        self.events.append(("message", text))
        if self.close_after is not None and text == self.close_after:
            self.transport.close()

    def on_close(self):
        self.events.append(("close",))

    def on_fail(self, reason):
        self.events.append(("fail", reason))


@pytest.fixture
def mock_connect():
    with patch("dxfeed_app.transport.websocket.connect") as mock:
        yield mock


class TestWebSocketTransport:

    def test_events_are_delivered_in_order(self, mock_connect):
        mock_connect.return_value = FakeConnection(incoming=["one", b"two"])
        transport = WebSocketTransport(URL)
        listener = RecordingListener()

        transport.run(listener)

        assert listener.events == [
            ("open",),
            ("message", "one"),
            ("message", "two"),
            ("close",),
        ]
        assert mock_connect.return_value.exited

    def test_send_during_open(self, mock_connect):
        connection = FakeConnection()
        mock_connect.return_value = connection
        transport = WebSocketTransport(URL)

        transport.run(RecordingListener(transport, reply='{"type": "SETUP"}'))

        assert connection.sent == ['{"type": "SETUP"}']

    def test_close_from_listener_stops_loop(self, mock_connect):
        connection = FakeConnection(incoming=["first", "second"])
        mock_connect.return_value = connection
        transport = WebSocketTransport(URL)
        listener = RecordingListener(transport, close_after="first")

        transport.run(listener)

        assert ("message", "second") not in listener.events
        assert connection.close_calls == 1

    def test_close_is_idempotent(self, mock_connect):
        connection = FakeConnection(incoming=["first"])
        mock_connect.return_value = connection
        transport = WebSocketTransport(URL)
        listener = RecordingListener(transport, close_after="first")

        transport.run(listener)
        transport.close()
        transport.close()

        assert connection.close_calls == 1

    def test_abnormal_closure_is_a_failure(self, mock_connect):
        mock_connect.return_value = FakeConnection(
            incoming=["one"], error=ConnectionClosedError(None, None)
        )
        listener = RecordingListener()

        WebSocketTransport(URL).run(listener)

        assert listener.events[-1][0] == "fail"
        assert listener.events[-1][1].startswith("connection lost")
        assert ("close",) not in listener.events

    @pytest.mark.parametrize("error", [
        OSError("connection refused"),
        InvalidURI("not-a-url", "scheme isn't ws or wss"),
    ])
    def test_connect_failure(self, mock_connect, error):
        mock_connect.side_effect = error
        listener = RecordingListener()

        WebSocketTransport(URL).run(listener)

        assert len(listener.events) == 1
        assert listener.events[0][0] == "fail"
        assert listener.events[0][1].startswith("connect failed")

    def test_send_before_connect(self):
        transport = WebSocketTransport(URL)

        with pytest.raises(TransportError) as exc_info:
            transport.send("hello")
        assert exc_info.value.url == URL

    def test_send_after_close(self, mock_connect):
        mock_connect.return_value = FakeConnection()
        transport = WebSocketTransport(URL)
        transport.run(RecordingListener())
        transport.close()

        with pytest.raises(TransportError):
            transport.send("hello")

    def test_send_on_closed_connection_is_wrapped(self, mock_connect):
        connection = FakeConnection()
        mock_connect.return_value = connection
        transport = WebSocketTransport(URL)
        transport.run(RecordingListener())
        connection.close_calls = 1

        with pytest.raises(TransportError):
            transport.send("hello")

    def test_authorization_header(self, mock_connect):
        mock_connect.return_value = FakeConnection()
        params = TransportParams(open_timeout=3.0, close_timeout=4.0, ping_interval=None)

        WebSocketTransport(URL, params, authorization="quote-token").run(RecordingListener())

        args, kwargs = mock_connect.call_args
        assert args == (URL,)
        assert kwargs["additional_headers"] == {"Authorization": "quote-token"}
        assert kwargs["open_timeout"] == 3.0
        assert kwargs["close_timeout"] == 4.0
        assert kwargs["ping_interval"] is None
        assert kwargs["ssl"] is None

    def test_no_authorization_header_without_token(self, mock_connect):
        mock_connect.return_value = FakeConnection()

        WebSocketTransport(URL).run(RecordingListener())

        assert mock_connect.call_args.kwargs["additional_headers"] is None

    def test_custom_ca_file_builds_ssl_context(self, mock_connect):
        mock_connect.return_value = FakeConnection()
        params = TransportParams(ca_file="/etc/ssl/custom.pem")

        with patch("dxfeed_app.transport.websocket.ssl.create_default_context") as mock_context:
            WebSocketTransport(URL, params).run(RecordingListener())

        mock_context.assert_called_once_with(cafile="/etc/ssl/custom.pem")
        assert mock_connect.call_args.kwargs["ssl"] is mock_context.return_value

    def test_ca_file_ignored_for_plain_ws(self, mock_connect):
        mock_connect.return_value = FakeConnection()
        params = TransportParams(ca_file="/etc/ssl/custom.pem")

        WebSocketTransport("ws://localhost:8080", params).run(RecordingListener())

        assert mock_connect.call_args.kwargs["ssl"] is None
