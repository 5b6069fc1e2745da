"""Pytest configuration and shared fixtures."""

import json
from collections import deque
from typing import Any, Optional

import pytest

from dxfeed_app.errors import TransportError
from dxfeed_app.protocol.machine import FeedProtocolStateMachine
from dxfeed_app.protocol.models import ProtocolState
from dxfeed_app.protocol.observer import ProtocolObserver
from dxfeed_app.transport.base import RunnableTransport, Transport, TransportListener

CHANNEL = 3
TOKEN = "quote-token-abc"
SYMBOL = "/6EZ24:XCME"


class RecordingTransport(Transport):
    """Transport double that records every frame sent and every close request."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.close_calls = 0
        self.fail_on_send: Optional[str] = None

    def send(self, text: str) -> None:
        if self.fail_on_send is not None:
            raise TransportError(self.fail_on_send)
        self.sent.append(json.loads(text))

    def close(self) -> None:
        self.close_calls += 1

    @property
    def sent_types(self) -> list[str]:
        return [frame["type"] for frame in self.sent]


class RecordingObserver(ProtocolObserver):
    """Observer double that keeps every event it receives."""

    def __init__(self) -> None:
        self.transitions = []
        self.ignored = []
        self.decode_errors = []
        self.layout_mismatches = []
        self.finished = []

    def state_changed(self, from_state, to_state, trigger):
        self.transitions.append((from_state, to_state, trigger))

    def message_ignored(self, message, state, reason):
        self.ignored.append((message, state, reason))

    def decode_failed(self, error):
        self.decode_errors.append(error)

    def layout_mismatch(self, declared, reported):
        self.layout_mismatches.append((declared, reported))

    def session_finished(self, outcome):
        self.finished.append(outcome)


class ServerFrames:
    """Builders for frames as the dxLink server sends them."""

    @staticmethod
    def setup() -> str:
        return json.dumps({"type": "SETUP", "channel": 0, "version": "1.0-server",
                           "keepaliveTimeout": 60, "acceptKeepaliveTimeout": 60})

    @staticmethod
    def auth_state(state: str) -> str:
        return json.dumps({"type": "AUTH_STATE", "channel": 0, "state": state})

    @staticmethod
    def channel_opened(channel: int = CHANNEL) -> str:
        return json.dumps({"type": "CHANNEL_OPENED", "channel": channel, "service": "FEED",
                           "parameters": {"contract": "AUTO"}})

    @staticmethod
    def feed_config(channel: int = CHANNEL, event_fields: Optional[dict] = None) -> str:
        frame = {"type": "FEED_CONFIG", "channel": channel, "aggregationPeriod": 0.1,
                 "dataFormat": "COMPACT"}
        if event_fields is not None:
            frame["eventFields"] = event_fields
        return json.dumps(frame)

    @staticmethod
    def feed_data(values: list, channel: int = CHANNEL, event_type: str = "Quote") -> str:
        return json.dumps({"type": "FEED_DATA", "channel": channel, "data": [event_type, values]})

    @staticmethod
    def keepalive() -> str:
        return json.dumps({"type": "KEEPALIVE", "channel": 0})


def build_quote_values(symbol: str, bid: float = 1.2345, ask: float = 1.2350,
                       bid_size: float = 5.0, ask_size: float = 7.0) -> list:
    return ["Quote", symbol, bid, ask, bid_size, ask_size]


@pytest.fixture
def quote_values():
    """Builder for one compact Quote record."""
    return build_quote_values


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def frames() -> type[ServerFrames]:
    return ServerFrames


@pytest.fixture
def make_machine(transport, observer):
    """Factory building a machine on the shared transport and observer."""

    def _make(symbols=(SYMBOL,), **kwargs) -> FeedProtocolStateMachine:
        return FeedProtocolStateMachine(
            transport=transport,
            token=TOKEN,
            channel=CHANNEL,
            symbols=symbols,
            observer=observer,
            **kwargs,
        )

    return _make


@pytest.fixture
def drive_to(frames):
    """Drive a machine through the handshake until it reaches the given state."""

    steps = [
        (ProtocolState.AWAITING_AUTH_STATE, lambda m: m.on_open()),
        (ProtocolState.AUTHENTICATING, lambda m: m.on_message(frames.auth_state("UNAUTHORIZED"))),
        (ProtocolState.AWAITING_CHANNEL, lambda m: m.on_message(frames.auth_state("AUTHORIZED"))),
        (ProtocolState.AWAITING_FEED_CONFIG, lambda m: m.on_message(frames.channel_opened())),
        (ProtocolState.SUBSCRIBED, lambda m: m.on_message(frames.feed_config())),
    ]

    def _drive(machine: FeedProtocolStateMachine, target: ProtocolState) -> FeedProtocolStateMachine:
        for state, step in steps:
            if machine.state == target:
                break
            step(machine)
            assert machine.state == state
        assert machine.state == target
        return machine

    return _drive


class ScriptedServerTransport(RunnableTransport):
    """In-process dxLink server: answers each client frame with canned replies.

    `quotes` maps symbol to the compact values sent after FEED_SUBSCRIPTION.
    `hang_up_after` names a client message type after which the server closes
    the connection without replying.
    """

    def __init__(self, quotes: Optional[dict[str, list]] = None, channel: int = CHANNEL,
                 hang_up_after: Optional[str] = None, extra_frames: Optional[list[str]] = None):
        self.quotes = quotes or {}
        self.channel = channel
        self.hang_up_after = hang_up_after
        self.extra_frames = list(extra_frames or [])
        self.received: list[dict[str, Any]] = []
        self.close_calls = 0
        self._pending: deque = deque()
        self._hung_up = False

    @property
    def received_types(self) -> list[str]:
        return [frame["type"] for frame in self.received]

    def run(self, listener: TransportListener) -> None:
        listener.on_open()
        while self._pending and not self.close_calls:
            listener.on_message(self._pending.popleft())
        if not self.close_calls:
            listener.on_close()

    def send(self, text: str) -> None:
        if self.close_calls or self._hung_up:
            raise TransportError("connection closed")
        frame = json.loads(text)
        self.received.append(frame)

        if frame["type"] == self.hang_up_after:
            self._hung_up = True
            self._pending.clear()
            return
        self._pending.extend(self._replies(frame))

    def close(self) -> None:
        self.close_calls += 1

    def _replies(self, frame: dict[str, Any]) -> list[str]:
        message_type = frame["type"]
        if message_type == "SETUP":
            return [ServerFrames.setup(), ServerFrames.auth_state("UNAUTHORIZED")]
        if message_type == "AUTH":
            return [ServerFrames.auth_state("AUTHORIZED")]
        if message_type == "CHANNEL_REQUEST":
            return [ServerFrames.channel_opened(frame["channel"])]
        if message_type == "FEED_SETUP":
            return [ServerFrames.feed_config(frame["channel"], frame["acceptEventFields"])]
        if message_type == "FEED_SUBSCRIPTION":
            replies = list(self.extra_frames)
            for entry in frame["add"]:
                if entry["symbol"] in self.quotes:
                    replies.append(ServerFrames.feed_data(self.quotes[entry["symbol"]],
                                                          channel=frame["channel"]))
            return replies
        return []


@pytest.fixture
def scripted_server() -> type[ScriptedServerTransport]:
    return ScriptedServerTransport
