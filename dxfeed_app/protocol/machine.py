"""
Feed protocol state machine.

Drives the dxLink handshake for a single channel: SETUP, AUTH, CHANNEL_REQUEST,
FEED_SETUP and FEED_SUBSCRIPTION, each gated by the state reached rather than
by message arrival order. Once subscribed it decodes FEED_DATA, forwards
quotes to the caller and completes when every tracked symbol has been seen.
"""

from collections.abc import Callable, Iterable
from typing import Optional

from ..errors import DecodeError, ProtocolError, TransportError
from ..transport.base import Transport, TransportListener
from .codec import (
    ACCEPT_AGGREGATION_PERIOD,
    COMPACT_DATA_FORMAT,
    DEFAULT_CHANNEL_PARAMETERS,
    FEED_SERVICE,
    QUOTE_EVENT_FIELDS,
    QUOTE_EVENT_TYPE,
    MessageCodec,
)
from .models import (
    Auth,
    AuthorizationState,
    AuthState,
    ChannelOpened,
    ChannelRequest,
    ControlMessage,
    FeedConfig,
    FeedData,
    FeedSetup,
    FeedSubscription,
    OutcomeStatus,
    ProtocolState,
    QuoteRecord,
    SessionOutcome,
    Setup,
    Unknown,
)
from .observer import ProtocolObserver
from .quotes import QuoteDecoder
from .subscriptions import SubscriptionTracker

QuoteCallback = Callable[[list[QuoteRecord]], None]
OutcomeCallback = Callable[[SessionOutcome], None]
ErrorCallback = Callable[[ProtocolError], None]


class FeedProtocolStateMachine(TransportListener):
    """
    Reactive dxLink session for one channel.

    Events must be delivered serially; the machine holds no locks and never
    blocks waiting for a reply. COMPLETE and FAILED are terminal: later
    events are ignored and the transport is asked to close exactly once.
    """

    def __init__(
        self,
        transport: Transport,
        token: str,
        channel: int,
        symbols: Iterable[str],
        *,
        codec: Optional[MessageCodec] = None,
        decoder: Optional[QuoteDecoder] = None,
        observer: Optional[ProtocolObserver] = None,
        on_quotes: Optional[QuoteCallback] = None,
        on_outcome: Optional[OutcomeCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.transport = transport
        self.token = token
        self.channel = channel
        self.codec = codec or MessageCodec()
        self.decoder = decoder or QuoteDecoder()
        self.observer = observer or ProtocolObserver()
        self.tracker = SubscriptionTracker(symbols)

        self._on_quotes = on_quotes
        self._on_outcome = on_outcome
        self._on_error = on_error

        self._state = ProtocolState.CONNECTING
        self._outcome: Optional[SessionOutcome] = None
        self._close_requested = False
        self._quotes_received = 0

    @property
    def state(self) -> ProtocolState:
        return self._state

    @property
    def outcome(self) -> Optional[SessionOutcome]:
        return self._outcome

    @property
    def quotes_received(self) -> int:
        return self._quotes_received

    # Transport events

    def on_open(self) -> None:
        if self._state != ProtocolState.CONNECTING:
            return
        if self._send(Setup()):
            self._transition(ProtocolState.AWAITING_AUTH_STATE, "transport_opened")

    def on_message(self, text: str) -> None:
        if self._state.is_terminal:
            return

        try:
            message = self.codec.decode(text)
        except DecodeError as e:
            self._report_decode_failure(e, text)
            return

        if isinstance(message, Unknown):
            self._ignore(message, "unhandled message type")
            return

        if message.channel_scoped and message.channel != self.channel:
            self._ignore(message, "channel mismatch")
            return

        if isinstance(message, AuthState):
            self._handle_auth_state(message)
        elif isinstance(message, ChannelOpened):
            self._handle_channel_opened(message)
        elif isinstance(message, FeedConfig):
            self._handle_feed_config(message)
        elif isinstance(message, FeedData):
            self._handle_feed_data(message, text)
        else:
            self._ignore(message, "not expected from server")

    def on_close(self) -> None:
        self._fail("transport closed")

    def on_fail(self, reason: str) -> None:
        self._fail(f"transport failed: {reason}")

    def cancel(self, reason: str = "cancelled by caller") -> None:
        """Tear the session down from any state; no-op once terminal."""
        self._fail(reason)

    # Handlers

    def _handle_auth_state(self, message: AuthState) -> None:
        if message.state == AuthorizationState.UNAUTHORIZED:
            if self._state != ProtocolState.AWAITING_AUTH_STATE:
                self._ignore(message, f"unauthorized in state {self._state.value}")
                return
            if self._send(Auth(token=self.token)):
                self._transition(ProtocolState.AUTHENTICATING, "auth_state_unauthorized")
            return

        if self._state not in (ProtocolState.AWAITING_AUTH_STATE, ProtocolState.AUTHENTICATING):
            self._ignore(message, f"authorized in state {self._state.value}")
            return

        request = ChannelRequest(
            channel=self.channel,
            service=FEED_SERVICE,
            parameters=dict(DEFAULT_CHANNEL_PARAMETERS),
        )
        if self._send(request):
            self._transition(ProtocolState.AWAITING_CHANNEL, "auth_state_authorized")

    def _handle_channel_opened(self, message: ChannelOpened) -> None:
        if self._state != ProtocolState.AWAITING_CHANNEL:
            self._ignore(message, f"channel opened in state {self._state.value}")
            return

        self._transition(ProtocolState.CHANNEL_OPEN, "channel_opened")
        setup = FeedSetup(
            channel=self.channel,
            accept_event_fields={QUOTE_EVENT_TYPE: QUOTE_EVENT_FIELDS},
            aggregation_period=ACCEPT_AGGREGATION_PERIOD,
            data_format=COMPACT_DATA_FORMAT,
        )
        if self._send(setup):
            self._transition(ProtocolState.AWAITING_FEED_CONFIG, "feed_setup_sent")

    def _handle_feed_config(self, message: FeedConfig) -> None:
        if self._state != ProtocolState.AWAITING_FEED_CONFIG:
            self._ignore(message, f"feed config in state {self._state.value}")
            return

        if message.event_fields is not None:
            reported = message.event_fields.get(QUOTE_EVENT_TYPE)
            if reported != QUOTE_EVENT_FIELDS:
                self.observer.layout_mismatch(QUOTE_EVENT_FIELDS, reported)

        subscription = FeedSubscription(
            channel=self.channel,
            reset=True,
            symbols=self.tracker.symbols,
        )
        if not self._send(subscription):
            return
        self._transition(ProtocolState.SUBSCRIBED, "feed_config")

        if self.tracker.is_complete():
            self._complete("no symbols to track")

    def _handle_feed_data(self, message: FeedData, text: str) -> None:
        if self._state != ProtocolState.SUBSCRIBED:
            self._ignore(message, f"feed data in state {self._state.value}")
            return

        if not self.decoder.supports(message.event_type):
            self._ignore(message, f"unsupported event type {message.event_type}")
            return

        try:
            records = list(self.decoder.decode(message.event_type, message.records))
        except DecodeError as e:
            self._report_decode_failure(e, text)
            return

        newly_seen = [record.symbol for record in records if self.tracker.mark_received(record.symbol)]
        self._quotes_received += len(records)
        self.observer.quotes_decoded(records, newly_seen)

        if records and self._on_quotes is not None:
            self._on_quotes(records)

        # The callback may have cancelled the session
        if self._state.is_terminal:
            return

        if self.tracker.is_complete():
            self._complete("all symbols received")

    # Internals

    def _send(self, message: ControlMessage) -> bool:
        try:
            self.transport.send(self.codec.encode(message))
        except TransportError as e:
            self._fail(f"send {message.message_type} failed: {e}")
            return False
        self.observer.message_sent(message)
        return True

    def _transition(self, new_state: ProtocolState, trigger: str) -> None:
        old_state = self._state
        self._state = new_state
        self.observer.state_changed(old_state, new_state, trigger)

    def _ignore(self, message: ControlMessage, reason: str) -> None:
        self.observer.message_ignored(message, self._state, reason)

    def _report_decode_failure(self, error: DecodeError, text: str) -> None:
        protocol_error = ProtocolError(
            f"Dropped frame in state {self._state.value}: {error}",
            cause=error,
            state=self._state.value,
            raw_frame=text,
        )
        self.observer.decode_failed(protocol_error)
        if self._on_error is not None:
            self._on_error(protocol_error)

    def _complete(self, reason: str) -> None:
        if self._state.is_terminal:
            return
        last_state = self._state
        self._transition(ProtocolState.COMPLETE, reason)
        self._finish(OutcomeStatus.COMPLETED, last_state, reason)

    def _fail(self, reason: str) -> None:
        if self._state.is_terminal:
            return
        last_state = self._state
        self._transition(ProtocolState.FAILED, reason)
        self._finish(OutcomeStatus.FAILED, last_state, reason)

    def _finish(self, status: OutcomeStatus, last_state: ProtocolState, reason: str) -> None:
        self._outcome = SessionOutcome(
            status=status,
            last_state=last_state,
            reason=reason,
            quotes_received=self._quotes_received,
        )
        self._request_close()
        self.observer.session_finished(self._outcome)
        if self._on_outcome is not None:
            self._on_outcome(self._outcome)

    def _request_close(self) -> None:
        if self._close_requested:
            return
        self._close_requested = True
        self.transport.close()
