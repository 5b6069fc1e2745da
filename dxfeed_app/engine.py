"""
Quote snapshot engine coordinator.

Wires the collaborators around the protocol core: obtains a quote token,
opens the WebSocket transport, runs one feed session and fans decoded quotes
out to the configured deliveries.

    Credentials → Quote token → Transport ⇄ State machine → Deliveries
"""

from collections.abc import Callable
from typing import Optional

import structlog

from .auth.session import QuoteTokenClient, load_credentials
from .config.defaults import AppConfig
from .delivery.base import BaseQuoteDelivery, DeliveryStatus
from .errors import AuthenticationError, ConfigurationError, ProtocolError
from .protocol.machine import FeedProtocolStateMachine
from .protocol.models import QuoteRecord, SessionOutcome
from .protocol.observer import StructlogProtocolObserver
from .transport.base import RunnableTransport, Transport
from .transport.websocket import WebSocketTransport

logger = structlog.get_logger(__name__)

# Builds a transport for (url, token)
TransportFactory = Callable[[str, str], RunnableTransport]


class QuoteSnapshotEngine:
    """
    Runs a single dxLink feed session to completion.

    The engine owns the REST session it opens: when it had to log in to get
    a token it logs out again once the feed session is over.
    """

    def __init__(
        self,
        config: AppConfig,
        deliveries: Optional[list[BaseQuoteDelivery]] = None,
        token_client: Optional[QuoteTokenClient] = None,
        transport_factory: Optional[TransportFactory] = None,
    ) -> None:
        self.config = config
        self.deliveries = list(deliveries or [])
        self.token_client = token_client
        self.transport_factory = transport_factory or self._websocket_transport
        self.logger = logger.bind(channel=config.feed.channel)
        self.decode_errors: list[ProtocolError] = []

        self.logger.info(
            "Quote snapshot engine initialized",
            symbols=list(config.feed.symbols),
            deliveries=[delivery.name for delivery in self.deliveries],
        )

    def create_session(self, transport: Transport, token: str) -> FeedProtocolStateMachine:
        """Build a state machine bound to the transport and the engine's deliveries."""
        return FeedProtocolStateMachine(
            transport=transport,
            token=token,
            channel=self.config.feed.channel,
            symbols=self.config.feed.symbols,
            observer=StructlogProtocolObserver(session_id=f"channel-{self.config.feed.channel}"),
            on_quotes=self._dispatch_quotes,
            on_error=self.decode_errors.append,
        )

    def run(self, token: Optional[str] = None) -> SessionOutcome:
        """
        Run the feed session until it completes or fails.

        Args:
            token: Quote token; fetched through the REST API when omitted

        Returns:
            Terminal outcome of the session
        """
        url = self.config.feed.url
        client = self._token_client() if token is None else None
        opened_rest_session = client is not None and not client.authenticated

        try:
            if client is not None:
                quote_token = client.get_quote_token()
                token = quote_token.token
                if quote_token.dxlink_url:
                    url = quote_token.dxlink_url

            transport = self.transport_factory(url, token)
            session = self.create_session(transport, token)
            transport.run(session)
        finally:
            if opened_rest_session:
                self._close_rest_session()

        if session.outcome is None:
            # Transport returned without a terminal event
            session.cancel("transport stopped without closing")

        self._log_delivery_summary()
        return session.outcome

    def _dispatch_quotes(self, records: list[QuoteRecord]) -> None:
        for delivery in self.deliveries:
            result = delivery.safe_deliver(records)
            if result.status != DeliveryStatus.SUCCESS:
                self.logger.warning(
                    "Quote delivery failed",
                    delivery_name=delivery.name,
                    message=result.message,
                )

    def _log_delivery_summary(self) -> None:
        for delivery in self.deliveries:
            stats = delivery.get_stats()
            if delivery.health_check():
                self.logger.info("Delivery summary", healthy=True, stats=stats)
            else:
                self.logger.warning("Delivery summary", healthy=False, stats=stats)

    def _token_client(self) -> QuoteTokenClient:
        if self.token_client is None:
            credentials_file = self.config.auth.credentials_file
            if not credentials_file:
                raise ConfigurationError(
                    "No quote token given and auth.credentials_file is not configured"
                )
            self.token_client = QuoteTokenClient(self.config.auth, load_credentials(credentials_file))
        return self.token_client

    def _close_rest_session(self) -> None:
        try:
            self.token_client.close_session()
        except AuthenticationError as e:
            self.logger.warning("Failed to close REST session", error=str(e))

    def _websocket_transport(self, url: str, token: str) -> RunnableTransport:
        return WebSocketTransport(url, self.config.transport, authorization=token)
