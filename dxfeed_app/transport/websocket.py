"""WebSocket transport for the dxLink feed, built on the websockets sync client."""

import ssl
from typing import Optional

import structlog
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, InvalidHandshake, InvalidURI
from websockets.sync.client import ClientConnection, connect

from ..config.defaults import TransportParams
from ..errors import TransportError
from .base import RunnableTransport, TransportListener

logger = structlog.get_logger(__name__)


class WebSocketTransport(RunnableTransport):
    """Blocking WebSocket transport; `run` pumps events into a listener until the socket closes."""

    def __init__(self, url: str, params: Optional[TransportParams] = None,
                 authorization: Optional[str] = None):
        self.url = url
        self.params = params or TransportParams()
        self.authorization = authorization
        self.logger = logger.bind(url=url)
        self._connection: Optional[ClientConnection] = None
        self._closed = False

    def run(self, listener: TransportListener) -> None:
        """Connect and deliver lifecycle events to the listener until the connection ends."""
        try:
            connection = self._connect()
        except (OSError, InvalidURI, InvalidHandshake) as e:
            self.logger.error("connect_failed", error=str(e))
            listener.on_fail(f"connect failed: {e}")
            return

        self._connection = connection
        self.logger.info("connection_opened")

        with connection:
            listener.on_open()
            try:
                for message in connection:
                    if isinstance(message, bytes):
                        message = message.decode("utf-8", errors="replace")
                    listener.on_message(message)
            except ConnectionClosedError as e:
                self.logger.warning("connection_lost", code=_close_code(e), error=str(e))
                listener.on_fail(f"connection lost: {e}")
                return

        self.logger.info("connection_closed")
        listener.on_close()

    def send(self, text: str) -> None:
        if self._connection is None or self._closed:
            raise TransportError("Transport is not connected", url=self.url)
        try:
            self._connection.send(text)
        except ConnectionClosed as e:
            raise TransportError(f"Connection closed while sending: {e}", url=self.url) from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._connection is not None:
            self.logger.info("close_requested")
            self._connection.close()

    def _connect(self) -> ClientConnection:
        headers = {}
        if self.authorization:
            headers["Authorization"] = self.authorization

        return connect(
            self.url,
            ssl=self._ssl_context(),
            additional_headers=headers or None,
            open_timeout=self.params.open_timeout,
            close_timeout=self.params.close_timeout,
            ping_interval=self.params.ping_interval,
        )

    def _ssl_context(self) -> Optional[ssl.SSLContext]:
        # websockets builds a default context for wss:// on its own
        if not self.url.startswith("wss://") or not self.params.ca_file:
            return None
        context = ssl.create_default_context(cafile=self.params.ca_file)
        context.verify_mode = ssl.CERT_REQUIRED
        return context


def _close_code(error: ConnectionClosed) -> Optional[int]:
    received = error.rcvd
    return received.code if received is not None else None
