"""
Protocol data models for the dxLink feed session.

This module defines the protocol states, the immutable control messages
exchanged with the server, the decoded quote record and the terminal
session outcome reported to the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional


class ProtocolState(str, Enum):
    """Feed session protocol states, in handshake order."""
    CONNECTING = "connecting"
    AWAITING_AUTH_STATE = "awaiting_auth_state"
    AUTHENTICATING = "authenticating"
    AWAITING_CHANNEL = "awaiting_channel"
    CHANNEL_OPEN = "channel_open"
    AWAITING_FEED_CONFIG = "awaiting_feed_config"
    SUBSCRIBED = "subscribed"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProtocolState.COMPLETE, ProtocolState.FAILED)


class AuthorizationState(str, Enum):
    """Values of the AUTH_STATE `state` field."""
    UNAUTHORIZED = "UNAUTHORIZED"
    AUTHORIZED = "AUTHORIZED"


class OutcomeStatus(str, Enum):
    """Terminal session outcomes."""
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ControlMessage:
    """Base for all dxLink control messages."""

    # Wire `type` token
    message_type: ClassVar[str] = ""
    # Whether `channel` must match the session channel
    channel_scoped: ClassVar[bool] = False


@dataclass(frozen=True)
class Setup(ControlMessage):
    """Connection setup; always sent on channel 0."""
    message_type: ClassVar[str] = "SETUP"

    version: str = ""
    keepalive_timeout: int = 0
    accept_keepalive_timeout: int = 0


@dataclass(frozen=True)
class AuthState(ControlMessage):
    """Server report of the connection's authorization state."""
    message_type: ClassVar[str] = "AUTH_STATE"

    state: AuthorizationState = AuthorizationState.UNAUTHORIZED


@dataclass(frozen=True)
class Auth(ControlMessage):
    """Authorization request carrying the quote token."""
    message_type: ClassVar[str] = "AUTH"

    token: str = ""


@dataclass(frozen=True)
class ChannelRequest(ControlMessage):
    message_type: ClassVar[str] = "CHANNEL_REQUEST"
    channel_scoped: ClassVar[bool] = True

    channel: int = 0
    service: str = "FEED"
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ChannelOpened(ControlMessage):
    message_type: ClassVar[str] = "CHANNEL_OPENED"
    channel_scoped: ClassVar[bool] = True

    channel: int = 0


@dataclass(frozen=True)
class FeedSetup(ControlMessage):
    """Declares the accepted event schema; field order fixes the compact layout."""
    message_type: ClassVar[str] = "FEED_SETUP"
    channel_scoped: ClassVar[bool] = True

    channel: int = 0
    accept_event_fields: dict[str, tuple[str, ...]] = field(default_factory=dict)
    aggregation_period: float = 0.1
    data_format: str = "COMPACT"


@dataclass(frozen=True)
class FeedConfig(ControlMessage):
    """Server acknowledgement of FEED_SETUP."""
    message_type: ClassVar[str] = "FEED_CONFIG"
    channel_scoped: ClassVar[bool] = True

    channel: int = 0
    event_fields: Optional[dict[str, tuple[str, ...]]] = None


@dataclass(frozen=True)
class FeedSubscription(ControlMessage):
    message_type: ClassVar[str] = "FEED_SUBSCRIPTION"
    channel_scoped: ClassVar[bool] = True

    channel: int = 0
    reset: bool = True
    symbols: tuple[str, ...] = ()


@dataclass(frozen=True)
class FeedData(ControlMessage):
    """One batch of compact event values for a single event type."""
    message_type: ClassVar[str] = "FEED_DATA"
    channel_scoped: ClassVar[bool] = True

    channel: int = 0
    event_type: str = ""
    records: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Unknown(ControlMessage):
    """Any message type the client does not act on (KEEPALIVE, ERROR, ...)."""

    raw: str = ""


@dataclass(frozen=True)
class QuoteRecord:
    """Decoded top-of-book quote for one instrument."""
    symbol: str
    bid_price: float
    ask_price: float
    bid_size: float
    ask_size: float

    @property
    def mid_price(self) -> float:
        """Mid between bid and ask, always derived from the two sides."""
        return (self.bid_price + self.ask_price) / 2

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "bid_price": self.bid_price,
            "ask_price": self.ask_price,
            "mid_price": self.mid_price,
            "bid_size": self.bid_size,
            "ask_size": self.ask_size,
        }


@dataclass(frozen=True)
class SessionOutcome:
    """Terminal signal delivered to the caller exactly once per session."""
    status: OutcomeStatus
    last_state: ProtocolState
    reason: Optional[str] = None
    quotes_received: int = 0

    @property
    def completed(self) -> bool:
        return self.status == OutcomeStatus.COMPLETED
