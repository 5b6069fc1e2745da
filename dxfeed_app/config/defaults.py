"""Default configuration parameters for the dxLink quote client."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FeedParams:
    """Feed session parameters."""
    url: str = "wss://tasty-openapi-ws.dxfeed.com/realtime"
    channel: int = 3                                  # Caller-assigned, fixed per session
    symbols: tuple[str, ...] = ("/6BZ24:XCME",)


@dataclass(frozen=True)
class AuthParams:
    """Session login and quote token exchange parameters."""
    base_url: str = "https://api.tastyworks.com"
    credentials_file: Optional[str] = None            # JSON file with user/pw
    user_agent: str = "dxfeed-app/0.1"
    timeout_seconds: int = 30
    remember_me: bool = True


@dataclass(frozen=True)
class TransportParams:
    """WebSocket connection parameters."""
    ca_file: Optional[str] = None                     # Extra CA bundle for wss://
    open_timeout: float = 10.0
    close_timeout: float = 10.0
    ping_interval: Optional[float] = 20.0             # WebSocket-level pings, None disables


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class OutputParams:
    """Quote output parameters."""
    format: str = "pretty"                            # json, pretty
    include_timestamp: bool = False


@dataclass(frozen=True)
class AppConfig:
    """Complete client configuration."""
    feed: FeedParams
    auth: AuthParams
    transport: TransportParams
    logging: LoggingParams
    output: OutputParams


def get_default_config() -> AppConfig:
    """Get the default configuration instance."""
    return AppConfig(
        feed=FeedParams(),
        auth=AuthParams(),
        transport=TransportParams(),
        logging=LoggingParams(),
        output=OutputParams(),
    )
