"""
structlog setup for the dxfeed_app client.

Log output always goes to stderr; stdout is reserved for quote output.
"""
import logging
import sys

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(level: str = "INFO", format_json: bool = False,
                      include_timestamp: bool = True) -> None:
    """
    Route structlog through stdlib logging on stderr.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        format_json: Render one JSON object per line instead of console output
        include_timestamp: Add an ISO timestamp to each event
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
        format="%(message)s",
        force=True,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.format_exc_info,
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_protocol_logger(name: str) -> FilteringBoundLogger:
    """Logger tagged as part of the feed protocol audit trail."""
    return structlog.get_logger(name).bind(subsystem="feed_protocol", audit_trail=True)


def log_state_transition(logger: FilteringBoundLogger, session_id: str,
                         from_state: str, to_state: str, trigger: str) -> None:
    """Emit the ``state_transition`` event for one protocol step."""
    logger.bind(
        session_id=session_id,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
    ).info("state_transition")
