"""
Observability hook for the feed protocol state machine.

The state machine never logs directly. It reports transitions, sends,
ignored messages and decode failures to an injected observer; the structlog
observer below is the one the engine wires in.
"""

from typing import Optional

from ..errors import ProtocolError
from ..logging.config import get_protocol_logger, log_state_transition
from .models import ControlMessage, ProtocolState, QuoteRecord, SessionOutcome


class ProtocolObserver:
    """No-op observer; subclass and override the events of interest."""

    def state_changed(self, from_state: ProtocolState, to_state: ProtocolState,
                      trigger: str) -> None:
        pass

    def message_sent(self, message: ControlMessage) -> None:
        pass

    def message_ignored(self, message: ControlMessage, state: ProtocolState,
                        reason: str) -> None:
        pass

    def decode_failed(self, error: ProtocolError) -> None:
        pass

    def layout_mismatch(self, declared: tuple[str, ...],
                        reported: Optional[tuple[str, ...]]) -> None:
        pass

    def quotes_decoded(self, records: list[QuoteRecord], newly_seen: list[str]) -> None:
        pass

    def session_finished(self, outcome: SessionOutcome) -> None:
        pass


class StructlogProtocolObserver(ProtocolObserver):
    """Observer that records protocol events as structured log entries."""

    def __init__(self, session_id: str, logger=None):
        self.session_id = session_id
        self.logger = logger or get_protocol_logger(__name__)

    def state_changed(self, from_state: ProtocolState, to_state: ProtocolState,
                      trigger: str) -> None:
        log_state_transition(
            self.logger,
            session_id=self.session_id,
            from_state=from_state.value,
            to_state=to_state.value,
            trigger=trigger,
        )

    def message_sent(self, message: ControlMessage) -> None:
        self.logger.debug(
            "message_sent",
            session_id=self.session_id,
            message_type=message.message_type,
        )

    def message_ignored(self, message: ControlMessage, state: ProtocolState,
                        reason: str) -> None:
        self.logger.debug(
            "message_ignored",
            session_id=self.session_id,
            message_type=message.message_type or type(message).__name__,
            state=state.value,
            reason=reason,
        )

    def decode_failed(self, error: ProtocolError) -> None:
        self.logger.warning(
            "decode_failed",
            session_id=self.session_id,
            state=error.state,
            error_type=type(error.cause).__name__,
            error=str(error.cause),
            raw_frame=error.raw_frame,
        )

    def layout_mismatch(self, declared: tuple[str, ...],
                        reported: Optional[tuple[str, ...]]) -> None:
        self.logger.warning(
            "quote_layout_mismatch",
            session_id=self.session_id,
            declared=list(declared),
            reported=list(reported) if reported is not None else None,
        )

    def quotes_decoded(self, records: list[QuoteRecord], newly_seen: list[str]) -> None:
        self.logger.debug(
            "quotes_decoded",
            session_id=self.session_id,
            record_count=len(records),
            newly_seen=newly_seen,
        )

    def session_finished(self, outcome: SessionOutcome) -> None:
        log = self.logger.info if outcome.completed else self.logger.error
        log(
            "session_finished",
            session_id=self.session_id,
            status=outcome.status.value,
            last_state=outcome.last_state.value,
            reason=outcome.reason,
            quotes_received=outcome.quotes_received,
        )
