"""Tests for structured logging of protocol events."""

import json
from unittest.mock import Mock, patch

from dxfeed_app.errors import MissingFieldError, ProtocolError
from dxfeed_app.logging.config import configure_logging, get_protocol_logger, log_state_transition
from dxfeed_app.protocol.machine import FeedProtocolStateMachine
from dxfeed_app.protocol.models import (
    Auth,
    OutcomeStatus,
    ProtocolState,
    SessionOutcome,
)
from dxfeed_app.protocol.observer import StructlogProtocolObserver


class TestStructlogProtocolObserver:
    """Observer events map to structured log entries."""

    def setup_method(self):
        """Set up a logger mock that records calls per level."""
        configure_logging(level="DEBUG", format_json=True)

        self.log_messages = []
        self.mock_logger = Mock()

        def capture(level):
            def _capture(message, **kwargs):
                self.log_messages.append({"message": message, "level": level, "kwargs": kwargs})
            return _capture

        self.mock_logger.info = capture("info")
        self.mock_logger.warning = capture("warning")
        self.mock_logger.debug = capture("debug")
        self.mock_logger.error = capture("error")
        self.mock_logger.bind.return_value = self.mock_logger

        self.observer = StructlogProtocolObserver(session_id="channel-3", logger=self.mock_logger)

    def test_state_change_is_logged_as_transition(self):
        self.observer.state_changed(
            ProtocolState.CONNECTING, ProtocolState.AWAITING_AUTH_STATE, "transport_opened"
        )

        self.mock_logger.bind.assert_called_once_with(
            session_id="channel-3",
            from_state="connecting",
            to_state="awaiting_auth_state",
            trigger="transport_opened",
        )
        assert self.log_messages == [{"message": "state_transition", "level": "info", "kwargs": {}}]

    def test_message_sent_is_debug(self):
        self.observer.message_sent(Auth(token="secret"))

        entry = self.log_messages[0]
        assert entry["level"] == "debug"
        assert entry["kwargs"]["message_type"] == "AUTH"
        # The token itself is never logged
        assert "secret" not in str(entry)

    def test_decode_failure_is_warning(self):
        cause = MissingFieldError("no channel", field_name="channel")
        error = ProtocolError("dropped", cause=cause, state="subscribed", raw_frame="{}")

        self.observer.decode_failed(error)

        entry = self.log_messages[0]
        assert entry["message"] == "decode_failed"
        assert entry["level"] == "warning"
        assert entry["kwargs"]["error_type"] == "MissingFieldError"
        assert entry["kwargs"]["state"] == "subscribed"
        assert entry["kwargs"]["raw_frame"] == "{}"

    def test_layout_mismatch_is_warning(self):
        self.observer.layout_mismatch(("eventType", "eventSymbol"), None)

        entry = self.log_messages[0]
        assert entry["message"] == "quote_layout_mismatch"
        assert entry["kwargs"]["declared"] == ["eventType", "eventSymbol"]
        assert entry["kwargs"]["reported"] is None

    def test_completed_session_is_info(self):
        outcome = SessionOutcome(
            status=OutcomeStatus.COMPLETED,
            last_state=ProtocolState.SUBSCRIBED,
            reason="all symbols received",
            quotes_received=2,
        )

        self.observer.session_finished(outcome)

        entry = self.log_messages[0]
        assert entry["level"] == "info"
        assert entry["kwargs"]["status"] == "completed"
        assert entry["kwargs"]["quotes_received"] == 2

    def test_failed_session_is_error(self):
        outcome = SessionOutcome(
            status=OutcomeStatus.FAILED,
            last_state=ProtocolState.AWAITING_CHANNEL,
            reason="transport closed",
        )

        self.observer.session_finished(outcome)

        entry = self.log_messages[0]
        assert entry["level"] == "error"
        assert entry["kwargs"]["last_state"] == "awaiting_channel"

    def test_machine_reports_through_observer(self, transport):
        machine = FeedProtocolStateMachine(
            transport, "token", 3, ["AAPL"], observer=self.observer
        )

        machine.on_open()
        machine.on_message("not json")

        messages = [entry["message"] for entry in self.log_messages]
        assert messages == ["message_sent", "state_transition", "decode_failed"]


class TestProtocolLoggerHelpers:

    def test_protocol_logger_binds_subsystem(self):
        with patch("dxfeed_app.logging.config.structlog.get_logger") as mock_get_logger:
            get_protocol_logger("dxfeed_app.protocol")

        mock_get_logger.assert_called_once_with("dxfeed_app.protocol")
        mock_get_logger.return_value.bind.assert_called_once_with(
            subsystem="feed_protocol", audit_trail=True
        )

    def test_log_state_transition_binds_states(self):
        logger = Mock()

        log_state_transition(logger, "channel-3", "subscribed", "complete", "all symbols received")

        logger.bind.assert_called_once_with(
            session_id="channel-3",
            from_state="subscribed",
            to_state="complete",
            trigger="all symbols received",
        )
        logger.bind.return_value.info.assert_called_once_with("state_transition")

    def test_json_events_go_to_stderr(self, capsys):
        configure_logging(level="INFO", format_json=True, include_timestamp=False)

        log_state_transition(get_protocol_logger("dxfeed_app.test"), "channel-3",
                             "connecting", "awaiting_auth_state", "transport_opened")

        captured = capsys.readouterr()
        assert captured.out == ""
        event = json.loads(captured.err.strip().splitlines()[-1])
        assert event["event"] == "state_transition"
        assert event["subsystem"] == "feed_protocol"
        assert event["to_state"] == "awaiting_auth_state"
        assert "timestamp" not in event

    def test_level_filters_lower_events(self, capsys):
        configure_logging(level="WARNING", format_json=True)

        get_protocol_logger("dxfeed_app.test").info("quiet")

        assert capsys.readouterr().err == ""
