"""
Decode error classifications for inbound feed frames.

A decode error concerns a single frame. The session survives it: the frame
is reported and dropped, and the protocol waits for the next valid message.
"""

from typing import Any, Optional


class DecodeError(Exception):
    """Base class for single-frame decoding problems that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class MalformedMessageError(DecodeError):
    """Frame is not a structured object or a field has the wrong shape."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 expected_format: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.expected_format = expected_format


class MissingFieldError(DecodeError):
    """A required field is absent from the frame."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 message_type: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field_name = field_name
        self.message_type = message_type


class TruncatedRecordError(DecodeError):
    """Compact array length is not a whole number of records."""

    def __init__(self, message: str, value_count: Optional[int] = None,
                 record_width: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.value_count = value_count
        self.record_width = record_width


class InvalidNumericError(DecodeError):
    """A numeric field could not be parsed as floating point."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field_name = field_name
        self.value = value


class ProtocolError(Exception):
    """A decode failure observed by the protocol state machine.

    Wraps the underlying DecodeError together with the state the session was
    in. Reported to the caller as a warning, never raised out of the machine.
    """

    def __init__(self, message: str, cause: DecodeError, state: Optional[str] = None,
                 raw_frame: Optional[str] = None):
        super().__init__(message)
        self.cause = cause
        self.state = state
        self.raw_frame = raw_frame
        self.recoverable = True
