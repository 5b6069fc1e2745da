"""
Error classification system for the dxLink feed client.

This module provides the structured exception hierarchy for the failures
a feed session can meet: malformed single frames (recoverable), and
transport, authentication or configuration failures (fatal).
"""

from .decode_errors import (
    DecodeError,
    MalformedMessageError,
    MissingFieldError,
    TruncatedRecordError,
    InvalidNumericError,
    ProtocolError,
)
from .session_failures import (
    SessionFailureError,
    TransportError,
    AuthenticationError,
    ConfigurationError,
)

__all__ = [
    # Decode Errors
    "DecodeError",
    "MalformedMessageError",
    "MissingFieldError",
    "TruncatedRecordError",
    "InvalidNumericError",
    "ProtocolError",
    # Session Failures
    "SessionFailureError",
    "TransportError",
    "AuthenticationError",
    "ConfigurationError",
]
