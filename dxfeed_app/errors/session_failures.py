"""
Session failure error classifications for unrecoverable errors.

These exceptions end a feed session. They are surfaced to the caller as a
failed outcome or raised from the collaborators around the protocol core.
"""

from typing import Any, Optional


class SessionFailureError(Exception):
    """Base class for unrecoverable session failures."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class TransportError(SessionFailureError):
    """Connection-level failure: connect, send or unexpected closure."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.url = url


class AuthenticationError(SessionFailureError):
    """Session login or quote token exchange failed."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 endpoint: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.endpoint = endpoint


class ConfigurationError(SessionFailureError):
    """Configuration or credentials could not be loaded or validated."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
