"""
Session login and quote token exchange against the tastytrade REST API.

Produces the opaque quote token the feed session consumes. The protocol core
never talks to this module; the engine obtains a token here and hands it over.
"""

import json
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import structlog

from ..config.defaults import AuthParams
from ..errors import AuthenticationError, ConfigurationError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Login credentials for the REST session."""
    user: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(user={self.user!r}, password='***')"


@dataclass(frozen=True)
class QuoteToken:
    """Quote token plus the streamer URL the API advertises for it."""
    token: str
    dxlink_url: Optional[str] = None


def load_credentials(path: str) -> Credentials:
    """
    Load credentials from a JSON file.

    Accepts {"user": ["name"], "pw": ["secret"]} as well as plain strings
    for both fields.
    """
    file_path = Path(path)
    try:
        content = file_path.read_text()
    except OSError as e:
        raise ConfigurationError(f"Failed to open credentials file at: {file_path}") from e

    if not content.strip():
        raise ConfigurationError("Credentials file is empty.")

    try:
        raw = json.loads(content)
    except ValueError as e:
        raise ConfigurationError(f"Failed to parse credentials: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError("Credentials file must contain a JSON object")

    return Credentials(
        user=_first_string(raw, "user"),
        password=_first_string(raw, "pw"),
    )


def _first_string(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if isinstance(value, list) and value:
        value = value[0]
    if not isinstance(value, str) or not value:
        raise ConfigurationError(f"Credentials field '{key}' is missing or empty")
    return value


class QuoteTokenClient:
    """REST client for session login, quote token retrieval and logout."""

    def __init__(self, params: AuthParams, credentials: Credentials):
        self.params = params
        self.credentials = credentials
        self.logger = logger.bind(base_url=params.base_url)
        self.session_token: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.session_token is not None

    def authenticate(self) -> str:
        """Log in and store the session token."""
        body = {
            "login": self.credentials.user,
            "password": self.credentials.password,
            "remember-me": self.params.remember_me,
        }
        status, payload = self._request("POST", "/sessions", body=body)

        if status != 201:
            raise AuthenticationError(
                f"Failed to authenticate: HTTP {status}",
                status_code=status,
                endpoint="/sessions",
            )

        session_token = _data(payload, "/sessions").get("session-token")
        if not isinstance(session_token, str) or not session_token:
            raise AuthenticationError("Login response has no session-token", endpoint="/sessions")

        self.session_token = session_token
        self.logger.info("session_authenticated", user=self.credentials.user)
        return session_token

    def get_quote_token(self) -> QuoteToken:
        """Fetch a quote token for the streamer; logs in first if needed."""
        if not self.authenticated:
            self.authenticate()

        status, payload = self._request("GET", "/api-quote-tokens", authorized=True)

        if status != 200:
            raise AuthenticationError(
                f"Failed to retrieve quote token: HTTP {status}",
                status_code=status,
                endpoint="/api-quote-tokens",
            )

        data = _data(payload, "/api-quote-tokens")
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise AuthenticationError("'token' not found in 'data'", endpoint="/api-quote-tokens")

        dxlink_url = data.get("dxlink-url")
        self.logger.info("quote_token_obtained", dxlink_url=dxlink_url)
        return QuoteToken(token=token, dxlink_url=dxlink_url if isinstance(dxlink_url, str) else None)

    def close_session(self) -> None:
        """Log out; no-op when never authenticated."""
        if not self.authenticated:
            return

        status, _ = self._request("DELETE", "/sessions", authorized=True)
        if status not in (200, 204):
            raise AuthenticationError(
                f"Failed to close session: HTTP {status}",
                status_code=status,
                endpoint="/sessions",
            )

        self.session_token = None
        self.logger.info("session_closed")

    def _request(self, method: str, path: str, body: Optional[dict[str, Any]] = None,
                 authorized: bool = False) -> tuple[int, Optional[dict[str, Any]]]:
        """Perform a JSON request; HTTP error statuses are returned, not raised."""
        url = self.params.base_url.rstrip("/") + path
        data = json.dumps(body).encode("utf-8") if body is not None else None
        headers = {
            "Accept": "application/json",
            "User-Agent": self.params.user_agent,
        }
        if data is not None:
            headers["Content-Type"] = "application/json"
        if authorized:
            headers["Authorization"] = self.session_token or ""

        req = Request(url, data=data, headers=headers, method=method)

        try:
            with urlopen(req, timeout=self.params.timeout_seconds) as response:
                return response.status, _parse_json(response.read())
        except HTTPError as e:
            self.logger.warning("http_error", method=method, path=path, status=e.code)
            return e.code, None
        except (URLError, socket.timeout, OSError) as e:
            raise AuthenticationError(f"{method} {path} failed: {e}", endpoint=path) from e


def _parse_json(raw: bytes) -> Optional[dict[str, Any]]:
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def _data(payload: Optional[dict[str, Any]], endpoint: str) -> dict[str, Any]:
    data = payload.get("data") if payload else None
    if not isinstance(data, dict):
        raise AuthenticationError("'data' not found in JSON response", endpoint=endpoint)
    return data
