"""
dxLink control message codec.

Encodes outbound control messages to the JSON wire format and decodes inbound
text into typed ControlMessage objects. Stateless; the `type` tokens and the
Quote field order are the compatibility contract with the upstream server.
"""

import json
from typing import Any, Callable

from ..errors import MalformedMessageError, MissingFieldError
from .models import (
    Auth,
    AuthorizationState,
    AuthState,
    ChannelOpened,
    ChannelRequest,
    ControlMessage,
    FeedConfig,
    FeedData,
    FeedSetup,
    FeedSubscription,
    Setup,
    Unknown,
)

# Protocol constants sent in SETUP
CLIENT_VERSION = "0.1-DXF-JS/0.3.0"
KEEPALIVE_TIMEOUT = 15
ACCEPT_KEEPALIVE_TIMEOUT = 20

# Channel 0 carries connection-level messages
CONNECTION_CHANNEL = 0

FEED_SERVICE = "FEED"
DEFAULT_CHANNEL_PARAMETERS = {"contract": "AUTO"}

QUOTE_EVENT_TYPE = "Quote"
QUOTE_EVENT_FIELDS = (
    "eventType",
    "eventSymbol",
    "bidPrice",
    "askPrice",
    "bidSize",
    "askSize",
)
ACCEPT_AGGREGATION_PERIOD = 0.1
COMPACT_DATA_FORMAT = "COMPACT"


class MessageCodec:
    """Stateless (de)serializer for dxLink control messages."""

    def encode(self, message: ControlMessage) -> str:
        """Encode a control message to wire text."""
        if isinstance(message, Unknown):
            return message.raw

        encoder = self._encoders.get(type(message))
        if encoder is None:
            raise TypeError(f"Cannot encode {type(message).__name__}")

        return json.dumps(encoder(self, message))

    def decode(self, text: str) -> ControlMessage:
        """
        Decode wire text into a control message.

        Raises:
            MalformedMessageError: payload is not a JSON object or a field has the wrong shape
            MissingFieldError: `type`, or `channel` on a channel-scoped type, is absent
        """
        try:
            payload = json.loads(text)
        except (TypeError, ValueError) as e:
            raise MalformedMessageError(
                f"Frame is not valid JSON: {e}",
                raw_data=text if isinstance(text, str) else None,
                expected_format="json object",
            ) from e

        if not isinstance(payload, dict):
            raise MalformedMessageError(
                "Frame is not a JSON object",
                raw_data=text,
                expected_format="json object",
            )

        if "type" not in payload:
            raise MissingFieldError("Frame has no 'type' field", field_name="type")

        message_type = payload["type"]
        if not isinstance(message_type, str):
            raise MalformedMessageError(
                "Frame 'type' must be a string",
                raw_data=text,
                expected_format="string type",
            )

        decoder = self._decoders.get(message_type)
        if decoder is None:
            return Unknown(raw=text)

        return decoder(self, payload)

    # Encoders

    def _encode_setup(self, message: Setup) -> dict[str, Any]:
        # Outbound SETUP always carries the client's protocol constants
        return {
            "type": Setup.message_type,
            "channel": CONNECTION_CHANNEL,
            "version": CLIENT_VERSION,
            "keepaliveTimeout": KEEPALIVE_TIMEOUT,
            "acceptKeepaliveTimeout": ACCEPT_KEEPALIVE_TIMEOUT,
        }

    def _encode_auth_state(self, message: AuthState) -> dict[str, Any]:
        return {
            "type": AuthState.message_type,
            "channel": CONNECTION_CHANNEL,
            "state": message.state.value,
        }

    def _encode_auth(self, message: Auth) -> dict[str, Any]:
        return {
            "type": Auth.message_type,
            "channel": CONNECTION_CHANNEL,
            "token": message.token,
        }

    def _encode_channel_request(self, message: ChannelRequest) -> dict[str, Any]:
        return {
            "type": ChannelRequest.message_type,
            "channel": int(message.channel),
            "service": message.service,
            "parameters": dict(message.parameters),
        }

    def _encode_channel_opened(self, message: ChannelOpened) -> dict[str, Any]:
        return {
            "type": ChannelOpened.message_type,
            "channel": int(message.channel),
        }

    def _encode_feed_setup(self, message: FeedSetup) -> dict[str, Any]:
        return {
            "type": FeedSetup.message_type,
            "channel": int(message.channel),
            "acceptAggregationPeriod": float(message.aggregation_period),
            "acceptDataFormat": message.data_format,
            "acceptEventFields": {
                event_type: list(fields)
                for event_type, fields in message.accept_event_fields.items()
            },
        }

    def _encode_feed_config(self, message: FeedConfig) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": FeedConfig.message_type,
            "channel": int(message.channel),
            "dataFormat": COMPACT_DATA_FORMAT,
        }
        if message.event_fields is not None:
            payload["eventFields"] = {
                event_type: list(fields)
                for event_type, fields in message.event_fields.items()
            }
        return payload

    def _encode_feed_subscription(self, message: FeedSubscription) -> dict[str, Any]:
        return {
            "type": FeedSubscription.message_type,
            "channel": int(message.channel),
            "reset": True,
            "add": [
                {"type": QUOTE_EVENT_TYPE, "symbol": symbol}
                for symbol in message.symbols
            ],
        }

    def _encode_feed_data(self, message: FeedData) -> dict[str, Any]:
        return {
            "type": FeedData.message_type,
            "channel": int(message.channel),
            "data": [message.event_type, list(message.records)],
        }

    _encoders: dict[type, Callable[..., dict[str, Any]]] = {
        Setup: _encode_setup,
        AuthState: _encode_auth_state,
        Auth: _encode_auth,
        ChannelRequest: _encode_channel_request,
        ChannelOpened: _encode_channel_opened,
        FeedSetup: _encode_feed_setup,
        FeedConfig: _encode_feed_config,
        FeedSubscription: _encode_feed_subscription,
        FeedData: _encode_feed_data,
    }

    # Decoders

    def _decode_setup(self, payload: dict[str, Any]) -> Setup:
        return Setup(
            version=str(payload.get("version", "")),
            keepalive_timeout=payload.get("keepaliveTimeout", 0),
            accept_keepalive_timeout=payload.get("acceptKeepaliveTimeout", 0),
        )

    def _decode_auth_state(self, payload: dict[str, Any]) -> AuthState:
        state = _require(payload, "state")
        try:
            return AuthState(state=AuthorizationState(state))
        except ValueError as e:
            raise MalformedMessageError(
                f"Unknown authorization state: {state!r}",
                expected_format="UNAUTHORIZED|AUTHORIZED",
            ) from e

    def _decode_auth(self, payload: dict[str, Any]) -> Auth:
        token = _require(payload, "token")
        if not isinstance(token, str):
            raise MalformedMessageError("AUTH 'token' must be a string")
        return Auth(token=token)

    def _decode_channel_request(self, payload: dict[str, Any]) -> ChannelRequest:
        parameters = payload.get("parameters") or {}
        if not isinstance(parameters, dict):
            raise MalformedMessageError("CHANNEL_REQUEST 'parameters' must be an object")
        return ChannelRequest(
            channel=_channel(payload),
            service=str(payload.get("service", FEED_SERVICE)),
            parameters=parameters,
        )

    def _decode_channel_opened(self, payload: dict[str, Any]) -> ChannelOpened:
        return ChannelOpened(channel=_channel(payload))

    def _decode_feed_setup(self, payload: dict[str, Any]) -> FeedSetup:
        period = payload.get("acceptAggregationPeriod", ACCEPT_AGGREGATION_PERIOD)
        if isinstance(period, bool) or not isinstance(period, (int, float)):
            raise MalformedMessageError("FEED_SETUP 'acceptAggregationPeriod' must be a number")
        return FeedSetup(
            channel=_channel(payload),
            accept_event_fields=_event_fields(payload.get("acceptEventFields") or {}),
            aggregation_period=float(period),
            data_format=str(payload.get("acceptDataFormat", COMPACT_DATA_FORMAT)),
        )

    def _decode_feed_config(self, payload: dict[str, Any]) -> FeedConfig:
        event_fields = payload.get("eventFields")
        return FeedConfig(
            channel=_channel(payload),
            event_fields=_event_fields(event_fields) if event_fields is not None else None,
        )

    def _decode_feed_subscription(self, payload: dict[str, Any]) -> FeedSubscription:
        entries = payload.get("add") or []
        if not isinstance(entries, list):
            raise MalformedMessageError("FEED_SUBSCRIPTION 'add' must be an array")
        symbols = []
        for entry in entries:
            if not isinstance(entry, dict) or not isinstance(entry.get("symbol"), str):
                raise MalformedMessageError("FEED_SUBSCRIPTION entries need a string 'symbol'")
            symbols.append(entry["symbol"])
        return FeedSubscription(
            channel=_channel(payload),
            reset=bool(payload.get("reset", False)),
            symbols=tuple(symbols),
        )

    def _decode_feed_data(self, payload: dict[str, Any]) -> FeedData:
        channel = _channel(payload)
        data = _require(payload, "data")

        # COMPACT layout: [eventType, [v0, v1, ...]]
        if (not isinstance(data, list) or len(data) != 2
                or not isinstance(data[0], str) or not isinstance(data[1], list)):
            raise MalformedMessageError(
                "FEED_DATA 'data' is not a compact [eventType, values] pair",
                expected_format="COMPACT",
            )

        return FeedData(channel=channel, event_type=data[0], records=tuple(data[1]))

    _decoders: dict[str, Callable[..., ControlMessage]] = {
        Setup.message_type: _decode_setup,
        AuthState.message_type: _decode_auth_state,
        Auth.message_type: _decode_auth,
        ChannelRequest.message_type: _decode_channel_request,
        ChannelOpened.message_type: _decode_channel_opened,
        FeedSetup.message_type: _decode_feed_setup,
        FeedConfig.message_type: _decode_feed_config,
        FeedSubscription.message_type: _decode_feed_subscription,
        FeedData.message_type: _decode_feed_data,
    }


def _require(payload: dict[str, Any], field_name: str) -> Any:
    if field_name not in payload:
        raise MissingFieldError(
            f"{payload.get('type')} frame has no '{field_name}' field",
            field_name=field_name,
            message_type=payload.get("type"),
        )
    return payload[field_name]


def _channel(payload: dict[str, Any]) -> int:
    channel = _require(payload, "channel")
    if isinstance(channel, bool) or not isinstance(channel, int):
        raise MalformedMessageError(
            f"{payload.get('type')} 'channel' must be an integer",
            expected_format="integer channel",
        )
    return channel


def _event_fields(raw: Any) -> dict[str, tuple[str, ...]]:
    if not isinstance(raw, dict):
        raise MalformedMessageError("Event field declaration must be an object")
    fields = {}
    for event_type, names in raw.items():
        if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
            raise MalformedMessageError(f"Fields for {event_type!r} must be a list of strings")
        fields[event_type] = tuple(names)
    return fields
