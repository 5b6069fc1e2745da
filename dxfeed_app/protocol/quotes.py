"""
Compact Quote payload decoding.

Converts the flat value array of a COMPACT FEED_DATA frame into QuoteRecord
objects. Records are fixed-width windows whose layout is the Quote field list
declared in FEED_SETUP.
"""

from collections.abc import Iterator, Sequence
from typing import Any

from ..errors import InvalidNumericError, MalformedMessageError, TruncatedRecordError
from .codec import QUOTE_EVENT_FIELDS, QUOTE_EVENT_TYPE
from .models import QuoteRecord

RECORD_WIDTH = len(QUOTE_EVENT_FIELDS)

# Positions within one record window
_FIELD_INDEX = {name: index for index, name in enumerate(QUOTE_EVENT_FIELDS)}
_NUMERIC_FIELDS = ("bidPrice", "askPrice", "bidSize", "askSize")


class QuoteDecoder:
    """Stateless decoder for compact Quote arrays."""

    def supports(self, event_type: str) -> bool:
        return event_type == QUOTE_EVENT_TYPE

    def decode(self, event_type: str, values: Sequence[Any]) -> Iterator[QuoteRecord]:
        """
        Decode a compact value array into quote records.

        The array length is validated up front, so a truncated payload fails
        before any record is produced. Numeric fields are validated as each
        record is consumed.

        Args:
            event_type: Event type tag of the batch (must be "Quote")
            values: Flat compact array, RECORD_WIDTH values per record

        Returns:
            Lazy, single-use iterator of QuoteRecord

        Raises:
            MalformedMessageError: unsupported event type
            TruncatedRecordError: length is not a multiple of RECORD_WIDTH
        """
        if not self.supports(event_type):
            raise MalformedMessageError(
                f"Unsupported event type: {event_type!r}",
                expected_format=QUOTE_EVENT_TYPE,
            )

        if len(values) % RECORD_WIDTH != 0:
            raise TruncatedRecordError(
                f"Compact array of {len(values)} values is not a multiple of {RECORD_WIDTH}",
                value_count=len(values),
                record_width=RECORD_WIDTH,
            )

        return self._iter_records(values)

    def _iter_records(self, values: Sequence[Any]) -> Iterator[QuoteRecord]:
        for start in range(0, len(values), RECORD_WIDTH):
            yield self._decode_record(values[start:start + RECORD_WIDTH])

    def _decode_record(self, window: Sequence[Any]) -> QuoteRecord:
        symbol = window[_FIELD_INDEX["eventSymbol"]]
        if not isinstance(symbol, str):
            raise MalformedMessageError(
                f"eventSymbol must be a string, got {type(symbol).__name__}",
                expected_format="string symbol",
            )

        numbers = {name: _parse_float(name, window[_FIELD_INDEX[name]]) for name in _NUMERIC_FIELDS}

        return QuoteRecord(
            symbol=symbol,
            bid_price=numbers["bidPrice"],
            ask_price=numbers["askPrice"],
            bid_size=numbers["bidSize"],
            ask_size=numbers["askSize"],
        )


def _parse_float(field_name: str, value: Any) -> float:
    """Parse a compact numeric value; dxLink sends "NaN" strings for missing values."""
    if isinstance(value, bool) or value is None:
        raise InvalidNumericError(
            f"{field_name} is not numeric: {value!r}",
            field_name=field_name,
            value=value,
        )
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InvalidNumericError(
            f"{field_name} is not numeric: {value!r}",
            field_name=field_name,
            value=value,
        ) from e
