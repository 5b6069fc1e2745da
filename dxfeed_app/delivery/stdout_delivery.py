"""Standard output quote delivery mechanism."""

import json
import sys
from datetime import datetime, timezone
from typing import Optional, TextIO

from ..config.defaults import OutputParams
from ..protocol.models import QuoteRecord
from .base import BaseQuoteDelivery, DeliveryResult, DeliveryStatus


class StdoutQuoteDelivery(BaseQuoteDelivery):
    """Standard output quote delivery implementation."""

    def __init__(self, name: str = "stdout", config: Optional[OutputParams] = None,
                 stream: Optional[TextIO] = None):
        super().__init__(name, config or OutputParams())
        self.config: OutputParams
        self.stream = stream or sys.stdout

    def deliver(self, records: list[QuoteRecord]) -> DeliveryResult:
        for record in records:
            print(self._format_record(record), file=self.stream, flush=True)

        return DeliveryResult(
            status=DeliveryStatus.SUCCESS,
            message="Printed to stdout",
            delivered_count=len(records),
        )

    def _format_record(self, record: QuoteRecord) -> str:
        """Format a quote for stdout output."""
        if self.config.format == "pretty":
            output = (
                f"Symbol: {record.symbol}"
                f" | Bid: {record.bid_price}"
                f" | Ask: {record.ask_price}"
                f" | Mid: {record.mid_price}"
                f" | bidSize: {record.bid_size}"
                f" | askSize: {record.ask_size}"
            )
            if self.config.include_timestamp:
                output = f"[{datetime.now(timezone.utc).isoformat()}] {output}"
            return output

        payload = record.to_dict()
        if self.config.include_timestamp:
            payload["stdout_timestamp"] = datetime.now(timezone.utc).isoformat()
        # NaN sides are legal in dxLink quotes; emit them as null
        return json.dumps({key: _json_safe(value) for key, value in payload.items()})

    def health_check(self) -> bool:
        """Check if the output stream is available."""
        try:
            return self.stream.writable()
        except (AttributeError, ValueError):
            return False


def _json_safe(value):
    if isinstance(value, float) and value != value:
        return None
    return value
