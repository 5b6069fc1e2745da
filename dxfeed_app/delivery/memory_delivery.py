"""In-memory quote delivery."""

from ..protocol.models import QuoteRecord
from .base import BaseQuoteDelivery, DeliveryResult, DeliveryStatus


class InMemoryQuoteDelivery(BaseQuoteDelivery):
    """Collects every delivered quote and the latest quote per symbol."""

    def __init__(self, name: str = "memory"):
        super().__init__(name)
        self.records: list[QuoteRecord] = []
        self._latest: dict[str, QuoteRecord] = {}

    def deliver(self, records: list[QuoteRecord]) -> DeliveryResult:
        for record in records:
            self.records.append(record)
            self._latest[record.symbol] = record

        return DeliveryResult(
            status=DeliveryStatus.SUCCESS,
            message="Stored in memory",
            delivered_count=len(records),
        )

    def snapshot(self) -> dict[str, QuoteRecord]:
        """Latest quote per symbol."""
        return dict(self._latest)

    def health_check(self) -> bool:
        return True
