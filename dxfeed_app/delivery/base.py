"""Base classes for quote delivery mechanisms."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import structlog

from ..protocol.models import QuoteRecord


class DeliveryStatus(Enum):
    """Quote delivery status."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class DeliveryResult:
    """Result of a quote batch delivery."""
    status: DeliveryStatus
    message: Optional[str] = None
    delivered_count: int = 0
    error: Optional[Exception] = None


class BaseQuoteDelivery(ABC):
    """Base class for quote delivery mechanisms."""

    def __init__(self, name: str, config: Any = None):
        self.name = name
        self.config = config
        self.logger = structlog.get_logger(f"quote.delivery.{name}")
        self._delivery_count = 0
        self._error_count = 0

    @abstractmethod
    def deliver(self, records: list[QuoteRecord]) -> DeliveryResult:
        """
        Deliver a batch of decoded quotes.

        Args:
            records: Quotes decoded from one FEED_DATA frame

        Returns:
            Delivery result for the batch
        """
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check if delivery mechanism is healthy."""
        pass

    def safe_deliver(self, records: list[QuoteRecord]) -> DeliveryResult:
        """Deliver without letting sink errors escape into the feed session."""
        try:
            result = self.deliver(records)
        except Exception as e:
            self.logger.error("delivery_failed", delivery_name=self.name, error=str(e))
            result = DeliveryResult(
                status=DeliveryStatus.FAILED,
                message=f"Unexpected error: {e}",
                error=e,
            )

        if result.status == DeliveryStatus.SUCCESS:
            self._delivery_count += result.delivered_count
        else:
            self._error_count += 1

        return result

    def get_stats(self) -> dict[str, Any]:
        """Get delivery statistics."""
        return {
            "name": self.name,
            "delivered": self._delivery_count,
            "errors": self._error_count,
        }
