"""Tracking of which subscribed symbols have produced data."""

from collections.abc import Iterable
from typing import Optional


class SubscriptionTracker:
    """Symbol -> received flag map for one feed session.

    Flags only move from False to True. Symbols outside the initialized set
    are ignored, since upstream batching may deliver quotes for other symbols.
    """

    def __init__(self, symbols: Optional[Iterable[str]] = None):
        self._status: Optional[dict[str, bool]] = None
        if symbols is not None:
            self.initialize(symbols)

    def initialize(self, symbols: Iterable[str]) -> None:
        """Create the tracked set; duplicates collapse, caller order is kept."""
        if self._status is not None:
            raise RuntimeError("SubscriptionTracker is already initialized")
        self._status = {symbol: False for symbol in symbols}

    @property
    def symbols(self) -> tuple[str, ...]:
        return tuple(self._entries())

    def mark_received(self, symbol: str) -> bool:
        """Mark a symbol as seen. Returns True only on its first mark."""
        status = self._entries()
        if symbol not in status or status[symbol]:
            return False
        status[symbol] = True
        return True

    def is_complete(self) -> bool:
        """True once every tracked symbol has been seen; an empty set is complete."""
        return all(self._entries().values())

    def pending(self) -> list[str]:
        return [symbol for symbol, seen in self._entries().items() if not seen]

    def received(self) -> list[str]:
        return [symbol for symbol, seen in self._entries().items() if seen]

    def _entries(self) -> dict[str, bool]:
        if self._status is None:
            raise RuntimeError("SubscriptionTracker used before initialize()")
        return self._status
