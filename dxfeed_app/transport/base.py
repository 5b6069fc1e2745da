"""Base classes for the feed transport and its event listener."""

from abc import ABC, abstractmethod


class Transport(ABC):
    """Outbound side of a feed connection."""

    @abstractmethod
    def send(self, text: str) -> None:
        """
        Send one text frame.

        Raises:
            TransportError: the frame could not be sent
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Request the connection to close. Must be safe to call repeatedly."""
        pass


class TransportListener(ABC):
    """Receiver of connection lifecycle events, delivered serially."""

    @abstractmethod
    def on_open(self) -> None:
        pass

    @abstractmethod
    def on_message(self, text: str) -> None:
        pass

    @abstractmethod
    def on_close(self) -> None:
        pass

    @abstractmethod
    def on_fail(self, reason: str) -> None:
        pass


class RunnableTransport(Transport):
    """Transport that owns its connection loop and drives a listener."""

    @abstractmethod
    def run(self, listener: TransportListener) -> None:
        """Connect and deliver events to the listener until the connection ends."""
        pass
