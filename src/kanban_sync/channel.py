"""Channel interface the authority delivers frames through."""

from abc import ABC, abstractmethod


class Channel(ABC):
    """Outbound half of one client connection.

    ``send`` must not block: the authority calls it from inside command
    handlers and relies on frames leaving in the order they were sent.
    """

    @abstractmethod
    def send(self, frame: str) -> None:
        """Queue an encoded frame for delivery to this client."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in log events."""
        pass
