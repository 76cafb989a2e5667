"""Client transport connecting a view model to an authority over WebSocket."""

import time
from collections.abc import Iterator
from types import TracebackType

import structlog
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI
from websockets.sync.client import ClientConnection, connect

from kanban_sync.protocol import decode_message
from kanban_sync.view_model import BoardViewModel

logger = structlog.get_logger()

DEFAULT_SNAPSHOT_TIMEOUT = 3.0


class BoardConnectionError(Exception):
    """Raised when the authority cannot be reached or the connection drops."""


class BoardClient:
    """Synchronous connection from one view model to the authority.

    Usage::

        with BoardClient("ws://localhost:5001/ws") as client:
            client.wait_for_snapshot()
            client.view.move("1", "done")
            client.settle()
    """

    def __init__(
        self,
        endpoint: str,
        view: BoardViewModel | None = None,
        snapshot_timeout: float = DEFAULT_SNAPSHOT_TIMEOUT,
    ) -> None:
        self.endpoint = endpoint
        self.view = view or BoardViewModel()
        self.snapshot_timeout = snapshot_timeout
        self._connection: ClientConnection | None = None

    def open(self) -> "BoardClient":
        """Connect and ask for the current state.

        Raises:
            BoardConnectionError: If the endpoint cannot be reached
        """
        logger.debug("Connecting", endpoint=self.endpoint)
        try:
            self._connection = connect(self.endpoint, open_timeout=self.snapshot_timeout)
        except (OSError, TimeoutError, InvalidURI, InvalidHandshake) as e:
            self.view.connection_failed()
            raise BoardConnectionError(f"Cannot connect to {self.endpoint}: {e}") from e

        self.view.bind(self._connection.send)
        self.view.connection_opened()
        logger.info("Connected", endpoint=self.endpoint)
        return self

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        self.view.connection_lost()

    def __enter__(self) -> "BoardClient":
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def wait_for_snapshot(self) -> bool:
        """Block until a snapshot arrives, at most ``snapshot_timeout`` seconds.

        Returns:
            True if a snapshot was applied, False if the wait timed out
        """
        deadline = time.monotonic() + self.snapshot_timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self.view.loading_timed_out()
                return False
            try:
                if self._receive(remaining):
                    return True
            except TimeoutError:
                self.view.loading_timed_out()
                return False

    def settle(self, quiet: float = 0.3) -> int:
        """Apply inbound events until none arrives for ``quiet`` seconds.

        Returns:
            Number of snapshots applied
        """
        applied = 0
        while True:
            try:
                if self._receive(quiet):
                    applied += 1
            except TimeoutError:
                return applied

    def listen(self) -> Iterator[BoardViewModel]:
        """Yield the view after every snapshot until the connection closes."""
        while True:
            if self._receive(None):
                yield self.view

    def _receive(self, timeout: float | None) -> bool:
        if self._connection is None:
            raise BoardConnectionError("Not connected")
        try:
            frame = self._connection.recv(timeout=timeout)
        except ConnectionClosed as e:
            self.view.connection_lost()
            raise BoardConnectionError(f"Connection to {self.endpoint} closed") from e

        decoded = decode_message(frame)
        if decoded is None:
            return False
        event, data = decoded
        return self.view.handle_event(event, data)
