import queue
import threading
from abc import ABC, abstractmethod
from typing import Any

from docpipe.logging.logger import Log
from docpipe.notifications.exceptions import ConnectionClosedError


class ClientConnection(ABC):
    """A live client link that status events are pushed to.

    send() must not block: transports buffer and write on their own schedule.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str: ...

    @abstractmethod
    def send(self, payload: dict[str, Any]) -> None:
        """Queue a payload for delivery.

        Raises:
            ConnectionClosedError: if the connection is gone.
        """

    def close(self) -> None:
        """Release transport resources. Default: nothing to release."""


class QueuedConnection(ClientConnection):
    """Connection backed by a bounded outbox that a transport drains.

    When the outbox is full the oldest pending payload is discarded, so a slow
    reader never stalls the sender.
    """

    def __init__(self, connection_id: str, maxsize: int = 100) -> None:
        self._connection_id = connection_id
        self._outbox: queue.Queue[dict[str, Any]] = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, payload: dict[str, Any]) -> None:
        if self._closed.is_set():
            raise ConnectionClosedError(f"Connection {self._connection_id} is closed")
        while True:
            try:
                self._outbox.put_nowait(payload)
                return
            except queue.Full:
                try:
                    self._outbox.get_nowait()
                    Log.warning(
                        f"Outbox full for connection {self._connection_id}, dropped oldest event"
                    )
                except queue.Empty:
                    pass

    def receive(self, timeout: float | None = None) -> dict[str, Any] | None:
        """Next buffered payload, or None if nothing arrives within `timeout`."""
        try:
            return self._outbox.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        self._closed.set()
