import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from docpipe.logging.logger import Log
from docpipe.notifications.connections import ClientConnection
from docpipe.notifications.exceptions import RegistryClosedError


class ConnectionRegistry(ABC):
    """Maps an owner identity to its live client connections."""

    @abstractmethod
    def add(self, owner_id: str, connection: ClientConnection) -> None:
        """Register a connection for an already-authenticated owner."""

    @abstractmethod
    def remove(self, owner_id: str, connection_id: str) -> bool:
        """Unregister a connection. Returns False if it was not registered."""

    @abstractmethod
    def lookup(self, owner_id: str) -> list[ClientConnection]:
        """Current connections for an owner (possibly empty)."""

    @abstractmethod
    def touch(self, owner_id: str, connection_id: str) -> bool:
        """Record a heartbeat. Returns False if the connection is unknown."""

    @abstractmethod
    def broadcast(self, owner_id: str, payload: dict[str, Any]) -> int:
        """Send payload to every connection of the owner; return how many accepted it."""

    @abstractmethod
    def evict_stale(self, max_idle_seconds: float) -> int:
        """Drop connections without a heartbeat for max_idle_seconds; return the count."""

    @abstractmethod
    def close(self) -> None:
        """Close every connection and refuse new registrations."""


@dataclass
class _Entry:
    connection: ClientConnection
    last_seen: float


class InMemoryConnectionRegistry(ConnectionRegistry):
    """Registry for connections terminated in this process."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._by_owner: dict[str, dict[str, _Entry]] = {}
        self._closed = False

    def add(self, owner_id: str, connection: ClientConnection) -> None:
        with self._lock:
            if self._closed:
                raise RegistryClosedError("Connection registry is closed")
            entries = self._by_owner.setdefault(owner_id, {})
            entries[connection.connection_id] = _Entry(connection, self._clock())
        Log.debug(f"Connection {connection.connection_id} registered for owner {owner_id}")

    def remove(self, owner_id: str, connection_id: str) -> bool:
        with self._lock:
            entry = self._pop(owner_id, connection_id)
        if entry is None:
            return False
        entry.connection.close()
        Log.debug(f"Connection {connection_id} removed for owner {owner_id}")
        return True

    def lookup(self, owner_id: str) -> list[ClientConnection]:
        with self._lock:
            return [e.connection for e in self._by_owner.get(owner_id, {}).values()]

    def touch(self, owner_id: str, connection_id: str) -> bool:
        with self._lock:
            entry = self._by_owner.get(owner_id, {}).get(connection_id)
            if entry is None:
                return False
            entry.last_seen = self._clock()
            return True

    def broadcast(self, owner_id: str, payload: dict[str, Any]) -> int:
        delivered = 0
        for connection in self.lookup(owner_id):
            try:
                connection.send(payload)
                delivered += 1
            except Exception as exc:
                Log.warning(
                    f"Dropping connection {connection.connection_id} of owner {owner_id}: {exc}"
                )
                self.remove(owner_id, connection.connection_id)
        return delivered

    def evict_stale(self, max_idle_seconds: float) -> int:
        cutoff = self._clock() - max_idle_seconds
        with self._lock:
            stale = [
                (owner_id, connection_id)
                for owner_id, entries in self._by_owner.items()
                for connection_id, entry in entries.items()
                if entry.last_seen < cutoff
            ]
            evicted = [self._pop(owner_id, connection_id) for owner_id, connection_id in stale]
        for entry in evicted:
            if entry is not None:
                entry.connection.close()
        if stale:
            Log.info(f"Evicted {len(stale)} stale connection(s)")
        return len(stale)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            entries = [e for owned in self._by_owner.values() for e in owned.values()]
            self._by_owner.clear()
        for entry in entries:
            entry.connection.close()

    def connection_count(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._by_owner.values())

    def _pop(self, owner_id: str, connection_id: str) -> _Entry | None:
        entries = self._by_owner.get(owner_id)
        if not entries:
            return None
        entry = entries.pop(connection_id, None)
        if not entries:
            del self._by_owner[owner_id]
        return entry
