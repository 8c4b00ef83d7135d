from abc import ABC, abstractmethod

from docpipe.logging.logger import Log
from docpipe.notifications.models import FileStatusEvent
from docpipe.notifications.registry import ConnectionRegistry


class NotificationSink(ABC):
    """Fire-and-forget destination for file status events."""

    @abstractmethod
    def publish(self, owner_id: str, event: FileStatusEvent) -> None:
        """Deliver the event to the owner's live clients. Never raises."""


class FanOutNotifier(NotificationSink):
    """Pushes events straight to connections registered in this process."""

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    def publish(self, owner_id: str, event: FileStatusEvent) -> None:
        try:
            delivered = self._registry.broadcast(owner_id, event.to_payload())
        except Exception as exc:
            Log.warning(
                f"Error notifying {event.status.value} for file {event.file_id}: {exc}"
            )
            return
        if delivered == 0:
            Log.debug(f"No active connections for owner {owner_id}")
