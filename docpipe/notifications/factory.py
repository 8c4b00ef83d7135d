from docpipe.config.settings import Settings
from docpipe.notifications.pg_channel import PgNotifySink
from docpipe.notifications.registry import ConnectionRegistry
from docpipe.notifications.sink import FanOutNotifier, NotificationSink


class NotifierFactory:
    """Creates the configured notification sink."""

    BACKENDS = ("local", "postgres")

    @classmethod
    def create(cls, settings: Settings, registry: ConnectionRegistry) -> NotificationSink:
        backend = settings.notification_backend.lower()
        if backend == "local":
            return FanOutNotifier(registry)
        if backend == "postgres":
            return PgNotifySink(settings.notification_channel)
        raise ValueError(
            f"Unknown notification backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
