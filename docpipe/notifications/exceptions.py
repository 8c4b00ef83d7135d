class NotificationError(Exception):
    """Base exception for notification fan-out errors."""


class ConnectionClosedError(NotificationError):
    """Raised when sending to a connection that has gone away."""


class RegistryClosedError(NotificationError):
    """Raised when registering a connection after the registry was torn down."""
