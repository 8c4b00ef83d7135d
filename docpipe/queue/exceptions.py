class QueueError(Exception):
    """Base exception for all job queue errors."""


class EnqueueError(QueueError):
    """Raised when a job cannot be placed on the queue."""


class DeliveryAlreadySettledError(QueueError):
    """Raised when ack() or fail() is called twice for one delivery."""
