from dataclasses import dataclass

from docpipe.records.models import DeclaredType


@dataclass(frozen=True)
class Job:
    """One extract-content-from-file work item.

    attempt_count is maintained by the queue: 0 at enqueue, incremented on
    every delivery.
    """

    file_id: str
    storage_path: str
    declared_type: DeclaredType
    owner_id: str
    attempt_count: int = 0
    id: str | None = None
    last_error: str | None = None
