from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class ExtractionSuccess:
    """Structured content extracted from a file."""

    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ExtractionFailure:
    """A recoverable extraction problem, reported to the user as-is.

    transient marks failures worth another queue attempt (engine hangs,
    resource contention); format problems are not.
    """

    message: str
    transient: bool = False


ExtractionOutcome = ExtractionSuccess | ExtractionFailure

Extractor = Callable[[Path], ExtractionOutcome]
