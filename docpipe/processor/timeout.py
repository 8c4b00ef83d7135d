import queue
import threading
from collections.abc import Callable
from typing import TypeVar, cast

from docpipe.processor.exceptions import ProcessingTimeoutError

A = TypeVar("A")
R = TypeVar("R")


def call_with_timeout(func: Callable[[A], R], arg: A, timeout_seconds: float) -> R:
    """Run func(arg) on a daemon thread and wait at most timeout_seconds.

    A call that overruns is abandoned, not killed: its thread keeps running in
    the background and its result is discarded.

    Raises:
        ProcessingTimeoutError: if the call does not return in time.
    """
    results: queue.Queue[tuple[R | None, BaseException | None]] = queue.Queue(maxsize=1)

    def target() -> None:
        try:
            results.put((func(arg), None))
        except BaseException as exc:  # noqa: BLE001 - re-raised in the caller
            results.put((None, exc))

    thread = threading.Thread(target=target, name="extraction", daemon=True)
    thread.start()
    try:
        value, error = results.get(timeout=timeout_seconds)
    except queue.Empty:
        raise ProcessingTimeoutError(
            f"Processing timed out after {timeout_seconds:g} seconds"
        ) from None
    if error is not None:
        raise error
    return cast(R, value)
