import threading

from docpipe.logging.logger import Log
from docpipe.notifications.registry import ConnectionRegistry


class HeartbeatMonitor:
    """Background sweep that evicts connections which stopped heart-beating."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        timeout_seconds: float,
        sweep_interval_seconds: float,
    ) -> None:
        self._registry = registry
        self._timeout_seconds = timeout_seconds
        self._sweep_interval_seconds = sweep_interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="heartbeat-monitor", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def sweep(self) -> int:
        return self._registry.evict_stale(self._timeout_seconds)

    def _run(self) -> None:
        while not self._stop.wait(self._sweep_interval_seconds):
            try:
                self.sweep()
            except Exception as exc:
                Log.warning(f"Heartbeat sweep failed: {exc}")
