import signal
import threading
from types import FrameType

from docpipe.config.settings import Settings
from docpipe.logging.logger import Log
from docpipe.service import DocpipeService


def main() -> None:
    """Entry point: load settings -> start service -> wait for a signal -> stop."""
    settings = Settings()
    Log.configure(settings.log_level)

    shutdown = threading.Event()

    def request_shutdown(signum: int, _frame: FrameType | None) -> None:
        Log.info(f"Received signal {signum}, shutting down")
        shutdown.set()

    signal.signal(signal.SIGTERM, request_shutdown)
    signal.signal(signal.SIGINT, request_shutdown)

    service = DocpipeService(settings)
    service.start()
    try:
        while not shutdown.wait(1.0):
            pass
    finally:
        service.stop()


if __name__ == "__main__":
    main()
