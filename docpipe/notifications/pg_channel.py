"""Cross-process fan-out over Postgres LISTEN/NOTIFY.

Workers publish with PgNotifySink; each process that terminates client
connections runs a PgNotifyRelay feeding its local registry.
"""

import json
import threading
from typing import Any

import psycopg
from psycopg import sql

from docpipe.config.settings import Settings
from docpipe.database.connection import connect_autocommit, get_connection
from docpipe.logging.logger import Log
from docpipe.notifications.models import FileStatusEvent
from docpipe.notifications.registry import ConnectionRegistry
from docpipe.notifications.sink import NotificationSink

# NOTIFY payloads must stay under 8000 bytes.
MAX_NOTIFY_PAYLOAD_BYTES = 7900


def encode_message(owner_id: str, event: FileStatusEvent) -> str:
    """Serialize an event for NOTIFY; oversized data is dropped and flagged."""
    payload = event.to_payload()
    message = json.dumps({"owner_id": owner_id, "event": payload}, default=str)
    if len(message.encode("utf-8")) > MAX_NOTIFY_PAYLOAD_BYTES:
        payload = {**payload, "data": None, "data_truncated": True}
        message = json.dumps({"owner_id": owner_id, "event": payload}, default=str)
    return message


def decode_message(raw: str) -> tuple[str, dict[str, Any]]:
    message = json.loads(raw)
    return str(message["owner_id"]), dict(message["event"])


class PgNotifySink(NotificationSink):
    def __init__(self, channel: str) -> None:
        self._channel = channel

    def publish(self, owner_id: str, event: FileStatusEvent) -> None:
        try:
            with get_connection() as conn:
                conn.execute(
                    "SELECT pg_notify(%s, %s)",
                    (self._channel, encode_message(owner_id, event)),
                )
                conn.commit()
        except Exception as exc:
            Log.warning(
                f"Error publishing {event.status.value} for file {event.file_id}: {exc}"
            )


class PgNotifyRelay:
    """Listens on the channel and broadcasts each message to a local registry."""

    LISTEN_TIMEOUT_SECONDS = 1.0
    RECONNECT_DELAY_SECONDS = 5.0

    def __init__(self, settings: Settings, registry: ConnectionRegistry) -> None:
        self._settings = settings
        self._registry = registry
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="notify-relay", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def dispatch(self, raw: str) -> None:
        try:
            owner_id, payload = decode_message(raw)
        except (ValueError, KeyError, TypeError) as exc:
            Log.warning(f"Ignoring malformed notification: {exc}")
            return
        self._registry.broadcast(owner_id, payload)

    def _run(self) -> None:
        channel = self._settings.notification_channel
        while not self._stop.is_set():
            try:
                with connect_autocommit(self._settings) as conn:
                    conn.execute(sql.SQL("LISTEN {}").format(sql.Identifier(channel)))
                    Log.info(f"Listening for file status events on channel '{channel}'")
                    while not self._stop.is_set():
                        for notify in conn.notifies(timeout=self.LISTEN_TIMEOUT_SECONDS):
                            self.dispatch(notify.payload)
            except psycopg.Error as exc:
                Log.warning(f"Notification relay connection lost: {exc}")
                self._stop.wait(self.RECONNECT_DELAY_SECONDS)
