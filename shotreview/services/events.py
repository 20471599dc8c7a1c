from __future__ import annotations

import json
import logging
import queue
import threading
from typing import Any, List, Optional, Tuple

LOGGER = logging.getLogger("shotreview.events")

DEFAULT_BACKLOG = 1000


class ConnectionClosed(Exception):
    pass


class Connection:
    """A viewer sink. ``send`` raising means the sink should be dropped."""

    def send(self, event: str, data: Any) -> None:  # pragma: no cover - interface stub
        raise NotImplementedError

    def close(self) -> None:
        pass


class QueueConnection(Connection):
    """Buffers events for one Server-Sent Events response."""

    def __init__(self, backlog: int = DEFAULT_BACKLOG) -> None:
        self._queue: "queue.Queue[Tuple[str, Any]]" = queue.Queue(maxsize=backlog)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    def send(self, event: str, data: Any) -> None:
        if self._closed.is_set():
            raise ConnectionClosed("connection closed")
        # queue.Full propagates so a stalled viewer gets dropped instead of blocking the run
        self._queue.put_nowait((event, data))

    def next_event(self, timeout: Optional[float] = None) -> Optional[Tuple[str, Any]]:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[Tuple[str, Any]]:
        items: List[Tuple[str, Any]] = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items


def format_sse(event: str, data: Any) -> str:
    payload = json.dumps(data, default=str)
    return f"event: {event}\ndata: {payload}\n\n"


class EventChannel:
    """Broadcast run progress to every connected viewer, best effort."""

    def __init__(self) -> None:
        self._connections: List[Connection] = []
        self._lock = threading.Lock()

    def add_connection(self, connection: Connection) -> None:
        with self._lock:
            self._connections.append(connection)

    def remove_connection(self, connection: Connection) -> None:
        with self._lock:
            if connection in self._connections:
                self._connections.remove(connection)

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def emit(self, event: str, data: Any = None) -> None:
        with self._lock:
            connections = list(self._connections)
        dead: List[Connection] = []
        for connection in connections:
            try:
                connection.send(event, data)
            except Exception as exc:
                LOGGER.debug("Dropping viewer connection after failed %s delivery: %s", event, exc)
                dead.append(connection)
        if dead:
            with self._lock:
                self._connections = [item for item in self._connections if item not in dead]
            # closing ends the viewer's stream so its EventSource reconnects
            for connection in dead:
                close = getattr(connection, "close", None)
                if close is not None:
                    close()
