from __future__ import annotations

import queue
from pathlib import Path
from typing import Any, List, Tuple

import pytest

from shotreview.services.events import (
    Connection,
    ConnectionClosed,
    EventChannel,
    QueueConnection,
    format_sse,
)
from shotreview.services.workspace import TempWorkspace


class RecordingConnection(Connection):
    def __init__(self) -> None:
        self.received: List[Tuple[str, Any]] = []

    def send(self, event: str, data: Any) -> None:
        self.received.append((event, data))


class BrokenConnection(Connection):
    def __init__(self) -> None:
        self.attempts = 0

    def send(self, event: str, data: Any) -> None:
        self.attempts += 1
        raise BrokenPipeError("viewer went away")


@pytest.mark.unit
def test_recreate_empties_existing_dirs(tmp_path: Path) -> None:
    workspace = TempWorkspace(tmp_path, current_dir=tmp_path / "curr", diff_dir=tmp_path / "diff")
    (tmp_path / "curr" / "nested").mkdir(parents=True)
    (tmp_path / "curr" / "nested" / "old.png").write_bytes(b"old")
    (tmp_path / "diff").mkdir()
    (tmp_path / "diff" / "old.png").write_bytes(b"old")

    workspace.recreate()

    assert workspace.current_dir.is_dir() and list(workspace.current_dir.iterdir()) == []
    assert workspace.diff_dir.is_dir() and list(workspace.diff_dir.iterdir()) == []


@pytest.mark.unit
def test_recreate_creates_missing_dirs(tmp_path: Path) -> None:
    workspace = TempWorkspace(tmp_path / "not-there-yet")

    workspace.recreate()

    assert workspace.current_dir.is_dir()
    assert workspace.diff_dir.is_dir()
    assert workspace.current_dir != workspace.diff_dir
    assert workspace.current_dir.name.startswith("shotreview-curr-")
    assert workspace.diff_dir.name.startswith("shotreview-diff-")


@pytest.mark.unit
def test_recreate_propagates_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    workspace = TempWorkspace(tmp_path, current_dir=blocker / "curr", diff_dir=tmp_path / "diff")

    with pytest.raises(OSError):
        workspace.recreate()


@pytest.mark.unit
def test_remove_deletes_both_dirs(tmp_path: Path) -> None:
    workspace = TempWorkspace(tmp_path)
    workspace.recreate()

    workspace.remove()

    assert not workspace.current_dir.exists()
    assert not workspace.diff_dir.exists()


@pytest.mark.unit
def test_emit_reaches_every_connection_in_order() -> None:
    channel = EventChannel()
    first, second = RecordingConnection(), RecordingConnection()
    channel.add_connection(first)
    channel.add_connection(second)

    channel.emit("begin-state", {"n": 1})
    channel.emit("test-end", {"n": 2})

    expected = [("begin-state", {"n": 1}), ("test-end", {"n": 2})]
    assert first.received == expected
    assert second.received == expected


@pytest.mark.unit
def test_failed_connection_is_dropped_without_raising() -> None:
    channel = EventChannel()
    broken, healthy = BrokenConnection(), RecordingConnection()
    channel.add_connection(broken)
    channel.add_connection(healthy)

    channel.emit("test-end", {})
    channel.emit("end", {})

    assert broken.attempts == 1
    assert channel.connection_count == 1
    assert [event for event, _ in healthy.received] == ["test-end", "end"]


@pytest.mark.unit
def test_full_queue_connection_is_dropped() -> None:
    channel = EventChannel()
    slow = QueueConnection(backlog=2)
    channel.add_connection(slow)

    for index in range(3):
        channel.emit("test-end", {"index": index})

    assert channel.connection_count == 0
    assert [data["index"] for _, data in slow.drain()] == [0, 1]
    assert slow.closed


@pytest.mark.unit
def test_dropped_connection_is_closed_and_stops_receiving() -> None:
    class ClosingBrokenConnection(BrokenConnection):
        def __init__(self) -> None:
            super().__init__()
            self.closed = False

        def close(self) -> None:
            self.closed = True

    channel = EventChannel()
    broken = ClosingBrokenConnection()
    channel.add_connection(broken)

    channel.emit("begin-state", {})
    channel.emit("end", None)

    assert broken.closed
    assert broken.attempts == 1


@pytest.mark.unit
def test_closed_queue_connection_refuses_events() -> None:
    connection = QueueConnection()
    connection.close()

    with pytest.raises(ConnectionClosed):
        connection.send("end", {})


@pytest.mark.unit
def test_queue_connection_full_raises() -> None:
    connection = QueueConnection(backlog=1)
    connection.send("a", 1)

    with pytest.raises(queue.Full):
        connection.send("b", 2)
    assert connection.next_event(timeout=0.01) == ("a", 1)
    assert connection.next_event(timeout=0.01) is None


@pytest.mark.unit
def test_format_sse() -> None:
    assert format_sse("test-end", {"ok": True}) == 'event: test-end\ndata: {"ok": true}\n\n'
