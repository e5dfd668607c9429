"""Tests for the EventMonitor class."""

import threading
from queue import Empty, Queue

import pytest

from execmon.models import ProcessEvent
from execmon.monitor import EventMonitor
from execmon.source import ReaderClosedError

from conftest import ScriptedSource, encode_record


def drain(queue: Queue, count: int, timeout: float = 2.0) -> list[ProcessEvent]:
    return [queue.get(timeout=timeout) for _ in range(count)]


class PendingOnCloseSource:
    """Source whose sample arrives just as it is closed, like a perf buffer mid-poll."""

    def __init__(self, record: bytes) -> None:
        self._pending = [record]
        self._closed = threading.Event()
        self.released = False

    def read(self) -> bytes:
        self._closed.wait()
        if self._pending:
            return self._pending.pop()
        self.released = True
        raise ReaderClosedError()

    def close(self) -> None:
        self._closed.set()


class TestEventMonitor:
    """Tests for EventMonitor class."""

    def test_monitor_creation(self):
        """Test EventMonitor can be instantiated."""
        monitor = EventMonitor(ScriptedSource(), Queue().put)

        assert not monitor.is_running
        assert monitor.dropped == 0

    def test_monitor_start_stop(self):
        """Test EventMonitor can be started and stopped."""
        source = ScriptedSource()
        monitor = EventMonitor(source, Queue().put)

        monitor.start()
        assert monitor.is_running

        monitor.stop()
        assert not monitor.is_running
        assert source.close_calls == 1

    def test_monitor_start_idempotent(self):
        """Test starting an already running monitor is safe."""
        monitor = EventMonitor(ScriptedSource(), Queue().put)

        monitor.start()
        thread1 = monitor._thread

        monitor.start()  # Should not create a new thread
        thread2 = monitor._thread

        assert thread1 is thread2
        monitor.stop()

    def test_daemon_thread(self):
        """Test monitor thread is a daemon thread."""
        monitor = EventMonitor(ScriptedSource(), Queue().put)

        monitor.start()

        try:
            assert monitor._thread is not None
            assert monitor._thread.daemon is True
            assert monitor._thread.name == "EventMonitor"
        finally:
            monitor.stop()

    def test_forwards_events_in_order(self):
        """Test decoded events reach the sink in arrival order."""
        queue: Queue[ProcessEvent] = Queue()
        source = ScriptedSource([encode_record(pid, b"proc%d" % pid) for pid in range(1, 6)])
        monitor = EventMonitor(source, queue.put)

        monitor.start()
        try:
            events = drain(queue, 5)
        finally:
            monitor.stop()

        assert [event.pid for event in events] == [1, 2, 3, 4, 5]
        assert events[2].command_name == "proc3"

    def test_truncated_record_is_dropped(self):
        """Test a short record is skipped and later records still arrive."""
        queue: Queue[ProcessEvent] = Queue()
        source = ScriptedSource([b"\x01\x00\x00\x00\x00\x00", encode_record(77, b"after")])
        monitor = EventMonitor(source, queue.put)

        monitor.start()
        try:
            event = queue.get(timeout=2.0)
        finally:
            monitor.stop()

        assert event.pid == 77
        assert monitor.dropped == 1
        with pytest.raises(Empty):
            queue.get_nowait()

    def test_transient_read_errors_are_retried(self):
        """Test OSError from the source does not end the loop."""
        queue: Queue[ProcessEvent] = Queue()
        source = ScriptedSource([OSError("interrupted"), OSError("again"), encode_record(5, b"ok")])
        monitor = EventMonitor(source, queue.put, retry_delay=0.0)

        monitor.start()
        try:
            event = queue.get(timeout=2.0)
            assert event.pid == 5
            assert monitor.is_running
        finally:
            monitor.stop()

    def test_loop_ends_when_source_closes(self):
        """Test closing the source ends the reader thread."""
        source = ScriptedSource()
        monitor = EventMonitor(source, Queue().put)
        monitor.start()
        thread = monitor._thread

        source.close()
        thread.join(timeout=2.0)

        assert not thread.is_alive()
        assert not monitor.is_running

    def test_stop_reads_until_source_closed(self):
        """Test stop() lets the source release itself even with a record pending."""
        queue: Queue[ProcessEvent] = Queue()
        source = PendingOnCloseSource(encode_record(9, b"late"))
        monitor = EventMonitor(source, queue.put)

        monitor.start()
        monitor.stop()

        assert source.released
        assert not monitor.is_running
        with pytest.raises(Empty):
            queue.get_nowait()
