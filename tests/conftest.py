"""Shared test fixtures for execmon."""

import logging
import struct
import threading
from collections import deque
from datetime import datetime

import pytest
import structlog

from execmon.models import ProcessEvent, ProcessRecord
from execmon.source import ReaderClosedError


def encode_record(pid: int, comm: bytes) -> bytes:
    """Build a raw exec record the way the BPF program lays it out."""
    return struct.pack("<I4x16s", pid, comm)


def make_event(pid: int, comm: str = "proc", observed_at: datetime | None = None) -> ProcessEvent:
    return ProcessEvent(
        pid=pid,
        command_name=comm,
        observed_at=observed_at or datetime(2026, 1, 1, 12, 0, 0),
    )


def make_records(*rows) -> list[ProcessRecord]:
    """Metadata records from (pid, ppid, name) tuples."""
    return [ProcessRecord(pid=pid, parent_pid=ppid, command_name=name) for pid, ppid, name in rows]


class ScriptedSource:
    """EventSource that replays records (or raises exceptions), then blocks until closed."""

    def __init__(self, items=()) -> None:
        self._items = deque(items)
        self._closed = threading.Event()
        self.close_calls = 0

    def read(self) -> bytes:
        if self._items:
            item = self._items.popleft()
            if isinstance(item, BaseException):
                raise item
            return item
        self._closed.wait()
        raise ReaderClosedError()

    def close(self) -> None:
        self.close_calls += 1
        self._closed.set()


class FakeClock:
    """Monotonic clock whose sleep() just advances time."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any logging configuration a test applied."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()
