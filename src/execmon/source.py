"""Kernel event sources."""

import ctypes as ct
import threading
from collections import deque
from typing import Protocol

import structlog

log = structlog.get_logger(__name__)

# Layout must match execmon.decoder.ExecEventData
BPF_PROGRAM = r"""
struct event {
    u32 pid;
    u8 _padding[4];
    char comm[16];
};

BPF_PERF_OUTPUT(events);

TRACEPOINT_PROBE(syscalls, sys_enter_execve) {
    struct event event = {};
    event.pid = bpf_get_current_pid_tgid() >> 32;
    bpf_get_current_comm(&event.comm, sizeof(event.comm));
    events.perf_submit(args, &event, sizeof(event));
    return 0;
}
"""


class EventSourceError(Exception):
    """The kernel event source could not be set up."""


class ReaderClosedError(Exception):
    """Raised by EventSource.read() once the source has been closed."""


class EventSource(Protocol):
    """Blocking source of raw exec records."""

    def read(self) -> bytes:
        """Return the next raw record, blocking until one is available.

        Raises:
            ReaderClosedError: Once the source has been closed.
            OSError: On a transient read failure.
        """
        ...

    def close(self) -> None:
        ...


class BccExecSource:
    """
    Exec records from a BPF tracepoint on sys_enter_execve, via bcc.

    Compiling the program needs root and kernel headers. ``read`` must only be
    called from a single thread; ``close`` may be called from any thread.
    """

    def __init__(self, poll_timeout_ms: int = 100) -> None:
        # bcc is installed with the system BPF toolchain, not from PyPI
        try:
            from bcc import BPF
        except ImportError as exc:
            raise EventSourceError("bcc Python bindings are not installed") from exc

        try:
            self._bpf = BPF(text=BPF_PROGRAM)
            self._bpf["events"].open_perf_buffer(self._on_sample)
        except Exception as exc:
            raise EventSourceError(f"could not attach exec tracepoint: {exc}") from exc

        self._poll_timeout_ms = poll_timeout_ms
        self._pending: deque[bytes] = deque()
        self._closed = threading.Event()
        self._cleaned_up = False
        log.info("event_source_attached", tracepoint="syscalls:sys_enter_execve")

    def _on_sample(self, cpu, data, size) -> None:
        _ = cpu
        self._pending.append(ct.string_at(data, size))

    def read(self) -> bytes:
        while not self._pending:
            if self._closed.is_set():
                self._cleanup()
                raise ReaderClosedError()
            self._bpf.perf_buffer_poll(timeout=self._poll_timeout_ms)
        return self._pending.popleft()

    def close(self) -> None:
        self._closed.set()

    def _cleanup(self) -> None:
        if not self._cleaned_up:
            self._cleaned_up = True
            self._bpf.cleanup()
            log.info("event_source_detached")
