"""Background reader that turns kernel records into ProcessEvents."""

import threading
from collections.abc import Callable

import structlog

from execmon.decoder import decode_event
from execmon.models import ProcessEvent
from execmon.source import EventSource, ReaderClosedError

log = structlog.get_logger(__name__)


class EventMonitor:
    """
    Reads, decodes and forwards process events.

    Runs a blocking read loop in a separate daemon thread and hands each
    decoded event to ``sink``. Malformed records are dropped, transient read
    errors are retried, and the loop ends when the source reports it is closed.
    """

    def __init__(
        self,
        source: EventSource,
        sink: Callable[[ProcessEvent], None],
        retry_delay: float = 0.05,
    ) -> None:
        """
        Initialize the EventMonitor.

        Args:
            source: Blocking source of raw records.
            sink: Called from the reader thread with each decoded event.
                Must be thread-safe.
            retry_delay: Seconds to wait after a failed read before retrying.
        """
        self._source = source
        self._sink = sink
        self._retry_delay = retry_delay
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._dropped = 0

    @property
    def dropped(self) -> int:
        """Number of records that could not be decoded."""
        return self._dropped

    @property
    def is_running(self) -> bool:
        """Check if the reader thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the reader thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._read_loop,
            daemon=True,
            name="EventMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Close the source and wait for the reader thread to finish.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        self._source.close()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _read_loop(self) -> None:
        """
        Main read loop running in the background thread.

        After stop() the loop keeps reading until the source raises
        ReaderClosedError, which is where the source releases the kernel probe.
        Records still pending at that point are discarded.
        """
        while True:
            try:
                raw = self._source.read()
            except ReaderClosedError:
                log.info("event_source_closed", dropped=self._dropped)
                return
            except OSError as exc:
                if self._stop_event.is_set():
                    log.debug("event_read_failed_on_stop", error=str(exc))
                    return
                log.debug("event_read_failed", error=str(exc))
                self._stop_event.wait(timeout=self._retry_delay)
                continue

            if self._stop_event.is_set():
                continue

            event = decode_event(raw)
            if event is None:
                self._dropped += 1
                continue

            self._sink(event)
