"""Graceful-then-forceful process termination."""

import signal
import time
from collections.abc import Callable

import psutil
import structlog

from execmon import proc_info
from execmon.models import TerminationOutcome

log = structlog.get_logger(__name__)


def terminate(
    pid: int,
    grace_period: float = 1.5,
    poll_interval: float = 0.15,
    *,
    send_signal: Callable[[int, signal.Signals], None] = proc_info.send_signal,
    is_alive: Callable[[int], bool] = proc_info.is_alive,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> TerminationOutcome:
    """
    Stop a process: SIGTERM, wait up to grace_period, then SIGKILL.

    Blocks for up to grace_period seconds, so it must run off the UI thread.
    There is no way to cancel the wait.

    Args:
        pid: Process to stop.
        grace_period: Seconds to wait for the process to exit on its own.
        poll_interval: Seconds between liveness checks.

    Returns:
        EXITED if the process died within the grace period, KILLED if SIGKILL
        was sent, DENIED if we may not signal it.
    """
    try:
        send_signal(pid, signal.SIGTERM)
        deadline = clock() + grace_period
        while clock() < deadline:
            if not is_alive(pid):
                log.info("process_terminated", pid=pid)
                return TerminationOutcome.EXITED
            sleep(poll_interval)

        send_signal(pid, signal.SIGKILL)
    except psutil.AccessDenied:
        log.warning("termination_denied", pid=pid)
        return TerminationOutcome.DENIED

    log.info("termination_escalated", pid=pid, grace_period=grace_period)
    return TerminationOutcome.KILLED
