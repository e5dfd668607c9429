"""Process metadata and control, backed by psutil."""

import signal

import psutil
import structlog

from execmon.models import ProcessDetails, ProcessRecord

log = structlog.get_logger(__name__)


def read_process_records() -> list[ProcessRecord]:
    """
    Read pid, parent pid and command name for every live process.

    Processes that exit or deny access mid-enumeration are skipped. Errors
    enumerating /proc itself propagate to the caller.
    """
    records: list[ProcessRecord] = []

    for proc in psutil.process_iter(attrs=["pid", "ppid", "name"]):
        try:
            info = proc.info
            records.append(
                ProcessRecord(
                    pid=info["pid"],
                    parent_pid=info.get("ppid") or 0,
                    command_name=info.get("name") or "",
                )
            )
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue

    return records


def read_process_details(pid: int) -> ProcessDetails:
    """
    Read details for one process.

    A process that has already gone away yields details holding only the pid.
    """
    try:
        proc = psutil.Process(pid)
        with proc.oneshot():
            parent_pid = proc.ppid()
            status = proc.status()
            owning_user = str(proc.uids().real)
            try:
                command_line = " ".join(proc.cmdline())
            except psutil.AccessDenied:
                command_line = ""
    except (psutil.NoSuchProcess, psutil.ZombieProcess, psutil.AccessDenied) as exc:
        log.debug("details_unavailable", pid=pid, error=type(exc).__name__)
        return ProcessDetails(pid=pid, parent_pid=None, owning_user="", command_line="", status="")

    return ProcessDetails(
        pid=pid,
        parent_pid=parent_pid,
        owning_user=owning_user,
        command_line=command_line,
        status=status,
    )


def is_alive(pid: int) -> bool:
    """Check whether pid is still running. Zombies count as dead."""
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except (psutil.NoSuchProcess, psutil.ZombieProcess):
        return False
    except psutil.AccessDenied:
        return True


def send_signal(pid: int, sig: signal.Signals) -> None:
    """
    Send sig to pid.

    Signalling a process that has already exited is a no-op.

    Raises:
        psutil.AccessDenied: If we are not allowed to signal the process.
    """
    try:
        psutil.Process(pid).send_signal(sig)
    except psutil.NoSuchProcess:
        log.debug("signal_target_gone", pid=pid, signal=sig.name)
