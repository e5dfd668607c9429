"""Decoding of raw exec records emitted by the kernel tracer."""

import ctypes as ct
from datetime import datetime

import structlog

from execmon.models import ProcessEvent

log = structlog.get_logger(__name__)

# Must match struct event in the BPF program (see execmon.source)
TASK_COMM_LEN = 16


class ExecEventData(ct.LittleEndianStructure):
    _fields_ = [
        ("pid", ct.c_uint32),
        ("_padding", ct.c_uint8 * 4),
        ("comm", ct.c_char * TASK_COMM_LEN),
    ]


RECORD_SIZE = ct.sizeof(ExecEventData)


def decode_event(raw: bytes, observed_at: datetime | None = None) -> ProcessEvent | None:
    """
    Decode one raw record into a ProcessEvent.

    Returns None for records shorter than RECORD_SIZE. Trailing bytes past the
    record layout are ignored.

    Args:
        raw: Raw perf buffer sample.
        observed_at: Timestamp to attach. Defaults to the current wall clock.
    """
    if len(raw) < RECORD_SIZE:
        log.debug("record_dropped", size=len(raw), expected=RECORD_SIZE)
        return None

    data = ExecEventData.from_buffer_copy(raw[:RECORD_SIZE])
    # c_char arrays stop at the first NUL, or keep all 16 bytes
    command_name = data.comm.decode("utf-8", "replace")

    return ProcessEvent(
        pid=data.pid,
        command_name=command_name,
        observed_at=observed_at or datetime.now(),
    )
