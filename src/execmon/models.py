"""Data models for execmon."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(slots=True, frozen=True)
class ProcessEvent:
    """A single process creation observed by the kernel tracer."""

    pid: int
    command_name: str  # At most 16 bytes in the kernel record
    observed_at: datetime


@dataclass(slots=True, frozen=True)
class RecentProcessEntry:
    """Row of the recent-process list, built from a ProcessEvent."""

    pid: int
    command_name: str
    observed_at: datetime

    @classmethod
    def from_event(cls, event: ProcessEvent) -> "RecentProcessEntry":
        """Wrap a ProcessEvent for display."""
        return cls(pid=event.pid, command_name=event.command_name, observed_at=event.observed_at)


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """One row of process metadata used to build the process tree."""

    pid: int
    parent_pid: int
    command_name: str


@dataclass(slots=True)
class ProcessNode:
    """Node of a process forest. Each node owns its children."""

    pid: int
    parent_pid: int
    command_name: str
    children: list["ProcessNode"] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class ProcessDetails:
    """Point-in-time read of a single process."""

    pid: int
    parent_pid: int | None
    owning_user: str  # Real uid
    command_line: str
    status: str  # 'running', 'sleeping', 'zombie', etc.


class ViewState(Enum):
    """Mutually exclusive top-level views."""

    LIST = "list"
    DETAILS = "details"
    TREE = "tree"


class TerminationOutcome(Enum):
    """How a termination request ended."""

    EXITED = "exited"  # Died after the graceful signal
    KILLED = "killed"  # Forceful signal was sent
    DENIED = "denied"  # Not permitted to signal the process


@dataclass(slots=True, frozen=True)
class TerminationConfirmation:
    """Pending y/n prompt for killing a process."""

    target: RecentProcessEntry
    prompt: str


@dataclass(slots=True, frozen=True)
class SelectedProcess:
    """The highlighted list row."""

    entry: RecentProcessEntry
    buffer_index: int


@dataclass(slots=True, frozen=True)
class NoSelection:
    """Nothing is highlighted (empty or fully filtered list)."""


Selection = SelectedProcess | NoSelection
