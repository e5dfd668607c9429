"""
Reactive core of the monitor.

``MonitorCore`` owns the recent-process buffer, the rate window, the latest
tree snapshot and the view state. It consumes one message at a time and
returns the side effects the UI shell has to carry out. It never blocks and
never touches threads; slow work (tree snapshots, termination) is requested
through effects and comes back later as messages.
"""

import sys
from collections.abc import Callable
from dataclasses import dataclass

from execmon.buffer import RecentProcessBuffer
from execmon.config import DEFAULT_CONFIG, MonitorConfig
from execmon.models import (
    NoSelection,
    ProcessDetails,
    ProcessEvent,
    ProcessNode,
    RecentProcessEntry,
    SelectedProcess,
    Selection,
    TerminationConfirmation,
    TerminationOutcome,
    ViewState,
)
from execmon.proc_info import read_process_details
from execmon.rates import RateAggregator
from execmon.tree import count_nodes

# Rows taken by margins, header panel, chart, list title and gaps. Only used
# until the body widget reports its real height.
CHROME_ROWS = 11
MIN_BODY_ROWS = 6
# The list and tree draw a title line above their rows
TITLE_ROWS = 1


# Messages


@dataclass(slots=True, frozen=True)
class NewProcessEvent:
    event: ProcessEvent


@dataclass(slots=True, frozen=True)
class Tick:
    pass


@dataclass(slots=True, frozen=True)
class Resize:
    width: int
    height: int


@dataclass(slots=True, frozen=True)
class BodyResize:
    """Measured height of the main area after layout."""

    rows: int


@dataclass(slots=True, frozen=True)
class KeyInput:
    """A key press, named the way Textual names keys ("enter", "ctrl+c", "x")."""

    key: str
    character: str | None = None

    def matches(self, bindings: tuple[str, ...]) -> bool:
        return self.key in bindings or (self.character is not None and self.character in bindings)


@dataclass(slots=True, frozen=True)
class TreeSnapshotResult:
    forest: list[ProcessNode]
    request_id: int


@dataclass(slots=True, frozen=True)
class TerminationResult:
    pid: int
    outcome: TerminationOutcome


CoreMessage = NewProcessEvent | Tick | Resize | BodyResize | KeyInput | TreeSnapshotResult | TerminationResult


# Effects


@dataclass(slots=True, frozen=True)
class RequestSnapshot:
    """Take a tree snapshot; the result must carry the same request_id."""

    request_id: int


@dataclass(slots=True, frozen=True)
class RequestTermination:
    pid: int
    grace_period: float


@dataclass(slots=True, frozen=True)
class QuitRequested:
    pass


Effect = RequestSnapshot | RequestTermination | QuitRequested


@dataclass(slots=True, frozen=True)
class KeyMap:
    """Key bindings, by Textual key name or typed character."""

    up: tuple[str, ...] = ("up", "k")
    down: tuple[str, ...] = ("down", "j")
    page_up: tuple[str, ...] = ("pageup",)
    page_down: tuple[str, ...] = ("pagedown",)
    home: tuple[str, ...] = ("home",)
    end: tuple[str, ...] = ("end",)
    search: tuple[str, ...] = ("slash",)
    clear_filter: tuple[str, ...] = ("escape",)
    select: tuple[str, ...] = ("enter",)
    toggle_view: tuple[str, ...] = ("t",)
    back: tuple[str, ...] = ("escape", "c")
    kill: tuple[str, ...] = ("x",)
    quit: tuple[str, ...] = ("q", "ctrl+c")
    help: tuple[str, ...] = ("question_mark",)
    confirm: tuple[str, ...] = ("y", "Y")
    cancel: tuple[str, ...] = ("n", "N", "escape")


DEFAULT_KEYS = KeyMap()


class MonitorCore:
    """State machine behind the terminal UI."""

    def __init__(
        self,
        config: MonitorConfig = DEFAULT_CONFIG,
        details_reader: Callable[[int], ProcessDetails] = read_process_details,
        keys: KeyMap = DEFAULT_KEYS,
    ) -> None:
        self._config = config
        self._read_details = details_reader
        self.keys = keys

        self.buffer = RecentProcessBuffer(config.buffer_capacity)
        self.rates = RateAggregator(config.history_length, config.rate_scale)
        self.view = ViewState.LIST
        self.forest: list[ProcessNode] = []
        self.details: ProcessDetails | None = None
        self.confirmation: TerminationConfirmation | None = None
        self.last_termination: TerminationResult | None = None
        self.ticks = 0

        # Snapshots run concurrently; only a result at least as new as the
        # one already shown may replace it.
        self._snapshots_requested = 0
        self._snapshot_shown = 0

        self.filter_text = ""
        self.filtering = False
        self.show_full_help = False
        self.cursor = 0  # Index into visible_entries()
        self.tree_offset = 0

        self.width = 80
        self.height = 24
        self._measured_body: int | None = None
        self.body_rows = self._compute_body_rows()

    @property
    def config(self) -> MonitorConfig:
        return self._config

    # Queries

    def _matches_filter(self, entry: RecentProcessEntry) -> bool:
        if not self.filter_text:
            return True
        needle = self.filter_text.lower()
        return needle in entry.command_name.lower() or needle in str(entry.pid)

    def visible_indices(self) -> list[int]:
        """Buffer indices of entries that pass the current filter."""
        return [i for i, entry in enumerate(self.buffer) if self._matches_filter(entry)]

    def visible_entries(self) -> list[RecentProcessEntry]:
        return [entry for entry in self.buffer if self._matches_filter(entry)]

    def selection(self) -> Selection:
        """The highlighted list entry, if any."""
        indices = self.visible_indices()
        if not indices:
            return NoSelection()
        index = indices[min(self.cursor, len(indices) - 1)]
        return SelectedProcess(entry=self.buffer[index], buffer_index=index)

    def list_window(self) -> tuple[int, list[RecentProcessEntry]]:
        """Visible slice of the list that keeps the cursor on screen.

        Returns:
            (index of the first row, entries to draw)
        """
        visible = self.visible_entries()
        rows = self.body_rows
        cursor = min(self.cursor, max(len(visible) - 1, 0))
        start = max(0, min(cursor - rows // 2, len(visible) - rows))
        return start, visible[start : start + rows]

    # Message handling

    def request_snapshot(self) -> RequestSnapshot:
        self._snapshots_requested += 1
        return RequestSnapshot(self._snapshots_requested)

    def handle(self, message: CoreMessage) -> list[Effect]:
        """Apply one message and return the effects to run."""
        match message:
            case NewProcessEvent(event=event):
                self._on_process(event)
                return []
            case Tick():
                self.rates.tick()
                self.ticks += 1
                return []
            case Resize(width=width, height=height):
                self.width = width
                self.height = height
                self.body_rows = self._compute_body_rows()
                self._clamp_tree_offset()
                return []
            case BodyResize(rows=rows):
                self._measured_body = rows
                self.body_rows = self._compute_body_rows()
                self._clamp_tree_offset()
                return []
            case KeyInput():
                return self._on_key(message)
            case TreeSnapshotResult(forest=forest, request_id=request_id):
                if request_id < self._snapshot_shown:
                    return []
                # Stored even if the tree view is no longer shown
                self._snapshot_shown = request_id
                self.forest = forest
                self._clamp_tree_offset()
                return []
            case TerminationResult():
                self.last_termination = message
                return []
        raise TypeError(f"Unknown message: {message!r}")

    def _on_process(self, event: ProcessEvent) -> None:
        evicted = self.buffer.insert(RecentProcessEntry.from_event(event))
        self.rates.record_event()
        # Keep the highlight on the same entry when the list shifts up
        if evicted is not None and self.cursor > 0 and self._matches_filter(evicted):
            self.cursor -= 1

    def _on_key(self, key: KeyInput) -> list[Effect]:
        if self.confirmation is not None:
            return self._on_confirmation_key(key, self.confirmation)

        if self.view is ViewState.LIST and self.filtering:
            self._on_filter_key(key)
            return []

        if key.matches(self.keys.help):
            self.show_full_help = not self.show_full_help
            self.body_rows = self._compute_body_rows()
            return []

        if self.view is ViewState.LIST:
            return self._on_list_key(key)
        return self._on_secondary_view_key(key)

    def _on_confirmation_key(self, key: KeyInput, confirmation: TerminationConfirmation) -> list[Effect]:
        if key.matches(self.keys.confirm):
            target = confirmation.target
            self.confirmation = None
            index = self.buffer.index_of(target)
            if index is not None:
                self.buffer.remove_at(index)
                self._clamp_cursor()
            return [RequestTermination(pid=target.pid, grace_period=self._config.grace_period)]

        if key.matches(self.keys.cancel):
            self.confirmation = None
        return []

    def _on_filter_key(self, key: KeyInput) -> None:
        if key.key == "escape":
            self.filter_text = ""
            self.filtering = False
        elif key.key == "enter":
            self.filtering = False
        elif key.key == "backspace":
            self.filter_text = self.filter_text[:-1]
        elif key.character is not None and key.character.isprintable():
            self.filter_text += key.character
        self.cursor = 0

    def _on_list_key(self, key: KeyInput) -> list[Effect]:
        keys = self.keys
        if key.matches(keys.quit):
            return [QuitRequested()]

        if key.matches(keys.toggle_view):
            self.view = ViewState.TREE
            self.tree_offset = 0
            return [self.request_snapshot()]

        if key.matches(keys.select):
            match self.selection():
                case SelectedProcess(entry=entry):
                    self.details = self._read_details(entry.pid)
                    self.view = ViewState.DETAILS
                case NoSelection():
                    pass
            return []

        if key.matches(keys.kill):
            match self.selection():
                case SelectedProcess(entry=entry):
                    self.confirmation = TerminationConfirmation(
                        target=entry,
                        prompt=f"Kill PID {entry.pid} ({entry.command_name})?",
                    )
                case NoSelection():
                    pass
            return []

        if key.matches(keys.search):
            self.filtering = True
            return []

        if key.matches(keys.clear_filter) and self.filter_text:
            self.filter_text = ""
            self.cursor = 0
            return []

        delta = self._movement(key)
        if delta is not None:
            self.cursor = self.cursor + delta
            self._clamp_cursor()
        return []

    def _on_secondary_view_key(self, key: KeyInput) -> list[Effect]:
        keys = self.keys
        if key.matches(keys.back) or (self.view is ViewState.TREE and key.matches(keys.toggle_view)):
            self.view = ViewState.LIST
            return []

        if key.matches(keys.quit):
            return [QuitRequested()]

        if self.view is ViewState.TREE:
            delta = self._movement(key)
            if delta is not None:
                self.tree_offset = self.tree_offset + delta
                self._clamp_tree_offset()
        return []

    # Geometry

    def _movement(self, key: KeyInput) -> int | None:
        keys = self.keys
        if key.matches(keys.up):
            return -1
        if key.matches(keys.down):
            return 1
        if key.matches(keys.page_up):
            return -self.body_rows
        if key.matches(keys.page_down):
            return self.body_rows
        if key.matches(keys.home):
            return -sys.maxsize
        if key.matches(keys.end):
            return sys.maxsize
        return None

    def _compute_body_rows(self) -> int:
        if self._measured_body is not None:
            return max(1, self._measured_body - TITLE_ROWS)
        help_rows = 3 if self.show_full_help else 1
        available = self.height - CHROME_ROWS - help_rows
        return max(MIN_BODY_ROWS, min(available, self.height))

    def _clamp_cursor(self) -> None:
        last = max(len(self.visible_indices()) - 1, 0)
        self.cursor = max(0, min(self.cursor, last))

    def _clamp_tree_offset(self) -> None:
        last = max(count_nodes(self.forest) - self.body_rows, 0)
        self.tree_offset = max(0, min(self.tree_offset, last))
