"""Rich renderables for each part of the screen."""

from collections.abc import Sequence
from dataclasses import dataclass

from rich.align import Align
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from execmon.config import DEFAULT_CONFIG, MonitorConfig
from execmon.core import MonitorCore, TerminationResult
from execmon.models import ProcessDetails, ProcessNode, TerminationOutcome, ViewState

SPARK_TICKS = " ▂▃▄▅▆▇█"
SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


@dataclass(slots=True, frozen=True)
class Theme:
    """Colour palette, built once at startup and passed to every renderer."""

    fg: str = "#E6E6E6"
    muted: str = "#9AA4AF"
    accent: str = "#7C6DF8"
    warn: str = "#FFD166"
    danger: str = "#FF5D5D"
    ok: str = "#44D18D"
    border: str = "#2B2F36"
    chart: str = "#6699CC"
    pill_fg: str = "#0B0C0F"
    modal_bg: str = "#0B0E14"

    @property
    def pill(self) -> str:
        return f"bold {self.pill_fg} on {self.accent}"


DEFAULT_THEME = Theme()


def rate_style(rate: int, theme: Theme, config: MonitorConfig = DEFAULT_CONFIG) -> str:
    """Colour for the processes/second figure."""
    if rate > config.rate_danger:
        return f"bold {theme.danger}"
    if rate > config.rate_warn:
        return f"bold {theme.warn}"
    return f"bold {theme.ok}"


def spinner_frame(ticks: int) -> str:
    return SPINNER_FRAMES[ticks % len(SPINNER_FRAMES)]


def render_header(rate: int, theme: Theme, config: MonitorConfig = DEFAULT_CONFIG, ticks: int = 0) -> Panel:
    """Title with a spinner that moves on every tick, and the current rate."""
    title = Text(spinner_frame(ticks), style=theme.accent)
    title.append(" ")
    title.append(" execmon · kernel process monitor ", style=theme.pill)
    stats = Text("Activity | Rate: ", style=theme.muted)
    stats.append(f"{rate} p/s", style=rate_style(rate, theme, config))
    return Panel(
        Group(Align.center(title), Align.center(stats)),
        border_style=theme.border,
        padding=(0, 1),
    )


def sparkline(history: Sequence[int]) -> str:
    """One glyph per sample, scaled to the largest sample in the window."""
    peak = max(history, default=0)
    if peak <= 0:
        return SPARK_TICKS[0] * len(history)
    top = len(SPARK_TICKS) - 1
    return "".join(SPARK_TICKS[value * top // peak] for value in history)


def render_chart(history: Sequence[int], theme: Theme) -> Text:
    chart = Text(" Activity ", style=theme.pill)
    chart.append("\n")
    chart.append(sparkline(history), style=theme.chart)
    return chart


def format_termination(result: TerminationResult) -> str:
    """Status line text for the last termination."""
    if result.outcome is TerminationOutcome.EXITED:
        return f"PID {result.pid} exited"
    if result.outcome is TerminationOutcome.KILLED:
        return f"PID {result.pid} killed"
    return f"PID {result.pid}: permission denied"


def render_list(core: MonitorCore, theme: Theme) -> Text:
    """Title line plus the rows of the recent-process list around the cursor."""
    visible_count = len(core.visible_entries())
    start, window = core.list_window()
    cursor = min(core.cursor, max(visible_count - 1, 0))

    text = Text(" Recent Processes ", style=theme.pill)
    text.append(f"  {visible_count} items", style=theme.muted)
    if core.filtering or core.filter_text:
        caret = "▏" if core.filtering else ""
        text.append(f"  filter: {core.filter_text}{caret}", style=theme.accent)
    if core.last_termination is not None:
        text.append(f"  {format_termination(core.last_termination)}", style=theme.muted)

    if not window:
        text.append("\n")
        text.append("No matches" if core.filter_text else "Waiting for processes...", style=theme.muted)
        return text

    for offset, entry in enumerate(window):
        selected = start + offset == cursor
        marker = "│ " if selected else "  "
        row = (
            f"{marker}{entry.pid:<10d} {entry.command_name:<16} "
            f"{entry.observed_at.strftime('%H:%M:%S.%f')[:-3]}"
        )
        text.append("\n")
        text.append(row, style=f"bold {theme.accent}" if selected else theme.fg)
    return text


def tree_lines(forest: Sequence[ProcessNode], theme: Theme) -> list[Text]:
    """Draw a forest with box-drawing branches, one line per process."""
    lines: list[Text] = []

    def walk(node: ProcessNode, prefix: str, is_last: bool) -> None:
        branch, extension = ("└── ", "    ") if is_last else ("├── ", "│   ")
        line = Text(prefix + branch)
        line.append(node.command_name, style="bold")
        line.append(f" ({node.pid})", style=theme.muted)
        lines.append(line)
        for i, child in enumerate(node.children):
            walk(child, prefix + extension, i == len(node.children) - 1)

    for i, root in enumerate(forest):
        walk(root, "", i == len(forest) - 1)
    return lines


def render_tree(core: MonitorCore, theme: Theme) -> Text:
    text = Text(" Process Tree ", style=theme.pill)
    lines = tree_lines(core.forest, theme)
    if not lines:
        text.append("\n")
        text.append("no data", style=theme.muted)
        return text

    text.append(f"  {len(lines)} processes", style=theme.muted)
    for line in lines[core.tree_offset : core.tree_offset + core.body_rows]:
        text.append("\n")
        text.append_text(line)
    return text


def render_details(details: ProcessDetails | None, theme: Theme) -> RenderableType:
    if details is None:
        return Text("No process selected", style=theme.muted)

    table = Table.grid(padding=(0, 1))
    table.add_column(style=theme.muted, width=14)
    table.add_column(style=theme.fg)
    table.add_row("PID:", str(details.pid))
    table.add_row("PPID:", "-" if details.parent_pid is None else str(details.parent_pid))
    table.add_row("User:", details.owning_user or "-")
    table.add_row("Status:", details.status or "-")
    table.add_row("Cmd:", details.command_line or "-")
    return Group(Text(" Process Details ", style=theme.pill), Text(""), table)


def render_confirmation(prompt: str, theme: Theme) -> Align:
    body = Text(prompt, style=f"bold {theme.fg}")
    body.append("\n\n")
    body.append("y confirm • n cancel", style=theme.muted)
    box = Panel(
        body,
        border_style=theme.border,
        style=f"on {theme.modal_bg}",
        padding=(1, 2),
        expand=False,
    )
    return Align.center(box, vertical="middle")


def render_body(core: MonitorCore, theme: Theme) -> RenderableType:
    """Main area for the current view."""
    if core.confirmation is not None:
        return render_confirmation(core.confirmation.prompt, theme)
    if core.view is ViewState.DETAILS:
        return render_details(core.details, theme)
    if core.view is ViewState.TREE:
        return render_tree(core, theme)
    return render_list(core, theme)


# (key label, description, views it applies to)
HELP_COLUMNS: list[list[tuple[str, str, frozenset[ViewState]]]] = [
    [
        ("↑/k", "up", frozenset({ViewState.LIST, ViewState.TREE})),
        ("↓/j", "down", frozenset({ViewState.LIST, ViewState.TREE})),
        ("/", "filter", frozenset({ViewState.LIST})),
    ],
    [
        ("enter", "details", frozenset({ViewState.LIST})),
        ("t", "tree/list", frozenset({ViewState.LIST, ViewState.TREE})),
        ("c", "back", frozenset({ViewState.DETAILS, ViewState.TREE})),
    ],
    [
        ("x", "kill", frozenset({ViewState.LIST})),
        ("q", "quit", frozenset(ViewState)),
        ("?", "help", frozenset(ViewState)),
    ],
]


def _help_item(label: str, description: str, theme: Theme) -> Text:
    item = Text(label, style=f"bold {theme.muted}")
    item.append(f" {description}", style=theme.muted)
    return item


def render_help(core: MonitorCore, theme: Theme) -> RenderableType:
    """Key help for the current view; a column layout when full help is on."""
    if core.confirmation is not None:
        return Text.assemble(_help_item("y", "confirm", theme), " • ", _help_item("n", "cancel", theme))
    if core.view is ViewState.LIST and core.filtering:
        return Text.assemble(_help_item("enter", "apply", theme), " • ", _help_item("esc", "clear", theme))

    columns = [
        [_help_item(label, desc, theme) for label, desc, views in column if core.view in views]
        for column in HELP_COLUMNS
    ]

    if not core.show_full_help:
        return Text(" • ", style=theme.muted).join(item for column in columns for item in column)

    table = Table.grid(padding=(0, 4))
    for _ in columns:
        table.add_column()
    for row in range(max(len(column) for column in columns)):
        table.add_row(*(column[row] if row < len(column) else Text("") for column in columns))
    return table
