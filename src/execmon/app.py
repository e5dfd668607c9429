"""execmon - Main Textual application."""

from collections.abc import Callable

import structlog
from textual import events, work
from textual.app import App, ComposeResult, ScreenStackError
from textual.css.query import NoMatches
from textual.message import Message
from textual.widgets import Static

from execmon.config import DEFAULT_CONFIG, MonitorConfig
from execmon.core import (
    BodyResize,
    CoreMessage,
    Effect,
    KeyInput,
    MonitorCore,
    NewProcessEvent,
    QuitRequested,
    RequestSnapshot,
    RequestTermination,
    Resize,
    TerminationResult,
    Tick,
    TreeSnapshotResult,
)
from execmon.models import ProcessDetails, ProcessEvent, ProcessNode, TerminationOutcome, ViewState
from execmon.monitor import EventMonitor
from execmon.proc_info import read_process_details
from execmon.render import DEFAULT_THEME, Theme, render_body, render_chart, render_header, render_help
from execmon.source import EventSource
from execmon.terminator import terminate
from execmon.tree import take_snapshot

log = structlog.get_logger(__name__)


class CoreInput(Message):
    """Carries one core message through the app's ordered message queue."""

    def __init__(self, payload: CoreMessage) -> None:
        super().__init__()
        self.payload = payload


class BodyView(Static):
    """Main area; reports its laid-out height so the core sizes lists to fit."""

    def on_resize(self, event: events.Resize) -> None:
        self.post_message(CoreInput(BodyResize(event.size.height)))


class ExecMonApp(App, inherit_bindings=False):
    """Main execmon application."""

    TITLE = "execmon"
    SUB_TITLE = "Kernel Process Monitor"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        layout: vertical;
        padding: 1 0;
    }

    #header {
        height: auto;
    }

    #chart {
        height: 2;
        margin-bottom: 1;
    }

    #body {
        height: 1fr;
    }

    #help {
        height: auto;
        margin-top: 1;
    }
    """

    def __init__(
        self,
        source: EventSource | None = None,
        config: MonitorConfig = DEFAULT_CONFIG,
        palette: Theme = DEFAULT_THEME,
        details_reader: Callable[[int], ProcessDetails] = read_process_details,
        snapshotter: Callable[[], list[ProcessNode]] = take_snapshot,
        terminator: Callable[[int, float], TerminationOutcome] = terminate,
    ) -> None:
        """
        Initialize the ExecMonApp.

        Args:
            source: Kernel event source. Without one the app shows no new
                processes but everything else works.
            config: Runtime parameters.
            palette: Colours used by the renderers.
        """
        super().__init__()
        self._settings = config
        self._palette = palette
        self._snapshotter = snapshotter
        self._terminator = terminator
        self._core = MonitorCore(config, details_reader)
        self._monitor = EventMonitor(source, self._forward_event) if source is not None else None

    @property
    def core(self) -> MonitorCore:
        return self._core

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Static(id="header")
        yield Static(id="chart")
        yield BodyView(id="body")
        yield Static(id="help")

    def on_mount(self) -> None:
        """Start reading kernel events and the rate timer."""
        if self._monitor is not None:
            self._monitor.start()
        self.set_interval(self._settings.tick_interval, self._on_tick)
        self._apply(self._core.request_snapshot())
        self._refresh_view()

    def _forward_event(self, event: ProcessEvent) -> None:
        """Called on the reader thread; post_message is thread-safe."""
        self.post_message(CoreInput(NewProcessEvent(event)))

    def _on_tick(self) -> None:
        self._dispatch(Tick())

    def on_core_input(self, message: CoreInput) -> None:
        self._dispatch(message.payload)

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self._dispatch(KeyInput(event.key, event.character))

    def on_resize(self, event: events.Resize) -> None:
        self._dispatch(Resize(event.size.width, event.size.height))

    def _dispatch(self, message: CoreMessage) -> None:
        """Feed one message to the core, run its effects and redraw."""
        for effect in self._core.handle(message):
            self._apply(effect)
        self._refresh_view()

    def _apply(self, effect: Effect) -> None:
        match effect:
            case RequestSnapshot(request_id=request_id):
                self._run_snapshot(request_id)
            case RequestTermination(pid=pid, grace_period=grace_period):
                log.info("termination_requested", pid=pid)
                self._run_termination(pid, grace_period)
            case QuitRequested():
                self._stop_monitor()
                self.exit()

    @work(thread=True, group="snapshot")
    def _run_snapshot(self, request_id: int) -> None:
        forest = self._snapshotter()
        self.post_message(CoreInput(TreeSnapshotResult(forest, request_id)))

    @work(thread=True, group="terminate")
    def _run_termination(self, pid: int, grace_period: float) -> None:
        outcome = self._terminator(pid, grace_period)
        self.post_message(CoreInput(TerminationResult(pid, outcome)))

    def _stop_monitor(self) -> None:
        if self._monitor is not None and self._monitor.is_running:
            self._monitor.stop()

    def _refresh_view(self) -> None:
        """Redraw every region from the core state."""
        core = self._core
        try:
            header = self.query_one("#header", Static)
            chart = self.query_one("#chart", Static)
            body = self.query_one("#body", Static)
            help_line = self.query_one("#help", Static)
        except (NoMatches, ScreenStackError):
            return  # Not composed yet

        show_activity = core.view is not ViewState.DETAILS and core.confirmation is None
        header.display = show_activity
        chart.display = show_activity
        if show_activity:
            header.update(render_header(core.rates.current_rate, self._palette, self._settings, core.ticks))
            chart.update(render_chart(core.rates.history, self._palette))
        body.update(render_body(core, self._palette))
        help_line.update(render_help(core, self._palette))
