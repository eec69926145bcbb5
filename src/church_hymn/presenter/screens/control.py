"""Presenter control screen.

Lists the hymns of the active service and the queue, shows the session
status, and mirrors the projector output in a preview panel.
"""

from typing import Optional

from rich.align import Align
from rich.panel import Panel
from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Header, Label, Static

from church_hymn.presenter.db.models import Hymn
from church_hymn.presenter.errors import PresentationError
from church_hymn.presenter.logging_config import get_logger
from church_hymn.presenter.services.display_watcher import DisplayInfo, StaticProbe
from church_hymn.presenter.services.queue import HymnQueue, QueueStatus
from church_hymn.presenter.services.scheduler import AutoPresentScheduler
from church_hymn.presenter.services.session import HymnSource, WorshipSessionCoordinator
from church_hymn.presenter.services.surface import Background, OutputSurface, SurfaceContent, SurfaceError
from church_hymn.presenter.state import PresentationState

logger = get_logger(__name__)

VERSE_KEYS = "123456789"

_STATUS_PROPERTIES = (
    "display_state",
    "display_description",
    "current_hymn_title",
    "verse_label",
    "is_session_active",
    "presented_hymns",
    "auto_present_countdown",
    "auto_advance_countdown",
)


class PreviewSurface(OutputSurface):
    """Output surface rendered into a Static widget of the control screen.

    Stands in for the projector window: the console shows exactly what
    the audience would see.
    """

    def __init__(self):
        self.widget: Optional[Static] = None
        self._open = False
        self._content: Optional[SurfaceContent] = None
        self._display: Optional[DisplayInfo] = None

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def content(self) -> Optional[SurfaceContent]:
        return self._content

    def attach(self, widget: Static) -> None:
        self.widget = widget
        self._paint()

    def create(self, display: DisplayInfo) -> None:
        self._open = True
        self._display = display
        self._content = None
        self._paint()

    async def set_content(self, content: SurfaceContent) -> None:
        if not self._open:
            raise SurfaceError("preview surface is not open")
        self._content = content
        self._paint()

    async def clear(self) -> None:
        self._content = None
        self._paint()

    def destroy(self) -> None:
        self._open = False
        self._content = None
        self._display = None
        self._paint()

    def _paint(self) -> None:
        if self.widget is None:
            return
        if not self._open:
            self.widget.update(Panel(Align.center(Text("No external display", style="dim")), title="Projector"))
            return

        title = f"Projector - {self._display.name}" if self._display else "Projector"
        content = self._content
        if content is None:
            body = Text("")
        elif isinstance(content, Background):
            body = Text(f"~ {content.image} ~", style="italic cyan")
        else:
            body = Text()
            body.append(f"{content.hymn_title}\n", style="bold")
            body.append(f"{content.label}\n\n", style="yellow")
            body.append(content.text)
            if content.copyright:
                body.append(f"\n\n{content.copyright}", style="dim")
        self.widget.update(Panel(Align.center(body, vertical="middle"), title=title, subtitle=self._subtitle()))

    def _subtitle(self) -> str:
        content = self._content
        if content is None or isinstance(content, Background):
            return ""
        return f"{content.index + 1}/{content.total}"


class ControlScreen(Screen):
    """Main console screen for the worship leader."""

    BINDINGS = [
        ("c", "connect", "Connect"),
        ("d", "toggle_display", "Sim Display"),
        ("w", "toggle_session", "Worship"),
        ("p", "present", "Present"),
        Binding("right", "next_verse", "Next", priority=True),
        Binding("left", "previous_verse", "Prev", priority=True),
        *[
            Binding(key, f"go_to_verse({index})", f"Slide {index + 1}", show=False)
            for index, key in enumerate(VERSE_KEYS)
        ],
        ("s", "stop_hymn", "Stop Hymn"),
        ("a", "queue_hymn", "Queue"),
        ("n", "present_next", "Next in Queue"),
        ("k", "skip_queue", "Skip"),
        ("t", "toggle_auto_present", "Auto-Present"),
        ("x", "cancel_timers", "Cancel Timers"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        state: PresentationState,
        coordinator: WorshipSessionCoordinator,
        source: HymnSource,
        queue: HymnQueue,
        auto_present: AutoPresentScheduler,
        preview: PreviewSurface,
    ):
        """Initialize the screen.

        Args:
            state: Presentation state
            coordinator: Worship session coordinator
            source: Hymn library
            queue: Hymn queue
            auto_present: Auto-present scheduler
            preview: Preview surface to attach to the projector panel
        """
        super().__init__()
        self.state = state
        self.coordinator = coordinator
        self.source = source
        self.queue = queue
        self.auto_present = auto_present
        self.preview = preview
        self.hymns: list[Hymn] = []

    def compose(self) -> ComposeResult:
        """Compose the screen layout."""
        yield Header()

        with Horizontal():
            with Vertical(id="left_pane"):
                yield Label("[bold]Active Service[/bold]", id="service_title")
                table = DataTable(id="hymn_table", cursor_type="row")
                table.add_columns("#", "Title", "Key", "Parts")
                yield table

                yield Label("[bold]Queue[/bold]", id="queue_title")
                queue_table = DataTable(id="queue_table", cursor_type="row")
                queue_table.add_columns("Title", "Status")
                yield queue_table

            with Vertical(id="right_pane"):
                yield Static(id="status_panel")
                yield Static(id="preview_panel")

        yield Footer()

    def on_mount(self) -> None:
        """Handle mount event."""
        logger.info("ControlScreen mounted")
        self.preview.attach(self.query_one("#preview_panel", Static))
        for name in _STATUS_PROPERTIES:
            self.state.add_listener(name, self._on_state_change)
        self.state.add_listener("error_message", self._on_error)
        self.state.add_listener("warning_message", self._on_warning)
        self._load_hymns()
        self._render_status()
        self._render_queue()

    def on_unmount(self) -> None:
        for name in _STATUS_PROPERTIES:
            self.state.remove_listener(name, self._on_state_change)
        self.state.remove_listener("error_message", self._on_error)
        self.state.remove_listener("warning_message", self._on_warning)

    def _load_hymns(self) -> None:
        """Load the hymns of the active service."""
        service = self.source.get_active_service()
        self.hymns = self.source.list_active_service_hymns()

        title = self.query_one("#service_title", Label)
        if service is None:
            title.update("[bold]Active Service[/bold] [dim](none)[/dim]")
        else:
            title.update(f"[bold]{service.title}[/bold] [dim]{service.date or ''}[/dim]")

        table = self.query_one("#hymn_table", DataTable)
        table.clear()
        for hymn in self.hymns:
            table.add_row(
                str(hymn.number or ""),
                hymn.title,
                hymn.musical_key or "",
                str(len(hymn.blocks)),
                key=hymn.id,
            )
        logger.debug(f"Loaded {len(self.hymns)} service hymns")

    def _selected_hymn(self) -> Optional[Hymn]:
        table = self.query_one("#hymn_table", DataTable)
        if table.cursor_row is None or not self.hymns:
            return None
        rows = list(table.rows.keys())
        if table.cursor_row >= len(rows):
            return None
        hymn_id = rows[table.cursor_row].value
        return next((hymn for hymn in self.hymns if hymn.id == hymn_id), None)

    # State rendering

    def _on_state_change(self, _value) -> None:
        self._render_status()
        self._render_queue()

    def _on_error(self, message: Optional[str]) -> None:
        if message:
            self.notify(message, severity="error")

    def _on_warning(self, message: Optional[str]) -> None:
        if message:
            self.notify(message, severity="warning")

    def _render_status(self) -> None:
        state = self.state
        lines = [
            f"[bold]Display:[/bold] {state.display_state.display_name}",
            f"[dim]{state.display_description or 'No external display'}[/dim]",
            f"[bold]Session:[/bold] {state.session_status}",
        ]
        if state.current_hymn_title:
            lines.append(f"[bold]Hymn:[/bold] {state.current_hymn_title}")
            lines.append(f"[bold]Verse:[/bold] {state.verse_label} ({state.verse_index + 1}/{state.verse_total})")
        if state.presented_hymns:
            lines.append(f"[bold]Presented:[/bold] {', '.join(state.presented_hymns)}")
        if state.auto_present_countdown is not None:
            lines.append(f"[yellow]Auto-present in {state.auto_present_countdown}s[/yellow]")
        if state.auto_advance_countdown is not None:
            lines.append(f"[yellow]Next in queue in {state.auto_advance_countdown}s[/yellow]")
        auto = "on" if self.auto_present.enabled else "off"
        lines.append(f"[dim]Auto-present: {auto} ({self.auto_present.delay}s)[/dim]")

        self.query_one("#status_panel", Static).update(Panel("\n".join(lines), title="Status"))

    def _render_queue(self) -> None:
        table = self.query_one("#queue_table", DataTable)
        table.clear()
        for item in self.queue.items:
            marker = "> " if item.status is QueueStatus.PRESENTING else ""
            table.add_row(f"{marker}{item.hymn.title}", item.status.display_name, key=item.id)

    async def _run(self, intent, *args, success: Optional[str] = None) -> bool:
        """Run a coordinator intent and report errors as notifications."""
        try:
            await intent(*args)
        except PresentationError as e:
            logger.warning(f"{intent.__name__} failed: {e.message}")
            message = e.message
            if e.recovery_suggestion:
                message = f"{message}\n{e.recovery_suggestion}"
            self.notify(message, severity="error")
            return False
        if success:
            self.notify(success)
        return True

    # Events

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        """Start the auto-present countdown for the highlighted hymn."""
        if event.data_table.id != "hymn_table":
            return
        hymn = self._selected_hymn()
        if hymn is None:
            return
        if not self.auto_present.start_timer(hymn):
            self.auto_present.cancel()

    async def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Present the hymn under the cursor."""
        if event.data_table.id == "hymn_table":
            await self.action_present()

    # Actions

    async def action_connect(self) -> None:
        await self._run(self.coordinator.connect, success="Connected to external display")

    async def action_toggle_display(self) -> None:
        """Attach or detach the simulated display."""
        probe = self.coordinator.watcher.probe
        if not isinstance(probe, StaticProbe):
            self.notify("Simulated display is only available with the static probe", severity="warning")
            return
        if probe.displays:
            probe.detach()
        else:
            probe.attach()
        await self.coordinator.watcher.refresh()

    async def action_toggle_session(self) -> None:
        if self.coordinator.is_session_active:
            await self._run(self.coordinator.stop_session, success="Worship session ended")
        else:
            await self._run(self.coordinator.start_session, success="Worship session started")
        self._render_queue()

    async def action_present(self) -> None:
        hymn = self._selected_hymn()
        if hymn is None:
            self.notify("No hymn selected", severity="warning")
            return
        self.auto_present.cancel()
        await self._run(self.coordinator.present_or_switch, hymn)

    async def action_next_verse(self) -> None:
        await self._run(self.coordinator.next_verse)

    async def action_previous_verse(self) -> None:
        await self._run(self.coordinator.previous_verse)

    async def action_go_to_verse(self, index: int) -> None:
        """Jump to a slide of the hymn on screen (digit keys, 1-based)."""
        await self._run(self.coordinator.go_to_verse, index)

    async def action_stop_hymn(self) -> None:
        await self._run(self.coordinator.stop_presentation)

    def action_queue_hymn(self) -> None:
        hymn = self._selected_hymn()
        if hymn is None:
            self.notify("No hymn selected", severity="warning")
            return
        if self.queue.add(hymn) is None:
            self.notify(f"'{hymn.title}' is already waiting in the queue", severity="warning")
        else:
            self.notify(f"Queued '{hymn.title}'")
        self._render_queue()

    async def action_present_next(self) -> None:
        if not self.queue.has_next():
            self.notify("Queue is empty", severity="warning")
            return
        await self._run(self.queue.present_next)
        self._render_queue()

    async def action_skip_queue(self) -> None:
        await self._run(self.queue.skip_current)
        self._render_queue()

    def action_toggle_auto_present(self) -> None:
        enabled = self.auto_present.toggle()
        self.notify(f"Auto-present {'enabled' if enabled else 'disabled'}")
        self._render_status()

    def action_cancel_timers(self) -> None:
        self.auto_present.cancel()
        self.queue.cancel_auto_advance()
        self.notify("Timers cancelled")

    async def action_quit(self) -> None:
        await self.app.action_quit()
