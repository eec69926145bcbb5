"""Main TUI application for the Church Hymn presenter.

Textual console for worship leaders to present the hymns of the active
service on a secondary display and run worship sessions.
"""

from dataclasses import dataclass
from typing import Optional

from textual import events
from textual.app import App

from church_hymn.presenter.config import AppConfig
from church_hymn.presenter.db.read_client import HymnReadClient
from church_hymn.presenter.errors import PresentationError
from church_hymn.presenter.logging_config import get_logger
from church_hymn.presenter.screens.control import ControlScreen, PreviewSurface
from church_hymn.presenter.services.display_watcher import (
    DisplayProbe,
    DisplayWatcher,
    StaticProbe,
    XrandrProbe,
)
from church_hymn.presenter.services.queue import HymnQueue
from church_hymn.presenter.services.scheduler import AutoPresentScheduler
from church_hymn.presenter.services.session import HymnSource, WorshipSessionCoordinator
from church_hymn.presenter.services.snapshot import SnapshotStore
from church_hymn.presenter.services.state_machine import PresentationStateMachine
from church_hymn.presenter.services.surface import OutputSurface
from church_hymn.presenter.state import PresentationState

logger = get_logger(__name__)


@dataclass
class Presenter:
    """The wired presentation engine."""

    state: PresentationState
    watcher: DisplayWatcher
    machine: PresentationStateMachine
    store: SnapshotStore
    coordinator: WorshipSessionCoordinator
    auto_present: AutoPresentScheduler
    queue: HymnQueue


def build_presenter(
    config: AppConfig,
    surface: OutputSurface,
    probe: DisplayProbe,
    source: HymnSource,
    tick_seconds: float = 1.0,
) -> Presenter:
    """Wire the presentation engine.

    Args:
        config: Application configuration
        surface: Output surface for the secondary display
        probe: Display probe
        source: Hymn library
        tick_seconds: Countdown step length (shortened in tests)

    Returns:
        Presenter bundle
    """
    state = PresentationState()
    watcher = DisplayWatcher(probe, poll_interval=config.poll_interval_seconds)
    machine = PresentationStateMachine(
        surface,
        watcher,
        background_image=config.background_image,
        max_history=config.max_transition_history,
    )
    store = SnapshotStore(config.snapshot_path, max_age_minutes=config.snapshot_max_age_minutes)
    coordinator = WorshipSessionCoordinator(machine, watcher, source, store, state)
    auto_present = AutoPresentScheduler(
        coordinator,
        state,
        delay=config.auto_present_delay_seconds,
        enabled=config.auto_present_enabled,
        tick_seconds=tick_seconds,
    )
    queue = HymnQueue(
        coordinator,
        state,
        auto_advance_enabled=config.auto_advance_enabled,
        auto_advance_delay=config.auto_advance_delay_seconds,
        tick_seconds=tick_seconds,
    )
    return Presenter(state, watcher, machine, store, coordinator, auto_present, queue)


class PresenterApp(App):
    """Church Hymn presenter console.

    Drives the projector from the active service's hymn list and
    restores the worship session whenever the console regains focus.
    """

    CSS_PATH = "screens/app.tcss"
    TITLE = "Church Hymn"
    SUB_TITLE = "Presenter"

    def __init__(self, config: AppConfig, static_display: bool = False, *args, **kwargs):
        """Initialize the application.

        Args:
            config: Application configuration
            static_display: Use a simulated display instead of xrandr
        """
        super().__init__(*args, **kwargs)

        self.config = config
        self.config.ensure_directories()

        self.read_client = HymnReadClient(config.db_path)
        self.preview = PreviewSurface()

        probe: DisplayProbe
        if static_display or config.display_probe == "static":
            probe = StaticProbe()
        else:
            probe = XrandrProbe()

        self.presenter = build_presenter(config, self.preview, probe, self.read_client)

    async def on_mount(self) -> None:
        """Handle app mount event."""
        presenter = self.presenter
        logger.info("App mounted, pushing control screen")
        await self.push_screen(
            ControlScreen(
                presenter.state,
                presenter.coordinator,
                self.read_client,
                presenter.queue,
                presenter.auto_present,
                self.preview,
            )
        )
        await self._resume()
        presenter.watcher.start()

    async def on_app_focus(self, event: events.AppFocus) -> None:
        """Rebuild the audience display when the console regains focus."""
        logger.debug("App focus regained")
        await self._resume()

    async def _resume(self) -> None:
        try:
            result = await self.presenter.coordinator.resume()
        except PresentationError as e:
            logger.error(f"Resume failed: {e.message}")
            self.notify(e.message, severity="error")
            return
        if result.restored_hymn_id:
            self.notify(f"Restored worship session ({self.presenter.state.current_hymn_title})")

    async def action_quit(self) -> None:
        """Quit the application with cleanup.

        The session snapshot is kept so the next launch can resume.
        """
        presenter = self.presenter
        presenter.auto_present.cancel()
        presenter.queue.cancel_auto_advance()
        await presenter.watcher.stop()
        presenter.machine.disconnect()
        self.read_client.close()
        self.exit()
