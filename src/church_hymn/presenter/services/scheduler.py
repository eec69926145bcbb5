"""Countdown timers for automatic presentation.

A Countdown is a single-shot asyncio task that ticks once per second
and runs its action when it reaches zero. Starting it again supersedes
the running countdown; cancelling before expiry has no side effect.
Once the action has begun it is no longer cancellable.
"""

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from church_hymn.presenter.db.models import Hymn
from church_hymn.presenter.errors import PresentationError
from church_hymn.presenter.logging_config import get_logger

if TYPE_CHECKING:
    from church_hymn.presenter.services.session import WorshipSessionCoordinator
    from church_hymn.presenter.state import PresentationState

logger = get_logger(__name__)

TickCallback = Callable[[Optional[int]], None]
Action = Callable[[], Awaitable[None]]


class Countdown:
    """Single-shot countdown with pause and resume.

    Attributes:
        name: Name used in log messages
        tick_seconds: Wall-clock length of one countdown step
    """

    def __init__(self, name: str, on_tick: Optional[TickCallback] = None, tick_seconds: float = 1.0):
        """Initialize the countdown.

        Args:
            name: Name used in log messages
            on_tick: Called with the remaining seconds, and None when idle
            tick_seconds: Wall-clock length of one step
        """
        self.name = name
        self.tick_seconds = tick_seconds
        self._on_tick = on_tick
        self._remaining: Optional[int] = None
        self._action: Optional[Action] = None
        self._task: Optional[asyncio.Task] = None
        self._action_task: Optional[asyncio.Task] = None
        self._paused = False

    @property
    def remaining(self) -> Optional[int]:
        """Seconds left, None when idle."""
        return self._remaining

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_paused(self) -> bool:
        return self._paused

    def start(self, seconds: int, action: Action) -> None:
        """Start counting down, superseding any countdown in progress.

        Args:
            seconds: Steps before the action runs
            action: Coroutine function run once at expiry
        """
        self._stop_task()
        self._paused = False
        self._action = action
        self._set_remaining(max(0, int(seconds)))
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"{self.name} countdown started ({seconds}s)")

    def cancel(self) -> None:
        """Stop the countdown without running the action."""
        if self._remaining is None and not self._paused:
            return
        self._stop_task()
        self._paused = False
        self._action = None
        self._set_remaining(None)
        logger.debug(f"{self.name} countdown cancelled")

    def pause(self) -> None:
        """Stop ticking but keep the remaining time."""
        if not self.is_running:
            return
        self._stop_task()
        self._paused = True
        logger.debug(f"{self.name} countdown paused at {self._remaining}s")

    def resume(self) -> None:
        """Continue a paused countdown."""
        if not self._paused or self._action is None:
            return
        self._paused = False
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"{self.name} countdown resumed ({self._remaining}s left)")

    async def wait(self) -> None:
        """Wait until the countdown and any action it started have finished."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._action_task is not None:
            await self._action_task

    def _stop_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _set_remaining(self, value: Optional[int]) -> None:
        self._remaining = value
        if self._on_tick is not None:
            try:
                self._on_tick(value)
            except Exception:
                logger.exception(f"{self.name} tick listener failed")

    async def _run(self) -> None:
        while self._remaining and self._remaining > 0:
            await asyncio.sleep(self.tick_seconds)
            self._set_remaining(self._remaining - 1)

        action = self._action
        self._action = None
        self._set_remaining(None)
        self._task = None
        if action is not None:
            logger.info(f"{self.name} countdown expired")
            # Runs outside the countdown task so a later cancel() cannot interrupt it
            self._action_task = asyncio.get_running_loop().create_task(self._fire(action))

    async def _fire(self, action: Action) -> None:
        try:
            await action()
        except Exception:
            logger.exception(f"{self.name} action failed")


class AutoPresentScheduler:
    """Presents the hymn the leader lingers on after a configurable delay.

    Attributes:
        enabled: Whether auto-present is on
        delay: Seconds before the hymn is presented
    """

    DELAY_OPTIONS = (2, 3, 5, 7, 10)

    def __init__(
        self,
        coordinator: "WorshipSessionCoordinator",
        state: "PresentationState",
        delay: int = 3,
        enabled: bool = False,
        tick_seconds: float = 1.0,
    ):
        """Initialize the scheduler.

        Args:
            coordinator: Worship session coordinator
            state: Presentation state to publish the countdown to
            delay: Initial delay in seconds
            enabled: Initial enabled flag
            tick_seconds: Wall-clock length of one countdown step
        """
        self.coordinator = coordinator
        self.state = state
        self.enabled = enabled
        self.delay = delay if delay in self.DELAY_OPTIONS else 3
        self.countdown = Countdown("auto-present", state.set_auto_present_countdown, tick_seconds)
        self.pending_hymn: Optional[Hymn] = None
        coordinator.add_timer(self.countdown)

    def set_delay(self, seconds: int) -> None:
        """Change the delay.

        Raises:
            ValueError: If seconds is not one of DELAY_OPTIONS
        """
        if seconds not in self.DELAY_OPTIONS:
            raise ValueError(f"Delay must be one of {self.DELAY_OPTIONS}, got {seconds}")
        self.delay = seconds

    def toggle(self) -> bool:
        """Flip auto-present on or off. Turning it off cancels the countdown."""
        self.enabled = not self.enabled
        if not self.enabled:
            self.cancel()
        logger.info(f"Auto-present {'enabled' if self.enabled else 'disabled'}")
        return self.enabled

    def start_timer(self, hymn: Hymn) -> bool:
        """Start the countdown for a hymn the leader is viewing.

        Nothing happens unless auto-present is on, a session is active and
        the hymn can be presented.

        Returns:
            True if a countdown was started
        """
        if not self.enabled or not self.coordinator.can_present(hymn):
            return False

        self.pending_hymn = hymn
        self.countdown.start(self.delay, lambda: self._execute(hymn))
        logger.info(f"Auto-present timer started for '{hymn.title}' ({self.delay}s)")
        return True

    def cancel(self) -> None:
        self.pending_hymn = None
        self.countdown.cancel()

    def pause(self) -> None:
        self.countdown.pause()

    def resume(self) -> None:
        self.countdown.resume()

    async def _execute(self, hymn: Hymn) -> None:
        self.pending_hymn = None
        if not self.coordinator.can_present(hymn):
            logger.info(f"Auto-present skipped for '{hymn.title}'")
            return
        try:
            await self.coordinator.present_or_switch(hymn)
        except PresentationError as e:
            logger.warning(f"Auto-present failed for '{hymn.title}': {e.message}")
            self.state.set_error(e.message)
