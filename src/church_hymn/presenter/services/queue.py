"""Hymn queue for worship sessions.

An ordered list of hymns the leader lines up ahead of time and presents
one after another, optionally advancing on its own after a delay.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from church_hymn.presenter.db.models import Hymn
from church_hymn.presenter.errors import PresentationError, SessionNotActiveError
from church_hymn.presenter.logging_config import get_logger
from church_hymn.presenter.services.scheduler import Countdown

if TYPE_CHECKING:
    from church_hymn.presenter.services.session import WorshipSessionCoordinator
    from church_hymn.presenter.state import PresentationState

logger = get_logger(__name__)


class QueueStatus(Enum):
    WAITING = "waiting"
    PRESENTING = "presenting"
    COMPLETED = "completed"
    SKIPPED = "skipped"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


@dataclass
class QueueItem:
    """A hymn waiting in (or done with) the queue.

    Attributes:
        hymn: Hymn to present
        starting_verse: Slide to start at
        status: Queue status
        id: Unique item ID
        added_at: When the item was queued
    """

    hymn: Hymn
    starting_verse: int = 0
    status: QueueStatus = QueueStatus.WAITING
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    added_at: datetime = field(default_factory=datetime.now)


@dataclass
class QueueStatistics:
    total: int
    waiting: int
    completed: int
    skipped: int
    current_position: int

    @property
    def progress(self) -> float:
        """Fraction of items that are finished (completed or skipped)."""
        if self.total == 0:
            return 0.0
        return (self.completed + self.skipped) / self.total


class HymnQueue:
    """Presentation queue driven through the session coordinator.

    Attributes:
        items: Queue items in presentation order
        auto_advance_enabled: Advance to the next item after a delay
        auto_advance_delay: Seconds before advancing
    """

    DELAY_OPTIONS = (3, 5, 10, 15, 30)

    def __init__(
        self,
        coordinator: "WorshipSessionCoordinator",
        state: "PresentationState",
        auto_advance_enabled: bool = False,
        auto_advance_delay: int = 5,
        tick_seconds: float = 1.0,
    ):
        """Initialize the queue.

        Args:
            coordinator: Worship session coordinator
            state: Presentation state to publish the countdown to
            auto_advance_enabled: Initial auto-advance flag
            auto_advance_delay: Initial auto-advance delay in seconds
            tick_seconds: Wall-clock length of one countdown step
        """
        self.coordinator = coordinator
        self.state = state
        self.items: list[QueueItem] = []
        self.auto_advance_enabled = auto_advance_enabled
        self.auto_advance_delay = auto_advance_delay if auto_advance_delay in self.DELAY_OPTIONS else 5
        self.countdown = Countdown("auto-advance", state.set_auto_advance_countdown, tick_seconds)
        coordinator.add_timer(self.countdown)

    def __len__(self) -> int:
        return len(self.items)

    def set_delay(self, seconds: int) -> None:
        """Change the auto-advance delay.

        Raises:
            ValueError: If seconds is not one of DELAY_OPTIONS
        """
        if seconds not in self.DELAY_OPTIONS:
            raise ValueError(f"Delay must be one of {self.DELAY_OPTIONS}, got {seconds}")
        self.auto_advance_delay = seconds

    # Editing

    def add(self, hymn: Hymn, starting_verse: int = 0) -> Optional[QueueItem]:
        """Append a hymn unless it is already waiting in the queue.

        Returns:
            The new item, or None if the hymn was already waiting
        """
        if any(item.hymn.id == hymn.id and item.status is QueueStatus.WAITING for item in self.items):
            return None
        item = QueueItem(hymn=hymn, starting_verse=starting_verse)
        self.items.append(item)
        logger.info(f"Queued '{hymn.title}' (position {len(self.items)})")
        return item

    def add_many(self, hymns: list[Hymn]) -> int:
        """Queue several hymns in order. Returns how many were added."""
        return sum(1 for hymn in hymns if self.add(hymn) is not None)

    def remove(self, item_id: str) -> bool:
        before = len(self.items)
        self.items = [item for item in self.items if item.id != item_id]
        return len(self.items) != before

    def move_up(self, item_id: str) -> bool:
        index = self._index_of(item_id)
        if index is None or index == 0:
            return False
        self.items[index - 1], self.items[index] = self.items[index], self.items[index - 1]
        return True

    def move_down(self, item_id: str) -> bool:
        index = self._index_of(item_id)
        if index is None or index >= len(self.items) - 1:
            return False
        self.items[index + 1], self.items[index] = self.items[index], self.items[index + 1]
        return True

    def clear_completed(self) -> int:
        """Drop completed and skipped items. Returns how many were removed."""
        finished = (QueueStatus.COMPLETED, QueueStatus.SKIPPED)
        before = len(self.items)
        self.items = [item for item in self.items if item.status not in finished]
        return before - len(self.items)

    def clear(self) -> None:
        self.items = []
        self.cancel_auto_advance()

    # Lookup

    @property
    def current(self) -> Optional[QueueItem]:
        return next((item for item in self.items if item.status is QueueStatus.PRESENTING), None)

    @property
    def next_item(self) -> Optional[QueueItem]:
        return next((item for item in self.items if item.status is QueueStatus.WAITING), None)

    def has_next(self) -> bool:
        return self.next_item is not None

    @property
    def statistics(self) -> QueueStatistics:
        waiting = sum(1 for item in self.items if item.status is QueueStatus.WAITING)
        completed = sum(1 for item in self.items if item.status is QueueStatus.COMPLETED)
        skipped = sum(1 for item in self.items if item.status is QueueStatus.SKIPPED)
        total = len(self.items)
        return QueueStatistics(
            total=total,
            waiting=waiting,
            completed=completed,
            skipped=skipped,
            current_position=total - waiting,
        )

    # Playback

    async def present_next(self) -> bool:
        """Present the first waiting item.

        The item on screen is marked completed only once the next one is
        showing; on failure the next item goes back to waiting.

        Returns:
            False if nothing is waiting

        Raises:
            SessionNotActiveError: If no worship session is running
        """
        if not self.coordinator.is_session_active:
            raise SessionNotActiveError()

        item = self.next_item
        if item is None:
            return False

        previous = self.current
        item.status = QueueStatus.PRESENTING
        try:
            await self.coordinator.present_or_switch(item.hymn, item.starting_verse)
        except PresentationError:
            item.status = QueueStatus.WAITING
            raise

        if previous is not None:
            previous.status = QueueStatus.COMPLETED
        logger.info(f"Queue presenting '{item.hymn.title}'")

        if self.auto_advance_enabled and self.has_next():
            self.start_auto_advance()
        return True

    async def skip_current(self) -> bool:
        """Mark the item on screen as skipped, then advance when auto-advance is on."""
        item = self.current
        if item is None:
            return False
        item.status = QueueStatus.SKIPPED
        self.cancel_auto_advance()
        logger.info(f"Queue skipped '{item.hymn.title}'")
        if self.auto_advance_enabled and self.has_next():
            await self.present_next()
        return True

    def start_auto_advance(self) -> None:
        """Start (or restart) the auto-advance countdown."""
        self.countdown.start(self.auto_advance_delay, self._advance)

    def cancel_auto_advance(self) -> None:
        self.countdown.cancel()

    async def _advance(self) -> None:
        try:
            await self.present_next()
        except PresentationError as e:
            logger.warning(f"Auto-advance failed: {e.message}")
            self.state.set_error(e.message)

    def _index_of(self, item_id: str) -> Optional[int]:
        return next((i for i, item in enumerate(self.items) if item.id == item_id), None)
