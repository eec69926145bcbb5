"""Presentation state machine for the secondary display.

Single source of truth for what the audience currently sees. Each legal
transition is one method; calling a method whose precondition is unmet
raises InvalidTransitionError and changes nothing. Rendering methods are
coroutines and are serialized so two renders never race on the surface.

disconnect() is synchronous, legal from every state, idempotent, and
wins over any render still in flight.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from church_hymn.presenter.db.models import Hymn
from church_hymn.presenter.errors import (
    InvalidTransitionError,
    NoExternalDisplayError,
    OutOfRangeError,
    PresentationError,
    PresentationFailedError,
)
from church_hymn.presenter.logging_config import get_logger
from church_hymn.presenter.services.display_watcher import DisplayInfo, DisplayWatcher
from church_hymn.presenter.services.surface import Background, OutputSurface, SurfaceContent
from church_hymn.presenter.services.verses import PresentationCursor, Slide, VerseNavigator

logger = get_logger(__name__)


class DisplayState(Enum):
    """State of the secondary output.

    Values are the tags written to the session snapshot.
    """

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    PRESENTING_SINGLE = "presenting"
    WORSHIP_BACKGROUND = "worship_mode"
    WORSHIP_PRESENTING = "worship_presenting"

    @property
    def is_connected(self) -> bool:
        return self is not DisplayState.DISCONNECTED

    @property
    def is_worship_session(self) -> bool:
        return self in (DisplayState.WORSHIP_BACKGROUND, DisplayState.WORSHIP_PRESENTING)

    @property
    def is_presenting(self) -> bool:
        """Whether a hymn is on screen."""
        return self in (DisplayState.PRESENTING_SINGLE, DisplayState.WORSHIP_PRESENTING)

    @property
    def supports_hymn_switching(self) -> bool:
        return self.is_presenting

    @property
    def supports_verse_navigation(self) -> bool:
        return self.is_presenting

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def suggested_actions(self) -> list[str]:
        return list(_SUGGESTED_ACTIONS[self])

    def can_transition_to(self, target: "DisplayState") -> bool:
        """Whether the edge self -> target exists."""
        return target in _LEGAL_TRANSITIONS[self]

    def transition_error_message(self, target: "DisplayState") -> Optional[str]:
        """Explain why self -> target is not allowed (None if it is)."""
        if self.can_transition_to(target):
            return None
        specific = _TRANSITION_ERRORS.get((self, target))
        if specific:
            return specific
        return f"State transition from {self.display_name} to {target.display_name} is not allowed."


_DISPLAY_NAMES = {
    DisplayState.DISCONNECTED: "Disconnected",
    DisplayState.CONNECTED: "Connected",
    DisplayState.PRESENTING_SINGLE: "Presenting",
    DisplayState.WORSHIP_BACKGROUND: "Worship Mode",
    DisplayState.WORSHIP_PRESENTING: "Worship Presenting",
}

_SUGGESTED_ACTIONS = {
    DisplayState.DISCONNECTED: ("Connect external display", "Check display cable"),
    DisplayState.CONNECTED: ("Present hymn", "Start worship session"),
    DisplayState.PRESENTING_SINGLE: ("Switch hymn", "Stop presentation", "Navigate verses"),
    DisplayState.WORSHIP_BACKGROUND: ("Present hymn", "Exit worship mode"),
    DisplayState.WORSHIP_PRESENTING: ("Switch hymn", "Stop hymn", "Navigate verses", "Exit worship"),
}

# Same-state edges are hymn switches and verse moves
_LEGAL_TRANSITIONS = {
    DisplayState.DISCONNECTED: {DisplayState.DISCONNECTED, DisplayState.CONNECTED},
    DisplayState.CONNECTED: {
        DisplayState.DISCONNECTED,
        DisplayState.PRESENTING_SINGLE,
        DisplayState.WORSHIP_BACKGROUND,
    },
    DisplayState.PRESENTING_SINGLE: {
        DisplayState.DISCONNECTED,
        DisplayState.CONNECTED,
        DisplayState.PRESENTING_SINGLE,
    },
    DisplayState.WORSHIP_BACKGROUND: {
        DisplayState.DISCONNECTED,
        DisplayState.CONNECTED,
        DisplayState.WORSHIP_PRESENTING,
    },
    DisplayState.WORSHIP_PRESENTING: {
        DisplayState.DISCONNECTED,
        DisplayState.CONNECTED,
        DisplayState.WORSHIP_BACKGROUND,
        DisplayState.WORSHIP_PRESENTING,
    },
}

_TRANSITION_ERRORS = {
    (DisplayState.DISCONNECTED, DisplayState.PRESENTING_SINGLE): "Cannot start presentation without an external display connection.",
    (DisplayState.DISCONNECTED, DisplayState.WORSHIP_BACKGROUND): "Cannot start worship session without an external display connection.",
    (DisplayState.CONNECTED, DisplayState.WORSHIP_PRESENTING): "Must enter worship mode before presenting hymns in worship session.",
    (DisplayState.PRESENTING_SINGLE, DisplayState.WORSHIP_BACKGROUND): "Stop current presentation before starting worship session.",
    (DisplayState.PRESENTING_SINGLE, DisplayState.WORSHIP_PRESENTING): "Exit current presentation mode to use worship session.",
    (DisplayState.WORSHIP_BACKGROUND, DisplayState.PRESENTING_SINGLE): "Cannot use standard presentation mode during worship session.",
}


@dataclass
class TransitionRecord:
    """One attempted transition, kept for diagnostics.

    Attributes:
        from_state: State before the attempt
        to_state: State the operation targets
        operation: Operation name
        success: Whether the transition committed
        error: Error message when it did not
        timestamp: When it was attempted
    """

    from_state: DisplayState
    to_state: DisplayState
    operation: str
    success: bool = True
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def description(self) -> str:
        status = "ok" if self.success else "FAILED"
        text = f"[{status}] {self.operation}: {self.from_state.display_name} -> {self.to_state.display_name}"
        if self.error:
            text += f" ({self.error})"
        return text


class PresentationStateMachine:
    """Owns the display state, the output surface and the current hymn.

    Attributes:
        surface: The single output surface
        watcher: Display connectivity watcher
        background_image: Image shown in worship background mode
        surface_creations: Times the surface has been created
    """

    def __init__(
        self,
        surface: OutputSurface,
        watcher: DisplayWatcher,
        background_image: str = "serene",
        max_history: int = 50,
    ):
        """Initialize the state machine in DISCONNECTED.

        Args:
            surface: Output surface to drive
            watcher: Display connectivity watcher
            background_image: Worship background image name
            max_history: Transition records to keep
        """
        self.surface = surface
        self.watcher = watcher
        self.background_image = background_image
        self.surface_creations = 0

        self._state = DisplayState.DISCONNECTED
        self._display_info: Optional[DisplayInfo] = None
        self._navigator: Optional[VerseNavigator] = None
        self._cursor: Optional[PresentationCursor] = None
        self._history: deque[TransitionRecord] = deque(maxlen=max_history)
        self._lock = asyncio.Lock()
        # Bumped by disconnect(); a render that finishes under an old epoch is discarded
        self._epoch = 0

    # Read-only views

    @property
    def state(self) -> DisplayState:
        return self._state

    @property
    def display_info(self) -> Optional[DisplayInfo]:
        return self._display_info

    @property
    def current_hymn(self) -> Optional[Hymn]:
        return self._navigator.hymn if self._navigator else None

    @property
    def cursor(self) -> Optional[PresentationCursor]:
        return self._cursor

    @property
    def navigator(self) -> Optional[VerseNavigator]:
        return self._navigator

    @property
    def current_slide(self) -> Optional[Slide]:
        if self._navigator is None or self._cursor is None:
            return None
        return self._navigator.slide_for(self._cursor)

    @property
    def history(self) -> list[TransitionRecord]:
        return list(self._history)

    @property
    def can_go_next(self) -> bool:
        return bool(self._navigator and self._cursor and self._navigator.next(self._cursor))

    @property
    def can_go_previous(self) -> bool:
        return bool(self._navigator and self._cursor and self._navigator.previous(self._cursor))

    # Connection lifecycle

    def connect(self, display_info: Optional[DisplayInfo] = None) -> None:
        """Allocate the output surface on the attached display.

        Raises:
            InvalidTransitionError: If not DISCONNECTED
            NoExternalDisplayError: If the watcher reports no display
            PresentationFailedError: If the surface cannot be created
        """
        self._require("connect", (DisplayState.DISCONNECTED,), DisplayState.CONNECTED)

        info = display_info or self.watcher.display_info
        if not self.watcher.is_connected() or info is None:
            error = NoExternalDisplayError()
            self._record("connect", DisplayState.CONNECTED, error)
            raise error

        try:
            self.surface.create(info)
        except Exception as e:
            error = PresentationFailedError(f"window creation failed: {e}", cause=e)
            self._record("connect", DisplayState.CONNECTED, error)
            raise error from e

        self.surface_creations += 1
        self._display_info = info
        self._commit("connect", DisplayState.CONNECTED)

    def disconnect(self) -> None:
        """Tear everything down. Legal from any state and idempotent."""
        self._epoch += 1
        if self._state is DisplayState.DISCONNECTED and not self.surface.is_open:
            return

        try:
            self.surface.destroy()
        except Exception:
            logger.exception("Surface teardown failed; continuing disconnect")

        self._display_info = None
        self._navigator = None
        self._cursor = None
        self._commit("disconnect", DisplayState.DISCONNECTED)

    # Single presentation

    async def start_single(self, hymn: Hymn, verse: int = 0) -> None:
        """Present a hymn outside a worship session."""
        async with self._lock:
            self._require("start presentation", (DisplayState.CONNECTED,), DisplayState.PRESENTING_SINGLE)
            await self._show_hymn("start_single", DisplayState.PRESENTING_SINGLE, hymn, verse)

    async def stop_single(self) -> None:
        """Stop a single presentation and release its content."""
        async with self._lock:
            self._require("stop presentation", (DisplayState.PRESENTING_SINGLE,), DisplayState.CONNECTED)
            await self._release("stop_single")

    async def switch_hymn(self, hymn: Hymn, verse: int = 0) -> None:
        """Replace the hymn on screen without touching the surface lifecycle."""
        async with self._lock:
            self._require(
                "switch hymn",
                (DisplayState.PRESENTING_SINGLE, DisplayState.WORSHIP_PRESENTING),
            )
            await self._show_hymn("switch_hymn", self._state, hymn, verse)

    # Worship mode

    async def start_worship(self) -> None:
        """Enter worship mode showing the background image."""
        async with self._lock:
            self._require("start worship mode", (DisplayState.CONNECTED,), DisplayState.WORSHIP_BACKGROUND)
            await self._show_background("start_worship")

    async def stop_worship(self) -> None:
        """Leave worship mode and release content."""
        async with self._lock:
            self._require(
                "stop worship mode",
                (DisplayState.WORSHIP_BACKGROUND, DisplayState.WORSHIP_PRESENTING),
                DisplayState.CONNECTED,
            )
            await self._release("stop_worship")

    async def present_in_worship(self, hymn: Hymn, verse: int = 0) -> None:
        """Show a hymn over the worship background."""
        async with self._lock:
            self._require(
                "present hymn in worship mode",
                (DisplayState.WORSHIP_BACKGROUND,),
                DisplayState.WORSHIP_PRESENTING,
            )
            await self._show_hymn("present_in_worship", DisplayState.WORSHIP_PRESENTING, hymn, verse)

    async def stop_hymn_in_worship(self) -> None:
        """Return from a hymn to the worship background."""
        async with self._lock:
            self._require(
                "stop hymn in worship mode",
                (DisplayState.WORSHIP_PRESENTING,),
                DisplayState.WORSHIP_BACKGROUND,
            )
            await self._show_background("stop_hymn_in_worship")

    # Verse navigation

    async def go_to_verse(self, index: int) -> None:
        """Show a specific slide of the current hymn.

        Raises:
            OutOfRangeError: If index is outside the hymn's sequence
        """
        async with self._lock:
            self._require("go to verse", _VERSE_STATES)
            if not self._navigator.in_range(index):
                error = OutOfRangeError(index, len(self._navigator), self._state)
                self._record("go_to_verse", self._state, error)
                raise error
            await self._move_to(self._navigator.jump(self._cursor, index))

    async def next_verse(self) -> bool:
        """Advance one slide. Returns False at the last slide."""
        async with self._lock:
            self._require("go to next verse", _VERSE_STATES)
            target = self._navigator.next(self._cursor)
            if target is None:
                return False
            await self._move_to(target)
            return True

    async def previous_verse(self) -> bool:
        """Go back one slide. Returns False at the first slide."""
        async with self._lock:
            self._require("go to previous verse", _VERSE_STATES)
            target = self._navigator.previous(self._cursor)
            if target is None:
                return False
            await self._move_to(target)
            return True

    # Internals

    def _require(self, operation: str, allowed: tuple, target: Optional[DisplayState] = None) -> None:
        if self._state in allowed:
            return
        edge = target if target is not self._state else None
        error = InvalidTransitionError(operation, self._state, edge)
        self._record(operation, target or self._state, error)
        raise error

    async def _render(self, operation: str, target: DisplayState, content: Optional[SurfaceContent]) -> None:
        """Swap surface content; commit nothing if it fails or a disconnect intervenes."""
        epoch = self._epoch
        try:
            if content is None:
                await self.surface.clear()
            else:
                await self.surface.set_content(content)
        except Exception as e:
            if epoch != self._epoch:
                error: PresentationError = NoExternalDisplayError(
                    "External display was disconnected during the operation."
                )
            else:
                error = PresentationFailedError(str(e), cause=e)
            self._record(operation, target, error)
            raise error from e

        if epoch != self._epoch:
            error = NoExternalDisplayError("External display was disconnected during the operation.")
            self._record(operation, target, error)
            raise error

    async def _show_hymn(self, operation: str, target: DisplayState, hymn: Hymn, verse: int) -> None:
        navigator = VerseNavigator(hymn)
        cursor = navigator.cursor_at(verse)
        await self._render(operation, target, navigator.slide_for(cursor))
        self._navigator = navigator
        self._cursor = cursor
        self._commit(operation, target, f"'{hymn.title}' at {navigator.slide_for(cursor).label}")

    async def _show_background(self, operation: str) -> None:
        await self._render(operation, DisplayState.WORSHIP_BACKGROUND, Background(self.background_image))
        self._navigator = None
        self._cursor = None
        self._commit(operation, DisplayState.WORSHIP_BACKGROUND)

    async def _release(self, operation: str) -> None:
        await self._render(operation, DisplayState.CONNECTED, None)
        self._navigator = None
        self._cursor = None
        self._commit(operation, DisplayState.CONNECTED)

    async def _move_to(self, cursor: PresentationCursor) -> None:
        await self._render("go_to_verse", self._state, self._navigator.slide_for(cursor))
        self._cursor = cursor
        logger.debug(f"Verse -> {self._navigator.label_for(cursor.verse_index)} ({cursor.verse_index})")

    def _commit(self, operation: str, target: DisplayState, detail: str = "") -> None:
        previous = self._state
        self._state = target
        self._history.append(TransitionRecord(previous, target, operation))
        suffix = f" [{detail}]" if detail else ""
        logger.info(f"{operation}: {previous.display_name} -> {target.display_name}{suffix}")

    def _record(self, operation: str, target: DisplayState, error: Exception) -> None:
        self._history.append(
            TransitionRecord(self._state, target, operation, success=False, error=str(error))
        )
        logger.warning(f"{operation} rejected in {self._state.display_name}: {error}")


_VERSE_STATES = (DisplayState.PRESENTING_SINGLE, DisplayState.WORSHIP_PRESENTING)
