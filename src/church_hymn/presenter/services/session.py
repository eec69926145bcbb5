"""Worship session coordination.

The coordinator turns user intents (start a session, present a hymn,
move a verse) into state machine transitions, keeps the worship session
record, publishes to PresentationState and persists the session
snapshot. It also reacts to the display appearing or disappearing and
rebuilds the audience display on resume.

All intents are serialized by one asyncio.Lock. Display loss does not
take the lock: it disconnects immediately and any in-flight render
fails with NoExternalDisplayError.
"""

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Protocol, Sequence

from church_hymn.presenter.db.models import Hymn, WorshipService
from church_hymn.presenter.errors import (
    EmptyServiceError,
    HymnNotFoundError,
    InvalidTransitionError,
    NoActiveServiceError,
    NoExternalDisplayError,
    PresentationError,
    SessionAlreadyActiveError,
    SessionNotActiveError,
)
from church_hymn.presenter.logging_config import get_logger
from church_hymn.presenter.services.display_watcher import DisplayInfo, DisplayWatcher
from church_hymn.presenter.services.scheduler import Countdown
from church_hymn.presenter.services.snapshot import PersistedSnapshot, SnapshotStore
from church_hymn.presenter.services.state_machine import DisplayState, PresentationStateMachine
from church_hymn.presenter.state import PresentationState

logger = get_logger(__name__)


class HymnSource(Protocol):
    """Read-only access to the hymn library and the active service."""

    def get_hymn(self, hymn_id: str) -> Optional[Hymn]: ...

    def get_hymns(self, hymn_ids: Sequence[str]) -> list[Hymn]: ...

    def get_active_service(self) -> Optional[WorshipService]: ...

    def get_active_service_hymn_count(self) -> Optional[int]: ...

    def list_active_service_hymns(self) -> list[Hymn]: ...


class SessionPhase(Enum):
    INACTIVE = auto()
    ACTIVE_BACKGROUND = auto()
    ACTIVE_PRESENTING = auto()


@dataclass
class WorshipSession:
    """In-memory worship session record.

    Attributes:
        is_active: Whether the session is running
        current_hymn_id: Hymn on screen
        current_verse_index: Slide offset of that hymn
        presented_hymns: Titles shown, in order of first appearance
    """

    is_active: bool = False
    current_hymn_id: Optional[str] = None
    current_verse_index: int = 0
    presented_hymns: list[str] = field(default_factory=list)

    def record_hymn(self, title: str) -> None:
        if title not in self.presented_hymns:
            self.presented_hymns.append(title)


@dataclass
class ResumeResult:
    """Outcome of resume().

    Attributes:
        state: Display state after resuming
        restored_hymn_id: Hymn brought back on screen from the snapshot
        warning: Soft warning for the leader (e.g. hymn no longer exists)
    """

    state: DisplayState
    restored_hymn_id: Optional[str] = None
    warning: Optional[str] = None


class WorshipSessionCoordinator:
    """Owns the worship session and drives the presentation state machine.

    Attributes:
        machine: Presentation state machine
        watcher: Display connectivity watcher
        source: Hymn library
        store: Session snapshot store
        state: Observable presentation state
        session: Current worship session record
    """

    def __init__(
        self,
        machine: PresentationStateMachine,
        watcher: DisplayWatcher,
        source: HymnSource,
        store: SnapshotStore,
        state: PresentationState,
    ):
        self.machine = machine
        self.watcher = watcher
        self.source = source
        self.store = store
        self.state = state
        self.session = WorshipSession()
        self._lock = asyncio.Lock()
        self._timers: list[Countdown] = []
        watcher.add_listener(self._on_display_change)

    @property
    def is_session_active(self) -> bool:
        return self.session.is_active

    @property
    def phase(self) -> SessionPhase:
        if not self.session.is_active:
            return SessionPhase.INACTIVE
        if self.machine.state is DisplayState.WORSHIP_PRESENTING:
            return SessionPhase.ACTIVE_PRESENTING
        return SessionPhase.ACTIVE_BACKGROUND

    @property
    def current_hymn(self) -> Optional[Hymn]:
        return self.machine.current_hymn

    @property
    def session_status(self) -> str:
        """One-line worship session status."""
        if self.phase is SessionPhase.INACTIVE:
            return "No worship session"
        if self.phase is SessionPhase.ACTIVE_PRESENTING and self.current_hymn:
            return f"Presenting: {self.current_hymn.title}"
        return "Showing background"

    def add_timer(self, countdown: Countdown) -> None:
        """Register a countdown to cancel when the session ends or the display is lost."""
        self._timers.append(countdown)

    def presented_hymns_json(self) -> Optional[str]:
        """Session history as JSON text, None when empty."""
        if not self.session.presented_hymns:
            return None
        return json.dumps(self.session.presented_hymns, ensure_ascii=False)

    def can_present(self, hymn: Hymn) -> bool:
        """Whether hymn can be brought on screen within the active session."""
        if not self.session.is_active:
            return False
        state = self.machine.state
        if not (state.supports_hymn_switching or state is DisplayState.WORSHIP_BACKGROUND):
            return False
        current = self.machine.current_hymn
        return current is None or current.id != hymn.id

    def require_hymn(self, hymn_id: str) -> Hymn:
        """Look up a hymn in the library.

        Raises:
            HymnNotFoundError: If the hymn no longer exists
        """
        hymn = self.source.get_hymn(hymn_id)
        if hymn is None:
            raise HymnNotFoundError(hymn_id)
        return hymn

    # Intents

    async def connect(self) -> None:
        """Connect to the secondary display.

        Raises:
            NoExternalDisplayError: If no secondary display is attached
        """
        async with self._lock:
            present = await self.watcher.refresh()
            if not present:
                raise NoExternalDisplayError()
            if self.machine.state is DisplayState.DISCONNECTED:
                self.machine.connect(self.watcher.display_info)
            self._publish()

    async def start_session(self) -> None:
        """Start a worship session on the connected display.

        Raises:
            SessionAlreadyActiveError: If a session is running
            NoExternalDisplayError: If no display is connected
            InvalidTransitionError: If the display is busy with a single presentation
            NoActiveServiceError: If no service is active
            EmptyServiceError: If the active service has no hymns
        """
        async with self._lock:
            if self.session.is_active:
                raise SessionAlreadyActiveError()

            display_state = self.machine.state
            if display_state is DisplayState.DISCONNECTED:
                raise NoExternalDisplayError()
            if display_state is not DisplayState.CONNECTED:
                raise InvalidTransitionError(
                    "start worship session", display_state, DisplayState.WORSHIP_BACKGROUND
                )

            count = self.source.get_active_service_hymn_count()
            if count is None:
                raise NoActiveServiceError()
            if count == 0:
                raise EmptyServiceError()

            await self.machine.start_worship()
            self.session = WorshipSession(is_active=True)
            logger.info(f"Worship session started ({count} hymns in service)")
            self._publish()
            self._persist()

    async def stop_session(self) -> None:
        """End the worship session and erase its snapshot.

        Raises:
            SessionNotActiveError: If no session is running
        """
        async with self._lock:
            if not self.session.is_active:
                raise SessionNotActiveError()

            self._cancel_timers()
            if self.machine.state is DisplayState.WORSHIP_PRESENTING:
                await self.machine.stop_hymn_in_worship()
            if self.machine.state.is_worship_session:
                await self.machine.stop_worship()

            logger.info(f"Worship session stopped after {len(self.session.presented_hymns)} hymns")
            self.session = WorshipSession()
            self.store.clear()
            self._publish()

    async def present_or_switch(self, hymn: Hymn, verse: int = 0) -> None:
        """Bring a hymn on screen by whatever transition the current state allows.

        Raises:
            NoExternalDisplayError: If no display is connected
        """
        async with self._lock:
            display_state = self.machine.state
            if display_state is DisplayState.DISCONNECTED:
                raise NoExternalDisplayError()

            if display_state is DisplayState.CONNECTED:
                await self.machine.start_single(hymn, verse)
            elif display_state.supports_hymn_switching:
                await self.machine.switch_hymn(hymn, verse)
            else:
                await self.machine.present_in_worship(hymn, verse)

            if self.session.is_active:
                self.session.record_hymn(hymn.title)
            self._publish()
            self._persist()

    async def stop_presentation(self) -> None:
        """Stop the hymn on screen (back to idle, or to the worship background)."""
        async with self._lock:
            display_state = self.machine.state
            if display_state is DisplayState.DISCONNECTED:
                raise NoExternalDisplayError()
            if display_state is DisplayState.PRESENTING_SINGLE:
                await self.machine.stop_single()
            elif display_state is DisplayState.WORSHIP_PRESENTING:
                await self.machine.stop_hymn_in_worship()
            else:
                raise InvalidTransitionError("stop presentation", display_state)
            self._publish()
            self._persist()

    async def next_verse(self) -> bool:
        async with self._lock:
            moved = await self.machine.next_verse()
            if moved:
                self._publish()
                self._persist()
            return moved

    async def previous_verse(self) -> bool:
        async with self._lock:
            moved = await self.machine.previous_verse()
            if moved:
                self._publish()
                self._persist()
            return moved

    async def go_to_verse(self, index: int) -> None:
        async with self._lock:
            await self.machine.go_to_verse(index)
            self._publish()
            self._persist()

    async def resume(self) -> ResumeResult:
        """Rebuild the audience display after the console regains focus.

        Live connectivity decides first, then the snapshot, then the
        in-memory state. With no display attached the session ends and
        the snapshot is discarded whatever it holds.
        """
        async with self._lock:
            present = await self.watcher.refresh()
            if not present:
                self._handle_display_lost()
                return ResumeResult(DisplayState.DISCONNECTED)

            if self.machine.state is DisplayState.DISCONNECTED:
                self.machine.connect(self.watcher.display_info)

            snapshot = self.store.load()
            if snapshot is None or not snapshot.is_worship_session_active:
                self._publish()
                return ResumeResult(self.machine.state)

            if self.machine.state is DisplayState.PRESENTING_SINGLE:
                logger.info("Single presentation in progress; session snapshot not restored")
                self._publish()
                return ResumeResult(self.machine.state)

            return await self._restore(snapshot)

    # Internals

    async def _restore(self, snapshot: PersistedSnapshot) -> ResumeResult:
        machine = self.machine
        if machine.state is DisplayState.CONNECTED:
            await machine.start_worship()

        self.session.is_active = True
        self.session.presented_hymns = list(snapshot.presented_hymns)

        warning = None
        restored_hymn_id = None
        if snapshot.display_state is DisplayState.WORSHIP_PRESENTING and snapshot.current_hymn_id:
            try:
                hymn = self.require_hymn(snapshot.current_hymn_id)
            except HymnNotFoundError as e:
                name = snapshot.current_hymn_title or e.hymn_id
                warning = f"Hymn '{name}' is no longer available; showing background."
                logger.warning(f"Resume: {e.message}")
                if machine.state is DisplayState.WORSHIP_PRESENTING:
                    await machine.stop_hymn_in_worship()
            else:
                verse = snapshot.current_verse_index
                current = machine.current_hymn
                if current is not None and current.id == hymn.id:
                    target = machine.navigator.clamp(verse)
                    if machine.cursor.verse_index != target:
                        await machine.go_to_verse(target)
                elif machine.state is DisplayState.WORSHIP_PRESENTING:
                    await machine.switch_hymn(hymn, verse)
                else:
                    await machine.present_in_worship(hymn, verse)
                restored_hymn_id = hymn.id
        elif machine.state is DisplayState.WORSHIP_PRESENTING:
            await machine.stop_hymn_in_worship()

        logger.info(f"Resumed worship session in {machine.state.display_name}")
        self.state.set_warning(warning)
        self._publish()
        self._persist()
        return ResumeResult(machine.state, restored_hymn_id, warning)

    def _on_display_change(self, connected: bool, info: Optional[DisplayInfo]) -> None:
        if not connected:
            self._handle_display_lost()
            return

        current = self.machine.display_info
        if current is not None and info is not None and current.name != info.name:
            logger.info(f"Secondary display changed from {current.name} to {info.name}")
            self._handle_display_lost()

        if self.machine.state is DisplayState.DISCONNECTED:
            try:
                self.machine.connect(info)
            except PresentationError as e:
                logger.error(f"Automatic connect failed: {e.message}")
                self.state.set_error(e.message)
        self._publish()

    def _handle_display_lost(self) -> None:
        """Tear everything down without waiting for in-flight intents.

        Ends the worship session like stop_session(), snapshot included.
        """
        self._cancel_timers()
        self.machine.disconnect()
        if self.session.is_active:
            logger.warning("Display lost during worship session; session ended")
        self.session = WorshipSession()
        self.store.clear()
        self._publish()

    def _cancel_timers(self) -> None:
        for countdown in self._timers:
            countdown.cancel()

    def _sync_session(self) -> None:
        cursor = self.machine.cursor
        self.session.current_hymn_id = cursor.hymn_id if cursor else None
        self.session.current_verse_index = cursor.verse_index if cursor else 0

    def _publish(self) -> None:
        self._sync_session()
        info = self.machine.display_info
        self.state.set_display(self.machine.state, info.description if info else None)

        slide = self.machine.current_slide
        if slide is None:
            self.state.set_slide(None, None)
        else:
            self.state.set_slide(slide.hymn_id, slide.hymn_title, slide.index, slide.label, slide.total)
        self.state.set_session(self.session.is_active, self.session.presented_hymns)

    def _persist(self) -> None:
        if not self.session.is_active:
            return
        hymn = self.machine.current_hymn
        self.store.save(self.session, self.machine.state, self.machine.cursor, hymn.title if hymn else None)
