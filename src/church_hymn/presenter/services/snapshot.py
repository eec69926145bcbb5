"""Session snapshot persistence.

Keeps a small JSON record of the worship session so the console can
rebuild the audience display after it was suspended or restarted.
Loading is best effort: anything unreadable counts as "no snapshot".
"""

import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from church_hymn.presenter.logging_config import get_logger
from church_hymn.presenter.services.state_machine import DisplayState
from church_hymn.presenter.services.verses import PresentationCursor

if TYPE_CHECKING:
    from church_hymn.presenter.services.session import WorshipSession

logger = get_logger(__name__)

SNAPSHOT_FILENAME = "session_snapshot.json"


@dataclass
class PersistedSnapshot:
    """Minimal record needed to resume a worship session.

    Attributes:
        display_state: Display state when the snapshot was taken
        is_worship_session_active: Whether a session was running
        current_hymn_id: Hymn on screen, if any
        current_hymn_title: Title of that hymn
        current_verse_index: Slide offset of that hymn
        presented_hymns: Session history
        saved_at: When the snapshot was written (None if unknown)
    """

    display_state: DisplayState
    is_worship_session_active: bool = False
    current_hymn_id: Optional[str] = None
    current_hymn_title: Optional[str] = None
    current_verse_index: int = 0
    presented_hymns: list[str] = field(default_factory=list)
    saved_at: Optional[datetime] = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON layout."""
        return {
            "displayStateTag": self.display_state.value,
            "isWorshipSessionActive": self.is_worship_session_active,
            "currentHymnId": self.current_hymn_id,
            "currentHymnTitle": self.current_hymn_title,
            "currentVerseIndex": self.current_verse_index,
            "presentedHymns": list(self.presented_hymns),
            "savedAt": self.saved_at.isoformat() if self.saved_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PersistedSnapshot":
        """Build from the persisted JSON layout.

        Only displayStateTag is required.

        Raises:
            ValueError: If the layout is not usable
        """
        if not isinstance(data, dict) or "displayStateTag" not in data:
            raise ValueError("snapshot has no displayStateTag")

        display_state = DisplayState(data["displayStateTag"])

        verse_index = data.get("currentVerseIndex") or 0
        if not isinstance(verse_index, int) or verse_index < 0:
            raise ValueError(f"invalid currentVerseIndex: {verse_index!r}")

        presented = data.get("presentedHymns") or []
        if not isinstance(presented, list) or not all(isinstance(t, str) for t in presented):
            raise ValueError("presentedHymns must be a list of titles")

        saved_at = None
        if data.get("savedAt"):
            saved_at = datetime.fromisoformat(data["savedAt"])
            if saved_at.tzinfo is None:
                saved_at = saved_at.replace(tzinfo=timezone.utc)

        return cls(
            display_state=display_state,
            is_worship_session_active=bool(data.get("isWorshipSessionActive", False)),
            current_hymn_id=data.get("currentHymnId"),
            current_hymn_title=data.get("currentHymnTitle"),
            current_verse_index=verse_index,
            presented_hymns=presented,
            saved_at=saved_at,
        )

    def is_recent(self, max_age: timedelta, now: Optional[datetime] = None) -> bool:
        """Whether the snapshot is younger than max_age (True when age is unknown)."""
        if self.saved_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        return now - self.saved_at <= max_age


class SnapshotStore:
    """JSON file store for the session snapshot.

    Attributes:
        path: Snapshot file path
        max_age: Snapshots older than this are discarded on load
    """

    def __init__(self, path: Path, max_age_minutes: int = 30):
        """Initialize the store.

        Args:
            path: Snapshot file path
            max_age_minutes: Maximum snapshot age honored on load
        """
        self.path = Path(path)
        self.max_age = timedelta(minutes=max_age_minutes)

    def save(
        self,
        session: "WorshipSession",
        display_state: DisplayState,
        cursor: Optional[PresentationCursor],
        hymn_title: Optional[str],
    ) -> bool:
        """Write the snapshot while a session is active.

        Args:
            session: Worship session to record
            display_state: Current display state
            cursor: Current presentation cursor, if a hymn is on screen
            hymn_title: Title of the hymn on screen

        Returns:
            True if a snapshot was written
        """
        if not session.is_active:
            return False

        snapshot = PersistedSnapshot(
            display_state=display_state,
            is_worship_session_active=True,
            current_hymn_id=cursor.hymn_id if cursor else None,
            current_hymn_title=hymn_title if cursor else None,
            current_verse_index=cursor.verse_index if cursor else 0,
            presented_hymns=list(session.presented_hymns),
        )

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(snapshot.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write session snapshot {self.path}: {e}")
            return False

        logger.debug(f"Snapshot saved: {display_state.value}, hymn={snapshot.current_hymn_id}")
        return True

    def load(self) -> Optional[PersistedSnapshot]:
        """Read the snapshot.

        Returns:
            The snapshot, or None when missing, unreadable or stale
        """
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            snapshot = PersistedSnapshot.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Discarding unreadable session snapshot: {e}")
            self.clear()
            return None

        if not snapshot.is_recent(self.max_age):
            logger.info(f"Discarding session snapshot older than {self.max_age}")
            self.clear()
            return None

        return snapshot

    def clear(self) -> None:
        """Erase the snapshot."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove session snapshot {self.path}: {e}")
            return
        logger.debug("Snapshot cleared")

    def has_snapshot(self) -> bool:
        return self.path.exists()
