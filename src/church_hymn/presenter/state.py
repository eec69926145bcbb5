"""Presentation state for the hymn presenter console.

Holds everything the UI renders about the secondary display and the
worship session, with observable properties the screens subscribe to.
Only the session coordinator and the schedulers write to it.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from church_hymn.presenter.logging_config import get_logger
from church_hymn.presenter.services.state_machine import DisplayState

logger = get_logger(__name__)


@dataclass
class PresentationState:
    """Observable presentation state.

    Attributes:
        display_state: Current state of the secondary display
        display_description: Attached display summary (None when absent)
        current_hymn_id: ID of the hymn on screen
        current_hymn_title: Title of the hymn on screen
        verse_index: Offset into the hymn's presentation sequence
        verse_label: Label of the slide on screen
        verse_total: Slides in the current hymn
        is_session_active: Whether a worship session is running
        presented_hymns: Titles shown during the session, first appearance order
        auto_present_countdown: Seconds until auto-present fires (None when idle)
        auto_advance_countdown: Seconds until the queue advances (None when idle)
        warning_message: Soft warning to show (e.g. hymn missing on resume)
        error_message: Last operation error to show
    """

    display_state: DisplayState = DisplayState.DISCONNECTED
    display_description: Optional[str] = None

    current_hymn_id: Optional[str] = None
    current_hymn_title: Optional[str] = None
    verse_index: int = 0
    verse_label: Optional[str] = None
    verse_total: int = 0

    is_session_active: bool = False
    presented_hymns: list[str] = field(default_factory=list)

    auto_present_countdown: Optional[int] = None
    auto_advance_countdown: Optional[int] = None

    warning_message: Optional[str] = None
    error_message: Optional[str] = None

    # Callbacks for state changes
    _listeners: dict[str, list[Callable]] = field(default_factory=dict)

    def add_listener(self, property_name: str, callback: Callable) -> None:
        """Add a listener for a property change.

        Args:
            property_name: Name of the property to watch
            callback: Function to call with the new value
        """
        self._listeners.setdefault(property_name, []).append(callback)

    def remove_listener(self, property_name: str, callback: Callable) -> None:
        """Remove a property change listener.

        Args:
            property_name: Name of the property
            callback: Callback to remove
        """
        if property_name in self._listeners:
            self._listeners[property_name] = [
                cb for cb in self._listeners[property_name] if cb != callback
            ]

    def _notify(self, property_name: str, value) -> None:
        """Notify listeners of a property change."""
        for callback in list(self._listeners.get(property_name, [])):
            try:
                callback(value)
            except Exception:
                logger.exception(f"Listener for '{property_name}' failed")

    def _set(self, property_name: str, value) -> None:
        """Assign and notify only when the value actually changed."""
        if getattr(self, property_name) == value:
            return
        setattr(self, property_name, value)
        self._notify(property_name, value)

    @property
    def session_status(self) -> str:
        """One-line worship session status."""
        if not self.is_session_active:
            return "No worship session"
        if self.display_state is DisplayState.WORSHIP_PRESENTING and self.current_hymn_title:
            return f"Presenting: {self.current_hymn_title}"
        return "Showing background"

    def set_display(self, display_state: DisplayState, description: Optional[str]) -> None:
        """Publish the display state and the attached display.

        Args:
            display_state: New display state
            description: Display summary (None when absent)
        """
        self._set("display_description", description)
        self._set("display_state", display_state)

    def set_slide(
        self,
        hymn_id: Optional[str],
        hymn_title: Optional[str],
        verse_index: int = 0,
        verse_label: Optional[str] = None,
        verse_total: int = 0,
    ) -> None:
        """Publish the hymn and slide on screen (hymn_id None clears it)."""
        self._set("current_hymn_id", hymn_id)
        self._set("current_hymn_title", hymn_title)
        self._set("verse_total", verse_total)
        self._set("verse_label", verse_label)
        self._set("verse_index", verse_index)

    def set_session(self, is_active: bool, presented_hymns: list[str]) -> None:
        """Publish the worship session flag and history.

        Args:
            is_active: Whether a session is running
            presented_hymns: Session history
        """
        self._set("presented_hymns", list(presented_hymns))
        self._set("is_session_active", is_active)

    def set_auto_present_countdown(self, seconds: Optional[int]) -> None:
        self._set("auto_present_countdown", seconds)

    def set_auto_advance_countdown(self, seconds: Optional[int]) -> None:
        self._set("auto_advance_countdown", seconds)

    def set_warning(self, message: Optional[str]) -> None:
        """Set warning message.

        Args:
            message: Warning message (None to clear)
        """
        self.warning_message = message
        self._notify("warning_message", message)

    def set_error(self, message: Optional[str]) -> None:
        """Set error message.

        Args:
            message: Error message (None to clear)
        """
        self.error_message = message
        self._notify("error_message", message)

    def clear_error(self) -> None:
        """Clear the current error message."""
        self.set_error(None)
