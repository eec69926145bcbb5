"""Tests for the observable presentation state."""

from unittest.mock import MagicMock

from church_hymn.presenter.services.state_machine import DisplayState
from church_hymn.presenter.state import PresentationState


class TestPresentationStateDefaults:
    """Tests for initial values."""

    def test_defaults(self):
        state = PresentationState()

        assert state.display_state is DisplayState.DISCONNECTED
        assert state.current_hymn_id is None
        assert state.presented_hymns == []
        assert state.auto_present_countdown is None
        assert state.session_status == "No worship session"


class TestListeners:
    """Tests for property change listeners."""

    def test_listener_called_on_change(self):
        """Verify listeners receive the new value."""
        state = PresentationState()
        callback = MagicMock()
        state.add_listener("display_state", callback)

        state.set_display(DisplayState.CONNECTED, "External Display HDMI-1")

        callback.assert_called_once_with(DisplayState.CONNECTED)
        assert state.display_description == "External Display HDMI-1"

    def test_unchanged_value_not_notified(self):
        """Verify republishing the same value is silent."""
        state = PresentationState()
        callback = MagicMock()
        state.add_listener("verse_index", callback)

        state.set_slide("hymn_grace", "Amazing Grace", 2, "Verse 2", 6)
        state.set_slide("hymn_grace", "Amazing Grace", 2, "Verse 2", 6)

        callback.assert_called_once_with(2)

    def test_remove_listener(self):
        state = PresentationState()
        callback = MagicMock()
        state.add_listener("error_message", callback)
        state.remove_listener("error_message", callback)

        state.set_error("Failed")

        callback.assert_not_called()

    def test_failing_listener_does_not_block_others(self):
        state = PresentationState()
        seen = []
        state.add_listener("is_session_active", MagicMock(side_effect=RuntimeError("boom")))
        state.add_listener("is_session_active", seen.append)

        state.set_session(True, [])

        assert seen == [True]

    def test_error_always_notified(self):
        """Verify repeating the same error still notifies, so the UI can re-show it."""
        state = PresentationState()
        callback = MagicMock()
        state.add_listener("error_message", callback)

        state.set_error("No external display connected.")
        state.set_error("No external display connected.")
        state.clear_error()

        assert callback.call_count == 3
        assert state.error_message is None


class TestSessionStatus:
    """Tests for the session status line."""

    def test_background(self):
        state = PresentationState()
        state.set_display(DisplayState.WORSHIP_BACKGROUND, None)
        state.set_session(True, [])

        assert state.session_status == "Showing background"

    def test_presenting(self):
        state = PresentationState()
        state.set_display(DisplayState.WORSHIP_PRESENTING, None)
        state.set_slide("hymn_grace", "Amazing Grace", 0, "Verse 1", 6)
        state.set_session(True, ["Amazing Grace"])

        assert state.session_status == "Presenting: Amazing Grace"

    def test_history_is_copied(self):
        history = ["Amazing Grace"]
        state = PresentationState()

        state.set_session(True, history)
        history.append("Holy, Holy, Holy")

        assert state.presented_hymns == ["Amazing Grace"]
