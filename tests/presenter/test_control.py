"""Tests for the control screen key bindings.

Drives the console with Textual's pilot API against a simulated display.
"""

import pytest

from church_hymn.presenter.app import PresenterApp
from church_hymn.presenter.config import AppConfig
from church_hymn.presenter.screens.control import VERSE_KEYS, ControlScreen
from church_hymn.presenter.services.state_machine import DisplayState


@pytest.fixture
def app(tmp_path, library_db):
    """Console over the test library with the static display probe."""
    config = AppConfig(
        db_path=library_db,
        display_probe="static",
        poll_interval_seconds=0.05,
        snapshot_path=tmp_path / "snap.json",
        log_dir=tmp_path / "logs",
    )
    return PresenterApp(config, static_display=True)


class TestVerseBindings:
    """Tests for the slide jump keys."""

    def test_digit_keys_map_to_slides(self):
        """Verify keys 1-9 jump to slides 0-8."""
        actions = {
            binding.key: binding.action
            for binding in ControlScreen.BINDINGS
            if not isinstance(binding, tuple)
        }

        for index, key in enumerate(VERSE_KEYS):
            assert actions[key] == f"go_to_verse({index})"

    @pytest.mark.asyncio
    async def test_jump_and_step(self, app):
        """Verify digit keys jump and arrow keys step through the hymn on screen."""
        async with app.run_test() as pilot:
            machine = app.presenter.machine

            await pilot.press("d")
            await pilot.pause()
            assert machine.state is DisplayState.CONNECTED

            await pilot.press("p")
            await pilot.pause()
            assert machine.state is DisplayState.PRESENTING_SINGLE
            assert machine.current_hymn.id == "hymn_holy"

            await pilot.press("right")
            await pilot.pause()
            assert machine.cursor.verse_index == 1

            await pilot.press("1")
            await pilot.pause()
            assert machine.cursor.verse_index == 0

            await pilot.press("9")
            await pilot.pause()
            assert machine.cursor.verse_index == 0

            await app.presenter.watcher.stop()
