"""Tests for wiring the presentation engine."""

import pytest

from church_hymn.presenter.config import AppConfig
from church_hymn.presenter.app import build_presenter
from church_hymn.presenter.services.state_machine import DisplayState
from church_hymn.presenter.services.surface import MemorySurface


@pytest.fixture
def presenter(tmp_path, probe, hymn_source):
    config = AppConfig(
        snapshot_path=tmp_path / "snap.json",
        log_dir=tmp_path / "logs",
        background_image="cross",
        auto_advance_enabled=True,
        auto_advance_delay_seconds=10,
    )
    return build_presenter(config, MemorySurface(), probe, hymn_source, tick_seconds=0.001)


class TestBuildPresenter:
    """Tests for build_presenter."""

    def test_config_is_applied(self, presenter, tmp_path):
        assert presenter.machine.background_image == "cross"
        assert presenter.store.path == tmp_path / "snap.json"
        assert presenter.queue.auto_advance_enabled
        assert presenter.queue.auto_advance_delay == 10
        assert not presenter.auto_present.enabled

    @pytest.mark.asyncio
    async def test_components_share_state(self, presenter, amazing_grace):
        """Verify a session started through the coordinator reaches the shared state."""
        await presenter.coordinator.connect()
        await presenter.coordinator.start_session()
        presenter.queue.add(amazing_grace)

        await presenter.queue.present_next()

        assert presenter.state.display_state is DisplayState.WORSHIP_PRESENTING
        assert presenter.state.session_status == "Presenting: Amazing Grace"
        assert presenter.store.load().current_hymn_id == "hymn_grace"
