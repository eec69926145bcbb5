"""Tests for the hymn queue.

Tests editing, statistics, sequential presentation and auto-advance.
"""

import pytest

from church_hymn.presenter.db.models import Hymn
from church_hymn.presenter.errors import PresentationFailedError, SessionNotActiveError
from church_hymn.presenter.services.queue import HymnQueue, QueueStatus
from church_hymn.presenter.services.state_machine import DisplayState

TICK = 0.001


@pytest.fixture
def queue(coordinator, state):
    """Queue with auto-advance off."""
    return HymnQueue(coordinator, state, tick_seconds=TICK)


@pytest.fixture
async def in_session(coordinator):
    await coordinator.connect()
    await coordinator.start_session()
    return coordinator


class TestQueueEditing:
    """Tests for adding, removing and reordering items."""

    def test_add(self, queue, amazing_grace):
        item = queue.add(amazing_grace, starting_verse=2)

        assert item.status is QueueStatus.WAITING
        assert item.starting_verse == 2
        assert len(queue) == 1
        assert len(item.id) == 12

    def test_add_skips_waiting_duplicate(self, queue, amazing_grace):
        queue.add(amazing_grace)

        assert queue.add(amazing_grace) is None
        assert len(queue) == 1

    def test_add_many(self, queue, amazing_grace, holy_holy):
        assert queue.add_many([amazing_grace, holy_holy, amazing_grace]) == 2
        assert [item.hymn.id for item in queue.items] == ["hymn_grace", "hymn_holy"]

    def test_remove(self, queue, amazing_grace, holy_holy):
        first = queue.add(amazing_grace)
        queue.add(holy_holy)

        assert queue.remove(first.id)
        assert not queue.remove(first.id)
        assert [item.hymn.id for item in queue.items] == ["hymn_holy"]

    def test_move(self, queue, amazing_grace, holy_holy):
        """Verify items swap with their neighbours and stop at the ends."""
        first = queue.add(amazing_grace)
        second = queue.add(holy_holy)

        assert queue.move_up(second.id)
        assert queue.items == [second, first]
        assert not queue.move_up(second.id)
        assert not queue.move_down(first.id)
        assert queue.move_down(second.id)
        assert queue.items == [first, second]
        assert not queue.move_up("missing")

    def test_set_delay(self, queue):
        queue.set_delay(15)
        assert queue.auto_advance_delay == 15

        with pytest.raises(ValueError):
            queue.set_delay(4)

    def test_invalid_initial_delay_falls_back(self, coordinator, state):
        assert HymnQueue(coordinator, state, auto_advance_delay=7).auto_advance_delay == 5


class TestQueueStatistics:
    """Tests for statistics and lookups."""

    def test_empty(self, queue):
        stats = queue.statistics

        assert stats.total == 0
        assert stats.progress == 0.0
        assert queue.current is None
        assert not queue.has_next()

    @pytest.mark.asyncio
    async def test_progress(self, in_session, queue, amazing_grace, holy_holy):
        other = Hymn(id="hymn_other", title="Be Thou My Vision", lyrics="Be thou my vision")
        queue.add_many([amazing_grace, holy_holy, other])
        await queue.present_next()
        await queue.present_next()
        await queue.skip_current()

        stats = queue.statistics

        assert (stats.total, stats.waiting, stats.completed, stats.skipped) == (3, 1, 1, 1)
        assert stats.current_position == 2
        assert stats.progress == pytest.approx(2 / 3)

    @pytest.mark.asyncio
    async def test_clear_completed(self, in_session, queue, amazing_grace, holy_holy):
        queue.add_many([amazing_grace, holy_holy])
        await queue.present_next()
        await queue.present_next()

        assert queue.clear_completed() == 1
        assert [item.hymn.id for item in queue.items] == ["hymn_holy"]


class TestPresentNext:
    """Tests for sequential presentation."""

    @pytest.mark.asyncio
    async def test_requires_session(self, coordinator, queue, amazing_grace):
        await coordinator.connect()
        queue.add(amazing_grace)

        with pytest.raises(SessionNotActiveError):
            await queue.present_next()

        assert queue.items[0].status is QueueStatus.WAITING

    @pytest.mark.asyncio
    async def test_nothing_waiting(self, in_session, queue):
        assert await queue.present_next() is False

    @pytest.mark.asyncio
    async def test_sequence(self, in_session, queue, amazing_grace, holy_holy):
        """Verify the previous item completes once the next one is on screen."""
        first = queue.add(amazing_grace, starting_verse=1)
        second = queue.add(holy_holy)

        await queue.present_next()
        assert first.status is QueueStatus.PRESENTING
        assert in_session.machine.cursor.verse_index == 1

        await queue.present_next()
        assert first.status is QueueStatus.COMPLETED
        assert second.status is QueueStatus.PRESENTING
        assert in_session.current_hymn is holy_holy
        assert in_session.session.presented_hymns == ["Amazing Grace", "Holy, Holy, Holy"]

    @pytest.mark.asyncio
    async def test_failure_reverts_item(self, in_session, queue, amazing_grace, holy_holy, surface):
        """Verify a failed presentation leaves the queue as it was."""
        first = queue.add(amazing_grace)
        second = queue.add(holy_holy)
        await queue.present_next()
        surface.fail_next_render = True

        with pytest.raises(PresentationFailedError):
            await queue.present_next()

        assert first.status is QueueStatus.PRESENTING
        assert second.status is QueueStatus.WAITING

    @pytest.mark.asyncio
    async def test_skip_current(self, in_session, queue, amazing_grace, holy_holy):
        first = queue.add(amazing_grace)
        queue.add(holy_holy)
        await queue.present_next()

        assert await queue.skip_current()

        assert first.status is QueueStatus.SKIPPED
        assert queue.current is None
        assert in_session.current_hymn is amazing_grace

    @pytest.mark.asyncio
    async def test_skip_without_current(self, in_session, queue):
        assert await queue.skip_current() is False

    @pytest.mark.asyncio
    async def test_clear_cancels_auto_advance(self, in_session, coordinator, state, amazing_grace, holy_holy):
        queue = HymnQueue(coordinator, state, auto_advance_enabled=True, auto_advance_delay=30, tick_seconds=0.05)
        queue.add_many([amazing_grace, holy_holy])
        await queue.present_next()
        assert queue.countdown.is_running

        queue.clear()

        assert not queue.countdown.is_running
        assert state.auto_advance_countdown is None


class TestAutoAdvance:
    """Tests for auto-advance."""

    @pytest.fixture
    def auto_queue(self, coordinator, state):
        return HymnQueue(coordinator, state, auto_advance_enabled=True, auto_advance_delay=3, tick_seconds=TICK)

    @pytest.mark.asyncio
    async def test_advances_after_delay(self, in_session, auto_queue, amazing_grace, holy_holy, state):
        """Verify the queue moves on by itself and stops at the end."""
        first = auto_queue.add(amazing_grace)
        second = auto_queue.add(holy_holy)

        await auto_queue.present_next()
        await auto_queue.countdown.wait()

        assert first.status is QueueStatus.COMPLETED
        assert second.status is QueueStatus.PRESENTING
        assert in_session.current_hymn is holy_holy
        assert not auto_queue.countdown.is_running
        assert state.auto_advance_countdown is None

    @pytest.mark.asyncio
    async def test_not_started_for_last_item(self, in_session, auto_queue, amazing_grace):
        auto_queue.add(amazing_grace)

        await auto_queue.present_next()

        assert not auto_queue.countdown.is_running

    @pytest.mark.asyncio
    async def test_session_stop_cancels(self, in_session, coordinator, state, amazing_grace, holy_holy):
        queue = HymnQueue(coordinator, state, auto_advance_enabled=True, auto_advance_delay=30, tick_seconds=0.05)
        queue.add_many([amazing_grace, holy_holy])
        await queue.present_next()

        await in_session.stop_session()

        assert not queue.countdown.is_running
        assert in_session.machine.state is DisplayState.CONNECTED

    @pytest.mark.asyncio
    async def test_failed_advance_publishes_error(self, in_session, auto_queue, amazing_grace, holy_holy, surface, state):
        """Verify a failing advance reports the error and requeues the item."""
        auto_queue.add_many([amazing_grace, holy_holy])
        await auto_queue.present_next()
        surface.fail_next_render = True

        await auto_queue.countdown.wait()

        assert state.error_message is not None
        assert auto_queue.next_item.hymn is holy_holy
        assert in_session.current_hymn is amazing_grace
