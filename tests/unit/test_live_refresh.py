"""Unit tests for live data: buffer, smart refresh protocol, freshness probe

Tests the refresh cycle including:
- Unchanged token skips the data fetch
- Failed checks/fetches leave RefreshState untouched
- Responses after close are discarded
- Idempotent merge into LiveLogBuffer
"""
import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from iotview.errors import ApiError
from iotview.live.freshness import FreshnessProbe
from iotview.live.log_buffer import LiveLogBuffer
from iotview.live.refresh import RefreshOutcome, RefreshState, SmartRefresher
from iotview.live.scheduler import RefreshScheduler


class TestLiveLogBuffer:
    """Test de-duplicated merging"""

    def test_merge_twice_is_idempotent(self, make_record):
        buffer = LiveLogBuffer(7)
        batch = [make_record(record_id=1), make_record(record_id=2, minutes=1)]

        assert len(buffer.merge(batch)) == 2
        assert buffer.merge(batch) == []
        assert len(buffer) == 2

    def test_overlapping_batches(self, make_record):
        buffer = LiveLogBuffer(7)
        buffer.merge([make_record(record_id=1), make_record(record_id=2, minutes=1)])
        added = buffer.merge([make_record(record_id=2, minutes=1), make_record(record_id=3, minutes=2)])

        assert [r.id for r in added] == [3]
        assert [r.id for r in buffer.records()] == [1, 2, 3]

    def test_records_without_id_use_key_and_timestamp(self, make_record):
        buffer = LiveLogBuffer(7)
        buffer.merge([make_record(minutes=0), make_record(minutes=0), make_record(minutes=1)])

        assert len(buffer) == 2

    def test_filter_by_keys(self, make_record):
        buffer = LiveLogBuffer(7)
        buffer.merge([
            make_record(key="TMP_1", record_id=1),
            make_record(key="HUM_1", record_id=2),
            make_record(key="TMP_1", record_id=3, minutes=1),
        ])

        assert [r.id for r in buffer.records(["TMP_1"])] == [1, 3]
        assert buffer.keys() == ["TMP_1", "HUM_1"]
        assert buffer.latest_by_key()["TMP_1"].id == 3

    def test_replace_resets(self, make_record):
        buffer = LiveLogBuffer(7)
        buffer.merge([make_record(record_id=1)])
        buffer.replace([make_record(record_id=2)])

        assert [r.id for r in buffer.records()] == [2]
        assert make_record(record_id=1) not in buffer

    def test_listeners_see_only_additions(self, make_record):
        buffer = LiveLogBuffer(7)
        seen = []
        unsubscribe = buffer.subscribe(seen.append)

        buffer.merge([make_record(record_id=1)])
        buffer.merge([make_record(record_id=1)])
        unsubscribe()
        buffer.merge([make_record(record_id=2)])

        assert len(seen) == 1
        assert [r.id for r in seen[0]] == [1]


class TestFreshnessProbe:
    def test_returns_token(self, source):
        source.last_update.return_value = "2024-03-15 11:59:00"
        probe = FreshnessProbe(source)

        assert asyncio.run(probe.check_updated(7)) == "2024-03-15 11:59:00"
        source.last_update.assert_awaited_once_with(7)


class TestSmartRefresher:
    """Test the smart refresh protocol"""

    def _ready(self, source, clock, token="T1"):
        refresher = SmartRefresher(7, source, LiveLogBuffer(7), clock=clock)
        refresher.state = RefreshState(
            last_fetch_boundary=datetime.fromtimestamp(clock() - 60, tz=timezone.utc),
            last_known_update=token,
        )
        return refresher

    def test_not_ready_before_initialize(self, source, clock):
        refresher = SmartRefresher(7, source, LiveLogBuffer(7), clock=clock)

        result = asyncio.run(refresher.refresh())

        assert result.outcome == RefreshOutcome.NOT_READY
        source.last_update.assert_not_awaited()

    def test_initialize_loads_day_and_token(self, source, clock, make_record):
        source.fetch_logs.return_value = [make_record(record_id=1), make_record(record_id=2)]
        source.last_update.return_value = "T1"
        refresher = SmartRefresher(7, source, LiveLogBuffer(7), clock=clock)

        result = asyncio.run(refresher.initialize())

        assert result.outcome == RefreshOutcome.UPDATED
        assert len(refresher.buffer) == 2
        assert refresher.last_update == "T1"
        _, date_from, date_to = source.fetch_logs.await_args.args
        assert date_from == datetime(2024, 3, 15, tzinfo=timezone.utc)
        assert date_to == datetime.fromtimestamp(clock(), tz=timezone.utc)
        assert refresher.state.last_fetch_boundary == date_to

    def test_initialize_tolerates_missing_token(self, source, clock, make_record):
        source.fetch_logs.return_value = [make_record(record_id=1)]
        source.last_update.side_effect = ApiError("device_last_update.php", "boom")
        refresher = SmartRefresher(7, source, LiveLogBuffer(7), clock=clock)

        result = asyncio.run(refresher.initialize())

        assert result.outcome == RefreshOutcome.UPDATED
        assert refresher.last_update is None

    def test_initialize_failure(self, source, clock):
        source.fetch_logs.side_effect = OSError("connection refused")
        refresher = SmartRefresher(7, source, LiveLogBuffer(7), clock=clock)

        result = asyncio.run(refresher.initialize())

        assert result.outcome == RefreshOutcome.FAILED
        assert refresher.state is None

    def test_initialize_propagates_programming_errors(self, source, clock):
        source.fetch_logs.side_effect = TypeError("bad call")
        refresher = SmartRefresher(7, source, LiveLogBuffer(7), clock=clock)

        with pytest.raises(TypeError):
            asyncio.run(refresher.initialize())

    def test_unchanged_token_skips_fetch(self, source, clock):
        source.last_update.return_value = "T1"
        refresher = self._ready(source, clock, token="T1")
        state_before = refresher.state

        result = asyncio.run(refresher.refresh())

        assert result.outcome == RefreshOutcome.UNCHANGED
        source.fetch_logs.assert_not_awaited()
        assert refresher.state is state_before

    def test_new_token_fetches_since_boundary(self, source, clock, make_record):
        source.last_update.return_value = "T2"
        source.fetch_logs.return_value = [make_record(record_id=10)]
        refresher = self._ready(source, clock, token="T1")
        boundary = refresher.state.last_fetch_boundary
        clock.advance(30)

        result = asyncio.run(refresher.refresh())

        assert result.outcome == RefreshOutcome.UPDATED
        assert result.added == 1
        _, date_from, date_to = source.fetch_logs.await_args.args
        assert date_from == boundary
        assert refresher.state.last_fetch_boundary == date_to
        assert refresher.state.last_known_update == "T2"

    def test_same_token_twice_fetches_once(self, source, clock, make_record):
        """Two cycles seeing the same new token: only the first pulls logs"""
        source.last_update.return_value = "T1"
        source.fetch_logs.return_value = [make_record(record_id=1)]
        refresher = self._ready(source, clock, token="T0")

        first = asyncio.run(refresher.refresh())
        second = asyncio.run(refresher.refresh())

        assert first.outcome == RefreshOutcome.UPDATED
        assert second.outcome == RefreshOutcome.UNCHANGED
        assert source.fetch_logs.await_count == 1

    def test_check_failure_leaves_state(self, source, clock):
        source.last_update.side_effect = OSError("timeout")
        refresher = self._ready(source, clock)
        state_before = refresher.state

        result = asyncio.run(refresher.refresh())

        assert result.outcome == RefreshOutcome.FAILED
        assert "timeout" in result.error
        assert refresher.state is state_before

    def test_fetch_failure_leaves_state(self, source, clock):
        source.last_update.return_value = "T2"
        source.fetch_logs.side_effect = ApiError("device_logs.php", "db down")
        refresher = self._ready(source, clock, token="T1")
        state_before = refresher.state

        result = asyncio.run(refresher.refresh())

        assert result.outcome == RefreshOutcome.FAILED
        assert refresher.state is state_before
        assert refresher.state.last_known_update == "T1"

    def test_duplicates_merged_once(self, source, clock, make_record):
        source.last_update.return_value = "T2"
        source.fetch_logs.return_value = [make_record(record_id=1), make_record(record_id=2)]
        refresher = self._ready(source, clock, token="T1")
        refresher.buffer.merge([make_record(record_id=1)])

        result = asyncio.run(refresher.refresh())

        assert result.added == 1
        assert len(refresher.buffer) == 2

    def test_response_after_discard_is_dropped(self, source, clock, make_record):
        refresher = self._ready(source, clock, token="T1")

        async def slow_token(device_id):
            refresher.discard()
            return "T2"

        source.last_update.side_effect = slow_token
        source.fetch_logs.return_value = [make_record(record_id=1)]

        result = asyncio.run(refresher.refresh())

        assert result.outcome == RefreshOutcome.DISCARDED
        source.fetch_logs.assert_not_awaited()
        assert len(refresher.buffer) == 0


class TestRefreshScheduler:
    """Test countdown, pause and overlap protection"""

    def _scheduler(self, interval=3):
        callback = AsyncMock(return_value=Mock(outcome=RefreshOutcome.UNCHANGED))
        return RefreshScheduler(callback, interval=interval), callback

    def test_fires_at_zero(self):
        scheduler, callback = self._scheduler(interval=3)

        async def run():
            results = [await scheduler.tick() for _ in range(3)]
            return results

        results = asyncio.run(run())

        assert results[:2] == [None, None]
        assert results[2] is not None
        callback.assert_awaited_once()
        assert scheduler.time_left == 3

    def test_paused_does_not_count(self):
        scheduler, callback = self._scheduler(interval=2)
        scheduler.pause()

        async def run():
            for _ in range(5):
                await scheduler.tick()

        asyncio.run(run())

        assert scheduler.time_left == 2
        callback.assert_not_awaited()

        assert scheduler.toggle_pause() is False
        asyncio.run(run())
        assert callback.await_count == 2

    def test_trigger_now_while_in_progress_is_skipped(self):
        scheduler, callback = self._scheduler()
        scheduler.in_progress = True

        result = asyncio.run(scheduler.trigger_now())

        assert result.outcome == RefreshOutcome.SKIPPED
        callback.assert_not_awaited()

    def test_no_overlapping_cycles(self):
        """A tick arriving while a cycle is in flight neither counts nor fires"""
        started = []

        async def slow_refresh():
            started.append(True)
            await asyncio.sleep(0.01)
            return Mock(outcome=RefreshOutcome.UPDATED)

        scheduler = RefreshScheduler(slow_refresh, interval=1)

        async def run():
            first = asyncio.ensure_future(scheduler.trigger_now())
            await asyncio.sleep(0)
            assert scheduler.in_progress
            tick_result = await scheduler.tick()
            manual = await scheduler.trigger_now()
            await first
            return tick_result, manual

        tick_result, manual = asyncio.run(run())

        assert tick_result is None
        assert manual.outcome == RefreshOutcome.SKIPPED
        assert len(started) == 1
        assert not scheduler.in_progress

    def test_manual_trigger_resets_countdown(self):
        scheduler, callback = self._scheduler(interval=5)

        async def run():
            await scheduler.tick()
            await scheduler.tick()
            return await scheduler.trigger_now()

        asyncio.run(run())

        assert scheduler.time_left == 5
        assert scheduler.progress == 1.0
        assert scheduler.last_result is not None

    def test_callback_error_releases_flag(self):
        scheduler = RefreshScheduler(AsyncMock(side_effect=RuntimeError("boom")), interval=1)

        with pytest.raises(RuntimeError):
            asyncio.run(scheduler.trigger_now())
        assert not scheduler.in_progress

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            RefreshScheduler(AsyncMock(), interval=0)

    def test_run_loop_ticks_until_stopped(self):
        callback = AsyncMock(return_value=Mock(outcome=RefreshOutcome.UNCHANGED))
        scheduler = RefreshScheduler(callback, interval=1, tick_seconds=0.001)

        async def run():
            task = scheduler.start()
            while callback.await_count < 2:
                await asyncio.sleep(0.001)
            scheduler.stop()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())

        assert not scheduler.running
