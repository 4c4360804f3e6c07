# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for the alert scheduler."""

import threading

import pytest

from garagewatch.door.scheduler import AlertScheduler


def _make_scheduler(timers, max_ticks=1, post=None):
    ticks: list[int] = []
    thresholds: list[int] = []
    scheduler = AlertScheduler(
        10.0,
        max_ticks,
        on_tick=ticks.append,
        on_threshold=lambda: thresholds.append(scheduler.ticks_elapsed),
        post=post,
        timer_factory=timers,
    )
    return scheduler, ticks, thresholds


class TestAlertSchedulerInit:
    """Tests for AlertScheduler construction."""

    def test_not_running_initially(self, timers) -> None:
        """A new scheduler is idle and creates no timer."""
        scheduler, _, _ = _make_scheduler(timers)
        assert not scheduler.is_running
        assert scheduler.ticks_elapsed == 0
        assert timers.timers == []

    def test_invalid_interval(self, timers) -> None:
        """Non-positive interval is rejected."""
        with pytest.raises(ValueError, match="Interval"):
            AlertScheduler(0, 1, timer_factory=timers)

    def test_invalid_max_ticks(self, timers) -> None:
        """Max ticks below one is rejected."""
        with pytest.raises(ValueError, match="Max ticks"):
            AlertScheduler(1.0, 0, timer_factory=timers)


class TestAlertSchedulerTicks:
    """Tests for tick counting and the threshold callback."""

    def test_start_schedules_daemon_timer(self, timers) -> None:
        """Start arms one daemon timer with the configured interval."""
        scheduler, _, _ = _make_scheduler(timers)
        scheduler.start()
        assert scheduler.is_running
        assert len(timers.active) == 1
        assert timers.latest.interval == 10.0
        assert timers.latest.daemon is True

    def test_threshold_after_single_tick(self, timers) -> None:
        """With max_ticks=1 the first tick reaches the threshold."""
        scheduler, ticks, thresholds = _make_scheduler(timers)
        scheduler.start()
        timers.latest.fire()
        assert ticks == [1]
        assert thresholds == [1]

    def test_self_stops_before_threshold_callback(self, timers) -> None:
        """The scheduler is already stopped when on_threshold runs."""
        running_at_threshold: list[bool] = []
        scheduler = AlertScheduler(
            1.0,
            1,
            on_threshold=lambda: running_at_threshold.append(
                scheduler.is_running
            ),
            timer_factory=timers,
        )
        scheduler.start()
        timers.latest.fire()
        assert running_at_threshold == [False]
        assert timers.active == []

    def test_multiple_ticks_before_threshold(self, timers) -> None:
        """Each tick re-arms the timer until the threshold is reached."""
        scheduler, ticks, thresholds = _make_scheduler(timers, max_ticks=3)
        scheduler.start()
        timers.latest.fire()
        timers.latest.fire()
        assert ticks == [1, 2]
        assert thresholds == []
        assert scheduler.is_running
        timers.latest.fire()
        assert ticks == [1, 2, 3]
        assert thresholds == [3]
        assert not scheduler.is_running

    def test_threshold_fires_once(self, timers) -> None:
        """Re-firing an expired timer after the threshold does nothing."""
        scheduler, _, thresholds = _make_scheduler(timers)
        scheduler.start()
        last = timers.latest
        last.fire()
        last.fire()
        assert thresholds == [1]


class TestAlertSchedulerStopAndRestart:
    """Tests for stop() and restart semantics."""

    def test_stop_cancels_timer(self, timers) -> None:
        """Stop cancels the pending timer."""
        scheduler, _, _ = _make_scheduler(timers)
        scheduler.start()
        scheduler.stop()
        assert not scheduler.is_running
        assert timers.latest.cancelled

    def test_stop_when_idle(self, timers) -> None:
        """Stop on an idle scheduler is harmless."""
        scheduler, _, _ = _make_scheduler(timers)
        scheduler.stop()
        scheduler.stop()
        assert not scheduler.is_running

    def test_never_fires_after_stop(self, timers) -> None:
        """A timer that expires after stop() is dropped."""
        scheduler, ticks, thresholds = _make_scheduler(timers)
        scheduler.start()
        timer = timers.latest
        scheduler.stop()
        timer.fire()
        assert ticks == []
        assert thresholds == []

    def test_restart_resets_count(self, timers) -> None:
        """Restarting while running counts again from zero."""
        scheduler, ticks, thresholds = _make_scheduler(timers, max_ticks=2)
        scheduler.start()
        timers.latest.fire()
        assert scheduler.ticks_elapsed == 1

        scheduler.start()
        assert scheduler.ticks_elapsed == 0
        timers.latest.fire()
        assert ticks == [1, 1]
        assert thresholds == []

    def test_restart_drops_stale_tick(self, timers) -> None:
        """A tick from the previous arm does not count after restart."""
        scheduler, ticks, thresholds = _make_scheduler(timers)
        scheduler.start()
        first = timers.latest
        scheduler.start()
        assert first.cancelled
        first.fire()
        assert ticks == []
        assert thresholds == []
        assert scheduler.is_running
        assert len(timers.active) == 1

    def test_post_receives_tick_work(self, timers) -> None:
        """Timer expiry hands tick processing to post()."""
        posted = []
        scheduler, ticks, _ = _make_scheduler(timers, post=posted.append)
        scheduler.start()
        timers.latest.fire()
        assert ticks == []
        assert len(posted) == 1
        posted[0]()
        assert ticks == [1]

    def test_stop_between_expiry_and_processing(self, timers) -> None:
        """A tick queued before stop() is dropped when it is processed."""
        posted = []
        scheduler, ticks, thresholds = _make_scheduler(
            timers, post=posted.append
        )
        scheduler.start()
        timers.latest.fire()
        scheduler.stop()
        posted[0]()
        assert ticks == []
        assert thresholds == []


class TestAlertSchedulerRealTimer:
    """Smoke test with a real threading.Timer."""

    def test_fires_on_timer_thread(self) -> None:
        """Threshold fires after the interval with the default factory."""
        fired = threading.Event()
        scheduler = AlertScheduler(0.01, 1, on_threshold=fired.set)
        scheduler.start()
        assert fired.wait(timeout=5)
        assert not scheduler.is_running
