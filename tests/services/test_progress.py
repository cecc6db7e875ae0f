"""Tests for run progress tracking."""

import pytest

from energytune.config import Settings
from energytune.models import RunState
from energytune.services.progress import DurationHistory, ProgressTracker


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestDurationHistory:
    """Tests for the rolling duration window."""

    def test_heuristic_without_history(self, settings):
        history = DurationHistory(settings=settings)

        assert history.estimate(10) == 800
        assert history.estimate(100) == 1500

    def test_average_of_recorded_runs(self, settings):
        history = DurationHistory(settings=settings)
        history.add(1000)
        history.add(3000)

        assert history.average == 2000
        assert history.estimate(500) == 2000

    def test_keeps_last_five(self, settings):
        history = DurationHistory(settings=settings)
        for duration in range(1, 8):
            history.add(duration * 100)

        assert len(history) == 5
        assert history.durations == [300, 400, 500, 600, 700]

    def test_empty_average(self, settings):
        assert DurationHistory(settings=settings).average == 0.0


class TestProgressTracker:
    """Tests for the optimistic progress tracker."""

    def test_increment_reaches_target_at_estimate(self, settings, clock):
        tracker = ProgressTracker(10, 1000, settings=settings, clock=clock)
        assert tracker.increment == pytest.approx(0.045)

    def test_minimum_increment(self, settings, clock):
        tracker = ProgressTracker(10, 10_000_000, settings=settings, clock=clock)
        assert tracker.increment == settings.min_progress_per_tick

    def test_lead_over_real_progress_is_limited(self, settings, clock):
        tracker = ProgressTracker(10, 1000, settings=settings, clock=clock)

        for _ in range(100):
            event = tracker.tick()

        assert event.percentage == 15
        assert event.stage == "Preparing analysis..."
        assert event.state == RunState.RUNNING

    def test_capped_before_completion(self, settings, clock):
        tracker = ProgressTracker(20, 1000, settings=settings, clock=clock)
        tracker.enter_stage("finalize")
        tracker.report_stage_progress(1.0)

        for _ in range(50):
            event = tracker.tick()

        assert event.percentage == 95
        assert event.current == 19

    def test_follows_real_progress(self, settings, clock):
        tracker = ProgressTracker(10, 10_000_000, settings=settings, clock=clock)
        tracker.enter_stage("stress")
        tracker.report_stage_progress(0.4)

        # 0.05 + 0.15 + 0.35 * 0.4
        assert tracker.snapshot().percentage == 34

    def test_never_decreases(self, settings, clock):
        tracker = ProgressTracker(10, 1000, settings=settings, clock=clock)
        tracker.enter_stage("energy")
        tracker.report_stage_progress(1.0)
        high = tracker.tick().percentage

        tracker.enter_stage("prepare")
        percentages = [tracker.tick().percentage for _ in range(5)]

        assert all(p >= high for p in percentages)

    def test_stage_progress_is_monotonic(self, settings, clock):
        tracker = ProgressTracker(10, 1000, settings=settings, clock=clock)
        tracker.enter_stage("stress")
        tracker.report_stage_progress(0.6)
        tracker.report_stage_progress(0.2)

        assert tracker.stage_progress == 0.6

    def test_second_metric_covers_upper_half_of_analysis(self, settings, clock):
        tracker = ProgressTracker(10, 1000, settings=settings, clock=clock)
        tracker.enter_stage("stress")
        analysis_start = tracker.actual
        tracker.enter_stage("finalize")
        analysis_end = tracker.actual

        tracker.enter_stage("energy")

        assert tracker.actual == pytest.approx((analysis_start + analysis_end) / 2)

    def test_unknown_stage(self, settings, clock):
        tracker = ProgressTracker(10, 1000, settings=settings, clock=clock)
        with pytest.raises(ValueError):
            tracker.enter_stage("sleeping")

    @pytest.mark.parametrize(
        "elapsed_s,expected",
        [(0.5, 2), (2.5, 10), (22.0, 20), (47.0, 30)],
    )
    def test_remaining_seconds(self, settings, clock, elapsed_s, expected):
        tracker = ProgressTracker(10, 2000, settings=settings, clock=clock)
        clock.now = elapsed_s

        assert tracker.remaining_seconds() == expected

    def test_complete(self, settings, clock):
        tracker = ProgressTracker(12, 1000, settings=settings, clock=clock)

        event = tracker.complete()

        assert event.percentage == 100
        assert event.current == 12
        assert event.stage == "Complete!"
        assert event.estimated_time_remaining == 0
        assert event.state == RunState.COMPLETED
