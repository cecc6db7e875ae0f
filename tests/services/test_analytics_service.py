"""Tests for the analytics controller."""

import asyncio

import pytest

from energytune.exceptions import AnalysisAbortedError
from energytune.models import AnalysisMode, Metric, PatternResult, RunState
from energytune.patterns import HierarchicalPatternEngine
from energytune.services import analytics_service
from energytune.services.analytics_service import AnalyticsEngine, get_analytics_engine


class SlowPatternEngine(HierarchicalPatternEngine):
    """Pattern engine that takes a while and honours aborts."""

    async def analyze(self, entries, metric, mode=AnalysisMode.FAST, should_abort=None, on_progress=None):
        for step in range(100):
            await asyncio.sleep(0.01)
            if should_abort is not None and should_abort():
                raise AnalysisAbortedError()
            if on_progress is not None:
                on_progress("clustering", step / 100)
        return PatternResult.empty(metric, mode)


class StressFailingEngine(HierarchicalPatternEngine):
    """Pattern engine whose stress analysis blows up."""

    async def analyze(self, entries, metric, mode=AnalysisMode.FAST, should_abort=None, on_progress=None):
        if metric == Metric.STRESS:
            raise RuntimeError("tokenizer crashed")
        return await super().analyze(entries, metric, mode, should_abort, on_progress)


@pytest.fixture
def engine() -> AnalyticsEngine:
    return AnalyticsEngine()


def _record(engine: AnalyticsEngine):
    events = []
    engine.add_listener(events.append)
    return events


class TestRuns:
    """Tests for fast and deep runs."""

    @pytest.mark.asyncio
    async def test_fast_run_publishes_results(self, engine, journal):
        completed = await engine.run_fast_analysis(journal)

        assert completed is True
        assert engine.state == RunState.IDLE
        assert engine.has_run_analysis
        assert engine.stress_patterns.has_patterns
        assert engine.energy_patterns.has_patterns
        assert engine.analysis_mode == AnalysisMode.FAST
        assert len(engine.history) == 1
        assert engine.average_calculation_time > 0
        assert engine.progress.percentage == 0

    @pytest.mark.asyncio
    async def test_progress_events(self, engine, journal):
        events = _record(engine)

        await engine.run_fast_analysis(journal)

        percentages = [e.percentage for e in events]
        assert percentages == sorted(percentages)
        assert events[-1].state == RunState.COMPLETED
        assert events[-1].percentage == 100
        assert events[-1].current == events[-1].total == len(journal)
        assert all(e.state == RunState.RUNNING for e in events[:-1])

    @pytest.mark.asyncio
    async def test_concurrent_run_rejected(self, engine, journal):
        first = asyncio.create_task(engine.run_fast_analysis(journal))
        await asyncio.sleep(0)

        assert engine.is_running
        assert await engine.run_deep_analysis(journal) is False
        assert await first is True
        assert engine.deep_stress_patterns is None

    @pytest.mark.asyncio
    async def test_deep_run(self, engine, journal):
        assert await engine.run_deep_analysis(journal) is True

        assert engine.analysis_mode == AnalysisMode.DEEP
        assert engine.has_deep_results
        assert engine.current_stress_patterns is engine.deep_stress_patterns
        assert engine.current_stress_patterns.mode == AnalysisMode.DEEP
        assert engine.summary().has_deep_results

    @pytest.mark.asyncio
    async def test_switch_to_fast_keeps_deep_results(self, engine, journal):
        await engine.run_fast_analysis(journal)
        await engine.run_deep_analysis(journal)

        engine.switch_to_fast_mode()

        assert engine.current_energy_patterns is engine.energy_patterns
        assert engine.deep_energy_patterns is not None
        assert engine.summary().mode == AnalysisMode.FAST

    @pytest.mark.asyncio
    async def test_metric_failure_is_isolated(self, journal):
        engine = AnalyticsEngine(pattern_engine=StressFailingEngine())

        assert await engine.run_fast_analysis(journal) is True

        assert engine.metric_errors["stress"] == "Pattern clustering failed for stress (fast): tokenizer crashed"
        assert engine.stress_patterns.main_patterns == []
        assert engine.stress_patterns.discovery_method == "none"
        assert engine.energy_patterns.has_patterns
        assert "energy" not in engine.metric_errors

    @pytest.mark.asyncio
    async def test_bad_entry_does_not_stop_the_run(self, engine, journal, make_entry):
        entries = list(journal)
        entries[3] = make_entry("2024-01-04", energy={"morning": "high"}, stress_sources="dentist")
        entries[5] = make_entry("2024-01-06", energy=0, stress=11, stress_sources="work deadline")

        completed = await engine.run_fast_analysis(entries)

        assert completed is True
        assert engine.error is None
        assert engine.stress_patterns.has_patterns
        assert engine.energy_patterns.has_patterns

    @pytest.mark.asyncio
    async def test_unexpected_failure(self, engine, journal, monkeypatch):
        def broken(entries):
            raise RuntimeError("storage went away")

        monkeypatch.setattr(analytics_service, "coerce_entries", broken)
        events = _record(engine)

        completed = await engine.run_fast_analysis(journal)

        assert completed is False
        assert engine.error == "storage went away"
        assert engine.state == RunState.IDLE
        assert engine.progress.percentage == 0
        assert events[-1].state == RunState.FAILED
        assert not engine.has_run_analysis

    @pytest.mark.asyncio
    async def test_empty_journal(self, engine):
        assert await engine.run_fast_analysis([]) is True

        assert engine.stress_patterns.main_patterns == []
        assert engine.summary().has_data is False

    @pytest.mark.asyncio
    async def test_progress_iterator(self, engine, journal):
        async def collect():
            return [event async for event in engine.progress_events()]

        consumer = asyncio.create_task(collect())
        await asyncio.sleep(0)
        await engine.run_fast_analysis(journal)
        events = await asyncio.wait_for(consumer, timeout=1)

        assert events[0].state == RunState.RUNNING
        assert events[-1].state == RunState.COMPLETED


class TestAbort:
    """Tests for aborting a run."""

    @pytest.mark.asyncio
    async def test_abort_without_run(self, engine):
        assert engine.abort_analysis() is False

    @pytest.mark.asyncio
    async def test_abort_resets_immediately(self, journal):
        engine = AnalyticsEngine(pattern_engine=SlowPatternEngine())
        events = _record(engine)

        run = asyncio.create_task(engine.run_fast_analysis(journal))
        await asyncio.sleep(0.05)

        assert engine.abort_analysis() is True
        assert engine.state == RunState.IDLE
        assert engine.progress.percentage == 0
        aborted_at = len(events)

        assert await run is False
        await asyncio.sleep(0.1)

        assert events[aborted_at - 1].state == RunState.ABORTED
        assert len(events) == aborted_at
        assert not engine.has_run_analysis
        assert engine.stress_patterns.main_patterns == []
        assert len(engine.history) == 0

    @pytest.mark.asyncio
    async def test_cancelled_task_returns_to_idle(self, journal):
        engine = AnalyticsEngine(pattern_engine=SlowPatternEngine())
        events = _record(engine)

        run = asyncio.create_task(engine.run_deep_analysis(journal))
        await asyncio.sleep(0.03)
        run.cancel()
        with pytest.raises(asyncio.CancelledError):
            await run

        assert engine.state == RunState.IDLE
        assert engine._tick_task is None
        assert events[-1].state == RunState.ABORTED
        emitted = len(events)
        await asyncio.sleep(0.1)
        assert len(events) == emitted

        engine.pattern_engine = HierarchicalPatternEngine()
        assert await engine.run_fast_analysis(journal) is True

    @pytest.mark.asyncio
    async def test_previous_results_survive_abort(self, journal):
        engine = AnalyticsEngine()
        await engine.run_fast_analysis(journal)
        before = engine.stress_patterns

        engine.pattern_engine = SlowPatternEngine()
        run = asyncio.create_task(engine.run_fast_analysis(journal))
        await asyncio.sleep(0.03)
        engine.abort_analysis()
        await run

        assert engine.stress_patterns is before

    @pytest.mark.asyncio
    async def test_new_run_after_abort(self, journal):
        engine = AnalyticsEngine(pattern_engine=SlowPatternEngine())
        run = asyncio.create_task(engine.run_fast_analysis(journal))
        await asyncio.sleep(0.03)
        engine.abort_analysis()

        engine.pattern_engine = HierarchicalPatternEngine()
        assert await engine.run_fast_analysis(journal) is True
        assert await run is False

    @pytest.mark.asyncio
    async def test_unwinding_run_leaves_new_run_alone(self, journal):
        engine = AnalyticsEngine(pattern_engine=SlowPatternEngine())
        first = asyncio.create_task(engine.run_fast_analysis(journal))
        await asyncio.sleep(0.03)
        engine.abort_analysis()

        second = asyncio.create_task(engine.run_fast_analysis(journal))
        await asyncio.sleep(0)
        assert await first is False

        assert engine.is_running
        assert not engine._tick_task.done()

        engine.abort_analysis()
        assert await second is False
        assert engine.state == RunState.IDLE


class TestDerivedAnalytics:
    """Tests for insights and readiness."""

    def test_trends_and_insights(self, engine, journal):
        result = engine.get_trends_and_insights(journal, 14)

        assert len(result.trend_data) == 14
        assert "correlation" in result.insights
        assert result.data_sources.stress_sources

    def test_two_entries(self, engine, make_entry):
        result = engine.get_trends_and_insights([
            make_entry("2024-01-01", energy=8, stress=2),
            make_entry("2024-01-02", energy=8, stress=2),
        ], 2)

        assert result.insights["correlation"].subtitle == "Insufficient data for analysis"

    def test_inverse_relationship_with_zero_energy(self, engine, make_entry):
        entries = [
            make_entry(f"2024-01-{i + 1:02d}", energy=9 - i, stress=1 + i)
            for i in range(10)
        ]

        insight = engine.get_trends_and_insights(entries, 10).insights["correlation"]

        assert insight.subtitle == "Strong correlation detected"
        assert "negative correlation" in insight.description
        assert insight.confidence >= 0.9

    def test_readiness_in_progress(self, engine, make_entry):
        entries = [make_entry(f"2024-01-{d:02d}", energy_sources="run") for d in range(1, 6)]
        entries.append(make_entry("2024-01-06", energy=5))

        readiness = engine.pattern_readiness(entries)

        assert readiness.days_with_sources == 5
        assert readiness.total_days == 6
        assert readiness.progress_percentage == 50.0
        assert readiness.days_remaining == 5
        assert readiness.has_enough_data is False

    def test_readiness_enough(self, engine, make_entry):
        entries = [make_entry(f"2024-01-{d:02d}", stress_sources="traffic") for d in range(1, 13)]

        readiness = engine.pattern_readiness(entries)

        assert readiness.has_enough_data is True
        assert readiness.progress_percentage == 100.0
        assert readiness.days_remaining == 0


class TestSingleton:
    """Tests for the analytics engine singleton."""

    def test_same_instance(self, monkeypatch):
        monkeypatch.setattr(analytics_service, "_analytics_engine", None)

        assert get_analytics_engine() is get_analytics_engine()
