"""
Analytics controller.

Owns the observable analysis state for one journal:
- Fast and deep pattern runs with progress ticks and cooperative abort
- Trend series, insights and top sources computed on demand
- Pattern summary and readiness for the UI

Only one pattern run executes at a time. Results are published only when
a run completes; an aborted run leaves the previous results untouched.
"""

import asyncio
import logging
import time
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional

from ..analysis import build_trend_series, coerce_entries, extract_sources, generate_insights
from ..analysis.adapter import RawEntry
from ..config import Settings, get_settings
from ..exceptions import AnalysisAbortedError, ClusteringError
from ..models import (
    AnalysisMode,
    DailyEntry,
    DiscoveryMethod,
    Metric,
    PatternReadiness,
    PatternResult,
    PatternSummary,
    ProgressEvent,
    RunState,
    TrendsAndInsights,
)
from ..patterns import HierarchicalPatternEngine
from .progress import DurationHistory, ProgressTracker


logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], None]

# Metrics are analyzed in this order; the second is offset to 50-100%
METRIC_ORDER = (Metric.STRESS, Metric.ENERGY)


class _RunToken:
    """Abort flag belonging to a single run."""

    def __init__(self) -> None:
        self.aborted = False


class AnalyticsEngine:
    """
    Pattern analysis runs and derived analytics for a journal.

    Example:
        engine = get_analytics_engine()
        engine.add_listener(lambda event: print(event.percentage))
        await engine.run_fast_analysis(entries)
        print(engine.summary())
    """

    def __init__(
        self,
        pattern_engine: Optional[HierarchicalPatternEngine] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.pattern_engine = pattern_engine or HierarchicalPatternEngine(self.settings)
        self.history = DurationHistory(settings=self.settings)

        self.stress_patterns = PatternResult.empty(Metric.STRESS, AnalysisMode.FAST)
        self.energy_patterns = PatternResult.empty(Metric.ENERGY, AnalysisMode.FAST)
        self.deep_stress_patterns: Optional[PatternResult] = None
        self.deep_energy_patterns: Optional[PatternResult] = None
        self.analysis_mode = AnalysisMode.FAST
        self.progress = ProgressEvent.idle()
        self.error: Optional[str] = None
        self.metric_errors: Dict[str, str] = {}
        self.has_run_analysis = False
        self.state = RunState.IDLE

        self._token: Optional[_RunToken] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._listeners: List[ProgressListener] = []
        self._queues: List[asyncio.Queue] = []

    # =========================================================================
    # Observable state
    # =========================================================================

    @property
    def average_calculation_time(self) -> float:
        """Mean duration of the recent completed runs in milliseconds."""
        return self.history.average

    @property
    def is_running(self) -> bool:
        return self.state == RunState.RUNNING

    @property
    def has_deep_results(self) -> bool:
        return self.deep_stress_patterns is not None and self.deep_energy_patterns is not None

    @property
    def current_stress_patterns(self) -> PatternResult:
        """Stress patterns for the mode being displayed."""
        if self.analysis_mode == AnalysisMode.DEEP and self.deep_stress_patterns is not None:
            return self.deep_stress_patterns
        return self.stress_patterns

    @property
    def current_energy_patterns(self) -> PatternResult:
        """Energy patterns for the mode being displayed."""
        if self.analysis_mode == AnalysisMode.DEEP and self.deep_energy_patterns is not None:
            return self.deep_energy_patterns
        return self.energy_patterns

    def summary(self) -> PatternSummary:
        stress = self.current_stress_patterns
        energy = self.current_energy_patterns
        return PatternSummary(
            total_stress_patterns=len(stress.main_patterns),
            total_energy_patterns=len(energy.main_patterns),
            top_stress_pattern=stress.main_patterns[0] if stress.main_patterns else None,
            top_energy_pattern=energy.main_patterns[0] if energy.main_patterns else None,
            has_data=stress.has_patterns or energy.has_patterns,
            mode=self.analysis_mode,
            has_deep_results=self.has_deep_results,
        )

    def switch_to_fast_mode(self) -> None:
        """Display fast results again; deep results stay cached."""
        self.analysis_mode = AnalysisMode.FAST

    # =========================================================================
    # Progress delivery
    # =========================================================================

    def add_listener(self, listener: ProgressListener) -> Callable[[], None]:
        """
        Register a callback for progress events.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def progress_events(self) -> AsyncIterator[ProgressEvent]:
        """
        Iterate over the progress events of the next (or current) run.

        Iteration ends after the run's terminal event.
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.append(queue)
        try:
            while True:
                event = await queue.get()
                yield event
                if event.state != RunState.RUNNING:
                    return
        finally:
            self._queues.remove(queue)

    def _emit(self, event: ProgressEvent) -> None:
        self.progress = event
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning("Progress listener failed: %s", e)
        for queue in self._queues:
            queue.put_nowait(event)

    async def _tick_loop(self, tracker: ProgressTracker, token: _RunToken) -> None:
        interval = self.settings.progress_tick_ms / 1000
        while not token.aborted:
            await asyncio.sleep(interval)
            if token.aborted or self._token is not token:
                return
            self._emit(tracker.tick())

    def _stop_ticker(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    # =========================================================================
    # Runs
    # =========================================================================

    async def run_fast_analysis(self, entries: Optional[Iterable[RawEntry]]) -> bool:
        """
        Discover patterns for both metrics with phrase grouping.

        Returns:
            True if the run completed and its results were published;
            False if it was rejected (another run is active), aborted or failed
        """
        return await self._run(entries, AnalysisMode.FAST)

    async def run_deep_analysis(self, entries: Optional[Iterable[RawEntry]]) -> bool:
        """
        Discover patterns for both metrics with TF-IDF clustering.

        Deep runs are heavier and only start when explicitly requested.
        Returns the same as ``run_fast_analysis``.
        """
        return await self._run(entries, AnalysisMode.DEEP)

    def abort_analysis(self) -> bool:
        """
        Stop the active run.

        Progress is reset and the engine is idle again immediately; no
        results are published. The aborted coroutine keeps unwinding until
        its next checkpoint, but every exit path of a run checks its own
        token first, so it never touches engine state again and a new run
        may start right away.

        Returns:
            True if a run was active
        """
        if self.state != RunState.RUNNING or self._token is None:
            return False

        logger.info("Aborting analysis")
        self._abort_run(self._token)
        return True

    def _abort_run(self, token: _RunToken) -> None:
        token.aborted = True
        self._stop_ticker()
        self.state = RunState.ABORTED
        self._emit(ProgressEvent(state=RunState.ABORTED))
        self._reset()

    def _reset(self) -> None:
        self.state = RunState.IDLE
        self.progress = ProgressEvent.idle()

    async def _run(self, entries: Optional[Iterable[RawEntry]], mode: AnalysisMode) -> bool:
        if self.state != RunState.IDLE:
            logger.info("Ignoring %s analysis request while %s", mode.value, self.state.value)
            return False

        token = _RunToken()
        self._token = token
        self.state = RunState.RUNNING
        self.error = None
        self.metric_errors = {}

        entry_list = list(entries or [])
        tracker = ProgressTracker(
            total=len(entry_list),
            estimate_ms=self.history.estimate(len(entry_list)),
            settings=self.settings,
        )
        started = time.monotonic()
        self._emit(tracker.snapshot())
        self._tick_task = asyncio.create_task(self._tick_loop(tracker, token))

        def should_abort() -> bool:
            return token.aborted

        try:
            tracker.enter_stage("prepare")
            await asyncio.sleep(0)
            self._check_abort(token)

            tracker.enter_stage("extract")
            validated = coerce_entries(entry_list)
            self._check_abort(token)

            results: Dict[Metric, PatternResult] = {}
            for metric in METRIC_ORDER:
                tracker.enter_stage(metric.value)
                results[metric] = await self._analyze_metric(
                    validated, metric, mode, should_abort,
                    lambda stage, fraction: tracker.report_stage_progress(fraction),
                )

            tracker.enter_stage("finalize")
            self._check_abort(token)
        except AnalysisAbortedError:
            logger.info("%s analysis aborted", mode.value.capitalize())
            return False
        except asyncio.CancelledError:
            if not token.aborted:
                logger.info("%s analysis cancelled", mode.value.capitalize())
                self._abort_run(token)
            raise
        except Exception as e:
            logger.exception("%s analysis failed", mode.value.capitalize())
            if token.aborted:
                # The engine already went back to idle when the run was aborted
                return False
            self._stop_ticker()
            self.error = str(e)
            self.state = RunState.FAILED
            self._emit(ProgressEvent(state=RunState.FAILED))
            self._reset()
            return False

        duration_ms = (time.monotonic() - started) * 1000
        self.history.add(duration_ms)
        self._stop_ticker()
        self._publish(results, mode)

        self.state = RunState.COMPLETED
        self._emit(tracker.complete())
        self._reset()
        logger.info(
            "%s analysis completed in %.0fms (%d stress, %d energy patterns)",
            mode.value.capitalize(), duration_ms,
            len(results[Metric.STRESS].main_patterns), len(results[Metric.ENERGY].main_patterns),
        )
        return True

    @staticmethod
    def _check_abort(token: _RunToken) -> None:
        if token.aborted:
            raise AnalysisAbortedError()

    async def _analyze_metric(
        self,
        entries: List[DailyEntry],
        metric: Metric,
        mode: AnalysisMode,
        should_abort: Callable[[], bool],
        on_progress: Callable[[str, float], None],
    ) -> PatternResult:
        """Analyze one metric; a clustering failure yields an empty result."""
        try:
            result = await self.pattern_engine.analyze(
                entries, metric, mode, should_abort=should_abort, on_progress=on_progress
            )
        except AnalysisAbortedError:
            raise
        except Exception as e:
            error = ClusteringError(metric.value, mode.value, str(e))
            logger.error("%s", error.message)
            result = PatternResult.empty(
                metric, mode, discovery_method=DiscoveryMethod.NONE.value, error=error.message
            )

        if result.error:
            self.metric_errors[metric.value] = result.error
        return result

    def _publish(self, results: Dict[Metric, PatternResult], mode: AnalysisMode) -> None:
        if mode == AnalysisMode.DEEP:
            self.deep_stress_patterns = results[Metric.STRESS]
            self.deep_energy_patterns = results[Metric.ENERGY]
        else:
            self.stress_patterns = results[Metric.STRESS]
            self.energy_patterns = results[Metric.ENERGY]
        self.analysis_mode = mode
        self.has_run_analysis = True

    # =========================================================================
    # Derived analytics
    # =========================================================================

    def get_trends_and_insights(
        self,
        entries: Optional[Iterable[RawEntry]],
        period: int,
    ) -> TrendsAndInsights:
        """
        Trend series, insights and top sources for a period.

        Recomputed on every call; nothing is cached.

        Args:
            entries: Entries in the selected period
            period: Length of the period in days
        """
        validated = coerce_entries(entries)
        series = build_trend_series(validated)
        return TrendsAndInsights(
            trend_data=series,
            insights=generate_insights(series, period),
            data_sources=extract_sources(validated),
        )

    def pattern_readiness(self, entries: Optional[Iterable[RawEntry]]) -> PatternReadiness:
        """How many days with sources have been logged towards reliable patterns."""
        validated = coerce_entries(entries)
        target = self.settings.readiness_target_days
        days_with_sources = sum(
            1 for e in validated
            if e.energy_sources.strip() or e.stress_sources.strip()
        )
        return PatternReadiness(
            days_with_sources=days_with_sources,
            total_days=len(validated),
            progress_percentage=min(100.0, days_with_sources / target * 100),
            days_remaining=max(0, target - days_with_sources),
            has_enough_data=days_with_sources >= self.settings.readiness_enough_days,
        )


# Singleton instance
_analytics_engine: Optional[AnalyticsEngine] = None


def get_analytics_engine() -> AnalyticsEngine:
    """Get or create the analytics engine singleton."""
    global _analytics_engine
    if _analytics_engine is None:
        _analytics_engine = AnalyticsEngine()
    return _analytics_engine
