"""
Progress reporting for analysis runs.

A run is divided into weighted stages. Real progress inside a stage comes
from the pattern engine; on top of it an optimistic value keeps moving on
every tick so the display never looks frozen, while staying close to the
real value and below 95% until the run actually completes.
"""

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..config import Settings, get_settings
from ..models import ProgressEvent, RunState


@dataclass(frozen=True)
class Stage:
    key: str
    label: str
    weight: float


# The metric stages split the analysis span evenly, the second metric
# covering its upper half
DEFAULT_STAGES = (
    Stage("prepare", "Preparing analysis...", 0.05),
    Stage("extract", "Extracting sources...", 0.15),
    Stage("stress", "Analyzing stress patterns...", 0.35),
    Stage("energy", "Analyzing energy patterns...", 0.35),
    Stage("finalize", "Processing results...", 0.10),
)

COMPLETE_LABEL = "Complete!"


class DurationHistory:
    """Rolling window of completed run durations in milliseconds."""

    def __init__(self, size: Optional[int] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._durations = deque(maxlen=size or self.settings.duration_history_size)

    def add(self, duration_ms: float) -> None:
        """Record a completed run, evicting the oldest beyond the window."""
        self._durations.append(float(duration_ms))

    @property
    def durations(self) -> List[float]:
        return list(self._durations)

    @property
    def average(self) -> float:
        """Mean of the recorded durations, 0 when nothing is recorded."""
        if not self._durations:
            return 0.0
        return sum(self._durations) / len(self._durations)

    def estimate(self, entry_count: int) -> float:
        """
        Expected duration of the next run in milliseconds.

        Uses the rolling average when there is history, otherwise a
        per-entry heuristic with a floor.
        """
        if self._durations:
            return self.average
        return float(max(
            self.settings.min_estimate_ms,
            self.settings.estimate_ms_per_entry * entry_count,
        ))

    def __len__(self) -> int:
        return len(self._durations)


class ProgressTracker:
    """
    Stage-weighted progress with an optimistic lead.

    Call ``tick()`` once per tick interval to advance the optimistic value
    and obtain the event to publish. Reported percentages never decrease
    within a run.
    """

    def __init__(
        self,
        total: int,
        estimate_ms: float,
        settings: Optional[Settings] = None,
        stages=DEFAULT_STAGES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or get_settings()
        self.total = total
        self.estimate_ms = max(float(estimate_ms), 1.0)
        self.stages = list(stages)
        self._clock = clock
        self._started_at = clock()

        self.stage_index = 0
        self.stage_progress = 0.0
        self.optimistic = 0.0
        self._last_percentage = 0

        ticks_to_target = self.estimate_ms / self.settings.progress_tick_ms
        self.increment = max(
            self.settings.optimistic_target / ticks_to_target,
            self.settings.min_progress_per_tick,
        )

    @property
    def stage(self) -> Stage:
        return self.stages[self.stage_index]

    def enter_stage(self, key: str) -> None:
        """Move to the named stage with no progress inside it yet."""
        for index, stage in enumerate(self.stages):
            if stage.key == key:
                self.stage_index = index
                self.stage_progress = 0.0
                return
        raise ValueError(f"Unknown stage: {key}")

    def report_stage_progress(self, fraction: float) -> None:
        """Real progress inside the current stage (0-1)."""
        self.stage_progress = max(self.stage_progress, min(1.0, max(0.0, fraction)))

    @property
    def actual(self) -> float:
        """Stage-weighted real progress (0-1)."""
        done = sum(stage.weight for stage in self.stages[: self.stage_index])
        return done + self.stage.weight * self.stage_progress

    @property
    def elapsed_ms(self) -> float:
        return (self._clock() - self._started_at) * 1000

    def remaining_seconds(self) -> int:
        """
        Estimated seconds left.

        Past the estimate a 10-30 second buffer is reported instead of 0,
        growing with how far the run is overdue.
        """
        elapsed = self.elapsed_ms
        if elapsed < self.estimate_ms:
            return round((self.estimate_ms - elapsed) / 1000)
        overdue_s = (elapsed - self.estimate_ms) / 1000
        return round(max(
            self.settings.overdue_buffer_min_s,
            min(self.settings.overdue_buffer_max_s, overdue_s),
        ))

    def tick(self) -> ProgressEvent:
        """Advance the optimistic value by one tick and build the event."""
        self.optimistic += self.increment
        return self.snapshot()

    def snapshot(self) -> ProgressEvent:
        """Current event without advancing the optimistic value."""
        actual = self.actual
        lead_limit = actual + self.settings.optimistic_max_lead
        cap = self.settings.progress_cap_before_complete
        fraction = min(max(actual, min(self.optimistic, lead_limit)), cap)

        percentage = min(round(fraction * 100), round(cap * 100))
        percentage = max(percentage, self._last_percentage)
        self._last_percentage = percentage

        return ProgressEvent(
            stage=self.stage.label,
            percentage=percentage,
            current=int(self.total * percentage / 100),
            total=self.total,
            estimated_time_remaining=self.remaining_seconds(),
            state=RunState.RUNNING,
        )

    def complete(self) -> ProgressEvent:
        """The final 100% event."""
        self._last_percentage = 100
        return ProgressEvent(
            stage=COMPLETE_LABEL,
            percentage=100,
            current=self.total,
            total=self.total,
            estimated_time_remaining=0,
            state=RunState.COMPLETED,
        )
