"""
Energy/Stress Trend Aggregation

Builds the per-day time series the charts and insights work from.
"""

from typing import Iterable, List, Optional

from ..models import DayAggregate
from .adapter import RawEntry, normalize


def build_trend_series(entries: Optional[Iterable[RawEntry]]) -> List[DayAggregate]:
    """
    Convert entries into a chronological series of daily averages.

    Only days with at least one recorded level are kept.

    Args:
        entries: DailyEntry objects or raw entry dictionaries, in any order

    Returns:
        DayAggregate list sorted by ascending date
    """
    series = [day for day in normalize(entries) if day.has_values]
    return sorted(series, key=lambda day: day.entry_date)


def mean(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the non-null values, or None when there are none."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def energy_values(series: List[DayAggregate]) -> List[float]:
    """Recorded daily energy averages."""
    return [d.energy_avg for d in series if d.energy_avg is not None]


def stress_values(series: List[DayAggregate]) -> List[float]:
    """Recorded daily stress averages."""
    return [d.stress_avg for d in series if d.stress_avg is not None]
