"""Services for running analyses and reporting their progress."""

from .analytics_service import AnalyticsEngine, get_analytics_engine
from .progress import DEFAULT_STAGES, DurationHistory, ProgressTracker, Stage

__all__ = [
    "AnalyticsEngine",
    "get_analytics_engine",
    "DEFAULT_STAGES",
    "DurationHistory",
    "ProgressTracker",
    "Stage",
]
