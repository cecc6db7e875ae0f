"""
EnergyTune analytics engine.

Statistical insights and pattern discovery for an energy and stress
journal.
"""

from .models import (
    AnalysisMode,
    DailyEntry,
    Metric,
    PatternResult,
    TrendsAndInsights,
)
from .patterns import HierarchicalPatternEngine
from .services import AnalyticsEngine, get_analytics_engine

__version__ = "0.1.0"

__all__ = [
    "AnalysisMode",
    "AnalyticsEngine",
    "DailyEntry",
    "HierarchicalPatternEngine",
    "Metric",
    "PatternResult",
    "TrendsAndInsights",
    "get_analytics_engine",
]
