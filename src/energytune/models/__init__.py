"""Data contracts exchanged with the UI collaborator."""

from .entries import (
    CamelModel,
    DailyEntry,
    DayAggregate,
    Metric,
    TimeSlot,
    to_camel,
)
from .patterns import (
    AnalysisMode,
    DataSources,
    DiscoveryMethod,
    MainPattern,
    PatternReadiness,
    PatternResult,
    PatternSummary,
    SourceExample,
    SourcePhrase,
    SubPattern,
)
from .insights import (
    Insight,
    InsightDatum,
    InsightType,
    TrendsAndInsights,
)
from .progress import (
    ProgressEvent,
    RunState,
)

__all__ = [
    # Entries
    "CamelModel",
    "DailyEntry",
    "DayAggregate",
    "Metric",
    "TimeSlot",
    "to_camel",
    # Patterns
    "AnalysisMode",
    "DataSources",
    "DiscoveryMethod",
    "MainPattern",
    "PatternReadiness",
    "PatternResult",
    "PatternSummary",
    "SourceExample",
    "SourcePhrase",
    "SubPattern",
    # Insights
    "Insight",
    "InsightDatum",
    "InsightType",
    "TrendsAndInsights",
    # Progress
    "ProgressEvent",
    "RunState",
]
