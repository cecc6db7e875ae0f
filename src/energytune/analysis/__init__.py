"""
Analysis module for journal entries.

Provides entry normalization, the daily trend series, statistical insights
and source frequency ranking.
"""

from .adapter import (
    average_level,
    coerce_entries,
    coerce_entry,
    normalize,
    normalize_entry,
)
from .trends import (
    build_trend_series,
    energy_values,
    mean,
    stress_values,
)
from .insights import (
    analyze_correlation,
    analyze_trend,
    analyze_weekly_patterns,
    correlation_confidence,
    correlation_strength,
    determine_trend_direction,
    generate_insights,
    generate_recommendation,
    pearson_correlation,
)
from .sources import (
    extract_sources,
    rank_sources,
    split_sources,
)

__all__ = [
    # Adapter
    "average_level",
    "coerce_entries",
    "coerce_entry",
    "normalize",
    "normalize_entry",
    # Trends
    "build_trend_series",
    "energy_values",
    "mean",
    "stress_values",
    # Insights
    "analyze_correlation",
    "analyze_trend",
    "analyze_weekly_patterns",
    "correlation_confidence",
    "correlation_strength",
    "determine_trend_direction",
    "generate_insights",
    "generate_recommendation",
    "pearson_correlation",
    # Sources
    "extract_sources",
    "rank_sources",
    "split_sources",
]
