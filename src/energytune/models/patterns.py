"""Pattern discovery models.

Provides data models for:
- Ranked free-text source phrases
- Two-level pattern hierarchies (main pattern + sub-patterns)
- Pattern discovery readiness
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import Field, field_validator

from .entries import CamelModel, Metric


class AnalysisMode(str, Enum):
    """Pattern discovery quality tiers."""
    FAST = "fast"
    DEEP = "deep"


class DiscoveryMethod(str, Enum):
    """Which heuristic produced a set of clusters."""
    PHRASE_GROUPING = "phrase_grouping"
    TFIDF = "tfidf"
    NONE = "none"


# ==============================================================================
# Source frequency models
# ==============================================================================

class SourceExample(CamelModel):
    """One occurrence of a source phrase, in its original casing."""
    text: str
    date: str


class SourcePhrase(CamelModel):
    """A normalized source phrase ranked by how often it was logged."""
    text: str
    count: int = 0
    frequency: float = 0.0  # count / days in period
    examples: List[SourceExample] = Field(default_factory=list)


class DataSources(CamelModel):
    """Top energy and stress sources for a period."""
    energy_sources: List[SourcePhrase] = Field(default_factory=list)
    stress_sources: List[SourcePhrase] = Field(default_factory=list)


# ==============================================================================
# Hierarchical pattern models
# ==============================================================================

class SubPattern(CamelModel):
    """A specific wording within a main pattern."""
    id: str
    label: str
    count: int = 0
    avg_impact: float = 0.0
    examples: List[str] = Field(default_factory=list)
    dates: List[str] = Field(default_factory=list)  # Newest first
    recommendation: Optional[str] = None


class MainPattern(CamelModel):
    """A discovered theme across many source mentions."""
    id: str
    label: str
    emoji: str = "📊"
    total_count: int = 0
    percentage: int = 0  # Share of all mentions
    avg_impact: float = 0.0  # Mean level on days mentioning this theme
    sub_patterns: List[SubPattern] = Field(default_factory=list)
    examples: List[str] = Field(default_factory=list)
    dates: List[str] = Field(default_factory=list)  # Newest first


class PatternResult(CamelModel):
    """Pattern hierarchy for one metric in one mode.

    ``main_patterns`` is always a list; ``None`` is coerced here so callers
    never need to guard against it.
    """
    type: Metric
    total_mentions: int = 0
    analyzed_mentions: int = 0  # Mentions the percentages are shares of (deep mode samples)
    main_patterns: List[MainPattern] = Field(default_factory=list)
    mode: AnalysisMode = AnalysisMode.FAST
    discovery_method: str = DiscoveryMethod.NONE.value
    error: Optional[str] = None

    @field_validator("main_patterns", mode="before")
    @classmethod
    def _ensure_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @classmethod
    def empty(
        cls,
        metric: Metric,
        mode: AnalysisMode = AnalysisMode.FAST,
        discovery_method: str = DiscoveryMethod.NONE.value,
        error: Optional[str] = None,
    ) -> "PatternResult":
        """Zero-value result for empty input or failed clustering."""
        return cls(
            type=metric,
            total_mentions=0,
            main_patterns=[],
            mode=mode,
            discovery_method=discovery_method,
            error=error,
        )

    @property
    def has_patterns(self) -> bool:
        return len(self.main_patterns) > 0


class PatternReadiness(CamelModel):
    """How close the journal is to yielding reliable patterns."""
    days_with_sources: int = 0
    total_days: int = 0
    progress_percentage: float = 0.0
    days_remaining: int = 0
    has_enough_data: bool = False


class PatternSummary(CamelModel):
    """Headline numbers for the currently displayed pattern results."""
    total_stress_patterns: int = 0
    total_energy_patterns: int = 0
    top_stress_pattern: Optional[MainPattern] = None
    top_energy_pattern: Optional[MainPattern] = None
    has_data: bool = False
    mode: AnalysisMode = AnalysisMode.FAST
    has_deep_results: bool = False
