"""Insight models for the trends screen."""

from enum import Enum
from typing import Dict, List

from pydantic import Field

from .entries import CamelModel, DayAggregate
from .patterns import DataSources


class InsightType(str, Enum):
    """Kinds of statistical insight."""
    CORRELATION = "correlation"
    PATTERN = "pattern"
    PREDICTION = "prediction"
    RECOMMENDATION = "recommendation"


class InsightDatum(CamelModel):
    """A label/value pair shown under an insight."""
    label: str
    value: str


class Insight(CamelModel):
    """A human-readable statistical insight."""
    type: InsightType
    title: str
    subtitle: str
    description: str
    confidence: float = Field(ge=0.0, le=1.0)
    data: List[InsightDatum] = Field(default_factory=list)
    action_items: List[str] = Field(default_factory=list)


class TrendsAndInsights(CamelModel):
    """Everything the trends screen renders for one period."""
    trend_data: List[DayAggregate] = Field(default_factory=list)
    insights: Dict[str, Insight] = Field(default_factory=dict)  # keyed by InsightType value
    data_sources: DataSources = Field(default_factory=DataSources)
