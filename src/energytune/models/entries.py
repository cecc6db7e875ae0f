"""Journal entry models.

Provides data models for:
- Raw daily entries as handed over by the storage layer
- Per-day aggregates used by the trend and insight analyses
"""

from datetime import date
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for the UI collaborator."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a camelCase dictionary for serialization."""
        return self.model_dump(by_alias=True, mode="json")


class TimeSlot(str, Enum):
    """Time-of-day slots an entry records levels for."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class Metric(str, Enum):
    """The two tracked metrics."""
    ENERGY = "energy"
    STRESS = "stress"


# The app records 1-10; other integers are kept as logged
Level = Optional[int]
LEVEL_RANGE = (1, 10)


class DailyEntry(CamelModel):
    """One day's journal record."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    date: str
    energy_levels: Dict[TimeSlot, Level] = Field(default_factory=dict)
    stress_levels: Dict[TimeSlot, Level] = Field(default_factory=dict)
    energy_sources: str = ""
    stress_sources: str = ""
    notes: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _validate_date(cls, value: str) -> str:
        date.fromisoformat(value)
        return value

    @field_validator("energy_levels", "stress_levels", mode="before")
    @classmethod
    def _none_levels(cls, value: Any) -> Any:
        return value if value is not None else {}

    @field_validator("energy_sources", "stress_sources", mode="before")
    @classmethod
    def _flatten_sources(cls, value: Any) -> Any:
        # Older entries stored sources as {"day": "..."}
        if value is None:
            return ""
        if isinstance(value, dict):
            return value.get("day") or ""
        return value

    @property
    def entry_date(self) -> date:
        """The entry date as a date object."""
        return date.fromisoformat(self.date)

    def levels_for(self, metric: Metric) -> Dict[TimeSlot, Optional[int]]:
        """Per-slot levels for a metric."""
        return self.energy_levels if metric == Metric.ENERGY else self.stress_levels

    def sources_for(self, metric: Metric) -> str:
        """Free-text sources for a metric."""
        return self.energy_sources if metric == Metric.ENERGY else self.stress_sources


class DayAggregate(CamelModel):
    """Daily energy/stress averages, one per entry with at least one level."""

    date: str
    energy_avg: Optional[float] = None
    stress_avg: Optional[float] = None
    energy_levels: Dict[TimeSlot, Optional[int]] = Field(default_factory=dict)
    stress_levels: Dict[TimeSlot, Optional[int]] = Field(default_factory=dict)
    energy_sources: str = ""
    stress_sources: str = ""

    @property
    def entry_date(self) -> date:
        """The aggregate's date as a date object."""
        return date.fromisoformat(self.date)

    @property
    def has_values(self) -> bool:
        """Whether at least one metric was recorded that day."""
        return self.energy_avg is not None or self.stress_avg is not None

    @property
    def has_both(self) -> bool:
        """Whether both metrics were recorded that day."""
        return self.energy_avg is not None and self.stress_avg is not None
