"""Shared fixtures for the EnergyTune test suite."""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Union

import pytest

from energytune.models import DayAggregate


Levels = Union[int, Dict[str, Optional[int]], None]


def _levels(value: Levels) -> Dict[str, Optional[int]]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    return {"morning": value, "afternoon": value, "evening": value}


def build_entry(
    day: str,
    energy: Levels = None,
    stress: Levels = None,
    energy_sources: str = "",
    stress_sources: str = "",
) -> Dict[str, Any]:
    """Raw camelCase entry as stored by the app."""
    return {
        "date": day,
        "energyLevels": _levels(energy),
        "stressLevels": _levels(stress),
        "energySources": energy_sources,
        "stressSources": stress_sources,
    }


def build_day(day: str, energy: Optional[float], stress: Optional[float]) -> DayAggregate:
    """Daily aggregate with explicit (possibly fractional) averages."""
    return DayAggregate(date=day, energy_avg=energy, stress_avg=stress)


def dates_from(start: str, count: int) -> List[str]:
    """Consecutive ISO dates starting at ``start``."""
    first = date.fromisoformat(start)
    return [(first + timedelta(days=i)).isoformat() for i in range(count)]


STRESS_ROTATION = [
    "work deadline, traffic jam",
    "tight work deadline; argument with landlord",
    "traffic jam, slept badly",
    "work deadline",
    "no alone time, traffic jam",
    "slept badly; work deadline",
]

ENERGY_ROTATION = [
    "morning run, coffee with marie",
    "long morning run",
    "coffee with marie, good sleep",
    "walk in the park",
    "morning run; dinner with marie",
    "good sleep, walk with marie",
]


@pytest.fixture
def make_entry():
    """Factory for raw entry dictionaries."""
    return build_entry


@pytest.fixture
def make_day():
    """Factory for DayAggregate values."""
    return build_day


@pytest.fixture
def journal() -> List[Dict[str, Any]]:
    """Two weeks of entries with recurring sources (2024-01-01 is a Monday)."""
    entries = []
    for i, day in enumerate(dates_from("2024-01-01", 14)):
        entries.append(build_entry(
            day,
            energy=4 + i % 5,
            stress=7 - i % 4,
            energy_sources=ENERGY_ROTATION[i % len(ENERGY_ROTATION)],
            stress_sources=STRESS_ROTATION[i % len(STRESS_ROTATION)],
        ))
    return entries
