"""Entry normalization.

Turns raw daily entries into the numeric and text fields the analyses need.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from ..exceptions import EntryValidationError
from ..models import DailyEntry, DayAggregate
from ..models.entries import LEVEL_RANGE


logger = logging.getLogger(__name__)

RawEntry = Union[DailyEntry, Dict[str, Any]]


def average_level(levels: Dict[Any, Optional[int]]) -> Optional[float]:
    """Mean of the recorded (non-null) slot values, or None if none were recorded."""
    values = [v for v in (levels or {}).values() if v is not None]
    if not values:
        return None
    return sum(values) / len(values)


def coerce_entry(entry: RawEntry) -> DailyEntry:
    """
    Validate a raw entry dictionary into a DailyEntry.

    Levels outside 1-10 are kept and averaged like any other value; they
    are only reported with a warning.

    Raises:
        EntryValidationError: If the entry is malformed (bad date, non-numeric level)
    """
    if isinstance(entry, DailyEntry):
        return entry
    entry = _validate(entry)
    low, high = LEVEL_RANGE
    odd_slots = [
        slot.value
        for levels in (entry.energy_levels, entry.stress_levels)
        for slot, value in levels.items()
        if value is not None and not low <= value <= high
    ]
    if odd_slots:
        logger.warning(
            "Entry %s has levels outside %d-%d in %s", entry.date, low, high, ", ".join(odd_slots)
        )
    return entry


def _validate(entry: Dict[str, Any]) -> DailyEntry:
    try:
        return DailyEntry.model_validate(entry)
    except ValidationError as e:
        entry_date = entry.get("date") if isinstance(entry, dict) else None
        raise EntryValidationError(
            f"Invalid journal entry: {e.error_count()} validation error(s)",
            entry_date=entry_date,
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e


def coerce_entries(entries: Optional[Iterable[RawEntry]]) -> List[DailyEntry]:
    """
    Validate a list of raw entries, preserving order.

    A malformed entry is logged and skipped; the rest are still returned.
    """
    if not entries:
        return []
    validated: List[DailyEntry] = []
    for entry in entries:
        try:
            validated.append(coerce_entry(entry))
        except EntryValidationError as e:
            logger.warning("Skipping entry %s: %s", e.details.get("date", "?"), e.message)
    return validated


def normalize_entry(entry: RawEntry) -> DayAggregate:
    """Compute the per-day averages for a single entry."""
    entry = coerce_entry(entry)
    return DayAggregate(
        date=entry.date,
        energy_avg=average_level(entry.energy_levels),
        stress_avg=average_level(entry.stress_levels),
        energy_levels=dict(entry.energy_levels),
        stress_levels=dict(entry.stress_levels),
        energy_sources=entry.energy_sources,
        stress_sources=entry.stress_sources,
    )


def normalize(entries: Optional[Iterable[RawEntry]]) -> List[DayAggregate]:
    """
    Normalize entries into per-day aggregates.

    Entries are neither reordered nor deduplicated; callers supply one entry
    per date. Malformed entries are skipped. A metric with no recorded slot
    values is None, never 0.

    Args:
        entries: DailyEntry objects or raw entry dictionaries

    Returns:
        One DayAggregate per valid entry, in input order
    """
    aggregates = [normalize_entry(e) for e in coerce_entries(entries)]
    logger.debug("Normalized %d entries", len(aggregates))
    return aggregates
