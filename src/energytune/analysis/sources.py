"""
Source Frequency Processing

Splits the free-text "what gave me energy / what stressed me" fields into
discrete phrases and ranks them by how often they were logged.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..config import get_settings
from ..models import DailyEntry, DataSources, Metric, SourceExample, SourcePhrase
from .adapter import RawEntry, coerce_entries


logger = logging.getLogger(__name__)

SOURCE_SEPARATORS = re.compile(r"[,;.]")
MIN_PHRASE_LENGTH = 3


@dataclass
class _PhraseTally:
    """Running count for one normalized phrase."""
    count: int = 0
    examples: List[SourceExample] = field(default_factory=list)


def split_sources(text: Optional[str]) -> List[str]:
    """
    Split a free-text field into trimmed phrases.

    Fragments of two characters or fewer are dropped. Original casing is kept.
    """
    if not text:
        return []
    fragments = (s.strip() for s in SOURCE_SEPARATORS.split(text))
    return [s for s in fragments if len(s) >= MIN_PHRASE_LENGTH]


def rank_sources(
    entries: List[DailyEntry],
    metric: Metric,
    top_n: Optional[int] = None,
    max_examples: Optional[int] = None,
) -> List[SourcePhrase]:
    """
    Rank one metric's source phrases by frequency.

    A phrase counts at most once per entry, so frequency (count divided by
    the number of days in the period) never exceeds 1.

    Args:
        entries: Entries for the period
        metric: Which free-text field to read
        top_n: How many phrases to keep (default from settings)
        max_examples: How many recent occurrences to keep per phrase

    Returns:
        SourcePhrase list sorted by descending frequency
    """
    settings = get_settings()
    top_n = top_n if top_n is not None else settings.top_sources
    max_examples = max_examples if max_examples is not None else settings.source_examples

    total_days = len(entries)
    if total_days == 0:
        return []

    tallies: Dict[str, _PhraseTally] = {}
    for entry in entries:
        seen_today = set()
        for phrase in split_sources(entry.sources_for(metric)):
            key = phrase.lower()
            if key in seen_today:
                continue
            seen_today.add(key)

            tally = tallies.setdefault(key, _PhraseTally())
            tally.count += 1
            tally.examples.append(SourceExample(text=phrase, date=entry.date))

    ranked = [
        SourcePhrase(
            text=key,
            count=tally.count,
            frequency=tally.count / total_days,
            examples=tally.examples[-max_examples:] if max_examples > 0 else [],
        )
        for key, tally in tallies.items()
    ]
    # Stable sort keeps first-seen order among ties
    ranked.sort(key=lambda s: s.frequency, reverse=True)
    return ranked[:top_n]


def extract_sources(entries: Optional[Iterable[RawEntry]]) -> DataSources:
    """
    Extract the top energy and stress sources for a period.

    Args:
        entries: DailyEntry objects or raw entry dictionaries

    Returns:
        DataSources with the top phrases for each metric
    """
    validated = coerce_entries(entries)
    sources = DataSources(
        energy_sources=rank_sources(validated, Metric.ENERGY),
        stress_sources=rank_sources(validated, Metric.STRESS),
    )
    logger.debug(
        "Ranked %d energy and %d stress sources over %d days",
        len(sources.energy_sources), len(sources.stress_sources), len(validated),
    )
    return sources
