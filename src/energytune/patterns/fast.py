"""
Fast pattern discovery by phrase grouping.

Each mention is broken into short phrases; phrases whose word sets overlap
are grouped greedily into categories, and every category becomes a main
pattern whose sub-patterns are its individual phrases.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import get_settings
from ..models import MainPattern, Metric, SubPattern
from .cooperative import CooperativeTask, chunked
from .text import (
    Mention,
    dates_newest_first,
    distinct_texts,
    extract_phrases,
    format_label,
    generate_recommendation,
    mean_level,
    phrase_similarity,
    select_emoji,
)


logger = logging.getLogger(__name__)

PHRASE_SIMILARITY_THRESHOLD = 0.3
MAX_MAIN_EXAMPLES = 5
MAX_SUB_EXAMPLES = 3
MAX_DATES = 10


@dataclass
class PhraseCategory:
    """A seed phrase and the similar phrases grouped under it."""
    seed: str
    phrases: List[str] = field(default_factory=list)
    mention_ids: List[int] = field(default_factory=list)


def group_similar_phrases(
    phrase_counts: Dict[str, int],
    threshold: float = PHRASE_SIMILARITY_THRESHOLD,
) -> List[PhraseCategory]:
    """
    Greedily group phrases by word overlap.

    Phrases are visited most frequent first; each unvisited phrase seeds a
    category that absorbs every other unvisited phrase whose Jaccard
    similarity to the seed exceeds ``threshold``.
    """
    ordered = sorted(phrase_counts, key=lambda p: phrase_counts[p], reverse=True)
    visited = set()
    categories: List[PhraseCategory] = []

    for seed in ordered:
        if seed in visited:
            continue
        visited.add(seed)
        category = PhraseCategory(seed=seed, phrases=[seed])
        for other in ordered:
            if other in visited:
                continue
            if phrase_similarity(seed, other) > threshold:
                visited.add(other)
                category.phrases.append(other)
        categories.append(category)
    return categories


async def cluster_by_phrases(
    mentions: List[Mention],
    metric: Metric,
    task: Optional[CooperativeTask] = None,
    max_sub_patterns: Optional[int] = None,
) -> List[MainPattern]:
    """
    Group mentions into main patterns by shared phrasing.

    Each mention is assigned to exactly one category: the first one, in seed
    order, that holds any of its phrases. Percentages are therefore shares
    of ``len(mentions)`` and sum to at most 100 before rounding.
    """
    settings = get_settings()
    task = task or CooperativeTask()
    max_sub_patterns = max_sub_patterns or settings.max_sub_patterns
    total = len(mentions)
    if total == 0:
        return []

    # Phrase extraction
    mention_phrases: List[List[str]] = []
    phrase_counts: Dict[str, int] = {}
    for start, chunk in chunked(mentions, settings.phrase_chunk_size):
        await task.checkpoint()
        for mention in chunk:
            phrases = extract_phrases(mention.text)
            mention_phrases.append(phrases)
            for phrase in phrases:
                phrase_counts[phrase] = phrase_counts.get(phrase, 0) + 1
        task.report("extracting_phrases", 0.4 * (start + len(chunk)) / total)

    await task.checkpoint()
    categories = group_similar_phrases(phrase_counts)
    logger.debug(
        "Grouped %d distinct phrases into %d categories", len(phrase_counts), len(categories)
    )

    # Mention assignment
    phrase_to_category: Dict[str, int] = {}
    for index, category in enumerate(categories):
        for phrase in category.phrases:
            phrase_to_category[phrase] = index
    for mention_id, phrases in enumerate(mention_phrases):
        owners = [phrase_to_category[p] for p in phrases if p in phrase_to_category]
        if owners:
            categories[min(owners)].mention_ids.append(mention_id)

    populated = [c for c in categories if c.mention_ids]
    patterns: List[MainPattern] = []
    for start, chunk in chunked(populated, settings.category_chunk_size):
        await task.checkpoint()
        for category in chunk:
            patterns.append(_build_main_pattern(
                category, mentions, mention_phrases, metric, total,
                index=len(patterns), max_sub_patterns=max_sub_patterns,
            ))
        task.report("building_patterns", 0.4 + 0.6 * (start + len(chunk)) / len(populated))

    return patterns


def _build_main_pattern(
    category: PhraseCategory,
    mentions: List[Mention],
    mention_phrases: List[List[str]],
    metric: Metric,
    total: int,
    index: int,
    max_sub_patterns: int,
) -> MainPattern:
    members = [mentions[i] for i in category.mention_ids]

    sub_patterns: List[SubPattern] = []
    for phrase in category.phrases:
        holders = [mentions[i] for i in category.mention_ids if phrase in mention_phrases[i]]
        if not holders:
            continue
        sub_patterns.append(SubPattern(
            id=phrase.replace(" ", "_"),
            label=format_label(phrase),
            count=len(holders),
            avg_impact=mean_level(holders),
            examples=distinct_texts(holders, MAX_SUB_EXAMPLES),
            dates=dates_newest_first(holders, MAX_DATES),
            recommendation=generate_recommendation(phrase, holders, metric),
        ))
    sub_patterns.sort(key=lambda s: s.count, reverse=True)

    return MainPattern(
        id=f"fast_{index}",
        label=format_label(category.seed),
        emoji=select_emoji(" ".join(category.phrases)),
        total_count=len(members),
        percentage=round(len(members) / total * 100),
        avg_impact=mean_level(members),
        sub_patterns=sub_patterns[:max_sub_patterns],
        examples=distinct_texts(members, MAX_MAIN_EXAMPLES),
        dates=dates_newest_first(members, MAX_DATES),
    )
