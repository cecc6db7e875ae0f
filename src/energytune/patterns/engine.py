"""
Hierarchical Pattern Engine.

Discovers recurring themes in the free-text source fields of journal
entries and arranges them as main patterns with sub-patterns.

Two modes:
- fast: phrase grouping by word overlap, cheap enough to run eagerly
- deep: TF-IDF with agglomerative clustering, run only on request

Failures inside clustering never escape as exceptions (except aborts);
they come back as an empty result whose ``error`` field carries the reason.
"""

import logging
from typing import Iterable, List, Optional

from ..analysis.adapter import RawEntry, coerce_entries
from ..config import Settings, get_settings
from ..exceptions import AnalysisAbortedError, ClusteringError
from ..models import AnalysisMode, DiscoveryMethod, MainPattern, Metric, PatternResult
from .cooperative import AbortCheck, CooperativeTask, ProgressCallback, chunked
from .deep import cluster_by_tfidf
from .fast import cluster_by_phrases
from .text import Mention, mentions_for_entry


logger = logging.getLogger(__name__)

LARGE_SET_SIZE = 100
FALLBACK_PATTERN_COUNT = 3

ALGORITHM_DESCRIPTIONS = {
    AnalysisMode.FAST: (
        "Phrase grouping: each mention is split into 2-3 word phrases with "
        "common words removed. Phrases that share at least a third of their "
        "words are grouped, the most frequent phrase names the group, and "
        "the individual phrases become sub-patterns."
    ),
    AnalysisMode.DEEP: (
        "TF-IDF clustering: mentions are tokenized keeping context (who, "
        "doing what, negations), weighted by how distinctive each token is "
        "across your journal and compared by cosine similarity. Similar "
        "mentions are merged step by step (average linkage) until a small "
        "number of themes remain, each named by its most common concept."
    ),
}


def filter_patterns(
    patterns: List[MainPattern],
    total_mentions: int,
    max_patterns: Optional[int] = None,
) -> List[MainPattern]:
    """
    Keep the patterns worth showing.

    Patterns are sorted by percentage, then those mentioned fewer than
    2 times (3 when there are more than 100 mentions) are dropped. If that
    removes everything, the top 3 are kept instead. At most
    ``max_patterns`` are returned.
    """
    max_patterns = max_patterns or get_settings().max_patterns
    if not patterns or total_mentions == 0:
        return []

    ordered = sorted(patterns, key=lambda p: p.percentage, reverse=True)
    min_frequency = 3 if total_mentions > LARGE_SET_SIZE else 2
    kept = [p for p in ordered if p.total_count >= min_frequency]
    if not kept:
        logger.debug("No pattern reached %d mentions, keeping the top %d", min_frequency, FALLBACK_PATTERN_COUNT)
        kept = ordered[:FALLBACK_PATTERN_COUNT]
    return kept[:max_patterns]


def explain_algorithm(mode: AnalysisMode) -> str:
    """Plain-language description of how a mode finds patterns."""
    return ALGORITHM_DESCRIPTIONS[AnalysisMode(mode)]


class HierarchicalPatternEngine:
    """
    Pattern discovery over a set of journal entries.

    Example:
        engine = HierarchicalPatternEngine()
        result = await engine.analyze(entries, Metric.STRESS, AnalysisMode.FAST)
        for pattern in result.main_patterns:
            print(pattern.label, pattern.percentage)
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def analyze(
        self,
        entries: Optional[Iterable[RawEntry]],
        metric: Metric,
        mode: AnalysisMode = AnalysisMode.FAST,
        should_abort: Optional[AbortCheck] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> PatternResult:
        """
        Discover the pattern hierarchy for one metric.

        Args:
            entries: DailyEntry objects or raw entry dictionaries
            metric: Which source field to analyze
            mode: fast or deep
            should_abort: Polled between chunks; returning True stops the run
            on_progress: Called with (stage, fraction) as work advances

        Returns:
            PatternResult; empty when there is nothing to analyze or when
            clustering failed (``error`` is then set)

        Raises:
            AnalysisAbortedError: If ``should_abort`` returned True
        """
        metric = Metric(metric)
        mode = AnalysisMode(mode)
        task = CooperativeTask(should_abort, on_progress)
        task.check_abort()

        validated = coerce_entries(entries)
        if not validated:
            return PatternResult.empty(metric, mode)

        try:
            task.report("extracting", 0.1)
            mentions = await self.extract_mentions(validated, metric, task)
            if not mentions:
                return PatternResult.empty(metric, mode)

            task.report("clustering", 0.3)
            patterns, method = await self._cluster(mentions, metric, mode, task)
            analyzed = self._analyzed_count(len(mentions), method)

            task.check_abort()
            task.report("filtering", 0.8)
            filtered = filter_patterns(patterns, analyzed, self.settings.max_patterns)
            task.report("complete", 1.0)
        except AnalysisAbortedError:
            raise
        except Exception as e:
            error = ClusteringError(metric.value, mode.value, str(e))
            logger.error("%s", error.message, exc_info=True)
            return PatternResult.empty(
                metric, mode, discovery_method=DiscoveryMethod.NONE.value, error=error.message
            )

        logger.info(
            "Found %d %s patterns from %d mentions (%s)",
            len(filtered), metric.value, len(mentions), method.value,
        )
        return PatternResult(
            type=metric,
            total_mentions=len(mentions),
            analyzed_mentions=analyzed,
            main_patterns=filtered,
            mode=mode,
            discovery_method=method.value,
        )

    async def extract_mentions(
        self,
        entries,
        metric: Metric,
        task: CooperativeTask,
    ) -> List[Mention]:
        """All source mentions of a metric, in entry order."""
        mentions: List[Mention] = []
        for start, chunk in chunked(entries, self.settings.extract_chunk_size):
            await task.checkpoint()
            for entry in chunk:
                mentions.extend(mentions_for_entry(entry, metric))
            task.report("extracting", 0.1 + 0.2 * (start + len(chunk)) / len(entries))
        return mentions

    def _analyzed_count(self, mention_count: int, method: DiscoveryMethod) -> int:
        # stratified_sample keeps exactly deep_max_sources of a larger set
        if method == DiscoveryMethod.TFIDF:
            return min(mention_count, self.settings.deep_max_sources)
        return mention_count

    async def _cluster(
        self,
        mentions: List[Mention],
        metric: Metric,
        mode: AnalysisMode,
        task: CooperativeTask,
    ):
        if mode == AnalysisMode.DEEP:
            try:
                patterns = await cluster_by_tfidf(
                    mentions, metric, task,
                    max_sources=self.settings.deep_max_sources,
                    max_sub_patterns=self.settings.max_sub_patterns,
                )
                if patterns:
                    return patterns, DiscoveryMethod.TFIDF
                logger.warning("TF-IDF clustering found no %s patterns, using phrase grouping", metric.value)
            except AnalysisAbortedError:
                raise
            except Exception as e:
                logger.warning(
                    "TF-IDF clustering failed for %s, using phrase grouping: %s", metric.value, e
                )

        patterns = await cluster_by_phrases(
            mentions, metric, task, max_sub_patterns=self.settings.max_sub_patterns
        )
        return patterns, DiscoveryMethod.PHRASE_GROUPING


# Singleton instance
_pattern_engine: Optional[HierarchicalPatternEngine] = None


def get_pattern_engine() -> HierarchicalPatternEngine:
    """Get or create the pattern engine singleton."""
    global _pattern_engine
    if _pattern_engine is None:
        _pattern_engine = HierarchicalPatternEngine()
    return _pattern_engine
