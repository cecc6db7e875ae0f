"""Tests for the HierarchicalPatternEngine."""

from datetime import date, timedelta

import pytest

from energytune.config import Settings
from energytune.exceptions import AnalysisAbortedError
from energytune.models import AnalysisMode, MainPattern, Metric
from energytune.patterns import engine as engine_module
from energytune.patterns.engine import (
    HierarchicalPatternEngine,
    explain_algorithm,
    filter_patterns,
    get_pattern_engine,
)


def _pattern(index: int, count: int, percentage: int) -> MainPattern:
    return MainPattern(id=f"p{index}", label=f"Pattern {index}", total_count=count, percentage=percentage)


class TestFilterPatterns:
    """Tests for pattern filtering."""

    def test_sorted_by_percentage(self):
        patterns = [_pattern(0, 2, 10), _pattern(1, 5, 50), _pattern(2, 3, 30)]

        kept = filter_patterns(patterns, 20)

        assert [p.id for p in kept] == ["p1", "p2", "p0"]

    def test_drops_rare_patterns(self):
        patterns = [_pattern(0, 5, 50), _pattern(1, 1, 10)]
        assert [p.id for p in filter_patterns(patterns, 10)] == ["p0"]

    def test_stricter_minimum_for_large_sets(self):
        patterns = [_pattern(0, 30, 25), _pattern(1, 2, 2)]
        assert [p.id for p in filter_patterns(patterns, 120)] == ["p0"]

    def test_falls_back_to_top_three(self):
        patterns = [_pattern(i, 1, 10 + i) for i in range(5)]

        kept = filter_patterns(patterns, 5)

        assert [p.id for p in kept] == ["p4", "p3", "p2"]

    def test_capped(self):
        patterns = [_pattern(i, 5, 4) for i in range(25)]
        assert len(filter_patterns(patterns, 125)) == 20

    def test_nothing_to_filter(self):
        assert filter_patterns([], 10) == []
        assert filter_patterns([_pattern(0, 2, 100)], 0) == []


class TestAnalyze:
    """Tests for HierarchicalPatternEngine.analyze."""

    @pytest.fixture
    def engine(self) -> HierarchicalPatternEngine:
        return HierarchicalPatternEngine()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", [AnalysisMode.FAST, AnalysisMode.DEEP])
    async def test_empty_input(self, engine, mode):
        result = await engine.analyze([], Metric.STRESS, mode)

        assert result.total_mentions == 0
        assert result.main_patterns == []
        assert result.mode == mode
        assert result.error is None

    @pytest.mark.asyncio
    async def test_none_input(self, engine):
        result = await engine.analyze(None, Metric.ENERGY, AnalysisMode.FAST)
        assert result.main_patterns == []

    @pytest.mark.asyncio
    async def test_entries_without_sources(self, engine, make_entry):
        entries = [make_entry("2024-01-01", energy=5), make_entry("2024-01-02", stress=4)]

        result = await engine.analyze(entries, Metric.ENERGY, AnalysisMode.DEEP)

        assert result.total_mentions == 0
        assert result.main_patterns == []

    @pytest.mark.asyncio
    async def test_fast_mode(self, engine, journal):
        result = await engine.analyze(journal, Metric.STRESS, AnalysisMode.FAST)

        assert result.type == Metric.STRESS
        assert result.discovery_method == "phrase_grouping"
        assert result.total_mentions == 26
        assert result.main_patterns
        percentages = [p.percentage for p in result.main_patterns]
        assert percentages == sorted(percentages, reverse=True)
        assert all(p.total_count >= 2 for p in result.main_patterns)
        assert any(p.label == "Work Deadline" for p in result.main_patterns)

    @pytest.mark.asyncio
    async def test_fast_mode_is_idempotent(self, engine, journal):
        first = await engine.analyze(journal, Metric.ENERGY, AnalysisMode.FAST)
        second = await engine.analyze(journal, Metric.ENERGY, AnalysisMode.FAST)

        assert first.model_dump() == second.model_dump()

    @pytest.mark.asyncio
    async def test_deep_mode(self, engine, journal):
        result = await engine.analyze(journal, Metric.ENERGY, AnalysisMode.DEEP)

        assert result.mode == AnalysisMode.DEEP
        assert result.discovery_method == "tfidf"
        assert result.main_patterns
        assert all(p.id.startswith("tfidf_") for p in result.main_patterns)

    @pytest.mark.asyncio
    async def test_deep_percentages_match_analyzed_mentions(self, make_entry):
        engine = HierarchicalPatternEngine(Settings(deep_max_sources=40))
        first = date(2024, 1, 1)
        entries = [
            make_entry(
                (first + timedelta(days=i)).isoformat(),
                stress=6,
                stress_sources=f"meeting number {i % 7} at work",
            )
            for i in range(150)
        ]

        result = await engine.analyze(entries, Metric.STRESS, AnalysisMode.DEEP)

        assert result.total_mentions == 150
        assert result.analyzed_mentions == 40
        assert sum(p.total_count for p in result.main_patterns) <= 40
        for pattern in result.main_patterns:
            assert pattern.percentage == round(pattern.total_count / 40 * 100)

    @pytest.mark.asyncio
    async def test_fast_mode_analyzes_every_mention(self, engine, journal):
        result = await engine.analyze(journal, Metric.STRESS, AnalysisMode.FAST)
        assert result.analyzed_mentions == result.total_mentions

    @pytest.mark.asyncio
    async def test_mention_levels_follow_metric(self, engine, make_entry):
        entries = [
            make_entry("2024-01-01", stress=8, stress_sources="work deadline"),
            make_entry("2024-01-02", stress=6, stress_sources="work deadline"),
        ]

        result = await engine.analyze(entries, Metric.STRESS, AnalysisMode.FAST)

        assert result.main_patterns[0].avg_impact == 7.0

    @pytest.mark.asyncio
    async def test_deep_falls_back_when_nothing_found(self, engine, journal, monkeypatch):
        async def no_clusters(*args, **kwargs):
            return []

        monkeypatch.setattr(engine_module, "cluster_by_tfidf", no_clusters)

        result = await engine.analyze(journal, Metric.STRESS, AnalysisMode.DEEP)

        assert result.discovery_method == "phrase_grouping"
        assert result.mode == AnalysisMode.DEEP
        assert result.main_patterns

    @pytest.mark.asyncio
    async def test_deep_falls_back_on_error(self, engine, journal, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("similarity overflow")

        monkeypatch.setattr(engine_module, "cluster_by_tfidf", broken)

        result = await engine.analyze(journal, Metric.STRESS, AnalysisMode.DEEP)

        assert result.discovery_method == "phrase_grouping"
        assert result.error is None

    @pytest.mark.asyncio
    async def test_clustering_failure_gives_empty_result(self, engine, journal, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine_module, "cluster_by_phrases", broken)

        result = await engine.analyze(journal, Metric.ENERGY, AnalysisMode.FAST)

        assert result.main_patterns == []
        assert result.total_mentions == 0
        assert result.discovery_method == "none"
        assert "Pattern clustering failed for energy (fast): boom" == result.error

    @pytest.mark.asyncio
    async def test_abort_before_start(self, engine, journal):
        with pytest.raises(AnalysisAbortedError):
            await engine.analyze(journal, Metric.STRESS, AnalysisMode.FAST, should_abort=lambda: True)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", [AnalysisMode.FAST, AnalysisMode.DEEP])
    async def test_abort_mid_run(self, engine, journal, mode):
        polls = {"count": 0}

        def should_abort():
            polls["count"] += 1
            return polls["count"] > 5

        with pytest.raises(AnalysisAbortedError):
            await engine.analyze(journal, Metric.STRESS, mode, should_abort=should_abort)

    @pytest.mark.asyncio
    async def test_progress_callback(self, engine, journal):
        updates = []

        await engine.analyze(
            journal, Metric.STRESS, AnalysisMode.FAST,
            on_progress=lambda stage, fraction: updates.append((stage, fraction)),
        )

        assert updates[0] == ("extracting", 0.1)
        assert updates[-1] == ("complete", 1.0)

    @pytest.mark.asyncio
    async def test_malformed_entry_is_skipped(self, engine, make_entry):
        entries = [
            make_entry("not a date", stress=5, stress_sources="work deadline"),
            make_entry("2024-01-02", stress=6, stress_sources="work deadline"),
            make_entry("2024-01-03", stress=0, stress_sources="work deadline"),
        ]

        result = await engine.analyze(entries, Metric.STRESS, AnalysisMode.FAST)

        assert result.total_mentions == 2
        assert result.main_patterns[0].avg_impact == 3.0
        assert result.error is None


class TestExplainAlgorithm:
    """Tests for algorithm descriptions."""

    def test_fast(self):
        assert "Phrase grouping" in explain_algorithm(AnalysisMode.FAST)

    def test_deep(self):
        assert "TF-IDF" in explain_algorithm("deep")


class TestSingleton:
    """Tests for the engine singleton."""

    def test_same_instance(self, monkeypatch):
        monkeypatch.setattr(engine_module, "_pattern_engine", None)

        assert get_pattern_engine() is get_pattern_engine()
