"""
Statistical Insight Generation

Turns the daily energy/stress series into four independent insights:
- Correlation between energy and stress (Pearson r)
- Weekly patterns (best energy day, least stressful day)
- Trend direction (last 7 entries vs the 7 before)
- Personalized recommendations

Each analysis checks its own data-sufficiency threshold and is either
omitted or replaced by a low-confidence variant when it is not met.
"""

import logging
import math
from collections import defaultdict
from typing import Dict, List, Optional

from ..models import DayAggregate, Insight, InsightDatum, InsightType
from .trends import energy_values, mean, stress_values


logger = logging.getLogger(__name__)

MIN_CORRELATION_PAIRS = 3
MIN_DAYS_FOR_WEEKLY = 7
MIN_WEEKDAYS_FOR_WEEKLY = 3
MIN_SAMPLES_PER_WEEKDAY = 2
TREND_WINDOW = 7
MIN_TREND_VALUES = 5
MIN_DAYS_FOR_RECOMMENDATION = 5

STRONG_CORRELATION = 0.7
MODERATE_CORRELATION = 0.4
COMPLETENESS_THRESHOLD = 0.7
TREND_THRESHOLD = 0.5

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def _datum(label: str, value: str) -> InsightDatum:
    return InsightDatum(label=label, value=value)


def _fmt(value: Optional[float]) -> str:
    return f"{value:.1f}" if value is not None else "n/a"


# ============================================================================
# Correlation
# ============================================================================

def pearson_correlation(xs: List[float], ys: List[float]) -> Optional[float]:
    """
    Pearson correlation coefficient of two equal-length samples.

    Returns:
        r clamped to [-1, 1], or None when either sample has no variance
    """
    n = len(xs)
    if n == 0 or n != len(ys):
        return None

    mean_x = sum(xs) / n
    mean_y = sum(ys) / n
    sxy = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))
    sxx = sum((x - mean_x) ** 2 for x in xs)
    syy = sum((y - mean_y) ** 2 for y in ys)

    denominator = math.sqrt(sxx * syy)
    if math.isclose(denominator, 0.0, abs_tol=1e-9):
        return None

    return max(-1.0, min(1.0, sxy / denominator))


def correlation_confidence(r: float, n: int, expected_days: int) -> float:
    """
    Confidence for a computed correlation.

    Larger samples start from a higher base; a period with fewer than 70%
    of its days logged loses 20% of the base.
    """
    base = 0.6
    if n >= 7:
        base = 0.8
    if n >= 14:
        base = 0.9

    if expected_days > 0 and n / expected_days < COMPLETENESS_THRESHOLD:
        base *= 0.8

    return min(base + abs(r) * 0.2, 1.0)


def correlation_strength(r: float) -> str:
    """Strength label for a correlation coefficient."""
    strength = abs(r)
    if strength > STRONG_CORRELATION:
        return "Strong"
    elif strength > MODERATE_CORRELATION:
        return "Moderate"
    return "Weak"


def analyze_correlation(series: List[DayAggregate], period: Optional[int] = None) -> Insight:
    """
    Analyze how energy and stress move together.

    Args:
        series: Daily aggregates
        period: Requested day count, used only for sample-size wording and
                the completeness penalty

    Returns:
        Correlation insight (possibly the insufficient-data or no-variance variant)
    """
    pairs = [d for d in series if d.has_both]
    n = len(pairs)
    expected_days = period or len(series)

    if n < MIN_CORRELATION_PAIRS:
        return Insight(
            type=InsightType.CORRELATION,
            title="Energy-Stress Relationship",
            subtitle="Insufficient data for analysis",
            description=(
                "Track your energy and stress for at least 3 days to see how they relate. "
                "Keep logging daily to unlock this insight."
            ),
            confidence=0.0,
            data=[
                _datum("Data Points Available", f"{n} days"),
                _datum("Expected Period", f"{expected_days} days"),
                _datum("Required Minimum", f"{MIN_CORRELATION_PAIRS} days"),
            ],
            action_items=[
                "Continue daily energy and stress tracking",
                "Aim for consistent logging habits",
                "Check back after a few more entries",
            ],
        )

    r = pearson_correlation(
        [d.energy_avg for d in pairs],
        [d.stress_avg for d in pairs],
    )
    missing_days = max(0, expected_days - n)

    if r is None:
        missing_note = f" ({missing_days} days missing from selected period)" if missing_days else ""
        description = (
            "Your energy and stress levels have been very consistent during this period. "
            "This could reflect a stable routine or limited variation in the data."
        )
        if missing_days:
            description += " Continue tracking daily to capture more patterns."
        return Insight(
            type=InsightType.CORRELATION,
            title="Energy-Stress Relationship",
            subtitle="No variance detected",
            description=description,
            confidence=0.5,
            data=[
                _datum("Sample Size", f"{n} of {expected_days} days{missing_note}"),
                _datum("Data Variance", "Low"),
            ],
            action_items=[
                "Continue tracking to capture more variation",
                "Note any routine changes that might affect patterns",
            ],
        )

    strength_label = correlation_strength(r)
    if strength_label == "Strong":
        description = (
            "Strong negative correlation: when your stress rises, your energy drops significantly."
            if r < 0 else
            "Strong positive correlation: your energy and stress levels rise and fall together."
        )
    elif strength_label == "Moderate":
        description = (
            "Moderate negative correlation: higher stress tends to lower your energy."
            if r < 0 else
            "Moderate positive correlation: your energy and stress levels show some connection."
        )
    else:
        description = (
            "Weak correlation: your energy and stress levels appear largely independent "
            "during this period."
        )

    if n < expected_days:
        description += (
            f" Note: based on {n} days of the selected {expected_days}-day period "
            f"({missing_days} days missing data)."
        )
    elif n < 7:
        description += " Note: this is a short window; patterns may become clearer with more data."

    if r < -MODERATE_CORRELATION:
        action_items = [
            "Focus on stress reduction techniques",
            "Identify your main stress triggers",
            "Build relaxation practices into your day",
        ]
    elif r > MODERATE_CORRELATION:
        action_items = [
            "Investigate why stress and energy move together",
            "Consider whether high-energy activities create stress",
            "Look for underlying patterns",
        ]
    else:
        action_items = [
            "Continue monitoring both metrics",
            "Look for patterns in your daily routine",
            "Track for longer to reveal trends",
        ]

    return Insight(
        type=InsightType.CORRELATION,
        title="Energy-Stress Relationship",
        subtitle=f"{strength_label} correlation detected",
        description=description,
        confidence=correlation_confidence(r, n, expected_days),
        data=[
            _datum("Correlation Coefficient", f"{r:.2f}"),
            _datum("Sample Size", f"{n} of {expected_days} days" if n < expected_days else f"{n} days"),
            _datum("Relationship Strength", strength_label),
        ],
        action_items=action_items,
    )


# ============================================================================
# Weekly patterns
# ============================================================================

def weekday_index(day: DayAggregate) -> int:
    """Day of week with 0 = Sunday .. 6 = Saturday."""
    return (day.entry_date.weekday() + 1) % 7


def analyze_weekly_patterns(series: List[DayAggregate]) -> Optional[Insight]:
    """
    Find the best energy day and the least stressful day of the week.

    Requires at least 7 days and at least 3 weekdays with 2+ samples each.
    """
    if len(series) < MIN_DAYS_FOR_WEEKLY:
        return None

    buckets: Dict[int, List[DayAggregate]] = defaultdict(list)
    for day in series:
        buckets[weekday_index(day)].append(day)

    day_averages = []
    for weekday in sorted(buckets):
        days = buckets[weekday]
        if len(days) < MIN_SAMPLES_PER_WEEKDAY:
            continue
        day_averages.append({
            "day": weekday,
            "name": DAY_NAMES[weekday],
            "avg_energy": mean(d.energy_avg for d in days),
            "avg_stress": mean(d.stress_avg for d in days),
            "count": len(days),
        })

    if len(day_averages) < MIN_WEEKDAYS_FOR_WEEKLY:
        return None

    with_energy = [d for d in day_averages if d["avg_energy"] is not None]
    with_stress = [d for d in day_averages if d["avg_stress"] is not None]
    if not with_energy or not with_stress:
        return None

    best_energy_day = max(with_energy, key=lambda d: d["avg_energy"])
    least_stress_day = min(with_stress, key=lambda d: d["avg_stress"])

    return Insight(
        type=InsightType.PATTERN,
        title="Weekly Patterns",
        subtitle="Your energy and stress vary by day of week",
        description=(
            f"Your highest energy levels typically occur on {best_energy_day['name']}s, "
            f"while {least_stress_day['name']}s tend to be your least stressful days. "
            "Knowing this can help you plan your week."
        ),
        confidence=0.8,
        data=[
            _datum(d["name"], f"E: {_fmt(d['avg_energy'])} | S: {_fmt(d['avg_stress'])}")
            for d in day_averages
        ],
        action_items=[
            f"Schedule important tasks on {best_energy_day['name']}s",
            f"Use {least_stress_day['name']}s for recovery and planning",
            "Track how weekends compare with weekdays",
        ],
    )


# ============================================================================
# Trend direction
# ============================================================================

def determine_trend_direction(change: float) -> str:
    """Trend direction from the change in mean energy."""
    if change > TREND_THRESHOLD:
        return "improving"
    elif change < -TREND_THRESHOLD:
        return "declining"
    return "stable"


def analyze_trend(series: List[DayAggregate]) -> Optional[Insight]:
    """
    Compare mean energy of the latest 7 entries against the 7 before them.

    Both windows need at least 5 recorded energy values.
    """
    if len(series) < TREND_WINDOW:
        return None

    recent = energy_values(series[-TREND_WINDOW:])
    previous = energy_values(series[-2 * TREND_WINDOW:-TREND_WINDOW])

    if len(recent) < MIN_TREND_VALUES or len(previous) < MIN_TREND_VALUES:
        return None

    recent_avg = sum(recent) / len(recent)
    previous_avg = sum(previous) / len(previous)
    change = recent_avg - previous_avg
    direction = determine_trend_direction(change)

    if direction == "improving":
        description = (
            f"Your energy levels have increased by {change:.1f} points over the last week. "
            "Your current routine seems to be working well."
        )
    elif direction == "declining":
        description = (
            f"Your energy levels have decreased by {abs(change):.1f} points recently. "
            "Consider reviewing what might be affecting your energy."
        )
    else:
        description = "Your energy levels have been relatively stable, which suggests a consistent routine."

    if direction == "declining":
        action_items = [
            "Review recent changes in routine",
            "Check sleep quality and duration",
            "Consider stress levels and workload",
        ]
    else:
        action_items = [
            "Continue current positive habits",
            "Monitor for sustained improvement",
        ]

    return Insight(
        type=InsightType.PREDICTION,
        title="Trend Analysis",
        subtitle=f"Energy levels are {direction}",
        description=description,
        confidence=0.7,
        data=[
            _datum("Recent Average", f"{recent_avg:.1f}"),
            _datum("Previous Average", f"{previous_avg:.1f}"),
            _datum("Change", f"{change:+.1f}"),
        ],
        action_items=action_items,
    )


# ============================================================================
# Recommendations
# ============================================================================

def generate_recommendation(series: List[DayAggregate]) -> Optional[Insight]:
    """
    Recommend a focus area from average energy and stress.

    Requires at least 5 days with a recorded metric.
    """
    valid = [d for d in series if d.has_values]
    if len(valid) < MIN_DAYS_FOR_RECOMMENDATION:
        return None

    avg_energy = mean(energy_values(valid))
    avg_stress = mean(stress_values(valid))

    if avg_energy is not None and avg_energy < 5:
        description = "Your energy levels are below average. Focus on foundational wellness practices."
        recommendations = [
            "Focus on improving sleep quality",
            "Add light exercise to your routine",
            "Consider your nutrition and hydration",
        ]
    elif avg_stress is not None and avg_stress > 6:
        description = "Your stress levels are elevated. Prioritize stress reduction strategies."
        recommendations = [
            "Practice stress management techniques",
            "Schedule regular breaks during the day",
            "Identify and address stress triggers",
        ]
    else:
        description = "Your overall wellness metrics look good. Focus on maintaining consistency."
        recommendations = [
            "Maintain your current healthy habits",
            "Continue tracking to identify optimization opportunities",
        ]

    return Insight(
        type=InsightType.RECOMMENDATION,
        title="Personalized Recommendations",
        subtitle="Based on your recent patterns",
        description=description,
        confidence=0.8,
        data=[
            _datum("Average Energy", _fmt(avg_energy)),
            _datum("Average Stress", _fmt(avg_stress)),
        ],
        action_items=recommendations,
    )


def generate_insights(series: List[DayAggregate], period: Optional[int] = None) -> Dict[str, Insight]:
    """
    Run all four analyses over a daily series.

    The analyses are independent; a missing one never blocks the others.

    Args:
        series: Daily aggregates (see build_trend_series)
        period: Requested day count for sample-size wording

    Returns:
        Insights keyed by type, only for analyses that met their thresholds
    """
    if not series:
        return {}

    insights: Dict[str, Insight] = {}
    candidates = [
        analyze_correlation(series, period),
        analyze_weekly_patterns(series),
        analyze_trend(series),
        generate_recommendation(series),
    ]
    for insight in candidates:
        if insight is not None:
            insights[insight.type.value] = insight

    logger.info(
        "Generated %d insights from %d days (period=%s): %s",
        len(insights), len(series), period, ", ".join(insights),
    )
    return insights
