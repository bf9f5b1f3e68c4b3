"""
Trend & Consistency Classifier

Compares each active entity's current period against the equal-length period
immediately before it and produces human-readable insights.

Trend (change = (current - previous) / |previous| * 100):
- > 20: strong_up
- > 5: up
- < -20: strong_down
- < -5: down
- otherwise: stable
- previous missing or zero: neutral

Consistency (coefficient of variation = population std / |mean| * 100):
- < 20: very_stable
- < 40: stable
- < 60: moderate
- otherwise: inconsistent
- fewer than two values: insufficient_data

Status Decision Table:
    profit > 0    strong_up   -> "Highly profitable and trending up"
                                 ("... with strong upward trend" for offers/networks)
                  up          -> "Profitable and improving"
                  stable      -> "Consistently profitable"
                  neutral     -> "Profitable (no prior period data)"
                  down/strong_down -> "Profitable but declining"
    profit <= 0   strong_down -> "Significant losses and declining"
                  down        -> "Losing money and getting worse"
                  stable      -> "Consistently unprofitable"
                  neutral     -> "Unprofitable (no prior period data)"
                  up/strong_up -> "Losing money but improving"

Offers also need enough data (spend >= 1,000 over >= 3 days) before they get
a verdict, and are flagged for scaling when margin > 20% and the trend is not
declining.
"""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from rollup_engine.core.config import get_settings
from rollup_engine.models.enums import (
    Consistency,
    EntityDimension,
    Trajectory,
    TrendDirection,
)
from rollup_engine.models.schemas import (
    EntityInsight,
    EntityMetric,
    MonthlyAggregate,
    PerformanceRecord,
)
from rollup_engine.services.aggregator import build_entity_metrics, previous_period

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS - Thresholds and wording
# =============================================================================

STRONG_CHANGE_PCT = 20.0
CHANGE_PCT = 5.0

VERY_STABLE_CV = 20.0
STABLE_CV = 40.0
MODERATE_CV = 60.0

INSUFFICIENT_DATA_STATUS = 'Insufficient data to make determination'

DECLINING_TRENDS = frozenset({TrendDirection.DOWN, TrendDirection.STRONG_DOWN})
IMPROVING_TRENDS = frozenset({TrendDirection.UP, TrendDirection.STRONG_UP})

_ID_PREFIX: Dict[EntityDimension, str] = {
    EntityDimension.MEDIA_BUYER: 'media-buyer',
    EntityDimension.NETWORK: 'network',
    EntityDimension.OFFER: 'offer',
}


# =============================================================================
# Classification
# =============================================================================


def percent_change(current: float, previous: float) -> float:
    """
    (current - previous) * 100 / |previous|, rounded to 9 decimals.

    Exact threshold changes on cent amounts (3.00 -> 3.60) compare equal to
    the threshold.
    """
    return round((current - previous) * 100 / abs(previous), 9)


def classify_trend(current: float, previous: Optional[float]) -> TrendDirection:
    """
    Classify period-over-period profit change.

    Boundaries are exclusive: exactly +20% is `up`, anything above is
    `strong_up`.

    Example:
        >>> classify_trend(120, 100)
        <TrendDirection.UP: 'up'>
        >>> classify_trend(120.01, 100)
        <TrendDirection.STRONG_UP: 'strong_up'>
        >>> classify_trend(50, 0)
        <TrendDirection.NEUTRAL: 'neutral'>
    """
    if not previous:
        return TrendDirection.NEUTRAL

    change = percent_change(current, previous)
    if change > STRONG_CHANGE_PCT:
        return TrendDirection.STRONG_UP
    if change > CHANGE_PCT:
        return TrendDirection.UP
    if change < -STRONG_CHANGE_PCT:
        return TrendDirection.STRONG_DOWN
    if change < -CHANGE_PCT:
        return TrendDirection.DOWN
    return TrendDirection.STABLE


def classify_consistency(values: Sequence[float]) -> Consistency:
    """
    Classify the variability of a small sample by its coefficient of variation.

    A zero mean has no meaningful CV: identical values are very stable,
    anything else is inconsistent.
    """
    if len(values) < 2:
        return Consistency.INSUFFICIENT_DATA

    values_array = np.array(values, dtype=np.float64)
    mean_val = float(np.mean(values_array))
    std_val = float(np.std(values_array))  # Population std (ddof=0)

    if mean_val == 0:
        if std_val == 0:
            return Consistency.VERY_STABLE
        return Consistency.INCONSISTENT

    coefficient = std_val / abs(mean_val) * 100
    if coefficient < VERY_STABLE_CV:
        return Consistency.VERY_STABLE
    if coefficient < STABLE_CV:
        return Consistency.STABLE
    if coefficient < MODERATE_CV:
        return Consistency.MODERATE
    return Consistency.INCONSISTENT


def derive_trajectory(trend: TrendDirection, consistency: Consistency) -> Trajectory:
    """Collapse trend and consistency into the budget advisor's trajectory."""
    if consistency == Consistency.INCONSISTENT:
        return Trajectory.VOLATILE
    if trend in IMPROVING_TRENDS:
        return Trajectory.IMPROVING
    if trend in DECLINING_TRENDS:
        return Trajectory.DECLINING
    return Trajectory.STABLE


def describe_status(
    profit: float,
    trend: TrendDirection,
    dimension: EntityDimension = EntityDimension.MEDIA_BUYER
) -> str:
    """Natural-language verdict from profitability crossed with trend."""
    if profit > 0:
        if trend == TrendDirection.STRONG_UP:
            if dimension == EntityDimension.MEDIA_BUYER:
                return 'Highly profitable and trending up'
            return 'Highly profitable with strong upward trend'
        if trend == TrendDirection.UP:
            return 'Profitable and improving'
        if trend == TrendDirection.STABLE:
            return 'Consistently profitable'
        if trend == TrendDirection.NEUTRAL:
            return 'Profitable (no prior period data)'
        return 'Profitable but declining'

    if trend == TrendDirection.STRONG_DOWN:
        return 'Significant losses and declining'
    if trend == TrendDirection.DOWN:
        return 'Losing money and getting worse'
    if trend == TrendDirection.STABLE:
        return 'Consistently unprofitable'
    if trend == TrendDirection.NEUTRAL:
        return 'Unprofitable (no prior period data)'
    return 'Losing money but improving'


# =============================================================================
# Insight Generation
# =============================================================================


def _has_enough_data(spend: float, period_days: int) -> bool:
    settings = get_settings()
    return spend >= settings.offer_min_spend and period_days >= settings.offer_min_days


def generate_entity_insights(
    records: Iterable[PerformanceRecord],
    start: date,
    end: date,
    dimension: EntityDimension
) -> List[EntityInsight]:
    """
    Insights for every active entity of one dimension, best profit first.

    Args:
        records: Normalized performance records covering both periods.
        start: First day of the current period (inclusive).
        end: Last day of the current period (inclusive).
        dimension: Which entity grouping to analyze.

    Returns:
        One EntityInsight per entity with spend > 0 in the current period.
        Entities active only in the previous period are omitted.
    """
    records = list(records)
    previous_start, previous_end = previous_period(start, end)
    current = build_entity_metrics(records, start, end, dimension)
    previous = build_entity_metrics(records, previous_start, previous_end, dimension)
    period_days = (end - start).days + 1
    margin_threshold = get_settings().scaling_margin_threshold

    insights: List[EntityInsight] = []
    for name, metric in current.items():
        if not metric.isActive:
            continue

        prior: Optional[EntityMetric] = previous.get(name)
        previous_profit = prior.profit if prior is not None else None
        trend = classify_trend(metric.profit, previous_profit)
        consistency = classify_consistency([metric.profit, previous_profit or 0.0])

        has_data = True
        scaling = False
        if dimension == EntityDimension.OFFER:
            has_data = _has_enough_data(metric.spend, period_days)
            scaling = metric.margin > margin_threshold and trend not in DECLINING_TRENDS

        status = describe_status(metric.profit, trend, dimension) if has_data else INSUFFICIENT_DATA_STATUS

        insights.append(EntityInsight(
            id=f"{_ID_PREFIX[dimension]}-{name}",
            dimension=dimension,
            name=name,
            revenue=metric.revenue,
            spend=metric.spend,
            profit=metric.profit,
            previousProfit=previous_profit,
            margin=metric.margin,
            roi=metric.roi,
            trend=trend,
            consistency=consistency,
            status=status,
            hasData=has_data,
            scalingPotential=scaling,
        ))

    insights.sort(key=lambda insight: insight.profit, reverse=True)
    logger.debug(f"Generated {len(insights)} {dimension.value} insights for {start}..{end}")
    return insights


def generate_insights(
    records: Iterable[PerformanceRecord],
    start: date,
    end: date
) -> List[EntityInsight]:
    """Insights for media buyers, then offers, then networks."""
    records = list(records)
    insights: List[EntityInsight] = []
    for dimension in (EntityDimension.MEDIA_BUYER, EntityDimension.OFFER, EntityDimension.NETWORK):
        insights.extend(generate_entity_insights(records, start, end, dimension))
    return insights


def format_currency(value: float) -> str:
    """US currency with cents, e.g. -$1,234.50."""
    sign = '-' if value < 0 else ''
    return f"{sign}${abs(value):,.2f}"


def insight_text(insight: EntityInsight, period_label: str) -> str:
    """
    One-line notification text for an insight.

    Example:
        "Alex: Profitable and improving. $1,200.00 profit over the last 7 days (stable performance)"
    """
    profit = format_currency(insight.profit)
    if insight.dimension == EntityDimension.MEDIA_BUYER:
        return (
            f"{insight.name}: {insight.status}. {profit} profit over {period_label} "
            f"({insight.consistency.value} performance)"
        )
    text = f"{insight.name}: {insight.status}. {profit} profit ({insight.margin:.1f}% margin) over {period_label}."
    if insight.scalingPotential:
        text += ' High scaling potential'
    return text


# =============================================================================
# Month-over-Month
# =============================================================================


def month_over_month_trend(monthly: Sequence[MonthlyAggregate]) -> TrendDirection:
    """
    Direction of the newest month's finalProfitWithDaily against the prior month.

    Uses the 5% band only; fewer than two months reads as stable.
    """
    if len(monthly) < 2:
        return TrendDirection.STABLE
    current = monthly[0].finalProfitWithDaily
    previous = monthly[1].finalProfitWithDaily
    if not previous:
        return TrendDirection.STABLE

    change = percent_change(current, previous)
    if change > CHANGE_PCT:
        return TrendDirection.UP
    if change < -CHANGE_PCT:
        return TrendDirection.DOWN
    return TrendDirection.STABLE


def monthly_trend_label(monthly: Sequence[MonthlyAggregate]) -> str:
    """Headline label for the current month, e.g. "Profitable – Up"."""
    trend = month_over_month_trend(monthly)
    return {
        TrendDirection.UP: 'Profitable – Up',
        TrendDirection.DOWN: 'Profitable – Down',
    }.get(trend, 'Profitable – Stable')
