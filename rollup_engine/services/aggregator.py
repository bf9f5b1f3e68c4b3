"""
Entity Aggregator

Groups normalized PerformanceRecords by calendar day and by entity
(media buyer, network, offer), summing revenue and spend in a single pass.

Key Functions:
- aggregate_entities: date -> entity -> totals for every dimension, plus day totals
- filter_by_date_range: inclusive date filter
- build_entity_metrics: per-entity revenue/spend/profit/margin/ROI for a period
- previous_period: the equal-length window immediately before a period

Bucketing Rules:
- Blank entity names are bucketed under "Unknown" so attribution gaps stay visible
- ACA revenue is revenue from records whose network contains the ACA marker
  (case-insensitive substring, default "aca")
- Records without a usable date are counted in skippedRecords, not bucketed
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from rollup_engine.core.config import get_settings
from rollup_engine.models.enums import EntityDimension
from rollup_engine.models.schemas import (
    DayTotals,
    EntityAggregation,
    EntityMetric,
    EntityTotals,
    PerformanceRecord,
)

logger = logging.getLogger(__name__)

UNKNOWN_ENTITY = 'Unknown'


# =============================================================================
# Internal Accumulators
# =============================================================================


@dataclass
class _Totals:
    """Mutable running sums; frozen into schema models once a pass completes."""
    revenue: float = 0.0
    spend: float = 0.0
    aca_revenue: float = 0.0

    def add(self, revenue: float, spend: float, aca_revenue: float = 0.0) -> None:
        self.revenue += revenue
        self.spend += spend
        self.aca_revenue += aca_revenue


def entity_name(record: PerformanceRecord, dimension: EntityDimension) -> str:
    """Entity a record belongs to for one dimension, "Unknown" when blank."""
    if dimension == EntityDimension.MEDIA_BUYER:
        name = record.mediaBuyer
    elif dimension == EntityDimension.NETWORK:
        name = record.network
    else:
        name = record.offer
    name = (name or '').strip()
    return name or UNKNOWN_ENTITY


def is_aca_network(network: Optional[str], marker: str) -> bool:
    """Case-insensitive substring match of the ACA marker in a network name."""
    if not network or not marker:
        return False
    return marker.lower() in network.lower()


# =============================================================================
# Aggregation
# =============================================================================


def aggregate_entities(
    records: Iterable[PerformanceRecord],
    aca_marker: Optional[str] = None
) -> EntityAggregation:
    """
    Aggregate records by day and entity in one pass.

    Args:
        records: Normalized performance records.
        aca_marker: Network substring identifying ACA revenue. Defaults to
            Settings.aca_network_marker.

    Returns:
        EntityAggregation with per-dimension day maps, day totals and the
        count of records skipped for lacking a date.

    Example:
        >>> agg = aggregate_entities([
        ...     PerformanceRecord(date=date(2024, 4, 2), mediaBuyer="Alex",
        ...                       network="ACA Net", adSpend=400, totalRevenue=1000),
        ...     PerformanceRecord(date=date(2024, 4, 2), network="Other",
        ...                       adSpend=100, totalRevenue=50),
        ... ])
        >>> agg.daily[date(2024, 4, 2)].acaRevenue
        1000.0
        >>> sorted(agg.byMediaBuyer[date(2024, 4, 2)])
        ['Alex', 'Unknown']
    """
    marker = aca_marker if aca_marker is not None else get_settings().aca_network_marker

    by_dimension: Dict[EntityDimension, Dict[date, Dict[str, _Totals]]] = {
        dimension: defaultdict(lambda: defaultdict(_Totals))
        for dimension in EntityDimension
    }
    daily: Dict[date, _Totals] = defaultdict(_Totals)
    skipped = 0

    for record in records:
        if record.date is None:
            skipped += 1
            continue

        revenue = record.totalRevenue
        spend = record.adSpend
        aca_revenue = revenue if is_aca_network(record.network, marker) else 0.0

        daily[record.date].add(revenue, spend, aca_revenue)
        for dimension, days in by_dimension.items():
            days[record.date][entity_name(record, dimension)].add(revenue, spend)

    if skipped:
        logger.warning(f"Skipped {skipped} records without a usable date during aggregation")

    def freeze(days: Dict[date, Dict[str, _Totals]]) -> Dict[date, Dict[str, EntityTotals]]:
        return {
            day: {
                name: EntityTotals(revenue=totals.revenue, spend=totals.spend)
                for name, totals in entities.items()
            }
            for day, entities in sorted(days.items())
        }

    return EntityAggregation(
        byMediaBuyer=freeze(by_dimension[EntityDimension.MEDIA_BUYER]),
        byNetwork=freeze(by_dimension[EntityDimension.NETWORK]),
        byOffer=freeze(by_dimension[EntityDimension.OFFER]),
        daily={
            day: DayTotals(
                totalRevenue=totals.revenue,
                totalAdSpend=totals.spend,
                acaRevenue=totals.aca_revenue,
            )
            for day, totals in sorted(daily.items())
        },
        skippedRecords=skipped,
    )


# =============================================================================
# Period Metrics
# =============================================================================


def filter_by_date_range(
    records: Iterable[PerformanceRecord],
    start: date,
    end: date
) -> List[PerformanceRecord]:
    """Records dated within [start, end]; undated records never match."""
    return [
        record for record in records
        if record.date is not None and start <= record.date <= end
    ]


def _metric(name: str, revenue: float, spend: float) -> EntityMetric:
    profit = revenue - spend
    return EntityMetric(
        name=name,
        revenue=revenue,
        spend=spend,
        profit=profit,
        margin=profit / revenue * 100 if revenue > 0 else 0.0,
        roi=profit / spend * 100 if spend > 0 else 0.0,
    )


def build_entity_metrics(
    records: Iterable[PerformanceRecord],
    start: date,
    end: date,
    dimension: EntityDimension
) -> Dict[str, EntityMetric]:
    """
    Per-entity totals for one dimension over [start, end].

    Margin and ROI are 0.0 when their denominator is zero.
    """
    totals: Dict[str, _Totals] = defaultdict(_Totals)
    for record in filter_by_date_range(records, start, end):
        totals[entity_name(record, dimension)].add(record.totalRevenue, record.adSpend)

    return {
        name: _metric(name, entry.revenue, entry.spend)
        for name, entry in totals.items()
    }


def previous_period(start: date, end: date) -> Tuple[date, date]:
    """
    Equal-length window ending the day before `start`.

    Example:
        >>> previous_period(date(2024, 4, 8), date(2024, 4, 14))
        (datetime.date(2024, 4, 1), datetime.date(2024, 4, 7))
    """
    if end < start:
        raise ValueError(f"Period end {end} is before start {start}")
    days = (end - start).days + 1
    previous_end = start - timedelta(days=1)
    previous_start = previous_end - timedelta(days=days - 1)
    return previous_start, previous_end
