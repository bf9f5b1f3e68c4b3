"""
End-to-end rollup pipeline.

Runs every stage once over a caller-supplied snapshot of data:

1. normalize raw rows (list of mappings or a pandas DataFrame)
2. aggregate by day and entity
3. daily and monthly commission-adjusted rollups
4. trend/consistency insights for the requested period
5. break-even analysis of the newest month
6. budget suggestions per network/offer and sustainable spend per buyer
7. resource, credit utilization and cash-flow projection views

The pipeline holds no state; the same inputs always produce the same report.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from rollup_engine.models.schemas import (
    BudgetSuggestion,
    CapTable,
    CommissionTable,
    FinancialResourceSnapshot,
    NetworkExposure,
    PerformanceRecord,
    RollupReport,
)
from rollup_engine.services.aggregator import (
    aggregate_entities,
    filter_by_date_range,
    previous_period,
    UNKNOWN_ENTITY,
)
from rollup_engine.services.break_even import analyze_month
from rollup_engine.services.budget import max_sustainable_spend, suggest_daily_budget
from rollup_engine.services.cash_flow import (
    project_cash_flow,
    schedule_from_snapshot,
    trailing_average_spend,
)
from rollup_engine.services.commission import build_daily_aggregates, build_monthly_aggregates
from rollup_engine.services.credit import summarize_credit_utilization, summarize_resources
from rollup_engine.services.normalizer import normalize_frame, normalize_records
from rollup_engine.services.receivables import exposure_to_receivables
from rollup_engine.services.trends import (
    classify_consistency,
    classify_trend,
    derive_trajectory,
    generate_insights,
    month_over_month_trend,
)

logger = logging.getLogger(__name__)

Pair = Tuple[str, str]


def _pair(record: PerformanceRecord) -> Pair:
    return (record.network or UNKNOWN_ENTITY, record.offer or UNKNOWN_ENTITY)


def _pair_totals(records: Iterable[PerformanceRecord]) -> Dict[Pair, Tuple[float, float]]:
    totals: Dict[Pair, List[float]] = defaultdict(lambda: [0.0, 0.0])
    for record in records:
        entry = totals[_pair(record)]
        entry[0] += record.totalRevenue
        entry[1] += record.adSpend
    return {pair: (revenue, spend) for pair, (revenue, spend) in totals.items()}


def suggest_pair_budgets(
    records: List[PerformanceRecord],
    start: date,
    end: date,
    caps: Optional[CapTable] = None
) -> List[BudgetSuggestion]:
    """
    Budget suggestion for every network/offer pair with spend in [start, end].

    The last-day spend is the pair's spend on the latest date in the period
    that has any data.
    """
    current_records = filter_by_date_range(records, start, end)
    if not current_records:
        return []

    previous_start, previous_end = previous_period(start, end)
    current = _pair_totals(current_records)
    previous = _pair_totals(filter_by_date_range(records, previous_start, previous_end))

    latest_day = max(record.date for record in current_records)
    last_day = _pair_totals(record for record in current_records if record.date == latest_day)

    suggestions: List[BudgetSuggestion] = []
    for (network, offer), (revenue, spend) in sorted(current.items()):
        if spend <= 0:
            continue
        profit = revenue - spend
        prior = previous.get((network, offer))
        previous_profit = prior[0] - prior[1] if prior is not None else None

        trend = classify_trend(profit, previous_profit)
        consistency = classify_consistency([profit, previous_profit or 0.0])
        suggestions.append(suggest_daily_budget(
            entity=f"{network} - {offer}",
            last_day_spend=last_day.get((network, offer), (0.0, 0.0))[1],
            roi=profit / spend * 100,
            trajectory=derive_trajectory(trend, consistency),
            network=network,
            offer=offer,
            caps=caps,
        ))
    return suggestions


def run_rollup(
    raw_records: Union[Iterable[Any], pd.DataFrame],
    snapshot: FinancialResourceSnapshot,
    commission_table: CommissionTable,
    caps: Optional[CapTable],
    start: date,
    end: date,
    today: Optional[date] = None,
    exposures: Iterable[NetworkExposure] = ()
) -> RollupReport:
    """
    Run the full rollup once.

    Args:
        raw_records: Raw performance rows, PerformanceRecords or a DataFrame.
        snapshot: Financial resources at the time of the run.
        commission_table: Buyer commission rates.
        caps: Daily caps per network/offer, or None for no caps.
        start: First day of the analysis period (inclusive).
        end: Last day of the analysis period (inclusive).
        today: Reference date for open months and the projection.
        exposures: Network exposures turned into receivables.

    Returns:
        RollupReport bundling every stage's output.

    Raises:
        TypeError: If raw_records is not a collection of mappings.
        ValueError: If end is before start.
    """
    today = today or date.today()
    if end < start:
        raise ValueError(f"Period end {end} is before start {start}")

    if isinstance(raw_records, pd.DataFrame):
        records = normalize_frame(raw_records)
    else:
        records = normalize_records(raw_records)
    logger.info(f"Running rollup for {start}..{end} over {len(records)} records")

    aggregation = aggregate_entities(records)
    daily = build_daily_aggregates(aggregation, commission_table)
    monthly = build_monthly_aggregates(daily, today=today)
    insights = generate_insights(records, start, end)

    break_even = None
    if monthly:
        break_even = analyze_month(monthly[0], month_over_month_trend(monthly), today)

    resources = summarize_resources(snapshot)
    average_spend = trailing_average_spend(records, end)

    scheduled = schedule_from_snapshot(snapshot) + exposure_to_receivables(exposures, today)
    projection = project_cash_flow(
        starting_balance=resources.availableCash,
        scheduled=scheduled,
        recurring_daily_outflow=sum(average_spend.values()),
        today=today,
    )

    report = RollupReport(
        asOf=today,
        periodStart=start,
        periodEnd=end,
        skippedRecords=aggregation.skippedRecords,
        daily=[day for day in daily if start <= day.date <= end],
        monthly=monthly,
        insights=insights,
        breakEven=break_even,
        budgets=suggest_pair_budgets(records, start, end, caps),
        sustainableSpend=max_sustainable_spend(average_spend, resources.totalAvailable),
        resources=resources,
        creditUtilization=summarize_credit_utilization(snapshot.creditCards),
        projection=projection,
    )
    logger.info(
        f"Rollup complete: {len(report.daily)} days, {len(report.monthly)} months, "
        f"{len(report.insights)} insights"
    )
    return report
