"""
Commission & Expense Calculator

Turns per-day entity aggregates into fully loaded daily and monthly profit.

Daily Profit Chain:
- baseProfit = totalRevenue - totalAdSpend
- mediaBuyerCommission = sum over buyers of max(0, revenue - spend) * rate
- ringbaExpense = acaRevenue * 0.02 for days before 2024-04-01, else 0
- finalProfit = baseProfit - mediaBuyerCommission - ringbaExpense
- roi = finalProfit / totalAdSpend * 100

Daily rows carry the fixed daily expense constant for display only; it is NOT
subtracted from finalProfit. Fixed overhead is charged once per month:

Monthly Rollup:
- dailyExpenses = monthly fixed expenses (59,217), open or closed
- finalProfitWithoutDaily = sum(finalProfit)
- finalProfitWithDaily = finalProfitWithoutDaily - dailyExpenses
- roi = finalProfitWithDaily / totalAdSpend * 100
- per-day allocation: Open(n) -> total / n, Closed -> total / 21

A month with zero data-days is skipped rather than divided by zero.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Mapping, Optional, Tuple

from rollup_engine.core.config import get_settings
from rollup_engine.models.schemas import (
    ClosedMonth,
    CommissionTable,
    DailyAggregate,
    EntityAggregation,
    EntityTotals,
    MonthlyAggregate,
    MonthState,
    OpenMonth,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS - Ringba surcharge
# =============================================================================

# Call-tracking surcharge on ACA revenue, retired on the cutover date.
# Hard business rule; not overridable per call.
RINGBA_RATE = 0.02
RINGBA_CUTOVER = date(2024, 4, 1)


# =============================================================================
# Per-Day Expenses
# =============================================================================


def calculate_buyer_commission(
    buyer_totals: Mapping[str, EntityTotals],
    commission_table: CommissionTable
) -> float:
    """
    Sum of media buyer commissions for one day.

    Each buyer earns their rate on that day's positive profit only, so a
    losing buyer never produces negative commission.

    Args:
        buyer_totals: Buyer name -> that buyer's revenue/spend for the day.
        commission_table: Rate lookup (case-insensitive, default 0.10).

    Example:
        >>> table = CommissionTable(rates={"alex": 0.15})
        >>> calculate_buyer_commission({
        ...     "Alex": EntityTotals(revenue=1000, spend=400),
        ...     "Sam": EntityTotals(revenue=100, spend=300),
        ... }, table)
        90.0
    """
    commission = 0.0
    for buyer, totals in buyer_totals.items():
        profit = totals.revenue - totals.spend
        if profit <= 0:
            continue
        commission += profit * commission_table.rate_for(buyer)
    return commission


def calculate_ringba_expense(day: date, aca_revenue: float) -> float:
    """ACA surcharge for a day: 2% before 2024-04-01, nothing from then on."""
    if day < RINGBA_CUTOVER:
        return aca_revenue * RINGBA_RATE
    return 0.0


def build_daily_aggregates(
    aggregation: EntityAggregation,
    commission_table: CommissionTable,
    daily_expense: Optional[float] = None
) -> List[DailyAggregate]:
    """
    Fully loaded profit for every aggregated day, ascending by date.

    Args:
        aggregation: Output of aggregate_entities.
        commission_table: Buyer commission rates.
        daily_expense: Fixed overhead shown on each day. Defaults to
            Settings.daily_expense_constant. Not subtracted from finalProfit.
    """
    if daily_expense is None:
        daily_expense = get_settings().daily_expense_constant

    aggregates: List[DailyAggregate] = []
    for day in sorted(aggregation.daily):
        totals = aggregation.daily[day]
        base_profit = totals.totalRevenue - totals.totalAdSpend
        commission = calculate_buyer_commission(
            aggregation.byMediaBuyer.get(day, {}),
            commission_table,
        )
        ringba = calculate_ringba_expense(day, totals.acaRevenue)
        final_profit = base_profit - commission - ringba

        aggregates.append(DailyAggregate(
            date=day,
            totalRevenue=totals.totalRevenue,
            totalAdSpend=totals.totalAdSpend,
            acaRevenue=totals.acaRevenue,
            baseProfit=base_profit,
            mediaBuyerCommission=commission,
            ringbaExpense=ringba,
            dailyExpenses=daily_expense,
            finalProfit=final_profit,
            roi=final_profit / totals.totalAdSpend * 100 if totals.totalAdSpend else 0.0,
        ))

    logger.debug(f"Built {len(aggregates)} daily aggregates")
    return aggregates


# =============================================================================
# Monthly Rollup
# =============================================================================


def resolve_month_state(
    year: int,
    month: int,
    days_observed: int,
    today: Optional[date] = None
) -> MonthState:
    """
    Open when (year, month) is the current calendar month, else Closed.

    Raises:
        ValueError: If days_observed is less than 1.
    """
    if days_observed < 1:
        raise ValueError(f"Month {year}-{month:02d} has no observed data-days")
    today = today or date.today()
    if (year, month) == (today.year, today.month):
        return OpenMonth(daysObserved=days_observed)
    return ClosedMonth()


def allocate_fixed_expenses(
    state: MonthState,
    monthly_total: Optional[float] = None,
    working_days: Optional[int] = None
) -> float:
    """
    Per-day share of the month's fixed overhead.

    Example:
        >>> allocate_fixed_expenses(OpenMonth(daysObserved=3), 59217.0)
        19739.0
        >>> round(allocate_fixed_expenses(ClosedMonth(), 59217.0), 2)
        2819.86
    """
    settings = get_settings()
    if monthly_total is None:
        monthly_total = settings.monthly_fixed_expenses
    if working_days is None:
        working_days = settings.assumed_working_days

    if isinstance(state, OpenMonth):
        return monthly_total / state.daysObserved
    return monthly_total / working_days


def build_monthly_aggregates(
    daily: List[DailyAggregate],
    today: Optional[date] = None,
    monthly_fixed_expenses: Optional[float] = None,
    working_days: Optional[int] = None
) -> List[MonthlyAggregate]:
    """
    Roll daily aggregates into calendar months, newest first.

    Each returned month's `days` carry the per-day overhead allocation in
    `dailyExpenses` instead of the display constant.

    Args:
        daily: Output of build_daily_aggregates.
        today: Reference date deciding which month is open. Defaults to today.
        monthly_fixed_expenses: Defaults to Settings.monthly_fixed_expenses.
        working_days: Defaults to Settings.assumed_working_days.
    """
    settings = get_settings()
    today = today or date.today()
    if monthly_fixed_expenses is None:
        monthly_fixed_expenses = settings.monthly_fixed_expenses
    if working_days is None:
        working_days = settings.assumed_working_days

    months: Dict[Tuple[int, int], List[DailyAggregate]] = defaultdict(list)
    for day in daily:
        months[(day.date.year, day.date.month)].append(day)

    aggregates: List[MonthlyAggregate] = []
    for (year, month), days in sorted(months.items(), reverse=True):
        data_days = len({day.date for day in days})
        if data_days == 0:
            logger.info(f"Skipping {year}-{month:02d}: no data-days")
            continue

        state = resolve_month_state(year, month, data_days, today)
        allocation = allocate_fixed_expenses(state, monthly_fixed_expenses, working_days)
        days = sorted(days, key=lambda day: day.date)

        total_spend = sum(day.totalAdSpend for day in days)
        without_daily = sum(day.finalProfit for day in days)
        with_daily = without_daily - monthly_fixed_expenses
        month_start = date(year, month, 1)
        month_end = _month_end(year, month)

        aggregates.append(MonthlyAggregate(
            year=year,
            month=month,
            state=state,
            monthStart=month_start,
            monthEnd=month_end,
            totalRevenue=sum(day.totalRevenue for day in days),
            totalAdSpend=total_spend,
            acaRevenue=sum(day.acaRevenue for day in days),
            baseProfit=sum(day.baseProfit for day in days),
            mediaBuyerCommission=sum(day.mediaBuyerCommission for day in days),
            ringbaExpense=sum(day.ringbaExpense for day in days),
            dailyExpenses=monthly_fixed_expenses,
            dailyExpenseAllocation=allocation,
            finalProfitWithoutDaily=without_daily,
            finalProfitWithDaily=with_daily,
            roi=with_daily / total_spend * 100 if total_spend else 0.0,
            days=[day.model_copy(update={'dailyExpenses': allocation}) for day in days],
        ))

    return aggregates


def _month_end(year: int, month: int) -> date:
    if month == 12:
        return date(year, 12, 31)
    return date.fromordinal(date(year, month + 1, 1).toordinal() - 1)
