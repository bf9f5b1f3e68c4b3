"""
Break-Even Advisor

Reads the open month's fully loaded profit and says how far the business is
from covering its expenses, and when it should get there.

Inputs:
- currentProfit: the month's finalProfitWithDaily (after commission and overhead)
- breakEvenPoint: the month's total expenses (commission + fixed overhead)
- latestBaseProfit: the most recent single day's baseProfit
- trend: TrendDirection for the entity or month

Statuses:
- currentProfit >= 0: PROFITABLE_UP / PROFITABLE_STABLE / PROFITABLE_DOWN by trend
- currentProfit < 0 and latestBaseProfit > 0, by progress toward break-even:
    >= 90%: ON_TRACK_PROFITABLE_MONTH
    >= 50%: ON_TRACK_BREAK_EVEN
    <  50%: WORKING_TO_BREAK_EVEN
- currentProfit < 0 and latestBaseProfit <= 0: LOSS with the trend's loss wording

Progress is the share of the break-even point already covered:
(currentProfit + breakEvenPoint) / breakEvenPoint * 100.

The projected break-even date is today + ceil(|currentProfit| / dailyBaseProfit)
and exists only while the month is negative and the daily base profit is positive.
"""

import calendar
import logging
import math
from datetime import date, timedelta
from typing import Optional, Tuple

from rollup_engine.models.enums import BreakEvenStatus, TrendDirection
from rollup_engine.models.schemas import BreakEvenAnalysis, ClosedMonth, MonthlyAggregate, MonthState
from rollup_engine.services.trends import DECLINING_TRENDS, IMPROVING_TRENDS, describe_status

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS - Progress thresholds and wording
# =============================================================================

PROFITABLE_MONTH_PROGRESS = 90.0
BREAK_EVEN_PROGRESS = 50.0

STATUS_TEXT = {
    BreakEvenStatus.PROFITABLE_UP: 'Already profitable and trending up',
    BreakEvenStatus.PROFITABLE_STABLE: 'Already profitable and holding steady',
    BreakEvenStatus.PROFITABLE_DOWN: 'Already profitable but trending down',
    BreakEvenStatus.ON_TRACK_PROFITABLE_MONTH: 'On track for a profitable month',
    BreakEvenStatus.ON_TRACK_BREAK_EVEN: 'On track to break even',
    BreakEvenStatus.WORKING_TO_BREAK_EVEN: 'Working toward break even',
}


def progress_to_break_even(current_profit: float, break_even_point: float) -> Optional[float]:
    """Percent of the break-even point covered; None when there are no expenses."""
    if break_even_point <= 0:
        return None
    return (current_profit + break_even_point) / break_even_point * 100


def project_break_even_date(
    current_profit: float,
    daily_base_profit: float,
    today: Optional[date] = None
) -> Tuple[Optional[date], Optional[int]]:
    """
    Date the month's deficit is covered at the current daily base profit.

    Returns:
        (date, days) or (None, None) when the month is not negative or the
        daily base profit is not positive.

    Example:
        >>> project_break_even_date(-1000, 100, date(2024, 4, 10))
        (datetime.date(2024, 4, 20), 10)
    """
    if current_profit >= 0 or daily_base_profit <= 0:
        return None, None
    today = today or date.today()
    days = math.ceil(abs(current_profit) / daily_base_profit)
    return today + timedelta(days=days), days


def project_month_end_profit(
    current_profit: float,
    today: Optional[date] = None,
    state: Optional[MonthState] = None
) -> float:
    """
    Month-to-date profit extrapolated over the remaining days of the month.

    A closed month is already complete, so its profit is returned unchanged.
    """
    if isinstance(state, ClosedMonth):
        return current_profit
    today = today or date.today()
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    daily_rate = current_profit / today.day
    return current_profit + daily_rate * (days_in_month - today.day)


def _profitable_status(trend: TrendDirection) -> BreakEvenStatus:
    if trend in IMPROVING_TRENDS:
        return BreakEvenStatus.PROFITABLE_UP
    if trend in DECLINING_TRENDS:
        return BreakEvenStatus.PROFITABLE_DOWN
    return BreakEvenStatus.PROFITABLE_STABLE


def analyze_break_even(
    current_profit: float,
    total_expenses: float,
    latest_base_profit: float,
    trend: TrendDirection = TrendDirection.NEUTRAL,
    today: Optional[date] = None,
    daily_base_profit: Optional[float] = None,
    state: Optional[MonthState] = None
) -> BreakEvenAnalysis:
    """
    Classify month-to-date break-even state.

    Args:
        current_profit: Month's finalProfitWithDaily.
        total_expenses: Month's commission plus fixed overhead.
        latest_base_profit: Most recent day's baseProfit.
        trend: Direction used for profitable sub-status and loss wording.
        today: Reference date for projections. Defaults to today.
        daily_base_profit: Rate used for the break-even date. Defaults to
            latest_base_profit.
        state: Open/closed state of the month. A closed month is not
            extrapolated to its end.

    Returns:
        BreakEvenAnalysis with status, progress and projections.
    """
    today = today or date.today()
    if daily_base_profit is None:
        daily_base_profit = latest_base_profit

    progress = progress_to_break_even(current_profit, total_expenses)

    if current_profit >= 0:
        status = _profitable_status(trend)
        status_text = STATUS_TEXT[status]
    elif latest_base_profit > 0:
        if progress is not None and progress >= PROFITABLE_MONTH_PROGRESS:
            status = BreakEvenStatus.ON_TRACK_PROFITABLE_MONTH
        elif progress is not None and progress >= BREAK_EVEN_PROGRESS:
            status = BreakEvenStatus.ON_TRACK_BREAK_EVEN
        else:
            status = BreakEvenStatus.WORKING_TO_BREAK_EVEN
        status_text = STATUS_TEXT[status]
    else:
        status = BreakEvenStatus.LOSS
        status_text = describe_status(latest_base_profit, trend)

    break_even_date, days = project_break_even_date(current_profit, daily_base_profit, today)

    logger.debug(f"Break-even status {status.value} (profit={current_profit:.2f}, progress={progress})")
    return BreakEvenAnalysis(
        currentProfit=current_profit,
        breakEvenPoint=total_expenses,
        progressToBreakEven=progress,
        latestBaseProfit=latest_base_profit,
        status=status,
        statusText=status_text,
        trend=trend,
        projectedBreakEvenDate=break_even_date,
        daysToBreakEven=days,
        projectedMonthEndProfit=project_month_end_profit(current_profit, today, state),
    )


def analyze_month(
    month: MonthlyAggregate,
    trend: TrendDirection = TrendDirection.NEUTRAL,
    today: Optional[date] = None
) -> Optional[BreakEvenAnalysis]:
    """Break-even analysis for a monthly aggregate, using its latest day."""
    if not month.days:
        return None
    latest = max(month.days, key=lambda day: day.date)
    return analyze_break_even(
        current_profit=month.finalProfitWithDaily,
        total_expenses=month.totalExpenses,
        latest_base_profit=latest.baseProfit,
        trend=trend,
        today=today,
        state=month.state,
    )
