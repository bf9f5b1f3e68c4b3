"""
Cash-Flow Projector

Projects the cash balance day by day over a fixed horizon starting today.

Each projected day collects:
- inflows: receivables (network invoices) due that day
- outflows: credit card payments and payroll due that day, plus the
  recurring expected media spend, which is charged every day

    balance[0] = startingBalance + inflows[0] - outflows[0]
    balance[i] = balance[i-1] + inflows[i] - outflows[i]

Due dates are matched to projection days by exact calendar date after
normalization. Items whose due date cannot be normalized are returned in
`unscheduledItems` and logged rather than dropped.
"""

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

import pandas as pd

from rollup_engine.core.config import get_settings
from rollup_engine.models.enums import FlowDirection, FlowType
from rollup_engine.models.schemas import (
    CashFlowProjection,
    FinancialResourceSnapshot,
    FlowItem,
    PerformanceRecord,
    ProjectionDay,
    ScheduledItem,
)
from rollup_engine.services.aggregator import UNKNOWN_ENTITY

logger = logging.getLogger(__name__)

MEDIA_SPEND_DESCRIPTION = 'Projected media spend'


# =============================================================================
# Inputs
# =============================================================================


def trailing_average_spend(
    records: Iterable[PerformanceRecord],
    as_of: date,
    window_days: Optional[int] = None
) -> Dict[str, float]:
    """
    Average daily spend per media buyer over the trailing window.

    The window is the `window_days` calendar days ending on `as_of`
    (inclusive). Each buyer's total spend is divided by the number of days in
    the window that carry any data, so days nobody reported do not dilute
    the average.

    Args:
        records: Normalized performance records.
        as_of: Last day of the window.
        window_days: Window length. Defaults to Settings.trailing_spend_window_days.

    Returns:
        Buyer name -> average daily spend. Empty when the window has no data.
    """
    if window_days is None:
        window_days = get_settings().trailing_spend_window_days
    if window_days <= 0:
        raise ValueError(f"window_days must be positive, got {window_days}")

    window_start = as_of - timedelta(days=window_days - 1)
    rows = [
        {
            'date': record.date,
            'mediaBuyer': (record.mediaBuyer or '').strip() or UNKNOWN_ENTITY,
            'adSpend': record.adSpend,
        }
        for record in records
        if record.date is not None and window_start <= record.date <= as_of
    ]
    if not rows:
        return {}

    df = pd.DataFrame(rows)
    reporting_days = df['date'].nunique()
    totals = df.groupby('mediaBuyer', sort=True)['adSpend'].sum()
    return {buyer: float(total) / reporting_days for buyer, total in totals.items()}


def schedule_from_snapshot(snapshot: FinancialResourceSnapshot) -> List[ScheduledItem]:
    """
    Scheduled cash movements implied by a financial snapshot.

    - invoices -> receivables
    - credit cards with a due date and a positive balance owed -> card payments
    - payroll -> payroll outflows
    """
    items: List[ScheduledItem] = []

    for invoice in snapshot.invoices:
        items.append(ScheduledItem(
            description=invoice.network,
            amount=invoice.amount,
            dueDate=invoice.dueDate,
            rawDueDate=invoice.rawDueDate,
            flowType=FlowType.RECEIVABLE,
        ))

    for card in snapshot.creditCards:
        if card.owing <= 0:
            continue
        if card.dueDate is None and card.rawDueDate is None:
            continue
        items.append(ScheduledItem(
            description=card.name,
            amount=card.owing,
            dueDate=card.dueDate,
            rawDueDate=card.rawDueDate,
            flowType=FlowType.CREDIT_CARD_PAYMENT,
        ))

    for payroll in snapshot.payroll:
        items.append(ScheduledItem(
            description=payroll.description,
            amount=payroll.amount,
            dueDate=payroll.dueDate,
            rawDueDate=payroll.rawDueDate,
            flowType=FlowType.PAYROLL,
        ))

    return items


# =============================================================================
# Projection
# =============================================================================


def project_cash_flow(
    starting_balance: float,
    scheduled: Iterable[ScheduledItem],
    recurring_daily_outflow: float = 0.0,
    horizon_days: Optional[int] = None,
    today: Optional[date] = None
) -> CashFlowProjection:
    """
    Project the running cash balance over `horizon_days` days from today.

    Args:
        starting_balance: Cash on hand before day 0's flows.
        scheduled: Dated inflows/outflows. Items dated outside the horizon
            are ignored; items without a usable date are reported back.
        recurring_daily_outflow: Expected media spend charged every day.
        horizon_days: Number of projected days. Defaults to
            Settings.projection_horizon_days (30).
        today: Day 0 of the projection. Defaults to today.

    Returns:
        CashFlowProjection with one ProjectionDay per horizon day.

    Raises:
        ValueError: If horizon_days is negative.

    Example:
        >>> projection = project_cash_flow(10000, [], 500, horizon_days=3,
        ...                                today=date(2024, 5, 1))
        >>> [day.balance for day in projection.days]
        [9500.0, 9000.0, 8500.0]
    """
    if horizon_days is None:
        horizon_days = get_settings().projection_horizon_days
    if horizon_days < 0:
        raise ValueError(f"horizon_days must be non-negative, got {horizon_days}")
    today = today or date.today()
    horizon_end = today + timedelta(days=horizon_days - 1)

    by_date: Dict[date, List[ScheduledItem]] = {}
    unscheduled: List[ScheduledItem] = []
    for item in scheduled:
        if not item.isScheduled:
            logger.warning(
                f"Unscheduled {item.flowType.value} '{item.description}': "
                f"due date {item.rawDueDate!r} could not be parsed"
            )
            unscheduled.append(item)
            continue
        if not today <= item.dueDate <= horizon_end:
            continue
        by_date.setdefault(item.dueDate, []).append(item)

    days: List[ProjectionDay] = []
    balance = float(starting_balance)
    total_in = 0.0
    total_out = 0.0
    lowest_balance = balance
    lowest_date: Optional[date] = None

    for offset in range(horizon_days):
        current = today + timedelta(days=offset)
        due = by_date.get(current, [])

        inflows = [
            FlowItem(flowType=item.flowType, description=item.description, amount=item.amount)
            for item in due
            if item.flowType.direction == FlowDirection.INFLOW
        ]
        outflows = [
            FlowItem(flowType=item.flowType, description=item.description, amount=item.amount)
            for item in due
            if item.flowType.direction == FlowDirection.OUTFLOW
        ]
        if recurring_daily_outflow:
            outflows.append(FlowItem(
                flowType=FlowType.MEDIA_SPEND,
                description=MEDIA_SPEND_DESCRIPTION,
                amount=recurring_daily_outflow,
            ))

        day_in = sum(flow.amount for flow in inflows)
        day_out = sum(flow.amount for flow in outflows)
        balance += day_in - day_out
        total_in += day_in
        total_out += day_out

        if lowest_date is None or balance < lowest_balance:
            lowest_balance = balance
            lowest_date = current

        days.append(ProjectionDay(
            date=current,
            inflows=inflows,
            outflows=outflows,
            totalInflows=day_in,
            totalOutflows=day_out,
            balance=balance,
            hasScheduledItems=bool(due),
        ))

    if unscheduled:
        logger.warning(f"{len(unscheduled)} scheduled items excluded from the projection")

    return CashFlowProjection(
        startingBalance=starting_balance,
        horizonDays=horizon_days,
        recurringDailyOutflow=recurring_daily_outflow,
        days=days,
        totalInflows=total_in,
        totalOutflows=total_out,
        endingBalance=balance,
        lowestBalance=lowest_balance,
        lowestBalanceDate=lowest_date,
        unscheduledItems=unscheduled,
    )
