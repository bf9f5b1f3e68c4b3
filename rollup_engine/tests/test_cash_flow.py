"""
Cash-Flow Projector Test Module

Test Coverage:
- Running balance with only the recurring outflow
- Snapshot scheduling: invoices, card payments with a balance owed, payroll
- Unparseable due dates reported in unscheduledItems (not dropped)
- Exact calendar-date matching across date dialects and horizon bounds
- Trailing average media spend
"""

from datetime import date, timedelta

import pytest

from rollup_engine.models import FlowType, ScheduledItem
from rollup_engine.services.cash_flow import (
    MEDIA_SPEND_DESCRIPTION,
    project_cash_flow,
    schedule_from_snapshot,
    trailing_average_spend,
)


def _item(due, amount, flow_type=FlowType.PAYROLL, description='Item'):
    return ScheduledItem(description=description, amount=amount, dueDate=due, flowType=flow_type)


# =============================================================================
# Test Class: TestRecurringOutflow
# =============================================================================

class TestRecurringOutflow:
    """Projection with no scheduled items."""

    def test_linear_decline(self, today):
        projection = project_cash_flow(10000, [], 250, horizon_days=5, today=today)
        assert [day.balance for day in projection.days] == [
            10000 - (i + 1) * 250 for i in range(5)
        ]
        assert projection.endingBalance == 8750.0
        assert projection.totalOutflows == 1250.0

    def test_days_start_today(self, today):
        projection = project_cash_flow(0, [], horizon_days=3, today=today)
        assert [day.date for day in projection.days] == [
            today, today + timedelta(days=1), today + timedelta(days=2),
        ]

    def test_media_spend_line(self, today):
        day = project_cash_flow(1000, [], 100, horizon_days=1, today=today).days[0]
        assert [(flow.flowType, flow.description) for flow in day.outflows] == [
            (FlowType.MEDIA_SPEND, MEDIA_SPEND_DESCRIPTION),
        ]
        assert not day.hasScheduledItems

    def test_zero_recurring_adds_no_line(self, today):
        day = project_cash_flow(1000, [], 0, horizon_days=1, today=today).days[0]
        assert day.outflows == []
        assert day.balance == 1000.0

    def test_default_horizon(self, today):
        assert len(project_cash_flow(0, [], today=today).days) == 30

    def test_horizon_from_environment(self, today, monkeypatch):
        monkeypatch.setenv('PROJECTION_HORIZON_DAYS', '10')
        assert len(project_cash_flow(0, [], today=today).days) == 10

    def test_zero_horizon(self, today):
        projection = project_cash_flow(500, [], 100, horizon_days=0, today=today)
        assert projection.days == []
        assert projection.endingBalance == 500.0

    def test_negative_horizon_rejected(self, today):
        with pytest.raises(ValueError):
            project_cash_flow(0, [], horizon_days=-1, today=today)


# =============================================================================
# Test Class: TestScheduledItems
# =============================================================================

class TestScheduledItems:
    """Dated inflows and outflows."""

    def test_exact_date_match_across_dialects(self, today):
        scheduled = [
            ScheduledItem(description='Banner', amount='$1,000', dueDate='4/16/2024',
                          flowType=FlowType.RECEIVABLE),
            ScheduledItem(description='Payroll', amount=400, dueDate='2024-04-16',
                          flowType=FlowType.PAYROLL),
        ]
        projection = project_cash_flow(0, scheduled, horizon_days=3, today=today)
        april_16 = projection.days[1]
        assert april_16.date == date(2024, 4, 16)
        assert april_16.totalInflows == 1000.0
        assert april_16.totalOutflows == 400.0
        assert april_16.balance == 600.0
        assert april_16.hasScheduledItems

    def test_items_outside_horizon_ignored(self, today):
        scheduled = [
            _item(today - timedelta(days=1), 100),
            _item(today + timedelta(days=3), 100),
            _item(today + timedelta(days=2), 100),
        ]
        projection = project_cash_flow(1000, scheduled, horizon_days=3, today=today)
        assert projection.totalOutflows == 100.0
        assert projection.endingBalance == 900.0
        assert projection.unscheduledItems == []

    def test_unparseable_due_date_reported(self, today, caplog):
        scheduled = [
            ScheduledItem(description='Lead Co', amount=1200, dueDate='sometime soon',
                          flowType=FlowType.RECEIVABLE),
        ]
        with caplog.at_level('WARNING'):
            projection = project_cash_flow(0, scheduled, horizon_days=5, today=today)

        assert projection.totalInflows == 0.0
        assert len(projection.unscheduledItems) == 1
        assert projection.unscheduledItems[0].rawDueDate == 'sometime soon'
        assert 'Lead Co' in caplog.text

    def test_is_scheduled_follows_due_date(self, today):
        dated = _item(today + timedelta(days=1), 300)
        undated = ScheduledItem(description='Payroll', amount=500, dueDate='',
                                flowType=FlowType.PAYROLL)
        garbled = ScheduledItem(description='Lead Co', amount=1200, dueDate='TBD',
                                flowType=FlowType.RECEIVABLE)
        assert dated.isScheduled
        assert not undated.isScheduled
        assert not garbled.isScheduled

        projection = project_cash_flow(1000, [dated, undated, garbled], horizon_days=3, today=today)
        assert projection.totalOutflows == 300.0
        assert [item.description for item in projection.unscheduledItems] == ['Payroll', 'Lead Co']

    def test_balance_recurrence(self, today):
        scheduled = [
            _item(today, 300, FlowType.RECEIVABLE),
            _item(today + timedelta(days=2), 700),
        ]
        projection = project_cash_flow(1000, scheduled, 50, horizon_days=4, today=today)
        previous = projection.startingBalance
        for day in projection.days:
            assert day.balance == pytest.approx(previous + day.totalInflows - day.totalOutflows)
            previous = day.balance

    def test_lowest_balance(self, today):
        scheduled = [
            _item(today + timedelta(days=1), 900),
            _item(today + timedelta(days=2), 2000, FlowType.RECEIVABLE),
        ]
        projection = project_cash_flow(1000, scheduled, horizon_days=4, today=today)
        assert projection.lowestBalance == 100.0
        assert projection.lowestBalanceDate == today + timedelta(days=1)


# =============================================================================
# Test Class: TestSnapshotProjection
# =============================================================================

class TestSnapshotProjection:
    """Schedule derived from a financial snapshot."""

    def test_schedule_from_snapshot(self, snapshot):
        items = schedule_from_snapshot(snapshot)
        assert [(item.description, item.flowType) for item in items] == [
            ('Banner', FlowType.RECEIVABLE),
            ('Lead Co', FlowType.RECEIVABLE),
            ('Amex Gold', FlowType.CREDIT_CARD_PAYMENT),
            ('Contractors', FlowType.PAYROLL),
        ]
        amex = items[2]
        assert amex.amount == 2000.0
        assert amex.dueDate == date(2024, 4, 20)

    def test_snapshot_projection(self, snapshot, today):
        projection = project_cash_flow(
            25000, schedule_from_snapshot(snapshot), horizon_days=30, today=today,
        )
        balances = {day.date: day.balance for day in projection.days}
        assert balances[date(2024, 4, 15)] == 25000.0
        assert balances[date(2024, 4, 16)] == 28000.0
        assert balances[date(2024, 4, 17)] == 23500.0
        assert balances[date(2024, 4, 20)] == 21500.0
        assert projection.endingBalance == 21500.0
        assert [item.description for item in projection.unscheduledItems] == ['Lead Co']

    def test_snapshot_projection_with_media_spend(self, snapshot, today):
        projection = project_cash_flow(
            25000, schedule_from_snapshot(snapshot), 1000, horizon_days=7, today=today,
        )
        assert [day.balance for day in projection.days] == [
            24000.0, 26000.0, 20500.0, 19500.0, 18500.0, 15500.0, 14500.0,
        ]
        assert projection.lowestBalanceDate == date(2024, 4, 21)


# =============================================================================
# Test Class: TestTrailingAverageSpend
# =============================================================================

class TestTrailingAverageSpend:
    """Average daily spend per buyer over reporting days in the window."""

    def test_full_window(self, records):
        averages = trailing_average_spend(records, date(2024, 4, 2))
        assert averages['Alex'] == pytest.approx(800 / 3)
        assert averages['Sam'] == pytest.approx(100.0)
        assert averages['Unknown'] == pytest.approx(50 / 3)

    def test_short_window(self, records):
        averages = trailing_average_spend(records, date(2024, 4, 2), window_days=2)
        assert averages == pytest.approx({'Alex': 200.0, 'Sam': 150.0, 'Unknown': 25.0})

    def test_empty_window(self, records):
        assert trailing_average_spend(records, date(2024, 6, 1)) == {}

    def test_invalid_window(self, records):
        with pytest.raises(ValueError):
            trailing_average_spend(records, date(2024, 4, 2), window_days=0)
