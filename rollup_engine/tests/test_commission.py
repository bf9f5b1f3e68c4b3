"""
Commission & Expense Calculator Test Module

Test Coverage:
- Commission lookup: normalized keys, 0.10 default, rate validation
- Per-buyer commission on positive profit only
- Ringba surcharge cutover (2024-03-31 charged, 2024-04-01 not)
- Daily profit chain: finalProfit = baseProfit - commission - ringba <= baseProfit
- Month state (open/closed) and fixed-overhead allocation
- Monthly invariant: finalProfitWithDaily = sum(finalProfit) - dailyExpenses
- April 2024 worked example
"""

from datetime import date

import pytest
from pydantic import ValidationError

from rollup_engine.models import (
    ClosedMonth,
    CommissionTable,
    EntityTotals,
    MonthStateKind,
    OpenMonth,
)
from rollup_engine.services.aggregator import aggregate_entities
from rollup_engine.services.commission import (
    RINGBA_CUTOVER,
    allocate_fixed_expenses,
    build_daily_aggregates,
    build_monthly_aggregates,
    calculate_buyer_commission,
    calculate_ringba_expense,
    resolve_month_state,
)

MONTHLY_FIXED = 59217.0
DAILY_CONSTANT = 2819.81


# =============================================================================
# Test Class: TestCommissionTable
# =============================================================================

class TestCommissionTable:
    """Rate lookup."""

    def test_lookup_is_case_insensitive_and_trimmed(self, commission_table):
        assert commission_table.rate_for('ALEX') == 0.15
        assert commission_table.rate_for('  alex') == 0.15

    def test_unknown_buyer_gets_default(self, commission_table):
        assert commission_table.rate_for('Jordan') == 0.10
        assert commission_table.rate_for(None) == 0.10

    def test_custom_default(self):
        table = CommissionTable.from_mapping({}, default_rate=0.2)
        assert table.rate_for('anyone') == 0.2

    def test_default_rate_from_environment(self, monkeypatch):
        monkeypatch.setenv('DEFAULT_COMMISSION_RATE', '0.125')
        assert CommissionTable().rate_for('Jordan') == 0.125
        assert CommissionTable.from_mapping({'Alex': 0.15}).rate_for('jordan') == 0.125

    @pytest.mark.parametrize('rate', [-0.01, 1.5])
    def test_rates_outside_unit_interval_rejected(self, rate):
        with pytest.raises(ValidationError):
            CommissionTable.from_mapping({'Alex': rate})


# =============================================================================
# Test Class: TestPerDayExpenses
# =============================================================================

class TestPerDayExpenses:
    """Commission and Ringba per day."""

    def test_default_rate_applies_when_unmatched(self, default_commission_table):
        commission = calculate_buyer_commission(
            {'Jordan': EntityTotals(revenue=1000, spend=400)},
            default_commission_table,
        )
        assert commission == pytest.approx(60.0)

    def test_losing_buyer_earns_nothing(self, commission_table):
        commission = calculate_buyer_commission(
            {
                'Alex': EntityTotals(revenue=1000, spend=400),
                'Sam': EntityTotals(revenue=100, spend=300),
            },
            commission_table,
        )
        assert commission == pytest.approx(90.0)

    def test_ringba_charged_before_cutover(self):
        assert calculate_ringba_expense(date(2024, 3, 31), 1000.0) == pytest.approx(20.0)

    def test_ringba_not_charged_from_cutover(self):
        assert RINGBA_CUTOVER == date(2024, 4, 1)
        assert calculate_ringba_expense(date(2024, 4, 1), 1000.0) == 0.0
        assert calculate_ringba_expense(date(2025, 1, 1), 1000.0) == 0.0


# =============================================================================
# Test Class: TestDailyAggregates
# =============================================================================

class TestDailyAggregates:
    """Daily profit chain."""

    def test_cutover_days(self, records, default_commission_table):
        daily = {
            day.date: day
            for day in build_daily_aggregates(aggregate_entities(records), default_commission_table)
        }
        march_31 = daily[date(2024, 3, 31)]
        april_1 = daily[date(2024, 4, 1)]

        assert march_31.baseProfit == 600.0
        assert march_31.mediaBuyerCommission == pytest.approx(60.0)
        assert march_31.ringbaExpense == pytest.approx(20.0)
        assert march_31.finalProfit == pytest.approx(520.0)

        assert april_1.ringbaExpense == 0.0
        assert april_1.finalProfit == pytest.approx(540.0)

    def test_final_profit_never_exceeds_base_profit(self, records, commission_table):
        for day in build_daily_aggregates(aggregate_entities(records), commission_table):
            assert day.finalProfit <= day.baseProfit
            assert day.finalProfit == pytest.approx(
                day.baseProfit - day.mediaBuyerCommission - day.ringbaExpense
            )

    def test_daily_rows_show_constant_but_do_not_subtract_it(self, records, default_commission_table):
        april_2 = build_daily_aggregates(aggregate_entities(records), default_commission_table)[-1]
        assert april_2.date == date(2024, 4, 2)
        assert april_2.dailyExpenses == DAILY_CONSTANT
        # Unknown buyer made 100 profit; Sam lost 100
        assert april_2.baseProfit == 0.0
        assert april_2.mediaBuyerCommission == pytest.approx(10.0)
        assert april_2.finalProfit == pytest.approx(-10.0)

    def test_roi(self, records, default_commission_table):
        april_1 = build_daily_aggregates(aggregate_entities(records), default_commission_table)[1]
        assert april_1.roi == pytest.approx(540.0 / 400.0 * 100)

    def test_sorted_ascending(self, records, commission_table):
        days = [d.date for d in build_daily_aggregates(aggregate_entities(records), commission_table)]
        assert days == sorted(days)


# =============================================================================
# Test Class: TestMonthState
# =============================================================================

class TestMonthState:
    """Open/closed resolution and overhead allocation."""

    def test_current_month_is_open(self, today):
        state = resolve_month_state(2024, 4, 5, today)
        assert isinstance(state, OpenMonth)
        assert state.kind == MonthStateKind.OPEN
        assert state.daysObserved == 5

    def test_past_month_is_closed(self, today):
        state = resolve_month_state(2024, 3, 5, today)
        assert isinstance(state, ClosedMonth)
        assert state.kind == MonthStateKind.CLOSED

    def test_zero_days_rejected(self, today):
        with pytest.raises(ValueError):
            resolve_month_state(2024, 4, 0, today)

    def test_open_allocation_divides_by_observed_days(self):
        assert allocate_fixed_expenses(OpenMonth(daysObserved=3), MONTHLY_FIXED) == pytest.approx(19739.0)

    def test_closed_allocation_divides_by_working_days(self):
        assert allocate_fixed_expenses(ClosedMonth(), MONTHLY_FIXED) == pytest.approx(MONTHLY_FIXED / 21)

    def test_state_round_trips_through_discriminator(self, record_factory, default_commission_table, today):
        daily = build_daily_aggregates(
            aggregate_entities([record_factory(date(2024, 4, 1), spend=1, revenue=2)]),
            default_commission_table,
        )
        month = build_monthly_aggregates(daily, today=today)[0]
        dumped = month.model_dump()
        assert dumped['state']['kind'] == MonthStateKind.OPEN
        assert type(month.model_validate(dumped).state) is OpenMonth


# =============================================================================
# Test Class: TestMonthlyAggregates
# =============================================================================

class TestMonthlyAggregates:
    """Monthly rollup."""

    def test_newest_month_first(self, records, commission_table, today):
        daily = build_daily_aggregates(aggregate_entities(records), commission_table)
        months = build_monthly_aggregates(daily, today=today)
        assert [(m.year, m.month) for m in months] == [(2024, 4), (2024, 3)]
        assert isinstance(months[0].state, OpenMonth)
        assert isinstance(months[1].state, ClosedMonth)

    def test_sum_invariant(self, records, commission_table, today):
        daily = build_daily_aggregates(aggregate_entities(records), commission_table)
        for month in build_monthly_aggregates(daily, today=today):
            assert month.finalProfitWithoutDaily == pytest.approx(sum(d.finalProfit for d in month.days))
            assert month.finalProfitWithDaily == pytest.approx(
                month.finalProfitWithoutDaily - month.dailyExpenses
            )
            assert month.dailyExpenses == MONTHLY_FIXED

    def test_days_carry_allocation(self, records, commission_table, today):
        daily = build_daily_aggregates(aggregate_entities(records), commission_table)
        april, march = build_monthly_aggregates(daily, today=today)
        assert april.dailyExpenseAllocation == pytest.approx(MONTHLY_FIXED / 2)
        assert all(day.dailyExpenses == pytest.approx(MONTHLY_FIXED / 2) for day in april.days)
        assert march.dailyExpenseAllocation == pytest.approx(MONTHLY_FIXED / 21)

    def test_empty_input_has_no_months(self, today):
        assert build_monthly_aggregates([], today=today) == []

    def test_april_2024_worked_example(self, record_factory, default_commission_table, today):
        """
        Revenue 5,000 against 3,000 spend in April 2024 at the default rate:
        baseProfit 2,000, commission 200, no Ringba, and the full 59,217
        overhead charged to the month.
        """
        records = [
            record_factory(date(2024, 4, 1), network='ACA Network', spend=1500, revenue=2500),
            record_factory(date(2024, 4, 2), network='ACA Network', spend=1500, revenue=2500),
        ]
        daily = build_daily_aggregates(aggregate_entities(records), default_commission_table)
        month = build_monthly_aggregates(daily, today=today)[0]

        assert month.baseProfit == pytest.approx(2000.0)
        assert month.mediaBuyerCommission == pytest.approx(200.0)
        assert month.ringbaExpense == 0.0
        assert month.finalProfitWithDaily == pytest.approx(2000.0 - 200.0 - 59217.0)
        assert month.roi == pytest.approx((2000.0 - 200.0 - 59217.0) / 3000.0 * 100)
        assert month.totalExpenses == pytest.approx(200.0 + 59217.0)
