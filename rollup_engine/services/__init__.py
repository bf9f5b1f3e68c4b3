"""
Rollup Engine Services

Stateless business logic, one module per stage. Each function takes its
inputs (records, lookup tables, reference dates) explicitly and returns new
frozen models.

Services:
- normalizer: raw rows / DataFrames -> PerformanceRecords
- aggregator: per-day, per-entity revenue and spend
- commission: daily and monthly commission-adjusted profit
- trends: trend, consistency and natural-language insights
- break_even: month-to-date break-even status and projection
- budget: capped budget suggestions and sustainable spend
- receivables: network exposure -> expected receivables
- cash_flow: daily running-balance projection
- credit: credit utilization and resource summaries
- pipeline: all of the above in one call
"""

# =============================================================================
# Record Normalizer
# =============================================================================

from rollup_engine.services.normalizer import (
    parse_date,
    parse_money,
    normalize_record,
    normalize_records,
    normalize_frame,
)

# =============================================================================
# Entity Aggregator
# =============================================================================

from rollup_engine.services.aggregator import (
    aggregate_entities,
    filter_by_date_range,
    build_entity_metrics,
    previous_period,
    UNKNOWN_ENTITY,
)

# =============================================================================
# Commission & Expense Calculator
# =============================================================================

from rollup_engine.services.commission import (
    calculate_buyer_commission,
    calculate_ringba_expense,
    build_daily_aggregates,
    resolve_month_state,
    allocate_fixed_expenses,
    build_monthly_aggregates,
    RINGBA_RATE,
    RINGBA_CUTOVER,
)

# =============================================================================
# Trend & Consistency Classifier
# =============================================================================

from rollup_engine.services.trends import (
    classify_trend,
    classify_consistency,
    describe_status,
    derive_trajectory,
    generate_entity_insights,
    generate_insights,
    insight_text,
    month_over_month_trend,
    monthly_trend_label,
    percent_change,
)

# =============================================================================
# Break-Even & Budget Advisor
# =============================================================================

from rollup_engine.services.break_even import (
    analyze_break_even,
    analyze_month,
    progress_to_break_even,
    project_break_even_date,
    project_month_end_profit,
)
from rollup_engine.services.budget import (
    parse_cap,
    budget_multiplier,
    round_to_increment,
    suggest_daily_budget,
    max_sustainable_spend,
    days_of_coverage,
)

# =============================================================================
# Cash Flow, Credit & Receivables
# =============================================================================

from rollup_engine.services.receivables import (
    parse_net_terms,
    terms_label,
    consolidate_exposures,
    group_by_terms,
    exposure_to_receivables,
)
from rollup_engine.services.cash_flow import (
    trailing_average_spend,
    schedule_from_snapshot,
    project_cash_flow,
)
from rollup_engine.services.credit import (
    classify_issuer,
    summarize_credit_utilization,
    summarize_resources,
    snapshot_from_resource_rows,
)

# =============================================================================
# Pipeline
# =============================================================================

from rollup_engine.services.pipeline import run_rollup, suggest_pair_budgets


__all__ = [
    # Normalizer
    'parse_date',
    'parse_money',
    'normalize_record',
    'normalize_records',
    'normalize_frame',
    # Aggregator
    'aggregate_entities',
    'filter_by_date_range',
    'build_entity_metrics',
    'previous_period',
    'UNKNOWN_ENTITY',
    # Commission
    'calculate_buyer_commission',
    'calculate_ringba_expense',
    'build_daily_aggregates',
    'resolve_month_state',
    'allocate_fixed_expenses',
    'build_monthly_aggregates',
    'RINGBA_RATE',
    'RINGBA_CUTOVER',
    # Trends
    'classify_trend',
    'classify_consistency',
    'describe_status',
    'derive_trajectory',
    'generate_entity_insights',
    'generate_insights',
    'insight_text',
    'month_over_month_trend',
    'monthly_trend_label',
    'percent_change',
    # Break-even
    'analyze_break_even',
    'analyze_month',
    'progress_to_break_even',
    'project_break_even_date',
    'project_month_end_profit',
    # Budget
    'parse_cap',
    'budget_multiplier',
    'round_to_increment',
    'suggest_daily_budget',
    'max_sustainable_spend',
    'days_of_coverage',
    # Receivables
    'parse_net_terms',
    'terms_label',
    'consolidate_exposures',
    'group_by_terms',
    'exposure_to_receivables',
    # Cash flow
    'trailing_average_spend',
    'schedule_from_snapshot',
    'project_cash_flow',
    # Credit
    'classify_issuer',
    'summarize_credit_utilization',
    'summarize_resources',
    'snapshot_from_resource_rows',
    # Pipeline
    'run_rollup',
    'suggest_pair_budgets',
]
