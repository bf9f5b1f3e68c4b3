"""
Data models for the rollup engine.

- enums: str-valued enumerations shared by every stage
- schemas: Pydantic models for records, aggregates, insights and projections
"""

from rollup_engine.models.enums import (
    BreakEvenStatus,
    CardIssuer,
    Consistency,
    EntityDimension,
    FlowDirection,
    FlowType,
    MonthStateKind,
    Trajectory,
    TrendDirection,
)
from rollup_engine.models.schemas import (
    BreakEvenAnalysis,
    BudgetSuggestion,
    CapTable,
    CashAccount,
    CashFlowProjection,
    ClosedMonth,
    CommissionTable,
    CreditCard,
    CreditUtilizationSummary,
    DailyAggregate,
    DayTotals,
    EntityAggregation,
    EntityInsight,
    EntityMetric,
    EntityTotals,
    FinancialResourceSnapshot,
    FlowItem,
    Invoice,
    IssuerUtilization,
    MonthlyAggregate,
    MonthState,
    NetworkExposure,
    OpenMonth,
    PayrollItem,
    PerformanceRecord,
    ProjectionDay,
    ResourceSummary,
    RollupReport,
    ScheduledItem,
    SustainableSpend,
)

__all__ = [
    # Enums
    'BreakEvenStatus',
    'CardIssuer',
    'Consistency',
    'EntityDimension',
    'FlowDirection',
    'FlowType',
    'MonthStateKind',
    'Trajectory',
    'TrendDirection',
    # Input records and tables
    'PerformanceRecord',
    'CommissionTable',
    'CapTable',
    # Aggregation
    'EntityTotals',
    'DayTotals',
    'EntityAggregation',
    # Rollups
    'DailyAggregate',
    'OpenMonth',
    'ClosedMonth',
    'MonthState',
    'MonthlyAggregate',
    # Insights
    'EntityMetric',
    'EntityInsight',
    # Advice
    'BreakEvenAnalysis',
    'BudgetSuggestion',
    'SustainableSpend',
    # Snapshot
    'CashAccount',
    'CreditCard',
    'Invoice',
    'PayrollItem',
    'FinancialResourceSnapshot',
    'NetworkExposure',
    # Projection
    'ScheduledItem',
    'FlowItem',
    'ProjectionDay',
    'CashFlowProjection',
    # Credit
    'IssuerUtilization',
    'CreditUtilizationSummary',
    'ResourceSummary',
    # Pipeline
    'RollupReport',
]
