"""
Pydantic models for the rollup engine's inputs and outputs.

Field names are camelCase to match the sheet/JSON contracts the dashboard and
notification layers already consume. Derived models are frozen: once a stage
produces a result, later stages treat it as immutable input.

Groups:
- Input records and lookup tables: PerformanceRecord, CommissionTable, CapTable
- Aggregation: EntityTotals, DayTotals, EntityAggregation
- Rollups: DailyAggregate, OpenMonth/ClosedMonth (MonthState), MonthlyAggregate
- Insights: EntityMetric, EntityInsight
- Advice: BreakEvenAnalysis, BudgetSuggestion, SustainableSpend
- Financial snapshot: CashAccount, CreditCard, Invoice, PayrollItem,
  FinancialResourceSnapshot, NetworkExposure
- Projection: ScheduledItem, FlowItem, ProjectionDay, CashFlowProjection
- Credit: IssuerUtilization, CreditUtilizationSummary, ResourceSummary
- Pipeline: RollupReport

All models use Pydantic v2 syntax.
"""

from datetime import date as DateType
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rollup_engine.core.config import get_settings
from rollup_engine.models.enums import (
    BreakEvenStatus,
    CardIssuer,
    Consistency,
    EntityDimension,
    FlowType,
    MonthStateKind,
    Trajectory,
    TrendDirection,
)
from rollup_engine.utils import normalize_key, parse_date, parse_money


FROZEN = ConfigDict(frozen=True)


# =============================================================================
# Input Records
# =============================================================================


class PerformanceRecord(BaseModel):
    """
    One entity-day observation after normalization.

    Produced by services.normalizer from raw sheet rows. `date` is None when
    the source date could not be parsed; such records are counted but not
    bucketed by the aggregator. Blank entity names are kept blank here and
    bucketed as "Unknown" downstream.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "date": "2024-04-02",
                "mediaBuyer": "Alex",
                "network": "ACA Network",
                "offer": "ACA Health",
                "adSpend": 400.0,
                "totalRevenue": 1000.0,
                "commentRevenue": None,
            }
        }
    )

    date: Optional[DateType] = Field(
        default=None,
        description="Calendar day of the observation"
    )
    mediaBuyer: str = Field(default='', description="Media buyer name")
    network: str = Field(default='', description="Ad/affiliate network name")
    offer: str = Field(default='', description="Offer name")
    adSpend: float = Field(default=0.0, description="Ad spend for the day")
    totalRevenue: float = Field(default=0.0, description="Attributed revenue for the day")
    commentRevenue: Optional[float] = Field(
        default=None,
        description="Revenue attributed to comment traffic, when reported"
    )


# =============================================================================
# Lookup Tables
# =============================================================================


class CommissionTable(BaseModel):
    """
    Media buyer commission rates.

    Keys are normalized (lowercased, trimmed) on construction so lookups are
    case-insensitive. Buyers absent from the table use `defaultRate`, which
    defaults to Settings.default_commission_rate.

    Example:
        >>> table = CommissionTable.from_mapping({" Alex ": 0.15})
        >>> table.rate_for("ALEX")
        0.15
        >>> table.rate_for("Jordan")
        0.1
    """
    model_config = FROZEN

    rates: Dict[str, float] = Field(
        default_factory=dict,
        description="Normalized buyer name -> commission rate in [0, 1]"
    )
    defaultRate: float = Field(
        default_factory=lambda: get_settings().default_commission_rate,
        ge=0.0,
        le=1.0,
        description="Rate applied when a buyer has no rule (Settings.default_commission_rate)"
    )

    @field_validator('rates', mode='before')
    @classmethod
    def normalize_rates(cls, value: Any) -> Dict[str, float]:
        if value is None:
            return {}
        normalized: Dict[str, float] = {}
        for buyer, rate in dict(value).items():
            rate = float(rate)
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f"Commission rate for {buyer!r} must be within [0, 1], got {rate}")
            normalized[normalize_key(buyer)] = rate
        return normalized

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, float],
        default_rate: Optional[float] = None
    ) -> 'CommissionTable':
        """Build a table from a plain {buyer: rate} mapping."""
        if default_rate is None:
            return cls(rates=mapping)
        return cls(rates=mapping, defaultRate=default_rate)

    def rate_for(self, media_buyer: Optional[str]) -> float:
        """Commission rate for a buyer, falling back to the default rate."""
        return self.rates.get(normalize_key(media_buyer), self.defaultRate)


class CapTable(BaseModel):
    """
    Daily spend caps per network + offer.

    Cap values are stored raw because the configuration sheet mixes numbers
    ("$5,000", 2500) with non-numeric markers ("Uncapped", "N/A", "TBC").
    services.budget.parse_cap decides whether a value clamps.
    """
    model_config = FROZEN

    caps: Dict[str, Any] = Field(
        default_factory=dict,
        description="'network|offer' (normalized) -> raw cap value"
    )

    @staticmethod
    def make_key(network: Optional[str], offer: Optional[str]) -> str:
        return f"{normalize_key(network)}|{normalize_key(offer)}"

    @classmethod
    def from_mapping(cls, mapping: Mapping[Tuple[str, str], Any]) -> 'CapTable':
        """Build a table from {(network, offer): cap}."""
        return cls(caps={cls.make_key(network, offer): cap for (network, offer), cap in mapping.items()})

    @classmethod
    def from_rows(cls, rows: List[Mapping[str, Any]]) -> 'CapTable':
        """Build a table from caps-sheet rows with network/offer/dailyCap keys."""
        return cls(caps={
            cls.make_key(row.get('network'), row.get('offer')): row.get('dailyCap')
            for row in rows
        })

    def raw_cap(self, network: Optional[str], offer: Optional[str]) -> Any:
        """Raw configured cap, or None when the pair has no entry."""
        return self.caps.get(self.make_key(network, offer))


# =============================================================================
# Aggregation
# =============================================================================


class EntityTotals(BaseModel):
    """Summed revenue and spend for one entity on one day."""
    model_config = FROZEN

    revenue: float = 0.0
    spend: float = 0.0

    @property
    def profit(self) -> float:
        return self.revenue - self.spend


class DayTotals(BaseModel):
    """Summed totals across all records for one day."""
    model_config = FROZEN

    totalRevenue: float = 0.0
    totalAdSpend: float = 0.0
    acaRevenue: float = Field(
        default=0.0,
        description="Revenue from networks matching the ACA marker"
    )


class EntityAggregation(BaseModel):
    """
    Output of the entity aggregator.

    Blank entity names appear under the literal key "Unknown" so attribution
    gaps stay visible to callers.
    """
    model_config = FROZEN

    byMediaBuyer: Dict[DateType, Dict[str, EntityTotals]] = Field(default_factory=dict)
    byNetwork: Dict[DateType, Dict[str, EntityTotals]] = Field(default_factory=dict)
    byOffer: Dict[DateType, Dict[str, EntityTotals]] = Field(default_factory=dict)
    daily: Dict[DateType, DayTotals] = Field(default_factory=dict)
    skippedRecords: int = Field(
        default=0,
        ge=0,
        description="Records dropped because their date could not be parsed"
    )

    def dimension(self, dimension: EntityDimension) -> Dict[DateType, Dict[str, EntityTotals]]:
        """Per-day entity map for one dimension."""
        if dimension == EntityDimension.MEDIA_BUYER:
            return self.byMediaBuyer
        if dimension == EntityDimension.NETWORK:
            return self.byNetwork
        return self.byOffer


# =============================================================================
# Rollups
# =============================================================================


class DailyAggregate(BaseModel):
    """
    Fully loaded profit for one day.

    `finalProfit` excludes the fixed overhead in `dailyExpenses`; that
    overhead is only charged when days roll into a MonthlyAggregate.
    """
    model_config = FROZEN

    date: DateType
    totalRevenue: float = 0.0
    totalAdSpend: float = 0.0
    acaRevenue: float = 0.0
    baseProfit: float = Field(default=0.0, description="totalRevenue - totalAdSpend")
    mediaBuyerCommission: float = Field(default=0.0, ge=0.0)
    ringbaExpense: float = Field(default=0.0, ge=0.0)
    dailyExpenses: float = Field(default=0.0, ge=0.0)
    finalProfit: float = Field(
        default=0.0,
        description="baseProfit - mediaBuyerCommission - ringbaExpense"
    )
    roi: float = Field(default=0.0, description="finalProfit / totalAdSpend * 100")


class OpenMonth(BaseModel):
    """The month still in progress; overhead is spread over days seen so far."""
    model_config = FROZEN

    kind: Literal[MonthStateKind.OPEN] = MonthStateKind.OPEN
    daysObserved: int = Field(..., ge=1)


class ClosedMonth(BaseModel):
    """A finished month; overhead is spread over the assumed working days."""
    model_config = FROZEN

    kind: Literal[MonthStateKind.CLOSED] = MonthStateKind.CLOSED


MonthState = Annotated[Union[OpenMonth, ClosedMonth], Field(discriminator='kind')]


class MonthlyAggregate(BaseModel):
    """
    One calendar month of DailyAggregates plus fixed overhead.

    Invariant: finalProfitWithDaily == finalProfitWithoutDaily - dailyExpenses.
    """
    model_config = FROZEN

    year: int
    month: int = Field(..., ge=1, le=12)
    state: MonthState
    monthStart: DateType
    monthEnd: DateType
    totalRevenue: float = 0.0
    totalAdSpend: float = 0.0
    acaRevenue: float = 0.0
    baseProfit: float = 0.0
    mediaBuyerCommission: float = 0.0
    ringbaExpense: float = 0.0
    dailyExpenses: float = Field(default=0.0, description="Fixed overhead charged to the month")
    dailyExpenseAllocation: float = Field(
        default=0.0,
        description="Per-day share of the fixed overhead"
    )
    finalProfitWithoutDaily: float = 0.0
    finalProfitWithDaily: float = 0.0
    roi: float = 0.0
    days: List[DailyAggregate] = Field(default_factory=list)

    @property
    def totalExpenses(self) -> float:
        """Commission plus fixed overhead: the month's break-even point."""
        return self.mediaBuyerCommission + self.dailyExpenses


# =============================================================================
# Insights
# =============================================================================


class EntityMetric(BaseModel):
    """Revenue/spend/profit for one entity within one period."""
    model_config = FROZEN

    name: str
    revenue: float = 0.0
    spend: float = 0.0
    profit: float = 0.0
    margin: float = Field(default=0.0, description="profit / revenue * 100")
    roi: float = Field(default=0.0, description="profit / spend * 100")

    @property
    def isActive(self) -> bool:
        return self.spend > 0


class EntityInsight(BaseModel):
    """
    Classified performance of one active entity.

    `status` is the natural-language verdict from the profitability x trend
    decision table and is safe to drop straight into a notification.
    """
    model_config = FROZEN

    id: str
    dimension: EntityDimension
    name: str
    revenue: float = 0.0
    spend: float = 0.0
    profit: float = 0.0
    previousProfit: Optional[float] = None
    margin: float = 0.0
    roi: float = 0.0
    trend: TrendDirection = TrendDirection.NEUTRAL
    consistency: Consistency = Consistency.INSUFFICIENT_DATA
    status: str = ''
    hasData: bool = True
    scalingPotential: bool = False


# =============================================================================
# Advice
# =============================================================================


class BreakEvenAnalysis(BaseModel):
    """Month-to-date break-even state and projection."""
    model_config = FROZEN

    currentProfit: float
    breakEvenPoint: float
    progressToBreakEven: Optional[float] = Field(
        default=None,
        description="Percent of the break-even point covered; None when there are no expenses"
    )
    latestBaseProfit: float = 0.0
    status: BreakEvenStatus
    statusText: str
    trend: TrendDirection = TrendDirection.NEUTRAL
    projectedBreakEvenDate: Optional[DateType] = None
    daysToBreakEven: Optional[int] = None
    projectedMonthEndProfit: Optional[float] = Field(
        default=None,
        description="Current profit extrapolated at the month-to-date daily rate"
    )


class BudgetSuggestion(BaseModel):
    """Suggested next-day budget for one entity."""
    model_config = FROZEN

    entity: str
    network: Optional[str] = None
    offer: Optional[str] = None
    lastDaySpend: float = 0.0
    roi: float = 0.0
    trajectory: Trajectory = Trajectory.STABLE
    multiplier: float = 1.0
    suggestedBudget: float = 0.0
    cap: Optional[float] = None
    capped: bool = False


class SustainableSpend(BaseModel):
    """Largest daily spend for one buyer that keeps total spend within coverage."""
    model_config = FROZEN

    mediaBuyer: str
    currentSpend: float = 0.0
    maxDailySpend: float = 0.0


# =============================================================================
# Financial Snapshot
# =============================================================================


class _DueDated(BaseModel):
    """
    Base for anything carrying a due date in one of the sheet dialects.

    `dueDate` is normalized to a date on construction. When a non-empty value
    cannot be parsed, the original text is kept in `rawDueDate` so the
    projector can report the item instead of silently dropping it.
    """
    model_config = FROZEN

    dueDate: Optional[DateType] = None
    rawDueDate: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def normalize_due_date(cls, data: Any) -> Any:
        if not isinstance(data, dict) or 'dueDate' not in data:
            return data
        data = dict(data)
        raw = data['dueDate']
        data['dueDate'] = parse_date(raw)
        if data['dueDate'] is None and raw not in (None, ''):
            data.setdefault('rawDueDate', str(raw))
        return data

    @property
    def isScheduled(self) -> bool:
        return self.dueDate is not None


class CashAccount(BaseModel):
    """Bank or savings account balance."""
    model_config = FROZEN

    name: str
    available: float = 0.0

    @field_validator('available', mode='before')
    @classmethod
    def parse_available(cls, value: Any) -> float:
        return parse_money(value)


class CreditCard(_DueDated):
    """Credit line balance; `issuer` is derived from the name when omitted."""

    name: str
    available: float = 0.0
    owing: float = 0.0
    limit: float = 0.0
    issuer: Optional[CardIssuer] = None

    @field_validator('available', 'owing', 'limit', mode='before')
    @classmethod
    def parse_amounts(cls, value: Any) -> float:
        return parse_money(value)


class Invoice(_DueDated):
    """Amount a network owes the business."""

    network: str
    amount: float = 0.0

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, value: Any) -> float:
        return parse_money(value)


class PayrollItem(_DueDated):
    """Scheduled payroll payment."""

    description: str
    amount: float = 0.0

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, value: Any) -> float:
        return parse_money(value)


class FinancialResourceSnapshot(BaseModel):
    """
    Point-in-time external financial state, supplied whole per invocation.
    """
    model_config = FROZEN

    cashAccounts: List[CashAccount] = Field(default_factory=list)
    creditCards: List[CreditCard] = Field(default_factory=list)
    invoices: List[Invoice] = Field(default_factory=list)
    payroll: List[PayrollItem] = Field(default_factory=list)


class NetworkExposure(BaseModel):
    """
    Amount owed by a network for a billing period, pending its payment terms.
    """
    model_config = FROZEN

    network: str
    offer: str = ''
    amount: float = 0.0
    paymentTerms: str = 'Net 30'
    periodEnd: Optional[DateType] = None

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, value: Any) -> float:
        return parse_money(value)

    @field_validator('periodEnd', mode='before')
    @classmethod
    def parse_period_end(cls, value: Any) -> Optional[DateType]:
        return parse_date(value)


# =============================================================================
# Projection
# =============================================================================


class ScheduledItem(_DueDated):
    """A dated cash movement feeding the projection."""

    description: str
    amount: float = 0.0
    flowType: FlowType

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, value: Any) -> float:
        return parse_money(value)


class FlowItem(BaseModel):
    """A cash movement placed on a specific projection day."""
    model_config = FROZEN

    flowType: FlowType
    description: str
    amount: float


class ProjectionDay(BaseModel):
    """
    One day of the cash-flow projection.

    balance == previous balance + totalInflows - totalOutflows.
    """
    model_config = FROZEN

    date: DateType
    inflows: List[FlowItem] = Field(default_factory=list)
    outflows: List[FlowItem] = Field(default_factory=list)
    totalInflows: float = 0.0
    totalOutflows: float = 0.0
    balance: float = 0.0
    hasScheduledItems: bool = Field(
        default=False,
        description="False when the day only carries the recurring outflow"
    )


class CashFlowProjection(BaseModel):
    """Fixed-horizon daily projection with running balance."""
    model_config = FROZEN

    startingBalance: float
    horizonDays: int = Field(..., ge=0)
    recurringDailyOutflow: float = 0.0
    days: List[ProjectionDay] = Field(default_factory=list)
    totalInflows: float = 0.0
    totalOutflows: float = 0.0
    endingBalance: float = 0.0
    lowestBalance: float = 0.0
    lowestBalanceDate: Optional[DateType] = None
    unscheduledItems: List[ScheduledItem] = Field(
        default_factory=list,
        description="Items whose due date could not be normalized"
    )


# =============================================================================
# Credit & Resources
# =============================================================================


class IssuerUtilization(BaseModel):
    """Summed credit lines for one issuer."""
    model_config = FROZEN

    issuer: CardIssuer
    cardCount: int = 0
    available: float = 0.0
    owing: float = 0.0
    limit: float = 0.0
    utilization: Optional[float] = Field(
        default=None,
        description="owing / limit * 100; None when limit is 0"
    )


class CreditUtilizationSummary(BaseModel):
    """Per-issuer and overall credit utilization."""
    model_config = FROZEN

    issuers: List[IssuerUtilization] = Field(default_factory=list)
    totalAvailable: float = 0.0
    totalOwing: float = 0.0
    totalLimit: float = 0.0
    overallUtilization: Optional[float] = None


class ResourceSummary(BaseModel):
    """Cash versus credit availability."""
    model_config = FROZEN

    availableCash: float = 0.0
    creditAvailable: float = 0.0
    totalAvailable: float = 0.0


# =============================================================================
# Pipeline
# =============================================================================


class RollupReport(BaseModel):
    """Everything one pipeline run produces, ready for rendering or dispatch."""
    model_config = FROZEN

    asOf: DateType
    periodStart: DateType
    periodEnd: DateType
    skippedRecords: int = 0
    daily: List[DailyAggregate] = Field(default_factory=list)
    monthly: List[MonthlyAggregate] = Field(default_factory=list)
    insights: List[EntityInsight] = Field(default_factory=list)
    breakEven: Optional[BreakEvenAnalysis] = None
    budgets: List[BudgetSuggestion] = Field(default_factory=list)
    sustainableSpend: List[SustainableSpend] = Field(default_factory=list)
    resources: ResourceSummary = Field(default_factory=ResourceSummary)
    creditUtilization: CreditUtilizationSummary = Field(default_factory=CreditUtilizationSummary)
    projection: Optional[CashFlowProjection] = None
