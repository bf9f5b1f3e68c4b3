"""
Enumeration definitions for the rollup engine.

All enums inherit from both `str` and `Enum` so they serialize as plain
strings inside Pydantic models and can be embedded directly in notification
payloads without further conversion.

Groups:
- Entity dimensions: EntityDimension
- Trend analysis: TrendDirection, Consistency, Trajectory
- Break-even advice: BreakEvenStatus
- Cash flow: FlowType, FlowDirection, MonthStateKind
- Credit: CardIssuer
"""

from enum import Enum


class EntityDimension(str, Enum):
    """
    Dimensions performance records are grouped by.

    - media_buyer: individual/account responsible for spend
    - network: ad/affiliate network paying out revenue
    - offer: monetized campaign under a network
    """
    MEDIA_BUYER = "media_buyer"
    NETWORK = "network"
    OFFER = "offer"


class TrendDirection(str, Enum):
    """
    Period-over-period profit direction.

    Change is (current - previous) / |previous| * 100:
    - strong_up: > 20%
    - up: > 5% and <= 20%
    - stable: within +/-5%
    - down: < -5% and >= -20%
    - strong_down: < -20%
    - neutral: no previous period to compare against
    """
    STRONG_UP = "strong_up"
    UP = "up"
    STABLE = "stable"
    DOWN = "down"
    STRONG_DOWN = "strong_down"
    NEUTRAL = "neutral"


class Consistency(str, Enum):
    """
    Variability of a small value sample, from its coefficient of variation.

    - very_stable: CV < 20%
    - stable: CV < 40%
    - moderate: CV < 60%
    - inconsistent: CV >= 60%
    - insufficient_data: fewer than two samples
    """
    VERY_STABLE = "very_stable"
    STABLE = "stable"
    MODERATE = "moderate"
    INCONSISTENT = "inconsistent"
    INSUFFICIENT_DATA = "insufficient_data"


class Trajectory(str, Enum):
    """
    Coarse performance trajectory used by the budget advisor.

    Derived from TrendDirection and Consistency:
    - improving: trending up
    - stable: flat or no prior data
    - declining: trending down
    - volatile: swings too large to read a direction from
    """
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
    VOLATILE = "volatile"


class BreakEvenStatus(str, Enum):
    """
    Month-to-date break-even state.

    Already profitable (month profit after all expenses >= 0):
    - profitable_up / profitable_stable / profitable_down

    Month still negative, but the latest day was profitable:
    - on_track_profitable_month: progress >= 90%
    - on_track_break_even: progress >= 50%
    - working_to_break_even: progress < 50%

    Month negative and the latest day lost money:
    - loss: status text carries the trend wording
    """
    PROFITABLE_UP = "profitable_up"
    PROFITABLE_STABLE = "profitable_stable"
    PROFITABLE_DOWN = "profitable_down"
    ON_TRACK_PROFITABLE_MONTH = "on_track_profitable_month"
    ON_TRACK_BREAK_EVEN = "on_track_break_even"
    WORKING_TO_BREAK_EVEN = "working_to_break_even"
    LOSS = "loss"


class FlowDirection(str, Enum):
    """Whether a cash movement adds to or draws from the balance."""
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class FlowType(str, Enum):
    """
    Typed cash movements in the projection.

    - receivable: network invoice expected to be paid (inflow)
    - credit_card_payment: card statement payment (outflow)
    - payroll: contractor/employee payroll (outflow)
    - media_spend: recurring expected daily ad spend (outflow)
    """
    RECEIVABLE = "receivable"
    CREDIT_CARD_PAYMENT = "credit_card_payment"
    PAYROLL = "payroll"
    MEDIA_SPEND = "media_spend"

    @property
    def direction(self) -> FlowDirection:
        if self == FlowType.RECEIVABLE:
            return FlowDirection.INFLOW
        return FlowDirection.OUTFLOW


class MonthStateKind(str, Enum):
    """
    Tag for MonthState.

    - open: the current calendar month, still accumulating data-days
    - closed: any past month
    """
    OPEN = "open"
    CLOSED = "closed"


class CardIssuer(str, Enum):
    """Credit card issuers the utilization view groups by."""
    AMEX = "AMEX"
    CHASE = "Chase"
    CAPITAL_ONE = "Capital One"
    OTHER = "Other"
