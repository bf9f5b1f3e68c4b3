"""
Budget Advisor

Suggests next-day budgets per entity and the largest daily spend each media
buyer can run while total spend stays covered by available funds.

Budget Multiplier (first match wins):
- ROI > 100% and improving: 1.5
- ROI > 50% and stable: 1.25
- ROI < 0% or declining: 0.5
- volatile: 0.75
- otherwise: 1.0

suggestedBudget = round_half_up(lastDaySpend * multiplier, 100), then clamped
to the network/offer daily cap when the cap is numeric. Caps such as
"Uncapped", "N/A" or "TBC" never clamp.

Sustainable Spend:
    maxDailySpend = max(0, funds / 14 - spend of every other buyer), rounded to 100
"""

import logging
import math
from typing import Any, List, Mapping, Optional

from rollup_engine.core.config import get_settings
from rollup_engine.models.enums import Trajectory
from rollup_engine.models.schemas import BudgetSuggestion, CapTable, SustainableSpend
from rollup_engine.utils import parse_money, round_half_up

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS - Multiplier table
# =============================================================================

SCALE_UP_MULTIPLIER = 1.5
GROW_MULTIPLIER = 1.25
CUT_MULTIPLIER = 0.5
VOLATILE_MULTIPLIER = 0.75
HOLD_MULTIPLIER = 1.0

SCALE_UP_ROI = 100.0
GROW_ROI = 50.0

# Cap cells that mean "no numeric cap"
NON_NUMERIC_CAPS = frozenset({'', 'uncapped', 'n/a', 'na', 'tbc', 'tbd', 'none', 'no cap', 'unlimited'})


# =============================================================================
# Caps & Rounding
# =============================================================================


def parse_cap(value: Any) -> Optional[float]:
    """
    Numeric daily cap, or None when the cell does not restrict spend.

    Example:
        >>> parse_cap("$5,000")
        5000.0
        >>> parse_cap("Uncapped") is None
        True
        >>> parse_cap(0) is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().lower() in NON_NUMERIC_CAPS:
        return None

    cap = parse_money(value)
    if cap <= 0:
        if isinstance(value, str):
            logger.debug(f"Treating cap {value!r} as uncapped")
        return None
    return cap


def round_to_increment(value: float, increment: Optional[int] = None) -> float:
    """Round half-up to the budget increment (default 100)."""
    if increment is None:
        increment = get_settings().budget_rounding_increment
    return float(round_half_up(value, increment))


def budget_multiplier(roi: float, trajectory: Trajectory) -> float:
    """Spend multiplier from ROI and trajectory; first matching rule wins."""
    if roi > SCALE_UP_ROI and trajectory == Trajectory.IMPROVING:
        return SCALE_UP_MULTIPLIER
    if roi > GROW_ROI and trajectory == Trajectory.STABLE:
        return GROW_MULTIPLIER
    if roi < 0 or trajectory == Trajectory.DECLINING:
        return CUT_MULTIPLIER
    if trajectory == Trajectory.VOLATILE:
        return VOLATILE_MULTIPLIER
    return HOLD_MULTIPLIER


# =============================================================================
# Suggestions
# =============================================================================


def suggest_daily_budget(
    entity: str,
    last_day_spend: float,
    roi: float,
    trajectory: Trajectory,
    network: Optional[str] = None,
    offer: Optional[str] = None,
    caps: Optional[CapTable] = None
) -> BudgetSuggestion:
    """
    Suggested next-day budget for one entity.

    Args:
        entity: Entity the suggestion is for (buyer, offer or network name).
        last_day_spend: Spend on the most recent day.
        roi: Period ROI in percent.
        trajectory: Output of trends.derive_trajectory.
        network: Network used for the cap lookup.
        offer: Offer used for the cap lookup.
        caps: Daily caps by network + offer. No table means no clamp.

    Example:
        >>> caps = CapTable.from_mapping({("ACA Net", "Health"): 1000})
        >>> suggest_daily_budget("Health", 1000, 150, Trajectory.IMPROVING,
        ...                      "ACA Net", "Health", caps).suggestedBudget
        1000.0
    """
    multiplier = budget_multiplier(roi, trajectory)
    suggested = round_to_increment(last_day_spend * multiplier)

    cap = None
    if caps is not None:
        cap = parse_cap(caps.raw_cap(network, offer))

    capped = cap is not None and suggested > cap
    if capped:
        suggested = cap

    return BudgetSuggestion(
        entity=entity,
        network=network,
        offer=offer,
        lastDaySpend=last_day_spend,
        roi=roi,
        trajectory=trajectory,
        multiplier=multiplier,
        suggestedBudget=suggested,
        cap=cap,
        capped=capped,
    )


def max_sustainable_spend(
    current_spend_by_buyer: Mapping[str, float],
    total_available_funds: float,
    coverage_days: Optional[int] = None
) -> List[SustainableSpend]:
    """
    Largest daily spend per buyer keeping total spend within coverage.

    Each buyer's ceiling assumes every other buyer keeps their current spend.

    Args:
        current_spend_by_buyer: Buyer -> current daily spend.
        total_available_funds: Cash plus available credit.
        coverage_days: Days of spend the funds must cover. Defaults to
            Settings.spend_coverage_days (14).
    """
    if coverage_days is None:
        coverage_days = get_settings().spend_coverage_days

    daily_budget = total_available_funds / coverage_days if coverage_days > 0 else 0.0
    total_spend = sum(current_spend_by_buyer.values())

    results: List[SustainableSpend] = []
    for buyer, spend in current_spend_by_buyer.items():
        others = total_spend - spend
        ceiling = max(0.0, daily_budget - others)
        results.append(SustainableSpend(
            mediaBuyer=buyer,
            currentSpend=spend,
            maxDailySpend=round_to_increment(ceiling),
        ))
    return results


def days_of_coverage(total_available_funds: float, total_daily_spend: float) -> int:
    """Whole days the available funds cover at the current total daily spend."""
    if total_daily_spend <= 0:
        return 0
    return max(0, math.floor(total_available_funds / total_daily_spend))
