"""
Network receivables.

Converts per-network exposure (what a network owes for a billing period) into
dated receivable inflows for the cash-flow projector.

Payment Terms:
- contains "weekly": 7 days, label "Weekly"
- contains "bi-monthly" / "bi monthly": 60 days, label "Bi-Monthly"
- contains "monthly": 30 days, label "Monthly"
- "Net N": N days, label "Net N"
- anything else: 30 days, label "Net 30"

Expected payment date = period end + net terms. Exposures without a period
end are assumed to bill at the end of the current month.
"""

import calendar
import logging
import re
from collections import OrderedDict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from rollup_engine.models.enums import FlowType
from rollup_engine.models.schemas import NetworkExposure, ScheduledItem

logger = logging.getLogger(__name__)

DEFAULT_NET_TERMS = 30

_NET_PATTERN = re.compile(r'net\s*(\d+)', re.IGNORECASE)


def _classify_terms(text: Optional[str]) -> Tuple[int, str]:
    terms = (text or '').strip().lower()
    if 'weekly' in terms:
        return 7, 'Weekly'
    if 'bi monthly' in terms or 'bi-monthly' in terms:
        return 60, 'Bi-Monthly'
    if 'monthly' in terms:
        return 30, 'Monthly'
    match = _NET_PATTERN.search(terms)
    if match:
        days = int(match.group(1))
        return days, f"Net {days}"
    return DEFAULT_NET_TERMS, f"Net {DEFAULT_NET_TERMS}"


def parse_net_terms(text: Optional[str]) -> int:
    """
    Days until payment for a payment-terms cell.

    Example:
        >>> parse_net_terms("Net 15")
        15
        >>> parse_net_terms("Bi-Monthly")
        60
        >>> parse_net_terms("whenever")
        30
    """
    return _classify_terms(text)[0]


def terms_label(text: Optional[str]) -> str:
    """Canonical label for a payment-terms cell, e.g. "net45" -> "Net 45"."""
    return _classify_terms(text)[1]


def expected_payment_date(exposure: NetworkExposure, today: Optional[date] = None) -> date:
    """Period end (or the current month end) plus the exposure's net terms."""
    period_end = exposure.periodEnd
    if period_end is None:
        today = today or date.today()
        period_end = date(today.year, today.month, calendar.monthrange(today.year, today.month)[1])
    return period_end + timedelta(days=parse_net_terms(exposure.paymentTerms))


def consolidate_exposures(exposures: Iterable[NetworkExposure]) -> List[NetworkExposure]:
    """
    Merge exposures sharing a network name.

    Amounts are summed; terms and period end come from whichever entry
    carries the larger amount.
    """
    merged: Dict[str, NetworkExposure] = OrderedDict()
    for exposure in exposures:
        existing = merged.get(exposure.network)
        if existing is None:
            merged[exposure.network] = exposure
            continue

        dominant = exposure if exposure.amount > existing.amount else existing
        merged[exposure.network] = dominant.model_copy(update={
            'amount': existing.amount + exposure.amount,
        })
    return list(merged.values())


def group_by_terms(exposures: Iterable[NetworkExposure]) -> Dict[str, List[NetworkExposure]]:
    """Exposures keyed by canonical payment-terms label."""
    groups: Dict[str, List[NetworkExposure]] = OrderedDict()
    for exposure in exposures:
        groups.setdefault(terms_label(exposure.paymentTerms), []).append(exposure)
    return groups


def exposure_to_receivables(
    exposures: Iterable[NetworkExposure],
    today: Optional[date] = None
) -> List[ScheduledItem]:
    """
    Scheduled receivable inflows for every exposure with a positive amount.

    Args:
        exposures: Network exposures, possibly with duplicate networks.
        today: Reference date for exposures without a period end.
    """
    receivables: List[ScheduledItem] = []
    for exposure in consolidate_exposures(exposures):
        if exposure.amount <= 0:
            logger.debug(f"Skipping non-positive exposure for {exposure.network}")
            continue
        description = exposure.network if not exposure.offer else f"{exposure.network} - {exposure.offer}"
        receivables.append(ScheduledItem(
            description=description,
            amount=exposure.amount,
            dueDate=expected_payment_date(exposure, today),
            flowType=FlowType.RECEIVABLE,
        ))
    return receivables
