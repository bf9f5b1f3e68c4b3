"""
Credit utilization and financial resource summaries.

Issuer Grouping (case-insensitive substring of the card name, unless the card
names its issuer explicitly):
- "amex" / "american express" -> AMEX
- "chase" -> Chase
- "capital one" -> Capital One
- anything else -> Other

Utilization = owing / limit * 100, and None when the limit is 0 so a card with
no line never reports a fake 0% or a division error.
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from rollup_engine.core.config import get_settings
from rollup_engine.models.enums import CardIssuer
from rollup_engine.models.schemas import (
    CashAccount,
    CreditCard,
    CreditUtilizationSummary,
    FinancialResourceSnapshot,
    IssuerUtilization,
    ResourceSummary,
)
from rollup_engine.utils import normalize_key, parse_money

logger = logging.getLogger(__name__)

ISSUER_MARKERS = (
    (CardIssuer.AMEX, ('amex', 'american express')),
    (CardIssuer.CHASE, ('chase',)),
    (CardIssuer.CAPITAL_ONE, ('capital one', 'capitalone')),
)


def classify_issuer(card: CreditCard) -> CardIssuer:
    """Issuer for a card: explicit field first, then name substring."""
    if card.issuer is not None:
        return card.issuer
    name = normalize_key(card.name)
    for issuer, markers in ISSUER_MARKERS:
        if any(marker in name for marker in markers):
            return issuer
    return CardIssuer.OTHER


def utilization(owing: float, limit: float) -> Optional[float]:
    """owing / limit * 100, or None for a zero limit."""
    if not limit:
        return None
    return owing / limit * 100


def summarize_credit_utilization(cards: Iterable[CreditCard]) -> CreditUtilizationSummary:
    """
    Per-issuer and overall utilization.

    Issuers appear in AMEX, Chase, Capital One, Other order and only when at
    least one card belongs to them.
    """
    sums: Dict[CardIssuer, Dict[str, float]] = OrderedDict(
        (issuer, {'count': 0, 'available': 0.0, 'owing': 0.0, 'limit': 0.0})
        for issuer in CardIssuer
    )
    for card in cards:
        entry = sums[classify_issuer(card)]
        entry['count'] += 1
        entry['available'] += card.available
        entry['owing'] += card.owing
        entry['limit'] += card.limit

    issuers = [
        IssuerUtilization(
            issuer=issuer,
            cardCount=int(entry['count']),
            available=entry['available'],
            owing=entry['owing'],
            limit=entry['limit'],
            utilization=utilization(entry['owing'], entry['limit']),
        )
        for issuer, entry in sums.items()
        if entry['count']
    ]

    total_available = sum(item.available for item in issuers)
    total_owing = sum(item.owing for item in issuers)
    total_limit = sum(item.limit for item in issuers)
    return CreditUtilizationSummary(
        issuers=issuers,
        totalAvailable=total_available,
        totalOwing=total_owing,
        totalLimit=total_limit,
        overallUtilization=utilization(total_owing, total_limit),
    )


def summarize_resources(snapshot: FinancialResourceSnapshot) -> ResourceSummary:
    """Cash on hand versus available credit."""
    cash = sum(account.available for account in snapshot.cashAccounts)
    credit = sum(card.available for card in snapshot.creditCards)
    return ResourceSummary(
        availableCash=cash,
        creditAvailable=credit,
        totalAvailable=cash + credit,
    )


# =============================================================================
# Resource Sheet Rows
# =============================================================================


def is_cash_account(name: str, cash_account_names: Optional[Sequence[str]] = None) -> bool:
    """
    Whether a resource row is one of the configured cash accounts.

    Matching is on the whole name (case-insensitive, trimmed). Card names such
    as "Chase Ink Cash" stay credit lines.
    """
    if cash_account_names is None:
        cash_account_names = get_settings().cash_account_names
    return normalize_key(name) in {normalize_key(known) for known in cash_account_names}


def snapshot_from_resource_rows(
    rows: Iterable[Mapping[str, Any]],
    invoices: Iterable[Any] = (),
    payroll: Iterable[Any] = (),
    cash_account_names: Optional[Sequence[str]] = None
) -> FinancialResourceSnapshot:
    """
    Build a snapshot from financial-resources sheet rows.

    Rows carry "Account Name"/"name", "Available", "Owing", "Limit" and an
    optional "Due Date". Cash accounts become CashAccounts; everything else
    is a credit line. Header echoes and blank names are skipped.
    """
    cash_accounts: List[CashAccount] = []
    cards: List[CreditCard] = []

    for row in rows:
        name = str(row.get('Account Name') or row.get('name') or '').strip()
        if not name or name == 'Account Name':
            continue
        available = parse_money(row.get('Available', row.get('available')))
        if is_cash_account(name, cash_account_names):
            cash_accounts.append(CashAccount(name=name, available=available))
            continue
        cards.append(CreditCard(
            name=name,
            available=available,
            owing=parse_money(row.get('Owing', row.get('owing'))),
            limit=parse_money(row.get('Limit', row.get('limit'))),
            dueDate=row.get('Due Date', row.get('dueDate')),
        ))

    logger.info(f"Loaded {len(cash_accounts)} cash accounts and {len(cards)} credit lines")
    return FinancialResourceSnapshot(
        cashAccounts=cash_accounts,
        creditCards=cards,
        invoices=list(invoices),
        payroll=list(payroll),
    )
