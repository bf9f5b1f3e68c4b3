"""
Record Normalizer

Turns loosely-typed rows from sheet exports, CSV adapters and JSON APIs into
canonical PerformanceRecord instances. Everything downstream compares dates
and amounts only after they pass through here.

Accepted Dialects:
- Dates: date, datetime, pandas Timestamp, "M/D/YYYY", "MM/DD/YYYY",
  ISO "YYYY-MM-DD" with an optional time part
- Money: numbers, "$1,234.50", "1234.5", "(250)" for negatives
- Keys: sheet headers ("Media Buyer", "Ad Spend"), camelCase ("mediaBuyer")
  and snake_case ("media_buyer")
- Network/offer: separate columns, or a combined "Network Offer" column of the
  form "<network> - <offer>"

Failure Behavior:
- A malformed field degrades to 0.0/None; the rest of the record still counts
- Only structurally invalid input (not a collection of mappings) raises
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Dict, List, Tuple

import pandas as pd

from rollup_engine.models.schemas import PerformanceRecord
from rollup_engine.utils import parse_date, parse_money

# Re-exported so callers can reach the parsers from the normalizer
__all__ = [
    'parse_date',
    'parse_money',
    'normalize_record',
    'normalize_records',
    'normalize_frame',
]

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS - Field aliases
# =============================================================================

FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    'date': ('date', 'Date', 'DATE', 'day', 'Day'),
    'mediaBuyer': ('mediaBuyer', 'Media Buyer', 'media_buyer', 'media buyer', 'MediaBuyer', 'buyer'),
    'network': ('network', 'Network', 'NETWORK'),
    'offer': ('offer', 'Offer', 'OFFER'),
    'adSpend': ('adSpend', 'Ad Spend', 'ad_spend', 'spend', 'Spend'),
    'totalRevenue': ('totalRevenue', 'Total Revenue', 'total_revenue', 'revenue', 'Revenue', 'Ad Revenue'),
    'commentRevenue': ('commentRevenue', 'Comment Revenue', 'comment_revenue'),
}

COMBINED_NETWORK_OFFER_KEYS: Tuple[str, ...] = ('networkOffer', 'Network Offer', 'Network-Offer')
NETWORK_OFFER_SEPARATOR = ' - '


# =============================================================================
# Field Extraction
# =============================================================================


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:
        return True
    return isinstance(value, str) and not value.strip()


def _lookup(raw: Mapping, field_name: str) -> Any:
    """First non-missing value among a field's aliases."""
    for key in FIELD_ALIASES[field_name]:
        value = raw.get(key)
        if not _is_missing(value):
            return value
    return None


def _text(value: Any) -> str:
    if _is_missing(value):
        return ''
    return str(value).strip()


def _split_network_offer(raw: Mapping) -> Tuple[str, str]:
    for key in COMBINED_NETWORK_OFFER_KEYS:
        combined = raw.get(key)
        if _is_missing(combined):
            continue
        network, _, offer = str(combined).partition(NETWORK_OFFER_SEPARATOR)
        return network.strip(), offer.strip()
    return '', ''


# =============================================================================
# Normalization
# =============================================================================


def normalize_record(raw: Mapping[str, Any]) -> PerformanceRecord:
    """
    Normalize a single raw row into a PerformanceRecord.

    Args:
        raw: Mapping with any of the supported key aliases.

    Returns:
        PerformanceRecord. `date` is None when the row's date is missing or
        unparseable; amounts that fail to parse are 0.0.

    Raises:
        TypeError: If `raw` is not a mapping.

    Example:
        >>> record = normalize_record({
        ...     "Date": "4/2/2024", "Media Buyer": " Alex ",
        ...     "Network": "ACA Network", "Offer": "Health",
        ...     "Ad Spend": "$400", "Total Revenue": "1,000.00",
        ... })
        >>> record.date, record.mediaBuyer, record.totalRevenue
        (datetime.date(2024, 4, 2), 'Alex', 1000.0)
    """
    if not isinstance(raw, Mapping):
        raise TypeError(f"Performance record must be a mapping, got {type(raw).__name__}")

    raw_date = _lookup(raw, 'date')
    record_date = parse_date(raw_date)
    if record_date is None and raw_date is not None:
        logger.debug("Record date %r could not be parsed", raw_date)

    network = _text(_lookup(raw, 'network'))
    offer = _text(_lookup(raw, 'offer'))
    if not network and not offer:
        network, offer = _split_network_offer(raw)

    comment_revenue = _lookup(raw, 'commentRevenue')

    return PerformanceRecord(
        date=record_date,
        mediaBuyer=_text(_lookup(raw, 'mediaBuyer')),
        network=network,
        offer=offer,
        adSpend=parse_money(_lookup(raw, 'adSpend')),
        totalRevenue=parse_money(_lookup(raw, 'totalRevenue')),
        commentRevenue=None if comment_revenue is None else parse_money(comment_revenue),
    )


def normalize_records(rows: Iterable[Mapping[str, Any]]) -> List[PerformanceRecord]:
    """
    Normalize a collection of raw rows.

    Already-normalized PerformanceRecord instances pass through unchanged, so
    normalizing twice yields the same records.

    Raises:
        TypeError: If `rows` is not an iterable collection, or contains
            something other than mappings/PerformanceRecords.
    """
    if rows is None or isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Iterable):
        raise TypeError(f"Expected a collection of records, got {type(rows).__name__}")

    records: List[PerformanceRecord] = []
    undated = 0
    for row in rows:
        if isinstance(row, PerformanceRecord):
            record = row
        else:
            record = normalize_record(row)
        if record.date is None:
            undated += 1
        records.append(record)

    if undated:
        logger.warning(f"{undated} of {len(records)} records have no usable date")
    logger.debug(f"Normalized {len(records)} records")
    return records


def normalize_frame(df: pd.DataFrame) -> List[PerformanceRecord]:
    """
    Normalize a pandas DataFrame as produced by sheet/CSV adapters.

    Column names may use any supported alias. NaN cells are treated as
    missing.

    Raises:
        TypeError: If `df` is not a DataFrame.
    """
    if not isinstance(df, pd.DataFrame):
        raise TypeError(f"Expected a pandas DataFrame, got {type(df).__name__}")
    if df.empty:
        return []

    frame = df.astype(object).where(pd.notna(df), None)
    return normalize_records(frame.to_dict(orient='records'))
