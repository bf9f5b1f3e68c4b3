"""
Low-level value parsing shared by the schemas and the record normalizer.

Upstream sheets deliver dates as "M/D/YYYY", "MM/DD/YYYY" or ISO strings and
money as strings such as "$1,234.50" or "(250)". Everything is normalized to
one canonical representation before any comparison:

- dates -> datetime.date (no time component)
- money -> float

Neither parser raises on bad input: dates degrade to None, money to 0.0.
"""

import logging
import math
import numbers
import re
from datetime import date, datetime
from typing import Any, Optional

logger = logging.getLogger(__name__)

_US_DATE = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')
_ISO_DATE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$')
_MONEY_NOISE = re.compile(r'[$,\s]')


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a calendar date from the supported dialects.

    Accepts date, datetime (including pandas Timestamp, a datetime subclass),
    "M/D/YYYY", "MM/DD/YYYY" and ISO "YYYY-MM-DD" with an optional time part.

    Returns:
        The date, or None when the value is missing or unparseable.

    Example:
        >>> parse_date("4/1/2024")
        datetime.date(2024, 4, 1)
        >>> parse_date("2024-04-01T09:30:00")
        datetime.date(2024, 4, 1)
        >>> parse_date("next tuesday") is None
        True
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        # pandas NaT is a datetime subclass that never equals itself
        if value != value:
            return None
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    match = _US_DATE.match(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
    else:
        match = _ISO_DATE.match(text)
        if not match:
            logger.debug("Unparseable date %r", value)
            return None
        year, month, day = (int(part) for part in match.groups())

    try:
        return date(year, month, day)
    except ValueError:
        logger.debug("Out-of-range date %r", value)
        return None


def parse_money(value: Any) -> float:
    """
    Parse a currency amount, stripping symbols and thousands separators.

    Parenthesized amounts are negative, as exported by accounting sheets.
    Missing, NaN and unparseable values are 0.0 so they never poison sums.

    Example:
        >>> parse_money("$1,234.50")
        1234.5
        >>> parse_money("(250)")
        -250.0
        >>> parse_money("N/A")
        0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, numbers.Real):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if not isinstance(value, str):
        return 0.0

    text = _MONEY_NOISE.sub('', value)
    negative = text.startswith('(') and text.endswith(')')
    if negative:
        text = text[1:-1]
    if not text:
        return 0.0

    try:
        number = float(text)
    except ValueError:
        logger.debug("Unparseable amount %r", value)
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return -number if negative else number


def normalize_key(value: Any) -> str:
    """Lowercased, trimmed lookup key for case-insensitive table matches."""
    if value is None:
        return ''
    return str(value).strip().lower()


def round_half_up(value: float, increment: int = 1) -> float:
    """
    Round to the nearest increment with halves rounding up.

    Python's round() is banker's rounding; budgets round the way the finance
    sheets do (1,250 -> 1,300 at increment 100).
    """
    if increment <= 0:
        return value
    return math.floor(value / increment + 0.5) * increment
