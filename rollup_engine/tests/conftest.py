"""
Pytest Configuration and Shared Fixtures for Rollup Engine Tests.

Provides:
- Custom markers for test organization
- Settings cache isolation so environment overrides never leak between tests
- Sample performance rows in the sheet dialect (mixed date/money formats)
- Lookup tables (commission rates, daily caps)
- Financial snapshots for projection and credit tests

All fixtures use fixed dates; nothing depends on the wall clock.

Dependencies:
- pytest
- pandas
"""

from datetime import date
from typing import Any, Dict, List

import pandas as pd
import pytest

from rollup_engine.core.config import get_settings
from rollup_engine.models import (
    CapTable,
    CommissionTable,
    FinancialResourceSnapshot,
    PerformanceRecord,
)
from rollup_engine.services.normalizer import normalize_records


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Register custom markers.

    - slow: marks tests as slow (deselect with -m "not slow")
    - scenario: end-to-end worked examples over the full pipeline
    """
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )
    config.addinivalue_line(
        'markers',
        'scenario: end-to-end worked examples over the full pipeline'
    )


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Reset the cached Settings before and after every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================
# DATE FIXTURES
# ============================================================

@pytest.fixture
def today() -> date:
    """Fixed reference date inside April 2024."""
    return date(2024, 4, 15)


# ============================================================
# PERFORMANCE DATA FIXTURES
# ============================================================

@pytest.fixture
def raw_rows() -> List[Dict[str, Any]]:
    """
    Sheet-style rows spanning the Ringba cutover.

    Covers M/D/YYYY and ISO dates, "$1,234" money strings, a blank media
    buyer and one unparseable date.
    """
    return [
        {
            'Date': '3/31/2024', 'Media Buyer': 'Alex', 'Network': 'ACA Network',
            'Offer': 'ACA Health', 'Ad Spend': '$400', 'Total Revenue': '$1,000',
        },
        {
            'Date': '2024-04-01', 'Media Buyer': 'Alex', 'Network': 'ACA Network',
            'Offer': 'ACA Health', 'Ad Spend': '400', 'Total Revenue': '1000',
        },
        {
            'Date': '04/02/2024', 'Media Buyer': 'Sam', 'Network': 'Banner',
            'Offer': 'Medicare', 'Ad Spend': 300.0, 'Total Revenue': 200.0,
        },
        {
            'Date': '4/2/2024', 'Media Buyer': '', 'Network': 'Banner',
            'Offer': 'Medicare', 'Ad Spend': '50', 'Total Revenue': '150',
        },
        {
            'Date': 'not a date', 'Media Buyer': 'Alex', 'Network': 'Banner',
            'Offer': 'Medicare', 'Ad Spend': '999', 'Total Revenue': '999',
        },
    ]


@pytest.fixture
def records(raw_rows) -> List[PerformanceRecord]:
    """Normalized form of raw_rows."""
    return normalize_records(raw_rows)


@pytest.fixture
def raw_frame(raw_rows) -> pd.DataFrame:
    """raw_rows as a DataFrame, as delivered by sheet/CSV adapters."""
    return pd.DataFrame(raw_rows)


def make_record(day: date, buyer: str = 'Alex', network: str = 'Banner',
                offer: str = 'Medicare', spend: float = 0.0,
                revenue: float = 0.0) -> PerformanceRecord:
    """Shorthand for building normalized records in tests."""
    return PerformanceRecord(
        date=day,
        mediaBuyer=buyer,
        network=network,
        offer=offer,
        adSpend=spend,
        totalRevenue=revenue,
    )


@pytest.fixture
def record_factory():
    """Expose make_record as a fixture."""
    return make_record


# ============================================================
# LOOKUP TABLE FIXTURES
# ============================================================

@pytest.fixture
def commission_table() -> CommissionTable:
    """Alex at 15%, everyone else at the 10% default."""
    return CommissionTable.from_mapping({' Alex ': 0.15})


@pytest.fixture
def default_commission_table() -> CommissionTable:
    """No explicit rules; every buyer pays the default rate."""
    return CommissionTable()


@pytest.fixture
def cap_table() -> CapTable:
    """Numeric, formatted and non-numeric caps."""
    return CapTable.from_mapping({
        ('ACA Network', 'ACA Health'): 1000,
        ('Banner', 'Medicare'): '$2,500',
        ('Banner', 'Final Expense'): 'Uncapped',
        ('Lead Co', 'Auto'): 'TBC',
    })


# ============================================================
# FINANCIAL SNAPSHOT FIXTURES
# ============================================================

@pytest.fixture
def snapshot() -> FinancialResourceSnapshot:
    """Cash, three issuers, invoices and payroll with mixed date dialects."""
    return FinancialResourceSnapshot(
        cashAccounts=[
            {'name': 'Cash in Bank', 'available': '$20,000'},
            {'name': 'Slash Account', 'available': 5000},
        ],
        creditCards=[
            {'name': 'Amex Gold', 'available': 8000, 'owing': 2000, 'limit': 10000,
             'dueDate': '4/20/2024'},
            {'name': 'Chase Ink', 'available': 4000, 'owing': 1000, 'limit': 5000},
            {'name': 'Capital One Spark', 'available': 0, 'owing': 0, 'limit': 0,
             'dueDate': '2024-04-18'},
        ],
        invoices=[
            {'network': 'Banner', 'amount': '$3,000', 'dueDate': '4/16/2024'},
            {'network': 'Lead Co', 'amount': 1200, 'dueDate': 'sometime soon'},
        ],
        payroll=[
            {'description': 'Contractors', 'amount': '$4,500', 'dueDate': '2024-04-17'},
        ],
    )
