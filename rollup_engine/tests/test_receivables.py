"""
Network Receivables Test Module

Covers payment-terms parsing, exposure consolidation and the receivable
inflows handed to the cash-flow projector.
"""

from datetime import date

import pytest

from rollup_engine.models import FlowType, NetworkExposure
from rollup_engine.services.receivables import (
    consolidate_exposures,
    expected_payment_date,
    exposure_to_receivables,
    group_by_terms,
    parse_net_terms,
    terms_label,
)


# =============================================================================
# Test Class: TestPaymentTerms
# =============================================================================

class TestPaymentTerms:
    """Terms text -> days and canonical label."""

    @pytest.mark.parametrize('text,days,label', [
        ('Net 15', 15, 'Net 15'),
        ('net45', 45, 'Net 45'),
        ('Weekly', 7, 'Weekly'),
        ('Bi-Monthly', 60, 'Bi-Monthly'),
        ('bi monthly', 60, 'Bi-Monthly'),
        ('Monthly', 30, 'Monthly'),
        ('', 30, 'Net 30'),
        (None, 30, 'Net 30'),
        ('upon request', 30, 'Net 30'),
    ])
    def test_terms(self, text, days, label):
        assert parse_net_terms(text) == days
        assert terms_label(text) == label


# =============================================================================
# Test Class: TestExposures
# =============================================================================

class TestExposures:
    """Consolidation and expected payment dates."""

    def test_expected_payment_date(self):
        exposure = NetworkExposure(network='Banner', amount=100, paymentTerms='Net 15',
                                   periodEnd='4/30/2024')
        assert expected_payment_date(exposure) == date(2024, 5, 15)

    def test_missing_period_end_uses_month_end(self):
        exposure = NetworkExposure(network='Banner', amount=100, paymentTerms='Weekly')
        assert expected_payment_date(exposure, today=date(2024, 2, 10)) == date(2024, 3, 7)

    def test_consolidation_keeps_dominant_terms(self):
        merged = consolidate_exposures([
            NetworkExposure(network='Banner', amount='$1,000', paymentTerms='Net 15'),
            NetworkExposure(network='Lead Co', amount=200),
            NetworkExposure(network='Banner', amount=5000, paymentTerms='Weekly'),
        ])
        assert [exposure.network for exposure in merged] == ['Banner', 'Lead Co']
        assert merged[0].amount == 6000.0
        assert merged[0].paymentTerms == 'Weekly'

    def test_group_by_terms(self):
        groups = group_by_terms([
            NetworkExposure(network='A', paymentTerms='net 30'),
            NetworkExposure(network='B', paymentTerms='Weekly'),
            NetworkExposure(network='C'),
        ])
        assert {label: [e.network for e in items] for label, items in groups.items()} == {
            'Net 30': ['A', 'C'],
            'Weekly': ['B'],
        }


# =============================================================================
# Test Class: TestReceivables
# =============================================================================

class TestReceivables:
    """Exposures -> scheduled receivable inflows."""

    def test_receivables(self):
        receivables = exposure_to_receivables([
            NetworkExposure(network='Banner', offer='Medicare', amount=3000,
                            paymentTerms='Net 15', periodEnd='2024-04-30'),
            NetworkExposure(network='Lead Co', amount=0),
            NetworkExposure(network='Refunds', amount='(150)'),
        ])
        assert len(receivables) == 1
        receivable = receivables[0]
        assert receivable.description == 'Banner - Medicare'
        assert receivable.flowType == FlowType.RECEIVABLE
        assert receivable.amount == 3000.0
        assert receivable.dueDate == date(2024, 5, 15)
