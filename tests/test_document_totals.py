"""Tests for the document totals engine."""

import random
from dataclasses import replace
from decimal import Decimal

import pytest

from faturacao.domain.exceptions import InvalidCurrencyError, InvalidLineItemError, InvalidTaxRateError
from faturacao.domain.models.documents import Currency, Document, DocumentKind, LineItem, RetentionMode
from faturacao.domain.models.fiscal_config import FiscalConfig
from faturacao.domain.services.document_totals import (
    NEGATIVE_TOTAL,
    apply_totals,
    compute_retention,
    compute_totals,
    compute_withholding,
    tax_summary,
)


def _identity_holds(totals) -> bool:
    return totals.total == (
        totals.subtotal + totals.tax_amount - totals.global_discount_amount
        - totals.withholding_amount - totals.retention_amount
    )


class TestWorkedExample:

    def test_reference_invoice(self, sample_invoice):
        totals = compute_totals(sample_invoice)
        assert totals.subtotal == Decimal("14500")
        assert totals.tax_amount == Decimal("1400")
        assert totals.global_discount_amount == Decimal("725")
        assert totals.withholding_amount == Decimal("0")
        assert totals.retention_amount == Decimal("0")
        assert totals.total == Decimal("15175")
        assert totals.contra_value == Decimal("15175")
        assert totals.warnings == ()

    def test_global_discount_does_not_reduce_tax(self, sample_invoice):
        no_discount = compute_totals(replace(sample_invoice, global_discount_percent=Decimal("0")))
        assert no_discount.tax_amount == compute_totals(sample_invoice).tax_amount

    def test_identity_holds(self, sample_invoice):
        assert _identity_holds(compute_totals(sample_invoice))

    def test_apply_totals_returns_document_fields(self, sample_invoice):
        fields = apply_totals(sample_invoice)
        doc = replace(sample_invoice, **fields)
        assert doc.total == Decimal("15175")
        assert doc.to_dict()["total"] == "15175.00"


class TestWithholding:

    def test_below_threshold(self, service_line):
        doc = Document(items=(service_line("19999.99"),))
        assert compute_totals(doc).withholding_amount == Decimal("0")

    def test_at_threshold(self, service_line):
        doc = Document(items=(service_line("20000.00"),))
        assert compute_totals(doc).withholding_amount == Decimal("20000.00") * Decimal("0.065")

    def test_products_never_withheld(self):
        doc = Document(items=(LineItem(quantity=1, unit_price=50000),))
        assert compute_totals(doc).withholding_amount == Decimal("0")

    def test_threshold_checked_in_aoa(self, service_line):
        # 30 USD × 850 = 25 500 AOA → withheld, amount stays in USD
        doc = Document(items=(service_line(30),), currency="USD", exchange_rate=Decimal("850"))
        totals = compute_totals(doc)
        assert totals.withholding_amount == Decimal("30") * Decimal("0.065")
        assert totals.contra_value == totals.total * Decimal("850")

    def test_foreign_currency_below_threshold(self, service_line):
        doc = Document(items=(service_line(20),), currency="USD", exchange_rate=Decimal("850"))
        assert compute_totals(doc).withholding_amount == Decimal("0")

    def test_purchases_never_withheld(self, service_line):
        doc = Document(kind=DocumentKind.PURCHASE, type="FT", items=(service_line(100000),))
        assert compute_totals(doc).withholding_amount == Decimal("0")

    def test_helper_matches_engine(self, service_line, fiscal_config):
        items = (service_line(25000), LineItem(quantity=1, unit_price=9000))
        assert compute_withholding(items, Decimal("1"), fiscal_config) == Decimal("1625.000")


class TestRetention:

    def test_modes_switch_without_residue(self, sample_invoice):
        tax = compute_totals(sample_invoice).tax_amount
        doc = sample_invoice
        for mode, factor in (("CAT_50", "0.5"), ("CAT_100", "1"), ("NONE", "0"), ("CAT_50", "0.5")):
            doc = replace(doc, retention_mode=RetentionMode(mode))
            totals = compute_totals(doc)
            assert totals.retention_amount == tax * Decimal(factor)
            assert _identity_holds(totals)

    def test_compute_retention_helper(self, fiscal_config):
        assert compute_retention(Decimal("1000"), "CAT_50", fiscal_config) == Decimal("500")
        assert compute_retention(Decimal("1000"), RetentionMode.CAT_100, fiscal_config) == Decimal("1000")
        assert compute_retention(Decimal("1000"), "NONE", fiscal_config) == Decimal("0")


class TestPurchases:

    def test_declared_tax_overrides_computed(self):
        doc = Document(
            kind="purchase", type="FT",
            items=(LineItem(quantity=1, unit_price=10000, tax_rate_percent=14),),
            declared_tax_amount="1000",
            retention_mode="CAT_50",
        )
        totals = compute_totals(doc)
        assert totals.tax_amount == Decimal("1000")
        assert totals.retention_amount == Decimal("500")
        assert totals.total == Decimal("10500")

    def test_declared_tax_ignored_on_sales(self):
        doc = Document(
            items=(LineItem(quantity=1, unit_price=10000, tax_rate_percent=14),),
            declared_tax_amount="1",
        )
        assert compute_totals(doc).tax_amount == Decimal("1400")


class TestValidation:

    def test_tax_rate_outside_tiers(self):
        doc = Document(items=(LineItem(quantity=1, unit_price=100, tax_rate_percent=10),))
        with pytest.raises(InvalidTaxRateError):
            compute_totals(doc)

    def test_custom_tiers_accepted(self):
        config = FiscalConfig(tax_rate_tiers=frozenset({Decimal("0"), Decimal("10")}))
        doc = Document(items=(LineItem(quantity=1, unit_price=100, tax_rate_percent=10),))
        assert compute_totals(doc, config).tax_amount == Decimal("10")

    def test_global_discount_out_of_range(self, sample_invoice):
        with pytest.raises(InvalidLineItemError):
            compute_totals(replace(sample_invoice, global_discount_percent=Decimal("120")))

    def test_non_positive_exchange_rate(self):
        doc = Document(items=(LineItem(quantity=1, unit_price=100),), currency="EUR", exchange_rate=0)
        with pytest.raises(InvalidCurrencyError):
            compute_totals(doc)

    def test_aoa_ignores_exchange_rate(self):
        doc = Document(items=(LineItem(quantity=1, unit_price=100),), exchange_rate=0)
        assert compute_totals(doc).contra_value == Decimal("114")


class TestNegativeTotal:

    def test_negative_total_flagged_not_clamped(self, service_line):
        config = FiscalConfig(withholding_rate=Decimal("2"))
        doc = Document(items=(service_line(20000, rate=0),))
        totals = compute_totals(doc, config)
        assert totals.total == Decimal("-20000")
        assert NEGATIVE_TOTAL in totals.warnings


class TestTaxSummary:

    def test_grouped_by_rate_descending(self, sample_items):
        summary = tax_summary(sample_items + (LineItem(quantity=2, unit_price=100, tax_rate_percent=14),))
        assert [line.rate for line in summary] == [Decimal("14"), Decimal("0")]
        assert summary[0].base == Decimal("10200")
        assert summary[0].amount == Decimal("1428")
        assert summary[1].base == Decimal("4500")
        assert summary[1].amount == Decimal("0")

    def test_empty(self):
        assert tax_summary(()) == []


class TestRandomizedDocuments:
    """Seeded random documents across rates, kinds, currencies and retention modes."""

    @pytest.mark.parametrize("seed", range(40))
    def test_totals_invariants(self, seed, random_document):
        doc = random_document(random.Random(seed))
        totals = compute_totals(doc)

        assert _identity_holds(totals)
        assert totals.subtotal == sum((item.total for item in doc.items), Decimal("0"))
        assert totals.global_discount_amount == totals.subtotal * doc.global_discount_percent / 100
        assert totals.retention_amount == compute_retention(totals.tax_amount, doc.retention_mode)
        if doc.currency == Currency.AOA:
            assert totals.contra_value == totals.total
        else:
            assert totals.contra_value == totals.total * doc.exchange_rate
        assert (NEGATIVE_TOTAL in totals.warnings) == (totals.total < 0)

    @pytest.mark.parametrize("seed", range(20))
    def test_purchases_never_withhold(self, seed, random_document):
        doc = random_document(random.Random(seed), kind=DocumentKind.PURCHASE)
        totals = compute_totals(doc)
        assert totals.withholding_amount == Decimal("0")
        if doc.declared_tax_amount is not None:
            assert totals.tax_amount == doc.declared_tax_amount
        assert _identity_holds(totals)
