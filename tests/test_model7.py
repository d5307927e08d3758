"""Tests for the Modelo 7 periodic declaration."""

import random
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from faturacao.domain.exceptions import DocumentValidationError
from faturacao.domain.models.documents import Document, DocumentKind, DocumentStatus, LineItem
from faturacao.domain.models.model7 import TaxRegime
from faturacao.domain.services.document_totals import apply_totals
from faturacao.domain.services.model7_service import (
    build_model7,
    compute_general_regime,
    compute_simplified_regime,
    regularization_annex,
    supplier_annex,
)


def _purchase(tax, mode="NONE", status=DocumentStatus.PAID, type="FT", day=date(2024, 3, 5), **kwargs):
    doc = Document(
        kind=DocumentKind.PURCHASE, type=type, date=day, status=status,
        items=(LineItem(quantity=1, unit_price=10000, tax_rate_percent=14),),
        declared_tax_amount=Decimal(tax), retention_mode=mode,
        counterparty_name="Fornecedor Lda", counterparty_nif="5000000000",
        number=kwargs.pop("number", "FT 2024/88"), **kwargs,
    )
    return replace(doc, **apply_totals(doc))


@pytest.fixture
def march_sales(certified_sale):
    return [
        certified_sale([LineItem(quantity=10, unit_price=1000, tax_rate_percent=14)]),
        certified_sale([
            LineItem(quantity=2, unit_price=500, tax_rate_percent=7),
            LineItem(quantity=1, unit_price=5000, discount_percent=10, tax_rate_percent=0),
        ]),
    ]


class TestGeneralRegime:

    def test_buckets(self, march_sales):
        summary = compute_general_regime(march_sales, [], 2024, 3)
        assert summary.bucket(14).base == Decimal("10000")
        assert summary.bucket(14).tax == Decimal("1400")
        assert summary.bucket(7).tax == Decimal("70")
        assert summary.bucket(0).base == Decimal("4500")
        assert summary.bucket(5).base == Decimal("0")
        assert summary.total_favor_state == Decimal("1470")
        assert summary.amount_payable == Decimal("1470")
        assert summary.amount_recoverable == Decimal("0")

    def test_other_periods_ignored(self, march_sales, certified_sale):
        april = certified_sale([LineItem(quantity=1, unit_price=1000)], day=date(2024, 4, 1))
        summary = compute_general_regime(march_sales + [april], [], 2024, 3)
        assert summary.total_favor_state == Decimal("1470")

    def test_drafts_ignored(self, march_sales):
        draft = Document(type="FT", date=date(2024, 3, 2), items=(LineItem(quantity=1, unit_price=1000),))
        summary = compute_general_regime(march_sales + [replace(draft, **apply_totals(draft))], [], 2024, 3)
        assert summary.total_favor_state == Decimal("1470")

    def test_cancelled_excluded_from_buckets_and_regularized(self, march_sales, certified_sale):
        cancelled = certified_sale(
            [LineItem(quantity=1, unit_price=2000, tax_rate_percent=14)],
            status=DocumentStatus.CANCELLED,
        )
        summary = compute_general_regime(march_sales + [cancelled], [], 2024, 3)
        assert summary.bucket(14).tax == Decimal("1400")
        assert summary.regularizations_in_favor_of_taxpayer == Decimal("280")

    def test_credit_note_regularized(self, certified_sale):
        note = certified_sale([LineItem(quantity=1, unit_price=1000)], type="NC", status=DocumentStatus.PAID)
        summary = compute_general_regime([note], [], 2024, 3)
        assert summary.regularizations_in_favor_of_taxpayer == Decimal("140")

    def test_cativated_purchase_deducts_full_tax(self, march_sales):
        purchase = _purchase("1000", mode="CAT_50")
        assert purchase.retention_amount == Decimal("500")
        summary = compute_general_regime(march_sales, [purchase], 2024, 3)
        assert summary.deductible_tax == Decimal("1000")
        assert summary.total_favor_taxpayer == Decimal("1000")
        assert summary.amount_payable == Decimal("470")

    def test_pending_purchases_not_deductible(self, march_sales):
        summary = compute_general_regime(
            march_sales, [_purchase("1000", status=DocumentStatus.PENDING)], 2024, 3,
        )
        assert summary.deductible_tax == Decimal("0")

    def test_recoverable_when_taxpayer_favoured(self, march_sales):
        summary = compute_general_regime(march_sales, [_purchase("2000")], 2024, 3)
        assert summary.amount_payable == Decimal("0")
        assert summary.amount_recoverable == Decimal("530")

    def test_payable_and_recoverable_exclusive(self, march_sales):
        for tax in ("0", "1470", "3000"):
            summary = compute_general_regime(march_sales, [_purchase(tax)], 2024, 3)
            assert summary.amount_payable == 0 or summary.amount_recoverable == 0


class TestSimplifiedRegime:

    def test_cash_basis_documents_only(self, certified_sale):
        sales = [
            certified_sale([LineItem(quantity=1, unit_price=1000, tax_rate_percent=14)], type="FR",
                           status=DocumentStatus.PAID, payment_method="cash", cash_register_id="cx1"),
            certified_sale([LineItem(quantity=1, unit_price=500, tax_rate_percent=0)], type="VD",
                           status=DocumentStatus.PAID),
            certified_sale([LineItem(quantity=1, unit_price=9999)], type="FT"),
        ]
        summary = compute_simplified_regime(sales, 2024, 3)
        assert summary.document_count == 2
        assert summary.turnover == Decimal("1640")
        assert summary.tax_due == Decimal("1640") * Decimal("0.07")
        assert summary.exempt_base == Decimal("500")
        assert summary.exempt_tax == Decimal("35.00")
        assert summary.total_payable == summary.tax_due + summary.exempt_tax

    def test_cancelled_cash_sale_excluded(self, certified_sale):
        sale = certified_sale([LineItem(quantity=1, unit_price=1000)], type="VD", status=DocumentStatus.CANCELLED)
        assert compute_simplified_regime([sale], 2024, 3).turnover == Decimal("0")


class TestAnnexes:

    def test_supplier_annex_rows(self):
        rows = supplier_annex([
            _purchase("1000", mode="CAT_50"),
            _purchase("700", type="REC", number="REC 12"),
            _purchase("900", status=DocumentStatus.PENDING),
        ], 2024, 3)
        assert [r.order for r in rows] == [1, 2]
        assert rows[0].annex_type == "FR"
        assert rows[0].vat_supported == Decimal("1000")
        assert rows[0].vat_deductible == Decimal("1000")
        assert rows[0].vat_deductible_percent == Decimal("100")
        assert rows[1].annex_type == "OT"
        assert rows[1].document_number == "REC 12"

    def test_regularization_annex_rows(self, certified_sale):
        cancelled = certified_sale(
            [LineItem(quantity=1, unit_price=1000)], status=DocumentStatus.CANCELLED,
            number="FT A2024/3",
        )
        rows = regularization_annex([cancelled], 2024, 3)
        assert len(rows) == 1
        row = rows[0]
        assert row.operation == "Anulação"
        assert row.client_nif == "999999999"
        assert row.reference_period == "2024-03"
        assert row.destination_field == "26"
        assert row.vat == Decimal("140")


class TestBuildModel7:

    def test_general_report(self, march_sales):
        report = build_model7(march_sales, [_purchase("1000")], 2024, 3, "GENERAL")
        assert report.regime == TaxRegime.GENERAL
        assert report.simplified is None
        assert report.general.amount_payable == Decimal("470")
        assert report.valid_sales_count == 2
        assert report.valid_purchases_count == 1
        assert len(report.supplier_annex) == 1

    def test_simplified_report(self, march_sales):
        report = build_model7(march_sales, [], 2024, 3, TaxRegime.SIMPLIFIED)
        assert report.general is None
        assert report.simplified.turnover == Decimal("0")

    def test_json_dump(self, march_sales):
        data = build_model7(march_sales, [], 2024, 3).model_dump(mode="json")
        assert data["regime"] == "GENERAL"
        assert data["general"]["total_favor_state"] == "1470"

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            build_model7([], [], 2024, 13)


class TestPurchaseStatus:

    def test_defaults_to_pending_and_is_not_deductible(self, march_sales):
        doc = Document(
            kind=DocumentKind.PURCHASE, type="FT", date=date(2024, 3, 5),
            items=(LineItem(quantity=1, unit_price=10000, tax_rate_percent=14),),
            declared_tax_amount=Decimal("1000"),
        )
        purchase = replace(doc, **apply_totals(doc))
        assert purchase.status == DocumentStatus.PENDING
        summary = compute_general_regime(march_sales, [purchase], 2024, 3)
        assert summary.deductible_tax == Decimal("0")

    def test_sales_default_stays_draft(self):
        assert Document(type="FT").status == DocumentStatus.DRAFT

    @pytest.mark.parametrize("status", ["draft", "cancelled", "overdue", "partial"])
    def test_sales_only_statuses_rejected(self, status):
        with pytest.raises(DocumentValidationError) as exc:
            Document(kind=DocumentKind.PURCHASE, type="FT", status=status)
        assert exc.value.field == "status"

    def test_sales_type_rejected_on_purchase(self):
        with pytest.raises(DocumentValidationError) as exc:
            Document(kind=DocumentKind.PURCHASE, type="FS")
        assert exc.value.field == "type"


class TestRandomizedPeriods:

    @pytest.mark.parametrize("seed", range(30))
    def test_payable_and_recoverable_are_exclusive(self, seed, random_document):
        rng = random.Random(seed)
        sales = [
            random_document(
                rng, kind=DocumentKind.SALE, is_certified=rng.random() < 0.9,
                type=rng.choice(["FT", "FR", "VD", "NC"]),
                status=rng.choice([DocumentStatus.PENDING, DocumentStatus.PAID, DocumentStatus.CANCELLED]),
            )
            for _ in range(rng.randint(0, 8))
        ]
        purchases = [
            random_document(rng, kind=DocumentKind.PURCHASE) for _ in range(rng.randint(0, 8))
        ]

        general = build_model7(sales, purchases, 2024, 3).general
        assert general.amount_payable >= 0
        assert general.amount_recoverable >= 0
        assert general.amount_payable * general.amount_recoverable == 0
        assert (
            general.amount_payable - general.amount_recoverable
            == general.total_favor_state - general.total_favor_taxpayer
        )
