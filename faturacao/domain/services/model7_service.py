# faturacao/domain/services/model7_service.py
"""
Periodic VAT declaration (Modelo 7).

Regime Geral (accrual, multi-rate):
  - output tax per rate bucket from valid sales line items
  - deductible tax from settled purchases, gross of any cativation
  - regularizations for credit notes and cancelled documents
  - payable XOR recoverable

Regime Simplificado (cash basis, flat rate):
  - turnover of receipts and cash sales (RG, VD, FR)
  - flat rate applied to turnover and, separately, to the 0 % lines

Only certified sales documents are fiscal documents; drafts are ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from faturacao.domain.models.documents import (
    Document,
    DocumentKind,
    DocumentStatus,
    DocumentType,
    PurchaseType,
)
from faturacao.domain.models.fiscal_config import FiscalConfig
from faturacao.domain.models.model7 import (
    GeneralRegimeSummary,
    Model7Report,
    RateBucket,
    RegularizationAnnexRow,
    SimplifiedRegimeSummary,
    SupplierAnnexRow,
    TaxRegime,
)
from faturacao.domain.services.fiscal_config_defaults import get_fiscal_config
from faturacao.domain.services.line_items import HUNDRED, ZERO

logger = logging.getLogger("model7_service")

CASH_BASIS_TYPES = frozenset({DocumentType.RG, DocumentType.VD, DocumentType.FR})
_DEFAULT_CLIENT_NIF = "999999999"


# ---------------------------------------------------------------------------
# Period filters
# ---------------------------------------------------------------------------

def _period_sales(sales: Iterable[Document], year: int, month: int) -> list[Document]:
    return [
        d for d in sales
        if d.kind == DocumentKind.SALE and d.is_certified and d.in_period(year, month)
    ]


def valid_sales(sales: Iterable[Document], year: int, month: int) -> list[Document]:
    return [d for d in _period_sales(sales, year, month) if d.status != DocumentStatus.CANCELLED]


def regularization_documents(sales: Iterable[Document], year: int, month: int) -> list[Document]:
    """Credit notes and cancelled documents of the period."""
    return [
        d for d in _period_sales(sales, year, month)
        if d.status == DocumentStatus.CANCELLED or d.type == DocumentType.NC
    ]


def valid_purchases(purchases: Iterable[Document], year: int, month: int) -> list[Document]:
    """Any purchase of the period whose status is not Pending."""
    return [
        p for p in purchases
        if p.kind == DocumentKind.PURCHASE
        and p.in_period(year, month)
        and p.status != DocumentStatus.PENDING
    ]


def deductible_vat(purchase: Document) -> Decimal:
    """Supported VAT in full, whatever the retention mode."""
    return purchase.tax_amount


# ---------------------------------------------------------------------------
# Regime Geral
# ---------------------------------------------------------------------------

def compute_general_regime(
    sales: Iterable[Document],
    purchases: Iterable[Document],
    year: int,
    month: int,
    config: FiscalConfig | None = None,
) -> GeneralRegimeSummary:
    cfg = config or get_fiscal_config()
    sales = list(sales)

    buckets = {rate: RateBucket(rate=rate) for rate in sorted(cfg.tax_rate_tiers, reverse=True)}
    for doc in valid_sales(sales, year, month):
        for item in doc.items:
            bucket = buckets.setdefault(item.tax_rate_percent, RateBucket(rate=item.tax_rate_percent))
            bucket.base += item.quantity * item.unit_price * (Decimal("1") - item.discount_percent / HUNDRED)
            bucket.tax += item.total * item.tax_rate_percent / HUNDRED

    deductible_tax = sum(
        (deductible_vat(p) for p in valid_purchases(purchases, year, month)), ZERO,
    )
    regularizations = sum(
        (d.tax_amount for d in regularization_documents(sales, year, month)), ZERO,
    )

    total_favor_state = sum((b.tax for b in buckets.values() if b.rate != ZERO), ZERO)
    total_favor_taxpayer = deductible_tax + regularizations

    return GeneralRegimeSummary(
        buckets=list(buckets.values()),
        deductible_tax=deductible_tax,
        regularizations_in_favor_of_taxpayer=regularizations,
        total_favor_state=total_favor_state,
        total_favor_taxpayer=total_favor_taxpayer,
        amount_payable=max(ZERO, total_favor_state - total_favor_taxpayer),
        amount_recoverable=max(ZERO, total_favor_taxpayer - total_favor_state),
    )


# ---------------------------------------------------------------------------
# Regime Simplificado
# ---------------------------------------------------------------------------

def compute_simplified_regime(
    sales: Iterable[Document],
    year: int,
    month: int,
    config: FiscalConfig | None = None,
) -> SimplifiedRegimeSummary:
    cfg = config or get_fiscal_config()
    rate = cfg.simplified_regime_rate

    cash_docs = [d for d in valid_sales(sales, year, month) if d.type in CASH_BASIS_TYPES]
    turnover = sum((d.total for d in cash_docs), ZERO)
    exempt_base = sum(
        (item.total for d in cash_docs for item in d.items if item.tax_rate_percent == ZERO),
        ZERO,
    )
    tax_due = turnover * rate
    # The flat rate is applied to 0 % lines too
    exempt_tax = exempt_base * rate

    return SimplifiedRegimeSummary(
        rate=rate,
        turnover=turnover,
        tax_due=tax_due,
        exempt_base=exempt_base,
        exempt_tax=exempt_tax,
        total_payable=tax_due + exempt_tax,
        document_count=len(cash_docs),
    )


# ---------------------------------------------------------------------------
# Annexes
# ---------------------------------------------------------------------------

def supplier_annex(purchases: Iterable[Document], year: int, month: int) -> list[SupplierAnnexRow]:
    rows: list[SupplierAnnexRow] = []
    for idx, p in enumerate(valid_purchases(purchases, year, month), start=1):
        rows.append(SupplierAnnexRow(
            order=idx,
            supplier_nif=p.counterparty_nif,
            supplier_name=p.counterparty_name,
            annex_type="FR" if p.type in (PurchaseType.FT, PurchaseType.FR) else "OT",
            date=p.date,
            document_number=p.number,
            total=p.total,
            base=p.subtotal,
            vat_supported=p.tax_amount,
            vat_deductible=deductible_vat(p),
        ))
    return rows


def regularization_annex(sales: Iterable[Document], year: int, month: int) -> list[RegularizationAnnexRow]:
    reference_period = f"{year}-{month:02d}"
    return [
        RegularizationAnnexRow(
            order=idx,
            client_nif=doc.counterparty_nif or _DEFAULT_CLIENT_NIF,
            client_name=doc.counterparty_name,
            document_type=doc.type.value,
            date=doc.date,
            document_number=doc.number,
            total=doc.total,
            base=doc.subtotal,
            vat=doc.tax_amount,
            reference_period=reference_period,
        )
        for idx, doc in enumerate(regularization_documents(sales, year, month), start=1)
    ]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_model7(
    sales: Iterable[Document],
    purchases: Iterable[Document],
    year: int,
    month: int,
    regime: TaxRegime | str = TaxRegime.GENERAL,
    config: FiscalConfig | None = None,
) -> Model7Report:
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1..12, got {month}")

    regime = TaxRegime(regime)
    sales = list(sales)
    purchases = list(purchases)

    report = Model7Report(
        year=year,
        month=month,
        regime=regime,
        supplier_annex=supplier_annex(purchases, year, month),
        regularization_annex=regularization_annex(sales, year, month),
        valid_sales_count=len(valid_sales(sales, year, month)),
        valid_purchases_count=len(valid_purchases(purchases, year, month)),
        regularization_count=len(regularization_documents(sales, year, month)),
    )
    if regime == TaxRegime.GENERAL:
        report.general = compute_general_regime(sales, purchases, year, month, config)
    else:
        report.simplified = compute_simplified_regime(sales, year, month, config)

    logger.info(
        "Modelo 7 %d-%02d (%s): %d sales, %d purchases, %d regularizations",
        year, month, regime.value,
        report.valid_sales_count, report.valid_purchases_count, report.regularization_count,
    )
    return report
