# faturacao/domain/services/document_totals.py
"""
Document totals engine: one implementation for sales and purchases.

Order of computation (later terms use the earlier intermediate values,
never an already-discounted base):

  1. subtotal            = Σ line.total
  2. tax                 = Σ line.total × rate/100   (global discount does not
                           reduce the tax base)
  3. global discount     = subtotal × global%/100
  4. withholding (sales) = service_total × 6.5 %  if service_total in AOA ≥ 20 000
  5. retention           = tax × {NONE: 0, CAT_50: 0.5, CAT_100: 1}
  6. total               = subtotal + tax − discount − withholding − retention
  7. contra-value        = total (AOA) or total × exchange_rate
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from faturacao.domain.exceptions import InvalidCurrencyError
from faturacao.domain.models.documents import (
    Currency,
    Document,
    DocumentKind,
    LineItem,
    LineKind,
    RetentionMode,
)
from faturacao.domain.models.fiscal_config import FiscalConfig
from faturacao.domain.services.fiscal_config_defaults import get_fiscal_config
from faturacao.domain.services.line_items import (
    HUNDRED,
    ZERO,
    round_money,
    validate_discount,
    validate_tax_rate,
)

logger = logging.getLogger("document_totals")

NEGATIVE_TOTAL = "NEGATIVE_TOTAL"


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DocumentTotals:
    """Totals of a single document, at full precision."""
    subtotal: Decimal = ZERO
    tax_amount: Decimal = ZERO
    global_discount_amount: Decimal = ZERO
    withholding_amount: Decimal = ZERO
    retention_amount: Decimal = ZERO
    total: Decimal = ZERO
    contra_value: Decimal = ZERO
    warnings: tuple[str, ...] = ()

    def as_fields(self) -> dict[str, Decimal]:
        """Totals keyed by Document field name, for ``dataclasses.replace``."""
        return {
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "global_discount_amount": self.global_discount_amount,
            "withholding_amount": self.withholding_amount,
            "retention_amount": self.retention_amount,
            "total": self.total,
            "contra_value": self.contra_value,
        }

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {k: str(round_money(v)) for k, v in self.as_fields().items()}
        data["warnings"] = list(self.warnings)
        return data


@dataclass(frozen=True)
class TaxSummaryLine:
    """Per-rate breakdown printed on the document."""
    rate: Decimal
    base: Decimal = ZERO
    amount: Decimal = ZERO


@dataclass
class _Accumulator:
    base: Decimal = ZERO
    amount: Decimal = ZERO


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def compute_totals(document: Document, config: FiscalConfig | None = None) -> DocumentTotals:
    """Compute all totals of ``document``. Pure; callers persist the result."""
    cfg = config or get_fiscal_config()

    rate = _validated_rate(document.currency, document.exchange_rate)
    global_discount = validate_discount(document.global_discount_percent, "global_discount_percent")
    for item in document.items:
        validate_tax_rate(item.tax_rate_percent, cfg.tax_rate_tiers)

    # 1. Subtotal (lines already net of their own discount)
    subtotal = sum((item.total for item in document.items), ZERO)

    # 2. Tax on the per-line discounted amounts
    if document.kind == DocumentKind.PURCHASE and document.declared_tax_amount is not None:
        tax_amount = document.declared_tax_amount
    else:
        tax_amount = sum((item.tax_amount for item in document.items), ZERO)

    # 3. Global discount
    global_discount_amount = subtotal * global_discount / HUNDRED

    # 4. Withholding at source on services (sales only)
    withholding_amount = ZERO
    if document.kind == DocumentKind.SALE:
        withholding_amount = compute_withholding(document.items, rate, cfg)

    # 5. Cativation of VAT
    retention_amount = compute_retention(tax_amount, document.retention_mode, cfg)

    # 6. Grand total (never clamped)
    total = subtotal + tax_amount - global_discount_amount - withholding_amount - retention_amount

    # 7. Value in AOA
    contra_value = total if document.currency == Currency.AOA else total * rate

    warnings: list[str] = []
    if total < ZERO:
        warnings.append(NEGATIVE_TOTAL)
        logger.warning(
            "Negative total for document %s (%s): %.2f",
            document.number, document.type.value, total,
        )

    return DocumentTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        global_discount_amount=global_discount_amount,
        withholding_amount=withholding_amount,
        retention_amount=retention_amount,
        total=total,
        contra_value=contra_value,
        warnings=tuple(warnings),
    )


def compute_withholding(
    items: Iterable[LineItem],
    exchange_rate: Decimal,
    config: FiscalConfig | None = None,
) -> Decimal:
    """6.5 % of the service total when the services reach the AOA threshold.

    The threshold is checked in AOA; the amount is in document currency.
    """
    cfg = config or get_fiscal_config()
    service_total = sum(
        (item.total for item in items if item.kind == LineKind.SERVICE), ZERO,
    )
    if service_total * exchange_rate >= cfg.withholding_threshold_aoa:
        return service_total * cfg.withholding_rate
    return ZERO


def compute_retention(
    tax_amount: Decimal,
    mode: RetentionMode | str,
    config: FiscalConfig | None = None,
) -> Decimal:
    cfg = config or get_fiscal_config()
    factor = cfg.retention_factors.get(RetentionMode(mode).value, ZERO)
    return tax_amount * factor


def tax_summary(items: Iterable[LineItem]) -> list[TaxSummaryLine]:
    """Per-rate base and tax, highest rate first."""
    buckets: dict[Decimal, _Accumulator] = {}
    for item in items:
        acc = buckets.setdefault(item.tax_rate_percent, _Accumulator())
        acc.base += item.quantity * item.unit_price * (Decimal("1") - item.discount_percent / HUNDRED)
        acc.amount += item.total * item.tax_rate_percent / HUNDRED
    return [
        TaxSummaryLine(rate=rate, base=acc.base, amount=acc.amount)
        for rate, acc in sorted(buckets.items(), key=lambda kv: kv[0], reverse=True)
    ]


def apply_totals(document: Document, config: FiscalConfig | None = None) -> dict[str, Decimal]:
    """Totals keyed by Document field, for the caller to persist."""
    return compute_totals(document, config).as_fields()


# ---------------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------------

def _validated_rate(currency: Currency, exchange_rate: Decimal) -> Decimal:
    if currency == Currency.AOA:
        return Decimal("1")
    if exchange_rate is None or exchange_rate <= ZERO:
        raise InvalidCurrencyError(
            f"Exchange rate for {currency.value} must be positive, got {exchange_rate}"
        )
    return exchange_rate
