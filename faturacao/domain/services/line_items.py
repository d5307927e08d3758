# faturacao/domain/services/line_items.py
"""
Line-item arithmetic.

total = quantity × unit_price × (1 − discount/100), at full precision.
Rounding to cents happens only when a value is stored or printed.

Validation policy: malformed input is rejected with InvalidLineItemError
(never clamped).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from faturacao.domain.exceptions import InvalidLineItemError, InvalidTaxRateError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """Convert int/float/str/Decimal to Decimal, rejecting garbage."""
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise InvalidLineItemError(field, value, "not a number")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidLineItemError(field, value, "not a number")
    if not result.is_finite():
        raise InvalidLineItemError(field, value, "not a finite number")
    return result


def round_money(value: Decimal) -> Decimal:
    """Round to 2 decimals, half up (storage / presentation only)."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_discount(discount_percent: Any, field: str = "discount_percent") -> Decimal:
    discount = to_decimal(discount_percent, field)
    if discount < ZERO or discount > HUNDRED:
        raise InvalidLineItemError(field, discount_percent, "must be between 0 and 100")
    return discount


def compute_line_total(quantity: Any, unit_price: Any, discount_percent: Any = ZERO) -> Decimal:
    """Net total of one line. Pure; raises InvalidLineItemError on bad input."""
    qty = to_decimal(quantity, "quantity")
    price = to_decimal(unit_price, "unit_price")
    discount = validate_discount(discount_percent)

    if qty < ZERO:
        raise InvalidLineItemError("quantity", quantity, "must not be negative")
    if price < ZERO:
        raise InvalidLineItemError("unit_price", unit_price, "must not be negative")

    return qty * price * (Decimal("1") - discount / HUNDRED)


def validate_tax_rate(rate: Any, allowed: frozenset[Decimal] | set[Decimal]) -> Decimal:
    """Return ``rate`` as Decimal or raise InvalidTaxRateError."""
    try:
        value = to_decimal(rate, "tax_rate_percent")
    except InvalidLineItemError:
        raise InvalidTaxRateError(rate, sorted(str(r) for r in allowed))
    if value not in allowed:
        raise InvalidTaxRateError(rate, sorted(str(r) for r in allowed))
    return value


def new_line_item(**overrides: Any):
    """A fresh row with the form defaults: qty 1, no discount, 14 % VAT, product."""
    from faturacao.domain.models.documents import LineItem, LineKind
    from faturacao.domain.services.fiscal_config_defaults import get_fiscal_config

    values: dict[str, Any] = {
        "quantity": Decimal("1"),
        "unit_price": ZERO,
        "discount_percent": ZERO,
        "tax_rate_percent": get_fiscal_config().default_tax_rate,
        "kind": LineKind.PRODUCT,
    }
    values.update(overrides)
    return LineItem(**values)
