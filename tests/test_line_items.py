"""Tests for line-item arithmetic and validation."""

from decimal import Decimal

import pytest

from faturacao.domain.exceptions import InvalidLineItemError, InvalidTaxRateError
from faturacao.domain.models.documents import LineItem, LineKind
from faturacao.domain.services.line_items import (
    compute_line_total,
    new_line_item,
    round_money,
    to_decimal,
    validate_tax_rate,
)


class TestComputeLineTotal:

    def test_no_discount(self):
        assert compute_line_total(10, 1000, 0) == Decimal("10000")

    def test_discount_applied(self):
        assert compute_line_total(1, 5000, 10) == Decimal("4500")

    def test_full_discount_is_zero(self):
        assert compute_line_total(3, 200, 100) == Decimal("0")

    def test_full_precision_kept(self):
        # 3 × 33.335 = 100.005; rounding only happens when stored
        total = compute_line_total("3", "33.335", 0)
        assert total == Decimal("100.005")
        assert round_money(total) == Decimal("100.01")

    def test_deterministic(self):
        first = compute_line_total("2.5", "19.99", "7.5")
        assert all(compute_line_total("2.5", "19.99", "7.5") == first for _ in range(5))

    def test_zero_quantity_allowed(self):
        assert compute_line_total(0, 1000, 0) == Decimal("0")

    @pytest.mark.parametrize("qty,price,discount,field", [
        (-1, 100, 0, "quantity"),
        (1, -100, 0, "unit_price"),
        (1, 100, -5, "discount_percent"),
        (1, 100, 101, "discount_percent"),
        ("abc", 100, 0, "quantity"),
        (None, 100, 0, "quantity"),
    ])
    def test_rejects_malformed_input(self, qty, price, discount, field):
        with pytest.raises(InvalidLineItemError) as exc:
            compute_line_total(qty, price, discount)
        assert exc.value.field == field


class TestToDecimal:

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_rejects_bool(self):
        with pytest.raises(InvalidLineItemError):
            to_decimal(True)

    def test_rejects_nan(self):
        with pytest.raises(InvalidLineItemError):
            to_decimal("NaN")


class TestLineItem:

    def test_total_is_derived(self):
        item = LineItem(quantity=2, unit_price="150.50", discount_percent=0)
        assert item.total == Decimal("301.00")
        assert item.tax_amount == Decimal("42.14")

    def test_update_recomputes_total(self):
        item = LineItem(quantity=1, unit_price=100)
        updated = item.update(quantity=3, discount_percent=50)
        assert updated.total == Decimal("150")
        assert updated.id == item.id
        assert item.total == Decimal("100")

    def test_invalid_construction_rejected(self):
        with pytest.raises(InvalidLineItemError):
            LineItem(quantity=1, unit_price=100, discount_percent=150)

    def test_invalid_update_rejected(self):
        item = LineItem(quantity=1, unit_price=100)
        with pytest.raises(InvalidLineItemError):
            item.update(quantity=-2)

    def test_to_dict_stores_rounded_total(self):
        item = LineItem(quantity=3, unit_price="33.335")
        assert item.to_dict()["total"] == "100.01"


class TestNewLineItem:

    def test_defaults(self):
        item = new_line_item()
        assert item.quantity == Decimal("1")
        assert item.unit_price == Decimal("0")
        assert item.discount_percent == Decimal("0")
        assert item.tax_rate_percent == Decimal("14")
        assert item.kind == LineKind.PRODUCT

    def test_overrides(self):
        item = new_line_item(kind="SERVICE", unit_price=500)
        assert item.kind == LineKind.SERVICE
        assert item.total == Decimal("500")

    def test_unique_ids(self):
        assert new_line_item().id != new_line_item().id


class TestValidateTaxRate:

    def test_valid_tiers(self, fiscal_config):
        for rate in (0, 5, 7, 14):
            assert validate_tax_rate(rate, fiscal_config.tax_rate_tiers) == Decimal(rate)

    def test_invalid_tier(self, fiscal_config):
        with pytest.raises(InvalidTaxRateError):
            validate_tax_rate(10, fiscal_config.tax_rate_tiers)

    def test_garbage_rate(self, fiscal_config):
        with pytest.raises(InvalidTaxRateError):
            validate_tax_rate("fourteen", fiscal_config.tax_rate_tiers)
