# faturacao/domain/services/currency.py
"""Exchange-rate lookup and conversion to the base currency (AOA)."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from faturacao.domain.exceptions import InvalidCurrencyError
from faturacao.domain.models.documents import Currency
from faturacao.domain.services.fiscal_config_defaults import get_fiscal_config
from faturacao.domain.services.line_items import ZERO

logger = logging.getLogger("currency")


def _positive_rate(code: str, rate: Any) -> Decimal:
    try:
        value = Decimal(str(rate))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidCurrencyError(f"Exchange rate for {code} is not a number: {rate!r}")
    if not value.is_finite() or value <= ZERO:
        raise InvalidCurrencyError(f"Exchange rate for {code} must be positive, got {rate!r}")
    return value


def _currency_code(code: Any) -> str:
    raw = code.value if isinstance(code, Currency) else str(code or "").strip().upper()
    try:
        return Currency(raw).value
    except ValueError:
        raise InvalidCurrencyError(f"Unknown currency: {code!r}")


class CurrencyConverter:
    """AOA-per-unit rate table. The seed table is advisory and updatable."""

    def __init__(self, rates: dict[str, Any] | None = None, base_currency: str = "AOA") -> None:
        seed = rates if rates is not None else get_fiscal_config().exchange_rates
        self.base_currency = base_currency
        self._rates: dict[str, Decimal] = {}
        for code, rate in seed.items():
            self._rates[_currency_code(code)] = _positive_rate(code, rate)
        self._rates[base_currency] = Decimal("1")

    @property
    def rates(self) -> dict[str, Decimal]:
        return dict(self._rates)

    def rate_for(self, code: Currency | str) -> Decimal:
        currency = _currency_code(code)
        if currency == self.base_currency:
            return Decimal("1")
        rate = self._rates.get(currency)
        if rate is None:
            raise InvalidCurrencyError(f"No exchange rate configured for {currency}")
        return rate

    def resolve_rate(self, code: Currency | str, override: Any = None) -> Decimal:
        """An explicit per-document rate wins over the table; AOA is always 1."""
        currency = _currency_code(code)
        if currency == self.base_currency:
            return Decimal("1")
        if override is not None:
            return _positive_rate(currency, override)
        return self.rate_for(currency)

    def update_rate(self, code: Currency | str, rate: Any) -> Decimal:
        currency = _currency_code(code)
        if currency == self.base_currency:
            raise InvalidCurrencyError(f"The base currency {currency} has a fixed rate of 1")
        value = _positive_rate(currency, rate)
        self._rates[currency] = value
        logger.info("Exchange rate updated: %s = %s %s", currency, value, self.base_currency)
        return value

    @staticmethod
    def to_base(amount: Any, rate: Any) -> Decimal:
        """Amount in document currency → amount in AOA."""
        return Decimal(str(amount)) * _positive_rate("conversion", rate)
