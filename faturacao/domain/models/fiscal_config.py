# faturacao/domain/models/fiscal_config.py
"""
Domain dataclass for the fiscal parameters consumed by the pure engines.

FiscalConfig: tax tiers, withholding, cativation factors, simplified-regime
rate and the seed exchange-rate table. Every value is overridable so a
regulatory change needs no code change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


def _default_rates() -> dict[str, Decimal]:
    return {
        "AOA": Decimal("1"),
        "USD": Decimal("850"),
        "EUR": Decimal("920"),
        "BRL": Decimal("170"),
    }


def _default_retention() -> dict[str, Decimal]:
    return {
        "NONE": Decimal("0"),
        "CAT_50": Decimal("0.5"),
        "CAT_100": Decimal("1"),
    }


@dataclass
class FiscalConfig:
    """All fiscal parameters for document totals and Modelo 7."""

    base_currency: str = "AOA"
    tax_rate_tiers: frozenset[Decimal] = field(
        default_factory=lambda: frozenset({Decimal("0"), Decimal("5"), Decimal("7"), Decimal("14")}),
    )
    default_tax_rate: Decimal = Decimal("14")

    # Retenção na fonte on services
    withholding_threshold_aoa: Decimal = Decimal("20000")
    withholding_rate: Decimal = Decimal("0.065")

    # Cativação of VAT
    retention_factors: dict[str, Decimal] = field(default_factory=_default_retention)

    # Regime simplificado flat rate
    simplified_regime_rate: Decimal = Decimal("0.07")

    # Seed exchange rates (AOA per unit of foreign currency)
    exchange_rates: dict[str, Decimal] = field(default_factory=_default_rates)

    # Metadata
    source: str = "hardcoded"  # "hardcoded", "settings", "redis", "manual"

    def is_valid_rate(self, rate: Decimal) -> bool:
        return Decimal(str(rate)) in self.tax_rate_tiers

    # ---- serialization ----

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-safe dict for Redis / API output."""
        return {
            "base_currency": self.base_currency,
            "tax_rate_tiers": sorted(str(r) for r in self.tax_rate_tiers),
            "default_tax_rate": str(self.default_tax_rate),
            "withholding_threshold_aoa": str(self.withholding_threshold_aoa),
            "withholding_rate": str(self.withholding_rate),
            "retention_factors": {k: str(v) for k, v in self.retention_factors.items()},
            "simplified_regime_rate": str(self.simplified_regime_rate),
            "exchange_rates": {k: str(v) for k, v in self.exchange_rates.items()},
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FiscalConfig:
        """Reconstruct from a stored JSON dict; missing keys keep defaults."""

        def _d(key: str, default: str) -> Decimal:
            val = data.get(key)
            return Decimal(str(val)) if val is not None else Decimal(default)

        tiers = data.get("tax_rate_tiers")
        retention = data.get("retention_factors")
        rates = data.get("exchange_rates")

        return cls(
            base_currency=data.get("base_currency", "AOA"),
            tax_rate_tiers=(
                frozenset(Decimal(str(t)) for t in tiers)
                if tiers is not None
                else frozenset({Decimal("0"), Decimal("5"), Decimal("7"), Decimal("14")})
            ),
            default_tax_rate=_d("default_tax_rate", "14"),
            withholding_threshold_aoa=_d("withholding_threshold_aoa", "20000"),
            withholding_rate=_d("withholding_rate", "0.065"),
            retention_factors=(
                {k: Decimal(str(v)) for k, v in retention.items()}
                if retention is not None
                else _default_retention()
            ),
            simplified_regime_rate=_d("simplified_regime_rate", "0.07"),
            exchange_rates=(
                {k.upper(): Decimal(str(v)) for k, v in rates.items()}
                if rates is not None
                else _default_rates()
            ),
            source=data.get("source", "hardcoded"),
        )
