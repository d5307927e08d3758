# faturacao/domain/services/fiscal_config_defaults.py
"""
Fiscal-parameter resolution for the pure engines.

Settings (env / .env) are the source of truth; the dataclass defaults are
the last-resort fallback when a setting cannot be parsed.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from faturacao.config.settings import settings
from faturacao.domain.models.fiscal_config import FiscalConfig

logger = logging.getLogger("fiscal_config")

_cached: FiscalConfig | None = None


def default_fiscal_config() -> FiscalConfig:
    """Return the hardcoded fiscal configuration."""
    return FiscalConfig(source="hardcoded")


def fiscal_config_from_settings() -> FiscalConfig:
    """Build a FiscalConfig from application settings."""
    try:
        return FiscalConfig(
            base_currency=settings.BASE_CURRENCY.upper(),
            tax_rate_tiers=frozenset(Decimal(str(t)) for t in settings.TAX_RATE_TIERS),
            default_tax_rate=Decimal(settings.DEFAULT_TAX_RATE),
            withholding_threshold_aoa=Decimal(settings.WITHHOLDING_THRESHOLD_AOA),
            withholding_rate=Decimal(settings.WITHHOLDING_RATE),
            retention_factors={k.upper(): Decimal(str(v)) for k, v in settings.RETENTION_FACTORS.items()},
            simplified_regime_rate=Decimal(settings.SIMPLIFIED_REGIME_RATE),
            exchange_rates={k.upper(): Decimal(str(v)) for k, v in settings.DEFAULT_EXCHANGE_RATES.items()},
            source="settings",
        )
    except (InvalidOperation, TypeError, ValueError):
        logger.exception("Invalid fiscal settings, falling back to hardcoded defaults")
        return default_fiscal_config()


def get_fiscal_config() -> FiscalConfig:
    """Process-wide fiscal configuration (built once from settings)."""
    global _cached
    if _cached is None:
        _cached = fiscal_config_from_settings()
    return _cached


def set_fiscal_config(config: FiscalConfig | None) -> None:
    """Override the process-wide configuration (None resets to settings)."""
    global _cached
    _cached = config
