# faturacao/domain/services/exchange_rate_service.py
"""
Runtime exchange-rate table.

Resolution order:
1. Redis (hot cache, 24h TTL)
2. Configured defaults (final fallback, never fails)

Rates are AOA per unit of the foreign currency. An update validates the new
rate and writes the whole table back to Redis.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from faturacao.config.settings import settings
from faturacao.domain.exceptions import InvalidCurrencyError, RateStoreUnavailableError
from faturacao.domain.services.currency import CurrencyConverter
from faturacao.domain.services.fiscal_config_defaults import get_fiscal_config

logger = logging.getLogger("exchange_rate_service")

_REDIS_TTL = 24 * 60 * 60  # 24 hours
_REDIS_KEY_PREFIX = "exchange_rate:"


class ExchangeRateService:
    """2-layer resolution: Redis -> configured defaults."""

    def __init__(self, redis: aioredis.Redis | None = None) -> None:
        self._redis = redis

    async def _get_redis(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(
                settings.REDIS_URL, decode_responses=True,
            )
        return self._redis

    @staticmethod
    def _table_key() -> str:
        return f"{_REDIS_KEY_PREFIX}{settings.BASE_CURRENCY}:table"

    # ---- Layer 1: Redis ----

    async def _get_from_redis(self) -> dict | None:
        r = await self._get_redis()
        raw = await r.get(self._table_key())
        if raw:
            return json.loads(raw)
        return None

    async def _set_in_redis(self, table: dict[str, Decimal]) -> None:
        r = await self._get_redis()
        await r.set(self._table_key(), json.dumps(table, default=str), ex=_REDIS_TTL)

    # ---- Public API ----

    async def get_table(self) -> dict[str, Decimal]:
        """Current rate table. Never raises."""
        try:
            cached = await self._get_from_redis()
            if cached:
                logger.debug("Exchange rates cache HIT (Redis)")
                return CurrencyConverter(cached).rates
        except (RedisError, ValueError, InvalidCurrencyError):
            logger.warning("Redis failed for exchange rates, using configured defaults")

        return CurrencyConverter(get_fiscal_config().exchange_rates).rates

    async def set_rate(self, code: str, rate: Any) -> dict[str, Decimal]:
        """Validate and store a new rate; returns the updated table."""
        converter = CurrencyConverter(await self.get_table())
        converter.update_rate(code, rate)
        table = converter.rates
        try:
            await self._set_in_redis(table)
        except RedisError as exc:
            logger.error("Could not store exchange rate %s=%s: %s", code, rate, exc)
            raise RateStoreUnavailableError(
                f"Exchange rate for {code} not saved: rate store unavailable"
            ) from exc
        return table

    async def converter(self) -> CurrencyConverter:
        return CurrencyConverter(await self.get_table())


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_service: ExchangeRateService | None = None


def get_exchange_rate_service() -> ExchangeRateService:
    """Get the singleton ExchangeRateService instance."""
    global _service
    if _service is None:
        _service = ExchangeRateService()
    return _service
