# faturacao/api/v1/routes/exchange_rates.py
"""Exchange-rate table endpoints (AOA per unit)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from faturacao.api.v1.deps import get_rates_service, get_user_id
from faturacao.api.v1.envelope import ok
from faturacao.api.v1.schemas.series import ExchangeRateUpdate
from faturacao.domain.services.exchange_rate_service import ExchangeRateService

logger = logging.getLogger("api.v1.exchange_rates")

router = APIRouter(prefix="/exchange-rates", tags=["Exchange Rates"])


def _serialize(table: dict) -> dict[str, str]:
    return {code: str(rate) for code, rate in sorted(table.items())}


@router.get("", response_model=dict)
async def get_exchange_rates(
    rates: ExchangeRateService = Depends(get_rates_service),
):
    """Current rate table."""
    return ok(data=_serialize(await rates.get_table()))


@router.put("/{code}", response_model=dict)
async def update_exchange_rate(
    code: str,
    body: ExchangeRateUpdate,
    rates: ExchangeRateService = Depends(get_rates_service),
    user_id: str | None = Depends(get_user_id),
):
    """Replace the rate of one currency."""
    table = await rates.set_rate(code, body.rate)
    logger.info("Exchange rate %s set to %s by %s", code.upper(), body.rate, user_id)
    return ok(data=_serialize(table), message=f"Rate for {code.upper()} updated")
