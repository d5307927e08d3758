# faturacao/api/v1/routes/dashboard.py
"""Sales overview and text-suggestion endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from faturacao.api.v1.deps import get_rates_service
from faturacao.api.v1.envelope import ok
from faturacao.api.v1.routes.documents import document_with_totals
from faturacao.api.v1.schemas.documents import InsightRequest, SalesSummaryRequest
from faturacao.domain.services.dashboard_service import summarize_sales
from faturacao.domain.services.exchange_rate_service import ExchangeRateService
from faturacao.infrastructure.external import insight_client

logger = logging.getLogger("api.v1.dashboard")

router = APIRouter(tags=["Dashboard"])


@router.post("/dashboard/sales", response_model=dict)
async def sales_summary(
    body: SalesSummaryRequest,
    rates: ExchangeRateService = Depends(get_rates_service),
):
    """Revenue by payment state, in AOA."""
    converter = await rates.converter()
    docs = [document_with_totals(d, converter) for d in body.documents]
    return ok(data=summarize_sales(docs).to_dict())


@router.post("/insights", response_model=dict)
async def insights(body: InsightRequest):
    """Optional text suggestion; empty when the service is unavailable."""
    text = await insight_client.generate_suggestion(body.prompt)
    message = None if text else "No suggestion available"
    return ok(data={"text": text}, message=message)
