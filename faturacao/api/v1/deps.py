# faturacao/api/v1/deps.py
"""
FastAPI dependencies for the v1 API layer.

The acting user is an opaque id supplied by the caller in ``X-User-Id``;
series permissions are checked against it by the sequence allocator.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from faturacao.core.db import AsyncSessionLocal, get_db
from faturacao.domain.models.documents import DocumentSeries
from faturacao.domain.services.exchange_rate_service import (
    ExchangeRateService,
    get_exchange_rate_service,
)
from faturacao.domain.services.sequence_allocator import SequenceAllocator
from faturacao.infrastructure.db.repositories import SeriesRepository, SqlCounterStore

logger = logging.getLogger("api.v1.deps")

_allocator: SequenceAllocator | None = None


async def get_user_id(x_user_id: str | None = Header(None)) -> str | None:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


def get_allocator() -> SequenceAllocator:
    """Process-wide allocator over the durable counter store."""
    global _allocator
    if _allocator is None:
        _allocator = SequenceAllocator(SqlCounterStore(AsyncSessionLocal))
    return _allocator


async def get_series_repository(db: AsyncSession = Depends(get_db)) -> SeriesRepository:
    return SeriesRepository(db)


def get_rates_service() -> ExchangeRateService:
    return get_exchange_rate_service()


async def load_series_or_404(repo: SeriesRepository, series_id: str) -> DocumentSeries:
    series = await repo.load(series_id)
    if series is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Series not found")
    return series
