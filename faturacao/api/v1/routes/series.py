# faturacao/api/v1/routes/series.py
"""
Numbering series endpoints.

Allocation is delegated to the SequenceAllocator; inactive series and
unauthorized users are rejected before any number is consumed.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, status

from faturacao.api.v1.deps import get_allocator, get_series_repository, get_user_id, load_series_or_404
from faturacao.api.v1.envelope import ok
from faturacao.api.v1.schemas.series import AllocateRequest, ManualNumberRequest, SeriesCreate
from faturacao.domain.models.documents import DocumentSeries
from faturacao.domain.services.sequence_allocator import SequenceAllocator
from faturacao.infrastructure.db.repositories import SeriesRepository

logger = logging.getLogger("api.v1.series")

router = APIRouter(prefix="/series", tags=["Series"])


# ---------------------------------------------------------------------------
# Series management
# ---------------------------------------------------------------------------

@router.get("", response_model=dict)
async def list_series(
    year: int | None = Query(default=None, description="Filter by fiscal year"),
    repo: SeriesRepository = Depends(get_series_repository),
):
    """List numbering series with their per-type high-water marks."""
    items = await repo.list_series(year)
    return ok(data=[s.to_dict() for s in items])


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_series(
    body: SeriesCreate,
    repo: SeriesRepository = Depends(get_series_repository),
    user_id: str | None = Depends(get_user_id),
):
    """Open a new series for a fiscal year."""
    series = DocumentSeries(
        code=body.code.strip().upper(),
        year=body.year,
        name=body.name,
        series_type=body.series_type,
        is_active=body.is_active,
        allowed_user_ids=list(body.allowed_user_ids),
    )
    created = await repo.add(series)
    logger.info("Series %s%d created by %s", created.code, created.year, user_id)
    return ok(data=created.to_dict(), message="Series created")


# ---------------------------------------------------------------------------
# Numbering
# ---------------------------------------------------------------------------

@router.post("/{series_id}/allocate", response_model=dict)
async def allocate_number(
    series_id: str,
    body: AllocateRequest,
    repo: SeriesRepository = Depends(get_series_repository),
    allocator: SequenceAllocator = Depends(get_allocator),
    user_id: str | None = Depends(get_user_id),
):
    """Issue the next number for a document type."""
    series = await load_series_or_404(repo, series_id)
    allocated = await allocator.allocate(series, body.document_type, user_id, body.year)
    return ok(data=allocated.to_dict())


@router.post("/{series_id}/manual", response_model=dict)
async def record_manual_number(
    series_id: str,
    body: ManualNumberRequest,
    repo: SeriesRepository = Depends(get_series_repository),
    allocator: SequenceAllocator = Depends(get_allocator),
    user_id: str | None = Depends(get_user_id),
):
    """Register a number typed from a pre-printed book; later allocations continue after it."""
    series = await load_series_or_404(repo, series_id)
    allocated = await allocator.record_manual(
        series, body.document_type, body.number, user_id, body.year,
    )
    return ok(data=allocated.to_dict())
