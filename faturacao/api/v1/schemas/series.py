# faturacao/api/v1/schemas/series.py
"""Pydantic schemas for numbering series and exchange-rate endpoints."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from faturacao.domain.models.documents import SeriesType


class SeriesCreate(BaseModel):
    """Request body for opening a numbering series."""

    code: str = Field(min_length=1, max_length=20)
    year: int = Field(ge=2000, le=2100)
    name: str = ""
    series_type: SeriesType = SeriesType.NORMAL
    is_active: bool = True
    allowed_user_ids: list[str] = Field(default_factory=list)


class AllocateRequest(BaseModel):
    document_type: str = Field(min_length=1, max_length=10)
    year: int | None = None


class ManualNumberRequest(BaseModel):
    document_type: str = Field(min_length=1, max_length=10)
    number: int = Field(ge=1)
    year: int | None = None


class ExchangeRateUpdate(BaseModel):
    rate: Decimal = Field(gt=0, description="AOA per unit of the currency")
