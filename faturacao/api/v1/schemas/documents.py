# faturacao/api/v1/schemas/documents.py
"""Pydantic schemas for document, lifecycle and report endpoints."""

from __future__ import annotations

from datetime import date as date_type
from decimal import Decimal

from pydantic import BaseModel, Field

from faturacao.domain.models.documents import (
    Currency,
    Document,
    DocumentKind,
    DocumentStatus,
    LineItem,
    LineKind,
    RetentionMode,
)
from faturacao.domain.models.model7 import TaxRegime


class LineItemIn(BaseModel):
    """One document line as posted by a client."""

    description: str = ""
    quantity: Decimal = Field(default=Decimal("1"))
    unit_price: Decimal = Field(default=Decimal("0"))
    discount_percent: Decimal = Field(default=Decimal("0"))
    tax_rate_percent: Decimal = Field(default=Decimal("14"))
    kind: LineKind = LineKind.PRODUCT
    product_id: str | None = None

    def to_domain(self) -> LineItem:
        return LineItem(
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            discount_percent=self.discount_percent,
            tax_rate_percent=self.tax_rate_percent,
            kind=self.kind,
            product_id=self.product_id,
        )


class DocumentIn(BaseModel):
    """A sales or purchase document; totals are always recomputed server-side."""

    kind: DocumentKind = DocumentKind.SALE
    type: str = "FT"
    date: date_type | None = None
    # Omitted: draft for sales, pending for purchases
    status: DocumentStatus | None = None
    is_certified: bool = False
    number: str = "DRAFT"
    # Identity of an already issued document (cancellation, settlement)
    id: str | None = None
    series_id: str | None = None
    hash: str = ""
    due_date: date_type | None = None
    currency: Currency = Currency.AOA
    exchange_rate: Decimal | None = None
    global_discount_percent: Decimal = Field(default=Decimal("0"))
    retention_mode: RetentionMode = RetentionMode.NONE
    counterparty_id: str | None = None
    counterparty_name: str = ""
    counterparty_nif: str | None = None
    payment_method: str | None = None
    cash_register_id: str | None = None
    paid_amount: Decimal = Field(default=Decimal("0"))
    notes: str = ""
    declared_tax_amount: Decimal | None = None
    items: list[LineItemIn] = Field(default_factory=list)

    def to_domain(self, exchange_rate: Decimal) -> Document:
        kwargs = {}
        if self.date is not None:
            kwargs["date"] = self.date
        if self.id:
            kwargs["id"] = self.id
        return Document(
            kind=self.kind,
            type=self.type,
            status=self.status,
            is_certified=self.is_certified,
            number=self.number,
            series_id=self.series_id,
            hash=self.hash,
            due_date=self.due_date,
            currency=self.currency,
            exchange_rate=exchange_rate,
            global_discount_percent=self.global_discount_percent,
            retention_mode=self.retention_mode,
            counterparty_id=self.counterparty_id,
            counterparty_name=self.counterparty_name,
            counterparty_nif=self.counterparty_nif,
            payment_method=self.payment_method,
            cash_register_id=self.cash_register_id,
            paid_amount=self.paid_amount,
            notes=self.notes,
            declared_tax_amount=self.declared_tax_amount,
            items=tuple(item.to_domain() for item in self.items),
            **kwargs,
        )


class Model7Request(BaseModel):
    """Request body for building a periodic VAT declaration."""

    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)
    regime: TaxRegime = TaxRegime.GENERAL
    sales: list[DocumentIn] = Field(default_factory=list)
    purchases: list[DocumentIn] = Field(default_factory=list)


class CertifyRequest(BaseModel):
    """Issue a sales document on a series; ``previous_hash`` chains the signature."""

    document: DocumentIn
    series_id: str
    previous_hash: str = ""


class CancelRequest(BaseModel):
    document: DocumentIn
    reason: str = Field(min_length=1, max_length=500)
    # Needed only when the document is certified and gets a cancellation note
    series_id: str | None = None


class ReceiptRequest(BaseModel):
    invoice: DocumentIn
    amount: Decimal
    series_id: str
    payment_method: str = Field(min_length=1)
    cash_register_id: str = Field(min_length=1)
    previous_hash: str = ""


class SalesSummaryRequest(BaseModel):
    documents: list[DocumentIn] = Field(default_factory=list)


class InsightRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=4000)
