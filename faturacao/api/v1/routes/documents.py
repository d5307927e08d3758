# faturacao/api/v1/routes/documents.py
"""
Document totals, lifecycle and Modelo 7 endpoints.

Documents are posted whole; nothing but the series counters is stored.
Totals are always recomputed here, whatever the client sends. Certification,
cancellation and receipts consume numbers from the posted series.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from fastapi import APIRouter, Depends

from faturacao.api.v1.deps import (
    get_allocator,
    get_rates_service,
    get_series_repository,
    get_user_id,
    load_series_or_404,
)
from faturacao.api.v1.envelope import ok
from faturacao.api.v1.schemas.documents import (
    CancelRequest,
    CertifyRequest,
    DocumentIn,
    Model7Request,
    ReceiptRequest,
)
from faturacao.domain.models.documents import Document, DocumentKind
from faturacao.domain.services.currency import CurrencyConverter
from faturacao.domain.services.document_hash import short_hash
from faturacao.domain.services.document_totals import apply_totals, compute_totals, tax_summary
from faturacao.domain.services.document_workflow import cancel_document, certify, issue_receipt
from faturacao.domain.services.exchange_rate_service import ExchangeRateService
from faturacao.domain.services.line_items import round_money
from faturacao.domain.services.model7_service import build_model7
from faturacao.domain.services.sequence_allocator import SequenceAllocator
from faturacao.infrastructure.db.repositories import SeriesRepository

logger = logging.getLogger("api.v1.documents")

router = APIRouter(tags=["Documents"])


def _to_document(body: DocumentIn, converter: CurrencyConverter) -> Document:
    rate = converter.resolve_rate(body.currency, body.exchange_rate)
    return body.to_domain(rate)


def document_with_totals(body: DocumentIn, converter: CurrencyConverter) -> Document:
    doc = _to_document(body, converter)
    return replace(doc, **apply_totals(doc))


def _serialize(doc: Document | None) -> dict | None:
    if doc is None:
        return None
    data = doc.to_dict()
    data["short_hash"] = short_hash(doc.hash)
    return data


# ---------------------------------------------------------------------------
# POST totals
# ---------------------------------------------------------------------------

@router.post("/documents/totals", response_model=dict)
async def document_totals(
    body: DocumentIn,
    rates: ExchangeRateService = Depends(get_rates_service),
):
    """Compute totals and the per-rate tax summary for a posted document."""
    converter = await rates.converter()
    doc = _to_document(body, converter)
    totals = compute_totals(doc)
    return ok(data={
        "exchange_rate": str(doc.exchange_rate),
        "items": [item.to_dict() for item in doc.items],
        "totals": totals.to_dict(),
        "tax_summary": [
            {
                "rate": str(line.rate),
                "base": str(round_money(line.base)),
                "amount": str(round_money(line.amount)),
            }
            for line in tax_summary(doc.items)
        ],
    })


# ---------------------------------------------------------------------------
# POST Modelo 7
# ---------------------------------------------------------------------------

@router.post("/model7", response_model=dict)
async def model7(
    body: Model7Request,
    rates: ExchangeRateService = Depends(get_rates_service),
):
    """Build the periodic VAT declaration for the posted documents."""
    converter = await rates.converter()
    sales = [document_with_totals(d, converter) for d in body.sales]
    purchases = [
        document_with_totals(d.model_copy(update={"kind": DocumentKind.PURCHASE}), converter)
        for d in body.purchases
    ]
    report = build_model7(sales, purchases, body.year, body.month, body.regime)
    return ok(data=report.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@router.post("/documents/certify", response_model=dict)
async def certify_document(
    body: CertifyRequest,
    repo: SeriesRepository = Depends(get_series_repository),
    allocator: SequenceAllocator = Depends(get_allocator),
    rates: ExchangeRateService = Depends(get_rates_service),
    user_id: str | None = Depends(get_user_id),
):
    """Number, total and sign a sales document."""
    series = await load_series_or_404(repo, body.series_id)
    doc = _to_document(body.document, await rates.converter())
    certified = await certify(doc, series, allocator, user_id, previous_hash=body.previous_hash)
    return ok(data=_serialize(certified), message=f"{certified.number} certified")


@router.post("/documents/cancel", response_model=dict)
async def cancel(
    body: CancelRequest,
    repo: SeriesRepository = Depends(get_series_repository),
    allocator: SequenceAllocator = Depends(get_allocator),
    rates: ExchangeRateService = Depends(get_rates_service),
    user_id: str | None = Depends(get_user_id),
):
    """Cancel a document; certified invoices get a linked credit note."""
    series = await load_series_or_404(repo, body.series_id) if body.series_id else None
    doc = document_with_totals(body.document, await rates.converter())
    cancelled, note = await cancel_document(doc, body.reason.strip(), series, allocator, user_id)
    return ok(data={"document": _serialize(cancelled), "note": _serialize(note)})


@router.post("/documents/receipt", response_model=dict)
async def receipt(
    body: ReceiptRequest,
    repo: SeriesRepository = Depends(get_series_repository),
    allocator: SequenceAllocator = Depends(get_allocator),
    rates: ExchangeRateService = Depends(get_rates_service),
    user_id: str | None = Depends(get_user_id),
):
    """Settle a certified invoice with a receipt (RG)."""
    series = await load_series_or_404(repo, body.series_id)
    invoice = document_with_totals(body.invoice, await rates.converter())
    settled, rg = await issue_receipt(
        invoice, body.amount, series, allocator, user_id,
        body.payment_method, body.cash_register_id, previous_hash=body.previous_hash,
    )
    return ok(data={"invoice": _serialize(settled), "receipt": _serialize(rg)})
