# faturacao/domain/services/document_workflow.py
"""
Document lifecycle: draft → certified → (paid | cancelled).

  - DocumentDraft is the mutable aggregate under construction
  - certify() validates, allocates the number, computes totals, signs and
    freezes the document in one step
  - after certification only a handful of administrative fields can change
  - cancellation never frees the number; certified invoices spawn a linked
    credit note (and credit notes a linked debit note)
  - settlement issues a receipt (RG) linked to the invoice
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from faturacao.domain.exceptions import (
    CertifiedDocumentError,
    DocumentValidationError,
    InvalidStatusTransitionError,
)
from faturacao.domain.models.documents import (
    Currency,
    Document,
    DocumentKind,
    DocumentSeries,
    DocumentStatus,
    DocumentType,
    LineItem,
    LineKind,
    PurchaseType,
    RetentionMode,
)
from faturacao.domain.models.fiscal_config import FiscalConfig
from faturacao.domain.services.currency import CurrencyConverter
from faturacao.domain.services.document_hash import sign_document
from faturacao.domain.services.document_totals import DocumentTotals, apply_totals, compute_totals
from faturacao.domain.services.line_items import ZERO, new_line_item, to_decimal, validate_discount
from faturacao.domain.services.sequence_allocator import SequenceAllocator

logger = logging.getLogger("document_workflow")


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

VALID_TRANSITIONS: dict[str, list[str]] = {
    "draft": ["pending", "paid", "cancelled"],
    "pending": ["paid", "partial", "overdue", "cancelled"],
    "partial": ["paid", "overdue", "cancelled"],
    "overdue": ["paid", "partial", "cancelled"],
    "paid": ["cancelled"],
    "cancelled": [],  # terminal
}

# Fields an issued document may still change
CERTIFIED_EDITABLE_FIELDS = frozenset({
    "work_location_id",
    "payment_method",
    "cash_register_id",
    "date",
    "due_date",
})

# Documents settled on issue; they need a payment method and a cash register
SETTLED_ON_ISSUE = frozenset({DocumentType.FR, DocumentType.RG})

# Cancelling a certified document of these types issues the mapped note
CANCELLATION_NOTE_TYPES: dict[DocumentType, DocumentType] = {
    DocumentType.FT: DocumentType.NC,
    DocumentType.FR: DocumentType.NC,
    DocumentType.VD: DocumentType.NC,
    DocumentType.ND: DocumentType.NC,
    DocumentType.FS: DocumentType.NC,
    DocumentType.NC: DocumentType.ND,
}


def validate_status_transition(current_status: str, new_status: str) -> None:
    """Raise InvalidStatusTransitionError if the transition is not allowed."""
    allowed = VALID_TRANSITIONS.get(current_status, [])
    if new_status not in allowed:
        raise InvalidStatusTransitionError(
            f"Cannot transition from '{current_status}' to '{new_status}'. "
            f"Allowed: {allowed}"
        )


def transition_status(document: Document, new_status: DocumentStatus | str) -> Document:
    new_status = DocumentStatus(new_status)
    validate_status_transition(document.status.value, new_status.value)
    logger.info(
        "Document %s: %s → %s", document.number, document.status.value, new_status.value,
    )
    return replace(document, status=new_status)


# ---------------------------------------------------------------------------
# Draft builder
# ---------------------------------------------------------------------------

@dataclass
class DocumentDraft:
    """Mutable document under construction. Nothing here is fiscal yet."""

    kind: DocumentKind = DocumentKind.SALE
    type: DocumentType | PurchaseType = DocumentType.FT
    date: date = field(default_factory=date.today)
    due_date: date | None = None
    items: list[LineItem] = field(default_factory=list)
    currency: Currency = Currency.AOA
    exchange_rate: Decimal = Decimal("1")
    global_discount_percent: Decimal = ZERO
    retention_mode: RetentionMode = RetentionMode.NONE
    counterparty_id: str | None = None
    counterparty_name: str = ""
    counterparty_nif: str | None = None
    work_location_id: str | None = None
    payment_method: str | None = None
    cash_register_id: str | None = None
    source_document_id: str | None = None
    declared_tax_amount: Decimal | None = None
    number: str = "DRAFT"
    notes: str = ""

    def add_item(self, item: LineItem | None = None, **fields: Any) -> LineItem:
        line = item if item is not None else new_line_item(**fields)
        self.items.append(line)
        return line

    def update_item(self, item_id: str, **changes: Any) -> LineItem:
        """Replace the line with ``item_id``; the new total is recomputed on access."""
        for idx, line in enumerate(self.items):
            if line.id == item_id:
                updated = line.update(**changes)
                self.items[idx] = updated
                return updated
        raise KeyError(item_id)

    def remove_item(self, item_id: str) -> None:
        self.items = [line for line in self.items if line.id != item_id]

    def set_currency(
        self,
        code: Currency | str,
        rate: Any = None,
        converter: CurrencyConverter | None = None,
    ) -> Decimal:
        """Switch currency; an explicit rate wins over the configured table."""
        converter = converter or CurrencyConverter()
        resolved = converter.resolve_rate(code, rate)
        self.currency = Currency(code)
        self.exchange_rate = resolved
        return resolved

    def set_global_discount(self, percent: Any) -> None:
        self.global_discount_percent = validate_discount(percent, "global_discount_percent")

    def set_retention_mode(self, mode: RetentionMode | str) -> None:
        self.retention_mode = RetentionMode(mode)

    def to_document(self) -> Document:
        return Document(
            kind=self.kind,
            type=self.type,
            date=self.date,
            due_date=self.due_date,
            items=tuple(self.items),
            currency=self.currency,
            exchange_rate=self.exchange_rate,
            global_discount_percent=self.global_discount_percent,
            retention_mode=self.retention_mode,
            counterparty_id=self.counterparty_id,
            counterparty_name=self.counterparty_name,
            counterparty_nif=self.counterparty_nif,
            work_location_id=self.work_location_id,
            payment_method=self.payment_method,
            cash_register_id=self.cash_register_id,
            source_document_id=self.source_document_id,
            declared_tax_amount=self.declared_tax_amount,
            number=self.number,
            notes=self.notes,
        )

    def totals(self, config: FiscalConfig | None = None) -> DocumentTotals:
        return compute_totals(self.to_document(), config)


# ---------------------------------------------------------------------------
# Certification
# ---------------------------------------------------------------------------

def validate_for_issue(document: Document, series: DocumentSeries | None) -> None:
    """Header checks run before a number is requested."""
    errors: list[str] = []
    if document.kind != DocumentKind.SALE:
        errors.append("only sales documents are certified")
    if not (document.counterparty_id or document.counterparty_name):
        errors.append("counterparty is required")
    if not document.items:
        errors.append("at least one line item is required")
    if series is None:
        errors.append("series is required")
    if document.type in SETTLED_ON_ISSUE:
        if not document.payment_method:
            errors.append(f"{document.type.value} requires a payment method")
        if not document.cash_register_id:
            errors.append(f"{document.type.value} requires a cash register")
    if errors:
        raise DocumentValidationError("; ".join(errors))


async def certify(
    draft: DocumentDraft | Document,
    series: DocumentSeries,
    allocator: SequenceAllocator,
    user_id: str | None,
    previous_hash: str = "",
    issued_at: datetime | None = None,
    config: FiscalConfig | None = None,
) -> Document:
    """Validate, number, total, sign and freeze a document."""
    document = draft.to_document() if isinstance(draft, DocumentDraft) else draft
    if document.is_certified:
        raise CertifiedDocumentError(f"Document {document.number} is already certified")

    validate_for_issue(document, series)
    # Raises on bad rates/currency before a number is consumed
    totals = apply_totals(document, config)

    allocated = await allocator.allocate(series, document.type, user_id)
    status = DocumentStatus.PAID if document.type in SETTLED_ON_ISSUE else DocumentStatus.PENDING

    certified = replace(
        document,
        number=allocated.formatted_number,
        series_id=series.id,
        series_code=series.code,
        status=status,
        is_certified=True,
        **totals,
    )
    certified = replace(certified, hash=sign_document(certified, previous_hash, issued_at))
    logger.info("Certified %s (total=%.2f, user=%s)", certified.number, certified.total, user_id)
    return certified


def edit_certified(document: Document, **changes: Any) -> Document:
    """Apply ``changes``; certified documents accept only administrative fields."""
    if document.is_certified:
        locked = sorted(set(changes) - CERTIFIED_EDITABLE_FIELDS)
        if locked:
            raise CertifiedDocumentError(
                f"Document {document.number} is certified; cannot change {', '.join(locked)}"
            )
        return replace(document, **changes)

    updated = replace(document, **changes)
    return replace(updated, **apply_totals(updated))


# ---------------------------------------------------------------------------
# Cancellation and settlement
# ---------------------------------------------------------------------------

async def cancel_document(
    document: Document,
    reason: str,
    series: DocumentSeries | None,
    allocator: SequenceAllocator,
    user_id: str | None,
    issued_at: datetime | None = None,
) -> tuple[Document, Document | None]:
    """Cancel ``document``. Returns (cancelled original, linked note or None)."""
    if not reason or not reason.strip():
        raise DocumentValidationError("a cancellation reason is required")
    validate_status_transition(document.status.value, DocumentStatus.CANCELLED.value)

    note: Document | None = None
    note_type = CANCELLATION_NOTE_TYPES.get(document.type) if document.is_sale else None
    if document.is_certified and note_type is not None:
        if series is None or series.id != document.series_id:
            raise DocumentValidationError(
                f"Cancellation note must be numbered in the series of {document.number}"
            )
        allocated = await allocator.allocate(series, note_type, user_id)
        today = date.today()
        note = Document(
            **{
                **_copy_fields(document),
                "type": note_type,
                "number": allocated.formatted_number,
                "date": today,
                "due_date": today,
                "status": DocumentStatus.PAID,
                "source_document_id": document.id,
                "notes": f"Anulação do documento {document.number}. Motivo: {reason}",
                "is_certified": True,
            }
        )
        note = replace(note, hash=sign_document(note, document.hash, issued_at))

    cancelled = replace(document, status=DocumentStatus.CANCELLED, cancellation_reason=reason)
    logger.info(
        "Cancelled %s (reason=%r, note=%s)",
        document.number, reason, note.number if note else None,
    )
    return cancelled, note


async def issue_receipt(
    invoice: Document,
    amount: Any,
    series: DocumentSeries,
    allocator: SequenceAllocator,
    user_id: str | None,
    payment_method: str,
    cash_register_id: str,
    previous_hash: str = "",
    issued_at: datetime | None = None,
) -> tuple[Document, Document]:
    """Settle ``invoice``. Returns (updated invoice, receipt)."""
    amount = to_decimal(amount, "amount")
    if amount <= ZERO:
        raise DocumentValidationError("receipt amount must be positive")
    if not invoice.is_certified:
        raise DocumentValidationError("only certified documents can be settled")
    if invoice.status == DocumentStatus.CANCELLED:
        raise InvalidStatusTransitionError(f"Document {invoice.number} is cancelled")
    if not payment_method or not cash_register_id:
        raise DocumentValidationError("RG requires a payment method and a cash register")

    allocated = await allocator.allocate(series, DocumentType.RG, user_id)
    today = date.today()
    line = LineItem(
        quantity=Decimal("1"),
        unit_price=amount,
        discount_percent=ZERO,
        tax_rate_percent=ZERO,
        kind=LineKind.SERVICE,
        description=f"Liq. {invoice.number}",
    )
    # Receipts carry the settled amount as-is: no tax, withholding or retention
    receipt = Document(
        kind=DocumentKind.SALE,
        type=DocumentType.RG,
        date=today,
        due_date=today,
        items=(line,),
        currency=invoice.currency,
        exchange_rate=invoice.exchange_rate,
        status=DocumentStatus.PAID,
        is_certified=True,
        series_id=series.id,
        series_code=series.code,
        number=allocated.formatted_number,
        counterparty_id=invoice.counterparty_id,
        counterparty_name=invoice.counterparty_name,
        counterparty_nif=invoice.counterparty_nif,
        work_location_id=invoice.work_location_id,
        payment_method=payment_method,
        cash_register_id=cash_register_id,
        source_document_id=invoice.id,
        subtotal=amount,
        total=amount,
        contra_value=amount if invoice.currency == Currency.AOA else amount * invoice.exchange_rate,
    )
    receipt = replace(receipt, hash=sign_document(receipt, previous_hash, issued_at))

    settled = replace(
        invoice,
        status=DocumentStatus.PAID,
        paid_amount=invoice.paid_amount + amount,
    )
    logger.info("Receipt %s settles %s (amount=%.2f)", receipt.number, invoice.number, amount)
    return settled, receipt


def _copy_fields(document: Document) -> dict[str, Any]:
    """Constructor kwargs of ``document`` minus identity and signature."""
    skip = {"id", "hash", "cancellation_reason"}
    return {
        name: getattr(document, name)
        for name in document.__dataclass_fields__
        if name not in skip
    }
