# faturacao/domain/models/documents.py
"""
Commercial documents: line items, sales/purchase documents and numbering series.

Documents and line items are immutable values. Edits produce a new value
(``dataclasses.replace``), so a recomputed line total or a status flip is
always observed as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from faturacao.domain.exceptions import DocumentValidationError
from faturacao.domain.services.line_items import (
    compute_line_total,
    round_money,
    to_decimal,
)

ZERO = Decimal("0")


class DocumentKind(str, Enum):
    SALE = "sale"
    PURCHASE = "purchase"


class DocumentType(str, Enum):
    """Sales document types (AGT codes)."""
    FT = "FT"  # Fatura
    FR = "FR"  # Fatura/Recibo
    PP = "PP"  # Fatura Pró-forma
    OR = "OR"  # Orçamento
    GR = "GR"  # Guia de Remessa
    GT = "GT"  # Guia de Transporte
    GE = "GE"  # Guia de Entrega
    NE = "NE"  # Nota de Encomenda
    NC = "NC"  # Nota de Crédito
    ND = "ND"  # Nota de Débito
    RG = "RG"  # Recibo
    VD = "VD"  # Venda a Dinheiro
    FS = "FS"  # Fatura Simplificada


class PurchaseType(str, Enum):
    """Supplier document types."""
    FT = "FT"
    FR = "FR"
    ND = "ND"
    NC = "NC"
    VD = "VD"
    REC = "REC"


DOCUMENT_TYPE_LABELS: dict[str, str] = {
    "FT": "Fatura",
    "FR": "Fatura/Recibo",
    "PP": "Fatura Pró-forma",
    "OR": "Orçamento",
    "GR": "Guia de Remessa",
    "GT": "Guia de Transporte",
    "GE": "Guia de Entrega",
    "NE": "Nota de Encomenda",
    "NC": "Nota de Crédito",
    "ND": "Nota de Débito",
    "RG": "Recibo",
    "VD": "Venda a Dinheiro",
    "FS": "Fatura Simplificada",
    "REC": "Recibo",
}


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Currency(str, Enum):
    AOA = "AOA"
    USD = "USD"
    EUR = "EUR"
    BRL = "BRL"


class RetentionMode(str, Enum):
    NONE = "NONE"
    CAT_50 = "CAT_50"
    CAT_100 = "CAT_100"


class LineKind(str, Enum):
    PRODUCT = "PRODUCT"
    SERVICE = "SERVICE"


class SeriesType(str, Enum):
    NORMAL = "NORMAL"
    MANUAL = "MANUAL"


PURCHASE_STATUSES = frozenset({DocumentStatus.PENDING, DocumentStatus.PAID})


def _coerce(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise DocumentValidationError(
            f"Invalid {field_name}: {value!r} (allowed: {allowed})", field=field_name,
        ) from None


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LineItem:
    """One billable/purchasable row. ``total`` is always derived."""

    quantity: Decimal = Decimal("1")
    unit_price: Decimal = ZERO
    discount_percent: Decimal = ZERO
    tax_rate_percent: Decimal = Decimal("14")
    kind: LineKind = LineKind.PRODUCT
    description: str = ""
    product_id: str | None = None
    reference: str = ""
    unit: str = "un"
    id: str = field(default_factory=lambda: uuid4().hex)

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", to_decimal(self.quantity, "quantity"))
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price, "unit_price"))
        object.__setattr__(self, "discount_percent", to_decimal(self.discount_percent, "discount_percent"))
        object.__setattr__(self, "tax_rate_percent", to_decimal(self.tax_rate_percent, "tax_rate_percent"))
        object.__setattr__(self, "kind", LineKind(self.kind))
        # Rejects negative quantity/price and out-of-range discounts
        compute_line_total(self.quantity, self.unit_price, self.discount_percent)

    @property
    def total(self) -> Decimal:
        """Net line total at full precision."""
        return compute_line_total(self.quantity, self.unit_price, self.discount_percent)

    @property
    def stored_total(self) -> Decimal:
        """Line total rounded to 2 decimals, as persisted."""
        return round_money(self.total)

    @property
    def tax_amount(self) -> Decimal:
        return self.total * self.tax_rate_percent / Decimal("100")

    def update(self, **changes: Any) -> LineItem:
        """Return a new line with ``changes`` applied (validated as a whole)."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "product_id": self.product_id,
            "reference": self.reference,
            "unit": self.unit,
            "kind": self.kind.value,
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "discount_percent": str(self.discount_percent),
            "tax_rate_percent": str(self.tax_rate_percent),
            "total": str(self.stored_total),
        }


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Document:
    """A dated commercial record (sales invoice family or supplier purchase)."""

    kind: DocumentKind = DocumentKind.SALE
    type: DocumentType | PurchaseType = DocumentType.FT
    date: date = field(default_factory=date.today)
    due_date: date | None = None
    items: tuple[LineItem, ...] = ()
    currency: Currency = Currency.AOA
    exchange_rate: Decimal = Decimal("1")
    global_discount_percent: Decimal = ZERO
    retention_mode: RetentionMode = RetentionMode.NONE
    # None: Draft for sales, Pending for purchases
    status: DocumentStatus | None = None
    is_certified: bool = False

    # Numbering
    series_id: str | None = None
    series_code: str | None = None
    number: str = "DRAFT"
    hash: str = ""

    # Counterparty
    counterparty_id: str | None = None
    counterparty_name: str = ""
    counterparty_nif: str | None = None

    # Editable after certification
    work_location_id: str | None = None
    payment_method: str | None = None
    cash_register_id: str | None = None

    # Links
    source_document_id: str | None = None
    cancellation_reason: str | None = None
    paid_amount: Decimal = ZERO
    notes: str = ""

    # Purchases: tax as printed on the supplier document, when entered manually
    declared_tax_amount: Decimal | None = None

    # Persisted totals (see document_totals.compute_totals)
    subtotal: Decimal = ZERO
    tax_amount: Decimal = ZERO
    global_discount_amount: Decimal = ZERO
    withholding_amount: Decimal = ZERO
    retention_amount: Decimal = ZERO
    total: Decimal = ZERO
    contra_value: Decimal = ZERO

    id: str = field(default_factory=lambda: uuid4().hex)

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", _coerce(DocumentKind, self.kind, "kind"))
        purchase = self.kind == DocumentKind.PURCHASE
        type_enum = PurchaseType if purchase else DocumentType
        object.__setattr__(self, "type", _coerce(type_enum, self.type, "type"))
        object.__setattr__(self, "currency", _coerce(Currency, self.currency, "currency"))
        object.__setattr__(self, "retention_mode", _coerce(RetentionMode, self.retention_mode, "retention_mode"))

        status = self.status
        if status is None:
            status = DocumentStatus.PENDING if purchase else DocumentStatus.DRAFT
        status = _coerce(DocumentStatus, status, "status")
        if purchase and status not in PURCHASE_STATUSES:
            raise DocumentValidationError(
                f"Purchase status must be pending or paid, got {status.value!r}", field="status",
            )
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "exchange_rate", to_decimal(self.exchange_rate, "exchange_rate"))
        object.__setattr__(
            self, "global_discount_percent",
            to_decimal(self.global_discount_percent, "global_discount_percent"),
        )
        if self.declared_tax_amount is not None:
            object.__setattr__(
                self, "declared_tax_amount",
                to_decimal(self.declared_tax_amount, "declared_tax_amount"),
            )

    @property
    def is_sale(self) -> bool:
        return self.kind == DocumentKind.SALE

    @property
    def period(self) -> str:
        """YYYY-MM of the document date."""
        return self.date.strftime("%Y-%m")

    def in_period(self, year: int, month: int) -> bool:
        return self.date.year == year and self.date.month == month

    def amount_in_base(self) -> Decimal:
        """Total in AOA: contra-value for foreign documents, falling back to total."""
        if self.currency == Currency.AOA:
            return self.total
        return self.contra_value or self.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "type": self.type.value,
            "number": self.number,
            "series_id": self.series_id,
            "series_code": self.series_code,
            "date": self.date.isoformat(),
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "status": self.status.value,
            "is_certified": self.is_certified,
            "hash": self.hash,
            "currency": self.currency.value,
            "exchange_rate": str(self.exchange_rate),
            "global_discount_percent": str(self.global_discount_percent),
            "retention_mode": self.retention_mode.value,
            "counterparty_id": self.counterparty_id,
            "counterparty_name": self.counterparty_name,
            "counterparty_nif": self.counterparty_nif,
            "work_location_id": self.work_location_id,
            "payment_method": self.payment_method,
            "cash_register_id": self.cash_register_id,
            "source_document_id": self.source_document_id,
            "cancellation_reason": self.cancellation_reason,
            "paid_amount": str(round_money(self.paid_amount)),
            "items": [item.to_dict() for item in self.items],
            "subtotal": str(round_money(self.subtotal)),
            "tax_amount": str(round_money(self.tax_amount)),
            "global_discount_amount": str(round_money(self.global_discount_amount)),
            "withholding_amount": str(round_money(self.withholding_amount)),
            "retention_amount": str(round_money(self.retention_amount)),
            "total": str(round_money(self.total)),
            "contra_value": str(round_money(self.contra_value)),
        }


# ---------------------------------------------------------------------------
# Numbering series
# ---------------------------------------------------------------------------

@dataclass
class DocumentSeries:
    """A numbering authority: one counter per document type within a year."""

    code: str
    year: int
    id: str = field(default_factory=lambda: uuid4().hex)
    name: str = ""
    series_type: SeriesType = SeriesType.NORMAL
    sequences: dict[str, int] = field(default_factory=dict)
    is_active: bool = True
    allowed_user_ids: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.series_type = SeriesType(self.series_type)

    @property
    def is_manual(self) -> bool:
        return self.series_type == SeriesType.MANUAL

    def allows(self, user_id: str | None) -> bool:
        """Empty ``allowed_user_ids`` means unrestricted."""
        if not self.allowed_user_ids:
            return True
        return user_id is not None and user_id in self.allowed_user_ids

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "year": self.year,
            "series_type": self.series_type.value,
            "sequences": dict(self.sequences),
            "is_active": self.is_active,
            "allowed_user_ids": list(self.allowed_user_ids),
        }
