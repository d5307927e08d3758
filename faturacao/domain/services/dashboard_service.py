# faturacao/domain/services/dashboard_service.py
"""Sales overview: revenue by payment state, in AOA."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from faturacao.domain.models.documents import Document, DocumentStatus
from faturacao.domain.services.line_items import ZERO, round_money


@dataclass
class SalesSummary:
    paid_revenue: Decimal = ZERO
    pending_amount: Decimal = ZERO
    overdue_amount: Decimal = ZERO
    counts_by_status: dict[str, int] = field(default_factory=dict)
    document_count: int = 0

    def to_dict(self) -> dict:
        return {
            "paid_revenue": str(round_money(self.paid_revenue)),
            "pending_amount": str(round_money(self.pending_amount)),
            "overdue_amount": str(round_money(self.overdue_amount)),
            "counts_by_status": dict(self.counts_by_status),
            "document_count": self.document_count,
        }


def summarize_sales(documents: Iterable[Document]) -> SalesSummary:
    summary = SalesSummary()
    counts: Counter[str] = Counter({status.value: 0 for status in DocumentStatus})

    for doc in documents:
        if not doc.is_sale:
            continue
        summary.document_count += 1
        counts[doc.status.value] += 1
        amount = doc.amount_in_base()
        if doc.status == DocumentStatus.PAID:
            summary.paid_revenue += amount
        elif doc.status == DocumentStatus.PENDING:
            summary.pending_amount += amount
        elif doc.status == DocumentStatus.OVERDUE:
            summary.overdue_amount += amount

    summary.counts_by_status = dict(counts)
    return summary
