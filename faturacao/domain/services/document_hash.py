# faturacao/domain/services/document_hash.py
"""Chained certification signature.

Each certified document signs its own key fields plus the signature of the
previously certified document, so rewriting an old document breaks every
later signature.
"""

from __future__ import annotations

import hashlib
from datetime import datetime

from faturacao.domain.models.documents import Document


def signature_payload(document: Document, previous_hash: str, issued_at: datetime | str) -> str:
    stamp = issued_at.isoformat(timespec="seconds") if isinstance(issued_at, datetime) else issued_at
    return (
        f"{document.date.isoformat()};{stamp};{document.number};"
        f"{document.total:.2f};{previous_hash or ''}"
    )


def sign_document(document: Document, previous_hash: str = "", issued_at: datetime | str | None = None) -> str:
    """SHA-256 hex digest of the document's signature payload."""
    issued_at = issued_at or datetime.now()
    payload = signature_payload(document, previous_hash, issued_at)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def short_hash(full_hash: str) -> str:
    """Printed 4-character code: characters 1, 11, 21 and 31 (1-based)."""
    return "".join(full_hash[i] for i in (0, 10, 20, 30) if i < len(full_hash))
