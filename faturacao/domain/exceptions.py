# faturacao/domain/exceptions.py
"""
Error taxonomy for the fiscal core.

Every error is raised synchronously to the caller and none of them is
retried. All but RateStoreUnavailableError are validation failures.
"""

from __future__ import annotations


class FiscalError(Exception):
    """Base class for all fiscal-core validation errors."""
    pass


class InvalidLineItemError(FiscalError):
    """Raised when quantity, unit price or discount is malformed."""

    def __init__(self, field: str, value: object, reason: str = "") -> None:
        self.field = field
        self.value = value
        msg = f"Invalid {field}: {value!r}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class InvalidTaxRateError(FiscalError):
    """Raised when a tax rate is outside the legal tiers."""

    def __init__(self, rate: object, allowed: object = None) -> None:
        self.rate = rate
        self.allowed = allowed
        msg = f"Invalid tax rate: {rate!r}"
        if allowed is not None:
            msg = f"{msg}; allowed tiers: {allowed}"
        super().__init__(msg)


class InvalidCurrencyError(FiscalError):
    """Raised for an unknown currency code or a non-positive exchange rate."""
    pass


class RateStoreUnavailableError(FiscalError):
    """Raised when an updated rate table cannot be written to the cache."""
    pass


# ---------------------------------------------------------------------------
# Numbering
# ---------------------------------------------------------------------------

class SequenceError(FiscalError):
    """Base class for document-numbering failures."""
    pass


class SeriesInactiveError(SequenceError):
    """Raised when allocating against an inactive series."""
    pass


class SeriesNotAuthorizedError(SequenceError):
    """Raised when the acting user may not issue documents on the series."""
    pass


class ManualSeriesError(SequenceError):
    """Raised when automatic numbering is requested on a MANUAL series (or vice versa)."""
    pass


# ---------------------------------------------------------------------------
# Document lifecycle
# ---------------------------------------------------------------------------

class DocumentError(FiscalError):
    """Base class for document lifecycle failures."""
    pass


class DocumentValidationError(DocumentError):
    """Raised when a document is malformed or missing data required for issue."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class CertifiedDocumentError(DocumentError):
    """Raised when a locked field of a certified document is edited."""
    pass


class InvalidStatusTransitionError(DocumentError):
    """Raised when a document status transition is not allowed."""
    pass
