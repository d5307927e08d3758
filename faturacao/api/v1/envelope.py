# faturacao/api/v1/envelope.py
"""
Response envelope shared by the v1 endpoints.

    {"status": "ok" | "error", "data": ..., "message": ..., "errors": [...]}

Money values inside ``data`` are decimal strings; errors carry the
exception type and, for line-level problems, the offending field.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    status: str = "ok"
    data: T | None = None
    message: str | None = None
    errors: list[dict[str, Any]] | None = None


def ok(data: Any = None, message: str | None = None) -> dict:
    return ApiResponse(status="ok", data=data, message=message).model_dump()


def error(message: str, errors: list[dict[str, Any]] | None = None) -> dict:
    """Error body; the HTTP status is set by the caller."""
    return ApiResponse(status="error", message=message, errors=errors).model_dump()
