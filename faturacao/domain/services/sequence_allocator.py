# faturacao/domain/services/sequence_allocator.py
"""
Gap-free, monotonic document numbering.

One counter per (series, document type, year). A number is handed out only
after the store has durably recorded it, so two callers can never receive the
same number and a failed validation never consumes one. Cancelling a document
does not give its number back.

Formatted numbers follow the AGT convention ``"FT A2024/7"``:
``{type} {series code}{year}/{sequence}``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from faturacao.domain.exceptions import (
    ManualSeriesError,
    SeriesInactiveError,
    SeriesNotAuthorizedError,
)
from faturacao.domain.models.documents import DocumentSeries

logger = logging.getLogger("sequence_allocator")

CounterKey = tuple[str, str, int]


@dataclass(frozen=True)
class AllocatedNumber:
    sequence_number: int
    formatted_number: str
    series_id: str
    type_key: str
    year: int

    def to_dict(self) -> dict:
        return {
            "sequence_number": self.sequence_number,
            "formatted_number": self.formatted_number,
            "series_id": self.series_id,
            "type_key": self.type_key,
            "year": self.year,
        }


def format_number(type_key: str, series_code: str, year: int, sequence: int) -> str:
    return f"{type_key} {series_code}{year}/{sequence}"


def _type_code(type_key: str | Enum) -> str:
    return type_key.value if isinstance(type_key, Enum) else str(type_key).strip().upper()


# ---------------------------------------------------------------------------
# Counter stores
# ---------------------------------------------------------------------------

class CounterStore(Protocol):
    async def increment(self, series_id: str, type_key: str, year: int) -> int:
        """Atomically add one to the counter and return the new value."""
        ...

    async def raise_to(self, series_id: str, type_key: str, year: int, number: int) -> int:
        """Set the counter to max(current, number) and return it."""
        ...

    async def current(self, series_id: str, type_key: str, year: int) -> int:
        ...


class InMemoryCounterStore:
    """Process-local counters; one asyncio.Lock per key."""

    def __init__(self, initial: dict[CounterKey, int] | None = None) -> None:
        self._counters: dict[CounterKey, int] = dict(initial or {})
        self._locks: dict[CounterKey, asyncio.Lock] = {}

    def _lock(self, key: CounterKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def increment(self, series_id: str, type_key: str, year: int) -> int:
        key = (series_id, type_key, year)
        async with self._lock(key):
            current = self._counters.get(key, 0)
            # Yield so concurrent callers really contend for the lock
            await asyncio.sleep(0)
            self._counters[key] = current + 1
            return current + 1

    async def raise_to(self, series_id: str, type_key: str, year: int, number: int) -> int:
        key = (series_id, type_key, year)
        async with self._lock(key):
            value = max(self._counters.get(key, 0), number)
            self._counters[key] = value
            return value

    async def current(self, series_id: str, type_key: str, year: int) -> int:
        return self._counters.get((series_id, type_key, year), 0)


# ---------------------------------------------------------------------------
# Allocator
# ---------------------------------------------------------------------------

class SequenceAllocator:
    def __init__(self, store: CounterStore | None = None) -> None:
        self.store = store if store is not None else InMemoryCounterStore()

    @staticmethod
    def _check_series(series: DocumentSeries, user_id: str | None) -> None:
        if not series.is_active:
            raise SeriesInactiveError(f"Series {series.code}/{series.year} is inactive")
        if not series.allows(user_id):
            raise SeriesNotAuthorizedError(
                f"User {user_id!r} may not issue documents on series {series.code}/{series.year}"
            )

    @staticmethod
    def _mirror(series: DocumentSeries, type_key: str, year: int, value: int) -> None:
        if year == series.year:
            series.sequences[type_key] = max(series.sequences.get(type_key, 0), value)

    async def allocate(
        self,
        series: DocumentSeries,
        type_key: str | Enum,
        user_id: str | None,
        year: int | None = None,
    ) -> AllocatedNumber:
        """Next number for ``type_key`` in ``series``.

        Raises SeriesInactiveError / SeriesNotAuthorizedError / ManualSeriesError
        before the counter is touched.
        """
        code = _type_code(type_key)
        self._check_series(series, user_id)
        if series.is_manual:
            raise ManualSeriesError(
                f"Series {series.code}/{series.year} is MANUAL; use record_manual()"
            )

        year = year or series.year
        number = await self.store.increment(series.id, code, year)
        self._mirror(series, code, year, number)

        formatted = format_number(code, series.code, year, number)
        logger.info("Allocated %s (series=%s user=%s)", formatted, series.id, user_id)
        return AllocatedNumber(
            sequence_number=number,
            formatted_number=formatted,
            series_id=series.id,
            type_key=code,
            year=year,
        )

    async def record_manual(
        self,
        series: DocumentSeries,
        type_key: str | Enum,
        number: int,
        user_id: str | None,
        year: int | None = None,
    ) -> AllocatedNumber:
        """Register a number typed by the user (pre-printed book).

        The stored high-water mark only ever grows, and the next ``allocate``
        on the same key continues after it.
        """
        code = _type_code(type_key)
        self._check_series(series, user_id)
        if isinstance(number, bool) or not isinstance(number, int) or number < 1:
            raise ManualSeriesError(f"Manual number must be a positive integer, got {number!r}")

        year = year or series.year
        high_water = await self.store.raise_to(series.id, code, year, number)
        self._mirror(series, code, year, high_water)

        formatted = format_number(code, series.code, year, number)
        logger.info("Recorded manual %s (high-water=%d)", formatted, high_water)
        return AllocatedNumber(
            sequence_number=number,
            formatted_number=formatted,
            series_id=series.id,
            type_key=code,
            year=year,
        )

    async def peek(
        self,
        series: DocumentSeries,
        type_key: str | Enum,
        year: int | None = None,
    ) -> int:
        """Last issued number (0 when nothing has been issued)."""
        return await self.store.current(series.id, _type_code(type_key), year or series.year)
