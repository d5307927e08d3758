# faturacao/infrastructure/db/repositories/sequence_counter_repository.py
"""Durable sequence counters (row-locked read-modify-write)."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from faturacao.config.settings import settings
from faturacao.infrastructure.db.models import SequenceCounter

logger = logging.getLogger("sequence_counter_repository")

T = TypeVar("T")

_RETRY_BACKOFF_SECONDS = 0.05


class SequenceCounterRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_for_update(
        self, series_id: uuid.UUID, document_type: str, year: int,
    ) -> SequenceCounter | None:
        stmt = (
            select(SequenceCounter)
            .where(and_(
                SequenceCounter.series_id == series_id,
                SequenceCounter.document_type == document_type,
                SequenceCounter.year == year,
            ))
            .with_for_update()
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_for_update(
        self, series_id: uuid.UUID, document_type: str, year: int,
    ) -> SequenceCounter:
        counter = await self.get_for_update(series_id, document_type, year)
        if counter is None:
            counter = SequenceCounter(
                series_id=series_id, document_type=document_type, year=year, last_issued=0,
            )
            self.db.add(counter)
            # A concurrent insert surfaces here as IntegrityError; the caller retries
            await self.db.flush()
        return counter

    async def current(self, series_id: uuid.UUID, document_type: str, year: int) -> int:
        stmt = select(SequenceCounter.last_issued).where(and_(
            SequenceCounter.series_id == series_id,
            SequenceCounter.document_type == document_type,
            SequenceCounter.year == year,
        ))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() or 0


class SqlCounterStore:
    """CounterStore on PostgreSQL. Each attempt runs in its own transaction.

    Retries only on transient contention (lock timeouts, deadlocks, a racing
    first insert); the number is committed before it is returned.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        max_retries: int | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.max_retries = max_retries or settings.SEQUENCE_MAX_RETRIES

    async def _with_retry(self, op: Callable[[SequenceCounterRepository], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            attempt += 1
            async with self.session_factory() as db:
                try:
                    value = await op(SequenceCounterRepository(db))
                    await db.commit()
                    return value
                except (OperationalError, IntegrityError):
                    await db.rollback()
                    if attempt >= self.max_retries:
                        logger.exception("Sequence counter update failed after %d attempts", attempt)
                        raise
                    logger.warning("Sequence counter contention, retrying (attempt %d)", attempt)
            await asyncio.sleep(_RETRY_BACKOFF_SECONDS * attempt)

    async def increment(self, series_id: str, type_key: str, year: int) -> int:
        async def op(repo: SequenceCounterRepository) -> int:
            counter = await repo.get_or_create_for_update(uuid.UUID(series_id), type_key, year)
            counter.last_issued = (counter.last_issued or 0) + 1
            return counter.last_issued

        return await self._with_retry(op)

    async def raise_to(self, series_id: str, type_key: str, year: int, number: int) -> int:
        async def op(repo: SequenceCounterRepository) -> int:
            counter = await repo.get_or_create_for_update(uuid.UUID(series_id), type_key, year)
            counter.last_issued = max(counter.last_issued or 0, number)
            return counter.last_issued

        return await self._with_retry(op)

    async def current(self, series_id: str, type_key: str, year: int) -> int:
        async with self.session_factory() as db:
            return await SequenceCounterRepository(db).current(uuid.UUID(series_id), type_key, year)
