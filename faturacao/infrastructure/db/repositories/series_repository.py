import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from faturacao.domain.models.documents import DocumentSeries
from faturacao.infrastructure.db.models import DocumentSeriesRecord, SequenceCounter


class SeriesRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, series_id: str) -> DocumentSeriesRecord | None:
        try:
            key = uuid.UUID(series_id)
        except ValueError:
            return None
        stmt = select(DocumentSeriesRecord).where(DocumentSeriesRecord.id == key)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_records(self, year: int | None = None) -> list[DocumentSeriesRecord]:
        stmt = select(DocumentSeriesRecord).order_by(
            DocumentSeriesRecord.year.desc(), DocumentSeriesRecord.code,
        )
        if year is not None:
            stmt = stmt.where(DocumentSeriesRecord.year == year)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def add(self, series: DocumentSeries) -> DocumentSeries:
        record = DocumentSeriesRecord(
            id=uuid.UUID(series.id),
            code=series.code,
            name=series.name,
            year=series.year,
            series_type=series.series_type.value,
            is_active=series.is_active,
            allowed_user_ids=list(series.allowed_user_ids),
        )
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        return to_domain(record)

    async def sequences_for(self, record: DocumentSeriesRecord) -> dict[str, int]:
        stmt = select(SequenceCounter.document_type, SequenceCounter.last_issued).where(
            SequenceCounter.series_id == record.id,
            SequenceCounter.year == record.year,
        )
        result = await self.db.execute(stmt)
        return {doc_type: last for doc_type, last in result.all()}

    async def list_series(self, year: int | None = None) -> list[DocumentSeries]:
        return [to_domain(r, await self.sequences_for(r)) for r in await self.list_records(year)]

    async def load(self, series_id: str) -> DocumentSeries | None:
        """Domain series with its current per-type high-water marks."""
        record = await self.get_by_id(series_id)
        if record is None:
            return None
        return to_domain(record, await self.sequences_for(record))


def to_domain(record: DocumentSeriesRecord, sequences: dict[str, int] | None = None) -> DocumentSeries:
    return DocumentSeries(
        id=record.id.hex,
        code=record.code,
        name=record.name or "",
        year=record.year,
        series_type=record.series_type,
        sequences=dict(sequences or {}),
        is_active=bool(record.is_active),
        allowed_user_ids=list(record.allowed_user_ids or []),
    )
