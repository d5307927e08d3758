import uuid
from sqlalchemy import Column, String, DateTime, Integer, Boolean, ForeignKey, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from faturacao.infrastructure.db.base import Base

class DocumentSeriesRecord(Base):
    __tablename__ = "document_series"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(20), nullable=False)
    name = Column(String(120), nullable=False, default="")
    year = Column(Integer, nullable=False)
    series_type = Column(String(10), nullable=False, default="NORMAL")
    is_active = Column(Boolean, nullable=False, default=True)
    allowed_user_ids = Column(JSONB, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    counters = relationship("SequenceCounter", back_populates="series")
    __table_args__ = (UniqueConstraint("code", "year", name="uq_document_series_code_year"),)

class SequenceCounter(Base):
    __tablename__ = "sequence_counters"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    series_id = Column(UUID(as_uuid=True), ForeignKey("document_series.id"), nullable=False, index=True)
    document_type = Column(String(10), nullable=False)
    year = Column(Integer, nullable=False)
    last_issued = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    series = relationship("DocumentSeriesRecord", back_populates="counters")
    __table_args__ = (
        UniqueConstraint("series_id", "document_type", "year", name="uq_sequence_counter_key"),
    )
