"""SQLAlchemy ORM models for the persistent document catalog."""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class GlobalDocument(Base):
    """Global partition catalog - documents searchable from every session."""

    __tablename__ = "global_document"
    __table_args__ = (Index("idx_global_document_uploaded_at", "uploaded_at"),)

    document_id: Mapped[str] = mapped_column(Text, primary_key=True)
    original_name: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_count: Mapped[int] = mapped_column(Integer, nullable=False)
    uploaded_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
