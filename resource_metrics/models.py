"""SQLAlchemy ORM models for resource metrics."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint, Uuid, func, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class Metric(Base):
    """Integer counter keyed by (resource, resource_id, key)."""

    __tablename__ = "metrics"
    __table_args__ = (
        UniqueConstraint("resource", "resource_id", "key", name="unique_resource_metric"),
        Index("idx_metrics_resource", "resource", "resource_id", "key"),
        Index("idx_metrics_key", "key", "created_at"),
        Index("idx_metrics_resource_id", "resource_id"),
    )

    # Generated by the writer, never by the database.
    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    resource: Mapped[str] = mapped_column(Text, nullable=False)
    resource_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
