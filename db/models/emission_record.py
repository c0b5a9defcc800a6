"""
db/models/emission_record.py

Current emissions facts keyed by natural key, plus their append-only revisions.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, SmallInteger, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

NATURAL_KEY_CONSTRAINT = "uq_emission_records_natural_key"

# Annual facts have no month; the unique constraint uses 0 in their place
# because PostgreSQL treats NULLs as distinct.
ANNUAL_MONTH_KEY = 0


class EmissionRecord(Base, TimestampMixin):
    """
    The single current value for (facility, year, month, source).
    """

    __tablename__ = "emission_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    facility_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Trimmed, whitespace-collapsed, case-folded facility name",
    )
    facility_name: Mapped[str] = mapped_column(String(255), nullable=False)
    year: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    month: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    month_key: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
        default=ANNUAL_MONTH_KEY,
        comment="month, or 0 for annual facts",
    )
    source: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="observed, reported, projected",
    )
    co2e_tonnes: Mapped[float] = mapped_column(Float, nullable=False)
    scope: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    method: Mapped[str | None] = mapped_column(String(120), nullable=True)
    dataset_version: Mapped[str] = mapped_column(String(64), nullable=False)
    dataset_version_key: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        comment="Sortable encoding of dataset_version",
    )
    dataset_name: Mapped[str] = mapped_column(String(255), nullable=False)
    adapter: Mapped[str] = mapped_column(String(50), nullable=False)
    import_job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        comment="Commit that last wrote this record",
    )
    previous_import_job_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        comment="Commit whose value this record superseded",
    )

    __table_args__ = (
        UniqueConstraint(
            "facility_key",
            "year",
            "month_key",
            "source",
            name=NATURAL_KEY_CONSTRAINT,
        ),
        Index("ix_emission_records_facility_key", "facility_key"),
        Index("ix_emission_records_year", "year"),
        Index("ix_emission_records_dataset_name", "dataset_name"),
        Index("ix_emission_records_import_job_id", "import_job_id"),
    )


class EmissionRecordRevision(Base):
    """
    Every winning write, in order. Superseded values stay here.
    """

    __tablename__ = "emission_record_revisions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    record_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("emission_records.id", ondelete="RESTRICT"),
        nullable=False,
    )
    import_job_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    row_index: Mapped[int] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="inserted, replaced, superseded_in_file, accumulated",
    )
    co2e_tonnes: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Record value after this write",
    )
    dataset_version: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_emission_record_revisions_record_id", "record_id"),
        Index("ix_emission_record_revisions_import_job_id", "import_job_id"),
    )
