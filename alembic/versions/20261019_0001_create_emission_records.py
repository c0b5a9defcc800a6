"""create emission_records and emission_record_revisions tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "emission_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("facility_key", sa.String(length=255), nullable=False),
        sa.Column("facility_name", sa.String(length=255), nullable=False),
        sa.Column("year", sa.SmallInteger(), nullable=False),
        sa.Column("month", sa.SmallInteger(), nullable=True),
        sa.Column("month_key", sa.SmallInteger(), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("co2e_tonnes", sa.Float(), nullable=False),
        sa.Column("scope", sa.SmallInteger(), nullable=True),
        sa.Column("method", sa.String(length=120), nullable=True),
        sa.Column("dataset_version", sa.String(length=64), nullable=False),
        sa.Column("dataset_version_key", sa.String(length=512), nullable=False),
        sa.Column("dataset_name", sa.String(length=255), nullable=False),
        sa.Column("adapter", sa.String(length=50), nullable=False),
        sa.Column("import_job_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("previous_import_job_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_emission_records"),
        sa.UniqueConstraint(
            "facility_key",
            "year",
            "month_key",
            "source",
            name="uq_emission_records_natural_key",
        ),
    )
    op.create_index("ix_emission_records_facility_key", "emission_records", ["facility_key"], unique=False)
    op.create_index("ix_emission_records_year", "emission_records", ["year"], unique=False)
    op.create_index("ix_emission_records_dataset_name", "emission_records", ["dataset_name"], unique=False)
    op.create_index("ix_emission_records_import_job_id", "emission_records", ["import_job_id"], unique=False)

    op.create_table(
        "emission_record_revisions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("record_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("import_job_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("row_index", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("co2e_tonnes", sa.Float(), nullable=False),
        sa.Column("dataset_version", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["record_id"],
            ["emission_records.id"],
            name="fk_emission_record_revisions_record_id_emission_records",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_emission_record_revisions"),
    )
    op.create_index(
        "ix_emission_record_revisions_record_id",
        "emission_record_revisions",
        ["record_id"],
        unique=False,
    )
    op.create_index(
        "ix_emission_record_revisions_import_job_id",
        "emission_record_revisions",
        ["import_job_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_emission_record_revisions_import_job_id", table_name="emission_record_revisions")
    op.drop_index("ix_emission_record_revisions_record_id", table_name="emission_record_revisions")
    op.drop_table("emission_record_revisions")
    op.drop_index("ix_emission_records_import_job_id", table_name="emission_records")
    op.drop_index("ix_emission_records_dataset_name", table_name="emission_records")
    op.drop_index("ix_emission_records_year", table_name="emission_records")
    op.drop_index("ix_emission_records_facility_key", table_name="emission_records")
    op.drop_table("emission_records")
