"""
emissions_ingest/repositories/import_job_repository.py

PostgreSQL store for the append-only import job audit trail.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.import_job import ImportJob
from emissions_ingest.domain.canonical import ImportJobRecord
from emissions_ingest.errors import StorageFault
from emissions_ingest.repositories.base import ImportJobStore


class SQLAlchemyImportJobStore(ImportJobStore):
    """
    Import job store backed by the `import_jobs` table.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def record(self, job: ImportJobRecord) -> ImportJobRecord:
        model = ImportJob(
            id=job.id,
            adapter=job.adapter,
            dataset_name=job.dataset_name,
            dataset_version=job.dataset_version,
            duplicate_policy=job.duplicate_policy,
            status=job.status,
            rows_total=job.rows_total,
            rows_imported=job.rows_imported,
            rows_inserted=job.rows_inserted,
            rows_replaced=job.rows_replaced,
            rows_skipped=job.rows_skipped,
            duplicates=job.duplicates,
            invalid=job.invalid,
            last_processed_row_index=job.last_processed_row_index,
            file_name=job.file_name,
            checksum_sha256=job.checksum_sha256,
            header_mapping=dict(job.header_mapping),
            problems=list(job.problems),
            error_message=job.error_message,
            created_at=job.created_at,
        )
        try:
            self._session.add(model)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StorageFault(f"Failed to record import job {job.id}.") from exc
        return job

    def get(self, job_id: uuid.UUID) -> ImportJobRecord | None:
        model = self._session.get(ImportJob, job_id)
        return _to_record(model) if model is not None else None

    def list_by_dataset(self, dataset_name: str, *, limit: int = 100) -> list[ImportJobRecord]:
        stmt: Select[tuple[ImportJob]] = (
            select(ImportJob)
            .where(ImportJob.dataset_name == dataset_name)
            .order_by(ImportJob.created_at.desc())
            .limit(max(1, limit))
        )
        return [_to_record(model) for model in self._session.scalars(stmt).all()]


def _to_record(model: ImportJob) -> ImportJobRecord:
    return ImportJobRecord(
        id=model.id,
        adapter=model.adapter,
        dataset_name=model.dataset_name,
        dataset_version=model.dataset_version,
        duplicate_policy=model.duplicate_policy,
        status=model.status,
        rows_total=model.rows_total,
        rows_imported=model.rows_imported,
        rows_inserted=model.rows_inserted,
        rows_replaced=model.rows_replaced,
        rows_skipped=model.rows_skipped,
        duplicates=model.duplicates,
        invalid=model.invalid,
        last_processed_row_index=model.last_processed_row_index,
        created_at=model.created_at,
        file_name=model.file_name,
        checksum_sha256=model.checksum_sha256,
        header_mapping=dict(model.header_mapping or {}),
        problems=list(model.problems or []),
        error_message=model.error_message,
    )
