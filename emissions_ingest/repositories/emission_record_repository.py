"""
emissions_ingest/repositories/emission_record_repository.py

PostgreSQL record store.

The compare-and-write is one `INSERT ... ON CONFLICT DO UPDATE ... WHERE`
statement on the natural-key constraint. The WHERE clause mirrors
`resolve_write_action`, so two commits racing on the same key serialize on
the row lock and neither update is lost. Each row is its own transaction.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.emission_record import (
    ANNUAL_MONTH_KEY,
    NATURAL_KEY_CONSTRAINT,
    EmissionRecord,
    EmissionRecordRevision,
)
from emissions_ingest.domain.canonical import (
    CanonicalRow,
    DuplicatePolicy,
    MergeMode,
    NaturalKey,
    WriteAction,
    WriteOutcome,
)
from emissions_ingest.domain.versioning import version_sort_key
from emissions_ingest.errors import StorageFault
from emissions_ingest.repositories.base import EmissionRecordStore, StoredRecord, WriteContext


class SQLAlchemyEmissionRecordStore(EmissionRecordStore):
    """
    Record store backed by the `emission_records` table.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def conditional_write(
        self,
        row: CanonicalRow,
        *,
        row_index: int,
        context: WriteContext,
    ) -> WriteOutcome:
        stmt = self._upsert_statement(row, context=context)

        try:
            written = self._session.execute(stmt).first()
            if written is None:
                self._session.rollback()
                return WriteOutcome(action=WriteAction.DUPLICATE)

            action = self._classify(
                previous_import_job_id=written.previous_import_job_id,
                context=context,
            )
            self._session.add(
                EmissionRecordRevision(
                    record_id=written.id,
                    import_job_id=context.import_job_id,
                    row_index=row_index,
                    action=action,
                    co2e_tonnes=written.co2e_tonnes,
                    dataset_version=row.dataset_version,
                )
            )
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StorageFault(f"Failed to write row {row_index}.") from exc

        return WriteOutcome(action=action, record_id=written.id)

    @classmethod
    def _upsert_statement(cls, row: CanonicalRow, *, context: WriteContext) -> Any:
        """
        INSERT ... ON CONFLICT DO UPDATE whose WHERE mirrors `resolve_write_action`.

        Returns the written row, or nothing when the write is a duplicate.
        """

        stmt = insert(EmissionRecord).values(cls._payload(row, key=row.natural_key, context=context))
        excluded = stmt.excluded
        same_commit = EmissionRecord.import_job_id == excluded.import_job_id
        if context.duplicate_policy == DuplicatePolicy.REPLACE_IF_NEWER:
            condition = or_(same_commit, EmissionRecord.dataset_version_key < excluded.dataset_version_key)
        else:
            condition = same_commit

        if context.merge_mode == MergeMode.ACCUMULATE:
            tonnes_value: Any = case(
                (same_commit, EmissionRecord.co2e_tonnes + excluded.co2e_tonnes),
                else_=excluded.co2e_tonnes,
            )
        else:
            tonnes_value = excluded.co2e_tonnes

        stmt = stmt.on_conflict_do_update(
            constraint=NATURAL_KEY_CONSTRAINT,
            set_={
                "facility_name": excluded.facility_name,
                "month": excluded.month,
                "co2e_tonnes": tonnes_value,
                "scope": excluded.scope,
                "method": excluded.method,
                "dataset_version": excluded.dataset_version,
                "dataset_version_key": excluded.dataset_version_key,
                "dataset_name": excluded.dataset_name,
                "adapter": excluded.adapter,
                "import_job_id": excluded.import_job_id,
                # Column references in SET read the pre-update row.
                "previous_import_job_id": EmissionRecord.import_job_id,
                "updated_at": func.now(),
            },
            where=condition,
        ).returning(
            EmissionRecord.id,
            EmissionRecord.co2e_tonnes,
            EmissionRecord.previous_import_job_id,
        )
        return stmt

    def get_current(self, key: NaturalKey) -> StoredRecord | None:
        stmt = select(EmissionRecord).where(
            and_(
                EmissionRecord.facility_key == key.facility,
                EmissionRecord.year == key.year,
                EmissionRecord.month_key == (key.month or ANNUAL_MONTH_KEY),
                EmissionRecord.source == key.source,
            )
        )
        try:
            record = self._session.execute(stmt).scalars().first()
        except SQLAlchemyError as exc:
            raise StorageFault("Failed to read emission record.") from exc
        if record is None:
            return None
        return StoredRecord(
            key=key,
            row=CanonicalRow(
                facility_name=record.facility_name,
                year=record.year,
                month=record.month,
                co2e_tonnes=record.co2e_tonnes,
                scope=record.scope,
                source=record.source,
                method=record.method,
                dataset_version=record.dataset_version,
            ),
            dataset_version_key=record.dataset_version_key,
            dataset_name=record.dataset_name,
            adapter=record.adapter,
            import_job_id=record.import_job_id,
            previous_import_job_id=record.previous_import_job_id,
            id=record.id,
        )

    @staticmethod
    def _classify(*, previous_import_job_id: Any, context: WriteContext) -> str:
        if previous_import_job_id is None:
            return WriteAction.INSERTED
        if previous_import_job_id == context.import_job_id:
            if context.merge_mode == MergeMode.ACCUMULATE:
                return WriteAction.ACCUMULATED
            return WriteAction.SUPERSEDED_IN_FILE
        return WriteAction.REPLACED

    @staticmethod
    def _payload(row: CanonicalRow, *, key: NaturalKey, context: WriteContext) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "facility_key": key.facility,
            "facility_name": row.facility_name,
            "year": row.year,
            "month": row.month,
            "month_key": row.month if row.month is not None else ANNUAL_MONTH_KEY,
            "source": row.source,
            "co2e_tonnes": row.co2e_tonnes,
            "scope": row.scope,
            "method": row.method,
            "dataset_version": row.dataset_version,
            "dataset_version_key": version_sort_key(row.dataset_version),
            "dataset_name": context.dataset_name,
            "adapter": context.adapter,
            "import_job_id": context.import_job_id,
            "previous_import_job_id": None,
        }
