"""
emissions_ingest/repositories/memory.py

In-process stores for tests and local runs without PostgreSQL.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, replace

from emissions_ingest.domain.canonical import (
    CanonicalRow,
    ImportJobRecord,
    NaturalKey,
    WriteAction,
    WriteOutcome,
)
from emissions_ingest.domain.versioning import version_sort_key
from emissions_ingest.repositories.base import (
    EmissionRecordStore,
    ImportJobStore,
    StoredRecord,
    WriteContext,
    resolve_write_action,
)


@dataclass(frozen=True)
class RecordRevision:
    record_id: uuid.UUID
    import_job_id: uuid.UUID
    row_index: int
    action: str
    co2e_tonnes: float
    dataset_version: str


class InMemoryEmissionRecordStore(EmissionRecordStore):
    """
    Dict-backed record store. The lock makes compare-and-write atomic.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[NaturalKey, StoredRecord] = {}
        self._revisions: list[RecordRevision] = []

    def conditional_write(
        self,
        row: CanonicalRow,
        *,
        row_index: int,
        context: WriteContext,
    ) -> WriteOutcome:
        key = row.natural_key
        incoming_version_key = version_sort_key(row.dataset_version)

        with self._lock:
            existing = self._records.get(key)
            action = resolve_write_action(
                existing_version_key=existing.dataset_version_key if existing else None,
                existing_import_job_id=existing.import_job_id if existing else None,
                incoming_version_key=incoming_version_key,
                context=context,
            )
            if action == WriteAction.DUPLICATE:
                return WriteOutcome(action=action, record_id=existing.id if existing else None)

            stored_row = row
            if action == WriteAction.ACCUMULATED and existing is not None:
                stored_row = replace(row, co2e_tonnes=existing.row.co2e_tonnes + row.co2e_tonnes)

            record_id = existing.id if existing and existing.id else uuid.uuid4()
            self._records[key] = StoredRecord(
                key=key,
                row=stored_row,
                dataset_version_key=incoming_version_key,
                dataset_name=context.dataset_name,
                adapter=context.adapter,
                import_job_id=context.import_job_id,
                previous_import_job_id=existing.import_job_id if existing else None,
                id=record_id,
            )
            self._revisions.append(
                RecordRevision(
                    record_id=record_id,
                    import_job_id=context.import_job_id,
                    row_index=row_index,
                    action=action,
                    co2e_tonnes=stored_row.co2e_tonnes,
                    dataset_version=stored_row.dataset_version,
                )
            )
            return WriteOutcome(action=action, record_id=record_id)

    def get_current(self, key: NaturalKey) -> StoredRecord | None:
        with self._lock:
            return self._records.get(key)

    def all_current(self) -> list[StoredRecord]:
        with self._lock:
            return list(self._records.values())

    def revisions(self, record_id: uuid.UUID | None = None) -> list[RecordRevision]:
        with self._lock:
            if record_id is None:
                return list(self._revisions)
            return [revision for revision in self._revisions if revision.record_id == record_id]


class InMemoryImportJobStore(ImportJobStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: list[ImportJobRecord] = []

    def record(self, job: ImportJobRecord) -> ImportJobRecord:
        with self._lock:
            if any(existing.id == job.id for existing in self._jobs):
                raise ValueError(f"Import job already recorded: {job.id}")
            self._jobs.append(job)
        return job

    def list_by_dataset(self, dataset_name: str) -> list[ImportJobRecord]:
        with self._lock:
            matching = [
                (job.created_at, position, job)
                for position, job in enumerate(self._jobs)
                if job.dataset_name == dataset_name
            ]
        matching.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [job for _, _, job in matching]

    def get(self, job_id: uuid.UUID) -> ImportJobRecord | None:
        with self._lock:
            for job in self._jobs:
                if job.id == job_id:
                    return job
        return None
