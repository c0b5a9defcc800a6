"""
emissions_ingest/repositories/base.py

Storage interfaces for the record store and the import job audit store.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass

from emissions_ingest.domain.canonical import (
    CanonicalRow,
    DuplicatePolicy,
    ImportJobRecord,
    MergeMode,
    NaturalKey,
    WriteAction,
    WriteOutcome,
)


@dataclass(frozen=True)
class WriteContext:
    """
    Commit-wide attributes attached to every write of one commit.
    """

    import_job_id: uuid.UUID
    duplicate_policy: DuplicatePolicy
    merge_mode: str
    adapter: str
    dataset_name: str


@dataclass(frozen=True)
class StoredRecord:
    key: NaturalKey
    row: CanonicalRow
    dataset_version_key: str
    dataset_name: str
    adapter: str
    import_job_id: uuid.UUID
    previous_import_job_id: uuid.UUID | None = None
    id: uuid.UUID | None = None


def resolve_write_action(
    *,
    existing_version_key: str | None,
    existing_import_job_id: uuid.UUID | None,
    incoming_version_key: str,
    context: WriteContext,
) -> str:
    """
    Decide what a conditional write does. Reference semantics for every store.

    - no current record: insert
    - record written earlier by the same commit: last row wins, or the
      values accumulate for adapters that sum partial rows
    - replace_if_newer with a strictly newer version: replace
    - anything else: duplicate, store untouched
    """

    if existing_version_key is None:
        return WriteAction.INSERTED
    if existing_import_job_id == context.import_job_id:
        if context.merge_mode == MergeMode.ACCUMULATE:
            return WriteAction.ACCUMULATED
        return WriteAction.SUPERSEDED_IN_FILE
    if (
        context.duplicate_policy == DuplicatePolicy.REPLACE_IF_NEWER
        and incoming_version_key > existing_version_key
    ):
        return WriteAction.REPLACED
    return WriteAction.DUPLICATE


class EmissionRecordStore(ABC):
    """
    Versioned record store with an atomic conditional write per row.
    """

    @abstractmethod
    def conditional_write(
        self,
        row: CanonicalRow,
        *,
        row_index: int,
        context: WriteContext,
    ) -> WriteOutcome:
        """
        Atomically compare the stored version for the row's natural key and
        write when the duplicate policy allows it.

        Raises StorageFault on infrastructure failure; nothing is written then.
        """

    @abstractmethod
    def get_current(self, key: NaturalKey) -> StoredRecord | None:
        """
        Return the current record for a natural key.
        """


class ImportJobStore(ABC):
    """
    Append-only audit trail of commits. No update or delete.
    """

    @abstractmethod
    def record(self, job: ImportJobRecord) -> ImportJobRecord:
        """
        Persist one import job. Raises StorageFault on failure.
        """

    @abstractmethod
    def list_by_dataset(self, dataset_name: str) -> list[ImportJobRecord]:
        """
        Jobs for one dataset, newest first.
        """

    @abstractmethod
    def get(self, job_id: uuid.UUID) -> ImportJobRecord | None:
        """
        One job by id.
        """
