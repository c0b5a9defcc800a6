"""
emissions_ingest/services/commit_service.py

Commit engine: re-validates the whole upload and writes accepted rows.

Every write is one conditional write against the record store, so each row
is atomic on its own. A storage fault stops the commit; rows written before
it stay written and the import job is recorded as incomplete. Exactly one
import job is recorded per call.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache

from emissions_ingest.config import get_ingestion_settings
from emissions_ingest.domain.canonical import (
    DuplicatePolicy,
    HeaderMapping,
    ImportJobRecord,
    ImportJobStatus,
    Problem,
    WriteAction,
    WriteOutcome,
)
from emissions_ingest.domain.versioning import normalize_version_tag
from emissions_ingest.errors import PartialCommitError, StorageFault
from emissions_ingest.logging_utils import log_event, log_row_problem
from emissions_ingest.parsing.csv_reader import ParsedUpload
from emissions_ingest.repositories.base import EmissionRecordStore, ImportJobStore, WriteContext
from emissions_ingest.services.upload_validation import UploadValidationPass
from emissions_ingest.validators.row_validator import RowValidator

logger = logging.getLogger(__name__)


@dataclass
class _CommitCounters:
    imported: int = 0
    inserted: int = 0
    replaced: int = 0
    merged: int = 0
    duplicates: int = 0
    invalid: int = 0

    def apply(self, outcome: WriteOutcome) -> None:
        if outcome.action == WriteAction.DUPLICATE:
            self.duplicates += 1
            return
        self.imported += 1
        if outcome.action == WriteAction.INSERTED:
            self.inserted += 1
        elif outcome.action == WriteAction.REPLACED:
            self.replaced += 1
        else:
            self.merged += 1


@dataclass(frozen=True)
class CommitResult:
    import_job_id: uuid.UUID
    status: str
    adapter: str
    dataset_name: str
    dataset_version: str
    duplicate_policy: str
    rows_total: int
    rows_imported: int
    rows_inserted: int
    rows_replaced: int
    rows_skipped: int
    duplicates: int
    invalid: int
    last_processed_row_index: int | None
    problems: list[Problem] = field(default_factory=list)
    problems_total: int = 0


class CommitService:
    """
    Coordinates validation, conditional writes and the import job record.
    """

    def __init__(
        self,
        *,
        validation: UploadValidationPass | None = None,
        max_job_problems: int = 500,
        log_row_problems: bool = True,
    ) -> None:
        self._validation = validation or UploadValidationPass()
        self._max_job_problems = max(1, max_job_problems)
        self._log_row_problems = log_row_problems

    def commit(
        self,
        upload: ParsedUpload,
        *,
        record_store: EmissionRecordStore,
        job_store: ImportJobStore,
        dataset_version: str,
        dataset_name: str | None = None,
        duplicate_policy: DuplicatePolicy | str = DuplicatePolicy.REPLACE_IF_NEWER,
        mapping: HeaderMapping | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CommitResult:
        """
        Commit every valid row of `upload` in file order.

        Raises ValueError for an unusable version tag or policy,
        SchemaMismatchError before any write when the mapping is unusable,
        and PartialCommitError when a storage fault stopped the commit.
        """

        version = normalize_version_tag(dataset_version)
        policy = DuplicatePolicy(duplicate_policy)
        prepared = self._validation.prepare(upload, mapping=mapping)
        adapter = prepared.adapter
        name = (dataset_name or "").strip() or adapter.default_dataset_name

        job_id = uuid.uuid4()
        context = WriteContext(
            import_job_id=job_id,
            duplicate_policy=policy,
            merge_mode=adapter.merge_mode,
            adapter=adapter.key,
            dataset_name=name,
        )
        rows_total = sum(1 for raw_row in upload.rows if not raw_row.is_empty())

        log_event(
            logger,
            logging.INFO,
            "ingest.commit.started",
            import_job_id=job_id,
            adapter=adapter.key,
            dataset_name=name,
            dataset_version=version,
            duplicate_policy=policy.value,
            rows_total=rows_total,
            file_name=upload.file_name,
        )

        counters = _CommitCounters()
        problems: list[Problem] = []
        problems_total = 0
        last_processed: int | None = None
        status = ImportJobStatus.COMPLETED
        fault: StorageFault | None = None

        try:
            for result in self._validation.validate_rows(prepared, dataset_version=version):
                if cancel_event is not None and cancel_event.is_set():
                    status = ImportJobStatus.CANCELLED
                    break

                if not result.ok or result.row is None:
                    counters.invalid += 1
                    problems_total += len(result.problems)
                    for problem in result.problems:
                        if len(problems) < self._max_job_problems:
                            problems.append(problem)
                        if self._log_row_problems:
                            log_row_problem(logger, problem, import_job_id=job_id)
                    last_processed = result.row_index
                    continue

                outcome = record_store.conditional_write(
                    result.row,
                    row_index=result.row_index,
                    context=context,
                )
                counters.apply(outcome)
                last_processed = result.row_index
        except StorageFault as exc:
            status = ImportJobStatus.INCOMPLETE
            fault = exc

        rows_skipped = rows_total - counters.imported - counters.duplicates - counters.invalid
        job = ImportJobRecord(
            id=job_id,
            adapter=adapter.key,
            dataset_name=name,
            dataset_version=version,
            duplicate_policy=policy.value,
            status=status,
            rows_total=rows_total,
            rows_imported=counters.imported,
            rows_inserted=counters.inserted,
            rows_replaced=counters.replaced,
            rows_skipped=rows_skipped,
            duplicates=counters.duplicates,
            invalid=counters.invalid,
            last_processed_row_index=last_processed,
            created_at=datetime.now(timezone.utc),
            file_name=upload.file_name,
            checksum_sha256=upload.checksum_sha256,
            header_mapping=prepared.mapping.to_wire(),
            problems=[problem.to_dict() for problem in problems],
            error_message=str(fault) if fault is not None else None,
        )
        counts = {
            "rowsTotal": rows_total,
            "rowsImported": counters.imported,
            "rowsSkipped": rows_skipped,
            "duplicates": counters.duplicates,
            "invalid": counters.invalid,
        }

        try:
            job_store.record(job)
        except StorageFault as exc:
            log_event(
                logger,
                logging.ERROR,
                "ingest.commit.job_record_failed",
                import_job_id=job_id,
                status=status,
                error=str(exc),
                **counts,
            )
            raise PartialCommitError(
                message="Rows were processed but the import job could not be recorded.",
                import_job_id=job_id,
                last_processed_row_index=last_processed,
                counts=counts,
            ) from (fault or exc)

        if fault is not None:
            log_event(
                logger,
                logging.ERROR,
                "ingest.commit.incomplete",
                import_job_id=job_id,
                last_processed_row_index=last_processed,
                error=str(fault),
                **counts,
            )
            raise PartialCommitError(
                message=f"Commit stopped on a storage fault: {fault}",
                import_job_id=job_id,
                last_processed_row_index=last_processed,
                counts=counts,
            ) from fault

        log_event(
            logger,
            logging.INFO,
            "ingest.commit.finished",
            import_job_id=job_id,
            status=status,
            rows_inserted=counters.inserted,
            rows_replaced=counters.replaced,
            rows_merged=counters.merged,
            **counts,
        )

        return CommitResult(
            import_job_id=job_id,
            status=status,
            adapter=adapter.key,
            dataset_name=name,
            dataset_version=version,
            duplicate_policy=policy.value,
            rows_total=rows_total,
            rows_imported=counters.imported,
            rows_inserted=counters.inserted,
            rows_replaced=counters.replaced,
            rows_skipped=rows_skipped,
            duplicates=counters.duplicates,
            invalid=counters.invalid,
            last_processed_row_index=last_processed,
            problems=problems,
            problems_total=problems_total,
        )


@lru_cache(maxsize=1)
def get_commit_service() -> CommitService:
    """
    Build and cache the commit service with env-driven settings.
    """

    settings = get_ingestion_settings()
    return CommitService(
        validation=UploadValidationPass(row_validator=RowValidator(min_year=settings.min_year)),
        max_job_problems=settings.job_max_problems,
        log_row_problems=settings.log_row_problems,
    )
