"""
tests/test_commit_service.py

Commit engine behaviour against the in-memory stores.

Coverage
--------
- The three-row reference scenario
- Preview/commit parity
- Idempotence under skip and with an unchanged version
- Monotonic replace under replace_if_newer
- Same-commit accumulation for sector datasets
- Partial commit on a storage fault
- Cancellation
- Concurrent commits on overlapping keys
- Import job audit records
"""

from __future__ import annotations

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from emissions_ingest.domain.canonical import (
    CanonicalRow,
    DuplicatePolicy,
    ImportJobStatus,
    NaturalKey,
    WriteOutcome,
)
from emissions_ingest.errors import PartialCommitError, SchemaMismatchError, StorageFault
from emissions_ingest.repositories.base import WriteContext
from emissions_ingest.repositories.memory import InMemoryEmissionRecordStore, InMemoryImportJobStore

SCENARIO = "facility_name,year,co2e_tonnes\nA,2022,100\nB,2022,n/a\nA,2022,150\n"


def _key(name: str, year: int = 2022, month: int | None = None, source: str = "reported") -> NaturalKey:
    return NaturalKey(facility=name.casefold(), year=year, month=month, source=source)


def _counts_add_up(result) -> bool:
    return result.rows_total == (
        result.rows_imported + result.duplicates + result.invalid + result.rows_skipped
    )


class _FaultingRecordStore(InMemoryEmissionRecordStore):
    """Raises StorageFault on the n-th conditional write (1-based)."""

    def __init__(self, fail_on_write: int) -> None:
        super().__init__()
        self._fail_on_write = fail_on_write
        self._writes = 0

    def conditional_write(self, row: CanonicalRow, *, row_index: int, context: WriteContext) -> WriteOutcome:
        self._writes += 1
        if self._writes == self._fail_on_write:
            raise StorageFault(f"connection reset on row {row_index}")
        return super().conditional_write(row, row_index=row_index, context=context)


class _CancellingRecordStore(InMemoryEmissionRecordStore):
    """Sets the cancel event after the n-th successful write."""

    def __init__(self, cancel_event: threading.Event, cancel_after: int) -> None:
        super().__init__()
        self._cancel_event = cancel_event
        self._cancel_after = cancel_after
        self._writes = 0

    def conditional_write(self, row: CanonicalRow, *, row_index: int, context: WriteContext) -> WriteOutcome:
        outcome = super().conditional_write(row, row_index=row_index, context=context)
        self._writes += 1
        if self._writes == self._cancel_after:
            self._cancel_event.set()
        return outcome


class _FailingJobStore(InMemoryImportJobStore):
    def record(self, job):
        raise StorageFault("audit table unavailable")


class TestScenario:
    def test_three_row_file(self, commit_service, record_store, job_store, upload_factory) -> None:
        result = commit_service.commit(
            upload_factory(SCENARIO),
            record_store=record_store,
            job_store=job_store,
            dataset_version="v1",
        )

        assert result.rows_total == 3
        assert result.rows_imported == 2
        assert result.invalid == 1
        assert result.duplicates == 0
        assert result.rows_skipped == 0
        assert result.status == ImportJobStatus.COMPLETED

        stored = record_store.get_current(_key("A"))
        assert stored is not None
        assert stored.row.co2e_tonnes == 150.0
        assert record_store.get_current(_key("B")) is None

    def test_resubmitting_same_version_is_a_noop(
        self, commit_service, record_store, job_store, upload_factory
    ) -> None:
        upload = upload_factory(SCENARIO)
        commit_service.commit(upload, record_store=record_store, job_store=job_store, dataset_version="v1")

        again = commit_service.commit(
            upload,
            record_store=record_store,
            job_store=job_store,
            dataset_version="v1",
        )

        # Row 0 and row 2 share a key; both lose against the stored v1.
        assert again.rows_imported == 0
        assert again.duplicates == 2
        assert again.invalid == 1
        assert record_store.get_current(_key("A")).row.co2e_tonnes == 150.0


class TestPreviewParity:
    def test_commit_accepts_exactly_the_rows_preview_accepts(
        self, preview_service, commit_service, record_store, job_store, upload_factory
    ) -> None:
        upload = upload_factory(
            "site,yr,tons,scope,source\n"
            "A,2022,1,1,reported\n"
            "B,2022,2,5,reported\n"
            "C,1950,3,2,observed\n"
            "D,2023,4,Scope 3,projected\n"
            "E,2023,x,,\n"
        )

        report = preview_service.preview(upload)
        result = commit_service.commit(
            upload,
            record_store=record_store,
            job_store=job_store,
            dataset_version="v1",
        )

        assert result.rows_imported + result.duplicates == report.stats.ok
        assert result.invalid == report.stats.checked - report.stats.ok
        assert result.problems_total == report.stats.problems_total
        assert [problem.row_index for problem in result.problems] == [
            problem.row_index for problem in report.stats.problems
        ]

    def test_mapping_errors_fail_before_any_write(
        self, commit_service, record_store, job_store, upload_factory
    ) -> None:
        with pytest.raises(SchemaMismatchError):
            commit_service.commit(
                upload_factory("Plant,Amount\nA,1\n"),
                record_store=record_store,
                job_store=job_store,
                dataset_version="v1",
            )

        assert record_store.all_current() == []
        assert job_store.list_by_dataset("Operator Upload") == []


class TestDuplicatePolicies:
    def test_skip_never_overwrites(self, commit_service, record_store, job_store, upload_factory) -> None:
        commit_service.commit(
            upload_factory("facility_name,year,co2e_tonnes\nA,2022,10\n"),
            record_store=record_store,
            job_store=job_store,
            dataset_version="v1",
        )

        result = commit_service.commit(
            upload_factory("facility_name,year,co2e_tonnes\nA,2022,99\nB,2022,5\n"),
            record_store=record_store,
            job_store=job_store,
            dataset_version="v9",
            duplicate_policy=DuplicatePolicy.SKIP,
        )

        assert result.rows_imported == 1
        assert result.duplicates == 1
        assert record_store.get_current(_key("A")).row.co2e_tonnes == 10.0

    def test_skip_is_idempotent(self, commit_service, record_store, job_store, upload_factory) -> None:
        upload = upload_factory("facility_name,year,co2e_tonnes\nA,2022,10\nB,2022,20\n")
        commit_service.commit(
            upload,
            record_store=record_store,
            job_store=job_store,
            dataset_version="v1",
            duplicate_policy="skip",
        )
        before = {record.key: record.row for record in record_store.all_current()}

        result = commit_service.commit(
            upload,
            record_store=record_store,
            job_store=job_store,
            dataset_version="v1",
            duplicate_policy="skip",
        )

        assert result.rows_imported == 0
        assert result.duplicates == 2
        assert {record.key: record.row for record in record_store.all_current()} == before

    def test_replace_if_newer_only_moves_forward(
        self, commit_service, record_store, job_store, upload_factory
    ) -> None:
        for version, value in (("v2", 20), ("v1", 10), ("v10", 100), ("v3", 30)):
            commit_service.commit(
                upload_factory(f"facility_name,year,co2e_tonnes\nA,2022,{value}\n"),
                record_store=record_store,
                job_store=job_store,
                dataset_version=version,
            )

        stored = record_store.get_current(_key("A"))
        assert stored.row.dataset_version == "v10"
        assert stored.row.co2e_tonnes == 100.0

    def test_newer_version_counts_as_replaced(
        self, commit_service, record_store, job_store, upload_factory
    ) -> None:
        commit_service.commit(
            upload_factory("facility_name,year,co2e_tonnes\nA,2022,1\n"),
            record_store=record_store,
            job_store=job_store,
            dataset_version="2023.1",
        )

        result = commit_service.commit(
            upload_factory("facility_name,year,co2e_tonnes\nA,2022,2\nB,2022,3\n"),
            record_store=record_store,
            job_store=job_store,
            dataset_version="2023.2",
        )

        assert result.rows_imported == 2
        assert result.rows_replaced == 1
        assert result.rows_inserted == 1

    def test_row_level_version_wins_over_commit_version(
        self, commit_service, record_store, job_store, upload_factory
    ) -> None:
        commit_service.commit(
            upload_factory("facility_name,year,co2e_tonnes\nA,2022,1\n"),
            record_store=record_store,
            job_store=job_store,
            dataset_version="v5",
        )

        result = commit_service.commit(
            upload_factory("facility_name,year,co2e_tonnes,dataset_version\nA,2022,2,v4\n"),
            record_store=record_store,
            job_store=job_store,
            dataset_version="v6",
        )

        assert result.duplicates == 1
        assert record_store.get_current(_key("A")).row.dataset_version == "v5"

    def test_unknown_policy_is_rejected(self, commit_service, record_store, job_store, upload_factory) -> None:
        with pytest.raises(ValueError):
            commit_service.commit(
                upload_factory(SCENARIO),
                record_store=record_store,
                job_store=job_store,
                dataset_version="v1",
                duplicate_policy="overwrite",
            )

    def test_blank_version_is_rejected(self, commit_service, record_store, job_store, upload_factory) -> None:
        with pytest.raises(ValueError):
            commit_service.commit(
                upload_factory(SCENARIO),
                record_store=record_store,
                job_store=job_store,
                dataset_version="  ",
            )


class TestSectorAccumulation:
    def test_country_rows_sum_into_one_sector_record(
        self, commit_service, record_store, job_store, upload_factory
    ) -> None:
        upload = upload_factory(
            "iso3_country,sector,subsector,start_time,gas,emissions_quantity,emissions_quantity_units\n"
            "USA,power,coal,2022-01-01T00:00:00Z,co2e_100yr,5,t\n"
            "CAN,power,coal,2022-01-01T00:00:00Z,co2e_100yr,7,t\n"
            "MEX,power,coal,2022-01-01T00:00:00Z,co2e_100yr,1,kt\n"
        )

        result = commit_service.commit(
            upload,
            record_store=record_store,
            job_store=job_store,
            dataset_version="2024-v1",
        )

        assert result.adapter == "trace_sector"
        assert result.dataset_name == "Climate TRACE Sector"
        assert result.rows_imported == 3
        assert result.rows_inserted == 1
        stored = record_store.get_current(_key("power coal (TRACE aggregate)", source="observed"))
        assert stored.row.co2e_tonnes == pytest.approx(1012.0)

    def test_recommitting_same_version_does_not_double_count(
        self, commit_service, record_store, job_store, upload_factory
    ) -> None:
        upload = upload_factory(
            "iso3_country,sector,start_time,emissions_quantity\n"
            "USA,waste,2022-01-01T00:00:00Z,5\n"
            "CAN,waste,2022-01-01T00:00:00Z,7\n"
        )
        for _ in range(2):
            commit_service.commit(upload, record_store=record_store, job_store=job_store, dataset_version="v1")

        stored = record_store.get_current(_key("waste (TRACE aggregate)", source="observed"))
        assert stored.row.co2e_tonnes == 12.0

    def test_only_one_gwp_horizon_is_summed(
        self, commit_service, record_store, job_store, upload_factory
    ) -> None:
        upload = upload_factory(
            "iso3_country,sector,subsector,start_time,gas,emissions_quantity,emissions_quantity_units\n"
            "USA,power,electricity-generation,2022-01-01T00:00:00Z,co2e_100yr,100,t\n"
            "USA,power,electricity-generation,2022-01-01T00:00:00Z,co2e_20yr,300,t\n"
        )

        result = commit_service.commit(
            upload,
            record_store=record_store,
            job_store=job_store,
            dataset_version="2024-v1",
        )

        assert result.rows_imported == 1
        assert result.invalid == 1
        assert [problem.reason for problem in result.problems] == ["unsupported_gas"]
        stored = record_store.get_current(
            _key("power electricity-generation (TRACE aggregate)", source="observed")
        )
        assert stored.row.co2e_tonnes == 100.0


class TestPartialCommit:
    def test_storage_fault_keeps_earlier_rows_and_records_incomplete_job(
        self, commit_service, job_store, upload_factory
    ) -> None:
        store = _FaultingRecordStore(fail_on_write=3)
        upload = upload_factory(
            "facility_name,year,co2e_tonnes\nA,2022,1\nB,2022,bad\nC,2022,3\nD,2022,4\nE,2022,5\n"
        )

        with pytest.raises(PartialCommitError) as exc_info:
            commit_service.commit(upload, record_store=store, job_store=job_store, dataset_version="v1")

        error = exc_info.value
        assert error.last_processed_row_index == 2
        assert error.counts == {
            "rowsTotal": 5,
            "rowsImported": 2,
            "rowsSkipped": 2,
            "duplicates": 0,
            "invalid": 1,
        }
        assert {record.row.facility_name for record in store.all_current()} == {"A", "C"}

        job = job_store.get(error.import_job_id)
        assert job is not None
        assert job.status == ImportJobStatus.INCOMPLETE
        assert job.last_processed_row_index == 2
        assert "connection reset" in (job.error_message or "")

    def test_resuming_after_fault_completes_the_file(self, commit_service, job_store, upload_factory) -> None:
        store = _FaultingRecordStore(fail_on_write=2)
        upload = upload_factory("facility_name,year,co2e_tonnes\nA,2022,1\nB,2022,2\nC,2022,3\n")
        with pytest.raises(PartialCommitError):
            commit_service.commit(upload, record_store=store, job_store=job_store, dataset_version="v1")

        result = commit_service.commit(upload, record_store=store, job_store=job_store, dataset_version="v1")

        assert result.rows_imported == 2
        assert result.duplicates == 1
        assert len(store.all_current()) == 3

    def test_job_record_failure_still_raises_partial_commit(
        self, commit_service, record_store, upload_factory
    ) -> None:
        with pytest.raises(PartialCommitError) as exc_info:
            commit_service.commit(
                upload_factory(SCENARIO),
                record_store=record_store,
                job_store=_FailingJobStore(),
                dataset_version="v1",
            )

        assert exc_info.value.counts["rowsImported"] == 2
        assert isinstance(exc_info.value.__cause__, StorageFault)


class TestCancellation:
    def test_cancel_stops_between_rows(self, commit_service, job_store, upload_factory) -> None:
        cancel_event = threading.Event()
        store = _CancellingRecordStore(cancel_event, cancel_after=2)
        rows = "\n".join(f"F{index},2022,{index}" for index in range(10))
        upload = upload_factory(f"facility_name,year,co2e_tonnes\n{rows}\n")

        result = commit_service.commit(
            upload,
            record_store=store,
            job_store=job_store,
            dataset_version="v1",
            cancel_event=cancel_event,
        )

        assert result.status == ImportJobStatus.CANCELLED
        assert result.rows_imported == 2
        assert result.rows_skipped == 8
        assert result.last_processed_row_index == 1
        assert _counts_add_up(result)
        assert job_store.get(result.import_job_id).status == ImportJobStatus.CANCELLED

    def test_pre_set_event_writes_nothing(self, commit_service, record_store, job_store, upload_factory) -> None:
        cancel_event = threading.Event()
        cancel_event.set()

        result = commit_service.commit(
            upload_factory(SCENARIO),
            record_store=record_store,
            job_store=job_store,
            dataset_version="v1",
            cancel_event=cancel_event,
        )

        assert result.rows_skipped == 3
        assert result.last_processed_row_index is None
        assert record_store.all_current() == []


class TestImportJobAudit:
    def test_one_job_per_commit_newest_first(self, commit_service, record_store, job_store, upload_factory) -> None:
        upload = upload_factory(SCENARIO, file_name="ops.csv")
        first = commit_service.commit(
            upload,
            record_store=record_store,
            job_store=job_store,
            dataset_version="v1",
            dataset_name="North Region",
        )
        second = commit_service.commit(
            upload,
            record_store=record_store,
            job_store=job_store,
            dataset_version="v2",
            dataset_name="North Region",
        )

        jobs = job_store.list_by_dataset("North Region")

        assert [job.id for job in jobs] == [second.import_job_id, first.import_job_id]
        latest = jobs[0]
        assert latest.rows_replaced == 1
        assert latest.file_name == "ops.csv"
        assert latest.checksum_sha256 == upload.checksum_sha256
        assert latest.header_mapping == {
            "facility_name": "facility_name",
            "year": "year",
            "co2e_tonnes": "co2e_tonnes",
        }
        assert latest.problems[0]["reason"] == "non_numeric_quantity"

    def test_default_dataset_name_comes_from_adapter(
        self, commit_service, record_store, job_store, upload_factory
    ) -> None:
        result = commit_service.commit(
            upload_factory(SCENARIO),
            record_store=record_store,
            job_store=job_store,
            dataset_version="v1",
            dataset_name="  ",
        )

        assert result.dataset_name == "Operator Upload"
        assert job_store.list_by_dataset("Operator Upload")[0].id == result.import_job_id

    def test_job_store_is_append_only(self, job_store, commit_service, record_store, upload_factory) -> None:
        result = commit_service.commit(
            upload_factory(SCENARIO),
            record_store=record_store,
            job_store=job_store,
            dataset_version="v1",
        )

        with pytest.raises(ValueError):
            job_store.record(job_store.get(result.import_job_id))
        assert job_store.get(uuid.uuid4()) is None


def _facility_rows(start: int, stop: int) -> str:
    rows = "".join(f"F{index},2022,{index}\n" for index in range(start, stop))
    return "facility_name,year,co2e_tonnes\n" + rows


class TestConcurrentCommits:
    def _commit_in_parallel(self, commit_service, record_store, job_store, uploads_and_versions):
        barrier = threading.Barrier(len(uploads_and_versions))

        def run(item):
            upload, version = item
            barrier.wait()
            return commit_service.commit(
                upload,
                record_store=record_store,
                job_store=job_store,
                dataset_version=version,
            )

        with ThreadPoolExecutor(max_workers=len(uploads_and_versions)) as pool:
            return list(pool.map(run, uploads_and_versions))

    def test_same_version_overlap_keeps_one_record_per_key(
        self, commit_service, record_store, job_store, upload_factory
    ) -> None:
        results = self._commit_in_parallel(
            commit_service,
            record_store,
            job_store,
            [
                (upload_factory(_facility_rows(0, 60)), "v1"),
                (upload_factory(_facility_rows(30, 90)), "v1"),
            ],
        )

        assert len(record_store.all_current()) == 90
        assert sum(result.rows_imported + result.duplicates for result in results) == 120
        assert sum(result.duplicates for result in results) == 30
        assert all(result.status == ImportJobStatus.COMPLETED for result in results)
        assert all(_counts_add_up(result) for result in results)

    def test_newer_version_wins_regardless_of_order(
        self, commit_service, record_store, job_store, upload_factory
    ) -> None:
        results = self._commit_in_parallel(
            commit_service,
            record_store,
            job_store,
            [
                (upload_factory(_facility_rows(0, 60)), "v1"),
                (upload_factory(_facility_rows(30, 90)), "v2"),
            ],
        )

        assert len(record_store.all_current()) == 90
        assert sum(result.rows_imported + result.duplicates for result in results) == 120
        for index in range(30, 90):
            assert record_store.get_current(_key(f"F{index}")).row.dataset_version == "v2"
        for index in range(0, 30):
            assert record_store.get_current(_key(f"F{index}")).row.dataset_version == "v1"
