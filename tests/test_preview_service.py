"""
tests/test_preview_service.py

Dry-run validation reports. Nothing here touches a store.
"""

from __future__ import annotations

import pytest

from emissions_ingest.domain.canonical import HeaderMapping
from emissions_ingest.errors import SchemaMismatchError
from emissions_ingest.services.preview_service import PreviewService


class TestPreview:
    def test_reports_checked_ok_and_problems(self, preview_service, upload_factory) -> None:
        upload = upload_factory("facility_name,year,co2e_tonnes\nA,2022,100\nB,2022,n/a\nA,2022,150\n")

        report = preview_service.preview(upload)

        assert report.adapter.key == "generic_operator"
        assert report.stats.checked == 3
        assert report.stats.ok == 2
        assert report.stats.problems_total == 1
        problem = report.stats.problems[0]
        assert problem.row_index == 1
        assert problem.reason == "non_numeric_quantity"
        assert problem.column == "co2e_tonnes"
        assert problem.raw_value == "n/a"

    def test_sample_rows_are_normalised(self, preview_service, upload_factory) -> None:
        upload = upload_factory("site,yr,tons\n  North  Plant ,2022,12.5\n")

        report = preview_service.preview(upload)

        assert report.sample_rows == [
            {
                "facility_name": "North Plant",
                "year": 2022,
                "month": None,
                "co2e_tonnes": 12.5,
                "scope": None,
                "source": "reported",
                "method": None,
                "dataset_version": None,
            }
        ]

    def test_empty_rows_are_skipped_but_keep_numbering(self, preview_service, upload_factory) -> None:
        upload = upload_factory("facility_name,year,co2e_tonnes\nA,2022,1\n,,\nB,2022,-5\n")

        report = preview_service.preview(upload)

        assert report.stats.checked == 2
        assert report.stats.problems[0].row_index == 2

    def test_extra_cells_are_a_problem(self, preview_service, upload_factory) -> None:
        upload = upload_factory("facility_name,year,co2e_tonnes\nA,2022,1,surprise\nB,2022,2,\n")

        report = preview_service.preview(upload)

        assert report.stats.ok == 1
        assert [problem.reason for problem in report.stats.problems] == ["too_many_fields"]

    def test_problem_list_is_capped_but_total_is_exact(self, validation, upload_factory) -> None:
        service = PreviewService(validation=validation, max_problems=10)
        rows = "\n".join(f"F{index},2022,bad" for index in range(50))
        upload = upload_factory(f"facility_name,year,co2e_tonnes\n{rows}\n")

        report = service.preview(upload)

        assert len(report.stats.problems) == 10
        assert report.stats.problems_total == 50
        assert report.stats.ok == 0

    def test_checks_at_most_max_rows(self, validation, upload_factory) -> None:
        service = PreviewService(validation=validation, max_rows=5)
        rows = "\n".join(f"F{index},2022,1" for index in range(20))
        upload = upload_factory(f"facility_name,year,co2e_tonnes\n{rows}\n")

        report = service.preview(upload)

        assert report.stats.checked == 5
        assert report.stats.ok == 5

    def test_is_deterministic(self, preview_service, upload_factory) -> None:
        upload = upload_factory("site,yr,tons,scope\nA,2022,1,9\nB,1980,2,1\n")

        assert preview_service.preview(upload) == preview_service.preview(upload)

    def test_caller_mapping_is_used(self, preview_service, upload_factory) -> None:
        upload = upload_factory("Plant,When,Amount\nA,2022,3\n")
        mapping = HeaderMapping.from_wire({"Plant": "facility_name", "When": "year", "Amount": "co2e_tonnes"})

        report = preview_service.preview(upload, mapping=mapping)

        assert report.mapping is mapping
        assert report.stats.ok == 1

    def test_unmapped_required_field_is_fatal(self, preview_service, upload_factory) -> None:
        upload = upload_factory("Plant,Amount\nA,3\n")

        with pytest.raises(SchemaMismatchError):
            preview_service.preview(upload)

    def test_trace_upload(self, preview_service, upload_factory) -> None:
        upload = upload_factory(
            "iso3_country,sector,subsector,start_time,gas,emissions_quantity,emissions_quantity_units\n"
            "USA,power,electricity-generation,2022-01-01T00:00:00Z,co2e_100yr,5,Mt\n"
            "CAN,power,electricity-generation,2022-01-01T00:00:00Z,ch4,1,t\n"
        )

        report = preview_service.preview(upload)

        assert report.adapter.key == "trace_sector"
        assert report.stats.ok == 1
        assert report.sample_rows[0]["facility_name"] == "power electricity-generation (TRACE aggregate)"
        assert report.sample_rows[0]["co2e_tonnes"] == 5_000_000.0
        assert report.sample_rows[0]["source"] == "observed"
        assert report.sample_rows[0]["scope"] == 1
        assert report.stats.problems[0].reason == "unsupported_gas"
