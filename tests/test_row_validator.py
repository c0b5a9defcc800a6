"""
tests/test_row_validator.py

Row-level coercion rules. Pure; no I/O.
"""

from __future__ import annotations

import pytest

from emissions_ingest.domain.canonical import CanonicalField
from emissions_ingest.validators.row_validator import RowValidator

F = CanonicalField


@pytest.fixture()
def validator() -> RowValidator:
    return RowValidator(min_year=1990, current_year=2025)


def _row(**overrides: str | None) -> dict[CanonicalField, str | None]:
    base: dict[CanonicalField, str | None] = {
        F.FACILITY_NAME: "  North   Plant ",
        F.YEAR: "2022",
        F.CO2E_TONNES: "100.5",
        F.SOURCE: "reported",
    }
    base.update({F(key): value for key, value in overrides.items()})
    return base


def _reasons(validator: RowValidator, row: dict[CanonicalField, str | None]) -> list[str]:
    parsed, problems = validator.validate_mapped_row(mapped_row=row, row_index=7, dataset_version="v1")
    assert parsed is None
    return [problem.reason for problem in problems]


class TestAcceptedRows:
    def test_normalises_a_valid_row(self, validator: RowValidator) -> None:
        parsed, problems = validator.validate_mapped_row(
            mapped_row=_row(scope="Scope 2", month="03", method=" metered "),
            row_index=0,
            dataset_version="v1",
        )

        assert problems == []
        assert parsed is not None
        assert parsed.facility_name == "North Plant"
        assert parsed.year == 2022
        assert parsed.month == 3
        assert parsed.co2e_tonnes == 100.5
        assert parsed.scope == 2
        assert parsed.method == "metered"
        assert parsed.dataset_version == "v1"

    def test_zero_quantity_is_valid(self, validator: RowValidator) -> None:
        parsed, problems = validator.validate_mapped_row(
            mapped_row=_row(co2e_tonnes="0"),
            row_index=0,
            dataset_version="v1",
        )

        assert problems == []
        assert parsed is not None and parsed.co2e_tonnes == 0.0

    def test_row_version_overrides_commit_version(self, validator: RowValidator) -> None:
        parsed, _ = validator.validate_mapped_row(
            mapped_row=_row(dataset_version="2024-restated"),
            row_index=0,
            dataset_version="v1",
        )

        assert parsed is not None and parsed.dataset_version == "2024-restated"

    def test_year_accepts_integral_decimal(self, validator: RowValidator) -> None:
        parsed, _ = validator.validate_mapped_row(
            mapped_row=_row(year="2022.0"),
            row_index=0,
            dataset_version="v1",
        )

        assert parsed is not None and parsed.year == 2022

    def test_natural_key_normalises_facility(self, validator: RowValidator) -> None:
        first, _ = validator.validate_mapped_row(mapped_row=_row(), row_index=0, dataset_version="v1")
        second, _ = validator.validate_mapped_row(
            mapped_row=_row(facility_name="NORTH PLANT"),
            row_index=1,
            dataset_version="v1",
        )

        assert first is not None and second is not None
        assert first.natural_key == second.natural_key


class TestRejectedRows:
    @pytest.mark.parametrize(
        ("overrides", "reason"),
        [
            ({"co2e_tonnes": "n/a"}, "non_numeric_quantity"),
            ({"co2e_tonnes": "nan"}, "non_numeric_quantity"),
            ({"co2e_tonnes": "inf"}, "non_numeric_quantity"),
            ({"co2e_tonnes": ""}, "missing_quantity"),
            ({"co2e_tonnes": "-1"}, "negative_quantity"),
            ({"year": ""}, "missing_year"),
            ({"year": "twenty"}, "bad_year"),
            ({"year": "2022.5"}, "bad_year"),
            ({"year": "1989"}, "year_out_of_range"),
            ({"year": "2027"}, "year_out_of_range"),
            ({"month": "13"}, "bad_month"),
            ({"scope": "4"}, "bad_scope"),
            ({"source": "estimated"}, "bad_source"),
            ({"source": None}, "missing_source"),
            ({"facility_name": "   "}, "missing_facility_name"),
            ({"facility_name": "x" * 256}, "facility_name_too_long"),
            ({"facility_name": "\u00df" * 200}, "facility_name_too_long"),
            ({"dataset_version": "---"}, "bad_dataset_version"),
        ],
    )
    def test_problem_reason(
        self,
        validator: RowValidator,
        overrides: dict[str, str | None],
        reason: str,
    ) -> None:
        assert reason in _reasons(validator, _row(**overrides))

    def test_name_at_the_limit_is_accepted(self, validator: RowValidator) -> None:
        parsed, problems = validator.validate_mapped_row(
            mapped_row=_row(facility_name="x" * 255),
            row_index=0,
            dataset_version="v1",
        )

        assert problems == []
        assert len(parsed.natural_key.facility) == 255

    def test_problem_carries_position_and_raw_value(self, validator: RowValidator) -> None:
        _, problems = validator.validate_mapped_row(
            mapped_row=_row(co2e_tonnes="lots"),
            row_index=7,
            dataset_version="v1",
            columns={F.CO2E_TONNES: "Tonnes"},
        )

        assert len(problems) == 1
        problem = problems[0]
        assert problem.row_index == 7
        assert problem.field == "co2e_tonnes"
        assert problem.column == "Tonnes"
        assert problem.raw_value == "lots"

    def test_reports_every_problem_in_the_row(self, validator: RowValidator) -> None:
        reasons = _reasons(validator, _row(year="abc", co2e_tonnes="-3"))

        assert reasons == ["bad_year", "negative_quantity"]

    def test_year_upper_bound_is_next_year(self, validator: RowValidator) -> None:
        parsed, _ = validator.validate_mapped_row(
            mapped_row=_row(year="2026"),
            row_index=0,
            dataset_version="v1",
        )

        assert parsed is not None
