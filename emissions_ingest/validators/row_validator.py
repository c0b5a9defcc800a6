"""
emissions_ingest/validators/row_validator.py

Row-level validation and type coercion onto CanonicalRow.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from emissions_ingest.domain.canonical import (
    ALLOWED_SOURCES,
    CanonicalField,
    CanonicalRow,
    Problem,
    normalize_facility_name,
)
from emissions_ingest.domain.versioning import MAX_TAG_LENGTH

DEFAULT_MIN_YEAR = 1990
MAX_FACILITY_NAME_LENGTH = 255
MAX_METHOD_LENGTH = 120
MAX_VERSION_LENGTH = MAX_TAG_LENGTH

_SCOPE_PATTERN = re.compile(r"^(?:scope\s*)?([123])$", re.IGNORECASE)
_HAS_ALNUM = re.compile(r"[A-Za-z0-9]")


class RowValidator:
    """
    Validates and parses mapped canonical row values.
    """

    def __init__(self, *, min_year: int = DEFAULT_MIN_YEAR, current_year: int | None = None) -> None:
        self._min_year = min_year
        self._current_year = current_year

    @property
    def max_year(self) -> int:
        current = self._current_year or datetime.now(timezone.utc).year
        return current + 1

    def validate_mapped_row(
        self,
        *,
        mapped_row: Mapping[CanonicalField, str | None],
        row_index: int,
        dataset_version: str,
        columns: Mapping[CanonicalField, str] | None = None,
    ) -> tuple[CanonicalRow | None, list[Problem]]:
        """
        Validate and parse one canonical mapped row.

        `columns` names the source column of each field for problem reports.
        """

        problems: list[Problem] = []
        columns = columns or {}

        def report(canonical: CanonicalField, reason: str, value: Any) -> None:
            problems.append(
                Problem(
                    row_index=row_index,
                    field=canonical.value,
                    column=columns.get(canonical),
                    reason=reason,
                    raw_value=self._stringify_value(value),
                )
            )

        facility_raw = mapped_row.get(CanonicalField.FACILITY_NAME)
        facility_name = ""
        if self._is_blank(facility_raw):
            report(CanonicalField.FACILITY_NAME, "missing_facility_name", facility_raw)
        else:
            facility_name = " ".join(str(facility_raw).split())
            # The stored key is case-folded, which can lengthen a name ("ß" -> "ss").
            folded_length = len(normalize_facility_name(facility_name))
            if max(len(facility_name), folded_length) > MAX_FACILITY_NAME_LENGTH:
                report(CanonicalField.FACILITY_NAME, "facility_name_too_long", facility_raw)

        year = self._parse_year(mapped_row.get(CanonicalField.YEAR), report)
        month = self._parse_month(mapped_row.get(CanonicalField.MONTH), report)
        co2e_tonnes = self._parse_quantity(mapped_row.get(CanonicalField.CO2E_TONNES), report)
        scope = self._parse_scope(mapped_row.get(CanonicalField.SCOPE), report)
        source = self._parse_source(mapped_row.get(CanonicalField.SOURCE), report)

        method = self._parse_optional_string(mapped_row.get(CanonicalField.METHOD))
        if method is not None and len(method) > MAX_METHOD_LENGTH:
            report(CanonicalField.METHOD, "method_too_long", method)

        row_version = self._parse_optional_string(mapped_row.get(CanonicalField.DATASET_VERSION))
        if row_version is not None and (
            len(row_version) > MAX_VERSION_LENGTH or not _HAS_ALNUM.search(row_version)
        ):
            report(CanonicalField.DATASET_VERSION, "bad_dataset_version", row_version)

        if problems or year is None or co2e_tonnes is None or source is None:
            return None, problems

        return (
            CanonicalRow(
                facility_name=facility_name,
                year=year,
                month=month,
                co2e_tonnes=co2e_tonnes,
                scope=scope,
                source=source,
                method=method,
                dataset_version=row_version or dataset_version,
            ),
            [],
        )

    def _parse_year(self, value: str | None, report: Any) -> int | None:
        if self._is_blank(value):
            report(CanonicalField.YEAR, "missing_year", value)
            return None
        year = self._parse_integer(value)
        if year is None:
            report(CanonicalField.YEAR, "bad_year", value)
            return None
        if year < self._min_year or year > self.max_year:
            report(CanonicalField.YEAR, "year_out_of_range", value)
            return None
        return year

    def _parse_month(self, value: str | None, report: Any) -> int | None:
        if self._is_blank(value):
            return None
        month = self._parse_integer(value)
        if month is None or month < 1 or month > 12:
            report(CanonicalField.MONTH, "bad_month", value)
            return None
        return month

    def _parse_quantity(self, value: str | None, report: Any) -> float | None:
        if self._is_blank(value):
            report(CanonicalField.CO2E_TONNES, "missing_quantity", value)
            return None
        try:
            quantity = float(str(value).strip())
        except ValueError:
            report(CanonicalField.CO2E_TONNES, "non_numeric_quantity", value)
            return None
        if not math.isfinite(quantity):
            report(CanonicalField.CO2E_TONNES, "non_numeric_quantity", value)
            return None
        if quantity < 0:
            report(CanonicalField.CO2E_TONNES, "negative_quantity", value)
            return None
        return quantity

    def _parse_scope(self, value: str | None, report: Any) -> int | None:
        if self._is_blank(value):
            return None
        match = _SCOPE_PATTERN.match(str(value).strip())
        if match is None:
            report(CanonicalField.SCOPE, "bad_scope", value)
            return None
        return int(match.group(1))

    def _parse_source(self, value: str | None, report: Any) -> str | None:
        if self._is_blank(value):
            report(CanonicalField.SOURCE, "missing_source", value)
            return None
        normalized = str(value).strip().lower()
        if normalized not in ALLOWED_SOURCES:
            report(CanonicalField.SOURCE, "bad_source", value)
            return None
        return normalized

    @staticmethod
    def _parse_integer(value: str | None) -> int | None:
        try:
            parsed = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
        if not parsed.is_finite() or parsed != parsed.to_integral_value():
            return None
        return int(parsed)

    def _parse_optional_string(self, value: str | None) -> str | None:
        if self._is_blank(value):
            return None
        return str(value).strip()

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        return str(value).strip() == ""

    @staticmethod
    def _stringify_value(value: Any) -> str | None:
        if value is None:
            return None
        return str(value)
