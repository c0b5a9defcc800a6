"""
emissions_ingest/adapters/trace_sector.py

Satellite-derived sector dataset (Climate TRACE country/sector exports).

Each row is one country's contribution to a sector/subsector for a period.
Rows collapse onto one synthetic facility per (sector, subsector) and rows
sharing a natural key inside one commit are summed.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping

from emissions_ingest.adapters.base import SourceAdapter
from emissions_ingest.adapters.sector_normalizer import normalize_sector
from emissions_ingest.domain.canonical import CanonicalField, EmissionSource, MergeMode, Problem

MIN_SECTOR_CONFIDENCE = 0.7

_YEAR_PREFIX = re.compile(r"^\s*(\d{4})")
_MONTH_PART = re.compile(r"^\s*\d{4}-(\d{2})")

GRANULARITY_ALIASES: dict[str, str] = {
    "annual": "annual",
    "year": "annual",
    "yearly": "annual",
    "yr": "annual",
    "y": "annual",
    "monthly": "monthly",
    "month": "monthly",
    "mo": "monthly",
    "m": "monthly",
}

UNIT_FACTORS_TO_TONNES: dict[str, float] = {
    "": 1.0,
    "t": 1.0,
    "tco2e": 1.0,
    "tonnes": 1.0,
    "tonnes_co2e": 1.0,
    "kt": 1_000.0,
    "ktco2e": 1_000.0,
    "kilotonnes_co2e": 1_000.0,
    "mt": 1_000_000.0,
    "mtco2e": 1_000_000.0,
    "megatonnes_co2e": 1_000_000.0,
}

# Exports carry one CO2e row per GWP horizon; only this one is imported.
ACCEPTED_GAS = "co2e_100yr"


def synthetic_facility_name(sector: str, subsector: str | None) -> str:
    label = f"{sector} {subsector}" if subsector else sector
    return f"{label} (TRACE aggregate)"


class TraceSectorAdapter(SourceAdapter):
    key = "trace_sector"
    default_dataset_name = "Climate TRACE Sector"
    merge_mode = MergeMode.ACCUMULATE
    fingerprints = (frozenset({"iso3_country", "start_time", "emissions_quantity"}),)
    aliases = {
        CanonicalField.FACILITY_NAME: ("sector",),
        CanonicalField.YEAR: ("start_time",),
        CanonicalField.CO2E_TONNES: ("emissions_quantity",),
    }
    row_defaults = {
        CanonicalField.SOURCE: EmissionSource.OBSERVED,
        CanonicalField.METHOD: "climate_trace_sector",
        CanonicalField.SCOPE: "1",
    }
    fuzzy_matching = False

    def prepare_row(
        self,
        *,
        mapped: dict[CanonicalField, str | None],
        raw: Mapping[str, str],
        row_index: int,
    ) -> tuple[dict[CanonicalField, str | None], list[Problem]]:
        result = dict(mapped)
        problems: list[Problem] = []

        gas = (raw.get("gas") or "").strip().lower()
        if gas and gas != ACCEPTED_GAS:
            problems.append(
                Problem(
                    row_index=row_index,
                    field=None,
                    column="gas",
                    reason="unsupported_gas",
                    raw_value=gas,
                )
            )

        sector_raw = result.get(CanonicalField.FACILITY_NAME)
        if sector_raw is not None and sector_raw.strip():
            match = normalize_sector(sector_raw)
            if match.slug is None or match.confidence < MIN_SECTOR_CONFIDENCE:
                problems.append(
                    Problem(
                        row_index=row_index,
                        field=CanonicalField.FACILITY_NAME.value,
                        reason="unrecognized_sector",
                        raw_value=sector_raw,
                    )
                )
            else:
                subsector = (raw.get("subsector") or "").strip() or None
                result[CanonicalField.FACILITY_NAME] = synthetic_facility_name(match.slug, subsector)

        start_raw = result.get(CanonicalField.YEAR)
        if start_raw is not None:
            year_match = _YEAR_PREFIX.match(start_raw)
            if year_match:
                result[CanonicalField.YEAR] = year_match.group(1)

        granularity_raw = (raw.get("temporal_granularity") or "annual").strip().lower()
        granularity = GRANULARITY_ALIASES.get(granularity_raw)
        if granularity is None:
            problems.append(
                Problem(
                    row_index=row_index,
                    column="temporal_granularity",
                    reason="unsupported_granularity",
                    raw_value=granularity_raw,
                )
            )
        elif granularity == "monthly" and not (result.get(CanonicalField.MONTH) or "").strip():
            month_match = _MONTH_PART.match(start_raw or "")
            if month_match is None:
                problems.append(
                    Problem(
                        row_index=row_index,
                        field=CanonicalField.MONTH.value,
                        reason="bad_month",
                        raw_value=start_raw,
                    )
                )
            else:
                result[CanonicalField.MONTH] = month_match.group(1)

        quantity_raw = result.get(CanonicalField.CO2E_TONNES)
        units = (raw.get("emissions_quantity_units") or "").strip().lower()
        factor = UNIT_FACTORS_TO_TONNES.get(units)
        if factor is None:
            problems.append(
                Problem(
                    row_index=row_index,
                    column="emissions_quantity_units",
                    reason="unsupported_unit",
                    raw_value=units,
                )
            )
        elif factor != 1.0 and quantity_raw is not None:
            # Unparsable quantities are left for the row validator to report.
            try:
                quantity = float(quantity_raw.strip())
            except ValueError:
                quantity = None
            if quantity is not None and math.isfinite(quantity):
                result[CanonicalField.CO2E_TONNES] = repr(quantity * factor)

        return result, problems
