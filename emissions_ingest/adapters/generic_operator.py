"""
emissions_ingest/adapters/generic_operator.py

Operator template uploads: one facility-period fact per row.
"""

from __future__ import annotations

from emissions_ingest.adapters.base import SourceAdapter
from emissions_ingest.domain.canonical import CanonicalField, EmissionSource, MergeMode


class GenericOperatorAdapter(SourceAdapter):
    key = "generic_operator"
    default_dataset_name = "Operator Upload"
    merge_mode = MergeMode.LAST_ROW_WINS
    fingerprints = (
        frozenset({"facility_name", "year", "co2e_tonnes"}),
        frozenset({"facility_name", "year", "co2e"}),
    )
    aliases = {
        CanonicalField.FACILITY_NAME: (
            "facility",
            "facility name",
            "site",
            "site name",
            "plant",
            "plant name",
            "installation",
            "asset name",
        ),
        CanonicalField.YEAR: ("yr", "reporting year", "report year", "calendar year", "inventory year"),
        CanonicalField.MONTH: ("mo", "reporting month", "period month"),
        CanonicalField.CO2E_TONNES: (
            "co2e",
            "tco2e",
            "tonnes",
            "tons",
            "co2e tons",
            "emissions tonnes",
            "total co2e",
            "ghg tonnes",
        ),
        CanonicalField.SCOPE: ("ghg scope", "emission scope", "scope category"),
        CanonicalField.SOURCE: ("data source", "source type", "emission source"),
        CanonicalField.METHOD: ("methodology", "calculation method", "estimation method"),
        CanonicalField.DATASET_VERSION: ("version", "data version", "release"),
    }
    row_defaults = {
        CanonicalField.SOURCE: EmissionSource.REPORTED,
    }
