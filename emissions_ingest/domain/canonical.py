"""
emissions_ingest/domain/canonical.py

Domain models shared by preview and commit flows.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class CanonicalField(str, Enum):
    """
    Closed set of canonical target attributes. Wire values are stable.
    """

    FACILITY_NAME = "facility_name"
    YEAR = "year"
    MONTH = "month"
    CO2E_TONNES = "co2e_tonnes"
    SCOPE = "scope"
    SOURCE = "source"
    METHOD = "method"
    DATASET_VERSION = "dataset_version"

    @classmethod
    def parse(cls, value: Any) -> "CanonicalField | None":
        """
        Parse a wire value. None and empty strings mean "ignored".

        Raises ValueError for anything outside the enum.
        """

        if value is None:
            return None
        if isinstance(value, CanonicalField):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Canonical field must be a string or null, got {type(value).__name__}.")
        stripped = value.strip().lower()
        if not stripped or stripped in {"null", "none", "ignore", "ignored"}:
            return None
        try:
            return cls(stripped)
        except ValueError as exc:
            allowed = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown canonical field '{value}'. Allowed values: {allowed}.") from exc


REQUIRED_FIELDS: tuple[CanonicalField, ...] = (
    CanonicalField.FACILITY_NAME,
    CanonicalField.YEAR,
    CanonicalField.CO2E_TONNES,
)


class DuplicatePolicy(str, Enum):
    REPLACE_IF_NEWER = "replace_if_newer"
    SKIP = "skip"


class EmissionSource:
    OBSERVED = "observed"
    REPORTED = "reported"
    PROJECTED = "projected"


ALLOWED_SOURCES = frozenset(
    {
        EmissionSource.OBSERVED,
        EmissionSource.REPORTED,
        EmissionSource.PROJECTED,
    }
)


class MergeMode:
    """
    How rows sharing a natural key inside one commit combine.
    """

    LAST_ROW_WINS = "last_row_wins"
    ACCUMULATE = "accumulate"


class WriteAction:
    INSERTED = "inserted"
    REPLACED = "replaced"
    SUPERSEDED_IN_FILE = "superseded_in_file"
    ACCUMULATED = "accumulated"
    DUPLICATE = "duplicate"


class ImportJobStatus:
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    CANCELLED = "cancelled"


def normalize_facility_name(name: str) -> str:
    """
    Normalized facility name used in the natural key.
    """

    return " ".join(name.split()).casefold()


@dataclass(frozen=True)
class NaturalKey:
    facility: str
    year: int
    month: int | None
    source: str


@dataclass(frozen=True)
class CanonicalRow:
    """
    One validated emissions fact ready for a conditional write.
    """

    facility_name: str
    year: int
    month: int | None
    co2e_tonnes: float
    scope: int | None
    source: str
    method: str | None
    dataset_version: str

    @property
    def natural_key(self) -> NaturalKey:
        return NaturalKey(
            facility=normalize_facility_name(self.facility_name),
            year=self.year,
            month=self.month,
            source=self.source,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "facility_name": self.facility_name,
            "year": self.year,
            "month": self.month,
            "co2e_tonnes": self.co2e_tonnes,
            "scope": self.scope,
            "source": self.source,
            "method": self.method,
            "dataset_version": self.dataset_version,
        }


@dataclass(frozen=True)
class Problem:
    """
    One row-level validation problem. Never fatal.
    """

    row_index: int
    reason: str
    field: str | None = None
    column: str | None = None
    raw_value: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_index": self.row_index,
            "field": self.field,
            "column": self.column,
            "reason": self.reason,
            "raw_value": self.raw_value,
        }


@dataclass(frozen=True)
class HeaderMapping:
    """
    Raw header -> canonical field (None means ignored).
    """

    mapping: dict[str, CanonicalField | None]
    notes: str | None = None

    @classmethod
    def from_wire(cls, raw: Mapping[str, Any], notes: str | None = None) -> "HeaderMapping":
        """
        Build a mapping from JSON-ish input, rejecting unknown field names.
        """

        parsed: dict[str, CanonicalField | None] = {}
        for header, value in raw.items():
            if not isinstance(header, str):
                raise ValueError("Mapping keys must be header strings.")
            parsed[header] = CanonicalField.parse(value)
        return cls(mapping=parsed, notes=notes)

    @classmethod
    def empty(cls, headers: list[str] | tuple[str, ...], notes: str | None = None) -> "HeaderMapping":
        return cls(mapping={header: None for header in headers}, notes=notes)

    def field_to_header(self) -> dict[CanonicalField, str]:
        """
        Invert the mapping. Assumes the mapping passed validation.
        """

        return {
            canonical: header
            for header, canonical in self.mapping.items()
            if canonical is not None
        }

    def to_wire(self) -> dict[str, str | None]:
        return {
            header: canonical.value if canonical is not None else None
            for header, canonical in self.mapping.items()
        }


@dataclass(frozen=True)
class WriteOutcome:
    action: str
    record_id: uuid.UUID | None = None

    @property
    def imported(self) -> bool:
        return self.action != WriteAction.DUPLICATE


@dataclass(frozen=True)
class ImportJobRecord:
    """
    Immutable audit record of one commit invocation.
    """

    id: uuid.UUID
    adapter: str
    dataset_name: str
    dataset_version: str
    duplicate_policy: str
    status: str
    rows_total: int
    rows_imported: int
    rows_inserted: int
    rows_replaced: int
    rows_skipped: int
    duplicates: int
    invalid: int
    last_processed_row_index: int | None
    created_at: datetime
    file_name: str | None = None
    checksum_sha256: str | None = None
    header_mapping: dict[str, str | None] = field(default_factory=dict)
    problems: list[dict[str, Any]] = field(default_factory=list)
    error_message: str | None = None
