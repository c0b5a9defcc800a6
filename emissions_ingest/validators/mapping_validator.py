"""
emissions_ingest/validators/mapping_validator.py

Validation for header-to-canonical-field mappings.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from emissions_ingest.domain.canonical import REQUIRED_FIELDS, CanonicalField, HeaderMapping
from emissions_ingest.errors import MappingErrorDetail, SchemaMismatchError


def missing_fields(
    mapping: HeaderMapping,
    required_fields: Sequence[CanonicalField] = REQUIRED_FIELDS,
) -> list[CanonicalField]:
    """
    Required canonical fields that no raw header is assigned to.
    """

    assigned = {canonical for canonical in mapping.mapping.values() if canonical is not None}
    return [required for required in required_fields if required not in assigned]


class MappingValidator:
    """
    Validates a HeaderMapping against the upload's headers.
    """

    def __init__(self, *, required_fields: Sequence[CanonicalField] = REQUIRED_FIELDS) -> None:
        self._required_fields = tuple(required_fields)

    @property
    def required_fields(self) -> tuple[CanonicalField, ...]:
        return self._required_fields

    def collect_errors(
        self,
        *,
        mapping: HeaderMapping,
        source_headers: Sequence[str],
    ) -> list[MappingErrorDetail]:
        """
        Return every mapping problem without raising.
        """

        errors: list[MappingErrorDetail] = []
        headers_set = {header for header in source_headers if header}

        if not headers_set:
            errors.append(
                MappingErrorDetail(
                    code="empty_headers",
                    message="No CSV headers were provided.",
                )
            )

        headers_by_field: dict[CanonicalField, list[str]] = defaultdict(list)
        for source_column, canonical in mapping.mapping.items():
            if source_column not in headers_set:
                errors.append(
                    MappingErrorDetail(
                        code="unknown_source_column",
                        message="Mapped source column does not exist in CSV headers.",
                        canonical_field=canonical.value if canonical is not None else None,
                        source_column=source_column,
                    )
                )
                continue
            if canonical is not None:
                headers_by_field[canonical].append(source_column)

        for canonical, columns in headers_by_field.items():
            if len(columns) > 1:
                errors.append(
                    MappingErrorDetail(
                        code="duplicate_field_assignment",
                        message="Canonical field is assigned to more than one source column.",
                        canonical_field=canonical.value,
                        context={"source_columns": columns},
                    )
                )

        for required in missing_fields(mapping, self._required_fields):
            errors.append(
                MappingErrorDetail(
                    code="required_field_unmapped",
                    message="Required canonical field is not mapped.",
                    canonical_field=required.value,
                    context={"source_headers": list(source_headers)},
                )
            )

        return errors

    def validate(
        self,
        *,
        mapping: HeaderMapping,
        source_headers: Sequence[str],
    ) -> None:
        """
        Raise SchemaMismatchError listing every problem, if any.
        """

        errors = self.collect_errors(mapping=mapping, source_headers=source_headers)
        if errors:
            missing_required = sorted(
                {
                    error.canonical_field
                    for error in errors
                    if error.code == "required_field_unmapped" and error.canonical_field
                }
            )
            missing_csv = ", ".join(missing_required) or "none"
            raise SchemaMismatchError(
                message=f"Schema mapping validation failed. Missing required fields: {missing_csv}.",
                errors=errors,
            )
