"""
emissions_ingest/services/upload_validation.py

The validation pass shared by preview and commit.

Both flows call `prepare` and then iterate `validate_rows`; commit reuses
exactly the decisions preview reports, so a row preview calls ok is a row
commit will attempt to write.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from emissions_ingest.adapters import SourceAdapter, detect_adapter
from emissions_ingest.domain.canonical import CanonicalRow, HeaderMapping, Problem
from emissions_ingest.mappers.header_mapper import HeaderMapper
from emissions_ingest.parsing.csv_reader import ParsedUpload
from emissions_ingest.validators.row_validator import RowValidator


@dataclass(frozen=True)
class PreparedUpload:
    upload: ParsedUpload
    adapter: SourceAdapter
    mapping: HeaderMapping


@dataclass(frozen=True)
class RowResult:
    row_index: int
    row: CanonicalRow | None
    problems: tuple[Problem, ...]

    @property
    def ok(self) -> bool:
        return self.row is not None and not self.problems


class UploadValidationPass:
    """
    Detects the adapter, resolves the mapping and validates rows.
    """

    def __init__(
        self,
        *,
        mapper: HeaderMapper | None = None,
        row_validator: RowValidator | None = None,
    ) -> None:
        self._mapper = mapper or HeaderMapper()
        self._row_validator = row_validator or RowValidator()

    def prepare(self, upload: ParsedUpload, *, mapping: HeaderMapping | None = None) -> PreparedUpload:
        """
        Raises SchemaMismatchError when the mapping cannot be used.
        """

        adapter = detect_adapter(upload.headers)
        resolved = self._mapper.resolve(upload, adapter=adapter, mapping=mapping)
        return PreparedUpload(upload=upload, adapter=adapter, mapping=resolved)

    def validate_rows(
        self,
        prepared: PreparedUpload,
        *,
        dataset_version: str,
        limit: int | None = None,
    ) -> Iterator[RowResult]:
        """
        Yield one result per non-empty row in file order.

        Empty rows keep their position in the numbering but yield nothing.
        """

        upload = prepared.upload
        adapter = prepared.adapter
        header_index = upload.header_index
        columns = prepared.mapping.field_to_header()
        header_count = len(upload.headers)

        yielded = 0
        for raw_row in upload.rows:
            if limit is not None and yielded >= limit:
                return
            if raw_row.is_empty():
                continue
            yielded += 1

            problems: list[Problem] = []
            overflow = [cell for cell in raw_row.cells[header_count:] if cell.strip()]
            if overflow:
                problems.append(
                    Problem(
                        row_index=raw_row.index,
                        reason="too_many_fields",
                        raw_value=",".join(overflow),
                    )
                )

            mapped = self._mapper.map_row(
                raw_row=raw_row,
                mapping=prepared.mapping,
                header_index=header_index,
            )
            raw = self._mapper.raw_cells_by_header(raw_row=raw_row, headers=upload.headers)
            mapped, prepare_problems = adapter.prepare_row(
                mapped=mapped,
                raw=raw,
                row_index=raw_row.index,
            )
            problems.extend(prepare_problems)
            mapped = adapter.apply_defaults(mapped)

            row, row_problems = self._row_validator.validate_mapped_row(
                mapped_row=mapped,
                row_index=raw_row.index,
                dataset_version=dataset_version,
                columns=columns,
            )
            problems.extend(row_problems)

            yield RowResult(
                row_index=raw_row.index,
                row=row if not problems else None,
                problems=tuple(problems),
            )
