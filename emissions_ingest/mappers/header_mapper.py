"""
emissions_ingest/mappers/header_mapper.py

Header-to-canonical-field resolution for uploads.

Two ways to obtain a HeaderMapping:
- `suggest` asks the injected mapping assistant and fails open.
- `auto_map` is deterministic exact/alias/fuzzy matching, used when the
  caller supplies no mapping. Preview and commit both call it, so the
  derived mapping is identical for the same file.
"""

from __future__ import annotations

import logging
from difflib import SequenceMatcher
from typing import Mapping, Sequence

from emissions_ingest.adapters.base import SourceAdapter, normalize_header_name
from emissions_ingest.assist.mapping_assistant import MappingAssistant, NullMappingAssistant
from emissions_ingest.domain.canonical import CanonicalField, HeaderMapping
from emissions_ingest.parsing.csv_reader import ParsedUpload, RawRow
from emissions_ingest.validators.mapping_validator import MappingValidator

logger = logging.getLogger(__name__)

# Short aliases like "mo" would otherwise match any header containing them.
_MIN_CONTAINMENT_LENGTH = 4


def normalize_header(header: str) -> str:
    """
    Normalize a column name for flexible matching.
    """

    return "".join(ch for ch in header.strip().lower() if ch.isalnum())


class HeaderMapper:
    """
    Resolves upload headers into canonical field assignments.
    """

    def __init__(
        self,
        *,
        assistant: MappingAssistant | None = None,
        validator: MappingValidator | None = None,
        fuzzy_threshold: float = 0.84,
    ) -> None:
        self._assistant = assistant or NullMappingAssistant()
        self._validator = validator or MappingValidator()
        self._fuzzy_threshold = max(0.0, min(1.0, fuzzy_threshold))

    @property
    def validator(self) -> MappingValidator:
        return self._validator

    def suggest(self, headers: Sequence[str]) -> HeaderMapping:
        """
        Assisted suggestion. Never raises; degrades to an all-null mapping.
        """

        try:
            return self._assistant.suggest(headers)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Mapping assistant failed headers=%d: %s", len(headers), exc)
            return HeaderMapping.empty(
                list(headers),
                notes="Assisted mapping unavailable; map columns manually.",
            )

    def auto_map(self, headers: Sequence[str], *, adapter: SourceAdapter) -> HeaderMapping:
        """
        Deterministic mapping from canonical names, adapter aliases, then fuzzy matches.
        """

        source_headers = [header for header in headers if header and header.strip()]
        normalized_header_lookup: dict[str, str] = {}
        for header in source_headers:
            normalized = normalize_header(header)
            if normalized and normalized not in normalized_header_lookup:
                normalized_header_lookup[normalized] = header

        resolved: dict[str, CanonicalField] = {}
        strategies: list[str] = []
        used_headers: set[str] = set()

        unresolved: list[CanonicalField] = []
        for canonical_field in CanonicalField:
            exact = self._find_exact_or_alias_match(
                canonical_field=canonical_field,
                adapter=adapter,
                normalized_header_lookup=normalized_header_lookup,
            )
            if exact is not None and exact not in used_headers:
                resolved[exact] = canonical_field
                used_headers.add(exact)
            else:
                unresolved.append(canonical_field)

        # Fuzzy matching runs after every exact match is claimed.
        for canonical_field in unresolved:
            if not adapter.fuzzy_matching:
                break

            fuzzy_match = self._find_best_fuzzy_match(
                canonical_field=canonical_field,
                adapter=adapter,
                normalized_header_lookup=normalized_header_lookup,
                used_headers=used_headers,
            )
            if fuzzy_match is not None:
                resolved[fuzzy_match] = canonical_field
                used_headers.add(fuzzy_match)
                strategies.append(f"{fuzzy_match!r}->{canonical_field.value}")

        notes = f"Fuzzy matches: {', '.join(strategies)}." if strategies else None
        return HeaderMapping(
            mapping={header: resolved.get(header) for header in source_headers},
            notes=notes,
        )

    def resolve(
        self,
        upload: ParsedUpload,
        *,
        adapter: SourceAdapter,
        mapping: HeaderMapping | None = None,
    ) -> HeaderMapping:
        """
        Return the caller mapping (or the auto mapping) after validation.

        Raises SchemaMismatchError before any row is processed.
        """

        resolved = mapping if mapping is not None else self.auto_map(upload.headers, adapter=adapter)
        self._validator.validate(mapping=resolved, source_headers=upload.headers)
        return resolved

    @staticmethod
    def map_row(
        *,
        raw_row: RawRow,
        mapping: HeaderMapping,
        header_index: Mapping[str, int],
    ) -> dict[CanonicalField, str | None]:
        """
        Map one raw row into canonical raw field values.
        """

        mapped: dict[CanonicalField, str | None] = {}
        for header, canonical in mapping.mapping.items():
            if canonical is None:
                continue
            position = header_index.get(header)
            if position is None or position >= len(raw_row.cells):
                mapped[canonical] = None
            else:
                mapped[canonical] = raw_row.cells[position]
        return mapped

    @staticmethod
    def raw_cells_by_header(*, raw_row: RawRow, headers: Sequence[str]) -> dict[str, str]:
        return {
            normalize_header_name(header): raw_row.cells[position]
            for position, header in enumerate(headers)
            if header and position < len(raw_row.cells)
        }

    def _find_exact_or_alias_match(
        self,
        *,
        canonical_field: CanonicalField,
        adapter: SourceAdapter,
        normalized_header_lookup: Mapping[str, str],
    ) -> str | None:
        candidates = (
            canonical_field.value,
            *adapter.aliases.get(canonical_field, ()),
        )
        for candidate in candidates:
            match = normalized_header_lookup.get(normalize_header(candidate))
            if match:
                return match
        return None

    def _find_best_fuzzy_match(
        self,
        *,
        canonical_field: CanonicalField,
        adapter: SourceAdapter,
        normalized_header_lookup: Mapping[str, str],
        used_headers: set[str],
    ) -> str | None:
        alias_candidates = [canonical_field.value, *adapter.aliases.get(canonical_field, ())]
        normalized_candidates = [normalize_header(item) for item in alias_candidates if normalize_header(item)]
        if not normalized_candidates:
            return None

        best_header: str | None = None
        best_score = 0.0
        for header_norm, header_raw in normalized_header_lookup.items():
            if header_raw in used_headers:
                continue
            for candidate in normalized_candidates:
                score = SequenceMatcher(None, header_norm, candidate).ratio()
                shorter = min(len(header_norm), len(candidate))
                if shorter >= _MIN_CONTAINMENT_LENGTH and (header_norm in candidate or candidate in header_norm):
                    score = max(score, 0.9)
                if score > best_score:
                    best_score = score
                    best_header = header_raw

        if best_header is not None and best_score >= self._fuzzy_threshold:
            return best_header
        return None
