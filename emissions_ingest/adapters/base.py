"""
emissions_ingest/adapters/base.py

Source adapter interface.

An adapter is the detected schema family of an upload. It contributes the
fingerprint used by the signature matcher, header aliases for automatic
mapping, row defaults, an optional row preparation hook, and the merge mode
for rows that share a natural key inside one commit.
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Iterable, Mapping

from emissions_ingest.domain.canonical import CanonicalField, MergeMode, Problem


def normalize_header_name(header: str) -> str:
    return header.strip().lower()


class SourceAdapter(ABC):
    """
    Base class for source-schema families.
    """

    key: str = ""
    default_dataset_name: str = ""
    merge_mode: str = MergeMode.LAST_ROW_WINS
    # Every header in one of these sets must be present for a match.
    fingerprints: tuple[frozenset[str], ...] = ()
    aliases: Mapping[CanonicalField, tuple[str, ...]] = {}
    row_defaults: Mapping[CanonicalField, str] = {}
    fuzzy_matching: bool = True

    def matches(self, headers: Iterable[str]) -> bool:
        """
        Subset match of any fingerprint against the header set.
        """

        header_set = {normalize_header_name(header) for header in headers}
        return any(fingerprint <= header_set for fingerprint in self.fingerprints)

    def prepare_row(
        self,
        *,
        mapped: dict[CanonicalField, str | None],
        raw: Mapping[str, str],
        row_index: int,
    ) -> tuple[dict[CanonicalField, str | None], list[Problem]]:
        """
        Adjust mapped raw values before type coercion.

        `raw` holds every cell of the row keyed by lower-cased header name.
        """

        return mapped, []

    def apply_defaults(self, mapped: dict[CanonicalField, str | None]) -> dict[CanonicalField, str | None]:
        result = dict(mapped)
        for canonical, default in self.row_defaults.items():
            value = result.get(canonical)
            if value is None or str(value).strip() == "":
                result[canonical] = default
        return result
