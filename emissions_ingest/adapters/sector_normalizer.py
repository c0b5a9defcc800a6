"""
emissions_ingest/adapters/sector_normalizer.py

Map free-text sector labels onto the canonical sector slugs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from difflib import SequenceMatcher

CANONICAL_SECTORS: tuple[str, ...] = (
    "agriculture",
    "buildings",
    "fluorinated_gases",
    "forestry_and_land_use",
    "fossil_fuel_operations",
    "manufacturing",
    "mineral_extraction",
    "power",
    "transport",
    "waste",
)

SECTOR_ALIASES: dict[str, str] = {
    "fluorinated gases": "fluorinated_gases",
    "f gases": "fluorinated_gases",
    "forestry and land use": "forestry_and_land_use",
    "forestry land use": "forestry_and_land_use",
    "oil and gas": "fossil_fuel_operations",
    "oil gas": "fossil_fuel_operations",
    "fossil fuel operations": "fossil_fuel_operations",
    "mineral extraction": "mineral_extraction",
    "transportation": "transport",
}

_NON_WORD = re.compile(r"[^\w ]+")
_SEPARATORS = re.compile(r"[_\-]+")


@dataclass(frozen=True)
class SectorMatch:
    slug: str | None
    confidence: float
    original: str


def _normalize_key(value: str) -> str:
    lowered = _SEPARATORS.sub(" ", value.lower())
    lowered = _NON_WORD.sub(" ", lowered)
    return " ".join(lowered.split())


def normalize_sector(value: str | None) -> SectorMatch:
    """
    Resolve a sector label by alias, exact slug, then closest slug.
    """

    original = value or ""
    key = _normalize_key(original)
    if not key:
        return SectorMatch(slug=None, confidence=0.0, original=original)

    if key in SECTOR_ALIASES:
        return SectorMatch(slug=SECTOR_ALIASES[key], confidence=1.0, original=original)

    underscored = key.replace(" ", "_")
    if underscored in CANONICAL_SECTORS:
        return SectorMatch(slug=underscored, confidence=1.0, original=original)

    best_slug: str | None = None
    best_score = 0.0
    for slug in CANONICAL_SECTORS:
        score = SequenceMatcher(None, underscored, slug).ratio()
        if score > best_score:
            best_score = score
            best_slug = slug

    return SectorMatch(slug=best_slug, confidence=round(best_score, 3), original=original)
