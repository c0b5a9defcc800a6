"""
emissions_ingest/domain/versioning.py

Total order over dataset version tags.

Tags are split into numeric and alphabetic runs; separators are ignored,
a leading "v" before a digit is ignored and comparison is case-insensitive.
Numeric runs compare by value, so "v2.10" is newer than "v2.9".

The order is materialised as a plain string (`version_sort_key`) so the
database can compare two tags inside a single conditional write.
"""

from __future__ import annotations

import re

_TOKEN_PATTERN = re.compile(r"\d+|[a-z]+")
_LEADING_V_PATTERN = re.compile(r"^v(?=\d)")

# Numeric runs are prefixed with "1" + two-digit length, alphabetic runs
# with "0", so a number always sorts after a word at the same position.
_MAX_DIGITS = 99


def version_sort_key(tag: str) -> str:
    """
    Return a string whose lexical order matches the version order of `tag`.
    """

    normalized = _LEADING_V_PATTERN.sub("", tag.strip().lower())
    parts: list[str] = []
    for token in _TOKEN_PATTERN.findall(normalized):
        if token.isdigit():
            digits = token.lstrip("0") or "0"
            if len(digits) > _MAX_DIGITS:
                digits = "9" * _MAX_DIGITS
            parts.append(f"1{len(digits):02d}{digits}")
        else:
            parts.append(f"0{token}")
    return "".join(parts)


MAX_TAG_LENGTH = 64


def normalize_version_tag(tag: str | None) -> str:
    """
    Trim a commit-level version tag. Raises ValueError when it is unusable.
    """

    stripped = (tag or "").strip()
    if not stripped:
        raise ValueError("datasetVersion is required.")
    if len(stripped) > MAX_TAG_LENGTH:
        raise ValueError(f"datasetVersion must be at most {MAX_TAG_LENGTH} characters.")
    if not _TOKEN_PATTERN.search(stripped.lower()):
        raise ValueError("datasetVersion must contain at least one letter or digit.")
    return stripped
