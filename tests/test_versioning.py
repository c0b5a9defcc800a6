"""
tests/test_versioning.py

Dataset version ordering.
"""

from __future__ import annotations

import pytest

from emissions_ingest.domain.versioning import normalize_version_tag, version_sort_key


@pytest.mark.parametrize(
    ("older", "newer"),
    [
        ("v1", "v2"),
        ("v2.9", "v2.10"),
        ("2023", "2024"),
        ("1.0", "1.0.1"),
        ("2024-01", "2024-02"),
        ("v1", "V1.1"),
        ("release-a", "release-b"),
    ],
)
def test_numeric_aware_order(older: str, newer: str) -> None:
    assert version_sort_key(older) < version_sort_key(newer)
    assert not version_sort_key(newer) < version_sort_key(older)


def test_equivalent_spellings_share_a_key() -> None:
    assert version_sort_key("v1.0") == version_sort_key("1.0")
    assert version_sort_key("V02") == version_sort_key("v2")


def test_order_is_total_across_mixed_tags() -> None:
    tags = ["v10", "v2", "release-b", "2024-02", "v2.10", "release-a", "v2.9", "2024-01"]

    ordered = sorted(tags, key=version_sort_key)

    assert ordered == ["release-a", "release-b", "v2", "v2.9", "v2.10", "v10", "2024-01", "2024-02"]


class TestNormalizeVersionTag:
    def test_trims(self) -> None:
        assert normalize_version_tag("  v3 ") == "v3"

    @pytest.mark.parametrize("tag", [None, "", "   ", "---", "x" * 65])
    def test_rejects_unusable_tags(self, tag: str | None) -> None:
        with pytest.raises(ValueError):
            normalize_version_tag(tag)
