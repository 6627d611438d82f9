"""Tests for core entities."""

from datetime import datetime, timedelta, timezone

import pytest

from release_tree.core import Asset, Category, ClassificationResult, Release, ReleaseData
from release_tree.core.entities import parse_timestamp


def _release(**overrides) -> Release:
    data = dict(
        id=10,
        tag="v1.0.0",
        url="https://github.com/owner/repo/releases/tag/v1.0.0",
        published_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    data.update(overrides)
    return Release(**data)


def test_release_name_falls_back_to_tag():
    """Test missing names use the tag."""
    assert _release().name == "v1.0.0"
    assert _release(name="First").name == "First"


def test_release_empty_tag_raises():
    """Test empty tag validation."""
    with pytest.raises(ValueError, match="Tag cannot be empty"):
        _release(tag="")


def test_release_naive_datetime_becomes_utc():
    """Test naive timestamps are treated as UTC."""
    release = _release(published_at=datetime(2024, 1, 1, 12, 0))

    assert release.published_at.tzinfo == timezone.utc


def test_parse_timestamp():
    """Test ISO 8601 parsing with Z suffix."""
    parsed = parse_timestamp("2024-02-03T04:05:06Z")

    assert parsed == datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc)
    assert parse_timestamp("2024-02-03T04:05:06+02:00").utcoffset() == timedelta(hours=2)


def test_downloadable_asset_names():
    """Test source-code archives are excluded from asset text."""
    release = _release(assets=(
        Asset(name="tool.exe", url="u1"),
        Asset(name="Source code (zip)", url="u2", is_source_code=True),
        Asset(name="tool.dmg", url="u3"),
    ))

    assert release.downloadable_asset_names == "tool.exe\ntool.dmg"


def test_release_dict_round_trip_keys():
    """Test the cache format uses camelCase keys."""
    release = _release(
        name="First",
        body="Notes",
        prerelease=True,
        assets=(Asset(name="a.zip", url="u", size=10), Asset(name="src", url="s", is_source_code=True)),
        author={"login": "octocat"},
    )

    data = release.to_dict(include_source_code=False)

    assert data["publishedAt"] == "2024-01-01T00:00:00Z"
    assert data["assets"] == [{"name": "a.zip", "url": "u", "size": 10, "isSourceCode": False}]

    restored = Release.from_dict(data)
    assert restored.name == "First"
    assert restored.prerelease
    assert restored.author == {"login": "octocat"}
    assert restored.published_at == release.published_at


def test_release_from_dict_missing_optional_fields():
    """Test absent body and name."""
    release = Release.from_dict({
        "id": 1,
        "tag": "v2",
        "url": "u",
        "publishedAt": "2024-01-01T00:00:00Z",
        "body": None,
    })

    assert release.body == ""
    assert release.name == "v2"
    assert release.assets == ()


def test_category_walk_and_totals():
    """Test subtree iteration and release counts."""
    child = Category(id="parent/child", name="Child", releases=(_release(id=1), _release(id=2)))
    parent = Category(id="parent", name="Parent", releases=(_release(id=3),), categories=(child,))

    assert [c.id for c in parent.walk()] == ["parent", "parent/child"]
    assert parent.total_releases == 3


def test_classification_result_listed_releases():
    """Test unique listed releases across categories."""
    shared = _release(id=1)
    result = ClassificationResult(
        tree=(
            Category(id="a", name="A", releases=(shared,)),
            Category(id="b", name="B", releases=(shared, _release(id=2))),
        ),
        unmatched_releases=(_release(id=3),),
        default_max_displayed=100,
        unmatched_max_displayed=100,
    )

    assert sorted(result.listed_releases()) == [1, 2, 3]
    assert [c.id for c in result.iter_categories()] == ["a", "b"]


def test_classification_result_latest_releases():
    """Test releases latest in any scope are collected once, newest first."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    old = _release(id=1, published_at=base, is_latest=True)
    new = _release(id=2, published_at=base + timedelta(days=5), is_latest=True)
    result = ClassificationResult(
        tree=(
            Category(id="a", name="A", releases=(old, _release(id=3))),
            Category(id="b", name="B", releases=(old,)),
        ),
        unmatched_releases=(new,),
        default_max_displayed=100,
        unmatched_max_displayed=100,
    )

    assert [r.id for r in result.latest_releases()] == [2, 1]


def test_release_data_counts():
    """Test listed and total counts."""
    data = ReleaseData(releases=[_release(id=1)], total_count=3)

    assert data.listed_count == 1
    assert not data.has_all_releases
