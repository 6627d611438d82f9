"""Tests for the JSON release cache."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from release_tree.adapters.sources import FileReleaseSource, save_releases_to_file
from release_tree.adapters.sources.github_source import get_source_code_assets
from release_tree.core import Asset, Release, ReleaseData, ReleaseSourceError


def _release(release_id: int, tag: str) -> Release:
    return Release(
        id=release_id,
        tag=tag,
        url=f"https://github.com/owner/repo/releases/tag/{tag}",
        published_at=datetime(2024, 1, release_id, tzinfo=timezone.utc),
        assets=(Asset(name="tool.zip", url="https://dl/tool.zip", size=5),)
        + get_source_code_assets("owner/repo", tag),
    )


@pytest.mark.asyncio
async def test_save_and_load(tmp_path: Path) -> None:
    """Test saving strips and loading regenerates source-code assets."""
    path = tmp_path / "cache" / "releases.json"
    release_data = ReleaseData(
        releases=[_release(2, "v2"), _release(1, "v1")],
        total_count=5,
        repository="owner/repo",
    )

    save_releases_to_file(release_data, path)

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["repository"] == "owner/repo"
    assert saved["totalCount"] == 5
    assert saved["listedCount"] == 2
    assert saved["savedAt"].endswith("Z")
    assert [a["name"] for a in saved["releases"][0]["assets"]] == ["tool.zip"]

    loaded = await FileReleaseSource(path).fetch_releases()

    assert loaded.repository == "owner/repo"
    assert [r.tag for r in loaded.releases] == ["v2", "v1"]
    assert [a.name for a in loaded.releases[0].assets] == [
        "tool.zip", "Source code (zip)", "Source code (tar.gz)",
    ]
    assert loaded.oldest_existing_url.endswith("/v1")


@pytest.mark.asyncio
async def test_load_plain_list_with_limit(tmp_path: Path) -> None:
    """Test a bare array and max_releases slicing."""
    path = tmp_path / "releases.json"
    path.write_text(json.dumps([
        {"id": 3, "tag": "v3", "url": "u3", "publishedAt": "2024-01-03T00:00:00Z"},
        {"id": 2, "tag": "v2", "url": "u2", "publishedAt": "2024-01-02T00:00:00Z"},
        {"id": 1, "tag": "v1", "url": "u1", "publishedAt": "2024-01-01T00:00:00Z"},
    ]), encoding="utf-8")

    data = await FileReleaseSource(path).fetch_releases(max_releases=2)

    assert [r.tag for r in data.releases] == ["v3", "v2"]
    assert data.total_count == 3
    assert data.repository is None
    # Unknown repository: no generated archives
    assert data.releases[0].assets == ()


@pytest.mark.asyncio
async def test_missing_file(tmp_path: Path) -> None:
    """Test missing cache file."""
    with pytest.raises(ReleaseSourceError, match="not found"):
        await FileReleaseSource(tmp_path / "missing.json").fetch_releases()


@pytest.mark.asyncio
async def test_invalid_json(tmp_path: Path) -> None:
    """Test malformed JSON."""
    path = tmp_path / "releases.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ReleaseSourceError, match="Invalid JSON"):
        await FileReleaseSource(path).fetch_releases()


@pytest.mark.asyncio
async def test_invalid_format(tmp_path: Path) -> None:
    """Test an object without a releases list."""
    path = tmp_path / "releases.json"
    path.write_text(json.dumps({"items": []}), encoding="utf-8")

    with pytest.raises(ReleaseSourceError, match="Invalid releases file format"):
        await FileReleaseSource(path).fetch_releases()


@pytest.mark.asyncio
async def test_invalid_release(tmp_path: Path) -> None:
    """Test a release without a publish date."""
    path = tmp_path / "releases.json"
    path.write_text(json.dumps([{"id": 1, "tag": "v1"}]), encoding="utf-8")

    with pytest.raises(ReleaseSourceError, match="Invalid release"):
        await FileReleaseSource(path).fetch_releases()
