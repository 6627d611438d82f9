"""Local JSON cache of releases."""

import json
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from release_tree.adapters.sources.github_source import get_source_code_assets
from release_tree.core import Release, ReleaseData, ReleaseSource, ReleaseSourceError


class FileReleaseSource(ReleaseSource):
    """Load releases saved with ``--save-releases``.

    Accepts either a plain list of releases or an object with a
    ``releases`` key. Source-code assets are regenerated when the repository
    is known (from the constructor or the file itself).
    """

    emoji = "📁"
    name = "Releases file"

    def __init__(self, path: Path, repository: Optional[str] = None) -> None:
        self.path = path
        self.repository = repository

    async def fetch_releases(self, max_releases: Optional[int] = None) -> ReleaseData:
        if not self.path.exists():
            raise ReleaseSourceError(f"Releases file not found: {self.path}")

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ReleaseSourceError(f"Invalid JSON in {self.path}: {e}") from e

        raw_releases = data if isinstance(data, list) else data.get("releases")
        if not isinstance(raw_releases, list):
            raise ReleaseSourceError(
                "Invalid releases file format: expected array or { releases: [...] }"
            )

        repository = self.repository
        if not repository and isinstance(data, dict):
            repository = data.get("repository")

        try:
            releases = [Release.from_dict(r) for r in raw_releases]
        except (KeyError, TypeError, ValueError) as e:
            raise ReleaseSourceError(f"Invalid release in {self.path}: {e}") from e

        if repository:
            releases = [
                replace(r, assets=r.assets + get_source_code_assets(repository, r.tag))
                for r in releases
            ]

        oldest = releases[-1] if releases else None
        total_count = len(releases)
        if max_releases is not None:
            releases = releases[:max_releases]

        return ReleaseData(
            releases=releases,
            total_count=total_count,
            repository=repository,
            oldest_existing_date=oldest.published_at if oldest else None,
            oldest_existing_url=oldest.url if oldest else None,
        )


def save_releases_to_file(release_data: ReleaseData, path: Path) -> None:
    """Save releases as a JSON cache, without the generated source-code assets."""
    output = {
        "savedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "repository": release_data.repository,
        "totalCount": release_data.total_count,
        "listedCount": release_data.listed_count,
        "releases": [r.to_dict(include_source_code=False) for r in release_data.releases],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(output, indent=2, ensure_ascii=False), encoding="utf-8")
