"""GitHub source for repository releases."""

from typing import Optional

import httpx

from release_tree.core import (
    Asset,
    MarkdownRenderer,
    Release,
    ReleaseData,
    ReleaseSource,
    ReleaseSourceError,
)
from release_tree.core.entities import parse_timestamp

API_BASE = "https://api.github.com"
USER_AGENT = "release-tree"


def get_source_code_assets(repository: Optional[str], tag: str) -> tuple[Asset, ...]:
    """Archive links GitHub generates for every tag."""
    if not repository or not tag:
        return ()
    archive = f"https://github.com/{repository}/archive/refs/tags/{tag}"
    return (
        Asset(name="Source code (zip)", url=f"{archive}.zip", is_source_code=True),
        Asset(name="Source code (tar.gz)", url=f"{archive}.tar.gz", is_source_code=True),
    )


def parse_repository(value: Optional[str]) -> Optional[str]:
    """Accept ``owner/repo`` or a full GitHub URL."""
    if not value:
        return None
    if "github.com/" in value:
        path = value.split("github.com/", 1)[1].strip("/")
        owner_repo = "/".join(path.split("/")[:2])
        return owner_repo[:-4] if owner_repo.endswith(".git") else owner_repo
    return value


def get_headers(token: Optional[str] = None) -> dict[str, str]:
    """Get headers for GitHub API requests."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": USER_AGENT,
    }

    if token:
        headers["Authorization"] = f"Bearer {token}"

    return headers


class GitHubReleaseSource(ReleaseSource):
    """Fetch all releases of a repository from the GitHub REST API."""

    emoji = "🐙"
    name = "GitHub API"

    def __init__(
        self,
        repository: str,
        token: Optional[str] = None,
        per_page: int = 100,
    ) -> None:
        if not repository or "/" not in repository:
            raise ReleaseSourceError(f"Repository must be owner/repo, got: {repository!r}")
        self.repository = repository
        self.token = token
        self.per_page = per_page

    async def fetch_releases(self, max_releases: Optional[int] = None) -> ReleaseData:
        """Page through all releases.

        Every existing release is counted, but only the first max_releases
        (None = all) are kept.
        """
        releases: list[Release] = []
        total_count = 0
        oldest: Optional[dict] = None
        page = 1

        async with httpx.AsyncClient(timeout=30.0) as client:
            while True:
                response = await client.get(
                    f"{API_BASE}/repos/{self.repository}/releases",
                    headers=get_headers(self.token),
                    params={"page": page, "per_page": self.per_page},
                )

                if response.status_code != 200:
                    if response.status_code == 403:
                        print("  └─ ⚠️  Rate limit or authentication required (set GITHUB_TOKEN)")
                    raise ReleaseSourceError(
                        f"GitHub API error: {response.status_code} for {self.repository}"
                    )

                data = response.json()
                if not data:
                    break

                for raw in data:
                    if raw.get("draft"):
                        continue
                    total_count += 1
                    oldest = raw
                    if max_releases is not None and len(releases) >= max_releases:
                        continue  # Keep counting but don't add more releases
                    releases.append(self._create_release(raw))

                if len(data) < self.per_page:
                    break
                page += 1

        print(f"  └─ Found {total_count} releases, kept {len(releases)}")

        return ReleaseData(
            releases=releases,
            total_count=total_count,
            repository=self.repository,
            oldest_existing_date=parse_timestamp(oldest["published_at"]) if oldest and oldest.get("published_at") else None,
            oldest_existing_url=oldest.get("html_url") if oldest else None,
        )

    def _create_release(self, raw: dict) -> Release:
        """Map an API release object onto a Release."""
        uploaded = tuple(
            Asset(name=a["name"], url=a.get("browser_download_url", ""), size=a.get("size"))
            for a in raw.get("assets") or []
        )
        author = raw.get("author")
        reactions = raw.get("reactions")
        return Release(
            id=raw["id"],
            tag=raw["tag_name"],
            url=raw.get("html_url", ""),
            published_at=parse_timestamp(raw.get("published_at") or raw["created_at"]),
            name=raw.get("name") or raw["tag_name"],
            body=raw.get("body") or "",
            prerelease=bool(raw.get("prerelease")),
            assets=uploaded + get_source_code_assets(self.repository, raw["tag_name"]),
            author={
                "login": author.get("login"),
                "avatarUrl": author.get("avatar_url"),
                "url": author.get("html_url"),
            } if author else None,
            reactions={
                key: reactions.get(key, 0)
                for key in ("+1", "-1", "laugh", "hooray", "confused", "heart", "rocket", "eyes", "total_count")
            } if reactions else None,
        )


class GitHubMarkdownRenderer(MarkdownRenderer):
    """Render release notes with GitHub's markdown API (gfm mode)."""

    def __init__(self, token: Optional[str] = None, repository: Optional[str] = None) -> None:
        self.token = token
        self.repository = repository

    async def render(self, markdown: str) -> str:
        if not markdown:
            return ""

        payload = {"text": markdown, "mode": "gfm"}
        # Repository context enables issue and commit autolinks
        if self.repository:
            payload["context"] = self.repository

        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(
                f"{API_BASE}/markdown", headers=get_headers(self.token), json=payload
            )

        if response.status_code != 200:
            raise ReleaseSourceError(f"GitHub Markdown API error: {response.status_code}")
        return response.text
