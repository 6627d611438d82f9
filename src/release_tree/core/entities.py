"""Core domain entities."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

ReleaseId = Union[int, str]


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO 8601 timestamp into an aware datetime (UTC if naive)."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Asset:
    """Downloadable file attached to a release."""

    name: str
    url: str
    size: Optional[int] = None
    is_source_code: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Asset":
        return cls(
            name=data.get("name") or "",
            url=data.get("url") or "",
            size=data.get("size"),
            is_source_code=bool(data.get("isSourceCode", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "size": self.size,
            "isSourceCode": self.is_source_code,
        }


@dataclass(frozen=True)
class Release:
    """Published version of the project.

    ``is_latest`` is never read from input. It is a display annotation set on
    the per-category copy of a release (see ``dataclasses.replace``), so the
    same release can be latest in one category and not in another.
    """

    id: ReleaseId
    tag: str
    url: str
    published_at: datetime
    name: str = ""
    body: str = ""
    prerelease: bool = False
    assets: tuple[Asset, ...] = ()
    author: Optional[dict[str, Any]] = field(default=None, compare=False)
    reactions: Optional[dict[str, Any]] = field(default=None, compare=False)
    is_latest: bool = False

    def __post_init__(self) -> None:
        if not self.tag:
            raise ValueError("Tag cannot be empty")
        if not self.name:
            object.__setattr__(self, "name", self.tag)
        if self.body is None:
            object.__setattr__(self, "body", "")
        if self.published_at.tzinfo is None:
            object.__setattr__(
                self, "published_at", self.published_at.replace(tzinfo=timezone.utc)
            )

    @property
    def downloadable_asset_names(self) -> str:
        """Names of non source-code assets, one per line."""
        return "\n".join(a.name for a in self.assets if not a.is_source_code)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Release":
        """Build a release from the cache file format (camelCase keys)."""
        return cls(
            id=data["id"],
            tag=data.get("tag") or "",
            url=data.get("url") or "",
            published_at=parse_timestamp(data["publishedAt"]),
            name=data.get("name") or "",
            body=data.get("body") or "",
            prerelease=bool(data.get("prerelease", False)),
            assets=tuple(Asset.from_dict(a) for a in data.get("assets") or []),
            author=data.get("author"),
            reactions=data.get("reactions"),
        )

    def to_dict(self, include_source_code: bool = True) -> dict[str, Any]:
        """Serialize to the cache file format."""
        assets = [
            a.to_dict() for a in self.assets
            if include_source_code or not a.is_source_code
        ]
        return {
            "id": self.id,
            "name": self.name,
            "tag": self.tag,
            "url": self.url,
            "body": self.body,
            "prerelease": self.prerelease,
            "publishedAt": self.published_at.isoformat().replace("+00:00", "Z"),
            "author": self.author,
            "assets": assets,
            "reactions": self.reactions,
        }


@dataclass(frozen=True)
class Category:
    """Resolved category node produced by classification."""

    id: str
    name: str
    description: str = ""
    tooltip: str = ""
    releases: tuple[Release, ...] = ()
    categories: tuple["Category", ...] = ()
    max_displayed: Optional[int] = None

    @property
    def total_releases(self) -> int:
        """Releases in this category and all of its subcategories."""
        return len(self.releases) + sum(c.total_releases for c in self.categories)

    def walk(self):
        """Yield this category and every descendant, depth-first."""
        yield self
        for child in self.categories:
            yield from child.walk()


@dataclass(frozen=True)
class ClassificationResult:
    """Output of one classification run."""

    tree: tuple[Category, ...]
    unmatched_releases: tuple[Release, ...]
    default_max_displayed: Optional[int]
    unmatched_max_displayed: Optional[int]

    def iter_categories(self):
        for category in self.tree:
            yield from category.walk()

    def listed_releases(self) -> dict[ReleaseId, Release]:
        """Unique releases shown anywhere on the site, keyed by id."""
        listed: dict[ReleaseId, Release] = {}
        for category in self.iter_categories():
            for release in category.releases:
                listed[release.id] = release
        for release in self.unmatched_releases:
            listed[release.id] = release
        return listed

    def latest_releases(self) -> list[Release]:
        """Unique releases marked latest in any scope, newest first."""
        latest: dict[ReleaseId, Release] = {}
        scopes = [c.releases for c in self.iter_categories()] + [self.unmatched_releases]
        for releases in scopes:
            for release in releases:
                if release.is_latest:
                    latest.setdefault(release.id, release)
        return sorted(latest.values(), key=lambda r: r.published_at, reverse=True)


@dataclass
class ReleaseData:
    """Releases fetched from a source, with repository-wide counts."""

    releases: list[Release]
    total_count: int
    repository: Optional[str] = None
    oldest_existing_date: Optional[datetime] = None
    oldest_existing_url: Optional[str] = None

    @property
    def listed_count(self) -> int:
        return len(self.releases)

    @property
    def has_all_releases(self) -> bool:
        return self.listed_count >= self.total_count
