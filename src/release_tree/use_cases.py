"""Business logic use cases."""

import shutil
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from release_tree.core import (
    CategoryConfig,
    ClassificationDefaults,
    ClassificationResult,
    Matcher,
    ReleaseData,
    ReleaseSource,
    SiteGenerator,
    UnmatchedConfig,
    classify_releases,
)
from release_tree.adapters.sources.filters import apply_filters


def format_release_stats(release_data: ReleaseData, result: ClassificationResult) -> str:
    """Footer line describing how much of the repository history is listed.

    Counts the unique releases shown on the site after classification, so
    releases dropped by cutoff dates or filters are not included.
    """
    listed = list(result.listed_releases().values())
    if release_data.has_all_releases and len(listed) >= release_data.total_count:
        return f"Listing all {release_data.total_count} releases."
    text = f"Listing {len(listed)} of {release_data.total_count} releases."
    if listed:
        oldest = min(r.published_at for r in listed)
        text += f" Oldest release: {oldest.strftime('%Y-%m-%d')}."
    return text


class ReleaseCollectionService:
    """Service for loading releases and applying the global filters."""

    def __init__(
        self,
        source: ReleaseSource,
        include: Optional[Matcher] = None,
        exclude: Optional[Matcher] = None,
        max_releases: Optional[int] = None,
    ) -> None:
        self.source = source
        self.include = include
        self.exclude = exclude
        self.max_releases = max_releases

    async def fetch(self) -> ReleaseData:
        """Fetch releases without filtering (used to save a cache file)."""
        print("\n" + "=" * 70)
        print("📥 STEP 1: FETCHING RELEASES")
        print("=" * 70)

        emoji = getattr(self.source, "emoji", "🔍")
        name = getattr(self.source, "name", self.source.__class__.__name__)
        print(f"\n{emoji} Source: {name}")

        release_data = await self.source.fetch_releases(self.max_releases)
        print(f"✓ Loaded {release_data.listed_count} of {release_data.total_count} releases")
        return release_data

    async def collect(self) -> ReleaseData:
        """Fetch releases and drop those rejected by include/exclude."""
        release_data = await self.fetch()

        if self.include is None and self.exclude is None:
            return release_data

        filtered = apply_filters(release_data.releases, self.include, self.exclude)
        removed = release_data.listed_count - len(filtered)
        print(f"✓ Filters removed {removed} releases, {len(filtered)} remain")
        release_data.releases = filtered
        return release_data


class SiteService:
    """Service for classifying releases and writing the static site."""

    def __init__(
        self,
        site_generator: SiteGenerator,
        categories: Sequence[CategoryConfig] = (),
        defaults: Optional[ClassificationDefaults] = None,
        unmatched: Optional[UnmatchedConfig] = None,
        extra_files: Optional[dict[str, Path]] = None,
    ) -> None:
        self.site_generator = site_generator
        self.categories = categories
        self.defaults = defaults
        self.unmatched = unmatched
        self.extra_files = extra_files or {}

    def classify(self, release_data: ReleaseData) -> ClassificationResult:
        print("\n" + "=" * 70)
        print("🗂️  STEP 2: CLASSIFYING RELEASES")
        print("=" * 70)

        result = classify_releases(
            release_data.releases, self.categories, self.defaults, self.unmatched
        )

        for category in result.iter_categories():
            depth = category.id.count("/")
            print(f"  {'  ' * depth}• {category.name}: {len(category.releases)}")
        print(f"  • Unmatched: {len(result.unmatched_releases)}")
        return result

    async def build(self, release_data: ReleaseData, output_dir: Path) -> ClassificationResult:
        """Classify releases, render every page and write them to output_dir."""
        result = self.classify(release_data)

        print("\n" + "=" * 70)
        print("📝 STEP 3: GENERATING SITE")
        print("=" * 70)

        footer_note = format_release_stats(release_data, result)
        print(f"  └─ {footer_note}")

        pages = await self.site_generator.generate(result, footer_note)
        self.write_site(pages, output_dir, self.extra_files)
        print(f"✓ Wrote {len(pages) + len(self.extra_files)} files to {output_dir}")
        return result

    @staticmethod
    def write_site(
        pages: dict[str, str],
        output_dir: Path,
        extra_files: Optional[dict[str, Path]] = None,
    ) -> None:
        """Write pages into a temp dir, then copy them over output_dir.

        Files already in output_dir that the site does not produce are kept.
        ``extra_files`` maps output paths to local files copied as they are.
        """
        temp_dir = Path(tempfile.mkdtemp(prefix="release-tree-"))
        try:
            for relative_path, content in pages.items():
                path = temp_dir / relative_path
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content, encoding="utf-8")
            for relative_path, source in (extra_files or {}).items():
                path = temp_dir / relative_path
                path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(source, path)

            shutil.copytree(temp_dir, output_dir, dirs_exist_ok=True)
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)
