"""CLI entry point for release tree."""

import asyncio
import os
from pathlib import Path
from typing import Optional

import typer

from release_tree.adapters.site import HtmlSiteGenerator, LocalMarkdownRenderer
from release_tree.adapters.sources import (
    FileReleaseSource,
    GitHubMarkdownRenderer,
    GitHubReleaseSource,
    parse_repository,
    save_releases_to_file,
)
from release_tree.config import DEFAULT_CONFIG_PATH, get_settings
from release_tree.core import ConfigError, ReleaseSourceError
from release_tree.use_cases import ReleaseCollectionService, SiteService


def main(
    repo: Optional[str] = typer.Option(None, "--repo", help="GitHub repository (owner/repo or URL)"),
    releases_file: Optional[Path] = typer.Option(
        None, "--releases-file", help="Load releases from a saved JSON file"
    ),
    token: Optional[str] = typer.Option(None, "--token", help="GitHub token (defaults to GITHUB_TOKEN)"),
    config: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Config file path or URL"),
    output: Path = typer.Option(Path("_site"), "--output", help="Output directory"),
    save_releases: Optional[Path] = typer.Option(
        None, "--save-releases", help="Fetch releases, save them to a JSON file and exit"
    ),
    github_markdown: bool = typer.Option(
        False, "--github-markdown", help="Render markdown with the GitHub API instead of locally"
    ),
) -> None:
    """Generate a categorized release site for a GitHub repository."""
    repository = parse_repository(repo)

    if save_releases is not None and not repository:
        print("❌ Error: --save-releases requires --repo")
        raise typer.Exit(1)
    if bool(repository) == bool(releases_file):
        print("❌ Error: pass exactly one of --repo or --releases-file")
        raise typer.Exit(1)

    try:
        asyncio.run(async_run(
            repository, releases_file, token, config, output, save_releases, github_markdown
        ))
    except (ConfigError, ReleaseSourceError) as e:
        print(f"\n❌ Error: {e}")
        raise typer.Exit(1)


def app() -> None:
    """CLI entry point."""
    typer.run(main)


async def async_run(
    repository: Optional[str],
    releases_file: Optional[Path],
    token: Optional[str],
    config: str,
    output: Path,
    save_releases: Optional[Path],
    github_markdown: bool,
) -> None:
    """Async implementation of the run command."""
    if save_releases is not None:
        await save_all_releases(repository, token or os.getenv("GITHUB_TOKEN"), save_releases)
        return

    settings = get_settings(config, github_token=token)

    # Header
    print("\n" + "=" * 70)
    print(f"🏷️  RELEASE TREE - {settings.site.title}")
    print("=" * 70)

    print("\n🔑 Credentials:")
    if settings.github_token:
        print("  ✓ GitHub token")
    else:
        print("  ⚠️  GitHub token not found (limited rate limit)")

    print("\n⚙️  Settings:")
    print(f"  • Config: {config}")
    print(f"  • Categories: {len(settings.categories)}")
    print(f"  • Max releases: {settings.max_releases or 'unlimited'}")
    if settings.multi_page.enabled:
        print(f"  • Multi-page, page size: {settings.page_size or 'unlimited'}")
    if settings.latest_page.enabled:
        print(f"  • Latest page: {settings.latest_page.title}")
    if settings.has_filters:
        print("  • Include/exclude filters enabled")

    if repository:
        source = GitHubReleaseSource(repository, token=settings.github_token)
    else:
        source = FileReleaseSource(releases_file)

    collection_service = ReleaseCollectionService(
        source=source,
        include=settings.include,
        exclude=settings.exclude,
        max_releases=settings.max_releases,
    )

    release_data = await collection_service.collect()

    if github_markdown:
        markdown_renderer = GitHubMarkdownRenderer(
            token=settings.github_token, repository=release_data.repository
        )
    else:
        markdown_renderer = LocalMarkdownRenderer()

    site_generator = HtmlSiteGenerator(
        site=settings.site,
        multi_page=settings.multi_page,
        unmatched=settings.unmatched,
        latest_page=settings.latest_page,
        markdown_renderer=markdown_renderer,
    )
    extra_files = {}
    if settings.site.favicon_path is not None:
        extra_files[settings.site.favicon_url] = settings.site.favicon_path
    site_service = SiteService(
        site_generator=site_generator,
        categories=settings.categories,
        defaults=settings.defaults,
        unmatched=settings.unmatched,
        extra_files=extra_files,
    )

    await site_service.build(release_data, output)

    print("\n" + "=" * 70)
    print("✅ DONE!")
    print("=" * 70)
    print(f"📄 Site written to: {output}/index.html")
    print()


async def save_all_releases(repository: str, token: Optional[str], path: Path) -> None:
    """Fetch every release of the repository into a JSON cache file.

    The config is not read, so max-releases and the filters do not apply.
    """
    print("\n" + "=" * 70)
    print(f"🏷️  RELEASE TREE - saving releases of {repository}")
    print("=" * 70)

    collection_service = ReleaseCollectionService(
        source=GitHubReleaseSource(repository, token=token),
        max_releases=None,
    )
    release_data = await collection_service.fetch()
    save_releases_to_file(release_data, path)
    print(f"\n✅ Saved {release_data.listed_count} releases to {path}")


if __name__ == "__main__":
    app()
