"""Source adapters for loading releases."""

from release_tree.adapters.sources.file_source import FileReleaseSource, save_releases_to_file
from release_tree.adapters.sources.filters import apply_filters
from release_tree.adapters.sources.github_source import (
    GitHubMarkdownRenderer,
    GitHubReleaseSource,
    parse_repository,
)

__all__ = [
    "FileReleaseSource",
    "GitHubReleaseSource",
    "GitHubMarkdownRenderer",
    "apply_filters",
    "parse_repository",
    "save_releases_to_file",
]
