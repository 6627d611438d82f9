"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from typing import Optional

from release_tree.core.entities import ClassificationResult, ReleaseData


class ReleaseSource(ABC):
    """Interface for loading releases of a repository."""

    @abstractmethod
    async def fetch_releases(self, max_releases: Optional[int] = None) -> ReleaseData:
        """Fetch releases, newest first, keeping at most max_releases."""
        pass


class MarkdownRenderer(ABC):
    """Interface for turning release notes into HTML."""

    @abstractmethod
    async def render(self, markdown: str) -> str:
        """Render markdown text to an HTML fragment."""
        pass


class SiteGenerator(ABC):
    """Interface for rendering a classification into site pages."""

    @abstractmethod
    async def generate(self, result: ClassificationResult, footer_note: str = "") -> dict[str, str]:
        """Render pages, keyed by path relative to the output directory."""
        pass
