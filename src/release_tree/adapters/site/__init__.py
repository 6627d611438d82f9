"""Static site output."""

from release_tree.adapters.site.html_generator import HtmlSiteGenerator
from release_tree.adapters.site.markdown_renderer import LocalMarkdownRenderer

__all__ = ["HtmlSiteGenerator", "LocalMarkdownRenderer"]
