"""Local markdown rendering for release notes and the main page."""

import markdown as markdown_lib

from release_tree.core import MarkdownRenderer

EXTENSIONS = ["fenced_code", "tables", "sane_lists"]


class LocalMarkdownRenderer(MarkdownRenderer):
    """Render markdown in-process with Python-Markdown."""

    def __init__(self, extensions=None) -> None:
        self.extensions = list(extensions) if extensions is not None else list(EXTENSIONS)

    async def render(self, markdown: str) -> str:
        if not markdown:
            return ""
        return markdown_lib.markdown(markdown, extensions=self.extensions)
