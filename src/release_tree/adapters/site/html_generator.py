"""Static HTML site generator."""

import math
from typing import Optional, Sequence

from bs4 import BeautifulSoup, Tag

from release_tree.config import LatestPageConfig, MultiPageConfig, SiteConfig, is_url
from release_tree.core import (
    Category,
    ClassificationResult,
    MarkdownRenderer,
    Release,
    SiteGenerator,
)
from release_tree.core.categories import UnmatchedConfig
from release_tree.core.tree_builder import LATEST_ID, UNMATCHED_ID

UNSAFE_TAGS = ["script", "style", "iframe", "object", "embed", "form"]

REACTION_EMOJIS = {
    "+1": "👍",
    "-1": "👎",
    "laugh": "😄",
    "hooray": "🎉",
    "confused": "😕",
    "heart": "❤️",
    "rocket": "🚀",
    "eyes": "👀",
}

STYLESHEET = """\
body { font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif; margin: 0; color: #1f2328; }
header { padding: 1.5rem 2rem; border-bottom: 1px solid #d0d7de; }
.layout { display: flex; }
nav { width: 18rem; padding: 1rem; border-right: 1px solid #d0d7de; }
nav ul { list-style: none; padding-left: 1rem; }
main { flex: 1; padding: 1rem 2rem; }
.main-page { border-bottom: 1px solid #d0d7de; margin-bottom: 1rem; }
.release { border: 1px solid #d0d7de; border-radius: 6px; padding: 1rem; margin: 1rem 0; }
.badge { font-size: 0.75rem; border-radius: 2em; padding: 0 0.5em; border: 1px solid; }
.badge.latest { color: #1a7f37; }
.badge.prerelease { color: #9a6700; }
.release-meta, .truncated, .count, .latest-empty { color: #656d76; font-size: 0.875rem; }
pre.release-notes { white-space: pre-wrap; }
.reaction-item { border: 1px solid #d0d7de; border-radius: 2em; padding: 0 0.5em; margin-right: 0.25rem; }
.latest-assets { border-collapse: collapse; width: 100%; }
.latest-assets th, .latest-assets td { text-align: left; padding: 0.25rem 0.5rem; border-bottom: 1px solid #d0d7de; }
.pagination a { margin-right: 0.5rem; }
"""


def displayed_releases(releases: Sequence[Release], max_displayed: Optional[int]) -> list[Release]:
    """Releases shown for a scope after max-displayed truncation (None = all)."""
    if max_displayed is None:
        return list(releases)
    return list(releases[:max_displayed])


def format_bytes(size: Optional[int]) -> str:
    if size is None:
        return ""
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return ""


def sanitize_html(html: str) -> str:
    """Strip active content from rendered release notes."""
    fragment = BeautifulSoup(html, "html.parser")
    for tag in fragment.find_all(UNSAFE_TAGS):
        tag.decompose()
    for tag in fragment.find_all(True):
        for attr in list(tag.attrs):
            value = tag.attrs[attr]
            if attr.lower().startswith("on"):
                del tag.attrs[attr]
            elif attr.lower() in ("href", "src") and str(value).strip().lower().startswith("javascript:"):
                del tag.attrs[attr]
    return str(fragment)


class HtmlSiteGenerator(SiteGenerator):
    """Render the category tree as one page or one page per category."""

    def __init__(
        self,
        site: Optional[SiteConfig] = None,
        multi_page: Optional[MultiPageConfig] = None,
        unmatched: Optional[UnmatchedConfig] = None,
        latest_page: Optional[LatestPageConfig] = None,
        markdown_renderer: Optional[MarkdownRenderer] = None,
    ) -> None:
        self.site = site or SiteConfig()
        self.multi_page = multi_page or MultiPageConfig()
        self.unmatched = unmatched or UnmatchedConfig()
        self.latest_page = latest_page or LatestPageConfig()
        self.markdown_renderer = markdown_renderer
        self.footer_note = ""
        self._rendered_notes: dict[object, str] = {}
        self._main_page_html: Optional[str] = None
        self._latest_assets_max: Optional[int] = None

    async def generate(self, result: ClassificationResult, footer_note: str = "") -> dict[str, str]:
        """Render all pages plus the stylesheet."""
        self.footer_note = footer_note
        await self._render_notes(result)
        await self._render_main_page()

        scopes = list(result.tree)
        unmatched = self._unmatched_scope(result)
        if unmatched is not None:
            scopes.append(unmatched)
        latest = self._latest_scope(result)
        nav_scopes = ([latest] if latest is not None else []) + scopes

        pages = {"style.css": self._stylesheet()}
        if not self.multi_page.enabled:
            pages["index.html"] = self._single_page(scopes, latest)
            return pages

        pages["index.html"] = self._index_page(scopes, nav_scopes)
        if latest is not None:
            pages[f"{LATEST_ID}/index.html"] = self._latest_page(latest, nav_scopes)
        for category in scopes:
            for scope in category.walk():
                pages.update(self._category_pages(scope, nav_scopes))
        return pages

    def _stylesheet(self) -> str:
        if not self.site.custom_css:
            return STYLESHEET
        return f"{STYLESHEET}\n/* Custom styles */\n{self.site.custom_css}"

    def _unmatched_scope(self, result: ClassificationResult) -> Optional[Category]:
        if not result.unmatched_releases:
            return None
        return Category(
            id=UNMATCHED_ID,
            name=self.unmatched.title,
            description=self.unmatched.description,
            releases=result.unmatched_releases,
            max_displayed=result.unmatched_max_displayed,
        )

    def _latest_scope(self, result: ClassificationResult) -> Optional[Category]:
        """Every release marked latest anywhere, as a pseudo category."""
        if not self.latest_page.enabled:
            return None
        releases_max, self._latest_assets_max = self.latest_page.resolve_limits(
            result.default_max_displayed
        )
        return Category(
            id=LATEST_ID,
            name=self.latest_page.title,
            description=self.latest_page.description,
            releases=tuple(result.latest_releases()),
            max_displayed=releases_max,
        )

    async def _render_notes(self, result: ClassificationResult) -> None:
        if self.markdown_renderer is None:
            return
        pending: dict[object, str] = {}
        for release in result.listed_releases().values():
            if release.id not in self._rendered_notes and release.body:
                pending[release.id] = release.body
        if pending:
            print(f"  └─ Rendering markdown for {len(pending)} releases...")
        for release_id, body in pending.items():
            html = await self.markdown_renderer.render(body)
            self._rendered_notes[release_id] = sanitize_html(html)

    async def _render_main_page(self) -> None:
        if not self.site.main_page or self.markdown_renderer is None:
            return
        html = await self.markdown_renderer.render(self.site.main_page)
        self._main_page_html = sanitize_html(html)

    # Page skeletons

    def _new_page(self, title: str, prefix: str = "") -> tuple[BeautifulSoup, Tag, Tag]:
        soup = BeautifulSoup(
            "<!DOCTYPE html><html lang=\"en\"><head></head><body></body></html>", "html.parser"
        )
        head = soup.head
        head.append(soup.new_tag("meta", attrs={"charset": "utf-8"}))
        head.append(soup.new_tag(
            "meta", attrs={"name": "viewport", "content": "width=device-width, initial-scale=1"}
        ))
        head.append(self._text(soup, "title", title))
        head.append(soup.new_tag("link", attrs={"rel": "stylesheet", "href": f"{prefix}style.css"}))
        if self.site.favicon_url:
            href = self.site.favicon_url
            if not is_url(href):
                href = f"{prefix}{href}"
            head.append(soup.new_tag("link", attrs={"rel": "icon", "href": href}))

        header = soup.new_tag("header")
        header.append(self._text(soup, "h1", self.site.title))
        if self.site.description:
            header.append(self._text(soup, "p", self.site.description))
        soup.body.append(header)

        layout = soup.new_tag("div", attrs={"class": "layout"})
        nav = soup.new_tag("nav")
        main = soup.new_tag("main")
        layout.append(nav)
        layout.append(main)
        soup.body.append(layout)

        if self.footer_note:
            footer = soup.new_tag("footer")
            footer.append(self._text(soup, "p", self.footer_note, "count"))
            soup.body.append(footer)
        return soup, nav, main

    def _single_page(self, scopes: list[Category], latest: Optional[Category]) -> str:
        soup, nav, main = self._new_page(self.site.title)
        nav_scopes = ([latest] if latest is not None else []) + scopes
        nav.append(self._nav_list(soup, nav_scopes, link=lambda c: f"#category-{c.id}"))
        main_page = self._main_page_section(soup)
        if main_page is not None:
            main.append(main_page)
        if latest is not None:
            section = soup.new_tag("section", attrs={"id": f"category-{latest.id}"})
            section.append(self._text(soup, "h2", latest.name))
            if latest.description:
                section.append(self._text(soup, "p", latest.description))
            self._latest_content(soup, section, latest, level=3)
            main.append(section)
        for category in scopes:
            main.append(self._category_section(soup, category, level=2))
        return str(soup)

    def _index_page(self, scopes: list[Category], nav_scopes: list[Category]) -> str:
        soup, nav, main = self._new_page(self.site.title)
        nav.append(self._nav_list(soup, nav_scopes, link=lambda c: f"{c.id}/index.html"))
        main_page = self._main_page_section(soup)
        if main_page is not None:
            main.append(main_page)
        for category in scopes:
            for scope in category.walk():
                section = soup.new_tag("section")
                heading = soup.new_tag("h2")
                heading.append(self._link(soup, f"{scope.id}/index.html", scope.name))
                section.append(heading)
                if scope.description:
                    section.append(self._text(soup, "p", scope.description))
                latest = [r for r in scope.releases if r.is_latest]
                for release in latest:
                    section.append(self._release(soup, release, level=3))
                main.append(section)
        return str(soup)

    def _latest_page(self, latest: Category, nav_scopes: list[Category]) -> str:
        prefix = "../"
        soup, nav, main = self._new_page(f"{latest.name} - {self.site.title}", prefix)
        nav.append(self._nav_list(
            soup, nav_scopes, link=lambda c: f"{prefix}{c.id}/index.html", current=latest.id
        ))
        main.append(self._text(soup, "h2", latest.name))
        if latest.description:
            main.append(self._text(soup, "p", latest.description))
        self._latest_content(soup, main, latest, level=3)
        return str(soup)

    def _category_pages(self, category: Category, nav_scopes: list[Category]) -> dict[str, str]:
        """One or more pages for a category, split by page size."""
        releases = displayed_releases(category.releases, category.max_displayed)
        page_size = self.multi_page.page_size or max(len(releases), 1)
        page_count = max(math.ceil(len(releases) / page_size), 1)
        prefix = "../" * (category.id.count("/") + 1)

        pages = {}
        for page in range(1, page_count + 1):
            soup, nav, main = self._new_page(f"{category.name} - {self.site.title}", prefix)
            nav.append(self._nav_list(
                soup, nav_scopes, link=lambda c: f"{prefix}{c.id}/index.html", current=category.id
            ))
            main.append(self._text(soup, "h2", category.name))
            if category.description:
                main.append(self._text(soup, "p", category.description))
            if category.categories:
                children = soup.new_tag("ul")
                for child in category.categories:
                    item = soup.new_tag("li")
                    item.append(self._link(soup, f"{prefix}{child.id}/index.html", child.name))
                    children.append(item)
                main.append(children)

            chunk = releases[(page - 1) * page_size:page * page_size]
            for release in chunk:
                main.append(self._release(soup, release, level=3))
            if page == page_count:
                note = self._truncation_note(soup, category)
                if note is not None:
                    main.append(note)
            if page_count > 1:
                main.append(self._pagination(soup, page, page_count))

            pages[f"{category.id}/{page_file(page)}"] = str(soup)
        return pages

    # Fragments

    def _main_page_section(self, soup: BeautifulSoup) -> Optional[Tag]:
        if not self.site.main_page:
            return None
        section = soup.new_tag("section", attrs={"class": "main-page"})
        if self._main_page_html is not None:
            section.append(BeautifulSoup(self._main_page_html, "html.parser"))
        else:
            section.append(self._text(soup, "pre", self.site.main_page))
        return section

    def _latest_content(self, soup: BeautifulSoup, container: Tag, latest: Category, level: int) -> None:
        """Latest releases followed by a table of their downloadable assets."""
        if not latest.releases:
            container.append(self._text(soup, "p", "There are no releases marked as latest", "latest-empty"))
            return

        shown = displayed_releases(latest.releases, latest.max_displayed)
        for release in shown:
            container.append(self._release(soup, release, level))
        if len(shown) < len(latest.releases):
            container.append(self._text(
                soup, "p", f"Displaying {len(shown)} of {len(latest.releases)} latest releases", "truncated"
            ))

        assets = [
            (asset, release)
            for release in latest.releases
            for asset in release.assets
            if not asset.is_source_code
        ]
        container.append(self._text(soup, f"h{min(level, 6)}", "Assets"))
        if not assets:
            container.append(self._text(soup, "p", "No downloadable assets found", "latest-empty"))
            return

        shown_assets = assets
        if self._latest_assets_max is not None:
            shown_assets = assets[:self._latest_assets_max]
        table = soup.new_tag("table", attrs={"class": "latest-assets"})
        header = soup.new_tag("tr")
        for title in ("Filename", "Size", "Release date"):
            header.append(self._text(soup, "th", title))
        table.append(header)
        for asset, release in shown_assets:
            row = soup.new_tag("tr")
            name = soup.new_tag("td")
            name.append(self._link(soup, asset.url, asset.name))
            row.append(name)
            row.append(self._text(soup, "td", format_bytes(asset.size)))
            date = soup.new_tag("td")
            date.append(self._link(soup, release.url, release.published_at.strftime("%Y-%m-%d")))
            row.append(date)
            table.append(row)
        container.append(table)
        if len(shown_assets) < len(assets):
            container.append(self._text(
                soup, "p", f"Displaying {len(shown_assets)} of {len(assets)} assets", "truncated"
            ))

    def _nav_list(self, soup: BeautifulSoup, categories: Sequence[Category], link, current: str = "") -> Tag:
        nav_list = soup.new_tag("ul")
        for category in categories:
            item = soup.new_tag("li")
            if category.tooltip:
                item["title"] = category.tooltip
            anchor = self._link(soup, link(category), category.name)
            if category.id == current:
                anchor["aria-current"] = "page"
            item.append(anchor)
            shown = displayed_releases(category.releases, category.max_displayed)
            count = len(shown) + sum(
                len(displayed_releases(c.releases, c.max_displayed))
                for child in category.categories for c in child.walk()
            )
            item.append(self._text(soup, "span", f" ({count})", "count"))
            if category.categories:
                item.append(self._nav_list(soup, category.categories, link, current))
            nav_list.append(item)
        return nav_list

    def _category_section(self, soup: BeautifulSoup, category: Category, level: int) -> Tag:
        section = soup.new_tag("section", attrs={"id": f"category-{category.id}"})
        heading = self._text(soup, f"h{min(level, 6)}", category.name)
        if category.tooltip:
            heading["title"] = category.tooltip
        section.append(heading)
        if category.description:
            section.append(self._text(soup, "p", category.description))
        for release in displayed_releases(category.releases, category.max_displayed):
            section.append(self._release(soup, release, level + 1))
        note = self._truncation_note(soup, category)
        if note is not None:
            section.append(note)
        for child in category.categories:
            section.append(self._category_section(soup, child, level + 1))
        return section

    def _truncation_note(self, soup: BeautifulSoup, category: Category) -> Optional[Tag]:
        total = len(category.releases)
        if category.max_displayed is None or total <= category.max_displayed:
            return None
        note = self._text(
            soup, "p", f"Displaying {category.max_displayed} of {total} listed releases. ", "truncated"
        )
        first_hidden = category.releases[category.max_displayed]
        note.append(self._link(soup, first_hidden.url, "Older releases on GitHub"))
        return note

    def _release(self, soup: BeautifulSoup, release: Release, level: int) -> Tag:
        article = soup.new_tag("article", attrs={"class": "release", "data-release-id": str(release.id)})
        heading = soup.new_tag(f"h{min(level, 6)}")
        heading.append(self._link(soup, release.url, release.name))
        if release.is_latest:
            heading.append(" ")
            heading.append(self._text(soup, "span", "Latest", "badge latest"))
        if release.prerelease:
            heading.append(" ")
            heading.append(self._text(soup, "span", "Pre-release", "badge prerelease"))
        article.append(heading)

        meta = [release.tag, release.published_at.strftime("%Y-%m-%d")]
        if release.author and release.author.get("login"):
            meta.append(f"by {release.author['login']}")
        article.append(self._text(soup, "p", " · ".join(meta), "release-meta"))

        rendered = self._rendered_notes.get(release.id)
        if rendered:
            notes = soup.new_tag("div", attrs={"class": "release-notes"})
            notes.append(BeautifulSoup(rendered, "html.parser"))
            article.append(notes)
        elif release.body:
            article.append(self._text(soup, "pre", release.body, "release-notes"))

        reactions = self._reactions(soup, release.reactions)
        if reactions is not None:
            article.append(reactions)

        if release.assets:
            assets = soup.new_tag("ul", attrs={"class": "assets"})
            for asset in release.assets:
                item = soup.new_tag("li")
                item.append(self._link(soup, asset.url, asset.name))
                if asset.size is not None:
                    item.append(self._text(soup, "span", f" {format_bytes(asset.size)}", "count"))
                assets.append(item)
            article.append(assets)
        return article

    def _reactions(self, soup: BeautifulSoup, reactions: Optional[dict]) -> Optional[Tag]:
        if not reactions or reactions.get("total_count") == 0:
            return None
        items = [(key, emoji, reactions.get(key) or 0) for key, emoji in REACTION_EMOJIS.items()]
        items = [item for item in items if item[2] > 0]
        if not items:
            return None
        container = soup.new_tag("p", attrs={"class": "release-reactions"})
        for key, emoji, count in items:
            item = self._text(soup, "span", f"{emoji} {count}", "reaction-item")
            item["title"] = key
            container.append(item)
        return container

    def _pagination(self, soup: BeautifulSoup, page: int, page_count: int) -> Tag:
        nav = soup.new_tag("p", attrs={"class": "pagination"})
        for number in range(1, page_count + 1):
            if number == page:
                nav.append(self._text(soup, "strong", str(number)))
            else:
                nav.append(self._link(soup, page_file(number), str(number)))
            nav.append(" ")
        return nav

    @staticmethod
    def _text(soup: BeautifulSoup, name: str, text: str, css_class: str = "") -> Tag:
        tag = soup.new_tag(name, attrs={"class": css_class} if css_class else {})
        tag.string = text
        return tag

    @staticmethod
    def _link(soup: BeautifulSoup, href: str, text: str) -> Tag:
        tag = soup.new_tag("a", attrs={"href": href})
        tag.string = text
        return tag


def page_file(page: int) -> str:
    return "index.html" if page == 1 else f"page-{page}.html"
