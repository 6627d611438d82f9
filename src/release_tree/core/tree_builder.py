"""Build the annotated category tree from a flat release list.

Each category is evaluated against the complete release list, so a release
can land in several categories. Every category gets its own copies of the
releases it shows, with ``is_latest`` computed for that category alone.
"""

import re
from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Optional, Sequence

from release_tree.core.categories import CategoryConfig, UnmatchedConfig
from release_tree.core.entities import Category, ClassificationResult, Release, ReleaseId
from release_tree.core.matcher import InheritMode, Matcher, matches_category
from release_tree.core.settings import (
    NEWEST,
    ClassificationDefaults,
    CutoffDate,
    LatestMatch,
    MaxDisplayed,
    normalize_max_displayed,
    resolve_setting,
    validate_max_displayed,
)


@dataclass(frozen=True)
class InheritedContext:
    """Effective settings and match results a node passes to its children."""

    latest_match: LatestMatch
    cutoff_date: CutoffDate
    max_displayed: MaxDisplayed
    inherit_mode: InheritMode
    parent_matches: Optional[Mapping[ReleaseId, bool]] = None

    @classmethod
    def root(cls, defaults: ClassificationDefaults) -> "InheritedContext":
        """Context for top-level categories: nothing inherited but defaults."""
        return cls(
            latest_match=defaults.latest_match,
            cutoff_date=defaults.cutoff_date,
            max_displayed=defaults.max_displayed,
            inherit_mode=defaults.inherit_parent_matchers,
        )


def filter_by_cutoff_date(releases: Iterable[Release], cutoff_date: CutoffDate) -> list[Release]:
    """Keep releases published strictly after the cutoff (``False`` keeps all)."""
    if cutoff_date is False:
        return list(releases)
    if cutoff_date is None:
        raise ValueError("cutoff date must be resolved before filtering")
    return [r for r in releases if r.published_at > cutoff_date]


def sort_newest_first(releases: Iterable[Release]) -> list[Release]:
    return sorted(releases, key=lambda r: r.published_at, reverse=True)


def find_latest_releases(
    releases: Sequence[Release], latest_match: Optional[LatestMatch]
) -> set[ReleaseId]:
    """Ids of the releases that get the latest badge.

    Args:
        releases: Releases of one scope, newest first.
        latest_match: ``False`` for no badge, None or "newest" for the newest
            release only, or a matcher evaluated against every release (with
            the newest provisionally flagged latest for ``is-latest`` leaves).
    """
    if not releases or latest_match is False:
        return set()
    if latest_match is None or latest_match == NEWEST:
        return {releases[0].id}

    matcher = latest_match
    if not isinstance(matcher, Matcher):
        matcher = Matcher.from_latest_match(matcher)

    return {
        release.id
        for i, release in enumerate(releases)
        if matcher.test(replace(release, is_latest=(i == 0)))
    }


def mark_latest(releases: Sequence[Release], latest_ids: set[ReleaseId]) -> list[Release]:
    """Set ``is_latest`` per membership and move latest releases to the top.

    Order within the latest and non-latest groups is preserved.
    """
    marked = [replace(r, is_latest=r.id in latest_ids) for r in releases]
    return sorted(marked, key=lambda r: not r.is_latest)


def process_scope(
    releases: Iterable[Release], cutoff_date: CutoffDate, latest_match: LatestMatch
) -> list[Release]:
    """Cutoff, newest-first sort and latest selection for one scope."""
    scoped = sort_newest_first(filter_by_cutoff_date(releases, cutoff_date))
    return mark_latest(scoped, find_latest_releases(scoped, latest_match))


# Top-level ids used by the generated site for its own sections
UNMATCHED_ID = "unmatched"
LATEST_ID = "latest"
RESERVED_IDS = (UNMATCHED_ID, LATEST_ID)


def slugify(text: str) -> str:
    """URL-safe slug of a category name."""
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug, flags=re.ASCII)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-") or "category"


def assign_ids(
    names: Sequence[str], parent_id: str = "", reserved: Iterable[str] = ()
) -> list[str]:
    """Hierarchical ids for sibling categories.

    Siblings whose names slugify to the same value get ``-2``, ``-3`` ...
    suffixes in configuration order. Reserved ids count as already taken.
    """
    ids: list[str] = []
    seen: dict[str, int] = {reserved_id: 1 for reserved_id in reserved}
    for name in names:
        slug = slugify(name)
        candidate = f"{parent_id}/{slug}" if parent_id else slug
        count = seen.get(candidate, 0) + 1
        seen[candidate] = count
        if count > 1:
            candidate = f"{candidate}-{count}"
            while candidate in seen:
                count += 1
                candidate = f"{candidate.rsplit('-', 1)[0]}-{count}"
            seen[candidate] = 1
        ids.append(candidate)
    return ids


def build_category(
    node: CategoryConfig,
    releases: Sequence[Release],
    context: InheritedContext,
    defaults: ClassificationDefaults,
    category_id: str,
) -> tuple[Category, frozenset[ReleaseId]]:
    """Classify releases into one category and its subtree.

    Returns:
        The resolved category (not yet pruned) and the ids of every release
        matched anywhere in the subtree, hidden categories included.
    """
    latest_match = resolve_setting(node.latest_match, context.latest_match, defaults.latest_match)
    cutoff_date = resolve_setting(node.cutoff_date, context.cutoff_date, defaults.cutoff_date)
    max_displayed = resolve_setting(
        node.max_displayed, context.max_displayed, defaults.max_displayed
    )
    validate_max_displayed(max_displayed, f'Category "{node.name}" max-displayed')
    inherit_mode = resolve_setting(
        node.inherit_parent_matchers, context.inherit_mode, defaults.inherit_parent_matchers
    )

    match_results: dict[ReleaseId, bool] = {}
    matched_ids: set[ReleaseId] = set()
    shown: list[Release] = []
    for release in releases:
        parent_match = context.parent_matches.get(release.id) if context.parent_matches else None
        matched = matches_category(release, node.matcher, parent_match, inherit_mode)
        match_results[release.id] = matched
        if matched:
            matched_ids.add(release.id)
            # Hidden categories still match so children can inherit the result
            if node.show_releases:
                shown.append(replace(release, is_latest=False))

    node_releases = process_scope(shown, cutoff_date, latest_match)

    child_context = InheritedContext(
        latest_match=latest_match,
        cutoff_date=cutoff_date,
        max_displayed=max_displayed,
        inherit_mode=inherit_mode,
        parent_matches=match_results,
    )
    children: list[Category] = []
    child_ids = assign_ids([c.name for c in node.categories], category_id)
    for child_node, child_id in zip(node.categories, child_ids):
        child, child_matched = build_category(child_node, releases, child_context, defaults, child_id)
        children.append(child)
        matched_ids.update(child_matched)

    category = Category(
        id=category_id,
        name=node.name,
        description=node.description,
        tooltip=node.tooltip,
        releases=tuple(node_releases),
        categories=tuple(children),
        max_displayed=normalize_max_displayed(max_displayed),
    )
    return category, frozenset(matched_ids)


def prune_empty_categories(categories: Iterable[Category]) -> tuple[Category, ...]:
    """Drop categories with no releases anywhere in their subtree."""
    pruned = []
    for category in categories:
        children = prune_empty_categories(category.categories)
        if category.releases or children:
            pruned.append(replace(category, categories=children))
    return tuple(pruned)


def build_tree(
    releases: Sequence[Release],
    categories: Sequence[CategoryConfig],
    defaults: ClassificationDefaults,
) -> tuple[tuple[Category, ...], frozenset[ReleaseId]]:
    """Build and prune the whole category tree."""
    context = InheritedContext.root(defaults)
    tree: list[Category] = []
    top_level_ids = assign_ids([c.name for c in categories], reserved=RESERVED_IDS)
    matched_ids: set[ReleaseId] = set()
    for node, category_id in zip(categories, top_level_ids):
        category, category_matched = build_category(node, releases, context, defaults, category_id)
        tree.append(category)
        matched_ids.update(category_matched)
    return prune_empty_categories(tree), frozenset(matched_ids)


def classify_releases(
    releases: Sequence[Release],
    categories: Sequence[CategoryConfig],
    defaults: Optional[ClassificationDefaults] = None,
    unmatched: Optional[UnmatchedConfig] = None,
) -> ClassificationResult:
    """Classify releases into the configured category tree.

    Args:
        releases: Complete release list.
        categories: Parsed top-level categories.
        defaults: Configured defaults (built-in defaults when omitted).
        unmatched: Overrides for the unmatched bucket.

    Returns:
        The pruned tree, the processed unmatched releases and the resolved
        default and unmatched max-displayed values (None means unlimited).

    Raises:
        ConfigError: If a max-displayed value is not false or a positive integer.
    """
    if defaults is None:
        defaults = ClassificationDefaults()
    if unmatched is None:
        unmatched = UnmatchedConfig()

    tree, matched_ids = build_tree(releases, categories, defaults)

    unmatched_max = resolve_setting(
        unmatched.max_displayed, defaults.max_displayed, defaults.max_displayed
    )
    validate_max_displayed(unmatched_max, "unmatched.max-displayed")
    unmatched_releases = process_scope(
        (replace(r, is_latest=False) for r in releases if r.id not in matched_ids),
        resolve_setting(unmatched.cutoff_date, defaults.cutoff_date, defaults.cutoff_date),
        resolve_setting(unmatched.latest_match, defaults.latest_match, defaults.latest_match),
    )

    return ClassificationResult(
        tree=tree,
        unmatched_releases=tuple(unmatched_releases),
        default_max_displayed=normalize_max_displayed(defaults.max_displayed),
        unmatched_max_displayed=normalize_max_displayed(unmatched_max),
    )
