"""Category configuration nodes parsed from the ``categories:`` section."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from release_tree.core.errors import ConfigError
from release_tree.core.matcher import (
    COMBINATOR_KEYS,
    SIMPLE_MATCHER_KEYS,
    InheritMode,
    Matcher,
)
from release_tree.core.settings import (
    CutoffDate,
    LatestMatch,
    MaxDisplayed,
    Setting,
    parse_cutoff_date,
    parse_inherit_mode,
    parse_latest_match,
    validate_max_displayed,
)


UNMATCHED_TITLE = "Other releases"


@dataclass(frozen=True)
class CategoryConfig:
    """One node of the configured category tree."""

    name: str
    description: str = ""
    tooltip: str = ""
    matcher: Optional[Matcher] = None
    categories: tuple["CategoryConfig", ...] = ()
    latest_match: Setting[LatestMatch] = field(default_factory=Setting.absent)
    cutoff_date: Setting[CutoffDate] = field(default_factory=Setting.absent)
    max_displayed: Setting[MaxDisplayed] = field(default_factory=Setting.absent)
    inherit_parent_matchers: Setting[InheritMode] = field(default_factory=Setting.absent)
    show_releases: bool = True

    @classmethod
    def from_config(
        cls, data: Any, now: Optional[datetime] = None, path: str = "categories"
    ) -> "CategoryConfig":
        """Parse and validate one category mapping, recursively.

        Raises:
            ConfigError: If the node or any descendant is invalid. Messages
                name the offending category.
        """
        if not isinstance(data, Mapping):
            raise ConfigError(f"{path} must be a mapping, got: {data!r}")
        name = data.get("name")
        if name is None or not str(name).strip():
            raise ConfigError(f"{path} is missing a name")
        name = str(name)
        context = f'Category "{name}"'

        matcher = None
        own_keys = [k for k in (*SIMPLE_MATCHER_KEYS, *COMBINATOR_KEYS) if k in data]
        if own_keys:
            matcher = Matcher.from_config({k: data[k] for k in own_keys}, context)

        children = data.get("categories") or []
        if not isinstance(children, list):
            raise ConfigError(f"{context} categories must be a list")

        return cls(
            name=name,
            description=str(data.get("description") or ""),
            tooltip=str(data.get("tooltip") or ""),
            matcher=matcher,
            categories=tuple(
                cls.from_config(child, now, f"{context} categories[{i}]")
                for i, child in enumerate(children)
            ),
            latest_match=Setting.from_mapping(
                data, "latest-match", lambda v: parse_latest_match(v, f"{context} latest-match")
            ),
            cutoff_date=Setting.from_mapping(
                data, "cutoff-date", lambda v: _parse_cutoff(v, now, context)
            ),
            max_displayed=Setting.from_mapping(
                data, "max-displayed", lambda v: _parse_max_displayed(v, f"{context} max-displayed")
            ),
            inherit_parent_matchers=Setting.from_mapping(
                data,
                "inherit-parent-matchers",
                lambda v: parse_inherit_mode(v, f"{context} inherit-parent-matchers"),
            ),
            show_releases=data.get("show-releases") is not False,
        )


@dataclass(frozen=True)
class UnmatchedConfig:
    """Overrides for the bucket of releases no category matched."""

    title: str = UNMATCHED_TITLE
    description: str = ""
    latest_match: Setting[LatestMatch] = field(default_factory=Setting.absent)
    cutoff_date: Setting[CutoffDate] = field(default_factory=Setting.absent)
    max_displayed: Setting[MaxDisplayed] = field(default_factory=Setting.absent)

    @classmethod
    def from_config(
        cls, data: Optional[Mapping[str, Any]], now: Optional[datetime] = None
    ) -> "UnmatchedConfig":
        data = data or {}
        if not isinstance(data, Mapping):
            raise ConfigError(f"unmatched must be a mapping, got: {data!r}")
        return cls(
            title=str(data.get("title") or UNMATCHED_TITLE),
            description=str(data.get("description") or ""),
            latest_match=Setting.from_mapping(
                data, "latest-match", lambda v: parse_latest_match(v, "unmatched.latest-match")
            ),
            cutoff_date=Setting.from_mapping(
                data, "cutoff-date", lambda v: _parse_cutoff(v, now, "unmatched")
            ),
            max_displayed=Setting.from_mapping(
                data, "max-displayed", lambda v: _parse_max_displayed(v, "unmatched.max-displayed")
            ),
        )


def _parse_cutoff(value: Any, now: Optional[datetime], context: str) -> CutoffDate:
    try:
        return parse_cutoff_date(value, now)
    except ConfigError as e:
        raise ConfigError(f"{context} cutoff-date: {e}") from e


def _parse_max_displayed(value: Any, context: str) -> MaxDisplayed:
    validate_max_displayed(value, context)
    return value


def parse_categories(data: Any, now: Optional[datetime] = None) -> tuple[CategoryConfig, ...]:
    """Parse the top-level ``categories:`` list."""
    if data is None:
        return ()
    if not isinstance(data, list):
        raise ConfigError(f"categories must be a list, got: {data!r}")
    return tuple(
        CategoryConfig.from_config(item, now, f"categories[{i}]") for i, item in enumerate(data)
    )


def parse_filter(data: Any, key: str) -> Optional[Matcher]:
    """Parse a global ``include:`` / ``exclude:`` block."""
    if data is None:
        return None
    return Matcher.from_config(data, key)
