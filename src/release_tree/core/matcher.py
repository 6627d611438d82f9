"""Rule matching of releases against matcher configuration.

A matcher node is a mapping that may hold any of the leaf keys below plus
``match-all`` / ``match-any`` lists of nested matcher nodes. Every condition
present on a node must hold for the node to match.

Matchers are compiled once when the configuration is loaded, so an invalid
regular expression fails the run before any release is classified.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from release_tree.core.entities import Release
from release_tree.core.errors import ConfigError

# Regex leaves and the release text each one searches.
TEXT_FIELDS: dict[str, Callable[[Release], str]] = {
    "title": lambda r: r.name or "",
    "tag": lambda r: r.tag or "",
    "body": lambda r: r.body or "",
    "assets": lambda r: r.downloadable_asset_names,
}

FLAG_FIELDS: dict[str, Callable[[Release], bool]] = {
    "is-prerelease": lambda r: r.prerelease,
    "is-latest": lambda r: r.is_latest,
}

SIMPLE_MATCHER_KEYS = (
    "title", "title-not",
    "tag", "tag-not",
    "body", "body-not",
    "assets", "assets-not",
    "is-prerelease", "is-latest",
)

COMBINATOR_KEYS = ("match-all", "match-any")

InheritMode = Union[bool, str]


@dataclass(frozen=True)
class PatternLeaf:
    """Case-insensitive regex search over one release field."""

    key: str
    field_name: str
    pattern: re.Pattern
    negate: bool = False

    def test(self, release: Release) -> bool:
        found = self.pattern.search(TEXT_FIELDS[self.field_name](release)) is not None
        return not found if self.negate else found


@dataclass(frozen=True)
class FlagLeaf:
    """Strict boolean equality against a release flag."""

    key: str
    expected: bool

    def test(self, release: Release) -> bool:
        return bool(FLAG_FIELDS[self.key](release)) == self.expected


@dataclass(frozen=True)
class Matcher:
    """Compiled matcher node."""

    leaves: tuple[Union[PatternLeaf, FlagLeaf], ...] = ()
    match_all: Optional[tuple["Matcher", ...]] = None
    match_any: Optional[tuple["Matcher", ...]] = None

    @property
    def is_empty(self) -> bool:
        """True when the node declares no condition at all."""
        return not self.leaves and self.match_all is None and self.match_any is None

    def test(self, release: Release) -> bool:
        # Empty combinator lists are vacuously true, including match-any.
        if self.match_any and not any(m.test(release) for m in self.match_any):
            return False
        if self.match_all and not all(m.test(release) for m in self.match_all):
            return False
        return all(leaf.test(release) for leaf in self.leaves)

    @classmethod
    def from_config(cls, data: Any, context: str = "matcher") -> "Matcher":
        """Compile a matcher mapping.

        Raises:
            ConfigError: On a non-mapping node, a bad regex, a non-boolean flag
                or a combinator that is not a list.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError(f"{context} must be a mapping, got: {data!r}")

        leaves: list[Union[PatternLeaf, FlagLeaf]] = []
        for key in SIMPLE_MATCHER_KEYS:
            if key not in data:
                continue
            value = data[key]
            if key in FLAG_FIELDS:
                # Omitted flag value means the leaf is skipped
                if value is None:
                    continue
                if not isinstance(value, bool):
                    raise ConfigError(f"{context} {key} must be true or false, got: {value!r}")
                leaves.append(FlagLeaf(key=key, expected=value))
            else:
                leaves.append(_compile_pattern_leaf(key, value, context))

        return cls(
            leaves=tuple(leaves),
            match_all=_compile_group(data, "match-all", context),
            match_any=_compile_group(data, "match-any", context),
        )

    @classmethod
    def from_latest_match(cls, data: Any, context: str = "latest-match") -> "Matcher":
        """Compile a latest-match rule: a list is an implicit match-all group."""
        if isinstance(data, list):
            return cls.from_config({"match-all": data}, context)
        return cls.from_config(data, context)


def _compile_pattern_leaf(key: str, value: Any, context: str) -> PatternLeaf:
    negate = key.endswith("-not")
    field_name = key[: -len("-not")] if negate else key
    if value is None or isinstance(value, (list, dict, bool)):
        raise ConfigError(f"{context} {key} must be a regular expression, got: {value!r}")
    try:
        pattern = re.compile(str(value), re.IGNORECASE)
    except re.error as e:
        raise ConfigError(f"{context} {key} has an invalid regular expression {value!r}: {e}") from e
    return PatternLeaf(key=key, field_name=field_name, pattern=pattern, negate=negate)


def _compile_group(data: Mapping, key: str, context: str) -> Optional[tuple[Matcher, ...]]:
    if key not in data or data[key] is None:
        return None
    items = data[key]
    if not isinstance(items, list):
        raise ConfigError(f"{context} {key} must be a list, got: {items!r}")
    return tuple(
        Matcher.from_config(item, f"{context} {key}[{i}]") for i, item in enumerate(items)
    )


def evaluate_matcher(release: Release, matcher: Matcher) -> bool:
    """Evaluate one compiled matcher against a release."""
    return matcher.test(release)


def inherit_mode_operator(inherit_mode: Optional[InheritMode]) -> Optional[str]:
    """Normalize an inherit-parent-matchers value to "and", "or" or None."""
    if inherit_mode is True or inherit_mode == "and":
        return "and"
    if inherit_mode == "or":
        return "or"
    return None


def matches_category(
    release: Release,
    matcher: Optional[Matcher],
    parent_match: Optional[bool] = None,
    inherit_mode: Optional[InheritMode] = False,
) -> bool:
    """Match a release against a category's own matcher.

    A category without matchers matches nothing, unless inheritance is
    enabled and the parent produced a result, in which case it passes the
    parent result through. ``parent_match`` is None for root categories.
    """
    operator = inherit_mode_operator(inherit_mode)
    inherits = operator is not None and parent_match is not None

    if matcher is None or matcher.is_empty:
        return bool(parent_match) if inherits else False

    result = matcher.test(release)
    if not inherits:
        return result
    if operator == "or":
        return result or bool(parent_match)
    return result and bool(parent_match)


def matches_filter(release: Release, matcher: Optional[Matcher]) -> bool:
    """Match a release against an include/exclude filter.

    Unlike ``matches_category``, a filter without matchers matches everything.
    """
    if matcher is None or matcher.is_empty:
        return True
    return matcher.test(release)
