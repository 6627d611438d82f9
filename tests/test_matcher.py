"""Tests for matcher compilation and evaluation."""

from datetime import datetime, timezone

import pytest

from release_tree.core import Asset, ConfigError, Matcher, Release
from release_tree.core.matcher import evaluate_matcher


def _release(**overrides) -> Release:
    data = dict(
        id=1,
        tag="v1.2.0",
        url="https://github.com/owner/repo/releases/tag/v1.2.0",
        published_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        name="Version 1.2.0",
        body="Bug fixes and improvements",
    )
    data.update(overrides)
    return Release(**data)


def test_title_regex_is_case_insensitive():
    """Test title leaf searches the name ignoring case."""
    matcher = Matcher.from_config({"title": "version"})

    assert evaluate_matcher(_release(), matcher)


def test_regex_is_a_search_not_a_full_match():
    """Test patterns match anywhere in the field."""
    matcher = Matcher.from_config({"tag": r"\d+\.2"})

    assert evaluate_matcher(_release(), matcher)


def test_tag_not_rejects_matching_release():
    """Test negated leaf fails when the pattern is found."""
    matcher = Matcher.from_config({"tag-not": "-rc"})

    assert evaluate_matcher(_release(), matcher)
    assert not evaluate_matcher(_release(tag="v2.0.0-rc1"), matcher)


def test_empty_body_against_positive_and_negative_patterns():
    """Test missing body acts as empty string."""
    release = _release(body=None)

    assert not evaluate_matcher(release, Matcher.from_config({"body": "security"}))
    assert evaluate_matcher(release, Matcher.from_config({"body-not": "security"}))
    # Pattern that matches the empty string
    assert evaluate_matcher(release, Matcher.from_config({"body": "^$"}))


def test_assets_ignore_source_code_archives():
    """Test assets leaf only sees downloadable asset names."""
    release = _release(assets=(
        Asset(name="app-linux.tar.gz", url="https://example.com/a"),
        Asset(name="Source code (zip)", url="https://example.com/z", is_source_code=True),
    ))

    assert evaluate_matcher(release, Matcher.from_config({"assets": "linux"}))
    assert not evaluate_matcher(release, Matcher.from_config({"assets": "Source code"}))
    assert evaluate_matcher(release, Matcher.from_config({"assets-not": "windows"}))


def test_assets_are_one_name_per_line():
    """Test anchored patterns apply per asset name."""
    release = _release(assets=(
        Asset(name="first.zip", url="u1"),
        Asset(name="second.zip", url="u2"),
    ))

    matcher = Matcher.from_config({"assets": "(?m)^second"})

    assert evaluate_matcher(release, matcher)


def test_flag_leaves_use_strict_equality():
    """Test is-prerelease and is-latest compare booleans."""
    stable = _release()
    pre = _release(prerelease=True)

    assert evaluate_matcher(pre, Matcher.from_config({"is-prerelease": True}))
    assert not evaluate_matcher(stable, Matcher.from_config({"is-prerelease": True}))
    assert evaluate_matcher(stable, Matcher.from_config({"is-prerelease": False}))
    assert evaluate_matcher(_release(is_latest=True), Matcher.from_config({"is-latest": True}))


def test_all_conditions_on_a_node_must_hold():
    """Test a node is an AND of its conditions."""
    matcher = Matcher.from_config({"tag": "^v1", "is-prerelease": True})

    assert not evaluate_matcher(_release(), matcher)
    assert evaluate_matcher(_release(prerelease=True), matcher)


def test_match_any_and_match_all():
    """Test combinators with nested matchers."""
    matcher = Matcher.from_config({
        "match-any": [{"tag": "^v2"}, {"title": "1.2"}],
        "match-all": [{"tag-not": "beta"}, {"is-prerelease": False}],
    })

    assert evaluate_matcher(_release(), matcher)
    assert not evaluate_matcher(_release(tag="v1.2.0-beta"), matcher)
    assert not evaluate_matcher(_release(tag="v3.0.0", name="Three"), matcher)


def test_empty_combinators_are_vacuously_true():
    """Test empty match-any and match-all lists match everything."""
    assert evaluate_matcher(_release(), Matcher.from_config({"match-any": []}))
    assert evaluate_matcher(_release(), Matcher.from_config({"match-all": []}))


def test_empty_matcher_matches_everything():
    """Test a node without conditions."""
    matcher = Matcher.from_config({})

    assert matcher.is_empty
    assert evaluate_matcher(_release(), matcher)


def test_empty_combinator_is_not_an_empty_matcher():
    """Test declared combinators count as conditions."""
    assert not Matcher.from_config({"match-any": []}).is_empty


def test_null_flag_is_skipped():
    """Test a flag key without a value adds no leaf."""
    assert Matcher.from_config({"is-prerelease": None}).is_empty


def test_latest_match_list_is_match_all():
    """Test a latest-match list is an implicit match-all."""
    matcher = Matcher.from_latest_match([{"tag": "^v1"}, {"is-prerelease": False}])

    assert evaluate_matcher(_release(), matcher)
    assert not evaluate_matcher(_release(prerelease=True), matcher)


def test_invalid_regex_raises_config_error():
    """Test bad patterns fail at compile time with context."""
    with pytest.raises(ConfigError, match='Category "Broken"'):
        Matcher.from_config({"tag": "v(1"}, 'Category "Broken"')


def test_non_boolean_flag_raises_config_error():
    """Test flags must be booleans."""
    with pytest.raises(ConfigError, match="is-prerelease"):
        Matcher.from_config({"is-prerelease": "yes"})


def test_combinator_must_be_a_list():
    """Test match-any with a mapping is rejected."""
    with pytest.raises(ConfigError, match="match-any"):
        Matcher.from_config({"match-any": {"tag": "v1"}})


def test_non_mapping_node_raises_config_error():
    """Test nested nodes must be mappings."""
    with pytest.raises(ConfigError):
        Matcher.from_config({"match-all": ["v1"]})
