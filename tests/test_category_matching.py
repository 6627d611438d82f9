"""Tests for category and filter matching."""

from datetime import datetime, timezone

from release_tree.core import Matcher, Release, matches_category, matches_filter


def _release(tag: str = "v1.0.0", prerelease: bool = False) -> Release:
    return Release(
        id=tag,
        tag=tag,
        url=f"https://github.com/owner/repo/releases/tag/{tag}",
        published_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        prerelease=prerelease,
    )


def test_category_without_matchers_matches_nothing():
    """Test containers match no release on their own."""
    assert not matches_category(_release(), None)
    assert not matches_category(_release(), Matcher())


def test_own_matcher_without_inheritance():
    """Test parent result is ignored when inheritance is off."""
    matcher = Matcher.from_config({"tag": "^v1"})

    assert matches_category(_release(), matcher, parent_match=False, inherit_mode=False)
    assert not matches_category(_release("v2.0.0"), matcher, parent_match=True, inherit_mode=False)


def test_and_inheritance():
    """Test true and "and" require the parent to match."""
    matcher = Matcher.from_config({"is-prerelease": False})

    for mode in (True, "and"):
        assert matches_category(_release(), matcher, parent_match=True, inherit_mode=mode)
        assert not matches_category(_release(), matcher, parent_match=False, inherit_mode=mode)


def test_or_inheritance():
    """Test "or" accepts either result."""
    matcher = Matcher.from_config({"is-prerelease": True})

    assert matches_category(_release(), matcher, parent_match=True, inherit_mode="or")
    assert not matches_category(_release(), matcher, parent_match=False, inherit_mode="or")
    assert matches_category(_release(prerelease=True), matcher, parent_match=False, inherit_mode="or")


def test_inheriting_container_passes_parent_result_through():
    """Test a matcher-less child with inheritance mirrors its parent."""
    assert matches_category(_release(), None, parent_match=True, inherit_mode=True)
    assert not matches_category(_release(), None, parent_match=False, inherit_mode=True)


def test_inheritance_at_root_uses_own_matcher():
    """Test no parent result means plain matching."""
    matcher = Matcher.from_config({"tag": "^v1"})

    assert matches_category(_release(), matcher, parent_match=None, inherit_mode=True)
    assert not matches_category(_release(), None, parent_match=None, inherit_mode=True)


def test_empty_match_any_category_matches_everything():
    """Test a declared empty match-any is vacuously true."""
    matcher = Matcher.from_config({"match-any": []})

    assert matches_category(_release(), matcher)


def test_filter_without_matchers_matches_everything():
    """Test filters differ from categories for empty matchers."""
    assert matches_filter(_release(), None)
    assert matches_filter(_release(), Matcher())


def test_filter_with_matcher():
    """Test filters evaluate their conditions."""
    matcher = Matcher.from_config({"is-prerelease": True})

    assert matches_filter(_release(prerelease=True), matcher)
    assert not matches_filter(_release(), matcher)
