"""Tests for inheritable settings and their parsers."""

from datetime import date, datetime, timedelta, timezone

import pytest

from release_tree.core import ClassificationDefaults, ConfigError, Matcher, Setting, resolve_setting
from release_tree.core.settings import (
    NEWEST,
    SettingState,
    normalize_max_displayed,
    parse_cutoff_date,
    parse_inherit_mode,
    parse_latest_match,
    subtract_months,
    validate_max_displayed,
)

NOW = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)


def test_setting_from_mapping_states():
    """Test absent, null and explicit keys."""
    data = {"reset": None, "off": False, "value": 5}

    assert Setting.from_mapping(data, "missing").state is SettingState.ABSENT
    assert Setting.from_mapping(data, "reset").state is SettingState.RESET
    assert Setting.from_mapping(data, "off") == Setting.explicit(False)
    assert Setting.from_mapping(data, "value", lambda v: v * 2) == Setting.explicit(10)


def test_resolve_setting():
    """Test absent inherits, reset uses default, explicit wins."""
    assert resolve_setting(Setting.absent(), 40, 100) == 40
    assert resolve_setting(Setting.reset(), 40, 100) == 100
    assert resolve_setting(Setting.explicit(7), 40, 100) == 7
    assert resolve_setting(Setting.explicit(False), 40, 100) is False


def test_validate_max_displayed_accepts_false_and_positive():
    """Test valid max-displayed values."""
    validate_max_displayed(False, "x")
    validate_max_displayed(1, "x")
    validate_max_displayed(250, "x")


@pytest.mark.parametrize("value", [0, -3, True, "10", 2.5])
def test_validate_max_displayed_rejects(value):
    """Test invalid max-displayed values name the context."""
    with pytest.raises(ConfigError, match='Category "Docs" max-displayed'):
        validate_max_displayed(value, 'Category "Docs" max-displayed')


def test_normalize_max_displayed():
    """Test false becomes unlimited."""
    assert normalize_max_displayed(False) is None
    assert normalize_max_displayed(25) == 25


def test_parse_cutoff_date_relative():
    """Test relative offsets against a fixed now."""
    assert parse_cutoff_date("-30d", NOW) == NOW - timedelta(days=30)
    assert parse_cutoff_date("-2w", NOW) == NOW - timedelta(weeks=2)
    assert parse_cutoff_date("-1y", NOW) == NOW.replace(year=2023)


def test_parse_cutoff_date_months_clamp_day():
    """Test month arithmetic clamps to the end of shorter months."""
    assert parse_cutoff_date("-1m", NOW) == datetime(2024, 2, 29, 12, 0, tzinfo=timezone.utc)
    assert subtract_months(NOW, 13) == datetime(2023, 2, 28, 12, 0, tzinfo=timezone.utc)


def test_parse_cutoff_date_absolute():
    """Test ISO strings and YAML dates."""
    assert parse_cutoff_date("2024-01-15") == datetime(2024, 1, 15, tzinfo=timezone.utc)
    assert parse_cutoff_date("2024-01-15T10:00:00Z") == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)
    assert parse_cutoff_date(date(2023, 6, 1)) == datetime(2023, 6, 1, tzinfo=timezone.utc)


def test_parse_cutoff_date_false_disables():
    """Test false disables cutoff filtering."""
    assert parse_cutoff_date(False) is False


@pytest.mark.parametrize("value", ["yesterday", "-5x", "", 42])
def test_parse_cutoff_date_invalid(value):
    """Test unparseable cutoff dates raise."""
    with pytest.raises(ConfigError, match="Invalid cutoff-date"):
        parse_cutoff_date(value, NOW)


def test_parse_latest_match():
    """Test latest-match forms."""
    assert parse_latest_match(False) is False
    assert parse_latest_match("newest") == NEWEST
    assert isinstance(parse_latest_match([{"tag": "^v"}]), Matcher)

    with pytest.raises(ConfigError):
        parse_latest_match("oldest")


def test_parse_inherit_mode():
    """Test inherit-parent-matchers forms."""
    assert parse_inherit_mode(True) is True
    assert parse_inherit_mode("OR") == "or"

    with pytest.raises(ConfigError):
        parse_inherit_mode("xor")


def test_defaults_from_config_builtin_values():
    """Test missing and null keys fall back to built-in defaults."""
    defaults = ClassificationDefaults.from_config({"max-displayed": None}, NOW)

    assert defaults.latest_match == NEWEST
    assert defaults.cutoff_date == NOW.replace(year=2023)
    assert defaults.max_displayed == 100
    assert defaults.inherit_parent_matchers is False


def test_defaults_from_config_explicit_values():
    """Test configured defaults."""
    defaults = ClassificationDefaults.from_config({
        "latest-match": False,
        "cutoff-date": False,
        "max-displayed": 20,
        "inherit-parent-matchers": "or",
    }, NOW)

    assert defaults.latest_match is False
    assert defaults.cutoff_date is False
    assert defaults.max_displayed == 20
    assert defaults.inherit_parent_matchers == "or"


def test_defaults_reject_invalid_max_displayed():
    """Test defaults validate max-displayed."""
    with pytest.raises(ConfigError, match="defaults.max-displayed"):
        ClassificationDefaults.from_config({"max-displayed": 0}, NOW)
