"""Inheritable per-category settings.

Every settable key (latest-match, cutoff-date, max-displayed,
inherit-parent-matchers) follows the same protocol down the category tree:

- key absent: inherit the parent's effective value (the configured default at
  the root);
- key set to null: reset to the configured default;
- key set to anything else, ``false`` included: use that value.
"""

import calendar
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Generic, Literal, Mapping, Optional, TypeVar, Union

from release_tree.core.errors import ConfigError
from release_tree.core.matcher import InheritMode, Matcher

T = TypeVar("T")

NEWEST = "newest"
DEFAULT_CUTOFF_DATE = "-1y"
DEFAULT_MAX_DISPLAYED = 100

CutoffDate = Union[datetime, Literal[False]]
LatestMatch = Union[Literal[False], Literal["newest"], Matcher]
MaxDisplayed = Union[int, Literal[False]]

RELATIVE_DATE_RE = re.compile(r"^-(\d+)([dwmy])$", re.IGNORECASE)


class SettingState(str, Enum):
    """How a key appears on a configuration node."""

    ABSENT = "absent"
    RESET = "reset"
    EXPLICIT = "explicit"


@dataclass(frozen=True)
class Setting(Generic[T]):
    """Tagged value for one settable key of a node."""

    state: SettingState = SettingState.ABSENT
    value: Optional[T] = None

    @classmethod
    def absent(cls) -> "Setting[T]":
        return cls(SettingState.ABSENT)

    @classmethod
    def reset(cls) -> "Setting[T]":
        return cls(SettingState.RESET)

    @classmethod
    def explicit(cls, value: T) -> "Setting[T]":
        return cls(SettingState.EXPLICIT, value)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], key: str, parse=None) -> "Setting":
        """Read ``key`` from a config mapping, parsing explicit values."""
        if key not in data:
            return cls.absent()
        raw = data[key]
        if raw is None:
            return cls.reset()
        return cls.explicit(parse(raw) if parse else raw)


def resolve_setting(setting: Setting[T], inherited: T, default: T) -> T:
    """Compute a node's effective value from its own setting."""
    if setting.state is SettingState.ABSENT:
        return inherited
    if setting.state is SettingState.RESET:
        return default
    return setting.value


def validate_max_displayed(value: Any, context: str) -> None:
    """Raise ConfigError unless value is false or a positive integer."""
    if value is False or value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{context} must be false or a positive integer, got: {value}")


def normalize_max_displayed(value: Optional[MaxDisplayed]) -> Optional[int]:
    """``False`` (unlimited) becomes None."""
    return None if value is False else value


def subtract_months(moment: datetime, months: int) -> datetime:
    """Go back whole months, clamping the day to the target month's length."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def parse_cutoff_date(value: Any, now: Optional[datetime] = None) -> CutoffDate:
    """Parse a cutoff-date setting.

    Args:
        value: ``False``, a date/datetime, an ISO date or datetime string, or a
            relative offset such as ``-30d``, ``-2w``, ``-6m``, ``-1y``.
        now: Reference point for relative offsets (the run start).

    Returns:
        An aware datetime, or ``False`` when filtering is disabled.

    Raises:
        ConfigError: If the value cannot be turned into a point in time.
    """
    if value is False:
        return False
    if now is None:
        now = datetime.now(timezone.utc)

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Invalid cutoff-date: {value!r}")

    text = value.strip()
    relative = RELATIVE_DATE_RE.match(text)
    if relative:
        amount = int(relative.group(1))
        unit = relative.group(2).lower()
        if unit == "d":
            return now - timedelta(days=amount)
        if unit == "w":
            return now - timedelta(weeks=amount)
        if unit == "m":
            return subtract_months(now, amount)
        return subtract_months(now, amount * 12)

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise ConfigError(f"Invalid cutoff-date: {value!r}") from e
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_latest_match(value: Any, context: str = "latest-match") -> LatestMatch:
    """Parse a latest-match setting into False, "newest" or a Matcher."""
    if value is False:
        return False
    if value is None or value == NEWEST:
        return NEWEST
    if isinstance(value, (list, Mapping)):
        return Matcher.from_latest_match(value, context)
    raise ConfigError(
        f'{context} must be false, "newest" or a list of matchers, got: {value!r}'
    )


def parse_inherit_mode(value: Any, context: str = "inherit-parent-matchers") -> InheritMode:
    """Validate an inherit-parent-matchers value."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("and", "or"):
        return value.lower()
    raise ConfigError(f'{context} must be true, false, "and" or "or", got: {value!r}')


@dataclass(frozen=True)
class ClassificationDefaults:
    """Configured defaults, used at the root and on explicit resets."""

    latest_match: LatestMatch = NEWEST
    cutoff_date: CutoffDate = field(
        default_factory=lambda: parse_cutoff_date(DEFAULT_CUTOFF_DATE)
    )
    max_displayed: MaxDisplayed = DEFAULT_MAX_DISPLAYED
    inherit_parent_matchers: InheritMode = False

    def __post_init__(self) -> None:
        validate_max_displayed(self.max_displayed, "defaults.max-displayed")

    @classmethod
    def from_config(
        cls, data: Optional[Mapping[str, Any]], now: Optional[datetime] = None
    ) -> "ClassificationDefaults":
        """Build defaults from the ``defaults:`` section.

        A missing or null key falls back to the built-in default.
        """
        data = data or {}
        latest = data.get("latest-match")
        cutoff = data.get("cutoff-date")
        max_displayed = data.get("max-displayed")
        inherit = data.get("inherit-parent-matchers")
        return cls(
            latest_match=parse_latest_match(latest, "defaults.latest-match"),
            cutoff_date=parse_cutoff_date(
                DEFAULT_CUTOFF_DATE if cutoff is None else cutoff, now
            ),
            max_displayed=DEFAULT_MAX_DISPLAYED if max_displayed is None else max_displayed,
            inherit_parent_matchers=(
                False if inherit is None
                else parse_inherit_mode(inherit, "defaults.inherit-parent-matchers")
            ),
        )
