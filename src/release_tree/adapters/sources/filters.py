"""Global include/exclude filtering of releases."""

from typing import Optional

from release_tree.core import Matcher, Release, matches_filter


def apply_filters(
    releases: list[Release],
    include: Optional[Matcher] = None,
    exclude: Optional[Matcher] = None,
) -> list[Release]:
    """
    Keep releases matching ``include`` and not matching ``exclude``.

    Args:
        releases: Releases to filter
        include: Filter every release must match (None matches all)
        exclude: Filter that removes matching releases (None or an empty
            filter removes none)

    Returns:
        Filtered releases, original order preserved
    """
    if exclude is not None and exclude.is_empty:
        exclude = None

    return [
        r for r in releases
        if matches_filter(r, include) and not (exclude is not None and matches_filter(r, exclude))
    ]
