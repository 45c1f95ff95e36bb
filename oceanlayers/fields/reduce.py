"""Selection helpers shared by the field processors."""

from datetime import datetime
from typing import Callable, Optional, Tuple, TypeVar

from oceanlayers.records import coordinate_key

T = TypeVar("T")


def keep_most_recent(items: list, max_points: Optional[int]) -> list:
    """Last ``max_points`` items of a time-ascending list (all when None)."""
    if max_points is None:
        return items
    return items[max(0, len(items) - max_points):]


def latest_per_position(
    items: list,
    position: Callable[[T], Tuple[float, float]],
    time_of: Callable[[T], datetime],
) -> list:
    """
    Reduce to one item per 4-decimal position, keeping the most recent.

    Ties keep the earlier item. Output follows first-seen position order.
    """
    latest = {}
    for item in items:
        key = coordinate_key(*position(item))
        current = latest.get(key)
        if current is None or time_of(item) > time_of(current):
            latest[key] = item
    return list(latest.values())
