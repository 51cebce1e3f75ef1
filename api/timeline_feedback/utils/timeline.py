"""Timeline position helpers."""

import math
from typing import Optional, Sequence


def is_valid_position(value: object) -> bool:
    """Return True for a finite, non-negative timeline position."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def is_valid_radius(value: object) -> bool:
    """Return True for a finite, strictly positive window radius."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def is_valid_identifier(value: object) -> bool:
    """Return True for a non-empty string id."""
    return isinstance(value, str) and len(value) > 0


def clamp(n: float, low: float, high: float) -> float:
    return max(low, min(high, n))


def bucket_start(position: float, bucket_seconds: float) -> float:
    """Start of the fixed-width bucket containing ``position``."""
    return math.floor(position / bucket_seconds) * bucket_seconds


def slide_index_at(
    position: float,
    change_times: Sequence[float],
    max_index: Optional[int] = None,
) -> int:
    """Index of the slide on screen at ``position``.

    ``change_times`` holds the ascending timeline positions at which each
    slide starts. Positions before the first change map to slide 0.

    Example:
        >>> slide_index_at(15, [0, 12, 24, 38])
        1
        >>> slide_index_at(50, [0, 12, 24, 38], max_index=2)
        2
    """
    index = 0
    for i, change_time in enumerate(change_times):
        if change_time <= position:
            index = i
        else:
            break

    if max_index is not None:
        return int(clamp(index, 0, max_index))
    return index
