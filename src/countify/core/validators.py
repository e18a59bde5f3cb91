"""
Normalization utilities for Countify.

Every session passes through ``normalize_bounds`` whenever it is built or
saved, so out-of-range input is clamped rather than rejected.
"""

from typing import Optional, Tuple


def normalize_step_size(step_size: int) -> int:
    """Clamp step size to at least 1."""
    return max(1, step_size)


def normalize_limits(
    upper_limit: Optional[int],
    lower_limit: Optional[int],
    step_size: int,
) -> Tuple[Optional[int], Optional[int]]:
    """
    Make sure a pair of limits leaves room for at least one step.

    Both adjustments are computed from the original values, not chained:
    the upper limit is raised against the original lower limit and the
    lower limit is lowered against the original upper limit.

    Args:
        upper_limit: Inclusive ceiling, or None for no ceiling
        lower_limit: Inclusive floor, or None for no floor
        step_size: Already-normalized step size

    Returns:
        Tuple of (upper_limit, lower_limit)
    """
    if upper_limit is None or lower_limit is None:
        return upper_limit, lower_limit

    adjusted_upper = max(upper_limit, lower_limit + step_size)
    adjusted_lower = min(lower_limit, upper_limit - step_size)
    return adjusted_upper, adjusted_lower


def clamp_count(
    count: int,
    upper_limit: Optional[int],
    lower_limit: Optional[int],
) -> int:
    """Clamp count into [lower_limit, upper_limit], lower check first."""
    if lower_limit is not None and count < lower_limit:
        count = lower_limit
    if upper_limit is not None and count > upper_limit:
        count = upper_limit
    return count


def normalize_bounds(
    count: int,
    step_size: int,
    upper_limit: Optional[int],
    lower_limit: Optional[int],
) -> Tuple[int, int, Optional[int], Optional[int]]:
    """
    Normalize the numeric fields of a session in one pass.

    Returns:
        Tuple of (count, step_size, upper_limit, lower_limit)
    """
    step_size = normalize_step_size(step_size)
    upper_limit, lower_limit = normalize_limits(upper_limit, lower_limit, step_size)
    count = clamp_count(count, upper_limit, lower_limit)
    return count, step_size, upper_limit, lower_limit


def validate_session_name(name: str) -> None:
    """Validate session name."""
    if not name or not name.strip():
        raise ValueError("Session name cannot be empty")
