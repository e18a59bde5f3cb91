"""
Display helpers for the Countify CLI.

Ordering and filtering belong to the caller; the registry returns sessions
in storage order.
"""

from datetime import datetime
from typing import Iterable, List

from countify.core.models import CountSession


def sort_recent(sessions: Iterable[CountSession]) -> List[CountSession]:
    """Most recently modified first."""
    return sorted(sessions, key=lambda session: session.last_modified, reverse=True)


def filter_sessions(sessions: Iterable[CountSession], search: str) -> List[CountSession]:
    """Case-insensitive substring match on the session name."""
    if not search:
        return list(sessions)
    needle = search.lower()
    return [session for session in sessions if needle in session.name.lower()]


def time_ago(moment: datetime, now: datetime) -> str:
    """Relative description of ``moment`` as seen from ``now``."""
    delta = now - moment
    if delta.total_seconds() <= 0:
        return "Just now"

    days = delta.days
    hours = delta.seconds // 3600
    minutes = (delta.seconds % 3600) // 60

    if days > 0:
        return "Yesterday" if days == 1 else f"{days} days ago"
    if hours > 0:
        return f"{hours} {'hour' if hours == 1 else 'hours'} ago"
    if minutes > 0:
        return f"{minutes} {'min' if minutes == 1 else 'mins'} ago"
    return "Just now"


def feature_tags(session: CountSession) -> List[str]:
    """Short labels for the non-default settings of a session."""
    tags = []
    if session.step_size > 1:
        tags.append(f"step {session.step_size}")
    if session.upper_limit is not None or session.lower_limit is not None:
        tags.append(f"limits {session.limits_description()}")
    if session.allow_negatives:
        tags.append("negatives")
    if session.haptic_enabled:
        tags.append("haptics")
    return tags


def format_row(session: CountSession, now: datetime) -> str:
    star = "*" if session.favorite else " "
    tags = ", ".join(feature_tags(session))
    line = (
        f"{star} {str(session.id)[:8]}  {session.count:>8}  {session.name}"
        f"  ({time_ago(session.last_modified, now)})"
    )
    return f"{line}  [{tags}]" if tags else line
