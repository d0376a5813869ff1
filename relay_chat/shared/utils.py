"""Shared utility functions."""
from datetime import datetime, timezone
from typing import Any, Optional

FALLBACK_INITIAL = "?"


def is_blank(text: Optional[str]) -> bool:
    """Return True if text is missing or holds only whitespace."""
    return not isinstance(text, str) or not text.strip()


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def get_initials(name: Any) -> str:
    """Return one or two upper-case initials for an avatar placeholder."""
    if is_blank(name):
        return FALLBACK_INITIAL
    parts = name.split()
    if len(parts) == 1:
        return parts[0][0].upper()
    return (parts[0][0] + parts[1][0]).upper()


def format_time(timestamp: Any) -> str:
    """Render an ISO-8601 timestamp as local HH:MM, or an empty string."""
    if not isinstance(timestamp, str):
        return ""
    try:
        moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.strftime("%H:%M")
