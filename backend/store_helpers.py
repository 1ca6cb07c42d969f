"""
Store Helpers - timestamps and id generation shared by the repositories
"""

import time
from datetime import datetime, timezone
from typing import Iterable, Optional


# =============================================================================
# UTC ISO FORMATTING - USE THIS EVERYWHERE FOR DATETIME OUTPUT
# =============================================================================

def format_utc_iso(dt) -> Optional[str]:
    """
    Format datetime as ISO 8601 with explicit Z suffix for UTC.

    Without Z: "2025-12-28T23:52:36" - JS treats as LOCAL time (WRONG!)
    With Z:    "2025-12-28T23:52:36Z" - JS treats as UTC (CORRECT!)

    Args:
        dt: datetime object (assumed to be UTC) or None

    Returns:
        ISO string with Z suffix, or None if input is None
    """
    if dt is None:
        return None
    if hasattr(dt, 'isoformat'):
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
        iso = dt.isoformat(timespec='milliseconds')
        if not iso.endswith('Z'):
            iso += 'Z'
        return iso
    return str(dt)


def utc_now_iso() -> str:
    return format_utc_iso(datetime.now(timezone.utc))


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO timestamp (Z or offset) into an aware datetime."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def sort_newest_first(records: list, attr: str = 'timestamp') -> list:
    """Sort records by an ISO timestamp attribute, newest first.

    Unparseable timestamps sort last. Ties keep their stored order.
    """
    floor = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(records, key=lambda r: parse_iso(getattr(r, attr, None)) or floor, reverse=True)


# =============================================================================
# ID GENERATION
# =============================================================================

def unique_time_id(prefix: str, existing: Iterable[str]) -> str:
    """
    Millisecond-clock id (e.g. "RR-1735430000123").

    Bumps the counter until the id is free, so two records created within
    the same millisecond still get distinct ids.
    """
    taken = set(existing)
    stamp = int(time.time() * 1000)
    candidate = f"{prefix}{stamp}"
    while candidate in taken:
        stamp += 1
        candidate = f"{prefix}{stamp}"
    return candidate
