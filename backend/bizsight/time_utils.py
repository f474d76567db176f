from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


# All stored timestamps are naive UTC.


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read a sale date such as "2026-03-01", "2026-03-01T14:30" or
    "2026-03-01T14:30:00+02:00" as naive UTC.

    Blank input gives None. Offsets are folded into UTC; a value without an
    offset is taken to already be UTC. Anything else raises ValueError.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Render as "YYYY-MM-DDTHH:MM:SSZ"; naive values count as UTC."""
    if dt is None:
        return None
    aware = dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return aware.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
