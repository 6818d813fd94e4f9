from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return the current moment as a timezone-aware datetime in UTC."""
    return datetime.now(tz=timezone.utc)


def parse_timestamp(s: str) -> datetime:
    """Parse a timestamp string from Supabase responses.

    Handles formats:
    - "2026-02-24T14:30:00+00:00"   (offset-aware, as stored by timestamptz)
    - "2026-02-24T14:30:00Z"        (Zulu suffix, as sent by JS clients)
    - "2026-02-24T14:30:00"         (naive, assumed UTC)

    Always returns a timezone-aware datetime in UTC.
    Raises ValueError on empty or unparseable input.
    """
    if not s or not s.strip():
        raise ValueError("Empty timestamp string")

    s = s.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        raise ValueError(f"Cannot parse timestamp string: {s!r}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
