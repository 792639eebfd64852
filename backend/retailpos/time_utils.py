from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

# Every stored timestamp is a naive datetime in UTC. Timezone-aware input is
# converted at the boundary and rendered back with a trailing "Z".


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2026-05-01T09:30", "2026-05-01T09:30:00Z" and "2026-05-01T11:30+02:00"
    all parse to 09:30 UTC. Blank input is None; garbage raises ValueError.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Strict YYYY-MM-DD; "2026-5-1" is rejected rather than guessed at."""
    text = (value or "").strip()
    if not text:
        return None
    if len(text) != 10:
        raise ValueError(f"Invalid date: {value!r}")
    return date.fromisoformat(text)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open UTC range [midnight, next midnight) covering `day`."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 with a "Z" suffix."""
    if dt is None:
        return None
    return _as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"
