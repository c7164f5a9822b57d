# timetrack/timecalc.py
"""Clock-time and hour arithmetic for time entries.

Everything here is pure. Bad input gives ``None`` (or 0.0 for coercion),
never an exception; callers decide whether that blocks a mutation.
"""
import math
import re
import sys
from datetime import date, datetime, timezone
from typing import Any, Optional

MINUTES_PER_DAY = 24 * 60

_CLOCK_RE = re.compile(r"[0-9]{2}:[0-9]{2}")
_ISO_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_clock_time(value: Any) -> Optional[int]:
    """Minutes since midnight for a strict ``HH:MM`` string, else None."""
    if not isinstance(value, str) or not _CLOCK_RE.fullmatch(value):
        return None
    hh, mm = (int(part) for part in value.split(":"))
    if hh > 23 or mm > 59:
        return None
    return hh * 60 + mm


def duration_hours(time_in: Any, time_out: Any) -> Optional[float]:
    """Hours between two clock times.

    A ``time_out`` earlier than ``time_in`` is an overnight shift and wraps
    once, so the result is always in ``[0, 24)``.
    """
    start = parse_clock_time(time_in)
    end = parse_clock_time(time_out)
    if start is None or end is None:
        return None
    diff = end - start
    if diff < 0:
        diff += MINUTES_PER_DAY
    return diff / 60


def round_hours(value: float) -> float:
    """Round to 2 decimals, halves away from zero (7.005 -> 7.01)."""
    if not math.isfinite(value):
        return value
    nudged = value + math.copysign(sys.float_info.epsilon, value)
    result = math.floor(abs(nudged) * 100 + 0.5) / 100
    return -result if nudged < 0 and result else result


def coerce_hours(value: Any) -> float:
    """Read a stored hour value as a number; anything non-numeric is 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip()) if value.strip() else 0.0
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def entry_total(time_in: Any, time_out: Any, break_hours: Any = 0) -> Optional[float]:
    hours = duration_hours(time_in, time_out)
    if hours is None:
        return None
    # breaks longer than the shift clamp to zero
    return max(0.0, round_hours(hours - coerce_hours(break_hours)))


def is_iso_date(value: Any) -> bool:
    if not isinstance(value, str) or not _ISO_DATE_RE.fullmatch(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def in_range(date_str: Any, start: Any, end: Any) -> bool:
    """Inclusive ISO-date range check (plain string comparison)."""
    day, lo, hi = ("" if v is None else str(v) for v in (date_str, start, end))
    return lo <= day <= hi


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_date(value: Optional[str]) -> str:
    """YYYY-MM-DD -> MM/DD/YYYY for display; passes through anything else."""
    if not value:
        return ""
    if not isinstance(value, str):
        return str(value)
    parts = value.split("-")
    if len(parts) != 3:
        return value
    year, month, day = parts
    return f"{month}/{day}/{year}"


def format_hours(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return ""
        return f"{round_hours(float(value)):.2f}"
    return f"{round_hours(coerce_hours(value)):.2f}"
