"""
Time helpers shared by the availability, reservation and matching code.

Times travel as strings: "HH:MM" inside the planner, "HH.MM" on planning
templates and in older records. Everything that compares times converts to
minutes since midnight first, so "9:5" and "09:05" are the same instant.
"""

import unicodedata
from datetime import date, timedelta
from typing import List, Union

WEEKDAYS = ("lunedi", "martedi", "mercoledi", "giovedi", "venerdi", "sabato", "domenica")

MATCH_DURATION_MINUTES = 90


def time_to_minutes(value: str) -> int:
    """
    Convert "HH:MM" or "HH.MM" to minutes since midnight.

    - "08.30" -> 510
    - "9:5" -> 545
    - "18" -> 1080 (missing minutes count as zero)
    - "" or None -> 0
    """
    if not value:
        return 0
    parts = str(value).strip().replace(".", ":").split(":")
    try:
        hours = int(parts[0])
        minutes = int(parts[1]) if len(parts) > 1 and parts[1] != "" else 0
    except ValueError:
        raise ValueError(f"Invalid time '{value}': expected HH:MM")
    if hours < 0 or not 0 <= minutes < 60:
        raise ValueError(f"Invalid time '{value}': expected HH:MM")
    return hours * 60 + minutes


def minutes_to_time(total: int) -> str:
    """Format minutes since midnight as zero-padded "HH:MM" (no wrap past 24:00)."""
    return f"{total // 60:02d}:{total % 60:02d}"


def normalize_time(value: str) -> str:
    """Canonical "HH:MM" form of any accepted time string."""
    return minutes_to_time(time_to_minutes(value))


def add_minutes(value: str, minutes: int) -> str:
    """Add minutes to a time; "22:30" + 90 -> "24:00" (same-day arithmetic)."""
    return minutes_to_time(time_to_minutes(value) + minutes)


def parse_date(value: Union[str, date]) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValueError(f"Invalid date '{value}': expected YYYY-MM-DD")


def weekday_name(value: Union[str, date]) -> str:
    """Weekday name for a calendar date (Monday -> "lunedi")."""
    return WEEKDAYS[parse_date(value).weekday()]


def normalize_weekday(name: str) -> str:
    """
    Lower-case, trim and strip accents from a weekday name.

    Raises ValueError for anything outside WEEKDAYS.
    """
    decomposed = unicodedata.normalize("NFKD", str(name).strip().lower())
    plain = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    if plain not in WEEKDAYS:
        raise ValueError(f"Unknown weekday '{name}'")
    return plain


def week_dates(start: Union[str, date], days: int = 7) -> List[date]:
    first = parse_date(start)
    return [first + timedelta(days=offset) for offset in range(days)]


def ranges_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open overlap test on minute ranges: [a) and [b) share at least one minute."""
    return start_a < end_b and end_a > start_b
