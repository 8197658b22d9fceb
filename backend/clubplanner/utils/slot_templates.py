"""
Canonical parser for planning slot templates.

A template is the ordered list of slot start times shown for one court on
one date. Stored templates are either a list (["08.30", "09.30"]) or, in
older documents, a comma-separated string ("08.30,09.30").
"""
from datetime import date
from typing import Dict, Iterable, List, Optional, Union

from clubplanner.utils.time_utils import normalize_time, time_to_minutes

DEFAULT_SLOT_STARTS = [
    "08.30", "09.30", "10.30", "11.30", "12.30", "13.30", "14.30", "15.30",
    "16.30", "17.30", "18.30", "19.30", "20.30", "21.30", "22.30",
]

Templates = Dict[str, Dict[str, Union[str, List[str]]]]


def parse_slot_template(template: Optional[Union[str, List[str]]]) -> List[str]:
    """
    Normalize a stored template to a list of "HH:MM" strings.

    - None or "" -> []
    - "08.30, 09.30" -> ["08:30", "09:30"]
    - ["08.30", "", "9.5"] -> ["08:30", "09:05"]
    """
    if template is None:
        return []
    if isinstance(template, str):
        raw = template.split(",")
    elif isinstance(template, list):
        raw = [str(x) for x in template]
    else:
        return []
    return [normalize_time(x) for x in raw if x.strip()]


def default_slots() -> List[str]:
    return parse_slot_template(DEFAULT_SLOT_STARTS)


def resolve_time_slots(templates: Optional[Templates], day: date, court_ids: Iterable[str]) -> List[str]:
    """
    Slot starts for a date: union of the courts' templates, sorted by time.

    Falls back to the default 08:30..22:30 list when no court has a template
    for the date.
    """
    day_templates = (templates or {}).get(day.isoformat()) or {}
    starts = set()
    for court_id in court_ids:
        starts.update(parse_slot_template(day_templates.get(court_id)))
    if not starts:
        return default_slots()
    return sorted(starts, key=time_to_minutes)
