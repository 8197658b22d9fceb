"""
Availability Resolver - may this player be scheduled on (date, time)?

Rules, first match wins:
1. Empty profile (no recurring, no extra entries): available.
2. Extra entries for the exact date exist: available iff one of them covers
   the time. Recurring entries are not consulted.
3. Recurring entries for the date's weekday exist: available iff one of them
   covers the time.
4. Nothing set for this day: available, even if other days have rules.

"Covers" is the half-open test from <= time < to, on minutes.
"""

import logging
from datetime import date
from typing import List, Sequence

from clubplanner.models.club import Availability, ExtraSlot, MatchType, Player, RecurringSlot
from clubplanner.services.errors import PlannerValidationError
from clubplanner.utils.time_utils import time_to_minutes, weekday_name

logger = logging.getLogger(__name__)


def is_available(player: Player, day: date, time: str) -> bool:
    profile = player.availability
    if profile.is_empty:
        return True

    minute = time_to_minutes(time)

    todays_extras = [e for e in profile.extra if e.date == day]
    if todays_extras:
        return any(e.covers(minute) for e in todays_extras)

    dow = weekday_name(day)
    todays_recurring = [r for r in profile.recurring if r.day == dow]
    if todays_recurring:
        return any(r.covers(minute) for r in todays_recurring)

    return True


def filter_available_players(
    players: Sequence[Player], day: date, time: str, match_type: MatchType
) -> List[Player]:
    """Players free at (day, time) who also play the requested match type."""
    eligible = [p for p in players if p.plays(match_type) and is_available(p, day, time)]
    logger.debug("Slot %s %s -> %d/%d players eligible", day.isoformat(), time, len(eligible), len(players))
    return eligible


# ============================================================================
# Profile edits
# ============================================================================


def _check_range(start: str, end: str) -> None:
    try:
        start_minute, end_minute = time_to_minutes(start), time_to_minutes(end)
    except ValueError as e:
        raise PlannerValidationError(str(e))
    if start_minute >= end_minute:
        raise PlannerValidationError(f"Availability end {end} must be after start {start}")


def add_recurring(profile: Availability, day: str, start: str, end: str) -> Availability:
    _check_range(start, end)
    try:
        slot = RecurringSlot(day=day, start=start, end=end)
    except ValueError as e:
        raise PlannerValidationError(str(e))
    return profile.model_copy(update={"recurring": [*profile.recurring, slot]})


def add_extra(profile: Availability, day: date, start: str, end: str) -> Availability:
    _check_range(start, end)
    try:
        slot = ExtraSlot(date=day, start=start, end=end)
    except ValueError as e:
        raise PlannerValidationError(str(e))
    return profile.model_copy(update={"extra": [*profile.extra, slot]})


def remove_recurring(profile: Availability, index: int) -> Availability:
    if not 0 <= index < len(profile.recurring):
        raise PlannerValidationError(f"No recurring availability at index {index}")
    remaining = [r for i, r in enumerate(profile.recurring) if i != index]
    return profile.model_copy(update={"recurring": remaining})


def remove_extra(profile: Availability, index: int) -> Availability:
    if not 0 <= index < len(profile.extra):
        raise PlannerValidationError(f"No extra availability at index {index}")
    remaining = [e for i, e in enumerate(profile.extra) if i != index]
    return profile.model_copy(update={"extra": remaining})
