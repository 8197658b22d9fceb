"""
Reservation Store - per-court timeline of non-overlapping bookings.

Every reservation lives in exactly one scope:

- DateScope(date): reservations carrying that calendar date.
- WeekdayScope(day): older reservations with no date, repeating every week
  on that weekday.

Within one scope no two reservations on a court overlap ([from, to) ranges).
Mutations keep that true by trimming whatever the new range touches:

    existing  09:00 ------------------------ 12:00
    new                 10:00 --- 10:30
    result    09:00 -- 10:00 [new] 10:30 --- 12:00

Free/busy queries for a date look at two passes, the date's own reservations
first and then the weekday's recurring ones, plus confirmed matches on that
court and date.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from clubplanner.models.club import Court, Reservation, ReservationType, ScheduledMatch
from clubplanner.services.errors import PlannerValidationError
from clubplanner.utils.time_utils import (
    MATCH_DURATION_MINUTES,
    minutes_to_time,
    normalize_weekday,
    ranges_overlap,
    time_to_minutes,
    weekday_name,
)

logger = logging.getLogger(__name__)


class ReservationRangeError(PlannerValidationError):
    """Reservation range is malformed (from >= to or unparseable time)"""

    pass


@dataclass(frozen=True)
class DateScope:
    date: date

    @property
    def weekday(self) -> str:
        return weekday_name(self.date)

    def contains(self, reservation: Reservation) -> bool:
        return reservation.date == self.date

    def place(self, reservation: Reservation) -> Reservation:
        return reservation.model_copy(update={"date": self.date, "day": self.weekday})

    def __str__(self) -> str:
        return self.date.isoformat()


@dataclass(frozen=True)
class WeekdayScope:
    day: str

    def __post_init__(self):
        try:
            object.__setattr__(self, "day", normalize_weekday(self.day))
        except ValueError as e:
            raise PlannerValidationError(str(e))

    def contains(self, reservation: Reservation) -> bool:
        return reservation.date is None and reservation.day == self.day

    def place(self, reservation: Reservation) -> Reservation:
        return reservation.model_copy(update={"date": None, "day": self.day})

    def __str__(self) -> str:
        return self.day


Scope = Union[DateScope, WeekdayScope]


def scope_for(day: Optional[date] = None, weekday: Optional[str] = None) -> Scope:
    """DateScope when a date is given, otherwise WeekdayScope."""
    if day is not None:
        return DateScope(day)
    if weekday:
        return WeekdayScope(weekday)
    raise PlannerValidationError("Either a date or a weekday is required")


def overlap_passes(scope: Scope) -> List[Scope]:
    """Scopes a free/busy query consults, in order."""
    if isinstance(scope, DateScope):
        return [scope, WeekdayScope(scope.weekday)]
    return [scope]


def validate_range(start: str, end: str) -> Tuple[int, int]:
    try:
        start_minute, end_minute = time_to_minutes(start), time_to_minutes(end)
    except ValueError as e:
        raise ReservationRangeError(str(e))
    if start_minute >= end_minute:
        raise ReservationRangeError(f"End time {end} must be after start time {start}")
    return start_minute, end_minute


def _overlaps(reservation: Reservation, start_minute: int, end_minute: int) -> bool:
    return ranges_overlap(reservation.start_minutes, reservation.end_minutes, start_minute, end_minute)


# ============================================================================
# Queries
# ============================================================================


def find_conflicts(
    reservations: Iterable[Reservation], scope: Scope, start: str, end: str
) -> List[Reservation]:
    start_minute, end_minute = time_to_minutes(start), time_to_minutes(end)
    reservations = list(reservations)
    conflicts: List[Reservation] = []
    for current in overlap_passes(scope):
        conflicts.extend(
            r for r in reservations if current.contains(r) and _overlaps(r, start_minute, end_minute)
        )
    return conflicts


def match_blocks_range(match: ScheduledMatch, court_id: str, day: date, start: str, end: str) -> bool:
    """Confirmed matches occupy their court for the standard match length."""
    if not match.confirmed or match.court != court_id or match.date != day:
        return False
    match_start = time_to_minutes(match.time)
    return ranges_overlap(
        match_start, match_start + MATCH_DURATION_MINUTES, time_to_minutes(start), time_to_minutes(end)
    )


def is_court_free(
    court: Court,
    scope: Scope,
    start: str,
    end: str,
    scheduled: Sequence[ScheduledMatch] = (),
) -> bool:
    if not court.available:
        return False
    if find_conflicts(court.reservations, scope, start, end):
        return False
    if isinstance(scope, DateScope):
        return not any(match_blocks_range(m, court.id, scope.date, start, end) for m in scheduled)
    return True


def reservations_in_scope(reservations: Iterable[Reservation], scope: Scope) -> List[Reservation]:
    """Everything occupying the court in this scope, ordered by start time."""
    reservations = list(reservations)
    found = [r for current in overlap_passes(scope) for r in reservations if current.contains(r)]
    return sorted(found, key=lambda r: r.start_minutes)


# ============================================================================
# Mutations (pure: return the new list, never modify the input)
# ============================================================================


def _cut_range(
    reservations: Iterable[Reservation], scope: Scope, start_minute: int, end_minute: int
) -> Tuple[List[Reservation], int]:
    """
    Remove [start, end) from every reservation of this scope.

    Residual fragments keep the original type, label and occupants and take
    the original's place in the list. Returns (new list, touched count).
    """
    kept: List[Reservation] = []
    touched = 0
    for r in reservations:
        if not scope.contains(r) or not _overlaps(r, start_minute, end_minute):
            kept.append(r)
            continue
        touched += 1
        if r.start_minutes < start_minute:
            kept.append(r.model_copy(update={"end": minutes_to_time(start_minute)}))
        if r.end_minutes > end_minute:
            kept.append(r.model_copy(update={"start": minutes_to_time(end_minute)}))
    return kept, touched


def upsert_reservation(
    reservations: Sequence[Reservation], scope: Scope, reservation: Reservation
) -> List[Reservation]:
    """Insert a reservation, overwriting whatever part of the scope it covers."""
    start_minute, end_minute = validate_range(reservation.start, reservation.end)
    if reservation.type == ReservationType.MATCH and not reservation.has_occupants:
        raise PlannerValidationError("A match reservation needs at least one player name")

    kept, touched = _cut_range(reservations, scope, start_minute, end_minute)
    kept.append(scope.place(reservation))
    logger.info(
        "Reservation %s %s-%s (%s) stored in scope %s, %d overlapping trimmed",
        reservation.label,
        reservation.start,
        reservation.end,
        reservation.type.value,
        scope,
        touched,
    )
    return kept


def delete_reservation_range(
    reservations: Sequence[Reservation], scope: Scope, start: str, end: str
) -> List[Reservation]:
    """Clear [start, end) in this scope, keeping the fragments on either side."""
    start_minute, end_minute = validate_range(start, end)
    kept, touched = _cut_range(reservations, scope, start_minute, end_minute)
    logger.info("Cleared %s-%s in scope %s, %d reservations touched", start, end, scope, touched)
    return kept


def delete_all_for_scope(reservations: Sequence[Reservation], scope: Scope) -> List[Reservation]:
    kept = [r for r in reservations if not scope.contains(r)]
    logger.info("Cleared scope %s, %d reservations removed", scope, len(reservations) - len(kept))
    return kept
