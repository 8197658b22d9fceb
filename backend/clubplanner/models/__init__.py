from clubplanner.models.club import (
    Availability,
    ClubSettings,
    Court,
    ExtraSlot,
    MatchRecord,
    MatchType,
    Player,
    RecurringSlot,
    Reservation,
    ReservationType,
    ScheduledMatch,
    Season,
    SkillLevel,
)
from clubplanner.models.club_document import ClubDocument

__all__ = [
    "Availability",
    "ClubDocument",
    "ClubSettings",
    "Court",
    "ExtraSlot",
    "MatchRecord",
    "MatchType",
    "Player",
    "RecurringSlot",
    "Reservation",
    "ReservationType",
    "ScheduledMatch",
    "Season",
    "SkillLevel",
]
