"""
Club records stored inside the key-value documents.

Field names are camelCase in the store (playsSingles, matchesPerWeek, ...)
and time ranges use "from"/"to". Unknown fields are kept so a record read
and written back by the planner loses nothing another client stored.
"""

import datetime as dt
import logging
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from clubplanner.utils.time_utils import normalize_time, normalize_weekday, time_to_minutes, weekday_name

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid4())


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    COMPETITIVE = "competitive"


LEVEL_VALUES: Dict[SkillLevel, int] = {
    SkillLevel.BEGINNER: 1,
    SkillLevel.INTERMEDIATE: 2,
    SkillLevel.ADVANCED: 3,
    SkillLevel.COMPETITIVE: 4,
}

# Older records carry Italian level names ("medio" predates "intermedio")
LEGACY_LEVELS: Dict[str, SkillLevel] = {
    "principiante": SkillLevel.BEGINNER,
    "medio": SkillLevel.INTERMEDIATE,
    "intermedio": SkillLevel.INTERMEDIATE,
    "avanzato": SkillLevel.ADVANCED,
    "agonista": SkillLevel.COMPETITIVE,
}


def parse_level(value: Any) -> Optional[SkillLevel]:
    """SkillLevel for an English or legacy Italian name, None when unrecognized."""
    if value is None or value == "":
        return SkillLevel.INTERMEDIATE
    if isinstance(value, SkillLevel):
        return value
    if not isinstance(value, str):
        return None
    name = value.strip().lower()
    if name in LEGACY_LEVELS:
        return LEGACY_LEVELS[name]
    try:
        return SkillLevel(name)
    except ValueError:
        return None


class MatchType(str, Enum):
    SINGLES = "singles"
    DOUBLES = "doubles"

    @property
    def required_players(self) -> int:
        return 2 if self is MatchType.SINGLES else 4


class ReservationType(str, Enum):
    MATCH = "match"
    LESSON = "lesson"
    TOURNAMENT = "tournament"
    OPEN_DAY = "open-day"
    PROMO = "promo"
    MAINTENANCE = "maintenance"


class Season(str, Enum):
    WINTER = "winter"
    SUMMER = "summer"


class ClubRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class TimeRange(ClubRecord):
    """Base for every record with a same-day [from, to) range."""

    start: str = Field(alias="from")
    end: str = Field(alias="to")

    @field_validator("start", "end", mode="before")
    @classmethod
    def normalize_times(cls, v):
        return normalize_time(v)

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end)

    def covers(self, minute: int) -> bool:
        return self.start_minutes <= minute < self.end_minutes


# ============================================================================
# Players
# ============================================================================


class RecurringSlot(TimeRange):
    day: str

    @field_validator("day", mode="before")
    @classmethod
    def normalize_day(cls, v):
        return normalize_weekday(v)


class ExtraSlot(TimeRange):
    date: dt.date


class Availability(ClubRecord):
    """Empty profile (no recurring, no extra) means always available."""

    recurring: List[RecurringSlot] = Field(default_factory=list)
    extra: List[ExtraSlot] = Field(default_factory=list)

    @field_validator("recurring", "extra", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []

    @property
    def is_empty(self) -> bool:
        return not self.recurring and not self.extra


class Player(ClubRecord):
    id: str = Field(default_factory=new_id)
    name: str
    phone: str = ""
    level: SkillLevel = SkillLevel.INTERMEDIATE
    plays_singles: bool = True
    plays_doubles: bool = True
    matches_per_week: int = Field(default=2, ge=0)
    availability: Availability = Field(default_factory=Availability)
    is_member: bool = True
    preferred_players: List[str] = Field(default_factory=list)
    avoid_players: List[str] = Field(default_factory=list)
    compatibility: Dict[str, int] = Field(default_factory=dict)

    @field_validator("level", mode="before")
    @classmethod
    def accept_legacy_level(cls, v):
        return parse_level(v) or v

    @field_validator("availability", mode="before")
    @classmethod
    def none_as_open(cls, v):
        return v or {}

    @field_validator("preferred_players", "avoid_players", mode="before")
    @classmethod
    def none_as_no_preferences(cls, v):
        return v or []

    @field_validator("compatibility", mode="before")
    @classmethod
    def none_as_no_history(cls, v):
        return v or {}

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Player":
        """Read a stored player; an unrecognized level reads as intermediate."""
        level = document.get("level")
        if parse_level(level) is None:
            logger.warning(
                "Player %s has unknown level %r, using %s",
                document.get("id"),
                level,
                SkillLevel.INTERMEDIATE.value,
            )
            document = {**document, "level": SkillLevel.INTERMEDIATE.value}
        return cls.model_validate(document)

    @property
    def level_value(self) -> int:
        return LEVEL_VALUES[self.level]

    def plays(self, match_type: MatchType) -> bool:
        return self.plays_singles if match_type is MatchType.SINGLES else self.plays_doubles


# ============================================================================
# Courts and reservations
# ============================================================================


class Reservation(TimeRange):
    """
    A manually entered booking on one court.

    Dated reservations belong to exactly one calendar date. Reservations with
    no date are the older recurring format and repeat on their weekday.
    """

    day: str = ""
    date: Optional[dt.date] = None
    type: ReservationType = ReservationType.MATCH
    label: str = ""
    players: List[str] = Field(default_factory=list, max_length=4)
    price: Optional[float] = None

    @field_validator("day", mode="before")
    @classmethod
    def normalize_day(cls, v):
        return normalize_weekday(v) if v else ""

    @field_validator("players", mode="before")
    @classmethod
    def none_as_no_players(cls, v):
        return v or []

    @field_validator("price", mode="before")
    @classmethod
    def blank_price(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def fill_day_and_label(self):
        if not self.day:
            if self.date is None:
                raise ValueError("reservation needs a date or a weekday")
            self.day = weekday_name(self.date)
        if not self.label:
            self.label = self.type.value.capitalize()
        return self

    @property
    def has_occupants(self) -> bool:
        return any(name and name.strip() for name in self.players)


class Court(ClubRecord):
    id: str = Field(default_factory=new_id)
    name: str
    season: Season = Field(default=Season.WINTER, alias="type")
    surface: str = "terra-rossa"
    winter_cover: bool = False
    available: bool = True
    reservations: List[Reservation] = Field(default_factory=list)

    @field_validator("reservations", mode="before")
    @classmethod
    def none_as_no_reservations(cls, v):
        return v or []


# ============================================================================
# Matches
# ============================================================================


class ScheduledMatch(ClubRecord):
    """Match proposal (confirmed=False) or confirmed scheduled match."""

    id: str = Field(default_factory=new_id)
    date: dt.date
    time: str
    type: MatchType
    court: str
    players: List[str]
    score: int
    confirmed: bool = False

    @field_validator("time", mode="before")
    @classmethod
    def normalize_start(cls, v):
        return normalize_time(v)


class MatchRecord(ClubRecord):
    """A played match, kept in the history document."""

    id: str = Field(default_factory=new_id)
    date: dt.date
    time: str
    court: Optional[str] = None
    type: MatchType
    players: List[str]
    result: str = ""
    feedback: int = Field(default=0, ge=0, le=5)
    created_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))

    @field_validator("time", mode="before")
    @classmethod
    def normalize_start(cls, v):
        return normalize_time(v)


class ClubSettings(ClubRecord):
    season: Season = Season.WINTER
    min_compatibility: int = Field(default=30, ge=0, le=100)
    max_level_difference: int = Field(default=1, ge=0)
