import datetime as dt
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, model_validator

from clubplanner.models.club import Availability, MatchType, Player, SkillLevel
from clubplanner.routes import get_planner, planner_errors
from clubplanner.services.planner import PlannerService

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class PlayerCreate(BaseModel):
    name: str
    phone: str = ""
    level: Optional[str] = None
    plays_singles: bool = True
    plays_doubles: bool = True
    matches_per_week: int = Field(default=2, ge=0)
    is_member: bool = True
    availability: Optional[Availability] = None
    preferred_players: List[str] = []
    avoid_players: List[str] = []

    @model_validator(mode="after")
    def validate_name(self):
        if not self.name.strip():
            raise ValueError("name is required")
        return self


class PlayerUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    level: Optional[str] = None
    plays_singles: Optional[bool] = None
    plays_doubles: Optional[bool] = None
    matches_per_week: Optional[int] = Field(default=None, ge=0)
    is_member: Optional[bool] = None
    availability: Optional[Availability] = None
    preferred_players: Optional[List[str]] = None
    avoid_players: Optional[List[str]] = None


class RecurringSlotCreate(BaseModel):
    day: str
    start: str
    end: str


class ExtraSlotCreate(BaseModel):
    date: dt.date
    start: str
    end: str


class AvailabilityCheckResponse(BaseModel):
    player_id: str
    date: dt.date
    time: str
    available: bool


class PreferenceUpdate(BaseModel):
    kind: Literal["preferred", "avoid", "none"]


class CompatibilityUpdate(BaseModel):
    score: int


class CompatibilityResponse(BaseModel):
    player_a: str
    player_b: str
    score: int


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/players", response_model=List[Player], response_model_by_alias=False)
def list_players(
    q: str = Query("", description="Case-insensitive name substring"),
    level: Optional[SkillLevel] = Query(None),
    planner: PlannerService = Depends(get_planner),
):
    """List players, optionally filtered by name and level"""
    return planner.search_players(q, level)


@router.post("/players", response_model=Player, response_model_by_alias=False, status_code=201)
def create_player(player_data: PlayerCreate, planner: PlannerService = Depends(get_planner)):
    """Create a player; no availability means always available"""
    data = player_data.model_dump(exclude_none=True)
    with planner_errors():
        return planner.create_player(data)


@router.get("/players/available", response_model=List[Player], response_model_by_alias=False)
def list_available_players(
    date: dt.date = Query(...),
    time: str = Query(...),
    match_type: MatchType = Query(MatchType.SINGLES),
    planner: PlannerService = Depends(get_planner),
):
    """Players who may be scheduled at (date, time) for the match type"""
    with planner_errors():
        return planner.available_players(date, time, match_type)


@router.get("/players/{player_id}", response_model=Player, response_model_by_alias=False)
def get_player(player_id: str, planner: PlannerService = Depends(get_planner)):
    with planner_errors():
        return planner.get_player(player_id)


@router.put("/players/{player_id}", response_model=Player, response_model_by_alias=False)
def update_player(player_id: str, player_data: PlayerUpdate, planner: PlannerService = Depends(get_planner)):
    """Update a player (only the fields sent are changed)"""
    with planner_errors():
        return planner.update_player(player_id, player_data.model_dump(exclude_unset=True))


@router.get("/players/{player_id}/availability", response_model=AvailabilityCheckResponse)
def check_availability(
    player_id: str,
    date: dt.date = Query(...),
    time: str = Query(...),
    planner: PlannerService = Depends(get_planner),
):
    with planner_errors():
        available = planner.resolve_availability(player_id, date, time)
    return AvailabilityCheckResponse(player_id=player_id, date=date, time=time, available=available)


@router.post(
    "/players/{player_id}/availability/recurring",
    response_model=Player,
    response_model_by_alias=False,
    status_code=201,
)
def add_recurring_availability(
    player_id: str, slot: RecurringSlotCreate, planner: PlannerService = Depends(get_planner)
):
    with planner_errors():
        return planner.add_recurring_availability(player_id, slot.day, slot.start, slot.end)


@router.delete(
    "/players/{player_id}/availability/recurring/{index}", response_model=Player, response_model_by_alias=False
)
def remove_recurring_availability(player_id: str, index: int, planner: PlannerService = Depends(get_planner)):
    with planner_errors():
        return planner.remove_recurring_availability(player_id, index)


@router.post(
    "/players/{player_id}/availability/extra",
    response_model=Player,
    response_model_by_alias=False,
    status_code=201,
)
def add_extra_availability(player_id: str, slot: ExtraSlotCreate, planner: PlannerService = Depends(get_planner)):
    with planner_errors():
        return planner.add_extra_availability(player_id, slot.date, slot.start, slot.end)


@router.delete(
    "/players/{player_id}/availability/extra/{index}", response_model=Player, response_model_by_alias=False
)
def remove_extra_availability(player_id: str, index: int, planner: PlannerService = Depends(get_planner)):
    with planner_errors():
        return planner.remove_extra_availability(player_id, index)


@router.put("/players/{player_id}/preferences/{other_id}", response_model=Player, response_model_by_alias=False)
def set_preference(
    player_id: str, other_id: str, preference: PreferenceUpdate, planner: PlannerService = Depends(get_planner)
):
    """Mark another player as preferred / avoided (mutually exclusive) or clear both"""
    with planner_errors():
        return planner.set_preference(player_id, other_id, preference.kind)


@router.get("/players/{player_id}/compatibility/{other_id}", response_model=CompatibilityResponse)
def get_compatibility(player_id: str, other_id: str, planner: PlannerService = Depends(get_planner)):
    with planner_errors():
        score = planner.get_compatibility(player_id, other_id)
    return CompatibilityResponse(player_a=player_id, player_b=other_id, score=score)


@router.put("/players/{player_id}/compatibility/{other_id}", response_model=CompatibilityResponse)
def set_compatibility(
    player_id: str, other_id: str, update: CompatibilityUpdate, planner: PlannerService = Depends(get_planner)
):
    """Store a history score for the pair (clamped to 0..100)"""
    with planner_errors():
        score = planner.set_compatibility_score(player_id, other_id, update.score)
    return CompatibilityResponse(player_a=player_id, player_b=other_id, score=score)
