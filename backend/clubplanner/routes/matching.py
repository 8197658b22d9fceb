import datetime as dt
import random
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from clubplanner.models.club import MatchType, ScheduledMatch
from clubplanner.routes import get_planner, planner_errors
from clubplanner.services.planner import PlannerService

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class GenerateRequest(BaseModel):
    date: dt.date
    match_type: MatchType = MatchType.SINGLES
    time_slots: Optional[List[str]] = None
    seed: Optional[int] = None


class GenerateWeeklyRequest(BaseModel):
    start_date: dt.date
    match_type: MatchType = MatchType.SINGLES
    time_slots: Optional[List[str]] = None
    seed: Optional[int] = None


class ConfirmRequest(BaseModel):
    proposals: List[ScheduledMatch]


class ScheduledMatchView(BaseModel):
    id: str
    date: dt.date
    time: str
    type: MatchType
    court: str
    court_name: str
    players: List[str]
    player_names: List[str]
    score: int
    confirmed: bool


class TimeSlotsResponse(BaseModel):
    date: dt.date
    time_slots: List[str]


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/matching/time-slots", response_model=TimeSlotsResponse)
def get_time_slots(date: dt.date = Query(...), planner: PlannerService = Depends(get_planner)):
    """Slot starts the generator walks on this date when none are given"""
    return TimeSlotsResponse(date=date, time_slots=planner.time_slots_for(date))


@router.post("/matching/generate", response_model=List[ScheduledMatch], response_model_by_alias=False)
def generate_matches(request: GenerateRequest, planner: PlannerService = Depends(get_planner)):
    """
    Propose matches for one date.

    Proposals are not stored; send the accepted ones to /matching/confirm.
    A seed makes doubles grouping repeatable.
    """
    rng = random.Random(request.seed) if request.seed is not None else None
    with planner_errors():
        return planner.generate_matches(request.date, request.match_type, request.time_slots, rng)


@router.post("/matching/generate-weekly", response_model=List[ScheduledMatch], response_model_by_alias=False)
def generate_weekly_matches(request: GenerateWeeklyRequest, planner: PlannerService = Depends(get_planner)):
    """Propose matches for seven days from start_date, honoring matches_per_week"""
    rng = random.Random(request.seed) if request.seed is not None else None
    with planner_errors():
        return planner.generate_weekly_matches(request.start_date, request.match_type, request.time_slots, rng)


@router.post(
    "/matching/confirm",
    response_model=List[ScheduledMatch],
    response_model_by_alias=False,
    status_code=201,
)
def confirm_matches(request: ConfirmRequest, planner: PlannerService = Depends(get_planner)):
    with planner_errors():
        return planner.confirm_matches(request.proposals)


@router.get("/matching/scheduled", response_model=List[ScheduledMatchView])
def list_scheduled(date: Optional[dt.date] = Query(None), planner: PlannerService = Depends(get_planner)):
    """Scheduled matches with player and court names, by date and time"""
    return [
        ScheduledMatchView(
            **view.match.model_dump(include=set(ScheduledMatchView.model_fields)),
            court_name=view.court_name,
            player_names=view.player_names,
        )
        for view in planner.list_scheduled(date)
    ]
