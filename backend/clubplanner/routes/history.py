import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from clubplanner.models.club import MatchRecord, MatchType
from clubplanner.routes import get_planner, planner_errors
from clubplanner.services.errors import PlannerValidationError
from clubplanner.services.planner import PlannerService

router = APIRouter()


class MatchRecordCreate(BaseModel):
    date: dt.date
    time: str
    court: Optional[str] = None
    type: MatchType
    players: List[str]
    result: str = ""
    feedback: int = Field(default=0, ge=0, le=5)


class MatchRecordUpdate(BaseModel):
    result: Optional[str] = None
    feedback: Optional[int] = Field(default=None, ge=0, le=5)


class HistoryStatsResponse(BaseModel):
    total: int
    singles: int
    doubles: int
    this_month: int


@router.get("/history", response_model=List[MatchRecord], response_model_by_alias=False)
def list_history(
    start: Optional[dt.date] = Query(None, description="First date included"),
    end: Optional[dt.date] = Query(None, description="Last date included"),
    match_type: Optional[MatchType] = Query(None),
    planner: PlannerService = Depends(get_planner),
):
    """Played matches, newest first"""
    return planner.filter_history(start, end, match_type)


@router.get("/history/stats", response_model=HistoryStatsResponse)
def get_history_stats(planner: PlannerService = Depends(get_planner)):
    stats = planner.history_stats()
    return HistoryStatsResponse(
        total=stats.total, singles=stats.singles, doubles=stats.doubles, this_month=stats.this_month
    )


@router.post("/history", response_model=MatchRecord, response_model_by_alias=False, status_code=201)
def record_match(record_data: MatchRecordCreate, planner: PlannerService = Depends(get_planner)):
    """Store a played match; a feedback rating 1-5 adjusts the players' compatibility"""
    with planner_errors():
        try:
            record = MatchRecord(**record_data.model_dump())
        except ValueError as e:
            raise PlannerValidationError(str(e))
        return planner.record_match(record)


@router.put("/history/{record_id}", response_model=MatchRecord, response_model_by_alias=False)
def update_match_record(record_id: str, update: MatchRecordUpdate, planner: PlannerService = Depends(get_planner)):
    with planner_errors():
        return planner.update_match_record(record_id, update.model_dump(exclude_unset=True))


@router.delete("/history/{record_id}", status_code=204)
def delete_match_record(record_id: str, planner: PlannerService = Depends(get_planner)):
    """Remove a played match; compatibility scores already applied are kept"""
    with planner_errors():
        planner.delete_match_record(record_id)
