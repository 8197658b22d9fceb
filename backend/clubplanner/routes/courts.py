import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, model_validator

from clubplanner.models.club import Court, Reservation, ReservationType, Season
from clubplanner.routes import get_planner, planner_errors
from clubplanner.services.errors import PlannerValidationError
from clubplanner.services.planner import PlannerService
from clubplanner.services.reservations import scope_for

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class CourtCreate(BaseModel):
    name: str
    season: Season = Season.WINTER
    surface: str = "terra-rossa"
    winter_cover: bool = False
    available: bool = True


class CourtUpdate(BaseModel):
    name: Optional[str] = None
    season: Optional[Season] = None
    surface: Optional[str] = None
    winter_cover: Optional[bool] = None
    available: Optional[bool] = None


class ScopedRange(BaseModel):
    """A time range on one date, or on a weekday for recurring entries"""

    date: Optional[dt.date] = None
    day: Optional[str] = None
    start: str
    end: str

    @model_validator(mode="after")
    def validate_scope(self):
        if self.date is None and not self.day:
            raise ValueError("date or day is required")
        return self


class ReservationUpsert(ScopedRange):
    type: ReservationType = ReservationType.MATCH
    label: str = ""
    players: List[str] = Field(default=[], max_length=4)
    price: Optional[float] = None


class FreeCheckResponse(BaseModel):
    court_id: str
    start: str
    end: str
    free: bool


# ============================================================================
# Courts
# ============================================================================


@router.get("/courts", response_model=List[Court], response_model_by_alias=False)
def list_courts(
    season: Optional[Season] = Query(None, description="Only courts of this season"),
    planner: PlannerService = Depends(get_planner),
):
    courts = planner.courts()
    if season:
        courts = [c for c in courts if c.season == season]
    return courts


@router.post("/courts", response_model=Court, response_model_by_alias=False, status_code=201)
def create_court(court_data: CourtCreate, planner: PlannerService = Depends(get_planner)):
    with planner_errors():
        return planner.create_court(court_data.model_dump())


@router.get("/courts/{court_id}", response_model=Court, response_model_by_alias=False)
def get_court(court_id: str, planner: PlannerService = Depends(get_planner)):
    with planner_errors():
        return planner.get_court(court_id)


@router.put("/courts/{court_id}", response_model=Court, response_model_by_alias=False)
def update_court(court_id: str, court_data: CourtUpdate, planner: PlannerService = Depends(get_planner)):
    with planner_errors():
        return planner.update_court(court_id, court_data.model_dump(exclude_unset=True))


@router.get("/courts/{court_id}/free", response_model=FreeCheckResponse)
def check_court_free(
    court_id: str,
    start: str = Query(...),
    end: str = Query(...),
    date: Optional[dt.date] = Query(None),
    day: Optional[str] = Query(None),
    planner: PlannerService = Depends(get_planner),
):
    """Is the court free for [start, end) on a date (or a weekday)?"""
    with planner_errors():
        scope = scope_for(date, day)
        free = planner.is_court_free(court_id, scope, start, end)
    return FreeCheckResponse(court_id=court_id, start=start, end=end, free=free)


# ============================================================================
# Reservations
# ============================================================================


@router.get("/courts/{court_id}/reservations", response_model=List[Reservation], response_model_by_alias=False)
def list_reservations(
    court_id: str,
    date: Optional[dt.date] = Query(None),
    day: Optional[str] = Query(None),
    planner: PlannerService = Depends(get_planner),
):
    """Reservations occupying the court on a date (or weekday), by start time"""
    with planner_errors():
        return planner.list_reservations(court_id, scope_for(date, day))


@router.put("/courts/{court_id}/reservations", response_model=Court, response_model_by_alias=False)
def upsert_reservation(court_id: str, data: ReservationUpsert, planner: PlannerService = Depends(get_planner)):
    """
    Store a reservation, overwriting the part of the timeline it covers.

    Reservations it partially overlaps are trimmed; the pieces outside the
    new range are kept with their original label and occupants.
    """
    with planner_errors():
        scope = scope_for(data.date, data.day)
        try:
            reservation = Reservation(
                date=data.date,
                day=data.day or "",
                start=data.start,
                end=data.end,
                type=data.type,
                label=data.label,
                players=data.players,
                price=data.price,
            )
        except ValueError as e:
            raise PlannerValidationError(str(e))
        return planner.upsert_reservation(court_id, scope, reservation)


@router.post("/courts/{court_id}/reservations/delete-range", response_model=Court, response_model_by_alias=False)
def delete_reservation_range(court_id: str, data: ScopedRange, planner: PlannerService = Depends(get_planner)):
    """Clear [start, end), keeping the parts of reservations outside it"""
    with planner_errors():
        return planner.delete_reservation_range(court_id, scope_for(data.date, data.day), data.start, data.end)


@router.delete("/courts/{court_id}/reservations", response_model=Court, response_model_by_alias=False)
def delete_all_reservations(
    court_id: str,
    date: Optional[dt.date] = Query(None),
    day: Optional[str] = Query(None),
    planner: PlannerService = Depends(get_planner),
):
    """Remove every reservation of the court on a date (or weekday)"""
    with planner_errors():
        return planner.delete_all_reservations(court_id, scope_for(date, day))
