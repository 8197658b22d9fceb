import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from clubplanner.models.club import ClubSettings, Season
from clubplanner.routes import get_planner, planner_errors
from clubplanner.services.planner import PlannerService

router = APIRouter()


class SettingsUpdate(BaseModel):
    season: Optional[Season] = None
    min_compatibility: Optional[int] = Field(default=None, ge=0, le=100)
    max_level_difference: Optional[int] = Field(default=None, ge=0)


class SlotTemplateUpdate(BaseModel):
    times: List[str]


class SlotTemplateResponse(BaseModel):
    date: dt.date
    court_id: str
    times: List[str]


@router.get("/settings", response_model=ClubSettings, response_model_by_alias=False)
def get_settings(planner: PlannerService = Depends(get_planner)):
    return planner.settings()


@router.put("/settings", response_model=ClubSettings, response_model_by_alias=False)
def update_settings(update: SettingsUpdate, planner: PlannerService = Depends(get_planner)):
    """Switching season changes which courts the generator uses"""
    with planner_errors():
        return planner.update_settings(update.model_dump(exclude_none=True))


@router.get("/slot-templates/{date}/{court_id}", response_model=SlotTemplateResponse)
def get_slot_template(date: dt.date, court_id: str, planner: PlannerService = Depends(get_planner)):
    """Slot starts for a court on a date (the default grid when none is stored)"""
    return SlotTemplateResponse(date=date, court_id=court_id, times=planner.slot_template(date, court_id))


@router.put("/slot-templates/{date}/{court_id}", response_model=SlotTemplateResponse)
def set_slot_template(
    date: dt.date, court_id: str, update: SlotTemplateUpdate, planner: PlannerService = Depends(get_planner)
):
    with planner_errors():
        times = planner.set_slot_template(date, court_id, update.times)
    return SlotTemplateResponse(date=date, court_id=court_id, times=times)
