from contextlib import contextmanager

from fastapi import Depends, HTTPException

from clubplanner.repository import ClubRepository, get_repository
from clubplanner.services.errors import PlannerValidationError, UnknownRecordError
from clubplanner.services.planner import PlannerService


def get_planner(repository: ClubRepository = Depends(get_repository)) -> PlannerService:
    return PlannerService(repository)


@contextmanager
def planner_errors():
    """Translate planner failures into HTTP errors"""
    try:
        yield
    except UnknownRecordError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PlannerValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
