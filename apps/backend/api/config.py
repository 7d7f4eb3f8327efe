from datetime import date
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ValidationError
from typing import Literal
from api.deps import get_schedule, require_admin
from models.schemas import CurrentWeek
from services.schedule_state import ScheduleStateStore

router = APIRouter(prefix="/config", tags=["Config"], dependencies=[Depends(require_admin)])

class TitleRequest(BaseModel):
    title: str

class WeekRequest(BaseModel):
    start_date: date
    end_date: date

class NavigateRequest(BaseModel):
    direction: Literal["prev", "next"]

@router.get("")
async def get_config(schedule: ScheduleStateStore = Depends(get_schedule)):
    return schedule.draft.config

@router.put("/title")
async def update_title(req: TitleRequest, schedule: ScheduleStateStore = Depends(get_schedule)):
    return schedule.update_title(req.title)

@router.put("/week")
async def update_week(req: WeekRequest, schedule: ScheduleStateStore = Depends(get_schedule)):
    try:
        week = CurrentWeek(start_date=req.start_date, end_date=req.end_date)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail="start_date must not be after end_date") from e
    return schedule.update_week(week)

@router.post("/week/navigate")
async def navigate_week(req: NavigateRequest, schedule: ScheduleStateStore = Depends(get_schedule)):
    """Moves the active week 7 days back or forward."""
    return schedule.navigate_week(req.direction)
