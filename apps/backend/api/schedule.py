from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import List, Optional, Union
from api.deps import get_schedule, require_admin
from exceptions.custom_errors import StorageError
from models.schemas import Modality, ScheduleEvent
from services.colors import palette
from services.schedule_state import ScheduleStateStore

class InstructorRequest(BaseModel):
    name: str
    city: str = ""
    regional: str = ""

class EventRequest(BaseModel):
    id: str = ""
    title: str
    details: Union[str, List[str]] = ""
    time: Optional[str] = None
    location: str = ""
    color: str = ""
    modality: Optional[Modality] = None

class EventTransferRequest(BaseModel):
    event_id: str
    from_row_id: str
    from_day: str
    to_row_id: str
    to_day: str

class ConflictRequest(BaseModel):
    row_id: str
    day: str
    start: str
    end: str
    exclude_event_id: Optional[str] = None

class ConfirmRequest(BaseModel):
    confirm: bool = False

public_router = APIRouter(prefix="/schedule", tags=["Schedule"])
router = APIRouter(prefix="/schedule", tags=["Schedule (admin)"], dependencies=[Depends(require_admin)])

@public_router.get("/published")
async def get_published(schedule: ScheduleStateStore = Depends(get_schedule)):
    """Read-only snapshot seen by regular users."""
    return schedule.published

@router.get("/draft")
async def get_draft(schedule: ScheduleStateStore = Depends(get_schedule)):
    return schedule.draft

@router.get("/status")
async def get_status(schedule: ScheduleStateStore = Depends(get_schedule)):
    """
    Flags the admin toolbar reacts to.

    - dirty: draft differs from the published snapshot.
    - has_unsaved_changes: draft differs from the last save.
    - can_publish: saved, cooldown elapsed and nothing in progress.
    """
    return schedule.status()

@router.post("/save")
async def save_draft(schedule: ScheduleStateStore = Depends(get_schedule)):
    if not await schedule.save():
        raise StorageError("Draft could not be saved")
    return {"status": "saved", "status_report": schedule.status()}

@router.post("/publish")
async def publish_draft(schedule: ScheduleStateStore = Depends(get_schedule)):
    if not await schedule.publish():
        raise StorageError("Draft could not be published")
    return {"status": "published", "status_report": schedule.status()}

# --- Instructors ---

@router.post("/instructors")
async def add_instructor(req: InstructorRequest, schedule: ScheduleStateStore = Depends(get_schedule)):
    row = schedule.add_instructor(req.name, req.city, req.regional)
    return {"status": "success", "row": row}

@router.put("/instructors/{instructor_id}")
async def update_instructor(instructor_id: str, req: InstructorRequest,
                            schedule: ScheduleStateStore = Depends(get_schedule)):
    instructor = schedule.update_instructor(instructor_id, req.name, req.city, req.regional)
    return {"status": "success", "instructor": instructor}

@router.delete("/instructors/{instructor_id}")
async def delete_instructor(instructor_id: str, schedule: ScheduleStateStore = Depends(get_schedule)):
    """Deletes the instructor together with its row and all historical events."""
    schedule.delete_instructor(instructor_id)
    return {"status": "deleted", "instructor_id": instructor_id}

# --- Events ---

@router.post("/rows/{row_id}/days/{day}/events")
async def add_event(row_id: str, day: str, req: EventRequest,
                    schedule: ScheduleStateStore = Depends(get_schedule)):
    event = schedule.add_event(row_id, day, ScheduleEvent(**req.model_dump()))
    return {"status": "success", "event": event}

@router.put("/rows/{row_id}/days/{day}/events/{event_id}")
async def update_event(row_id: str, day: str, event_id: str, req: EventRequest,
                       schedule: ScheduleStateStore = Depends(get_schedule)):
    event = schedule.update_event(row_id, day, event_id, ScheduleEvent(**req.model_dump()))
    return {"status": "success", "event": event}

@router.delete("/rows/{row_id}/days/{day}/events/{event_id}")
async def delete_event(row_id: str, day: str, event_id: str,
                       schedule: ScheduleStateStore = Depends(get_schedule)):
    schedule.delete_event(row_id, day, event_id)
    return {"status": "deleted", "event_id": event_id}

@router.post("/events/move")
async def move_event(req: EventTransferRequest, schedule: ScheduleStateStore = Depends(get_schedule)):
    event = schedule.move_event(req.event_id, req.from_row_id, req.from_day, req.to_row_id, req.to_day)
    return {"status": "success", "event": event}

@router.post("/events/copy")
async def copy_event(req: EventTransferRequest, schedule: ScheduleStateStore = Depends(get_schedule)):
    event = schedule.copy_event(req.event_id, req.from_row_id, req.from_day, req.to_row_id, req.to_day)
    return {"status": "success", "event": event}

@router.post("/conflicts")
async def check_conflict(req: ConflictRequest, schedule: ScheduleStateStore = Depends(get_schedule)):
    try:
        return schedule.check_time_conflict(req.row_id, req.day, req.start, req.end, req.exclude_event_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/colors")
async def get_palette():
    """Event palette with the readable text color for each swatch."""
    return palette()

# --- Maintenance ---

@router.post("/clear-week")
async def clear_current_week(req: ConfirmRequest, schedule: ScheduleStateStore = Depends(get_schedule)):
    """
    Removes events of the active week from every row.
    Instructors and other weeks' events are kept. Requires {"confirm": true}.
    """
    removed = schedule.clear_current_week(confirmed=req.confirm)
    return {"status": "success", "removed_events": removed}

@router.post("/clear-events")
async def clear_all_events(req: ConfirmRequest, schedule: ScheduleStateStore = Depends(get_schedule)):
    removed = schedule.clear_all_events(confirmed=req.confirm)
    return {"status": "success", "removed_events": removed}

@router.post("/remove-duplicates")
async def remove_duplicates(schedule: ScheduleStateStore = Depends(get_schedule)):
    removed = schedule.remove_duplicates()
    return {"status": "success", "removed_events": removed}

@router.get("/integrity")
async def integrity_report(schedule: ScheduleStateStore = Depends(get_schedule)):
    return schedule.check_integrity()

@router.post("/fix-incomplete")
async def fix_incomplete(schedule: ScheduleStateStore = Depends(get_schedule)):
    repaired = schedule.fix_incomplete_events()
    return {"status": "success", "repaired_events": repaired}
