from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from typing import Any, Dict, List
from api.deps import get_schedule, require_admin
from services.excel_loader import build_template, load_event_rows
from services.schedule_state import ScheduleStateStore

router = APIRouter(prefix="/import", tags=["Import"], dependencies=[Depends(require_admin)])

class RowsRequest(BaseModel):
    rows: List[Dict[str, Any]]

@router.post("/validate")
async def validate_rows(req: RowsRequest, schedule: ScheduleStateStore = Depends(get_schedule)):
    """Phase 1 only: reports row errors without touching the draft."""
    return schedule.validate_import(req.rows)

@router.post("/rows")
async def import_rows(req: RowsRequest, schedule: ScheduleStateStore = Depends(get_schedule)):
    """
    Validates and merges already-parsed rows into the draft.

    Column names are matched case-insensitively:
    Instructor, Regional, Titulo, Detalles, Ubicacion, Dia, Hora Inicio, Hora Fin, Modalidad.
    """
    summary = schedule.import_rows(req.rows)
    return {"status": "success", "summary": summary}

@router.post("/upload")
async def upload_workbook(file: UploadFile = File(...), schedule: ScheduleStateStore = Depends(get_schedule)):
    """
    Imports the first sheet of an Excel workbook.

    Pipeline:
    1. Parse the sheet into rows (pandas/openpyxl).
    2. Validate every row; a single invalid row rejects the file.
    3. Merge into the draft incrementally (existing history is kept).
    """
    content = await file.read()
    rows = await run_in_threadpool(load_event_rows, content)
    summary = schedule.import_rows(rows)
    return {"status": "success", "filename": file.filename, "summary": summary}

@router.get("/template")
async def download_template(schedule: ScheduleStateStore = Depends(get_schedule)):
    buffer = build_template(schedule.draft.instructors)
    headers = {
        'Content-Disposition': 'attachment; filename="plantilla_cronograma.xlsx"'
    }
    return StreamingResponse(
        buffer,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )
