from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Optional, Union
from datetime import date
from enum import Enum

class Weekday(str, Enum):
    LUNES = "lunes"
    MARTES = "martes"
    MIERCOLES = "miercoles"
    JUEVES = "jueves"
    VIERNES = "viernes"

class Modality(str, Enum):
    PRESENCIAL = "Presencial"
    VIRTUAL = "Virtual"

class Instructor(BaseModel):
    id: str
    name: str
    city: str = ""
    regional: str = ""

class ScheduleEvent(BaseModel):
    id: str
    title: str
    details: Union[str, List[str]] = "" # Multi-line details are stored as a list
    time: Optional[str] = None # Free-form display text, e.g. "8:00 a.m. a 5:00 p.m."
    location: str = ""
    color: str = ""
    modality: Optional[Modality] = None

class ScheduleRow(BaseModel):
    id: str # Same id as the owning Instructor
    instructor: str
    city: str = ""
    regional: str = ""
    events: Dict[str, List[ScheduleEvent]] = {} # day key (day-of-month) -> ordered events

class CurrentWeek(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_order(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

class GlobalConfig(BaseModel):
    title: str = "Cronograma"
    current_week: CurrentWeek

class ScheduleState(BaseModel):
    """Draft or published snapshot. Both share the same shape."""
    rows: List[ScheduleRow] = []
    instructors: List[Instructor] = []
    config: GlobalConfig

# --- Import pipeline ---

class RowError(BaseModel):
    row: int # 1-based, counting the header row
    field: str
    message: str
    value: Any = None

class ValidatedEvent(BaseModel):
    instructor: str
    regional: str
    titulo: str
    detalles: Union[str, List[str]] = ""
    ubicacion: str = "Por definir"
    dia: Weekday
    hora_inicio: str = ""
    hora_fin: str = ""
    modalidad: Optional[Modality] = None

class ValidationResult(BaseModel):
    valid: bool
    errors: List[RowError] = []
    valid_rows: List[ValidatedEvent] = []

class ImportSummary(BaseModel):
    instructors_total: int # Instructors in the draft after the import
    events_total: int # Events in the draft after the import
    new_instructors_created: int
    events_imported: int
    instructors_in_file: int
    verified: bool = True # False when the post-import count came up short

# --- Maintenance reports ---

class IntegrityIssue(BaseModel):
    row_id: str
    day: Optional[str] = None
    event_id: Optional[str] = None
    issue: str # duplicate_id, missing_title, missing_location, missing_color, orphan_row, orphan_instructor

class IntegrityReport(BaseModel):
    is_valid: bool
    total_rows: int
    total_instructors: int
    total_events: int
    problematic_events: List[IntegrityIssue] = []

class TimeConflict(BaseModel):
    has_conflict: bool
    conflicting_event: Optional[ScheduleEvent] = None

class StatusReport(BaseModel):
    phase: str
    processing: bool
    dirty: bool
    has_unsaved_changes: bool
    can_publish: bool
    seconds_until_publish: float = Field(default=0.0, ge=0)
