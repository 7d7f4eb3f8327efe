"""
Low-level mutations on a ScheduleState.

These functions only keep the data invariants (one row per instructor,
unique event ids per row). Busy checks, dirty tracking and change
notifications belong to ScheduleStateStore.
"""
import uuid
from typing import Iterator, List, Optional, Tuple

from exceptions.custom_errors import NotFoundError
from models.schemas import Instructor, ScheduleEvent, ScheduleRow, ScheduleState


def instructor_key(name: str) -> str:
    """
    Identity used to match instructors by name.

    Exact case-insensitive match after trimming and collapsing spaces;
    no fuzzy matching. Displayed casing is kept on the records.
    """
    return " ".join(str(name or "").split()).casefold()


def new_instructor_id() -> str:
    return f"instructor-{uuid.uuid4().hex[:12]}"


def new_event_id(row: ScheduleRow) -> str:
    taken = {e.id for events in row.events.values() for e in events}
    while True:
        candidate = f"evt-{uuid.uuid4().hex[:16]}"
        if candidate not in taken:
            return candidate


def find_row(state: ScheduleState, row_id: str) -> ScheduleRow:
    for row in state.rows:
        if row.id == row_id:
            return row
    raise NotFoundError(f"Row not found: {row_id}")


def find_instructor(state: ScheduleState, instructor_id: str) -> Instructor:
    for instructor in state.instructors:
        if instructor.id == instructor_id:
            return instructor
    raise NotFoundError(f"Instructor not found: {instructor_id}")


def find_event(row: ScheduleRow, day: str, event_id: str) -> Tuple[int, ScheduleEvent]:
    for index, event in enumerate(row.events.get(day, [])):
        if event.id == event_id:
            return index, event
    raise NotFoundError(f"Event {event_id} not found in row {row.id} on day {day}")


def create_instructor(state: ScheduleState, name: str, city: str = "", regional: str = "") -> ScheduleRow:
    """Create an Instructor and its ScheduleRow together. Returns the new row."""
    instructor = Instructor(id=new_instructor_id(), name=name, city=city, regional=regional)
    row = ScheduleRow(id=instructor.id, instructor=name, city=city, regional=regional, events={})
    state.instructors.append(instructor)
    state.rows.append(row)
    return row


def update_instructor(state: ScheduleState, instructor_id: str, name: str, city: str, regional: str) -> Instructor:
    instructor = find_instructor(state, instructor_id)
    row = find_row(state, instructor_id)
    instructor.name, instructor.city, instructor.regional = name, city, regional
    row.instructor, row.city, row.regional = name, city, regional
    return instructor


def delete_instructor(state: ScheduleState, instructor_id: str) -> None:
    """Remove the instructor, its row and every event it ever had."""
    before = (len(state.instructors), len(state.rows))
    state.instructors = [i for i in state.instructors if i.id != instructor_id]
    state.rows = [r for r in state.rows if r.id != instructor_id]
    if before == (len(state.instructors), len(state.rows)):
        raise NotFoundError(f"Instructor not found: {instructor_id}")


def append_event(state: ScheduleState, row_id: str, day: str, event: ScheduleEvent) -> ScheduleEvent:
    """Append to the end of the day bucket. A clashing id is replaced with a fresh one."""
    row = find_row(state, row_id)
    taken = {e.id for events in row.events.values() for e in events}
    if not event.id or event.id in taken:
        event = event.model_copy(update={"id": new_event_id(row)})
    row.events.setdefault(day, []).append(event)
    return event


def iter_events(state: ScheduleState) -> Iterator[Tuple[ScheduleRow, str, ScheduleEvent]]:
    for row in state.rows:
        for day, events in row.events.items():
            for event in events:
                yield row, day, event


def count_events(state: ScheduleState) -> int:
    return sum(len(events) for row in state.rows for events in row.events.values())


def remove_day_keys(state: ScheduleState, day_keys: List[str]) -> int:
    """Drop whole day buckets from every row. Returns the number of events removed."""
    removed = 0
    for row in state.rows:
        for day in day_keys:
            removed += len(row.events.pop(day, []))
    return removed


def find_row_by_name(state: ScheduleState, name: str, exclude_ids: Optional[set] = None) -> Optional[ScheduleRow]:
    key = instructor_key(name)
    for row in state.rows:
        if exclude_ids and row.id in exclude_ids:
            continue
        if instructor_key(row.instructor) == key:
            return row
    return None
