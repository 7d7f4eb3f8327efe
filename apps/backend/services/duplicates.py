import logging
import random
from typing import List, Optional

from models.schemas import IntegrityIssue, IntegrityReport, ScheduleState
from services import draft_ops
from services.colors import color_for_detail

log = logging.getLogger(__name__)


def duplicate_key(row_id: str, day: str, event) -> tuple:
    return (row_id, day, event.title, event.time or "", event.location)


def remove_duplicate_events(state: ScheduleState) -> int:
    """
    Remove events sharing (row, day, title, time, location), regardless of
    id or color. The first occurrence in row/day/event order is kept.

    Returns the number of events removed. Running it twice removes nothing
    the second time.
    """
    seen = set()
    removed = 0
    for row in state.rows:
        for day in list(row.events):
            kept = []
            for event in row.events[day]:
                key = duplicate_key(row.id, day, event)
                if key in seen:
                    removed += 1
                    continue
                seen.add(key)
                kept.append(event)
            row.events[day] = kept

    if removed:
        log.info("Removed %d duplicate event(s)", removed)
    return removed


def check_integrity(state: ScheduleState) -> IntegrityReport:
    issues: List[IntegrityIssue] = []

    instructor_ids = {i.id for i in state.instructors}
    row_ids = {r.id for r in state.rows}
    for row in state.rows:
        if row.id not in instructor_ids:
            issues.append(IntegrityIssue(row_id=row.id, issue="orphan_row"))
    for instructor in state.instructors:
        if instructor.id not in row_ids:
            issues.append(IntegrityIssue(row_id=instructor.id, issue="orphan_instructor"))

    for row in state.rows:
        seen_ids = set()
        for day, events in row.events.items():
            for event in events:
                if event.id in seen_ids:
                    issues.append(IntegrityIssue(row_id=row.id, day=day, event_id=event.id, issue="duplicate_id"))
                seen_ids.add(event.id)
                for field in ("title", "location", "color"):
                    if not str(getattr(event, field) or "").strip():
                        issues.append(IntegrityIssue(row_id=row.id, day=day, event_id=event.id, issue=f"missing_{field}"))

    if issues:
        log.warning("Integrity check found %d issue(s)", len(issues))

    return IntegrityReport(
        is_valid=not issues,
        total_rows=len(state.rows),
        total_instructors=len(state.instructors),
        total_events=draft_ops.count_events(state),
        problematic_events=issues,
    )


def fix_incomplete_events(state: ScheduleState, rng: Optional[random.Random] = None) -> int:
    """Fill in missing title, details, location and color. Returns events repaired."""
    repaired = 0
    for _row, _day, event in draft_ops.iter_events(state):
        changed = False
        if not (event.title or "").strip():
            event.title = "Sin título"
            changed = True
        if not event.details:
            event.details = "Sin detalles especificados"
            changed = True
        if not (event.location or "").strip():
            event.location = "Por definir"
            changed = True
        if not (event.color or "").strip():
            event.color = color_for_detail(event.details, rng)
            changed = True
        repaired += changed
    return repaired
