import logging
import random
import warnings
from typing import Dict, List, Optional

from exceptions.custom_errors import IntegrityWarning, NotFoundError
from models.schemas import ImportSummary, ScheduleEvent, ScheduleState, ValidatedEvent
from services import draft_ops
from services.colors import color_for_detail
from services.time_format import format_time_range
from services.week_resolver import resolve_day_key

log = logging.getLogger(__name__)

DEFAULT_DETAILS = "Sin detalles especificados"


class ImportMerger:
    """
    Phase 2 of an import: fold validated rows into the draft.

    Strictly additive. Existing instructors keep their data, events are
    appended (never replaced or de-duplicated here), and nothing is rolled
    back if a later step fails.

    Steps:
    1. Group rows by instructor name (case-insensitive).
    2. Map existing rows by name.
    3. Create missing instructors, then locate each new row among the
       rows not yet mapped.
    4. Append every event, in input order, to its row's day bucket.
    5. Verify the final event count (warning only).
    """
    def __init__(self, state: ScheduleState, rng: Optional[random.Random] = None):
        self.state = state
        self.rng = rng

    def merge(self, events: List[ValidatedEvent]) -> ImportSummary:
        expected_total = draft_ops.count_events(self.state) + len(events)

        groups = self._group_by_instructor(events)
        mapping = self._map_existing_rows()
        created = self._resolve_instructors(groups, mapping)

        for event_data in events:
            row_id = mapping[draft_ops.instructor_key(event_data.instructor)]
            self._append(row_id, event_data)

        total_events = draft_ops.count_events(self.state)
        verified = self._verify(expected_total, total_events)

        log.info(
            "Import merged: %d event(s), %d instructor(s) in file, %d new",
            len(events), len(groups), created,
        )
        return ImportSummary(
            instructors_total=len(self.state.instructors),
            events_total=total_events,
            new_instructors_created=created,
            events_imported=len(events),
            instructors_in_file=len(groups),
            verified=verified,
        )

    def _group_by_instructor(self, events: List[ValidatedEvent]) -> Dict[str, List[ValidatedEvent]]:
        groups: Dict[str, List[ValidatedEvent]] = {}
        for event_data in events:
            groups.setdefault(draft_ops.instructor_key(event_data.instructor), []).append(event_data)
        return groups

    def _map_existing_rows(self) -> Dict[str, str]:
        mapping: Dict[str, str] = {}
        for row in self.state.rows:
            # First row wins if two rows already share a name
            mapping.setdefault(draft_ops.instructor_key(row.instructor), row.id)
        return mapping

    def _resolve_instructors(self, groups: Dict[str, List[ValidatedEvent]], mapping: Dict[str, str]) -> int:
        created = 0
        for key, group in groups.items():
            first = group[0]

            if key in mapping:
                existing = draft_ops.find_row(self.state, mapping[key])
                if existing.regional != first.regional:
                    # Regional may change week to week; history is kept as is
                    log.info(
                        "Instructor %s has regional %r in file but %r on record; keeping the recorded one",
                        first.instructor, first.regional, existing.regional,
                    )
                continue

            draft_ops.create_instructor(self.state, first.instructor, city=first.regional, regional=first.regional)
            created += 1

            row = draft_ops.find_row_by_name(self.state, first.instructor, exclude_ids=set(mapping.values()))
            if row is None:
                raise NotFoundError(f"Newly created instructor could not be located: {first.instructor}")
            mapping[key] = row.id
            log.info("Created instructor %s -> %s", row.instructor, row.id)
        return created

    def _append(self, row_id: str, event_data: ValidatedEvent) -> None:
        week = self.state.config.current_week
        row = draft_ops.find_row(self.state, row_id)
        event = ScheduleEvent(
            id=draft_ops.new_event_id(row),
            title=event_data.titulo,
            details=event_data.detalles or DEFAULT_DETAILS,
            time=format_time_range(event_data.hora_inicio, event_data.hora_fin),
            location=event_data.ubicacion,
            color=color_for_detail(event_data.detalles, self.rng),
            modality=event_data.modalidad,
        )
        day_key = resolve_day_key(event_data.dia.value, week.start_date)
        draft_ops.append_event(self.state, row_id, day_key, event)

    def _verify(self, expected: int, actual: int) -> bool:
        if actual >= expected:
            return True
        message = f"Post-import event count {actual} is below the expected {expected}"
        log.warning(message)
        warnings.warn(message, IntegrityWarning)
        return False
