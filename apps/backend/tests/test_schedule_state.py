import asyncio
from datetime import date

import pytest

from exceptions.custom_errors import (
    BusyError,
    ConfirmationRequiredError,
    ImportValidationError,
    NotFoundError,
    PublishNotAllowedError,
    StorageError,
)
from models.schemas import CurrentWeek, ScheduleEvent
from services.colors import DETAIL_COLORS
from services.import_merge import ImportMerger
from services.schedule_state import Phase, ScheduleStateStore


def _event(title="ESCUELA", time="8:00 a.m. a 12:00 p.m."):
    return ScheduleEvent(id="", title=title, time=time, location="Cúcuta", color="#34b45c")


# --- Save / publish lifecycle ---

def test_loaded_state_is_clean(schedule):
    assert schedule.draft.config.title == "Cronograma Test"
    assert schedule.dirty is False
    assert schedule.has_unsaved_changes is False
    assert schedule.can_publish is False  # nothing saved yet this session


def test_edit_save_wait_publish(schedule, clock):
    schedule.add_instructor("Ana Gomez", "Cúcuta", "NORTE")
    assert schedule.dirty is True
    assert schedule.has_unsaved_changes is True

    assert asyncio.run(schedule.save()) is True
    assert schedule.has_unsaved_changes is False
    assert schedule.dirty is True  # still differs from what users see
    assert schedule.can_publish is False
    assert schedule.seconds_until_publish() == pytest.approx(2.0)

    clock.advance(1.5)
    assert schedule.can_publish is False
    clock.advance(0.5)
    assert schedule.can_publish is True

    assert asyncio.run(schedule.publish()) is True
    assert schedule.dirty is False
    assert schedule.published.model_dump() == schedule.draft.model_dump()
    assert schedule.phase == Phase.IDLE


def test_publish_before_save_is_refused(schedule):
    schedule.update_title("Semana 10")

    with pytest.raises(PublishNotAllowedError):
        asyncio.run(schedule.publish())
    assert schedule.published.config.title == "Cronograma Test"


def test_edit_after_save_blocks_publish(schedule, clock):
    asyncio.run(schedule.save())
    clock.advance(5)
    assert schedule.can_publish is True

    schedule.update_title("Semana 10")
    assert schedule.can_publish is False


def test_save_failure_leaves_flags_untouched(schedule, monkeypatch):
    schedule.add_instructor("Ana Gomez")
    monkeypatch.setattr(schedule.store, "write", lambda state: False)

    assert asyncio.run(schedule.save()) is False
    assert schedule.has_unsaved_changes is True
    assert schedule.last_saved_at is None
    assert schedule.phase == Phase.IDLE


def test_publish_failure_keeps_previous_snapshot(schedule, clock, monkeypatch):
    schedule.update_title("Semana 10")
    asyncio.run(schedule.save())
    clock.advance(2)
    monkeypatch.setattr(schedule.store, "write_published", lambda state: False)

    assert asyncio.run(schedule.publish()) is False
    assert schedule.published.config.title == "Cronograma Test"
    assert schedule.dirty is True
    assert schedule.phase == Phase.IDLE


def test_unreadable_publish_is_rolled_back(schedule, sql_store, clock, monkeypatch):
    schedule.update_title("Semana 10")
    asyncio.run(schedule.save())
    clock.advance(2)

    def unreadable():
        raise StorageError("database is locked")
    monkeypatch.setattr(sql_store, "read_published", unreadable)

    assert asyncio.run(schedule.publish()) is False
    assert schedule.published.config.title == "Cronograma Test"
    assert schedule.phase == Phase.IDLE

    # Durable copy is restored to the previous snapshot
    monkeypatch.undo()
    assert sql_store.read_published().config.title == "Cronograma Test"


def test_saved_draft_survives_reload(schedule, sql_store, clock):
    row = schedule.add_instructor("Ana Gomez")
    schedule.add_event(row.id, "4", _event())
    asyncio.run(schedule.save())

    reloaded = ScheduleStateStore(sql_store, clock=clock)
    reloaded.load()

    assert [r.instructor for r in reloaded.draft.rows] == ["Ana Gomez"]
    assert reloaded.draft.rows[0].events["4"][0].title == "ESCUELA"
    assert reloaded.published.rows == []
    assert reloaded.dirty is True


# --- Busy guard ---

@pytest.mark.parametrize("phase", [Phase.SAVING, Phase.PUBLISHING])
def test_operations_refused_while_persisting(schedule, phase):
    schedule.phase = phase

    with pytest.raises(BusyError):
        schedule.add_instructor("Ana Gomez")
    with pytest.raises(BusyError):
        schedule.import_rows([])
    with pytest.raises(BusyError):
        asyncio.run(schedule.save())
    assert schedule.draft.rows == []


def test_operations_refused_while_processing(schedule, make_row):
    schedule.processing = True

    with pytest.raises(BusyError):
        schedule.import_rows([make_row()])
    with pytest.raises(BusyError):
        schedule.clear_current_week(confirmed=True)
    assert schedule.can_publish is False


# --- Instructors and events ---

def test_delete_instructor_removes_row_and_history(schedule):
    row = schedule.add_instructor("Ana Gomez")
    schedule.add_event(row.id, "4", _event())
    schedule.add_event(row.id, "27", _event())
    other = schedule.add_instructor("Luis Perez")

    schedule.delete_instructor(row.id)

    assert [i.id for i in schedule.draft.instructors] == [other.id]
    assert [r.id for r in schedule.draft.rows] == [other.id]
    with pytest.raises(NotFoundError):
        schedule.delete_instructor(row.id)


def test_update_instructor_keeps_row_in_sync(schedule):
    row = schedule.add_instructor("Ana Gomez", "Cúcuta", "NORTE")
    schedule.update_instructor(row.id, "Ana María Gómez", "Bogotá", "CENTRO")

    assert schedule.draft.rows[0].instructor == "Ana María Gómez"
    assert schedule.draft.rows[0].regional == "CENTRO"
    assert schedule.draft.instructors[0].city == "Bogotá"


def test_update_event_keeps_id(schedule):
    row = schedule.add_instructor("Ana Gomez")
    added = schedule.add_event(row.id, "4", _event())
    assert added.id.startswith("evt-")

    updated = schedule.update_event(row.id, "4", added.id, _event(title="NUEVO"))

    assert updated.id == added.id
    assert schedule.draft.rows[0].events["4"][0].title == "NUEVO"


def test_move_and_copy_events(schedule):
    ana = schedule.add_instructor("Ana Gomez")
    luis = schedule.add_instructor("Luis Perez")
    event = schedule.add_event(ana.id, "4", _event())

    moved = schedule.move_event(event.id, ana.id, "4", luis.id, "5")
    assert moved.id == event.id
    assert schedule.draft.rows[0].events["4"] == []
    assert schedule.draft.rows[1].events["5"][0].id == event.id

    copied = schedule.copy_event(event.id, luis.id, "5", ana.id, "6")
    assert copied.id != event.id
    assert copied.title == event.title
    assert len(schedule.draft.rows[1].events["5"]) == 1

    with pytest.raises(NotFoundError):
        schedule.move_event("evt-missing", ana.id, "6", luis.id, "5")


def test_time_conflict_check(schedule):
    row = schedule.add_instructor("Ana Gomez")
    event = schedule.add_event(row.id, "4", _event(time="8:00 a.m. a 12:00 p.m."))

    overlap = schedule.check_time_conflict(row.id, "4", "11:00 a.m.", "1:00 p.m.")
    assert overlap.has_conflict is True
    assert overlap.conflicting_event.id == event.id

    assert schedule.check_time_conflict(row.id, "4", "12:00 p.m.", "2:00 p.m.").has_conflict is False
    assert schedule.check_time_conflict(row.id, "4", "9 a.m.", "10 a.m.", event.id).has_conflict is False
    assert schedule.check_time_conflict(row.id, "5", "9 a.m.", "10 a.m.").has_conflict is False


# --- Import ---

def test_import_rows_merges_into_draft(schedule, make_row):
    summary = schedule.import_rows([make_row(), make_row(instructor="LUIS PEREZ", dia="martes")])

    assert summary.new_instructors_created == 2
    assert schedule.processing is False
    assert schedule.has_unsaved_changes is True
    assert sorted(schedule.draft.rows[1].events) == ["5"]


def test_invalid_import_leaves_draft_untouched(schedule, make_row):
    before = schedule.draft.model_dump()

    with pytest.raises(ImportValidationError) as exc_info:
        schedule.import_rows([make_row(), make_row(dia="domingo")])

    assert exc_info.value.result.errors[0].row == 3
    assert schedule.draft.model_dump() == before
    assert schedule.processing is False


# --- Week and maintenance ---

def test_clear_current_week_keeps_instructors_and_other_weeks(schedule):
    row = schedule.add_instructor("Ana Gomez")
    schedule.add_event(row.id, "4", _event())
    schedule.add_event(row.id, "8", _event())
    schedule.add_event(row.id, "20", _event())

    with pytest.raises(ConfirmationRequiredError):
        schedule.clear_current_week()

    assert schedule.clear_current_week(confirmed=True) == 2
    assert list(schedule.draft.rows[0].events) == ["20"]
    assert len(schedule.draft.instructors) == 1


def test_clear_all_events(schedule):
    row = schedule.add_instructor("Ana Gomez")
    schedule.add_event(row.id, "4", _event())
    schedule.add_event(row.id, "20", _event())

    with pytest.raises(ConfirmationRequiredError):
        schedule.clear_all_events()
    assert schedule.clear_all_events(confirmed=True) == 2
    assert schedule.draft.rows[0].events == {}


def test_navigate_and_set_week(schedule):
    week = schedule.navigate_week("next")
    assert (week.start_date, week.end_date) == (date(2024, 3, 11), date(2024, 3, 15))

    schedule.update_week(CurrentWeek(start_date=date(2024, 4, 1), end_date=date(2024, 4, 5)))
    assert schedule.navigate_week("prev").start_date == date(2024, 3, 25)


def test_maintenance_operations(schedule):
    row = schedule.add_instructor("Ana Gomez")
    schedule.add_event(row.id, "4", _event())
    schedule.add_event(row.id, "4", _event())
    schedule.add_event(row.id, "5", ScheduleEvent(id="", title=""))

    assert schedule.check_integrity().is_valid is False
    assert schedule.remove_duplicates() == 1
    assert schedule.fix_incomplete_events() == 2
    assert schedule.check_integrity().is_valid is True


# --- Notifications ---

def test_subscribers_see_each_change(schedule, clock):
    changes = []
    unsubscribe = schedule.subscribe(lambda change, store: changes.append((change, store.busy)))

    schedule.add_instructor("Ana Gomez")
    asyncio.run(schedule.save())
    unsubscribe()
    schedule.update_title("Otra")

    assert changes == [
        ("instructor_added", False),
        ("saving", True),
        ("saved", False),
    ]


def test_failed_operation_is_reported_as_failed(schedule, make_row, monkeypatch):
    def lost_row(self, events):
        raise NotFoundError("Newly created instructor could not be located: ANA GOMEZ")
    monkeypatch.setattr(ImportMerger, "merge", lost_row)
    changes = []
    schedule.subscribe(lambda change, store: changes.append(change))

    with pytest.raises(NotFoundError):
        schedule.import_rows([make_row()])

    assert changes == ["processing", "imported_failed"]
    assert schedule.processing is False


def test_events_without_hex_color_get_one(schedule):
    row = schedule.add_instructor("Ana Gomez")

    added = schedule.add_event(row.id, "4", ScheduleEvent(id="", title="X", details="Festivo", color="rojo"))
    assert added.color == DETAIL_COLORS["Festivo"]

    kept = schedule.update_event(row.id, "4", added.id, ScheduleEvent(id="", title="X", color="#abc"))
    assert kept.color == "#abc"
