import logging
import random
import time
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from exceptions.custom_errors import (
    BusyError,
    ConfirmationRequiredError,
    ImportValidationError,
    PublishNotAllowedError,
    StorageError,
)
from models.schemas import (
    CurrentWeek,
    GlobalConfig,
    ImportSummary,
    Instructor,
    IntegrityReport,
    ScheduleEvent,
    ScheduleRow,
    ScheduleState,
    StatusReport,
    TimeConflict,
    ValidationResult,
)
from services import draft_ops
from services.colors import color_for_detail, is_valid_event_color
from services.duplicates import check_integrity, fix_incomplete_events, remove_duplicate_events
from services.import_merge import ImportMerger
from services.import_validator import validate_rows
from services.time_format import find_time_conflict
from services.week_resolver import default_week, shift_week, week_day_keys
from settings import PUBLISH_COOLDOWN_SECONDS

log = logging.getLogger(__name__)

Listener = Callable[[str, "ScheduleStateStore"], None]


class Phase(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    PUBLISHING = "publishing"


def empty_state() -> ScheduleState:
    return ScheduleState(rows=[], instructors=[], config=GlobalConfig(title="Cronograma", current_week=default_week()))


class ScheduleStateStore:
    """
    Owns the draft and published snapshots and every transition between them.

    - One operation at a time: anything that changes the draft while a
      save, publish or long-running operation is in flight is refused
      with BusyError (never queued).
    - `dirty` is structural: draft != published.
    - Publishing needs a saved draft that has settled for the cooldown.
    - Listeners registered with `subscribe` are called after every change.
    """
    def __init__(
        self,
        store,
        clock: Callable[[], float] = time.monotonic,
        cooldown: float = PUBLISH_COOLDOWN_SECONDS,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.clock = clock
        self.cooldown = cooldown
        self.rng = rng

        self.draft: ScheduleState = empty_state()
        self.published: ScheduleState = self.draft.model_copy(deep=True)
        self.phase = Phase.IDLE
        self.processing = False
        self.last_saved_at: Optional[float] = None
        self._saved_dump: Optional[Dict[str, Any]] = None
        self._listeners: List[Listener] = []

    # --- Loading ---

    def load(self) -> None:
        """Pull both snapshots from the durable store, seeding empty ones if missing."""
        self.store.seed_if_missing(empty_state())
        self.draft = self.store.read() or empty_state()
        self.published = self.store.read_published() or self.draft.model_copy(deep=True)
        self._saved_dump = self.draft.model_dump(mode="json")
        self.last_saved_at = None
        self._notify("loaded")

    # --- Derived flags ---

    @property
    def dirty(self) -> bool:
        return self.draft.model_dump(mode="json") != self.published.model_dump(mode="json")

    @property
    def has_unsaved_changes(self) -> bool:
        return self.draft.model_dump(mode="json") != self._saved_dump

    @property
    def busy(self) -> bool:
        return self.processing or self.phase != Phase.IDLE

    def seconds_until_publish(self) -> float:
        if self.last_saved_at is None:
            return self.cooldown
        return max(0.0, self.cooldown - (self.clock() - self.last_saved_at))

    @property
    def can_publish(self) -> bool:
        if self.processing or self.last_saved_at is None or self.has_unsaved_changes:
            return False
        return self.clock() - self.last_saved_at >= self.cooldown

    def status(self) -> StatusReport:
        return StatusReport(
            phase=self.phase.value,
            processing=self.processing,
            dirty=self.dirty,
            has_unsaved_changes=self.has_unsaved_changes,
            can_publish=self.can_publish,
            seconds_until_publish=self.seconds_until_publish(),
        )

    # --- Notifications ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self, change: str) -> None:
        for listener in list(self._listeners):
            listener(change, self)

    # --- Guards ---

    def _ensure_idle(self) -> None:
        if self.busy:
            raise BusyError(f"Another operation is in progress (phase={self.phase.value}, processing={self.processing})")

    @contextmanager
    def _processing(self, name: str):
        self._ensure_idle()
        self.processing = True
        self._notify("processing")
        succeeded = False
        try:
            yield
            succeeded = True
        finally:
            self.processing = False
            self._notify(name if succeeded else f"{name}_failed")

    # --- Save / publish ---

    async def save(self) -> bool:
        """Persist the draft. True on success; False leaves every flag as it was."""
        self._ensure_idle()
        self.phase = Phase.SAVING
        self._notify("saving")
        snapshot = self.draft.model_copy(deep=True)
        try:
            ok = await run_in_threadpool(self.store.write, snapshot)
        finally:
            self.phase = Phase.IDLE

        if ok:
            self._saved_dump = snapshot.model_dump(mode="json")
            self.last_saved_at = self.clock()
            log.info("Draft saved")
            self._notify("saved")
        else:
            log.error("Draft save failed")
            self._notify("save_failed")
        return ok

    async def publish(self) -> bool:
        """Copy the saved draft into the published snapshot in one store write."""
        self._ensure_idle()
        if not self.can_publish:
            raise PublishNotAllowedError(
                f"Draft must be saved and settle for {self.cooldown:g}s before publishing"
            )

        self.phase = Phase.PUBLISHING
        self._notify("publishing")
        snapshot = self.draft.model_copy(deep=True)
        try:
            ok = await run_in_threadpool(self.store.write_published, snapshot)
            if ok and not await self._confirm_published():
                # Put the previous snapshot back so store and memory agree
                await run_in_threadpool(self.store.write_published, self.published)
                ok = False
        finally:
            self.phase = Phase.IDLE

        if ok:
            self.published = snapshot
            log.info("Draft published")
            self._notify("published")
        else:
            log.error("Publish failed; published snapshot left unchanged")
            self._notify("publish_failed")
        return ok

    async def _confirm_published(self) -> bool:
        """Read the published document back; a read error counts as not applied."""
        try:
            return (await run_in_threadpool(self.store.read_published)) is not None
        except StorageError:
            log.error("Could not read back the published snapshot")
            return False

    # --- Instructors ---

    def add_instructor(self, name: str, city: str = "", regional: str = "") -> ScheduleRow:
        self._ensure_idle()
        row = draft_ops.create_instructor(self.draft, name, city, regional)
        self._notify("instructor_added")
        return row

    def update_instructor(self, instructor_id: str, name: str, city: str, regional: str) -> Instructor:
        self._ensure_idle()
        instructor = draft_ops.update_instructor(self.draft, instructor_id, name, city, regional)
        self._notify("instructor_updated")
        return instructor

    def delete_instructor(self, instructor_id: str) -> None:
        self._ensure_idle()
        draft_ops.delete_instructor(self.draft, instructor_id)
        self._notify("instructor_deleted")

    # --- Events ---

    def add_event(self, row_id: str, day: str, event: ScheduleEvent) -> ScheduleEvent:
        self._ensure_idle()
        added = draft_ops.append_event(self.draft, row_id, day, self._with_color(event))
        self._notify("event_added")
        return added

    def update_event(self, row_id: str, day: str, event_id: str, event: ScheduleEvent) -> ScheduleEvent:
        self._ensure_idle()
        row = draft_ops.find_row(self.draft, row_id)
        index, _ = draft_ops.find_event(row, day, event_id)
        updated = self._with_color(event).model_copy(update={"id": event_id})
        row.events[day][index] = updated
        self._notify("event_updated")
        return updated

    def _with_color(self, event: ScheduleEvent) -> ScheduleEvent:
        """Events without a usable hex color get one from their details."""
        if is_valid_event_color(event.color):
            return event
        return event.model_copy(update={"color": color_for_detail(event.details, self.rng)})

    def delete_event(self, row_id: str, day: str, event_id: str) -> None:
        self._ensure_idle()
        row = draft_ops.find_row(self.draft, row_id)
        index, _ = draft_ops.find_event(row, day, event_id)
        del row.events[day][index]
        self._notify("event_deleted")

    def move_event(self, event_id: str, from_row_id: str, from_day: str, to_row_id: str, to_day: str) -> ScheduleEvent:
        self._ensure_idle()
        source = draft_ops.find_row(self.draft, from_row_id)
        draft_ops.find_row(self.draft, to_row_id)
        index, event = draft_ops.find_event(source, from_day, event_id)
        del source.events[from_day][index]
        moved = draft_ops.append_event(self.draft, to_row_id, to_day, event)
        self._notify("event_moved")
        return moved

    def copy_event(self, event_id: str, from_row_id: str, from_day: str, to_row_id: str, to_day: str) -> ScheduleEvent:
        self._ensure_idle()
        source = draft_ops.find_row(self.draft, from_row_id)
        target = draft_ops.find_row(self.draft, to_row_id)
        _, event = draft_ops.find_event(source, from_day, event_id)
        clone = event.model_copy(deep=True, update={"id": draft_ops.new_event_id(target)})
        copied = draft_ops.append_event(self.draft, to_row_id, to_day, clone)
        self._notify("event_copied")
        return copied

    def check_time_conflict(self, row_id: str, day: str, start: str, end: str,
                            exclude_event_id: Optional[str] = None) -> TimeConflict:
        row = draft_ops.find_row(self.draft, row_id)
        return find_time_conflict(row.events.get(day, []), start, end, exclude_event_id)

    # --- Config ---

    def update_title(self, title: str) -> GlobalConfig:
        self._ensure_idle()
        self.draft.config.title = title
        self._notify("config_updated")
        return self.draft.config

    def update_week(self, week: CurrentWeek) -> GlobalConfig:
        self._ensure_idle()
        self.draft.config.current_week = week
        self._notify("config_updated")
        return self.draft.config

    def navigate_week(self, direction: str) -> CurrentWeek:
        self._ensure_idle()
        self.draft.config.current_week = shift_week(self.draft.config.current_week, direction)
        self._notify("config_updated")
        return self.draft.config.current_week

    # --- Long-running operations ---

    def validate_import(self, rows: List[Dict[str, Any]]) -> ValidationResult:
        return validate_rows(rows)

    def import_rows(self, rows: List[Dict[str, Any]]) -> ImportSummary:
        """
        Two-phase import: validate every row (no side effects), then merge.
        Any invalid row rejects the whole batch before the draft is touched.
        """
        self._ensure_idle()
        result = validate_rows(rows)
        if not result.valid:
            raise ImportValidationError(result)

        with self._processing("imported"):
            return ImportMerger(self.draft, self.rng).merge(result.valid_rows)

    def clear_current_week(self, confirmed: bool = False) -> int:
        """Drop events whose day key falls inside the active week. Instructors stay."""
        if not confirmed:
            raise ConfirmationRequiredError("Clearing the current week must be confirmed")
        with self._processing("week_cleared"):
            keys = week_day_keys(self.draft.config.current_week)
            removed = draft_ops.remove_day_keys(self.draft, keys)
        log.info("Cleared %d event(s) from the current week", removed)
        return removed

    def clear_all_events(self, confirmed: bool = False) -> int:
        if not confirmed:
            raise ConfirmationRequiredError("Clearing all events must be confirmed")
        with self._processing("events_cleared"):
            removed = draft_ops.count_events(self.draft)
            for row in self.draft.rows:
                row.events = {}
        log.info("Cleared all %d draft event(s)", removed)
        return removed

    def remove_duplicates(self) -> int:
        with self._processing("duplicates_removed"):
            return remove_duplicate_events(self.draft)

    def check_integrity(self) -> IntegrityReport:
        with self._processing("integrity_checked"):
            return check_integrity(self.draft)

    def fix_incomplete_events(self) -> int:
        with self._processing("events_fixed"):
            return fix_incomplete_events(self.draft, self.rng)
