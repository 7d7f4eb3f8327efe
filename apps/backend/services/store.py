import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from database import DRAFT_KEY, PUBLISHED_KEY, ScheduleDocumentDB, SessionLocal
from exceptions.custom_errors import StorageError
from models.schemas import ScheduleState

log = logging.getLogger(__name__)


class SqlScheduleStore:
    """
    Durable store for the draft and published snapshots.

    Each snapshot is one JSON document keyed "draft" / "published".
    Writes replace the whole document in a single transaction and report
    failure as False instead of raising. A failed read raises StorageError.
    """
    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def read(self) -> Optional[ScheduleState]:
        return self._read(DRAFT_KEY)

    def write(self, state: ScheduleState) -> bool:
        return self._write(DRAFT_KEY, state)

    def read_published(self) -> Optional[ScheduleState]:
        return self._read(PUBLISHED_KEY)

    def write_published(self, state: ScheduleState) -> bool:
        return self._write(PUBLISHED_KEY, state)

    def seed_if_missing(self, state: ScheduleState) -> None:
        """Create draft/published documents from `state` when they do not exist yet."""
        for key in (DRAFT_KEY, PUBLISHED_KEY):
            if self._read(key) is None:
                log.info("Seeding %s schedule document", key)
                self._write(key, state)

    def _read(self, key: str) -> Optional[ScheduleState]:
        db = self.session_factory()
        try:
            item = db.query(ScheduleDocumentDB).filter(ScheduleDocumentDB.key == key).first()
            if not item or not item.payload_json:
                return None
            return ScheduleState.model_validate(item.payload_json)
        except SQLAlchemyError as e:
            log.exception("Failed to read %s schedule document", key)
            raise StorageError(f"Could not read {key} schedule document") from e
        finally:
            db.close()

    def _write(self, key: str, state: ScheduleState) -> bool:
        payload = state.model_dump(mode="json")
        db = self.session_factory()
        try:
            item = db.query(ScheduleDocumentDB).filter(ScheduleDocumentDB.key == key).first()
            if item:
                item.payload_json = payload
            else:
                db.add(ScheduleDocumentDB(key=key, payload_json=payload))
            db.commit()
            return True
        except SQLAlchemyError:
            db.rollback()
            log.exception("Failed to write %s schedule document", key)
            return False
        finally:
            db.close()
