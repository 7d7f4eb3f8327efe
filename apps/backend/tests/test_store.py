import logging
from datetime import date
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from database import DRAFT_KEY, ScheduleDocumentDB
from exceptions.custom_errors import StorageError
from models.schemas import CurrentWeek, GlobalConfig, ScheduleRow, ScheduleState
from services.store import SqlScheduleStore


def _state(title="Cronograma"):
    week = CurrentWeek(start_date=date(2024, 3, 4), end_date=date(2024, 3, 8))
    return ScheduleState(
        rows=[ScheduleRow(id="i1", instructor="Ana")],
        config=GlobalConfig(title=title, current_week=week),
    )


def test_draft_and_published_are_independent(sql_store):
    assert sql_store.read() is None

    assert sql_store.write(_state("Borrador")) is True
    assert sql_store.write_published(_state("Publicado")) is True
    assert sql_store.write(_state("Borrador 2")) is True

    assert sql_store.read().config.title == "Borrador 2"
    assert sql_store.read_published().config.title == "Publicado"
    assert sql_store.read().config.current_week.start_date == date(2024, 3, 4)


def test_seed_only_fills_missing_documents(sql_store):
    sql_store.write_published(_state("Publicado"))

    sql_store.seed_if_missing(_state("Semilla"))

    assert sql_store.read().config.title == "Semilla"
    assert sql_store.read_published().config.title == "Publicado"


def test_write_failure_rolls_back_and_returns_false(caplog):
    session = MagicMock()
    session.commit.side_effect = OperationalError("UPDATE", {}, Exception("disk I/O error"))
    store = SqlScheduleStore(session_factory=lambda: session)

    with caplog.at_level(logging.ERROR):
        assert store.write(_state()) is False

    session.rollback.assert_called_once()
    session.close.assert_called_once()
    assert "Failed to write draft" in caplog.text


def test_read_failure_raises_storage_error():
    session = MagicMock()
    session.query.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
    store = SqlScheduleStore(session_factory=lambda: session)

    with pytest.raises(StorageError):
        store.read_published()
    session.close.assert_called_once()


def test_write_stamps_updated_at(engine, sql_store):
    sql_store.write(_state())

    session = sessionmaker(bind=engine)()
    try:
        item = session.query(ScheduleDocumentDB).filter(ScheduleDocumentDB.key == DRAFT_KEY).one()
        assert item.updated_at is not None
    finally:
        session.close()
