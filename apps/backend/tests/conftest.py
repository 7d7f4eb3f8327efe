import pytest
import random
import sys
import os
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure backend path is in sys.path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import settings
from api.deps import get_schedule
from database import init_db
from main import app
from models.schemas import CurrentWeek, GlobalConfig, ScheduleState
from services.schedule_state import ScheduleStateStore
from services.store import SqlScheduleStore

ADMIN_TOKEN = "test-admin-token"

# Monday-aligned week used across tests: 4..8 March 2024
TEST_WEEK = CurrentWeek(start_date=date(2024, 3, 4), end_date=date(2024, 3, 8))


class FakeClock:
    """Manually advanced replacement for time.monotonic."""
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def engine():
    """Fresh in-memory DB per test, shared across threads via StaticPool."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()

@pytest.fixture
def sql_store(engine):
    return SqlScheduleStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def schedule(sql_store, clock):
    """State machine loaded from a store seeded with an empty schedule for TEST_WEEK."""
    initial = ScheduleState(rows=[], instructors=[], config=GlobalConfig(title="Cronograma Test", current_week=TEST_WEEK))
    sql_store.write(initial)
    sql_store.write_published(initial)

    state = ScheduleStateStore(sql_store, clock=clock, cooldown=2.0, rng=random.Random(7))
    state.load()
    return state

@pytest.fixture
def make_row():
    """Factory for raw import rows using the spreadsheet's column names."""
    def _make(instructor="ANA GOMEZ", dia="lunes", titulo="ESCUELA DE PROMOTORES", **overrides):
        row = {
            "Instructor": instructor,
            "Regional": "NORTE",
            "Titulo": titulo,
            "Detalles": "Módulo Formativo GNV",
            "Ubicacion": "Cúcuta",
            "Dia": dia,
            "Hora Inicio": "8:00 a.m.",
            "Hora Fin": "5:00 p.m.",
            "Modalidad": "Presencial",
        }
        row.update(overrides)
        return row
    return _make

@pytest.fixture
def client(schedule, monkeypatch):
    """Test client with the schedule dependency overridden and an admin token configured."""
    monkeypatch.setattr(settings, "ADMIN_TOKEN", ADMIN_TOKEN)
    app.dependency_overrides[get_schedule] = lambda: schedule
    from fastapi.testclient import TestClient
    yield TestClient(app)
    del app.dependency_overrides[get_schedule]

@pytest.fixture
def admin_headers():
    return {"X-Admin-Token": ADMIN_TOKEN}
