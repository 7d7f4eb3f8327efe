from datetime import datetime, timezone
from sqlalchemy import create_engine, Column, Integer, String, JSON, DateTime
from sqlalchemy.orm import declarative_base, sessionmaker
from settings import DATABASE_URL

# check_same_thread only applies to SQLite
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

DRAFT_KEY = "draft"
PUBLISHED_KEY = "published"

class ScheduleDocumentDB(Base):
    __tablename__ = "schedule_documents"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, index=True) # "draft" or "published"
    payload_json = Column(JSON) # Full ScheduleState (rows, instructors, config)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
