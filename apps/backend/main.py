from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import uvicorn
import settings
from api import config, imports, schedule
from database import init_db
from exceptions.custom_errors import CUSTOM_ERRORS, ImportValidationError, ScheduleError
from logger import configure_logging
from services.schedule_state import ScheduleStateStore
from services.store import SqlScheduleStore

configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)
log = logging.getLogger(__name__)

app = FastAPI(title="Cronograma API")

@app.on_event("startup")
def on_startup():
    init_db()
    app.state.schedule = ScheduleStateStore(SqlScheduleStore())
    app.state.schedule.load()
    log.info("Schedule loaded: %d instructor(s)", len(app.state.schedule.draft.instructors))

@app.exception_handler(ScheduleError)
async def schedule_error_handler(request: Request, exc: ScheduleError):
    """
    Maps core failures to HTTP. Only validation errors carry row-level
    detail; everything else gets a generic, retry-able message.
    """
    status_code = CUSTOM_ERRORS.get(type(exc), 500)
    log.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    body = {"detail": exc.public_message}
    if isinstance(exc, ImportValidationError):
        body["errors"] = [e.model_dump(mode="json") for e in exc.result.errors]
    return JSONResponse(status_code=status_code, content=body)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(schedule.public_router, prefix="/api")
app.include_router(schedule.router, prefix="/api")
app.include_router(config.router, prefix="/api")
app.include_router(imports.router, prefix="/api")

@app.get("/health")
async def health_check():
    return {"status": "ok", "version": "0.1.0"}

if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=settings.PORT, reload=True)
