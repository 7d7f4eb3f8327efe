import secrets
from typing import Optional
from fastapi import Header, HTTPException, Request
import settings
from services.schedule_state import ScheduleStateStore

def get_schedule(request: Request) -> ScheduleStateStore:
    return request.app.state.schedule

def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> None:
    """
    Authenticated-admin guard. Session handling lives outside this service;
    here an admin is whoever presents the shared admin token.
    """
    expected = settings.ADMIN_TOKEN
    if not expected or not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=401, detail="Admin authentication required")
