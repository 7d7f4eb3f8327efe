import logging
import unicodedata
from datetime import date, timedelta
from typing import List, Optional

from models.schemas import CurrentWeek

log = logging.getLogger(__name__)

# ISO weekday numbers (Monday=1)
WEEKDAY_TO_ISO = {
    "lunes": 1,
    "martes": 2,
    "miercoles": 3,
    "jueves": 4,
    "viernes": 5,
}

ACCEPTED_WEEKDAYS = ("lunes", "martes", "miercoles", "miércoles", "jueves", "viernes")


def normalize_weekday(name: str) -> Optional[str]:
    """Lowercase, trim and strip accents ("Miércoles" -> "miercoles"). None if not a weekday."""
    text = str(name or "").strip().lower()
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return text if text in WEEKDAY_TO_ISO else None


def resolve_day_key(weekday: str, start_date: date) -> str:
    """
    Day-of-month (as a string) of the first date on or after start_date
    that falls on the given weekday.

    The scan only moves forward: a Wednesday start asked for "lunes"
    lands on the following Monday. Unknown names fall back to the
    start date's own day and are logged.
    """
    key = normalize_weekday(weekday)
    if key is None:
        log.error("Unknown weekday %r, falling back to start date %s", weekday, start_date)
        return str(start_date.day)

    target = WEEKDAY_TO_ISO[key]
    current = start_date
    while current.isoweekday() != target:
        current += timedelta(days=1)
    return str(current.day)


def week_dates(week: CurrentWeek) -> List[date]:
    days = (week.end_date - week.start_date).days
    return [week.start_date + timedelta(days=i) for i in range(days + 1)]


def week_day_keys(week: CurrentWeek) -> List[str]:
    """Day keys covered by the active week window, start and end inclusive."""
    return [str(d.day) for d in week_dates(week)]


def shift_week(week: CurrentWeek, direction: str) -> CurrentWeek:
    if direction not in ("prev", "next"):
        raise ValueError(f"direction must be 'prev' or 'next', got: {direction!r}")
    delta = timedelta(days=-7 if direction == "prev" else 7)
    return CurrentWeek(start_date=week.start_date + delta, end_date=week.end_date + delta)


def default_week(today: Optional[date] = None) -> CurrentWeek:
    """Monday to Friday of the week containing today."""
    today = today or date.today()
    monday = today - timedelta(days=today.weekday())
    return CurrentWeek(start_date=monday, end_date=monday + timedelta(days=4))
