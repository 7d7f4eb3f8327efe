import re
from typing import List, Optional, Tuple

from models.schemas import ScheduleEvent, TimeConflict

# "8 a.m.", "8:00 a.m.", "12:30p.m." (case-insensitive)
TIME_RE = re.compile(r'^(1[0-2]|0?[1-9])(?::([0-5][0-9]))?\s?(a\.m\.|p\.m\.)$', re.IGNORECASE)

# Any clock time inside free text, e.g. "Presencial - 8:00 a.m. a 5:00 p.m."
_TIME_IN_TEXT_RE = re.compile(r'(1[0-2]|0?[1-9])(?::([0-5][0-9]))?\s?(a\.m\.|p\.m\.)', re.IGNORECASE)


def is_valid_time(value) -> bool:
    return bool(TIME_RE.match(str(value or "").strip()))


def time_to_minutes(value: str) -> int:
    """
    Minutes since midnight for a 12-hour "H(:MM) a.m./p.m." string.
    Raises ValueError for anything else.
    """
    match = TIME_RE.match(str(value or "").strip())
    if not match:
        raise ValueError(f"Invalid time format: {value!r}")
    return _minutes(match)


def _minutes(match) -> int:
    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    period = match.group(3).lower()
    if period == "p.m." and hours != 12:
        hours += 12
    elif period == "a.m." and hours == 12:
        hours = 0
    return hours * 60 + minutes


def format_time_range(start: str, end: str) -> str:
    start = (start or "").strip()
    end = (end or "").strip()
    if start and end:
        return f"{start} a {end}"
    return start or end


def parse_time_range(text: Optional[str]) -> Optional[Tuple[int, int]]:
    """First two clock times found in an event's display time, as minutes. None if fewer than two."""
    found = list(_TIME_IN_TEXT_RE.finditer(text or ""))
    if len(found) < 2:
        return None
    return _minutes(found[0]), _minutes(found[1])


def find_time_conflict(
    events: List[ScheduleEvent],
    start: str,
    end: str,
    exclude_event_id: Optional[str] = None,
) -> TimeConflict:
    """
    Check a proposed start/end against the events of one row/day.
    Overlap rule: start < other_end AND end > other_start (touching is fine).
    """
    new_start = time_to_minutes(start)
    new_end = time_to_minutes(end)

    for event in events:
        if event.id == exclude_event_id:
            continue
        span = parse_time_range(event.time)
        if span is None:
            continue
        if new_start < span[1] and new_end > span[0]:
            return TimeConflict(has_conflict=True, conflicting_event=event)

    return TimeConflict(has_conflict=False)
