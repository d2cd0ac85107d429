"""
Window Validator - Overnight verification window rules

Windows are stored as "HH:MM" local wall-clock strings and may wrap past
midnight (start > end). The instant being tested must always be the
reporter's own local wall-clock time; nothing here reads the server clock.
"""
import re
from datetime import datetime, time
from typing import List, Sequence, Union

from atams.exceptions import BadRequestException

MINUTES_PER_DAY = 24 * 60

_HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
# Date and time separated by "T" or a space; a bare date carries no wall-clock time
_ISO_DATETIME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")


def parse_hhmm(value: str) -> int:
    """
    Parse an "HH:MM" string into minutes since midnight

    Raises:
        ValueError: If the value is not a valid 24h "HH:MM" string
    """
    match = _HHMM_PATTERN.match(value or "")
    if not match:
        raise ValueError(f'Invalid time "{value}", expected HH:MM')
    return int(match.group(1)) * 60 + int(match.group(2))


def format_hhmm(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def build_slot_catalogue(earliest: str, latest: str, step_minutes: int = 30) -> List[str]:
    """
    Build the ordered catalogue of selectable window boundaries

    The catalogue runs forward from `earliest` to `latest` inclusive and
    wraps past midnight when latest < earliest, e.g. 22:00 -> 04:00 yields
    22:00, 22:30, ..., 23:30, 00:00, ..., 04:00.
    """
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")

    start = parse_hhmm(earliest)
    span = (parse_hhmm(latest) - start) % MINUTES_PER_DAY

    return [format_hhmm(start + offset) for offset in range(0, span + 1, step_minutes)]


def validate_window_selection(window_start: str, window_end: str, catalogue: Sequence[str]) -> None:
    """
    Validate an employee-selected window against the slot catalogue

    Ordering is catalogue order, not clock order, because the catalogue
    itself wraps past midnight.

    Raises:
        BadRequestException: If a boundary is outside the catalogue or end is not after start
    """
    earliest, latest = catalogue[0], catalogue[-1]

    if window_start not in catalogue:
        raise BadRequestException(
            f'Start time "{window_start}" is outside the allowed verification window ({earliest} - {latest}).'
        )
    if window_end not in catalogue:
        raise BadRequestException(
            f'End time "{window_end}" is outside the allowed verification window ({earliest} - {latest}).'
        )
    if catalogue.index(window_end) <= catalogue.index(window_start):
        raise BadRequestException(
            f"End time must be later than start time within the {earliest} - {latest} window."
        )


def normalize_local_clock(value: Union[str, datetime, time]) -> str:
    """
    Reduce a reporter-asserted local clock to its "HH:MM" wall-clock time

    Accepts "HH:MM", an ISO-8601 timestamp (its own offset is kept, not
    converted), or a datetime/time object.

    Raises:
        ValueError: If the value cannot be interpreted
    """
    if isinstance(value, datetime):
        return value.strftime("%H:%M")
    if isinstance(value, time):
        return value.strftime("%H:%M")

    if not isinstance(value, str):
        raise ValueError(f"Unsupported clock value of type {type(value).__name__}")

    value = value.strip()
    if _HHMM_PATTERN.match(value):
        return value
    if not _ISO_DATETIME_PATTERN.match(value):
        raise ValueError(f'Invalid clock "{value}", expected HH:MM or an ISO-8601 date-time')

    # Python < 3.11 fromisoformat does not accept a trailing "Z"
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value).strftime("%H:%M")


def is_within_window(window_start: str, window_end: str, local_time: str) -> bool:
    """
    Check whether a local wall-clock time falls inside the window

    Both boundaries are inclusive. When start > end the window wraps past
    midnight and the check becomes now >= start OR now <= end.
    """
    start = parse_hhmm(window_start)
    end = parse_hhmm(window_end)
    now = parse_hhmm(local_time)

    if start <= end:
        return start <= now <= end
    return now >= start or now <= end
