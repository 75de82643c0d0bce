"""
Slot availability calculator.

Pure functions that turn a clinic's working hours, timezone and booked start
times into 30-minute bookable slots. Day boundaries are always computed from
clinic-local midnight.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import pytz

from ...core.models import ClinicScheduleConfig, DayHours, Slot, WorkingDay, WEEKDAY_NAMES
from ...utils.logging import get_logger

logger = get_logger("clinic_receptionist.slots")

SLOT_MINUTES = 30
SLOT_DURATION = timedelta(minutes=SLOT_MINUTES)
# Malformed windows (close <= open) are read as an eight hour day
FALLBACK_DAY_MINUTES = 8 * 60
MINUTES_PER_DAY = 24 * 60

DEFAULT_WORKING_HOURS = {
    name: DayHours(open="09:00", close="17:00") for name in WEEKDAY_NAMES[:6]
}

BookedStart = Union[str, datetime]


def _resolve_now(tz, now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return tz.localize(now)
    return now.astimezone(tz)


def _parse_booked(existing_starts: Iterable[BookedStart], tz) -> List[datetime]:
    """Parse booked starts into minute-truncated aware datetimes."""
    parsed = []
    for raw in existing_starts or []:
        if isinstance(raw, datetime):
            value = raw
        else:
            try:
                value = datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00"))
            except ValueError:
                logger.warning(f"Ignoring unparseable booked start: {raw!r}")
                continue
        if value.tzinfo is None:
            value = tz.localize(value)
        parsed.append(value.replace(second=0, microsecond=0))
    return parsed


def _overlaps_booking(start: datetime, booked: Sequence[datetime]) -> bool:
    end = start + SLOT_DURATION
    return any(b < end and start < b + SLOT_DURATION for b in booked)


def day_window(config: ClinicScheduleConfig, day: date) -> Optional[Tuple[int, int]]:
    """Return the (open, close) minute offsets for ``day`` or ``None`` when closed."""
    hours = config.working_hours or DEFAULT_WORKING_HOURS
    entry = hours.get(WEEKDAY_NAMES[day.weekday()])
    if entry is None:
        return None

    open_min = DayHours.to_minutes(entry.open)
    close_min = DayHours.to_minutes(entry.close)
    if close_min <= open_min:
        close_min = open_min + FALLBACK_DAY_MINUTES
    return open_min, min(close_min, MINUTES_PER_DAY)


def format_time(value: datetime) -> str:
    """Format as ``2:00 PM``."""
    return value.strftime("%I:%M %p").lstrip("0")


def _slot_label(start: datetime, today: date, time_only: bool) -> str:
    clock = format_time(start)
    if time_only:
        return clock
    offset = (start.date() - today).days
    if offset == 0:
        return f"Today {clock}"
    if offset == 1:
        return f"Tomorrow {clock}"
    return f"{start.strftime('%A')} {clock}"


def _day_label(day: date, today: date) -> str:
    offset = (day - today).days
    if offset == 0:
        return "Today"
    if offset == 1:
        return "Tomorrow"
    return f"{day.strftime('%a')} {day.strftime('%b')} {day.day}"


def _day_slots(
    config: ClinicScheduleConfig,
    tz,
    day: date,
    booked: Sequence[datetime],
    now_local: datetime,
    limit: int,
    time_only: bool,
) -> List[Slot]:
    if limit <= 0 or config.is_holiday(day):
        return []
    window = day_window(config, day)
    if window is None:
        return []

    open_min, close_min = window
    midnight = datetime.combine(day, time.min)
    today = now_local.date()
    slots: List[Slot] = []

    for minute in range(open_min, close_min - SLOT_MINUTES + 1, SLOT_MINUTES):
        start = tz.localize(midnight + timedelta(minutes=minute))
        if start <= now_local:
            continue
        if _overlaps_booking(start, booked):
            continue
        end = tz.normalize(start + SLOT_DURATION)
        slots.append(Slot(
            label=_slot_label(start, today, time_only),
            start=start.isoformat(),
            end=end.isoformat(),
        ))
        if len(slots) >= limit:
            break
    return slots


def slots_for_day(
    config: ClinicScheduleConfig,
    date_str: str,
    existing_starts: Iterable[BookedStart],
    limit: int = 10,
    time_only: bool = False,
    now: Optional[datetime] = None,
) -> List[Slot]:
    """Free slots on the clinic-local date ``date_str`` (YYYY-MM-DD).

    Raises:
        ValueError: If ``date_str`` is not an ISO date.
    """
    tz = pytz.timezone(config.timezone)
    day = date.fromisoformat(date_str)
    now_local = _resolve_now(tz, now)
    booked = _parse_booked(existing_starts, tz)
    return _day_slots(config, tz, day, booked, now_local, limit, time_only)


def next_days_with_slots(
    config: ClinicScheduleConfig,
    existing_starts: Iterable[BookedStart],
    count: int = 5,
    now: Optional[datetime] = None,
    max_days: int = 21,
) -> List[WorkingDay]:
    """The next ``count`` clinic-local dates that still have an open slot."""
    tz = pytz.timezone(config.timezone)
    now_local = _resolve_now(tz, now)
    booked = _parse_booked(existing_starts, tz)
    today = now_local.date()

    days: List[WorkingDay] = []
    for offset in range(max_days):
        if len(days) >= count:
            break
        day = today + timedelta(days=offset)
        if _day_slots(config, tz, day, booked, now_local, 1, False):
            days.append(WorkingDay(date=day.isoformat(), label=_day_label(day, today)))
    return days


def next_slots(
    config: ClinicScheduleConfig,
    existing_starts: Iterable[BookedStart],
    count: int = 5,
    now: Optional[datetime] = None,
    max_days: int = 14,
    max_per_day: int = 4,
) -> List[Slot]:
    """Up to ``count`` upcoming slots spread over several days."""
    tz = pytz.timezone(config.timezone)
    now_local = _resolve_now(tz, now)
    booked = _parse_booked(existing_starts, tz)
    today = now_local.date()

    slots: List[Slot] = []
    for offset in range(max_days):
        remaining = count - len(slots)
        if remaining <= 0:
            break
        day = today + timedelta(days=offset)
        slots.extend(_day_slots(
            config, tz, day, booked, now_local, min(max_per_day, remaining), False
        ))
    return slots
