"""
Human-readable working hours.
"""

from typing import List, Optional, Tuple

from ...core.models import ClinicScheduleConfig, WEEKDAY_NAMES
from .calculator import DEFAULT_WORKING_HOURS

_SHORT = {name: name[:3].capitalize() for name in WEEKDAY_NAMES}


def _clock(hhmm: str) -> str:
    hours, minutes = (int(p) for p in hhmm.split(":"))
    suffix = "am" if hours % 24 < 12 else "pm"
    h12 = hours % 12 or 12
    return f"{h12}{suffix}" if minutes == 0 else f"{h12}:{minutes:02d}{suffix}"


def format_working_hours(config: ClinicScheduleConfig) -> str:
    """Render e.g. ``Mon–Fri 9am–5pm, Sat 10am–2pm``; closed days are omitted."""
    hours = config.working_hours or DEFAULT_WORKING_HOURS
    groups: List[Tuple[str, str, Optional[str]]] = []

    for name in WEEKDAY_NAMES:
        entry = hours.get(name)
        window = f"{_clock(entry.open)}–{_clock(entry.close)}" if entry else None
        if groups and groups[-1][2] == window:
            first, _, _ = groups[-1]
            groups[-1] = (first, name, window)
        else:
            groups.append((name, name, window))

    parts = []
    for first, last, window in groups:
        if window is None:
            continue
        days = _SHORT[first] if first == last else f"{_SHORT[first]}–{_SHORT[last]}"
        parts.append(f"{days} {window}")
    return ", ".join(parts) or "by appointment only"
