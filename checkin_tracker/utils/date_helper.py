# checkin_tracker/utils/date_helper.py
"""
Helpers for the storage time convention.

Timestamps are stored and serialised as "YYYY-MM-DD HH:MM:SS" with no offset
marker. They are UTC; anything that shows them to a person attaches the UTC
zone first and only then converts to the viewer's zone.
"""
from datetime import date, datetime, timezone, tzinfo
from typing import Optional, Union


def parse_utc(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Return an aware UTC datetime for a stored timestamp (str or naive datetime)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        # "YYYY-MM-DD HH:MM:SS" -> ISO
        dt = datetime.fromisoformat(str(value).strip().replace(" ", "T"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_utc_to_local(value, tz: tzinfo = None) -> Optional[datetime]:
    """Stored UTC timestamp -> aware datetime in ``tz`` (system local zone when None)."""
    dt = parse_utc(value)
    if dt is None:
        return None
    return dt.astimezone(tz) if tz is not None else dt.astimezone()


def format_local_time(dt: Optional[datetime]) -> str:
    """24h 'HH:MM'."""
    if not dt:
        return "-"
    return dt.strftime("%H:%M")


def format_duration(start: Optional[datetime], end: Optional[datetime]) -> str:
    """'45 min', '2 hr', '2 hr 5 min'; 'Active' while there is no end."""
    if not start or not end:
        return "Active"

    total_minutes = int((end - start).total_seconds() // 60)
    if total_minutes < 60:
        return f"{total_minutes} min"

    hours, minutes = divmod(total_minutes, 60)
    if minutes == 0:
        return f"{hours} hr"
    return f"{hours} hr {minutes} min"


def format_minutes(minutes: Optional[float]) -> str:
    if not minutes:
        return "0 min"
    total = int(round(minutes))
    hours, mins = divmod(total, 60)
    if not hours:
        return f"{mins} min"
    return f"{hours} hr {mins} min" if mins else f"{hours} hr"


def utcnow() -> datetime:
    """Naive UTC "now", the storage convention for every timestamp."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_utc() -> date:
    return utcnow().date()
