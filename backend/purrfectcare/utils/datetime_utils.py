"""
PurrfectCare Backend - Date/Time Helpers

Purpose: One place for "now", day boundaries and the ISO formats stored in
DynamoDB. All timestamps are timezone-aware UTC. Timestamps are always
written with microseconds so that lexicographic order of the stored strings
matches chronological order (DynamoDB compares strings byte-wise).
"""

from datetime import date, datetime, time, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime (the default clock)"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC, convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    """Serialize a timestamp for storage"""
    return ensure_utc(value).isoformat(timespec="microseconds")


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp (None passes through)"""
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Parse a stored or user supplied date; datetimes keep their date part"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    # Accept full timestamps as well as plain dates
    if len(value) > 10:
        return ensure_utc(datetime.fromisoformat(value)).date()
    return date.fromisoformat(value)


def start_of_day(now: datetime) -> datetime:
    """Midnight UTC of the day containing ``now``"""
    now = ensure_utc(now)
    return datetime.combine(now.date(), time.min, tzinfo=timezone.utc)


def parse_hhmm(value: str) -> time:
    """Parse a wall-clock "HH:MM" string"""
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def combine_due(due_date: date, due_time: str) -> datetime:
    """Due instant from a due date and "HH:MM" due time (UTC)"""
    return datetime.combine(due_date, parse_hhmm(due_time), tzinfo=timezone.utc)
