"""ISO-8601 timestamp helpers shared by the table views and change logs."""
from datetime import date, datetime, time, timezone
from typing import Optional

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"
EMPTY_PLACEHOLDER = "——"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp; naive values are taken as UTC. Returns None if unparseable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[str]) -> str:
    """Local ``YYYY-MM-DD HH:MM:SS`` rendering, or the placeholder when empty."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return EMPTY_PLACEHOLDER
    return parsed.astimezone().strftime(DISPLAY_FORMAT)


def local_date(value: Optional[str]) -> Optional[date]:
    parsed = parse_timestamp(value)
    return parsed.astimezone().date() if parsed else None


def start_of_day(day: date) -> datetime:
    """Local midnight at the start of ``day``."""
    return datetime.combine(day, time.min).astimezone()


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max).astimezone()
