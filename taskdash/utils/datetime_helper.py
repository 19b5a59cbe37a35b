"""Date parsing helpers"""
import logging
import re
from datetime import date, datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

_DUE_PREFIX = re.compile(r"^due:\s*", re.IGNORECASE)


def _midnight_utc(d: date) -> datetime:
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def parse_due_date(value: Any, today: Optional[date] = None) -> Optional[datetime]:
    """
    Parse a due date typed by the user.

    Accepted forms:
        - "MM/DD" (current year)
        - "MM/DD/YYYY", "MM/DD/YY" (two-digit years are 20YY)
        - ISO 8601 date or datetime
        - any of the above prefixed with "due:"
        - date / datetime objects

    Args:
        value: raw input
        today: reference date for "MM/DD" (defaults to today)

    Returns:
        Timezone-aware datetime, or None for empty or unparseable input
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, date):
        return _midnight_utc(value)

    if not isinstance(value, str):
        return None

    text = _DUE_PREFIX.sub("", value.strip())
    if not text:
        return None

    parts = text.split("/")
    try:
        if len(parts) == 2:
            month, day = (int(p) for p in parts)
            year = (today or date.today()).year
            return _midnight_utc(date(year, month, day))

        if len(parts) == 3:
            month, day, year = (int(p) for p in parts)
            if year < 100:
                year += 2000
            return _midnight_utc(date(year, month, day))

        parsed = datetime.fromisoformat(text)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    except ValueError:
        logger.debug(f"Ignoring unparseable due date: {value!r}")
        return None
