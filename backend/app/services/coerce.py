"""Normalise values that arrive as native types from SQL and as strings from REST."""

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)


def as_datetime(value: Any) -> Optional[datetime]:
    """Timezone-aware datetime. Naive values are taken to be UTC, the store's clock."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Ignoring unparseable timestamp %r", value)
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def as_date(value: Any) -> Optional[date]:
    """Date part of a value, or None when it cannot be read as an ISO date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    if len(text) > 10:
        dt = as_datetime(text)
        return dt.date() if dt else None
    try:
        return date.fromisoformat(text)
    except ValueError:
        logger.warning("Ignoring unparseable date %r", value)
        return None


def as_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    return float(value)


def age_on(birth: Optional[date], today: date) -> int:
    if birth is None:
        return 0
    years = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        years -= 1
    return max(years, 0)
