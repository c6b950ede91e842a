"""
Resolve stored PO_Date values to calendar days and classify day types.

PO_Date is stored as decoded: an ISO string from CSV extracts or a raw
spreadsheet serial from workbooks. Both resolve to the same calendar day.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

from dateutil import parser as dateparser

SPREADSHEET_EPOCH = date(1899, 12, 30)
# Serials outside this window are treated as non-dates (1900-01-01 .. 9999-12-31).
MIN_SERIAL = 1
MAX_SERIAL = 2_958_465

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
WEEKDAY_LABELS = frozenset(DAY_NAMES[:5])
WEEKEND_LABELS = frozenset(DAY_NAMES[5:])
WEEKDAY = "Weekday"
WEEKEND = "Weekend"

_SERIAL = re.compile(r"^\d+(\.\d+)?$")
_ISO = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
_US = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s.*)?$")
_HAS_YEAR = re.compile(r"\d{4}")


def _from_serial(serial: float) -> Optional[date]:
    if not MIN_SERIAL <= serial <= MAX_SERIAL:
        return None
    return SPREADSHEET_EPOCH + timedelta(days=int(serial))


def resolve_date(value: Any) -> Optional[date]:
    """Return the calendar day for a stored date value, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return _from_serial(float(value))

    text = str(value).strip()
    if not text:
        return None
    try:
        if _SERIAL.match(text):
            return _from_serial(float(text))
        match = _ISO.match(text)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return date(year, month, day)
        match = _US.match(text)
        if match:
            month, day, year = (int(part) for part in match.groups())
            return date(year, month, day)
        if _HAS_YEAR.search(text):
            return dateparser.parse(text).date()
    except (ValueError, OverflowError):
        return None
    return None


def day_of_week(day: date) -> str:
    return DAY_NAMES[day.weekday()]


def is_weekend(day: date) -> bool:
    return day.isoweekday() >= 6


def day_type(label: str) -> Optional[str]:
    """Cohort for a stored day-of-week label; unknown labels belong to no cohort."""
    if label in WEEKDAY_LABELS:
        return WEEKDAY
    if label in WEEKEND_LABELS:
        return WEEKEND
    return None


__all__ = [
    "DAY_NAMES",
    "WEEKDAY",
    "WEEKDAY_LABELS",
    "WEEKEND",
    "WEEKEND_LABELS",
    "day_of_week",
    "day_type",
    "is_weekend",
    "resolve_date",
]
