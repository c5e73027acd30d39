"""
Datetime Utility Functions

Strict date parsing and small date helpers shared by the sprint resolver,
the normalizer and the aggregators.

Handles common export formats:
- ISO dates, optionally followed by a time component ("2024-03-10T09:15:00Z")
- Slash-separated year-first dates ("2024/03/10")
- US month-first dates ("03/10/2024")
- Dotted day-first dates ("10.03.2024")

Parsing never rolls over: "2024-02-43" is rejected rather than becoming
March 14th.
"""

import math
import re
from datetime import date, datetime

_MISSING_TOKENS = {"", "#n/a", "n/a", "na", "nan", "nat", "none", "null", "-"}

# (pattern, group order) - group order maps match groups to (year, month, day)
_DATE_PATTERNS: tuple[tuple[re.Pattern[str], tuple[int, int, int]], ...] = (
    (re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T\s].*)?$"), (1, 2, 3)),
    (re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})(?:[T\s].*)?$"), (1, 2, 3)),
    (re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:[\s,].*)?$"), (3, 1, 2)),
    (re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})(?:\s.*)?$"), (3, 2, 1)),
)


def is_missing(value: object) -> bool:
    """True for None, NaN and the placeholder strings spreadsheets export for blanks."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip().lower() in _MISSING_TOKENS:
        return True
    return False


def parse_date(value: object) -> date | None:
    """
    Parse a date defensively.

    The literal year, month and day components are extracted and passed to
    the ``date`` constructor, so any value whose components do not form a
    real calendar date is rejected instead of silently shifted.

    Args:
        value: Date text, ``date``/``datetime`` (including pandas timestamps) or a blank

    Returns:
        date, or None if the value is blank or not a valid date

    Examples:
        >>> parse_date("2024-03-10")
        datetime.date(2024, 3, 10)

        >>> parse_date("2024-02-43") is None
        True
    """
    if is_missing(value):
        return None

    if isinstance(value, datetime):
        # NaT is a datetime subclass that compares unequal to itself
        if value != value:
            return None
        return value.date()

    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        return None

    text = value.strip()
    for pattern, order in _DATE_PATTERNS:
        match = pattern.match(text)
        if not match:
            continue
        year, month, day = (int(match.group(i)) for i in order)
        try:
            return date(year, month, day)
        except ValueError:
            return None

    return None


def later(*dates: date | None) -> date | None:
    """Latest of the given dates, ignoring None."""
    present = [d for d in dates if d is not None]
    return max(present) if present else None


def earlier(*dates: date | None) -> date | None:
    """Earliest of the given dates, ignoring None."""
    present = [d for d in dates if d is not None]
    return min(present) if present else None


def days_between(start: date | None, end: date | None) -> int | None:
    """
    Whole days from start to end.

    Returns:
        Day count (may be negative), or None when either date is missing
    """
    if start is None or end is None:
        return None
    return (end - start).days


def iso_week_key(value: date) -> tuple[int, int]:
    """
    ISO 8601 (year, week) bucket.

    The ISO year can differ from the calendar year near January 1st because
    week 1 is the week containing the first Thursday.

    Example:
        >>> iso_week_key(date(2021, 1, 1))
        (2020, 53)
    """
    iso = value.isocalendar()
    return (iso.year, iso.week)


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month's length."""
    month_index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    for day in range(value.day, 27, -1):
        try:
            return date(year, month, day)
        except ValueError:
            continue
    return date(year, month, min(value.day, 28))
