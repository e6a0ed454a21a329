"""
Helpers for YYYY-MM month keys
"""
import calendar
import re
from datetime import date
from typing import Tuple

from app.core.errors import InvalidInput

_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def parse_year_month(year_month: str) -> Tuple[int, int]:
    """
    Parse a 'YYYY-MM' key into (year, month).

    Raises:
        InvalidInput: If the key is malformed or the month is not 1..12
    """
    if not isinstance(year_month, str):
        raise InvalidInput(f"year_month must be a 'YYYY-MM' string, got {year_month!r}", field="year_month")
    match = _YEAR_MONTH_RE.match(year_month.strip())
    if not match:
        raise InvalidInput(f"year_month must look like 'YYYY-MM', got {year_month!r}", field="year_month")
    year, month = int(match.group(1)), int(match.group(2))
    if month < 1 or month > 12:
        raise InvalidInput(f"Invalid month in {year_month!r}. Must be between 01 and 12.", field="year_month")
    return year, month


def normalize_year_month(year_month: str) -> str:
    """Validated, zero-padded 'YYYY-MM'."""
    year, month = parse_year_month(year_month)
    return f"{year:04d}-{month:02d}"


def days_in_month(year_month: str) -> int:
    year, month = parse_year_month(year_month)
    return calendar.monthrange(year, month)[1]


def first_day(year_month: str) -> date:
    year, month = parse_year_month(year_month)
    return date(year, month, 1)


def year_of(year_month: str) -> int:
    return parse_year_month(year_month)[0]
