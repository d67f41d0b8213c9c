# nutrascore/sales_dashboard/periods.py
"""
Period helpers.

A period is a calendar month identified by a ``YYYY-MM`` string. It scopes
KPI snapshots, salesperson snapshots, daily sales, billing statements and
seller targets.
"""

import re
from datetime import date, datetime
from typing import Optional, Tuple, Union

PERIOD_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def is_valid_period(period: Optional[str]) -> bool:
    """True if ``period`` is a well-formed ``YYYY-MM`` string."""
    return bool(period) and bool(PERIOD_PATTERN.match(period))


def parse_period(period: str) -> Tuple[int, int]:
    """Split ``YYYY-MM`` into (year, month). Raises ValueError if malformed."""
    if not is_valid_period(period):
        raise ValueError(f"Invalid period '{period}', expected YYYY-MM")
    year, month = period.split('-')
    return int(year), int(month)


def format_period(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def period_of(value: Union[date, datetime, str]) -> str:
    """Period containing a date (``date``, ``datetime`` or ISO string)."""
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    return format_period(value.year, value.month)


def current_period(today: date = None) -> str:
    today = today or date.today()
    return format_period(today.year, today.month)


def previous_period(period: str) -> str:
    """The month immediately before ``period``: '2025-01' -> '2024-12'."""
    year, month = parse_period(period)
    if month == 1:
        return format_period(year - 1, 12)
    return format_period(year, month - 1)


def next_period(period: str) -> str:
    year, month = parse_period(period)
    if month == 12:
        return format_period(year + 1, 1)
    return format_period(year, month + 1)


def period_bounds(period: str) -> Tuple[date, date]:
    """
    Half-open date range for a period.

    Returns:
        (first day of the month, first day of the following month)
    """
    year, month = parse_period(period)
    next_year, next_month = parse_period(next_period(period))
    return date(year, month, 1), date(next_year, next_month, 1)


def period_label(period: str) -> str:
    """Human label, e.g. '2025-04' -> 'Abr 2025'."""
    months = ['Jan', 'Fev', 'Mar', 'Abr', 'Mai', 'Jun',
              'Jul', 'Ago', 'Set', 'Out', 'Nov', 'Dez']
    year, month = parse_period(period)
    return f"{months[month - 1]} {year}"
