# nutrascore/sales_dashboard/filters.py
"""
Sidebar filter components shared by the dashboard pages.
"""

from datetime import date
from typing import List, Optional

import streamlit as st

from .periods import current_period, period_label, previous_period

PERIOD_CHOICES = 12


def recent_periods(count: int = PERIOD_CHOICES, today: date = None) -> List[str]:
    """The current month and the ``count - 1`` months before it, newest first."""
    periods = [current_period(today)]
    while len(periods) < count:
        periods.append(previous_period(periods[-1]))
    return periods


def period_selector(
    key: str,
    default: Optional[str] = None,
    allow_latest: bool = False,
    label: str = "📅 Mês"
) -> Optional[str]:
    """
    Sidebar month picker.

    Args:
        key: Widget key (unique per page)
        default: Period selected initially (added to the list when older)
        allow_latest: Offer "Mais recente", which returns None so the reads
            resolve the latest available period themselves

    Returns:
        Selected ``YYYY-MM`` period, or None for the latest one
    """
    options: List[Optional[str]] = recent_periods()
    if default and default not in options:
        options.append(default)
    if allow_latest:
        options.insert(0, None)

    index = options.index(default) if default in options else 0

    return st.sidebar.selectbox(
        label,
        options=options,
        index=index,
        format_func=lambda p: "Mais recente" if p is None else period_label(p),
        key=key,
    )
