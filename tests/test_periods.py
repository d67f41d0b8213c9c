from datetime import date, datetime

import pytest

from nutrascore.sales_dashboard.filters import recent_periods
from nutrascore.sales_dashboard.periods import (
    current_period,
    is_valid_period,
    next_period,
    parse_period,
    period_bounds,
    period_label,
    period_of,
    previous_period,
)


def test_is_valid_period():
    assert is_valid_period('2025-04')
    assert not is_valid_period('2025-13')
    assert not is_valid_period('2025-4')
    assert not is_valid_period('')
    assert not is_valid_period(None)


def test_parse_period_rejects_malformed():
    assert parse_period('2024-11') == (2024, 11)
    with pytest.raises(ValueError):
        parse_period('11/2024')


def test_previous_and_next_period_cross_year():
    assert previous_period('2025-01') == '2024-12'
    assert previous_period('2025-07') == '2025-06'
    assert next_period('2024-12') == '2025-01'


def test_period_bounds_is_half_open_month():
    assert period_bounds('2024-02') == (date(2024, 2, 1), date(2024, 3, 1))
    assert period_bounds('2024-12') == (date(2024, 12, 1), date(2025, 1, 1))


def test_period_of_accepts_dates_and_strings():
    assert period_of(date(2025, 3, 31)) == '2025-03'
    assert period_of(datetime(2025, 3, 1, 12, 0)) == '2025-03'
    assert period_of('2025-03-15') == '2025-03'


def test_current_period_and_label():
    assert current_period(date(2025, 4, 3)) == '2025-04'
    assert period_label('2025-04') == 'Abr 2025'


def test_recent_periods_newest_first():
    periods = recent_periods(3, today=date(2025, 2, 10))
    assert periods == ['2025-02', '2025-01', '2024-12']
