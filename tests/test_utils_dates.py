from datetime import date, datetime

import pytest

from carteira.utils_dates import (
    add_months,
    as_date,
    days_in_month,
    month_key,
    month_start_end,
    parse_month_key,
    start_of_week,
    trailing_months,
)


def test_add_months_crosses_years():
    assert add_months(2025, 1, -1) == (2024, 12)
    assert add_months(2024, 12, 1) == (2025, 1)
    assert add_months(2025, 6, -6) == (2024, 12)


def test_parse_month_key():
    assert parse_month_key("2025-06") == (2025, 6)
    for bad in ["2025-13", "2025-00", "2025-6", "25-06", "2025/06", "2025-06-01", "abcd-ef", None]:
        with pytest.raises(ValueError):
            parse_month_key(bad)


def test_month_bounds():
    assert month_start_end(2024, 12) == (date(2024, 12, 1), date(2025, 1, 1))
    assert days_in_month(date(2024, 2, 10)) == 29
    assert month_key(date(2025, 3, 9)) == "2025-03"


def test_weeks_start_on_sunday():
    # 2025-06-15 is a Sunday
    assert start_of_week(date(2025, 6, 15)) == date(2025, 6, 15)
    assert start_of_week(date(2025, 6, 18)) == date(2025, 6, 15)
    assert start_of_week(date(2025, 6, 21)) == date(2025, 6, 15)


def test_trailing_months_oldest_first():
    assert trailing_months(date(2025, 2, 10), 3) == [(2024, 11), (2024, 12), (2025, 1)]


def test_as_date():
    assert as_date(datetime(2025, 6, 18, 23, 59)) == date(2025, 6, 18)
    assert as_date(date(2025, 6, 18)) == date(2025, 6, 18)
