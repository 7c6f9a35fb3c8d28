from __future__ import annotations
import calendar
import re
from datetime import date, datetime, timedelta


def as_date(value: date | datetime | None) -> date:
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    return value


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def add_months(year: int, month: int, delta: int) -> tuple[int, int]:
    # month 1..12
    total = (year * 12 + (month - 1)) + delta
    y = total // 12
    m = (total % 12) + 1
    return y, m


MONTH_KEY_RE = re.compile(r"^\d{4}-\d{2}$")


def parse_month_key(key: str) -> tuple[int, int]:
    """'2025-06' -> (2025, 6). Anything else, including month 13, is a ValueError."""
    if not isinstance(key, str) or not MONTH_KEY_RE.match(key):
        raise ValueError(f"Mês inválido: {key!r}. Use o formato AAAA-MM")
    try:
        parsed = datetime.strptime(key, "%Y-%m")
    except ValueError:
        raise ValueError(f"Mês inválido: {key!r}. O mês vai de 01 a 12") from None
    return parsed.year, parsed.month


def month_start_end(year: int, month: int) -> tuple[date, date]:
    """
    Returns (start_date_inclusive, end_date_exclusive)
    """
    start = date(year, month, 1)
    ny, nm = add_months(year, month, 1)
    return start, date(ny, nm, 1)


def days_in_month(d: date) -> int:
    return calendar.monthrange(d.year, d.month)[1]


def start_of_week(d: date) -> date:
    """Most recent Sunday on or before d (weeks start on Sunday)."""
    return d - timedelta(days=(d.weekday() + 1) % 7)


def trailing_months(d: date, n: int) -> list[tuple[int, int]]:
    """
    The n calendar months before d's month, oldest first.
    trailing_months(date(2025, 3, 15), 2) -> [(2025, 1), (2025, 2)]
    """
    return [add_months(d.year, d.month, -i) for i in range(n, 0, -1)]
