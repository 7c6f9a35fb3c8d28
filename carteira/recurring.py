from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from .forecasting import ZERO, to_decimal
from .utils_dates import as_date, month_key, month_start_end


def _as_day(value) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    return value


def is_active_in_month(account, month_start: date) -> bool:
    """Recurring bills count from their start month through their end month."""
    start = _as_day(getattr(account, "recurring_start_date", None))
    if start and month_start < date(start.year, start.month, 1):
        return False

    end = _as_day(getattr(account, "recurring_end_date", None))
    if end:
        _, after_end = month_start_end(end.year, end.month)
        if month_start >= after_end:
            return False

    return True


def paid_accounts(payments: Iterable, month: str) -> set:
    return {p.account_id for p in payments if p.month_year == month and p.is_paid}


def unpaid_recurring_total(accounts: Iterable, payments: Iterable, today: date | None = None) -> Decimal:
    """
    Sum of recurring amounts still unpaid for today's month.
    Inactive accounts, non-recurring accounts and non-positive amounts never count.
    """
    today = as_date(today)
    month = month_key(today)
    month_start = date(today.year, today.month, 1)
    paid = paid_accounts(payments, month)

    total = ZERO
    for acc in accounts:
        if not getattr(acc, "is_recurring", False) or not getattr(acc, "is_active", True):
            continue
        amount = to_decimal(getattr(acc, "recurring_amount", None))
        if amount <= 0 or acc.id in paid:
            continue
        if not is_active_in_month(acc, month_start):
            continue
        total += amount

    return total
