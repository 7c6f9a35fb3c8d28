from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from carteira.recurring import is_active_in_month, unpaid_recurring_total


@dataclass
class Bill:
    id: str
    recurring_amount: object = None
    is_recurring: bool = True
    is_active: bool = True
    recurring_start_date: date | None = None
    recurring_end_date: date | None = None


@dataclass
class Payment:
    account_id: str
    month_year: str
    is_paid: bool = True


TODAY = date(2025, 6, 18)


def test_unpaid_total_skips_paid_inactive_and_out_of_window():
    accounts = [
        Bill("rent", Decimal("9500")),
        Bill("netflix", Decimal("120")),
        Bill("gym", Decimal("300"), recurring_start_date=date(2025, 7, 1)),
        Bill("old", Decimal("200"), recurring_end_date=date(2025, 5, 31)),
        Bill("ending", Decimal("50"), recurring_end_date=date(2025, 6, 10)),
        Bill("closed", Decimal("999"), is_active=False),
        Bill("wallet", Decimal("10"), is_recurring=False),
        Bill("zero", Decimal("0")),
        Bill("no-amount"),
    ]
    payments = [
        Payment("netflix", "2025-06"),
        Payment("rent", "2025-05"),
        Payment("ending", "2025-06", is_paid=False),
    ]

    assert unpaid_recurring_total(accounts, payments, TODAY) == Decimal("9550")


def test_nothing_recurring_is_zero():
    assert unpaid_recurring_total([], [], TODAY) == 0


def test_active_window_is_month_granular():
    bill = Bill("x", 1, recurring_start_date=date(2025, 6, 20), recurring_end_date=date(2025, 8, 2))

    assert not is_active_in_month(bill, date(2025, 5, 1))
    assert is_active_in_month(bill, date(2025, 6, 1))
    assert is_active_in_month(bill, date(2025, 8, 1))
    assert not is_active_in_month(bill, date(2025, 9, 1))
