from __future__ import annotations
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from .utils_dates import as_date, days_in_month, month_start_end, start_of_week, trailing_months

logger = logging.getLogger(__name__)

HISTORY_MONTHS = 6
WEEKS_PER_MONTH = Decimal("4.33")
DEFAULT_ALERT_THRESHOLD = 80
UNDER_BUDGET_RATIO = Decimal("0.7")

ZERO = Decimal("0")


@dataclass(frozen=True)
class MonthPoint:
    month: str          # 'YYYY-MM'
    spend: Decimal      # positive spend amount (expenses only)


@dataclass(frozen=True)
class BudgetSettings:
    monthly_budget: float | None = None
    alert_threshold: int = DEFAULT_ALERT_THRESHOLD
    budget_type: str = "flexible"       # "fixed" | "flexible"
    auto_adjust: bool = True
    notifications_enabled: bool = True


@dataclass(frozen=True)
class SpendingForecast:
    monthly_estimate: Decimal
    weekly_estimate: Decimal
    current_week_spent: Decimal
    current_month_spent: Decimal
    remaining_this_month: Decimal
    days_remaining: int
    projected_monthly_total: Decimal
    status: str                 # "on-track" | "warning" | "over-budget" | "under-budget" | "no-budget"
    confidence: str             # "high" | "medium" | "low"
    is_using_custom_budget: bool
    unpaid_recurring_bills_total: Decimal = ZERO


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def tx_date(tx) -> date:
    d = tx.transaction_date
    if isinstance(d, datetime):
        return d.date()
    if isinstance(d, str):
        return date.fromisoformat(d[:10])
    return d


def _expenses(transactions: Iterable, account_id: str | None) -> list:
    return [
        tx for tx in transactions
        if tx.type == "expense" and (account_id is None or tx.account_id == account_id)
    ]


def _sum(transactions: Iterable) -> Decimal:
    return sum((to_decimal(tx.amount) for tx in transactions), ZERO)


def monthly_expense_buckets(
    transactions: Iterable,
    now: date | datetime | None = None,
    months: int = HISTORY_MONTHS,
    account_id: str | None = None,
) -> list[MonthPoint]:
    """
    Expense totals for the `months` calendar months before now's month, oldest first.
    Months without transactions are kept as zero.
    """
    today = as_date(now)
    keys = trailing_months(today, months)
    window_start = date(keys[0][0], keys[0][1], 1) if keys else today
    window_end = date(today.year, today.month, 1)

    per_month = defaultdict(lambda: ZERO)
    for tx in _expenses(transactions, account_id):
        d = tx_date(tx)
        if window_start <= d < window_end:
            per_month[(d.year, d.month)] += to_decimal(tx.amount)

    return [MonthPoint(f"{y:04d}-{m:02d}", per_month[(y, m)]) for y, m in keys]


def forecast_confidence(buckets: list[MonthPoint]) -> str:
    """
    Rewards both data volume and consistency:
    < 2 non-zero months -> low, 2..3 -> medium, otherwise by coefficient of variation.
    """
    values = [p.spend for p in buckets if p.spend > 0]
    if len(values) < 2:
        return "low"
    if len(values) < 4:
        return "medium"

    # Active months measured against the full-window average
    mean = sum((p.spend for p in buckets), ZERO) / Decimal(len(buckets))
    variance = sum(((v - mean) ** 2 for v in values), ZERO) / Decimal(len(values))
    cv = variance.sqrt() / mean if mean > 0 else Decimal("1")

    if cv < Decimal("0.5"):
        return "high"
    if cv < Decimal("1.0"):
        return "medium"
    return "low"


def budget_status(spent: Decimal, estimate: Decimal, alert_threshold: int | float | None) -> str:
    threshold = to_decimal(alert_threshold or DEFAULT_ALERT_THRESHOLD)

    if estimate == 0:
        return "no-budget"
    if spent > estimate:
        return "over-budget"
    if spent > estimate * threshold / Decimal("100"):
        return "warning"
    if spent < estimate * UNDER_BUDGET_RATIO:
        return "under-budget"
    return "on-track"


def forecast_account(
    account_id: str,
    transactions: Iterable,
    historical_transactions: Iterable,
    settings=None,
    now: date | datetime | None = None,
    unpaid_recurring_total: Any = 0,
) -> SpendingForecast:
    """
    Spending forecast for one account.

    transactions: current period (at least this month and this week)
    historical_transactions: trailing window, the six months before this one
    settings: anything with monthly_budget / alert_threshold / auto_adjust, or None
    unpaid_recurring_total: recurring bills still due this month, subtracted from the remaining budget
    """
    today = as_date(now)
    current = _expenses(transactions, account_id)

    month_start, next_month = month_start_end(today.year, today.month)
    current_month_spent = _sum(tx for tx in current if month_start <= tx_date(tx) < next_month)

    buckets = monthly_expense_buckets(historical_transactions, today, account_id=account_id)
    average = sum((p.spend for p in buckets), ZERO) / Decimal(HISTORY_MONTHS)

    monthly_budget = getattr(settings, "monthly_budget", None)
    auto_adjust = getattr(settings, "auto_adjust", True)

    # Priority: user budget, then history (if auto_adjust), then nothing
    is_custom = False
    if monthly_budget:
        estimate = to_decimal(monthly_budget)
        is_custom = True
    elif auto_adjust is not False and average > 0:
        estimate = average
    else:
        estimate = ZERO

    weekly_estimate = estimate / WEEKS_PER_MONTH if estimate > 0 else ZERO

    week_start = start_of_week(today)
    current_week_spent = _sum(tx for tx in current if tx_date(tx) >= week_start)

    month_days = days_in_month(today)
    days_remaining = month_days - today.day
    projected = current_month_spent * Decimal(month_days) / Decimal(max(1, today.day))

    unpaid = to_decimal(unpaid_recurring_total)
    remaining = max(ZERO, estimate - current_month_spent - unpaid)

    result = SpendingForecast(
        monthly_estimate=estimate,
        weekly_estimate=weekly_estimate,
        current_week_spent=current_week_spent,
        current_month_spent=current_month_spent,
        remaining_this_month=remaining,
        days_remaining=days_remaining,
        projected_monthly_total=projected,
        status=budget_status(current_month_spent, estimate, getattr(settings, "alert_threshold", None)),
        confidence=forecast_confidence(buckets),
        is_using_custom_budget=is_custom,
        unpaid_recurring_bills_total=unpaid,
    )
    logger.debug("forecast account=%s status=%s estimate=%s", account_id, result.status, estimate)
    return result
