from datetime import date
from typing import Literal
from pydantic import BaseModel, Field

TxType = Literal["income", "expense"]


class AccountCreate(BaseModel):
    name: str
    currency: str = "SEK"
    is_recurring: bool = False
    recurring_amount: float | None = None
    recurring_start_date: date | None = None
    recurring_end_date: date | None = None


class AccountOut(BaseModel):
    id: str
    name: str
    currency: str
    is_active: bool
    is_recurring: bool
    recurring_amount: float | None = None
    recurring_start_date: date | None = None
    recurring_end_date: date | None = None

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    name: str
    type: TxType
    icon: str | None = None


class CategoryOut(BaseModel):
    id: str
    name: str
    type: TxType
    icon: str | None = None

    class Config:
        from_attributes = True


class TransactionCreate(BaseModel):
    account_id: str
    category_id: str | None = None
    type: TxType
    amount: float = Field(gt=0)
    transaction_date: date
    description: str = ""


class TransactionOut(BaseModel):
    id: str
    account_id: str
    category_id: str | None = None
    type: TxType
    amount: float
    transaction_date: date
    description: str
    created_via: str

    class Config:
        from_attributes = True


class ForecastSettingsUpsert(BaseModel):
    monthly_budget: float | None = None
    alert_threshold: int = Field(default=80, ge=1, le=100)
    budget_type: Literal["fixed", "flexible"] = "flexible"
    auto_adjust: bool = True
    notifications_enabled: bool = True


class ForecastSettingsOut(ForecastSettingsUpsert):
    account_id: str

    class Config:
        from_attributes = True


class ParseRequest(BaseModel):
    text: str


class ParsedTransactionOut(BaseModel):
    type: TxType | None = None
    amount: float | None = None
    currency: str | None = None
    category: str | None = None
    category_id: str | None = None
    account: str | None = None
    account_id: str | None = None
    description: str
    confidence: float
    missing_fields: list[str]


class ChatMessageIn(BaseModel):
    text: str


class ChatReplyOut(BaseModel):
    status: str
    text: str
    options: list[str] = []
    parsed: ParsedTransactionOut | None = None


class MonthSpend(BaseModel):
    month: str
    spend: float


class ForecastOut(BaseModel):
    account_id: str
    monthly_estimate: float
    weekly_estimate: float
    current_week_spent: float
    current_month_spent: float
    remaining_this_month: float
    days_remaining: int
    projected_monthly_total: float
    status: str
    confidence: str
    is_using_custom_budget: bool
    unpaid_recurring_bills_total: float
    history: list[MonthSpend]


class RecurringPaymentUpsert(BaseModel):
    month: str          # YYYY-MM
    is_paid: bool = True
