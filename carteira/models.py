import uuid

from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, Numeric, String, UniqueConstraint
from .db import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, index=True)
    currency = Column(String(3), nullable=False, default="SEK")
    is_active = Column(Boolean, nullable=False, default=True)
    # recurring bill accounts (rent, subscriptions) carry a fixed monthly amount
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_amount = Column(Numeric(12, 2), nullable=True)
    recurring_start_date = Column(Date, nullable=True)
    recurring_end_date = Column(Date, nullable=True)


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, index=True)
    type = Column(String(7), nullable=False, index=True)      # "income" | "expense"
    icon = Column(String, nullable=True)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)
    type = Column(String(7), nullable=False, index=True)      # sign lives here, amount is always > 0
    amount = Column(Numeric(12, 2), nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)
    description = Column(String, nullable=False, default="")
    created_via = Column(String(10), nullable=False, default="web")   # "web" | "chat" | "import"


class ForecastSettings(Base):
    __tablename__ = "account_forecast_settings"

    account_id = Column(String(36), ForeignKey("accounts.id"), primary_key=True)
    monthly_budget = Column(Numeric(12, 2), nullable=True)
    alert_threshold = Column(Integer, nullable=False, default=80)   # percent 1-100
    budget_type = Column(String(8), nullable=False, default="flexible")
    auto_adjust = Column(Boolean, nullable=False, default=True)
    notifications_enabled = Column(Boolean, nullable=False, default=True)


class RecurringBillPayment(Base):
    __tablename__ = "recurring_bill_payments"
    __table_args__ = (UniqueConstraint("account_id", "month_year"),)

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    month_year = Column(String(7), nullable=False, index=True)      # YYYY-MM
    is_paid = Column(Boolean, nullable=False, default=False)
