import logging
from datetime import date, timedelta

from fastapi import FastAPI, Depends, UploadFile, File, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from sqlalchemy import select

from .config import API_NAME, CORS_ORIGINS, CHAT_SESSION_TTL_MINUTES, LOG_LEVEL
from .db import Base, engine, get_db
from .models import Account, Category, Transaction, ForecastSettings, RecurringBillPayment
from .schemas import (
    AccountCreate,
    AccountOut,
    CategoryCreate,
    CategoryOut,
    TransactionCreate,
    TransactionOut,
    ForecastSettingsUpsert,
    ForecastSettingsOut,
    ParseRequest,
    ParsedTransactionOut,
    ChatMessageIn,
    ChatReplyOut,
    ForecastOut,
    MonthSpend,
    RecurringPaymentUpsert,
)
from .categorizer import resolve_category_id
from .chat import ChatAssistant, SessionStore, format_forecast
from .forecasting import HISTORY_MONTHS, forecast_account, monthly_expense_buckets
from .importers import read_transactions_csv, row_to_transaction
from .nlq_parser import AccountRef, CategoryRef, ParseContext, ParsedTransaction, parse_message
from .recurring import unpaid_recurring_total
from .utils_dates import add_months, month_key, parse_month_key, start_of_week

logging.basicConfig(level=LOG_LEVEL, format="[%(asctime)s] %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(title=API_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

assistant = ChatAssistant(SessionStore(ttl=timedelta(minutes=CHAT_SESSION_TTL_MINUTES)))


def get_account_or_404(db: Session, account_id: str) -> Account:
    acc = db.get(Account, account_id)
    if not acc or not acc.is_active:
        raise HTTPException(status_code=404, detail="Account not found")
    return acc


def parse_context(db: Session) -> ParseContext:
    accounts = db.execute(
        select(Account).where(Account.is_active.is_(True)).order_by(Account.name.asc())
    ).scalars().all()
    categories = db.execute(select(Category).order_by(Category.name.asc())).scalars().all()
    return ParseContext(
        accounts=[AccountRef(a.id, a.name) for a in accounts],
        categories=[CategoryRef(c.id, c.name, c.type) for c in categories],
    )


def parsed_out(parsed: ParsedTransaction, context: ParseContext) -> ParsedTransactionOut:
    category_id = None
    if parsed.type and parsed.category:
        category_id = resolve_category_id(parsed.category, parsed.type, context.categories)
    account_id = next((a.id for a in context.accounts if a.name == parsed.account), None)

    return ParsedTransactionOut(
        type=parsed.type,
        amount=parsed.amount,
        currency=parsed.currency,
        category=parsed.category,
        category_id=category_id,
        account=parsed.account,
        account_id=account_id,
        description=parsed.description,
        confidence=parsed.confidence,
        missing_fields=parsed.missing_fields,
    )


def unpaid_total_for(db: Session, today: date):
    accounts = db.execute(
        select(Account).where(Account.is_recurring.is_(True), Account.is_active.is_(True))
    ).scalars().all()
    payments = db.execute(
        select(RecurringBillPayment).where(RecurringBillPayment.month_year == month_key(today))
    ).scalars().all()
    return unpaid_recurring_total(accounts, payments, today)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/accounts", response_model=AccountOut)
def create_account(payload: AccountCreate, db: Session = Depends(get_db)):
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name cannot be empty")

    acc = Account(
        name=name,
        currency=payload.currency.strip().upper() or "SEK",
        is_recurring=payload.is_recurring,
        recurring_amount=payload.recurring_amount,
        recurring_start_date=payload.recurring_start_date,
        recurring_end_date=payload.recurring_end_date,
    )
    db.add(acc)
    db.commit()
    db.refresh(acc)
    return acc


@app.get("/accounts", response_model=list[AccountOut])
def list_accounts(db: Session = Depends(get_db)):
    stmt = select(Account).where(Account.is_active.is_(True)).order_by(Account.name.asc())
    return list(db.execute(stmt).scalars().all())


@app.post("/categories", response_model=CategoryOut)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name cannot be empty")

    cat = Category(name=name, type=payload.type, icon=payload.icon)
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


@app.get("/categories", response_model=list[CategoryOut])
def list_categories(type: str | None = None, db: Session = Depends(get_db)):
    stmt = select(Category).order_by(Category.name.asc())
    if type:
        stmt = stmt.where(Category.type == type)
    return list(db.execute(stmt).scalars().all())


@app.post("/transactions", response_model=TransactionOut)
def create_transaction(payload: TransactionCreate, db: Session = Depends(get_db)):
    get_account_or_404(db, payload.account_id)
    if payload.category_id and not db.get(Category, payload.category_id):
        raise HTTPException(status_code=404, detail="Category not found")

    tx = Transaction(**payload.model_dump(), created_via="web")
    db.add(tx)
    db.commit()
    db.refresh(tx)
    return tx


@app.get("/transactions", response_model=list[TransactionOut])
def list_transactions(
    db: Session = Depends(get_db),
    account_id: str | None = Query(default=None),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    type: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
):
    stmt = select(Transaction)

    if account_id:
        stmt = stmt.where(Transaction.account_id == account_id)
    if start:
        stmt = stmt.where(Transaction.transaction_date >= start)
    if end:
        stmt = stmt.where(Transaction.transaction_date <= end)
    if type:
        stmt = stmt.where(Transaction.type == type)

    stmt = stmt.order_by(Transaction.transaction_date.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


@app.post("/transactions/import", response_model=dict)
async def import_transactions(file: UploadFile = File(...), db: Session = Depends(get_db)):
    if not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Please upload a .csv file")

    content = await file.read()
    try:
        rows = read_transactions_csv(content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    accounts = db.execute(select(Account).where(Account.is_active.is_(True))).scalars().all()
    categories = db.execute(select(Category)).scalars().all()

    inserted = 0
    errors = []
    for i, row in enumerate(rows):
        data = row_to_transaction(row, accounts, categories)
        if data["errors"]:
            # header is line 1
            errors.append({"line": i + 2, "errors": data["errors"]})
            continue

        data.pop("errors")
        db.add(Transaction(**data, created_via="import"))
        inserted += 1

    db.commit()
    logger.info("import %s: inserted=%d rejected=%d", file.filename, inserted, len(errors))
    return {"inserted": inserted, "rejected": len(errors), "errors": errors}


@app.post("/nlq/parse", response_model=ParsedTransactionOut)
def nlq_parse(payload: ParseRequest, db: Session = Depends(get_db)):
    context = parse_context(db)
    return parsed_out(parse_message(payload.text, context), context)


@app.post("/chat/{conversation_id}", response_model=ChatReplyOut)
def chat_message(conversation_id: str, payload: ChatMessageIn, db: Session = Depends(get_db)):
    context = parse_context(db)
    reply = assistant.handle_message(conversation_id, payload.text, context)
    return ChatReplyOut(
        status=reply.status,
        text=reply.text,
        options=reply.options,
        parsed=parsed_out(reply.parsed, context) if reply.parsed else None,
    )


@app.post("/chat/{conversation_id}/confirm", response_model=TransactionOut)
def chat_confirm(conversation_id: str, db: Session = Depends(get_db)):
    context = parse_context(db)
    pending = assistant.confirm(conversation_id, context)
    if pending is None:
        raise HTTPException(status_code=404, detail="Nothing pending for this conversation")

    tx = Transaction(
        account_id=pending.account_id,
        category_id=pending.category_id,
        type=pending.type,
        amount=pending.amount,
        transaction_date=date.today(),
        description=pending.description,
        created_via="chat",
    )
    db.add(tx)
    db.commit()
    db.refresh(tx)
    logger.info("chat %s: created transaction %s", conversation_id, tx.id)
    return tx


@app.get("/accounts/{account_id}/forecast-settings", response_model=ForecastSettingsOut)
def get_forecast_settings(account_id: str, db: Session = Depends(get_db)):
    get_account_or_404(db, account_id)
    settings = db.get(ForecastSettings, account_id)
    if settings is None:
        # no row means defaults: no custom budget, auto_adjust on
        return ForecastSettingsOut(account_id=account_id)
    return settings


@app.put("/accounts/{account_id}/forecast-settings", response_model=ForecastSettingsOut)
def upsert_forecast_settings(account_id: str, payload: ForecastSettingsUpsert, db: Session = Depends(get_db)):
    get_account_or_404(db, account_id)
    if payload.monthly_budget is not None and payload.monthly_budget < 0:
        raise HTTPException(status_code=400, detail="monthly_budget cannot be negative")

    settings = db.get(ForecastSettings, account_id)
    if settings is None:
        settings = ForecastSettings(account_id=account_id)
        db.add(settings)

    for field, value in payload.model_dump().items():
        setattr(settings, field, value)

    db.commit()
    db.refresh(settings)
    return settings


def compute_forecast(db: Session, account_id: str, today: date):
    y, m = add_months(today.year, today.month, -HISTORY_MONTHS)
    window_start = min(date(y, m, 1), start_of_week(today))

    txs = list(
        db.execute(
            select(Transaction).where(
                Transaction.account_id == account_id,
                Transaction.transaction_date >= window_start,
            )
        ).scalars().all()
    )
    settings = db.get(ForecastSettings, account_id)

    fc = forecast_account(
        account_id,
        txs,
        txs,
        settings=settings,
        now=today,
        unpaid_recurring_total=unpaid_total_for(db, today),
    )
    return fc, monthly_expense_buckets(txs, today, account_id=account_id)


@app.get("/accounts/{account_id}/forecast", response_model=ForecastOut)
def account_forecast(account_id: str, today: date | None = None, db: Session = Depends(get_db)):
    get_account_or_404(db, account_id)
    today = today or date.today()
    fc, history = compute_forecast(db, account_id, today)

    return ForecastOut(
        account_id=account_id,
        monthly_estimate=float(fc.monthly_estimate),
        weekly_estimate=float(fc.weekly_estimate),
        current_week_spent=float(fc.current_week_spent),
        current_month_spent=float(fc.current_month_spent),
        remaining_this_month=float(fc.remaining_this_month),
        days_remaining=fc.days_remaining,
        projected_monthly_total=float(fc.projected_monthly_total),
        status=fc.status,
        confidence=fc.confidence,
        is_using_custom_budget=fc.is_using_custom_budget,
        unpaid_recurring_bills_total=float(fc.unpaid_recurring_bills_total),
        history=[MonthSpend(month=p.month, spend=float(p.spend)) for p in history],
    )


@app.get("/accounts/{account_id}/forecast/message")
def account_forecast_message(account_id: str, today: date | None = None, db: Session = Depends(get_db)):
    acc = get_account_or_404(db, account_id)
    fc, _ = compute_forecast(db, account_id, today or date.today())
    currency = "kr" if acc.currency.upper() in ("SEK", "KR") else "brl"
    return {"account_id": account_id, "status": fc.status, "text": format_forecast(acc.name, fc, currency)}


@app.put("/recurring-bills/{account_id}/payments", response_model=dict)
def mark_recurring_payment(account_id: str, payload: RecurringPaymentUpsert, db: Session = Depends(get_db)):
    acc = get_account_or_404(db, account_id)
    if not acc.is_recurring:
        raise HTTPException(status_code=400, detail="Account is not a recurring bill")
    try:
        parse_month_key(payload.month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    payment = db.execute(
        select(RecurringBillPayment).where(
            RecurringBillPayment.account_id == account_id,
            RecurringBillPayment.month_year == payload.month,
        )
    ).scalar_one_or_none()

    if payment is None:
        payment = RecurringBillPayment(account_id=account_id, month_year=payload.month)
        db.add(payment)
    payment.is_paid = payload.is_paid

    db.commit()
    return {"account_id": account_id, "month": payload.month, "is_paid": payment.is_paid}


@app.get("/recurring-bills/unpaid-total")
def recurring_unpaid_total(today: date | None = None, db: Session = Depends(get_db)):
    today = today or date.today()
    return {"month": month_key(today), "total": float(unpaid_total_for(db, today))}
