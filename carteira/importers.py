import io
import logging
import re
from datetime import date

import pandas as pd

logger = logging.getLogger(__name__)

# Same layout the app exports: semicolon separated, comma decimal
COLUMNS = {
    "Data": "date",
    "Tipo": "type",
    "Categoria": "category",
    "Conta": "account",
    "Valor (SEK)": "amount",
    "Descrição": "description",
}
TYPE_LABELS = {"Entrada": "income", "Saída": "expense"}
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def read_transactions_csv(file_bytes: bytes) -> list[dict]:
    df = pd.read_csv(
        io.BytesIO(file_bytes),
        sep=";",
        dtype=str,
        encoding="utf-8-sig",
        keep_default_na=False,
    )
    df.columns = [c.strip() for c in df.columns]

    missing = set(COLUMNS) - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    # extra columns (ID, signed value) are ignored
    df = df[list(COLUMNS)].rename(columns=COLUMNS)
    for col in df.columns:
        df[col] = df[col].str.strip()

    logger.info("read %d rows from csv", len(df))
    return df.to_dict("records")


def _by_name(items, name: str):
    needle = (name or "").strip().lower()
    for item in items:
        if item.name.lower() == needle:
            return item
    return None


def row_to_transaction(row: dict, accounts, categories) -> dict:
    """
    Convert one CSV row. Problems are collected in "errors" instead of raised,
    so one bad line does not sink the whole file.
    """
    errors = []

    tx_type = TYPE_LABELS.get(row.get("type", ""))
    if tx_type is None:
        errors.append(f"Tipo inválido: {row.get('type')}. Deve ser \"Entrada\" ou \"Saída\"")
        tx_type = "expense"

    try:
        amount = float(row.get("amount", "").replace(",", "."))
    except ValueError:
        amount = None
    if amount is None or not amount > 0:
        errors.append(f"Valor inválido: {row.get('amount')}")

    account = _by_name(accounts, row.get("account", ""))
    if account is None:
        errors.append(f"Conta não encontrada: {row.get('account')}")

    category = _by_name(categories, row.get("category", ""))
    if category is None:
        errors.append(f"Categoria não encontrada: {row.get('category')}")

    tx_date = None
    raw_date = row.get("date", "")
    if DATE_RE.match(raw_date):
        try:
            tx_date = date.fromisoformat(raw_date)
        except ValueError:
            tx_date = None
    if tx_date is None:
        errors.append(f"Data inválida: {raw_date}. Use formato YYYY-MM-DD")

    return {
        "type": tx_type,
        "amount": amount,
        "category_id": category.id if category else None,
        "account_id": account.id if account else None,
        "transaction_date": tx_date,
        "description": row.get("description", ""),
        "errors": errors,
    }
