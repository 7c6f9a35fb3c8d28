from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Sequence

from .categorizer import category_keywords, identify_category

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountRef:
    id: str
    name: str


@dataclass(frozen=True)
class CategoryRef:
    id: str
    name: str
    type: str               # "income" | "expense"


@dataclass(frozen=True)
class ParseContext:
    accounts: Sequence[AccountRef] = ()
    categories: Sequence[CategoryRef] = ()


@dataclass(frozen=True)
class ParsedTransaction:
    type: str | None            # "expense" | "income" | None
    amount: float | None
    currency: str | None        # "kr" | "brl" | None (display only)
    category: str | None        # canonical label, see categorizer.CATEGORY_KEYWORDS
    account: str | None         # account name as stored
    description: str
    confidence: float
    missing_fields: list[str] = field(default_factory=list)


# Income first: words like "conta" show up in both contexts.
INCOME_KEYWORDS = [
    "recebi", "receba", "receber", "receita", "entrada", "ganhei", "ganhar",
    "salário", "salario", "freelance", "freela", "investimento",
]
EXPENSE_KEYWORDS = [
    "gastei", "gasto", "gastar", "paguei", "pague", "pagar", "comprei", "comprar",
    "saída", "saida", "despesa", "fatura", "conta", "contas",
]

_NUMBER = r"\d+(?:[.,]\d+)?"
_LETTER_BEFORE = r"(?<![a-zà-ü])"
_LETTER_AFTER = r"(?![a-zà-ü])"

CURRENCY_RE = re.compile(_LETTER_BEFORE + r"(sek|kr|reais|real|brl|r\$)" + _LETTER_AFTER, re.IGNORECASE)

# Specific before generic; the order is the disambiguation.
AMOUNT_PATTERNS: list[tuple[re.Pattern, Callable[[re.Match], str]]] = [
    (re.compile(_LETTER_BEFORE + r"(?:r\$|sek|kr)\s*(" + _NUMBER + r")", re.IGNORECASE), lambda m: m.group(1)),
    (re.compile(r"(" + _NUMBER + r")\s*(?:sek|kr|reais|real|brl)" + _LETTER_AFTER, re.IGNORECASE), lambda m: m.group(1)),
    (re.compile(_NUMBER), lambda m: m.group(0)),
]

AMOUNT_TOKEN_RE = re.compile(
    r"(?:" + _LETTER_BEFORE + r"(?:r\$|sek|kr)\s*)?" + _NUMBER
    + r"(?:\s*(?:sek|kr|reais|real|brl|r\$)" + _LETTER_AFTER + r")?",
    re.IGNORECASE,
)

ACCOUNT_PATTERNS = [
    re.compile(r"\b(?:da\s+conta|na\s+conta|conta)\s+(\w+(?:\s+\w+)?)"),
    re.compile(r"(\w+(?:\s+\w+)?)\s+(?:da\s+)?conta$"),      # "... pessoal conta"
]
ACCOUNT_PHRASE_RE = re.compile(r"\b(?:da\s+conta|na\s+conta|conta)\s+\w+(?:\s+\w+)?", re.IGNORECASE)

FALLBACK_DESCRIPTION = "Transação"


def _keyword_re(keyword: str) -> re.Pattern:
    kw = re.escape(keyword)
    return re.compile(rf"\b{kw}\b|^{kw}\s+", re.IGNORECASE)


def extract_amount(text: str) -> tuple[float | None, str | None]:
    for pattern, extractor in AMOUNT_PATTERNS:
        for m in pattern.finditer(text):
            value = float(extractor(m).replace(",", "."))
            if value > 0:
                return value, detect_currency(text)
    return None, None


def detect_currency(text: str) -> str | None:
    m = CURRENCY_RE.search(text)
    if not m:
        return None
    token = m.group(1).lower()
    return "kr" if token in ("sek", "kr") else "brl"


def identify_type(text: str) -> str | None:
    t = text.lower()
    for kw in INCOME_KEYWORDS:
        if _keyword_re(kw).search(t):
            return "income"
    for kw in EXPENSE_KEYWORDS:
        if _keyword_re(kw).search(t):
            return "expense"
    return None


def identify_account(text: str, accounts: Sequence[AccountRef]) -> AccountRef | None:
    t = text.lower()

    # Connector phrases first ("na conta casa", "pessoal conta")
    for pattern in ACCOUNT_PATTERNS:
        m = pattern.search(t)
        if not m:
            continue
        candidate = m.group(1).strip()
        for acc in accounts:
            name = acc.name.lower().strip()
            if name and (name in candidate or candidate in name):
                return acc

    # Then any account whose significant words all appear in the text
    for acc in accounts:
        name = acc.name.lower().strip()
        if not name:
            continue
        words = [w for w in name.split() if len(w) > 2]
        if (words and all(w in t for w in words)) or name in t:
            return acc

    return None


def _strip_amount_token(desc: str, amount: float) -> str:
    # Only the token that produced the amount; other numbers are content
    for m in AMOUNT_TOKEN_RE.finditer(desc):
        number = re.search(_NUMBER, m.group(0)).group(0)
        if float(number.replace(",", ".")) == amount:
            return (desc[:m.start()] + " " + desc[m.end():]).strip()
    return desc


def extract_description(
    text: str,
    amount: float | None,
    category: str | None,
    account: str | None,
) -> str:
    desc = text.strip()

    if amount:
        desc = _strip_amount_token(desc, amount)

    # Type keywords only at the start, "conta" mid-sentence is content
    for kw in EXPENSE_KEYWORDS + INCOME_KEYWORDS:
        desc = re.sub(rf"^{re.escape(kw)}\s+", "", desc, flags=re.IGNORECASE).strip()

    desc = ACCOUNT_PHRASE_RE.sub("", desc).strip()
    if account:
        for word in account.lower().split():
            if len(word) > 2:
                desc = re.sub(rf"\b{re.escape(word)}\b", "", desc, flags=re.IGNORECASE).strip()

    for kw in category_keywords(category):
        desc = re.sub(rf"\b{re.escape(kw)}\b", "", desc, flags=re.IGNORECASE).strip()

    desc = re.sub(r"\s+", " ", desc).strip(" \t,.;:!?-")

    if len(desc) > 1:
        return desc
    if category:
        return category[0].upper() + category[1:]
    return FALLBACK_DESCRIPTION


def parse_message(text: str, context: ParseContext) -> ParsedTransaction:
    message = (text or "").strip()

    # Commands belong to the command dispatcher
    if message.startswith("/"):
        return ParsedTransaction(
            type=None, amount=None, currency=None, category=None,
            account=None, description="", confidence=0.0, missing_fields=[],
        )

    amount, currency = extract_amount(message)
    tx_type = identify_type(message)
    category = identify_category(message) if tx_type else None
    account = identify_account(message, context.accounts)
    account_name = account.name if account else None

    description = extract_description(message, amount, category, account_name)

    confidence = 0.0
    missing: list[str] = []
    multi_account = len(context.accounts) > 1

    if amount:
        confidence += 0.4
    else:
        missing.append("amount")

    if tx_type:
        confidence += 0.3
        if category:
            confidence += 0.2
        else:
            missing.append("category")
    else:
        missing.append("type")

    if multi_account:
        if account:
            confidence += 0.1
        else:
            missing.append("account")

    parsed = ParsedTransaction(
        type=tx_type,
        amount=amount,
        currency=currency,
        category=category,
        account=account_name,
        description=description,
        confidence=round(confidence, 2),
        missing_fields=missing,
    )
    logger.debug("parsed %r -> %s", message, parsed)
    return parsed


def format_amount(amount: float | None, currency: str | None) -> str:
    if not amount:
        return "[valor não identificado]"
    symbol = "kr" if currency == "kr" else "R$"
    return f"{amount:.2f}".replace(".", ",") + f" {symbol}"


def format_confirmation(parsed: ParsedTransaction) -> str:
    type_text = {"expense": "despesa", "income": "receita"}.get(parsed.type, "transação")
    category = parsed.category or "Outros"
    account = parsed.account or "[conta não especificada]"
    return (
        f"✅ Ok, devo registrar {type_text} de {format_amount(parsed.amount, parsed.currency)} "
        f'na categoria "{category}" na conta "{account}"?'
    )


def format_help(context: ParseContext) -> str:
    accounts = "\n".join(f"• {a.name}" for a in context.accounts) or "Nenhuma conta encontrada"
    expense = "\n".join(f"• {c.name}" for c in context.categories if c.type == "expense") or "Nenhuma categoria encontrada"
    income = "\n".join(f"• {c.name}" for c in context.categories if c.type == "income") or "Nenhuma categoria encontrada"

    return (
        "❓ *Não entendi sua mensagem*\n\n"
        "*Como usar:*\n"
        "Envie sua transação de forma simples:\n\n"
        "*Exemplos de despesas:*\n"
        '• "gastei 15 sek da conta casa no mercado"\n'
        '• "gasto 15 mercado conta pessoal"\n'
        '• "gasto internet 125 da conta pessoal"\n\n'
        "*Exemplos de receitas:*\n"
        '• "receita 5000 salario conta principal"\n'
        '• "recebi 200 freelance conta pessoal"\n\n'
        f"*Suas contas disponíveis:*\n{accounts}\n\n"
        f"*Categorias de despesa:*\n{expense}\n\n"
        f"*Categorias de receita:*\n{income}\n\n"
        "💡 *Dica:* Se não especificar a conta e tiver várias, eu vou perguntar qual usar."
    )
