from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from .categorizer import resolve_category_id
from .forecasting import SpendingForecast
from .nlq_parser import (
    AccountRef,
    ParseContext,
    ParsedTransaction,
    extract_amount,
    format_amount,
    format_confirmation,
    format_help,
    identify_account,
    parse_message,
)

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(minutes=10)
MIN_CONFIDENCE = 0.5

HELP_COMMANDS = {"/ajuda", "/help", "/start"}
CANCEL_COMMANDS = {"/cancelar", "/cancel"}


@dataclass
class ChatSession:
    conversation_id: str
    parsed: ParsedTransaction
    account_id: str | None
    expires_at: datetime

    def expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class PendingTransaction:
    type: str
    amount: float
    account_id: str
    category_id: str | None
    description: str
    currency: str | None = None


@dataclass(frozen=True)
class ChatReply:
    status: str         # "help" | "ask_account" | "confirm" | "cancelled" | "unknown_command" | "no_accounts"
    text: str
    parsed: ParsedTransaction | None = None
    options: list[str] = field(default_factory=list)


class SessionStore:
    """In-memory conversation state with an explicit expiry per entry."""

    def __init__(self, ttl: timedelta = DEFAULT_SESSION_TTL):
        self.ttl = ttl
        self._sessions: dict[str, ChatSession] = {}
        self._lock = threading.Lock()

    def _purge(self, now: datetime) -> None:
        # caller holds the lock
        expired = [cid for cid, s in self._sessions.items() if s.expired(now)]
        for cid in expired:
            del self._sessions[cid]
        if expired:
            logger.debug("dropped %d expired chat sessions", len(expired))

    def save(self, conversation_id: str, parsed: ParsedTransaction, account_id: str | None, now: datetime) -> ChatSession:
        session = ChatSession(conversation_id, parsed, account_id, now + self.ttl)
        with self._lock:
            self._purge(now)
            self._sessions[conversation_id] = session
        return session

    def get(self, conversation_id: str, now: datetime) -> ChatSession | None:
        with self._lock:
            self._purge(now)
            return self._sessions.get(conversation_id)

    def clear(self, conversation_id: str) -> None:
        with self._lock:
            self._sessions.pop(conversation_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def _find_account(name: str | None, accounts) -> AccountRef | None:
    if not name:
        return None
    for acc in accounts:
        if acc.name == name:
            return acc
    return None


def ask_account_text(parsed: ParsedTransaction, accounts) -> str:
    lines = "\n".join(f"• {a.name}" for a in accounts)
    return (
        "❓ Qual conta você quer usar?\n\n"
        f"Valor: {format_amount(parsed.amount, parsed.currency)}\n"
        f"Descrição: {parsed.description}\n\n"
        f"{lines}"
    )


STATUS_LABELS = {
    "under-budget": ("🟢", "Dentro do orçamento"),
    "on-track": ("🟡", "Em andamento"),
    "warning": ("🟠", "Atenção"),
    "over-budget": ("🚨", "Acima do orçamento"),
    "no-budget": ("⚪", "Meta não definida"),
}


def _money(value, currency: str | None) -> str:
    symbol = "kr" if currency == "kr" else "R$"
    return f"{float(value):.2f}".replace(".", ",") + f" {symbol}"


def format_forecast(account_name: str, forecast: SpendingForecast, currency: str | None = "kr") -> str:
    emoji, label = STATUS_LABELS.get(forecast.status, ("🟡", forecast.status))
    text = f"🎯 *Meta Mensal - {account_name}*\n\n"

    if forecast.status == "no-budget":
        text += f"{emoji} *{label}*\n\n"
        text += "💡 Configure uma meta no dashboard para acompanhar seu progresso."
        return text

    text += f"💰 *Meta:* {_money(forecast.monthly_estimate, currency)}\n"
    text += f"💸 *Gasto este mês:* {_money(forecast.current_month_spent, currency)}\n"
    text += f"✅ *Você ainda tem:* {_money(forecast.remaining_this_month, currency)}\n"
    text += f"📈 *Projeção do mês:* {_money(forecast.projected_monthly_total, currency)}\n"
    text += f"📅 *{forecast.days_remaining} dias restantes*\n\n"
    text += f"{emoji} *{label}*"
    return text


class ChatAssistant:
    """
    Conversation flow for chat-style entry (web widget and bot).
    Nothing is ever committed here: confirm() hands back a PendingTransaction
    and the caller persists it.
    """

    def __init__(self, store: SessionStore | None = None):
        self.store = store if store is not None else SessionStore()

    def handle_message(
        self,
        conversation_id: str,
        text: str,
        context: ParseContext,
        now: datetime | None = None,
    ) -> ChatReply:
        now = now or datetime.now()
        text = (text or "").strip()

        if text.startswith("/"):
            return self._handle_command(conversation_id, text, context)

        session = self.store.get(conversation_id, now)
        # An account answer carries no amount; a new transaction replaces the pending one
        if session and session.account_id is None and extract_amount(text)[0] is None:
            acc = identify_account(text, context.accounts)
            if acc:
                parsed = replace(session.parsed, account=acc.name)
                self.store.save(conversation_id, parsed, acc.id, now)
                logger.info("chat %s: account %s chosen for pending transaction", conversation_id, acc.id)
                return ChatReply("confirm", format_confirmation(parsed), parsed)

        parsed = parse_message(text, context)
        logger.info(
            "chat %s: parsed confidence=%.2f missing=%s",
            conversation_id, parsed.confidence, parsed.missing_fields,
        )

        if parsed.confidence < MIN_CONFIDENCE or not parsed.amount or not parsed.type:
            self.store.clear(conversation_id)
            return ChatReply("help", format_help(context), parsed)

        if not context.accounts:
            self.store.clear(conversation_id)
            return ChatReply("no_accounts", "❌ Nenhuma conta encontrada.\n\n💡 Crie uma conta primeiro.", parsed)

        account = _find_account(parsed.account, context.accounts)
        if account is None and len(context.accounts) == 1:
            account = context.accounts[0]
            parsed = replace(parsed, account=account.name)

        if account is None:
            self.store.save(conversation_id, parsed, None, now)
            return ChatReply(
                "ask_account",
                ask_account_text(parsed, context.accounts),
                parsed,
                options=[a.name for a in context.accounts],
            )

        self.store.save(conversation_id, parsed, account.id, now)
        return ChatReply("confirm", format_confirmation(parsed), parsed)

    def _handle_command(self, conversation_id: str, text: str, context: ParseContext) -> ChatReply:
        command = text.split()[0].lower()
        if command in HELP_COMMANDS:
            return ChatReply("help", format_help(context))
        if command in CANCEL_COMMANDS:
            self.store.clear(conversation_id)
            return ChatReply("cancelled", "❌ Operação cancelada.")
        logger.info("chat %s: unknown command %s", conversation_id, command)
        return ChatReply("unknown_command", f"❓ Comando desconhecido: {command}. Use /ajuda.")

    def confirm(
        self,
        conversation_id: str,
        context: ParseContext,
        now: datetime | None = None,
    ) -> PendingTransaction | None:
        now = now or datetime.now()
        session = self.store.get(conversation_id, now)
        if session is None or session.account_id is None:
            return None

        parsed = session.parsed
        if not parsed.amount or not parsed.type:
            self.store.clear(conversation_id)
            return None

        # No category found -> "outros" (or the first category of that type)
        category_id = resolve_category_id(parsed.category or "outros", parsed.type, context.categories)
        self.store.clear(conversation_id)

        return PendingTransaction(
            type=parsed.type,
            amount=parsed.amount,
            account_id=session.account_id,
            category_id=category_id,
            description=parsed.description,
            currency=parsed.currency,
        )
