from __future__ import annotations
from typing import Iterable

# Canonical category label -> synonyms. Order matters: first hit wins.
CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "mercado": ["mercado", "supermercado", "compras", "feira"],
    "alimentação": ["alimentação", "alimentacao", "comida", "restaurante", "lanche", "café", "cafe"],
    "transporte": ["transporte", "uber", "taxi", "gasolina", "combustível", "combustivel"],
    "utilidades": ["luz", "água", "agua", "internet", "telefone", "conta", "contas", "fatura"],
    "lazer": ["lazer", "cinema", "bar", "show", "evento"],
    "saúde": ["saúde", "saude", "farmácia", "farmacia", "médico", "medico", "hospital"],
    "salário": ["salário", "salario"],
    "freelance": ["freelance", "freela", "trabalho extra"],
    "investimento": ["investimento", "renda", "dividendos"],
    "outros": ["outros", "diversos", "geral"],
}


def category_keywords(label: str | None) -> list[str]:
    if not label:
        return []
    return CATEGORY_KEYWORDS.get(label.lower(), [])


def identify_category(text: str) -> str | None:
    """
    Returns the canonical label of the first synonym found in text, or None.
    The label is a lookup key, not a category id (see resolve_category_id).
    """
    t = (text or "").lower()
    for label, keywords in CATEGORY_KEYWORDS.items():
        for kw in keywords:
            if kw in t:
                return label
    return None


def resolve_category_id(label: str, tx_type: str, categories: Iterable) -> str | None:
    """
    Map a category label (parser output or a free-text guess) onto a category id.

    1. synonym table: a category whose name contains the canonical key
    2. any category whose name contains the label
    3. first category of the same type (weak default, not a real match)
    """
    cats = [c for c in categories if c.type == tx_type]
    needle = (label or "").strip().lower()

    if needle:
        for key, keywords in CATEGORY_KEYWORDS.items():
            if any(kw in needle for kw in keywords):
                for c in cats:
                    if key in c.name.lower():
                        return c.id

        for c in cats:
            if needle in c.name.lower():
                return c.id

    return cats[0].id if cats else None
