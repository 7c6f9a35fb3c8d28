from carteira.categorizer import category_keywords, identify_category, resolve_category_id
from carteira.nlq_parser import CategoryRef

CATEGORIES = [
    CategoryRef("e1", "Alimentação", "expense"),
    CategoryRef("e2", "Supermercado", "expense"),
    CategoryRef("e3", "Outros", "expense"),
    CategoryRef("i1", "Salário", "income"),
    CategoryRef("i2", "Freelance", "income"),
]


def test_identify_category_first_synonym_wins():
    assert identify_category("gasto 50 supermercado") == "mercado"
    assert identify_category("uber para o trabalho") == "transporte"
    assert identify_category("nada aqui") is None
    assert identify_category("") is None


def test_category_keywords_by_label():
    assert "farmácia" in category_keywords("saúde")
    assert category_keywords(None) == []
    assert category_keywords("inexistente") == []


def test_resolve_through_synonym_table():
    assert resolve_category_id("mercado", "expense", CATEGORIES) == "e2"
    assert resolve_category_id("salário", "income", CATEGORIES) == "i1"
    assert resolve_category_id("outros", "expense", CATEGORIES) == "e3"


def test_resolve_by_name_substring():
    assert resolve_category_id("free", "income", CATEGORIES) == "i2"


def test_resolve_respects_type():
    # "outros" only exists as an expense category
    assert resolve_category_id("outros", "income", CATEGORIES) == "i1"


def test_resolve_falls_back_to_first_of_type():
    assert resolve_category_id("pizza", "expense", CATEGORIES) == "e1"
    assert resolve_category_id("", "expense", CATEGORIES) == "e1"


def test_resolve_without_categories_of_type():
    expenses_only = [c for c in CATEGORIES if c.type == "expense"]
    assert resolve_category_id("salário", "income", expenses_only) is None
