import uuid


def create_account(client, name, **extra):
    r = client.post("/accounts", json={"name": name, **extra})
    assert r.status_code == 200, r.text
    return r.json()["id"]


def create_category(client, name, type_):
    r = client.post("/categories", json={"name": name, "type": type_})
    assert r.status_code == 200, r.text
    return r.json()["id"]


def add_expense(client, account_id, amount, day):
    r = client.post("/transactions", json={
        "account_id": account_id,
        "type": "expense",
        "amount": amount,
        "transaction_date": day,
    })
    assert r.status_code == 200, r.text
    return r.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_accounts_and_categories(client):
    create_account(client, "Trabalho")
    create_account(client, "Casa")
    create_category(client, "Mercado", "expense")
    create_category(client, "Salário", "income")

    assert [a["name"] for a in client.get("/accounts").json()] == ["Casa", "Trabalho"]
    assert [c["name"] for c in client.get("/categories", params={"type": "income"}).json()] == ["Salário"]
    assert client.post("/accounts", json={"name": "  "}).status_code == 400


def test_transactions_validation_and_filters(client):
    casa = create_account(client, "Casa")
    add_expense(client, casa, 10, "2025-06-01")
    add_expense(client, casa, 20, "2025-06-10")

    r = client.post("/transactions", json={
        "account_id": casa, "type": "expense", "amount": 0, "transaction_date": "2025-06-01",
    })
    assert r.status_code == 422

    r = client.post("/transactions", json={
        "account_id": "missing", "type": "expense", "amount": 5, "transaction_date": "2025-06-01",
    })
    assert r.status_code == 404

    rows = client.get("/transactions", params={"account_id": casa, "start": "2025-06-05"}).json()
    assert [t["amount"] for t in rows] == [20.0]
    assert rows[0]["created_via"] == "web"


def test_parse_resolves_ids(client):
    casa = create_account(client, "Casa")
    create_account(client, "Trabalho")
    mercado = create_category(client, "Mercado", "expense")

    body = client.post("/nlq/parse", json={"text": "gasto 50 mercado na conta casa"}).json()

    assert body["type"] == "expense"
    assert body["amount"] == 50
    assert body["account_id"] == casa
    assert body["category_id"] == mercado
    assert body["confidence"] == 1.0
    assert body["missing_fields"] == []


def test_chat_flow_creates_transaction(client):
    casa = create_account(client, "Casa")
    create_account(client, "Trabalho")
    create_category(client, "Mercado", "expense")
    conversation = f"web-{uuid.uuid4()}"

    r = client.post(f"/chat/{conversation}", json={"text": "gasto 30 mercado"})
    assert r.json()["status"] == "ask_account"
    assert r.json()["options"] == ["Casa", "Trabalho"]

    r = client.post(f"/chat/{conversation}", json={"text": "casa"})
    assert r.json()["status"] == "confirm"
    assert r.json()["parsed"]["account_id"] == casa

    r = client.post(f"/chat/{conversation}/confirm")
    assert r.status_code == 200, r.text
    tx = r.json()
    assert tx["amount"] == 30.0
    assert tx["account_id"] == casa
    assert tx["created_via"] == "chat"

    assert client.post(f"/chat/{conversation}/confirm").status_code == 404


def test_chat_help_for_unclear_text(client):
    create_account(client, "Casa")
    r = client.post(f"/chat/web-{uuid.uuid4()}", json={"text": "bom dia"})

    assert r.json()["status"] == "help"


def test_forecast_settings_defaults_and_upsert(client):
    casa = create_account(client, "Casa")

    defaults = client.get(f"/accounts/{casa}/forecast-settings").json()
    assert defaults["monthly_budget"] is None
    assert defaults["alert_threshold"] == 80
    assert defaults["auto_adjust"] is True

    r = client.put(f"/accounts/{casa}/forecast-settings", json={"monthly_budget": 1000, "alert_threshold": 90})
    assert r.status_code == 200
    assert r.json()["monthly_budget"] == 1000.0
    assert r.json()["alert_threshold"] == 90

    assert client.put(f"/accounts/{casa}/forecast-settings", json={"monthly_budget": -1}).status_code == 400
    assert client.put(f"/accounts/{casa}/forecast-settings", json={"alert_threshold": 0}).status_code == 422


def test_forecast_with_unpaid_recurring_bill(client):
    casa = create_account(client, "Casa")
    rent = create_account(client, "Aluguel", is_recurring=True, recurring_amount=100)
    client.put(f"/accounts/{casa}/forecast-settings", json={"monthly_budget": 1000})
    add_expense(client, casa, 850, "2025-06-02")
    add_expense(client, casa, 600, "2025-05-10")

    assert client.get("/recurring-bills/unpaid-total", params={"today": "2025-06-18"}).json() == {
        "month": "2025-06", "total": 100.0,
    }

    fc = client.get(f"/accounts/{casa}/forecast", params={"today": "2025-06-18"}).json()
    assert fc["status"] == "warning"
    assert fc["is_using_custom_budget"] is True
    assert fc["current_month_spent"] == 850.0
    assert fc["unpaid_recurring_bills_total"] == 100.0
    assert fc["remaining_this_month"] == 50.0
    assert fc["days_remaining"] == 12
    assert len(fc["history"]) == 6
    assert fc["history"][-1] == {"month": "2025-05", "spend": 600.0}

    r = client.put(f"/recurring-bills/{rent}/payments", json={"month": "2025-06"})
    assert r.json() == {"account_id": rent, "month": "2025-06", "is_paid": True}

    assert client.get("/recurring-bills/unpaid-total", params={"today": "2025-06-18"}).json()["total"] == 0
    fc = client.get(f"/accounts/{casa}/forecast", params={"today": "2025-06-18"}).json()
    assert fc["remaining_this_month"] == 150.0


def test_recurring_payment_validation(client):
    casa = create_account(client, "Casa")
    rent = create_account(client, "Aluguel", is_recurring=True, recurring_amount=100)

    assert client.put(f"/recurring-bills/{casa}/payments", json={"month": "2025-06"}).status_code == 400
    assert client.put(f"/recurring-bills/{rent}/payments", json={"month": "2025-13"}).status_code == 400


def test_forecast_message_and_unknown_account(client):
    casa = create_account(client, "Casa")
    body = client.get(f"/accounts/{casa}/forecast/message", params={"today": "2025-06-18"}).json()

    assert body["status"] == "no-budget"
    assert "Meta não definida" in body["text"]
    assert client.get("/accounts/missing/forecast").status_code == 404


def test_import_csv(client):
    create_account(client, "Casa")
    create_category(client, "Mercado", "expense")
    content = (
        "Data;Tipo;Categoria;Conta;Valor (SEK);Descrição\n"
        "2025-06-01;Saída;Mercado;Casa;125,50;ICA\n"
        "2025-06-02;Saída;Mercado;Banco;10,00;x\n"
    ).encode("utf-8")

    r = client.post("/transactions/import", files={"file": ("tx.csv", content, "text/csv")})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["inserted"] == 1
    assert body["rejected"] == 1
    assert body["errors"][0]["line"] == 3

    rows = client.get("/transactions").json()
    assert rows[0]["amount"] == 125.5
    assert rows[0]["created_via"] == "import"

    r = client.post("/transactions/import", files={"file": ("tx.txt", content, "text/plain")})
    assert r.status_code == 400
