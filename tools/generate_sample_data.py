# tools/generate_sample_data.py
from __future__ import annotations

import argparse
import csv
import random
from datetime import date, timedelta

# Columns match carteira.importers (the app's own export layout)
FIELDNAMES = ["Data", "Tipo", "Categoria", "Conta", "Valor (SEK)", "Descrição"]

MERCHANTS = [
    ("ICA", "Mercado", (80, 600)),
    ("Lidl", "Mercado", (50, 400)),
    ("Feira", "Mercado", (40, 200)),
    ("SL", "Transporte", (40, 120)),
    ("Uber", "Transporte", (90, 300)),
    ("Café", "Alimentação", (35, 90)),
    ("Restaurante", "Alimentação", (120, 450)),
    ("Apotek", "Saúde", (60, 350)),
    ("Cinema", "Lazer", (120, 260)),
    ("Internet", "Utilidades", (299, 399)),
]


def daterange(start: date, end: date):
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def money(amount: float) -> str:
    return f"{amount:.2f}".replace(".", ",")


def build_rows(start: date, end: date, account: str = "Casa", seed: int = 7) -> list[dict]:
    rng = random.Random(seed)
    rows = []

    salary_amount = 32000
    rent_amount = 9500

    for d in daterange(start, end):
        # Salary on the 25th, rent on the 1st
        if d.day == 25:
            rows.append({"Data": d.isoformat(), "Tipo": "Entrada", "Categoria": "Salário",
                         "Conta": account, "Valor (SEK)": money(salary_amount), "Descrição": "Salário"})
        if d.day == 1:
            rows.append({"Data": d.isoformat(), "Tipo": "Saída", "Categoria": "Utilidades",
                         "Conta": account, "Valor (SEK)": money(rent_amount), "Descrição": "Aluguel"})

        # Weekends a bit busier
        count = 0 if rng.random() < 0.35 else 1
        if d.weekday() >= 5 and rng.random() < 0.35:
            count += 1

        for _ in range(count):
            merchant, cat, (lo, hi) = rng.choice(MERCHANTS)
            rows.append({"Data": d.isoformat(), "Tipo": "Saída", "Categoria": cat,
                         "Conta": account, "Valor (SEK)": money(round(rng.uniform(lo, hi), 2)),
                         "Descrição": merchant})

    rows.sort(key=lambda r: r["Data"])
    return rows


def write_csv(rows: list[dict], out: str) -> None:
    # utf-8-sig: the BOM keeps spreadsheet apps happy with "Descrição"
    with open(out, "w", newline="", encoding="utf-8-sig") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES, delimiter=";")
        writer.writeheader()
        writer.writerows(rows)


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Generate a sample transactions CSV for /transactions/import")
    parser.add_argument("--start", type=date.fromisoformat, default=date(2025, 1, 1))
    parser.add_argument("--end", type=date.fromisoformat, default=date(2025, 12, 31))
    parser.add_argument("--account", default="Casa")
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--out", default="data/generated.csv")
    args = parser.parse_args(argv)

    rows = build_rows(args.start, args.end, account=args.account, seed=args.seed)
    write_csv(rows, args.out)

    months = {r["Data"][:7] for r in rows}
    print(f"Wrote {len(rows)} rows to {args.out}")
    print(f"Months covered: {min(months)} .. {max(months)}")


if __name__ == "__main__":
    main()
