"""Export Excel du grand livre et résumé console."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path

import pandas as pd

from compta_banque.models import Account, ImportResult, StoredTransaction
from compta_banque.money import Money

TRANSACTIONS_COLUMNS = [
    "date",
    "label",
    "type",
    "amount",
    "merchant",
    "payment_method",
    "category",
    "import_batch_id",
]

MONTHLY_COLUMNS = [
    "month",
    "income",
    "expenses",
    "savings",
    "savings_rate",
]


def _transactions_frame(transactions: list[StoredTransaction]) -> pd.DataFrame:
    rows = [
        {
            "date": t.date,
            "label": t.label,
            "type": t.type,
            "amount": float(t.amount),
            "merchant": t.merchant,
            "payment_method": t.payment_method,
            "category": t.category,
            "import_batch_id": t.import_batch_id,
        }
        for t in transactions
    ]
    return pd.DataFrame(rows, columns=TRANSACTIONS_COLUMNS)


def _monthly_frame(df_transactions: pd.DataFrame) -> pd.DataFrame:
    """Revenus, dépenses et épargne par mois civil."""
    if df_transactions.empty:
        return pd.DataFrame(columns=MONTHLY_COLUMNS)

    df = df_transactions.assign(
        month=pd.to_datetime(df_transactions["date"]).dt.strftime("%Y-%m"),
        income=df_transactions["amount"].clip(lower=0),
        expenses=(-df_transactions["amount"]).clip(lower=0),
    )
    monthly = df.groupby("month", as_index=False)[["income", "expenses"]].sum()
    monthly["savings"] = monthly["income"] - monthly["expenses"]
    rate = (monthly["savings"] / monthly["income"].where(monthly["income"] > 0) * 100).fillna(0.0)
    monthly["savings_rate"] = rate.clip(lower=0).round(2)
    for column in ("income", "expenses", "savings"):
        monthly[column] = monthly[column].round(2)
    return monthly[MONTHLY_COLUMNS]


def _write(target: Path | BytesIO, transactions: list[StoredTransaction]) -> None:
    df_transactions = _transactions_frame(transactions)
    df_monthly = _monthly_frame(df_transactions)

    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        df_transactions.to_excel(writer, sheet_name="Transactions", index=False)
        df_monthly.to_excel(writer, sheet_name="Mensuel", index=False)


def export_ledger(transactions: list[StoredTransaction], output_path: Path) -> None:
    """Exporte les transactions et la synthèse mensuelle dans un fichier Excel."""
    _write(output_path, transactions)


def export_to_bytes(transactions: list[StoredTransaction]) -> BytesIO:
    """Comme ``export_ledger`` mais en mémoire, pour un téléchargement HTTP."""
    buffer = BytesIO()
    _write(buffer, transactions)
    buffer.seek(0)
    return buffer


def print_summary(result: ImportResult, account: Account) -> None:
    """Affiche un résumé en console."""
    print("=== Résumé ===")
    print(f"Batch : {result.batch_id}")
    print(f"Transactions importées : {result.imported}")
    print(f"Doublons ignorés : {result.skipped}")
    print(f"Solde initial : {Money(account.initial_balance, account.currency).format()}")
    print(f"Solde : {Money(account.balance, account.currency).format()}")

    if not result.errors:
        print("Aucune erreur")
    else:
        print(f"Erreurs : {len(result.errors)}")
        for message in result.errors:
            print(f"  {message}")
