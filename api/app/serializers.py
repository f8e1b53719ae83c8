"""Conversion des dataclasses métier vers les structures JSON de l'API."""

from __future__ import annotations

from compta_banque.engine.balance import MonthlyStats, TotalStats
from compta_banque.models import BankConnectionResult, ExternalAccount, ImportResult, StoredTransaction


def serialize_import_result(result: ImportResult) -> dict[str, object]:
    return {
        "imported": result.imported,
        "skipped": result.skipped,
        "errors": list(result.errors),
        "batch_id": result.batch_id,
    }


def serialize_transaction(tx: StoredTransaction) -> dict[str, object]:
    """Sérialise une transaction ; ``amount`` est signé (négatif pour un débit)."""
    return {
        "id": tx.id,
        "date": tx.date.isoformat(),
        "label": tx.label,
        "amount": float(tx.amount),
        "type": tx.type,
        "merchant": tx.merchant,
        "payment_method": tx.payment_method,
        "category": tx.category,
    }


def serialize_external_account(account: ExternalAccount) -> dict[str, object]:
    return {
        "id": account.id,
        "name": account.name,
        "type": account.type,
        "iban": account.iban,
        "balance": float(account.balance) if account.balance is not None else None,
        "currency": account.currency,
    }


def serialize_connection(result: BankConnectionResult) -> dict[str, object]:
    return {
        "access_token": result.access_token,
        "expires_in": result.expires_in,
        "accounts": [serialize_external_account(a) for a in result.accounts],
        "import": serialize_import_result(result.import_result),
    }


def serialize_stats(stats: TotalStats) -> dict[str, object]:
    return {
        "balance": float(stats.balance),
        "initial_balance": float(stats.initial_balance),
        "total_credits": float(stats.total_credits),
        "total_debits": float(stats.total_debits),
        "transaction_count": stats.transaction_count,
    }


def serialize_monthly(stats: MonthlyStats) -> dict[str, object]:
    return {
        "year": stats.year,
        "month": stats.month,
        "income": float(stats.income),
        "expenses": float(stats.expenses),
        "savings": float(stats.savings),
        "savings_rate": float(stats.savings_rate),
    }
