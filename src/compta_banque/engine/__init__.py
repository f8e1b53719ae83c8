"""Moteur de rapprochement : solde, imports, transactions manuelles, comptes."""

from __future__ import annotations

from compta_banque.engine.accounts import AccountService
from compta_banque.engine.balance import BalanceCalculator, MonthlyStats, TotalStats
from compta_banque.engine.locks import AccountLocks
from compta_banque.engine.reconciler import ImportReconciler
from compta_banque.engine.transactions import TransactionService

__all__ = [
    "AccountLocks",
    "AccountService",
    "BalanceCalculator",
    "ImportReconciler",
    "MonthlyStats",
    "TotalStats",
    "TransactionService",
]
