"""Calcul du solde d'un compte à partir des transactions stockées.

Invariant central : ``balance == initial_balance + Σcrédits − Σ|débits|``
après chaque appel à ``recalculate_and_persist``.
"""

from __future__ import annotations

import calendar
import datetime
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from compta_banque.engine.locks import AccountLocks
from compta_banque.models import CENT, CREDIT, DEBIT, Account, AccountNotFoundError
from compta_banque.money import Money
from compta_banque.storage.base import AccountRepository, TransactionRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class MonthlyStats:
    year: int
    month: int
    income: Decimal
    expenses: Decimal
    savings: Decimal
    savings_rate: Decimal


@dataclass(frozen=True)
class TotalStats:
    balance: Decimal
    initial_balance: Decimal
    total_credits: Decimal
    total_debits: Decimal
    transaction_count: int


def savings_rate(income: Decimal, savings: Decimal) -> Decimal:
    """Taux d'épargne en pourcentage, jamais négatif, ``0`` sans revenus."""
    if income <= 0:
        return ZERO
    rate = (savings / income * 100).quantize(CENT, rounding=ROUND_HALF_UP)
    return max(ZERO, rate)


class BalanceCalculator:
    def __init__(
        self,
        accounts: AccountRepository,
        transactions: TransactionRepository,
        locks: AccountLocks,
    ) -> None:
        self.accounts = accounts
        self.transactions = transactions
        self.locks = locks

    def _account(self, account_id: int) -> Account:
        account = self.accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def calculate(self, account_id: int) -> Money:
        """Solde calculé : solde initial + crédits − débits.

        Un calcul invalide (valeur non finie, opération décimale impossible)
        retombe sur le solde initial.
        """
        account = self._account(account_id)
        initial = Money(account.initial_balance, account.currency)
        try:
            credits = self.transactions.sum_by_type(account_id, CREDIT)
            debits = self.transactions.sum_by_type(account_id, DEBIT)
            balance = account.initial_balance + credits - abs(debits)
            if not balance.is_finite():
                raise InvalidOperation(f"Solde non fini : {balance}")
            return Money(balance, account.currency)
        except (InvalidOperation, ValueError, TypeError) as e:
            logger.warning("Calcul du solde impossible pour le compte %d : %s", account_id, e)
            return initial

    def recalculate_and_persist(self, account_id: int) -> Decimal:
        """Recalcule puis enregistre le solde ; retourne la valeur écrite."""
        with self.locks.hold(account_id):
            balance = self.calculate(account_id).amount
            account = self._account(account_id)
            account.balance = balance
            self.accounts.save(account)
        logger.info("Solde du compte %d recalculé : %s", account_id, balance)
        return balance

    def monthly_stats(self, account_id: int, year: int, month: int) -> MonthlyStats:
        """Revenus, dépenses et épargne d'un mois civil (bornes incluses)."""
        last_day = calendar.monthrange(year, month)[1]
        start = datetime.date(year, month, 1)
        end = datetime.date(year, month, last_day)

        income = self.transactions.sum_by_type(account_id, CREDIT, start, end)
        expenses = abs(self.transactions.sum_by_type(account_id, DEBIT, start, end))
        savings = income - expenses

        return MonthlyStats(
            year=year,
            month=month,
            income=income,
            expenses=expenses,
            savings=savings,
            savings_rate=savings_rate(income, savings),
        )

    def total_stats(self, account_id: int) -> TotalStats:
        account = self._account(account_id)
        return TotalStats(
            balance=account.balance,
            initial_balance=account.initial_balance,
            total_credits=self.transactions.sum_by_type(account_id, CREDIT),
            total_debits=abs(self.transactions.sum_by_type(account_id, DEBIT)),
            transaction_count=self.transactions.count(account_id),
        )

