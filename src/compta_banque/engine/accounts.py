"""Gestion du compte : création par défaut, réglages, statistiques, réinitialisation."""

from __future__ import annotations

import datetime
import logging
from decimal import Decimal

from compta_banque.engine.balance import BalanceCalculator, MonthlyStats, TotalStats
from compta_banque.engine.locks import AccountLocks
from compta_banque.models import Account, AccountNotFoundError
from compta_banque.money import to_decimal
from compta_banque.storage.base import AccountRepository, BatchRepository, TransactionRepository

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_NAME = "Compte Principal"


class AccountService:
    def __init__(
        self,
        accounts: AccountRepository,
        transactions: TransactionRepository,
        batches: BatchRepository,
        balance: BalanceCalculator,
        locks: AccountLocks,
        default_name: str = DEFAULT_ACCOUNT_NAME,
        currency: str = "EUR",
    ) -> None:
        self.accounts = accounts
        self.transactions = transactions
        self.batches = batches
        self.balance = balance
        self.locks = locks
        self.default_name = default_name
        self.currency = currency

    def get(self, account_id: int) -> Account:
        account = self.accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def get_or_create_default(self) -> Account:
        """Compte par défaut, créé à la première demande."""
        account = self.accounts.get_default()
        if account is None:
            account = self.accounts.create(self.default_name, currency=self.currency, is_default=True)
            logger.info("Compte par défaut créé : %s (%s)", account.name, account.currency)
        return account

    def update_initial_balance(self, account_id: int, initial_balance: Decimal | int | float | str) -> Account:
        with self.locks.hold(account_id):
            account = self.get(account_id)
            account.initial_balance = to_decimal(initial_balance)
            self.accounts.save(account)
            self.balance.recalculate_and_persist(account_id)
        return account

    def update_settings(
        self,
        account_id: int,
        *,
        initial_balance: Decimal | int | float | str | None = None,
        name: str | None = None,
        bank: str | None = None,
    ) -> Account:
        """Met à jour nom, banque et solde initial ; le solde est recalculé si besoin."""
        with self.locks.hold(account_id):
            account = self.get(account_id)
            if name is not None and name.strip():
                account.name = name.strip()
            if bank is not None:
                account.bank = bank.strip() or None
            if initial_balance is not None:
                account.initial_balance = to_decimal(initial_balance)
            self.accounts.save(account)
            if initial_balance is not None:
                self.balance.recalculate_and_persist(account_id)
        return account

    def update_bank_info(
        self,
        account_id: int,
        *,
        bank: str | None,
        name: str | None = None,
        account_number: str | None = None,
        currency: str | None = None,
    ) -> Account:
        """Recopie les informations du compte rapporté par le flux bancaire.

        Nom, numéro et devise absents du flux conservent leur valeur actuelle.
        """
        with self.locks.hold(account_id):
            account = self.get(account_id)
            account.bank = bank
            if name:
                account.name = name
            if account_number:
                account.account_number = account_number
            if currency:
                account.currency = currency
            self.accounts.save(account)
        return account

    def reset_account(self, account_id: int) -> Account:
        """Supprime transactions et batches ; solde ramené au solde initial."""
        with self.locks.hold(account_id):
            account = self.get(account_id)
            deleted = self.transactions.delete_by_account(account_id)
            self.batches.delete_by_account(account_id)
            account.balance = account.initial_balance
            account.bank = None
            account.account_number = None
            self.accounts.save(account)
        logger.info("Compte %d réinitialisé : %d transactions supprimées", account_id, deleted)
        return account

    def get_stats(self, account_id: int) -> TotalStats:
        self.get(account_id)
        return self.balance.total_stats(account_id)

    def get_monthly_stats(
        self,
        account_id: int,
        year: int | None = None,
        month: int | None = None,
    ) -> MonthlyStats:
        """Statistiques d'un mois ; mois courant par défaut."""
        self.get(account_id)
        today = datetime.date.today()
        return self.balance.monthly_stats(
            account_id,
            year if year is not None else today.year,
            month if month is not None else today.month,
        )
