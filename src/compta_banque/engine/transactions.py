"""Saisie, modification et suppression manuelles de transactions."""

from __future__ import annotations

import dataclasses
import datetime
import logging
from decimal import Decimal

from compta_banque.engine.balance import BalanceCalculator
from compta_banque.hashing import TransactionHash
from compta_banque.models import (
    DEBIT,
    PAYMENT_METHODS,
    TRANSACTION_TYPES,
    AccountNotFoundError,
    CanonicalTransaction,
    DuplicateTransactionError,
    StorageError,
    StoredTransaction,
    TransactionNotFoundError,
)
from compta_banque.money import to_decimal
from compta_banque.storage.base import AccountRepository, TransactionRepository

logger = logging.getLogger(__name__)

_UNSET = object()


class TransactionService:
    def __init__(
        self,
        accounts: AccountRepository,
        transactions: TransactionRepository,
        balance: BalanceCalculator,
    ) -> None:
        self.accounts = accounts
        self.transactions = transactions
        self.balance = balance

    def create(
        self,
        account_id: int,
        date: datetime.date,
        label: str,
        amount: Decimal | int | float | str,
        type: str,
        merchant: str | None = None,
        payment_method: str | None = None,
        category: str | None = None,
    ) -> StoredTransaction:
        """Crée une transaction manuelle.

        Le montant saisi est pris en valeur absolue, le signe vient de
        ``type``. Chaque saisie reçoit une empreinte fraîche.

        Raises:
            DuplicateTransactionError: empreinte déjà présente.
            ValueError: montant nul, type ou moyen de paiement inconnu.
        """
        if self.accounts.get(account_id) is None:
            raise AccountNotFoundError(account_id)
        _check_payment_method(payment_method)

        magnitude = abs(to_decimal(amount))
        signed = -magnitude if type == DEBIT else magnitude
        tx_hash = TransactionHash.for_manual(date, label, signed)
        canonical = CanonicalTransaction(
            date=date,
            label=label.strip(),
            magnitude=magnitude,
            type=type,
            hash=tx_hash.value,
            merchant=merchant,
            payment_method=payment_method,
        )

        if self.transactions.find_by_hash(canonical.hash) is not None:
            raise DuplicateTransactionError()
        try:
            stored = self.transactions.create(
                account_id=account_id,
                date=canonical.date,
                label=canonical.label,
                magnitude=canonical.magnitude,
                type=canonical.type,
                hash=canonical.hash,
                merchant=canonical.merchant,
                payment_method=canonical.payment_method,
                category=category,
            )
        except StorageError as e:
            raise DuplicateTransactionError() from e

        logger.info("Transaction manuelle %d créée (%s %s)", stored.id, canonical.type, canonical.magnitude)
        self.balance.recalculate_and_persist(account_id)
        return stored

    def update(
        self,
        transaction_id: int,
        *,
        label: str | None = None,
        amount: Decimal | int | float | str | None = None,
        type: str | None = None,
        merchant: object = _UNSET,
        payment_method: object = _UNSET,
        category: object = _UNSET,
    ) -> StoredTransaction:
        """Modifie une transaction ; les champs non fournis sont conservés.

        ``merchant``, ``payment_method`` et ``category`` acceptent ``None``
        pour effacer la valeur.
        """
        current = self._get(transaction_id)

        new_type = current.type if type is None else type
        if new_type not in TRANSACTION_TYPES:
            raise ValueError(f"Type de transaction inconnu : {new_type!r}")
        new_magnitude = current.magnitude if amount is None else abs(to_decimal(amount))
        if payment_method is not _UNSET:
            _check_payment_method(payment_method)  # type: ignore[arg-type]
        # Revalidation via la forme canonique (montant > 0, arrondi au centime)
        canonical = CanonicalTransaction(
            date=current.date,
            label=current.label if label is None else label.strip(),
            magnitude=new_magnitude,
            type=new_type,
            hash=current.hash,
        )

        # Copie : l'objet stocké reste intact tant que tout n'est pas validé
        changes: dict[str, object] = {
            "label": canonical.label,
            "magnitude": canonical.magnitude,
            "type": canonical.type,
        }
        if merchant is not _UNSET:
            changes["merchant"] = merchant
        if payment_method is not _UNSET:
            changes["payment_method"] = payment_method
        if category is not _UNSET:
            changes["category"] = category
        transaction = dataclasses.replace(current, **changes)

        self.transactions.save(transaction)
        logger.info("Transaction %d modifiée", transaction_id)
        self.balance.recalculate_and_persist(transaction.account_id)
        return transaction

    def delete(self, transaction_id: int) -> None:
        transaction = self._get(transaction_id)
        self.transactions.delete(transaction_id)
        logger.info("Transaction %d supprimée", transaction_id)
        self.balance.recalculate_and_persist(transaction.account_id)

    def list_for_account(self, account_id: int) -> list[StoredTransaction]:
        return self.transactions.list_by_account(account_id)

    def _get(self, transaction_id: int) -> StoredTransaction:
        transaction = self.transactions.get(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction


def _check_payment_method(payment_method: str | None) -> None:
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise ValueError(f"Moyen de paiement inconnu : {payment_method!r}")
