"""Import d'un lot de transactions canoniques dans un compte.

Cycle d'un batch : ``processing`` → ``completed`` (même avec des erreurs de
ligne) ou ``failed`` (source illisible, API injoignable).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from compta_banque.engine.balance import BalanceCalculator
from compta_banque.engine.locks import AccountLocks
from compta_banque.models import (
    CREDIT,
    DEBIT,
    AccountNotFoundError,
    BatchStateError,
    CanonicalTransaction,
    ImportBatch,
    ImportResult,
    StorageError,
)
from compta_banque.storage.base import AccountRepository, BatchRepository, TransactionRepository

logger = logging.getLogger(__name__)


class ImportReconciler:
    """Déduplication par empreinte, persistance ligne à ligne, recalcul du solde."""

    def __init__(
        self,
        accounts: AccountRepository,
        transactions: TransactionRepository,
        batches: BatchRepository,
        balance: BalanceCalculator,
        locks: AccountLocks,
    ) -> None:
        self.accounts = accounts
        self.transactions = transactions
        self.batches = batches
        self.balance = balance
        self.locks = locks

    # --- Batches ---

    def open_batch(self, account_id: int, filename: str) -> ImportBatch:
        """Crée un batch en état ``processing``."""
        if self.accounts.get(account_id) is None:
            raise AccountNotFoundError(account_id)
        batch = self.batches.create(account_id, filename)
        batch.mark_processing()
        self.batches.save(batch)
        logger.info("Batch %d ouvert pour %s (compte %d)", batch.id, filename, account_id)
        return batch

    def fail_batch(self, batch: ImportBatch, message: str) -> None:
        """Passe le batch en ``failed`` ; les transactions déjà créées restent valides."""
        batch.mark_failed(message)
        self.batches.save(batch)
        logger.error("Batch %d en échec : %s", batch.id, message)

    # --- Import ---

    def import_into_batch(
        self,
        batch: ImportBatch,
        transactions: Iterable[CanonicalTransaction],
    ) -> ImportResult:
        """Importe les transactions dans un batch ouvert puis le clôture.

        Doublon (empreinte connue) : compté en ``skipped``. Échec de
        persistance d'une ligne : message ajouté aux erreurs, la boucle
        continue. Le solde est recalculé même sans ligne importée.
        """
        if batch.status.is_terminal:
            raise BatchStateError(f"Batch {batch.id} déjà terminé ({batch.status.value})")

        imported = 0
        skipped = 0
        errors: list[str] = []

        with self.locks.hold(batch.account_id):
            for transaction in transactions:
                if self.transactions.find_by_hash(transaction.hash) is not None:
                    skipped += 1
                    continue
                try:
                    self.transactions.create(
                        account_id=batch.account_id,
                        date=transaction.date,
                        label=transaction.label,
                        magnitude=transaction.magnitude,
                        type=transaction.type,
                        hash=transaction.hash,
                        import_batch_id=batch.id,
                        merchant=transaction.merchant,
                        payment_method=transaction.payment_method,
                        external_id=transaction.external_id,
                    )
                    imported += 1
                except StorageError as e:
                    errors.append(f"Erreur: {transaction.label} - {e}")
                    logger.warning("Transaction %s non enregistrée : %s", transaction.label, e)

            batch.mark_completed(imported, skipped)
            self.batches.save(batch)
            self.balance.recalculate_and_persist(batch.account_id)

        logger.info(
            "Batch %d terminé : %d importées, %d doublons, %d erreurs",
            batch.id,
            imported,
            skipped,
            len(errors),
        )
        return ImportResult(imported=imported, skipped=skipped, errors=errors, batch_id=batch.id)

    def import_transactions(
        self,
        account_id: int,
        filename: str,
        transactions: Iterable[CanonicalTransaction],
    ) -> ImportResult:
        """Ouvre un batch et y importe les transactions."""
        batch = self.open_batch(account_id, filename)
        return self.import_into_batch(batch, transactions)

    # --- Solde bancaire réel ---

    def reconcile_bank_balance(self, account_id: int, bank_balance: Decimal) -> Decimal | None:
        """Recale le solde initial pour que le solde calculé égale le solde bancaire.

        ``nouveau_solde_initial = B − Σcrédits + Σdébits`` sur toutes les
        transactions du compte, puis ``balance = B``. Un échec est journalisé
        et n'invalide jamais l'import.

        Returns:
            Le nouveau solde initial, ``None`` en cas d'échec.
        """
        try:
            with self.locks.hold(account_id):
                account = self.accounts.get(account_id)
                if account is None:
                    raise AccountNotFoundError(account_id)
                credits = self.transactions.sum_by_type(account_id, CREDIT)
                debits = abs(self.transactions.sum_by_type(account_id, DEBIT))
                new_initial = bank_balance - credits + debits

                account.initial_balance = new_initial
                account.balance = bank_balance
                self.accounts.save(account)
        except Exception:
            logger.exception("Recalage du solde initial impossible pour le compte %d", account_id)
            return None

        logger.info(
            "Solde initial du compte %d recalé à %s (solde bancaire %s)",
            account_id,
            new_initial,
            bank_balance,
        )
        return new_initial
