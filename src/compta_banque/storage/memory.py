"""Dépôts en mémoire, partagés derrière un verrou unique."""

from __future__ import annotations

import datetime
import itertools
import logging
import threading
from dataclasses import dataclass, field
from decimal import Decimal

from compta_banque.models import Account, ImportBatch, StorageError, StoredTransaction

logger = logging.getLogger(__name__)


@dataclass
class _Store:
    accounts: dict[int, Account] = field(default_factory=dict)
    transactions: dict[int, StoredTransaction] = field(default_factory=dict)
    batches: dict[int, ImportBatch] = field(default_factory=dict)
    hashes: dict[str, int] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock)
    account_ids: itertools.count = field(default_factory=lambda: itertools.count(1))
    transaction_ids: itertools.count = field(default_factory=lambda: itertools.count(1))
    batch_ids: itertools.count = field(default_factory=lambda: itertools.count(1))


class InMemoryAccountRepository:
    def __init__(self, store: _Store) -> None:
        self._store = store

    def create(self, name: str, currency: str = "EUR", is_default: bool = False) -> Account:
        with self._store.lock:
            account = Account(
                id=next(self._store.account_ids),
                name=name,
                currency=currency,
                is_default=is_default,
            )
            self._store.accounts[account.id] = account
            return account

    def get(self, account_id: int) -> Account | None:
        return self._store.accounts.get(account_id)

    def get_default(self) -> Account | None:
        with self._store.lock:
            return next((a for a in self._store.accounts.values() if a.is_default), None)

    def save(self, account: Account) -> None:
        with self._store.lock:
            self._store.accounts[account.id] = account


class InMemoryTransactionRepository:
    def __init__(self, store: _Store) -> None:
        self._store = store

    def create(
        self,
        account_id: int,
        date: datetime.date,
        label: str,
        magnitude: Decimal,
        type: str,
        hash: str,
        import_batch_id: int | None = None,
        merchant: str | None = None,
        payment_method: str | None = None,
        category: str | None = None,
        external_id: str | None = None,
    ) -> StoredTransaction:
        with self._store.lock:
            if hash in self._store.hashes:
                raise StorageError(f"Empreinte déjà présente : {hash}")
            transaction = StoredTransaction(
                id=next(self._store.transaction_ids),
                account_id=account_id,
                date=date,
                label=label,
                magnitude=magnitude,
                type=type,
                hash=hash,
                import_batch_id=import_batch_id,
                merchant=merchant,
                payment_method=payment_method,
                category=category,
                external_id=external_id,
            )
            self._store.transactions[transaction.id] = transaction
            self._store.hashes[hash] = transaction.id
            return transaction

    def get(self, transaction_id: int) -> StoredTransaction | None:
        return self._store.transactions.get(transaction_id)

    def find_by_hash(self, hash: str) -> StoredTransaction | None:
        with self._store.lock:
            transaction_id = self._store.hashes.get(hash)
            return self._store.transactions.get(transaction_id) if transaction_id is not None else None

    def save(self, transaction: StoredTransaction) -> None:
        with self._store.lock:
            owner = self._store.hashes.get(transaction.hash)
            if owner is not None and owner != transaction.id:
                raise StorageError(f"Empreinte déjà présente : {transaction.hash}")
            previous = self._store.transactions.get(transaction.id)
            if previous is not None and previous.hash != transaction.hash:
                self._store.hashes.pop(previous.hash, None)
            self._store.transactions[transaction.id] = transaction
            self._store.hashes[transaction.hash] = transaction.id

    def delete(self, transaction_id: int) -> bool:
        with self._store.lock:
            transaction = self._store.transactions.pop(transaction_id, None)
            if transaction is None:
                return False
            self._store.hashes.pop(transaction.hash, None)
            return True

    def list_by_account(self, account_id: int) -> list[StoredTransaction]:
        """Transactions du compte, triées par date puis identifiant."""
        with self._store.lock:
            rows = [t for t in self._store.transactions.values() if t.account_id == account_id]
        return sorted(rows, key=lambda t: (t.date, t.id))

    def count(self, account_id: int) -> int:
        with self._store.lock:
            return sum(1 for t in self._store.transactions.values() if t.account_id == account_id)

    def sum_by_type(
        self,
        account_id: int,
        type: str,
        start: datetime.date | None = None,
        end: datetime.date | None = None,
    ) -> Decimal:
        total = Decimal("0")
        with self._store.lock:
            for t in self._store.transactions.values():
                if t.account_id != account_id or t.type != type:
                    continue
                if start is not None and t.date < start:
                    continue
                if end is not None and t.date > end:
                    continue
                total += t.magnitude
        return total

    def delete_by_account(self, account_id: int) -> int:
        with self._store.lock:
            ids = [t.id for t in self._store.transactions.values() if t.account_id == account_id]
            for transaction_id in ids:
                self.delete(transaction_id)
            return len(ids)


class InMemoryBatchRepository:
    def __init__(self, store: _Store) -> None:
        self._store = store

    def create(self, account_id: int, filename: str) -> ImportBatch:
        with self._store.lock:
            batch = ImportBatch(id=next(self._store.batch_ids), account_id=account_id, filename=filename)
            self._store.batches[batch.id] = batch
            return batch

    def get(self, batch_id: int) -> ImportBatch | None:
        return self._store.batches.get(batch_id)

    def save(self, batch: ImportBatch) -> None:
        with self._store.lock:
            self._store.batches[batch.id] = batch

    def list_by_account(self, account_id: int) -> list[ImportBatch]:
        with self._store.lock:
            return [b for b in self._store.batches.values() if b.account_id == account_id]

    def delete(self, batch_id: int) -> bool:
        with self._store.lock:
            if self._store.batches.pop(batch_id, None) is None:
                return False
            for transaction in self._store.transactions.values():
                if transaction.import_batch_id == batch_id:
                    transaction.import_batch_id = None
            return True

    def delete_by_account(self, account_id: int) -> int:
        with self._store.lock:
            ids = [b.id for b in self._store.batches.values() if b.account_id == account_id]
            for batch_id in ids:
                self.delete(batch_id)
            return len(ids)


class InMemoryLedger:
    """Regroupe les trois dépôts en mémoire sur un même stockage."""

    def __init__(self) -> None:
        store = _Store()
        self.accounts = InMemoryAccountRepository(store)
        self.transactions = InMemoryTransactionRepository(store)
        self.batches = InMemoryBatchRepository(store)
