"""Interfaces des dépôts de persistance.

Le moteur ne dépend que de ces protocoles ; l'implémentation concrète est
choisie à l'assemblage (``bootstrap.build_services``).
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Protocol

from compta_banque.models import Account, ImportBatch, StoredTransaction


class AccountRepository(Protocol):
    def create(self, name: str, currency: str = "EUR", is_default: bool = False) -> Account: ...

    def get(self, account_id: int) -> Account | None: ...

    def get_default(self) -> Account | None: ...

    def save(self, account: Account) -> None: ...


class TransactionRepository(Protocol):
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
        """Persiste une transaction.

        Raises:
            StorageError: empreinte déjà présente ou écriture refusée.
        """
        ...

    def get(self, transaction_id: int) -> StoredTransaction | None: ...

    def find_by_hash(self, hash: str) -> StoredTransaction | None: ...

    def save(self, transaction: StoredTransaction) -> None: ...

    def delete(self, transaction_id: int) -> bool: ...

    def list_by_account(self, account_id: int) -> list[StoredTransaction]: ...

    def count(self, account_id: int) -> int: ...

    def sum_by_type(
        self,
        account_id: int,
        type: str,
        start: datetime.date | None = None,
        end: datetime.date | None = None,
    ) -> Decimal:
        """Somme des magnitudes d'un type, bornes de dates incluses."""
        ...

    def delete_by_account(self, account_id: int) -> int: ...


class BatchRepository(Protocol):
    def create(self, account_id: int, filename: str) -> ImportBatch: ...

    def get(self, batch_id: int) -> ImportBatch | None: ...

    def save(self, batch: ImportBatch) -> None: ...

    def list_by_account(self, account_id: int) -> list[ImportBatch]: ...

    def delete(self, batch_id: int) -> bool:
        """Supprime un batch ; ses transactions sont conservées, détachées."""
        ...

    def delete_by_account(self, account_id: int) -> int: ...
