"""Persistance des comptes, transactions et batches d'import."""

from compta_banque.storage.base import AccountRepository, BatchRepository, TransactionRepository
from compta_banque.storage.memory import InMemoryLedger

__all__ = ["AccountRepository", "BatchRepository", "InMemoryLedger", "TransactionRepository"]
