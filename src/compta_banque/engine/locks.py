"""Section critique par compte pour les mises à jour de solde."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class AccountLocks:
    """Un ``RLock`` par identifiant de compte, créé à la demande.

    Réentrant : un import qui détient le verrou peut appeler le recalcul du
    solde, lui-même protégé par le même verrou.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.RLock] = {}

    def get(self, account_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[account_id] = lock
            return lock

    @contextmanager
    def hold(self, account_id: int) -> Iterator[None]:
        with self.get(account_id):
            yield
