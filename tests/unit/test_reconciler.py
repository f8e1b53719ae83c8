"""Tests unitaires pour engine/reconciler.py : batches, doublons, recalage du solde."""

from __future__ import annotations

import datetime
import logging
import threading
from decimal import Decimal
from unittest.mock import patch

import pytest

from compta_banque.bootstrap import Services
from compta_banque.hashing import TransactionHash
from compta_banque.models import (
    CREDIT,
    DEBIT,
    Account,
    AccountNotFoundError,
    BatchStateError,
    BatchStatus,
    CanonicalTransaction,
    StorageError,
)


def _tx(label: str, magnitude: str, type: str = DEBIT, day: int = 1) -> CanonicalTransaction:
    date = datetime.date(2024, 3, day)
    return CanonicalTransaction(
        date=date,
        label=label,
        magnitude=Decimal(magnitude),
        type=type,
        hash=TransactionHash.for_external(date, Decimal(magnitude), label, type).value,
    )


class TestImportTransactions:
    def test_counts_and_batch(self, services: Services, account: Account) -> None:
        result = services.reconciler.import_transactions(
            account.id, "releve.csv", [_tx("A", "10"), _tx("B", "200", CREDIT)]
        )
        assert (result.imported, result.skipped, result.errors) == (2, 0, [])

        batch = services.storage.batches.get(result.batch_id)
        assert batch is not None
        assert batch.status == BatchStatus.COMPLETED
        assert (batch.rows_imported, batch.rows_skipped) == (2, 0)
        assert all(t.import_batch_id == batch.id for t in services.storage.transactions.list_by_account(account.id))

    def test_duplicates_skipped(self, services: Services, account: Account) -> None:
        services.reconciler.import_transactions(account.id, "a.csv", [_tx("A", "10")])
        result = services.reconciler.import_transactions(account.id, "b.csv", [_tx("A", "10"), _tx("B", "5")])
        assert (result.imported, result.skipped) == (1, 1)
        assert services.storage.transactions.count(account.id) == 2

    def test_duplicate_within_batch(self, services: Services, account: Account) -> None:
        result = services.reconciler.import_transactions(account.id, "a.csv", [_tx("A", "10"), _tx("A", "10")])
        assert (result.imported, result.skipped) == (1, 1)

    def test_row_count_invariant(self, services: Services, account: Account) -> None:
        """imported + skipped <= lignes reçues ; une erreur n'est ni importée ni ignorée."""
        rows = [_tx("A", "10"), _tx("A", "10"), _tx("B", "20"), _tx("C", "30")]
        original_create = services.storage.transactions.create

        def failing_create(**kwargs):  # type: ignore[no-untyped-def]
            if kwargs["label"] == "B":
                raise StorageError("écriture refusée")
            return original_create(**kwargs)

        with patch.object(services.storage.transactions, "create", side_effect=failing_create):
            result = services.reconciler.import_transactions(account.id, "a.csv", rows)

        assert result.imported == 2
        assert result.skipped == 1
        assert result.errors == ["Erreur: B - écriture refusée"]
        assert result.imported + result.skipped + len(result.errors) == len(rows)

    def test_balance_recomputed_even_without_rows(self, services: Services, account: Account) -> None:
        services.storage.accounts.get(account.id).balance = Decimal("999")  # type: ignore[union-attr]
        services.reconciler.import_transactions(account.id, "vide.csv", [])
        assert services.accounts.get(account.id).balance == Decimal("0")

    def test_balance_after_import(self, services: Services, account: Account) -> None:
        services.reconciler.import_transactions(account.id, "a.csv", [_tx("A", "50"), _tx("B", "200", CREDIT)])
        assert services.accounts.get(account.id).balance == Decimal("150")

    def test_unknown_account(self, services: Services) -> None:
        with pytest.raises(AccountNotFoundError):
            services.reconciler.open_batch(42, "a.csv")


class TestBatchLifecycle:
    def test_open_is_processing(self, services: Services, account: Account) -> None:
        batch = services.reconciler.open_batch(account.id, "a.csv")
        assert batch.status == BatchStatus.PROCESSING

    def test_failed_batch_cannot_be_imported(self, services: Services, account: Account) -> None:
        batch = services.reconciler.open_batch(account.id, "a.csv")
        services.reconciler.fail_batch(batch, "fichier illisible")
        assert batch.status == BatchStatus.FAILED
        assert batch.error_message == "fichier illisible"
        with pytest.raises(BatchStateError):
            services.reconciler.import_into_batch(batch, [_tx("A", "1")])

    def test_completed_batch_never_reopened(self, services: Services, account: Account) -> None:
        result = services.reconciler.import_transactions(account.id, "a.csv", [])
        batch = services.storage.batches.get(result.batch_id)
        with pytest.raises(BatchStateError):
            batch.mark_processing()  # type: ignore[union-attr]
        with pytest.raises(BatchStateError):
            services.reconciler.fail_batch(batch, "trop tard")  # type: ignore[arg-type]


class TestReconcileBankBalance:
    def test_back_solve(self, services: Services, account: Account) -> None:
        """Solde initial 0, crédits 200, débits 50, solde bancaire 1000 → solde initial 850."""
        services.reconciler.import_transactions(
            account.id, "tink", [_tx("A", "150", CREDIT), _tx("B", "50", CREDIT), _tx("C", "50", DEBIT)]
        )
        new_initial = services.reconciler.reconcile_bank_balance(account.id, Decimal("1000"))

        assert new_initial == Decimal("850")
        refreshed = services.accounts.get(account.id)
        assert refreshed.initial_balance == Decimal("850")
        assert refreshed.balance == Decimal("1000")
        assert services.balance.calculate(account.id).amount == Decimal("1000.00")

    def test_uses_all_account_transactions(self, services: Services, account: Account) -> None:
        services.reconciler.import_transactions(account.id, "a.csv", [_tx("OLD", "100", CREDIT)])
        services.reconciler.import_transactions(account.id, "tink", [_tx("NEW", "40", DEBIT)])
        assert services.reconciler.reconcile_bank_balance(account.id, Decimal("500")) == Decimal("440")

    def test_failure_is_logged_not_raised(
        self, services: Services, account: Account, caplog: pytest.LogCaptureFixture
    ) -> None:
        with patch.object(services.storage.transactions, "sum_by_type", side_effect=RuntimeError("base indisponible")):
            with caplog.at_level(logging.ERROR):
                assert services.reconciler.reconcile_bank_balance(account.id, Decimal("1000")) is None
        assert "Recalage du solde initial impossible" in caplog.text
        assert services.accounts.get(account.id).balance == Decimal("0")


class TestConcurrency:
    def test_parallel_imports_keep_balance_invariant(self, services: Services, account: Account) -> None:
        """Deux imports simultanés sur le même compte : solde final = initial + crédits − débits."""
        services.accounts.update_initial_balance(account.id, "100")
        batches = {
            "a.csv": [_tx(f"A{i}", "1.10", DEBIT, day=1 + i % 28) for i in range(200)],
            "b.csv": [_tx(f"B{i}", "2.05", CREDIT, day=1 + i % 28) for i in range(200)],
        }
        results: dict[str, object] = {}

        def run(filename: str) -> None:
            results[filename] = services.reconciler.import_transactions(account.id, filename, batches[filename])

        threads = [threading.Thread(target=run, args=(name,)) for name in batches]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert set(results) == {"a.csv", "b.csv"}
        expected = Decimal("100") + 200 * Decimal("2.05") - 200 * Decimal("1.10")
        assert services.accounts.get(account.id).balance == expected
        assert services.balance.calculate(account.id).amount == expected
        statuses = [b.status for b in services.storage.batches.list_by_account(account.id)]
        assert statuses == [BatchStatus.COMPLETED, BatchStatus.COMPLETED]

    def test_import_waits_for_account_lock(self, services: Services, account: Account) -> None:
        """Un import bloque tant qu'un autre écrivain tient le verrou du compte."""
        done = threading.Event()

        def run() -> None:
            services.reconciler.import_transactions(account.id, "releve.csv", [_tx("A", "10", CREDIT)])
            done.set()

        with services.reconciler.locks.hold(account.id):
            worker = threading.Thread(target=run)
            worker.start()
            assert not done.wait(timeout=0.2)
            assert services.storage.transactions.count(account.id) == 0

        worker.join(timeout=5)
        assert done.is_set()
        assert services.accounts.get(account.id).balance == Decimal("10")
