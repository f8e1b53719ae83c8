"""Tests unitaires pour models.py : transaction canonique et batch d'import."""

from __future__ import annotations

import datetime
from decimal import Decimal

import pytest

from compta_banque.models import (
    CREDIT,
    DEBIT,
    BatchStateError,
    BatchStatus,
    CanonicalTransaction,
    ExternalApiError,
    ImportBatch,
    InvalidDateError,
    ParseError,
)

DAY = datetime.date(2024, 3, 1)


class TestCanonicalTransaction:
    def test_sign_follows_type(self) -> None:
        debit = CanonicalTransaction(date=DAY, label="X", magnitude=Decimal("45.2"), type=DEBIT, hash="h")
        credit = CanonicalTransaction(date=DAY, label="X", magnitude=Decimal("45.2"), type=CREDIT, hash="h")
        assert debit.amount == Decimal("-45.20")
        assert credit.amount == Decimal("45.20")

    def test_magnitude_rounded(self) -> None:
        tx = CanonicalTransaction(date=DAY, label="X", magnitude=Decimal("1.005"), type=DEBIT, hash="h")
        assert tx.magnitude == Decimal("1.01")

    @pytest.mark.parametrize("magnitude", ["0", "-1", "0.001"])
    def test_non_positive_rejected(self, magnitude: str) -> None:
        with pytest.raises(ValueError):
            CanonicalTransaction(date=DAY, label="X", magnitude=Decimal(magnitude), type=DEBIT, hash="h")

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError):
            CanonicalTransaction(date=DAY, label="X", magnitude=Decimal("1"), type="refund", hash="h")

    def test_from_signed(self) -> None:
        tx = CanonicalTransaction.from_signed(DAY, "X", Decimal("-12.5"), "h", merchant="M")
        assert (tx.type, tx.magnitude, tx.merchant) == (DEBIT, Decimal("12.50"), "M")
        assert CanonicalTransaction.from_signed(DAY, "X", Decimal("3"), "h").type == CREDIT

    def test_from_signed_zero(self) -> None:
        with pytest.raises(ValueError):
            CanonicalTransaction.from_signed(DAY, "X", Decimal("0"), "h")


class TestImportBatch:
    def test_lifecycle(self) -> None:
        batch = ImportBatch(id=1, account_id=1, filename="a.csv")
        assert batch.status == BatchStatus.PENDING
        batch.mark_processing()
        batch.mark_completed(3, 1)
        assert batch.status.is_terminal
        assert (batch.rows_imported, batch.rows_skipped) == (3, 1)

    def test_terminal_is_final(self) -> None:
        batch = ImportBatch(id=1, account_id=1, filename="a.csv")
        batch.mark_failed("illisible")
        for transition in (batch.mark_processing, lambda: batch.mark_completed(0, 0), lambda: batch.mark_failed("x")):
            with pytest.raises(BatchStateError):
                transition()
        assert batch.error_message == "illisible"


class TestExceptions:
    def test_invalid_date_is_parse_error(self) -> None:
        error = InvalidDateError("31/02/2024")
        assert isinstance(error, ParseError)
        assert str(error) == "Date invalide: 31/02/2024"
        assert error.value == "31/02/2024"

    def test_external_api_error_carries_status(self) -> None:
        error = ExternalApiError("Erreur", status_code=503, body="indisponible")
        assert (error.status_code, error.body) == (503, "indisponible")
