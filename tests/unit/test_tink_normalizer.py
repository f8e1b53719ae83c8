"""Tests unitaires pour tink/normalizer.py."""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Any

import pytest

from compta_banque.models import CREDIT, DEBIT, ExternalAccount, ParseError
from compta_banque.tink.normalizer import TinkNormalizer, parse_tink_amount


class TestParseTinkAmount:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ({"unscaledValue": "-4520", "scale": "2"}, Decimal("-45.20")),
            ({"unscaledValue": "150000", "scale": "2"}, Decimal("1500.00")),
            ({"unscaledValue": "7", "scale": "0"}, Decimal("7")),
            ({"unscaledValue": 12345, "scale": 3}, Decimal("12.345")),
        ],
    )
    def test_decoding(self, value: dict[str, Any], expected: Decimal) -> None:
        assert parse_tink_amount(value) == expected

    @pytest.mark.parametrize("value", [{}, {"unscaledValue": "x", "scale": "2"}, {"unscaledValue": "1"}])
    def test_invalid(self, value: dict[str, Any]) -> None:
        with pytest.raises(ParseError):
            parse_tink_amount(value)


class TestTransformAccount:
    def test_full_account(self, tink_acc: Any) -> None:
        account = TinkNormalizer().transform_account(tink_acc())
        assert account == ExternalAccount(
            id="acc-1",
            name="Compte courant",
            type="CHECKING",
            iban="FR7630006000011234567890189",
            balance=Decimal("1000.00"),
            currency="EUR",
        )

    def test_without_balance(self, tink_acc: Any) -> None:
        account = TinkNormalizer().transform_account(tink_acc(balance=None))
        assert account.balance is None
        assert account.currency == "EUR"

    def test_minimal_payload(self) -> None:
        account = TinkNormalizer().transform_account({"id": "x"})
        assert account.iban is None
        assert account.name == ""


class TestTransformTransaction:
    def test_debit(self, tink_tx: Any) -> None:
        tx = TinkNormalizer().transform_transaction(tink_tx("t1", "-4520", "CB CARREFOUR 01/03/2024"))
        assert tx is not None
        assert tx.type == DEBIT
        assert tx.magnitude == Decimal("45.20")
        assert tx.amount == Decimal("-45.20")
        assert tx.date == datetime.date(2024, 3, 1)
        assert tx.external_id == "t1"
        assert tx.merchant == "CB CARREFOUR"

    def test_credit(self, tink_tx: Any) -> None:
        tx = TinkNormalizer().transform_transaction(tink_tx("t2", "150000", "VIREMENT SALAIRE"))
        assert tx is not None
        assert tx.type == CREDIT
        assert tx.payment_method == "virement"
        assert tx.merchant == "SALAIRE"

    def test_same_payload_same_hash(self, tink_tx: Any) -> None:
        normalizer = TinkNormalizer()
        a = normalizer.transform_transaction(tink_tx("t1", "-4520"))
        b = normalizer.transform_transaction(tink_tx("t1", "-4520"))
        assert a is not None and b is not None
        assert a.hash == b.hash

    def test_display_preferred_over_original(self, tink_tx: Any) -> None:
        raw = tink_tx("t1", "-100")
        raw["descriptions"] = {"original": "CB*9999 SNCF", "display": "  SNCF  "}
        tx = TinkNormalizer().transform_transaction(raw)
        assert tx is not None
        assert tx.label == "SNCF"

    def test_datetime_booked(self, tink_tx: Any) -> None:
        tx = TinkNormalizer().transform_transaction(tink_tx("t1", "-100", booked="2024-03-01T00:00:00Z"))
        assert tx is not None
        assert tx.date == datetime.date(2024, 3, 1)

    def test_zero_amount_ignored(self, tink_tx: Any) -> None:
        assert TinkNormalizer().transform_transaction(tink_tx("t1", "0")) is None

    def test_missing_description(self, tink_tx: Any) -> None:
        raw = tink_tx("t1", "-100")
        raw["descriptions"] = {}
        with pytest.raises(ParseError):
            TinkNormalizer().transform_transaction(raw)


class TestTransformTransactions:
    def test_collects_errors(self, tink_tx: Any) -> None:
        bad = tink_tx("bad", "-100")
        bad["dates"] = {"booked": "hier"}
        result = TinkNormalizer().transform_transactions([tink_tx("t1", "-100"), bad, tink_tx("t0", "0")])
        assert len(result.transactions) == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Transaction Tink bad:")


class TestSelectPrimaryAccount:
    def _account(self, id: str, name: str, type: str) -> ExternalAccount:
        return ExternalAccount(id=id, name=name, type=type, iban=None, balance=None, currency="EUR")

    def test_checking_preferred(self) -> None:
        accounts = [self._account("1", "Livret A", "SAVINGS"), self._account("2", "Principal", "CHECKING")]
        assert TinkNormalizer.select_primary_account(accounts).id == "2"  # type: ignore[union-attr]

    def test_name_courant(self) -> None:
        accounts = [self._account("1", "Livret A", "SAVINGS"), self._account("2", "Compte Courant", "OTHER")]
        assert TinkNormalizer.select_primary_account(accounts).id == "2"  # type: ignore[union-attr]

    def test_fallback_first(self) -> None:
        accounts = [self._account("1", "Livret A", "SAVINGS"), self._account("2", "PEL", "SAVINGS")]
        assert TinkNormalizer.select_primary_account(accounts).id == "1"  # type: ignore[union-attr]

    def test_empty(self) -> None:
        assert TinkNormalizer.select_primary_account([]) is None
