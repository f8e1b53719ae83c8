"""Conversion des données brutes Tink vers le format applicatif."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from compta_banque.hashing import TransactionHash
from compta_banque.models import (
    CREDIT,
    DEBIT,
    CanonicalTransaction,
    ExternalAccount,
    ParseError,
    ParseResult,
)
from compta_banque.parsers.details import detect_payment_method, extract_merchant

logger = logging.getLogger(__name__)

PRIMARY_ACCOUNT_TYPES = {"CHECKING", "CURRENT"}


def parse_tink_amount(value: Mapping[str, Any]) -> Decimal:
    """Décode ``{unscaledValue, scale}`` : ``unscaledValue / 10^scale``.

    Examples:
        >>> parse_tink_amount({"unscaledValue": "-4520", "scale": "2"})
        Decimal('-45.20')

    Raises:
        ParseError: valeurs absentes ou non entières.
    """
    try:
        unscaled = int(str(value["unscaledValue"]))
        scale = int(str(value["scale"]))
    except (KeyError, TypeError, ValueError) as e:
        raise ParseError(f"Montant Tink invalide : {value!r}") from e
    return Decimal(unscaled).scaleb(-scale)


def _get(data: Mapping[str, Any], *path: str) -> Any:
    """Lecture imbriquée tolérante : ``None`` dès qu'un maillon manque."""
    current: Any = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


class TinkNormalizer:
    """Transforme comptes et transactions Tink en ``ExternalAccount`` / ``CanonicalTransaction``."""

    def transform_account(self, raw: Mapping[str, Any]) -> ExternalAccount:
        booked = _get(raw, "balances", "booked", "amount")
        balance = parse_tink_amount(booked["value"]) if booked and booked.get("value") else None
        return ExternalAccount(
            id=str(raw.get("id", "")),
            name=str(raw.get("name") or ""),
            type=str(raw.get("type") or ""),
            iban=_get(raw, "identifiers", "iban", "iban") or None,
            balance=balance,
            currency=(booked or {}).get("currencyCode") or "EUR",
        )

    def transform_accounts(self, raw_accounts: Iterable[Mapping[str, Any]]) -> list[ExternalAccount]:
        return [self.transform_account(acc) for acc in raw_accounts]

    def transform_transaction(self, raw: Mapping[str, Any]) -> CanonicalTransaction | None:
        """Transaction Tink → transaction canonique.

        Le signe du montant Tink donne le type (``>= 0`` : crédit) ; la
        transaction stocke la valeur absolue. Un montant nul est ignoré.

        Raises:
            ParseError: montant, date ou description inexploitables.
        """
        amount = parse_tink_amount(_get(raw, "amount", "value") or {})
        tx_type = CREDIT if amount >= 0 else DEBIT
        magnitude = abs(amount)

        description = _get(raw, "descriptions", "display") or _get(raw, "descriptions", "original")
        if not description or not str(description).strip():
            raise ParseError(f"Transaction Tink {raw.get('id')} sans description")
        description = str(description).strip()

        booked = _get(raw, "dates", "booked")
        try:
            date = datetime.date.fromisoformat(str(booked).split("T")[0])
        except ValueError as e:
            raise ParseError(f"Date Tink invalide : {booked!r}") from e

        if magnitude == 0:
            logger.warning("Transaction Tink %s ignorée (montant nul)", raw.get("id"))
            return None

        tx_hash = TransactionHash.for_external(date, magnitude, description, tx_type)
        return CanonicalTransaction(
            date=date,
            label=description,
            magnitude=magnitude,
            type=tx_type,
            hash=tx_hash.value,
            merchant=extract_merchant(description),
            payment_method=detect_payment_method(description),
            external_id=str(raw["id"]) if raw.get("id") is not None else None,
        )

    def transform_transactions(self, raw_transactions: Iterable[Mapping[str, Any]]) -> ParseResult:
        """Transforme une liste de transactions ; les erreurs sont collectées, pas levées."""
        transactions: list[CanonicalTransaction] = []
        errors: list[str] = []
        for raw in raw_transactions:
            try:
                transaction = self.transform_transaction(raw)
            except (ParseError, ValueError) as e:
                errors.append(f"Transaction Tink {raw.get('id')}: {e}")
                logger.warning("Transaction Tink %s ignorée : %s", raw.get("id"), e)
                continue
            if transaction is not None:
                transactions.append(transaction)
        return ParseResult(transactions=transactions, errors=errors)

    @staticmethod
    def select_primary_account(accounts: list[ExternalAccount]) -> ExternalAccount | None:
        """Compte courant (CHECKING / CURRENT / nom contenant « courant ») en priorité, sinon le premier."""
        if not accounts:
            return None
        for account in accounts:
            if account.type.upper() in PRIMARY_ACCOUNT_TYPES or "courant" in account.name.lower():
                return account
        return accounts[0]
