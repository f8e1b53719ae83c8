"""Parser des relevés CSV au format Crédit Agricole.

Format : ``Date;Libellé;Débit euros;Crédit euros;``, première ligne
d'en-tête ignorée, dates ``DD/MM/YYYY``, montants à virgule décimale.
"""

from __future__ import annotations

import datetime
import logging
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from compta_banque.hashing import TransactionHash
from compta_banque.models import (
    CENT,
    CREDIT,
    DEBIT,
    CanonicalTransaction,
    InvalidDateError,
    ParseError,
    ParseResult,
)
from compta_banque.parsers.base import BaseParser
from compta_banque.parsers.details import clean_label, extract_details
from compta_banque.parsers.tokenizer import tokenize

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"
MIN_FIELDS = 4

_AMOUNT_NOISE_RE = re.compile(r"[^\d,.\-]")
_AMOUNT_PREFIX_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")

ZERO = Decimal("0")


def parse_amount(value: str | None) -> Decimal:
    """Parse un montant au format français, ``0`` si vide ou illisible.

    Tout sauf chiffres, virgule, point et tiret est retiré (espaces, espaces
    insécables, symbole €). Avec une virgule présente, les points sont des
    séparateurs de milliers.

    Examples:
        >>> parse_amount("1 234,56")
        Decimal('1234.56')
        >>> parse_amount("abc")
        Decimal('0')
    """
    if value is None or not value.strip():
        return ZERO

    cleaned = _AMOUNT_NOISE_RE.sub("", value)
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".", 1)

    match = _AMOUNT_PREFIX_RE.match(cleaned)
    if not match:
        return ZERO
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return ZERO


class StatementRowInterpreter:
    """Transforme une ligne tokenisée en transaction canonique."""

    def __init__(self, date_format: str = DATE_FORMAT, deterministic_hash: bool = False) -> None:
        self.date_format = date_format
        self.deterministic_hash = deterministic_hash

    def parse_date(self, value: str) -> datetime.date:
        try:
            return datetime.datetime.strptime(value.strip(), self.date_format).date()
        except ValueError as e:
            raise InvalidDateError(value) from e

    def interpret(self, fields: list[str], row_index: int) -> CanonicalTransaction | None:
        """Interprète une ligne ``[date, libellé, débit, crédit, ...]``.

        Returns:
            La transaction, ou ``None`` pour une ligne ignorée (trop courte,
            sans date ni libellé, sans montant).

        Raises:
            InvalidDateError: date illisible, erreur limitée à la ligne.
        """
        if len(fields) < MIN_FIELDS:
            return None

        date_str, raw_label, debit_str, credit_str = fields[:MIN_FIELDS]
        if not date_str or not raw_label:
            return None

        date = self.parse_date(date_str)

        debit = abs(parse_amount(debit_str)).quantize(CENT, rounding=ROUND_HALF_UP)
        credit = abs(parse_amount(credit_str)).quantize(CENT, rounding=ROUND_HALF_UP)

        if debit > 0:
            if credit > 0:
                logger.warning("Ligne %d : débit et crédit renseignés, débit retenu", row_index + 1)
            amount = -debit
        elif credit > 0:
            amount = credit
        else:
            return None

        label = clean_label(raw_label)
        details = extract_details(label, raw_label)
        tx_hash = TransactionHash.for_import(date, label, amount, row_index, deterministic=self.deterministic_hash)

        return CanonicalTransaction(
            date=date,
            label=label,
            magnitude=abs(amount),
            type=DEBIT if amount < 0 else CREDIT,
            hash=tx_hash.value,
            merchant=details.merchant,
            payment_method=details.payment_method,
        )


class CsvStatementParser(BaseParser):
    """Parser des exports CSV ``;`` de relevés bancaires."""

    def __init__(
        self,
        encoding: str = "utf-8",
        date_format: str = DATE_FORMAT,
        deterministic_hash: bool = False,
    ) -> None:
        super().__init__(encoding)
        self.interpreter = StatementRowInterpreter(date_format, deterministic_hash)

    def parse(self, content: str) -> ParseResult:
        transactions: list[CanonicalTransaction] = []
        errors: list[str] = []

        rows = tokenize(content)

        # Ligne 0 : en-tête
        for index, row in enumerate(rows[1:], start=1):
            try:
                transaction = self.interpreter.interpret(row, index)
            except ParseError as e:
                errors.append(f"Ligne {index + 1}: {e}")
                logger.warning("Ligne %d ignorée : %s", index + 1, e)
                continue
            if transaction is not None:
                transactions.append(transaction)

        logger.info("Relevé CSV : %d transactions, %d erreurs", len(transactions), len(errors))
        return ParseResult(transactions=transactions, errors=errors)
