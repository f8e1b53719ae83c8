"""Empreintes de transactions utilisées pour la détection des doublons.

Trois modes de construction :

- manuel : ``date|label|amount|timestamp|random``, non déterministe, deux
  saisies manuelles identiques ne sont jamais confondues ;
- ligne importée : ``date|label|amount|rowIndex|timestamp|random``, non
  déterministe également : réimporter le même fichier n'est PAS détecté
  comme doublon par l'empreinte seule. La variante stable
  ``date|label|amount|rowIndex`` n'est utilisée que si l'option
  ``hashing.deterministic_import`` est activée ;
- flux externe (Tink) : ``date|amount|description|type``, déterministe,
  une resynchronisation produit la même empreinte.

Format : 32 caractères hexadécimaux minuscules (16 premiers octets d'un SHA-256).
"""

from __future__ import annotations

import datetime
import hashlib
import re
import time
import uuid
from dataclasses import dataclass
from decimal import Decimal

HASH_LENGTH = 32

_HASH_RE = re.compile(r"^[0-9a-f]{32}$")


def generate(data: str) -> str:
    """SHA-256 de *data*, tronqué à ``HASH_LENGTH`` caractères hexadécimaux."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def normalize_date(value: datetime.date | datetime.datetime | str) -> str:
    """Réduit une date (ou un horodatage ISO) à sa partie ``YYYY-MM-DD``."""
    if isinstance(value, str):
        return value.split("T")[0]
    if isinstance(value, datetime.datetime):
        return value.date().isoformat()
    return value.isoformat()


def format_amount(amount: Decimal | int | float) -> str:
    """Représentation courte d'un montant : ``-45.2``, ``1500``.

    Zéros non significatifs supprimés, jamais de notation scientifique.

    Examples:
        >>> format_amount(Decimal("-45.20"))
        '-45.2'
        >>> format_amount(Decimal("1500.00"))
        '1500'
    """
    normalized = Decimal(str(amount)).normalize()
    return format(normalized, "f")


def _wallclock_ms() -> int:
    return time.time_ns() // 1_000_000


def _random_suffix() -> str:
    return uuid.uuid4().hex[:8]


@dataclass(frozen=True)
class TransactionHash:
    """Empreinte de transaction validée à la construction."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not _HASH_RE.match(self.value):
            raise ValueError(
                f"Empreinte invalide : {self.value!r} "
                f"(attendu : {HASH_LENGTH} caractères hexadécimaux minuscules)"
            )

    @classmethod
    def for_manual(
        cls,
        date: datetime.date | datetime.datetime | str,
        label: str,
        amount: Decimal,
    ) -> TransactionHash:
        data = f"{normalize_date(date)}|{label}|{format_amount(amount)}|{_wallclock_ms()}|{_random_suffix()}"
        return cls(generate(data))

    @classmethod
    def for_import(
        cls,
        date: datetime.date | datetime.datetime | str,
        label: str,
        amount: Decimal,
        row_index: int,
        deterministic: bool = False,
    ) -> TransactionHash:
        """Empreinte d'une ligne de relevé importée.

        L'index de ligne distingue deux transactions textuellement
        identiques le même jour dans un même fichier.
        """
        data = f"{normalize_date(date)}|{label}|{format_amount(amount)}|{row_index}"
        if not deterministic:
            data = f"{data}|{_wallclock_ms()}|{_random_suffix()}"
        return cls(generate(data))

    @classmethod
    def for_external(
        cls,
        date: datetime.date | datetime.datetime | str,
        amount: Decimal,
        description: str,
        tx_type: str,
    ) -> TransactionHash:
        data = f"{normalize_date(date)}|{format_amount(amount)}|{description}|{tx_type}"
        return cls(generate(data))

    @classmethod
    def from_string(cls, value: str) -> TransactionHash:
        """Reconstruit une empreinte depuis une valeur stockée."""
        return cls(value)

    def equals(self, other: TransactionHash) -> bool:
        return self.value == other.value

    def __str__(self) -> str:
        return self.value
