"""Modèles de données métier et hiérarchie d'exceptions."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

DEBIT = "debit"
CREDIT = "credit"
TRANSACTION_TYPES = (DEBIT, CREDIT)

PAYMENT_METHODS = ("carte", "virement", "prelevement", "retrait")

CENT = Decimal("0.01")


# --- Exceptions métier ---


class ComptaBanqueError(Exception):
    """Erreur de base pour l'application compta-banque."""


class ConfigError(ComptaBanqueError):
    """YAML malformé, clé manquante, valeur invalide."""


class ParseError(ComptaBanqueError):
    """Ligne de relevé inexploitable (erreur limitée à la ligne)."""


class InvalidDateError(ParseError):
    """Date de ligne impossible à interpréter."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Date invalide: {value}")
        self.value = value


class CurrencyMismatchError(ComptaBanqueError):
    """Opération entre deux montants de devises différentes."""


class DuplicateTransactionError(ComptaBanqueError):
    """Transaction manuelle dont l'empreinte existe déjà."""

    def __init__(self, message: str = "Transaction déjà existante") -> None:
        super().__init__(message)


class ExternalApiError(ComptaBanqueError):
    """Réponse non-2xx ou erreur réseau de l'API bancaire."""

    def __init__(self, message: str, status_code: int = 0, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ImportSourceError(ComptaBanqueError):
    """Source d'import illisible ou vide : échec de tout le batch."""


class AccountNotFoundError(ComptaBanqueError):
    """Compte introuvable."""

    def __init__(self, account_id: int) -> None:
        super().__init__(f"Compte non trouvé: {account_id}")
        self.account_id = account_id


class TransactionNotFoundError(ComptaBanqueError):
    """Transaction introuvable."""

    def __init__(self, transaction_id: int) -> None:
        super().__init__(f"Transaction non trouvée: {transaction_id}")
        self.transaction_id = transaction_id


class BatchStateError(ComptaBanqueError):
    """Transition interdite sur un batch d'import terminé."""


class StorageError(ComptaBanqueError):
    """Échec de persistance d'une ligne (contrainte d'unicité, écriture refusée)."""


# --- Transactions ---


@dataclass(frozen=True)
class CanonicalTransaction:
    """Transaction normalisée, commune aux imports CSV et Tink.

    Représentation unique : ``magnitude`` toujours strictement positive et
    ``type`` seul porteur du signe. Le montant signé est dérivé
    (``amount``), négatif pour un débit.
    """

    date: datetime.date
    label: str
    magnitude: Decimal
    type: str
    hash: str
    merchant: str | None = None
    payment_method: str | None = None
    external_id: str | None = None

    def __post_init__(self) -> None:
        if self.type not in TRANSACTION_TYPES:
            raise ValueError(f"Type de transaction inconnu : {self.type!r}")
        magnitude = Decimal(str(self.magnitude)).quantize(CENT, rounding=ROUND_HALF_UP)
        if magnitude <= 0:
            raise ValueError(f"Montant de transaction invalide : {self.magnitude} (doit être > 0)")
        object.__setattr__(self, "magnitude", magnitude)

    @property
    def amount(self) -> Decimal:
        """Montant signé : négatif pour un débit, positif pour un crédit."""
        return -self.magnitude if self.type == DEBIT else self.magnitude

    @classmethod
    def from_signed(
        cls,
        date: datetime.date,
        label: str,
        amount: Decimal,
        hash: str,
        **kwargs: str | None,
    ) -> CanonicalTransaction:
        """Construit une transaction depuis un montant signé (zéro refusé)."""
        if amount == 0:
            raise ValueError("Montant nul : transaction refusée")
        tx_type = DEBIT if amount < 0 else CREDIT
        return cls(date=date, label=label, magnitude=abs(amount), type=tx_type, hash=hash, **kwargs)


@dataclass
class StoredTransaction:
    """Transaction persistée (non frozen, dataclass technique)."""

    id: int
    account_id: int
    date: datetime.date
    label: str
    magnitude: Decimal
    type: str
    hash: str
    import_batch_id: int | None = None
    merchant: str | None = None
    payment_method: str | None = None
    category: str | None = None
    external_id: str | None = None

    @property
    def amount(self) -> Decimal:
        return -self.magnitude if self.type == DEBIT else self.magnitude


# --- Comptes et batches ---


@dataclass
class Account:
    """Compte bancaire (non frozen, dataclass technique)."""

    id: int
    name: str
    currency: str = "EUR"
    initial_balance: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    bank: str | None = None
    account_number: str | None = None
    is_default: bool = False


class BatchStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (BatchStatus.COMPLETED, BatchStatus.FAILED)


@dataclass
class ImportBatch:
    """Groupe de transactions créées par une même opération d'import.

    Cycle de vie : ``processing`` → ``completed`` | ``failed``. Un batch
    terminé n'est jamais rouvert.
    """

    id: int
    account_id: int
    filename: str
    status: BatchStatus = BatchStatus.PENDING
    rows_imported: int = 0
    rows_skipped: int = 0
    error_message: str | None = None
    created_at: datetime.datetime = field(default_factory=datetime.datetime.now)

    def _ensure_open(self) -> None:
        if self.status.is_terminal:
            raise BatchStateError(f"Batch {self.id} déjà terminé ({self.status.value})")

    def mark_processing(self) -> None:
        self._ensure_open()
        self.status = BatchStatus.PROCESSING

    def mark_completed(self, imported: int, skipped: int) -> None:
        self._ensure_open()
        self.rows_imported = imported
        self.rows_skipped = skipped
        self.status = BatchStatus.COMPLETED

    def mark_failed(self, message: str) -> None:
        self._ensure_open()
        self.error_message = message
        self.status = BatchStatus.FAILED


# --- Résultats ---


@dataclass(frozen=True)
class ParseResult:
    """Résultat du parsing d'une source.

    Convention : les listes ne doivent pas être mutées après construction.
    """

    transactions: list[CanonicalTransaction]
    errors: list[str]


@dataclass(frozen=True)
class ImportResult:
    """Compteurs renvoyés aux collaborateurs externes après un import."""

    imported: int
    skipped: int
    errors: list[str]
    batch_id: int


# --- Données Tink ---


@dataclass(frozen=True)
class ExternalAccount:
    """Compte bancaire tel que rapporté par l'API Tink."""

    id: str
    name: str
    type: str
    iban: str | None
    balance: Decimal | None
    currency: str


@dataclass(frozen=True)
class TinkToken:
    access_token: str
    token_type: str
    expires_in: int
    scope: str


@dataclass(frozen=True)
class BankConnectionResult:
    """Résultat d'une connexion bancaire Tink (callback OAuth2)."""

    access_token: str
    expires_in: int
    accounts: list[ExternalAccount]
    import_result: ImportResult
