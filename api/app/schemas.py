"""Corps de requête validés par pydantic."""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from compta_banque.models import PAYMENT_METHODS


class TransactionCreate(BaseModel):
    """Saisie manuelle : montant positif, le signe vient du type."""

    date: datetime.date
    label: str = Field(min_length=1, max_length=500)
    amount: Decimal = Field(gt=0)
    type: Literal["debit", "credit"]
    merchant: str | None = None
    payment_method: str | None = None
    category: str | None = None

    @field_validator("label")
    @classmethod
    def label_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("libellé vide")
        return value.strip()

    @field_validator("payment_method")
    @classmethod
    def known_payment_method(cls, value: str | None) -> str | None:
        if value is not None and value not in PAYMENT_METHODS:
            raise ValueError(f"moyen de paiement inconnu '{value}'")
        return value


class InitialBalanceUpdate(BaseModel):
    initial_balance: Decimal


class TinkCallback(BaseModel):
    code: str = Field(min_length=1)
    redirect_uri: str = Field(min_length=1)


class TinkResync(BaseModel):
    access_token: str = Field(min_length=1)
