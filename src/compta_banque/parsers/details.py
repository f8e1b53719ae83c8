"""Extraction heuristique du marchand et du moyen de paiement depuis un libellé.

Best effort : une extraction imprécise n'est jamais une erreur.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

MERCHANT_MAX_LENGTH = 100

# Cascade par priorité : mot-clé (libellé en majuscules, sans accents) → moyen de paiement
PAYMENT_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("PAIEMENT PAR CARTE", "carte"),
    ("PRELEVEMENT", "prelevement"),
    ("VIREMENT", "virement"),
    ("RETRAIT", "retrait"),
)

# "PAIEMENT PAR CARTE X7055 LIDL PARIS 01/03" → "LIDL PARIS"
CARD_MERCHANT_RE = re.compile(r"X\d{4}\s+(.+?)\s+\d{2}/\d{2}", re.IGNORECASE)
TRANSFER_TO_RE = re.compile(r"vers\s+(\S+)", re.IGNORECASE)
TRANSFER_FAVOR_RE = re.compile(r"FAVEUR\s+(.+?)\s+\d", re.IGNORECASE)
# Segments séparés par un retour à la ligne ou au moins deux blancs
SEGMENT_SPLIT_RE = re.compile(r"\s*\n\s*|\s{2,}")
WHITESPACE_RE = re.compile(r"\s+")

# Nettoyage des descriptions Tink
_DESCRIPTION_NOISE: tuple[re.Pattern[str], ...] = (
    re.compile(r"\d{2}/\d{2}/\d{4}"),
    re.compile(r"CB\s*\*?\d+", re.IGNORECASE),
    re.compile(r"CARTE\s+\d+", re.IGNORECASE),
    re.compile(r"PAIEMENT\s+", re.IGNORECASE),
    re.compile(r"VIREMENT\s+", re.IGNORECASE),
    re.compile(r"PRELEVEMENT\s+", re.IGNORECASE),
)


@dataclass(frozen=True)
class PaymentDetails:
    merchant: str | None
    payment_method: str | None


def clean_label(label: str) -> str:
    """Ramène chaque suite de blancs à un espace et supprime les blancs de bord."""
    return WHITESPACE_RE.sub(" ", label).strip()


def _fold(text: str) -> str:
    """Majuscules sans accents : ``Prélèvement`` → ``PRELEVEMENT``."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).upper()


def detect_payment_method(label: str) -> str | None:
    folded = _fold(label)
    for keyword, method in PAYMENT_KEYWORDS:
        if keyword in folded:
            return method
    return None


def _second_segment(raw_label: str) -> str | None:
    segments = [s for s in SEGMENT_SPLIT_RE.split(raw_label.strip()) if s]
    if len(segments) > 1:
        return clean_label(segments[1]) or None
    return None


def extract_details(label: str, raw_label: str | None = None) -> PaymentDetails:
    """Détermine moyen de paiement et marchand d'un libellé de relevé.

    Args:
        label: Libellé nettoyé (blancs réduits).
        raw_label: Libellé brut, multi-lignes ; sert au découpage en
            segments des prélèvements. ``label`` à défaut.
    """
    method = detect_payment_method(label)
    merchant: str | None = None

    if method == "carte":
        match = CARD_MERCHANT_RE.search(label)
        if match:
            merchant = match.group(1).strip()
    elif method == "prelevement":
        merchant = _second_segment(raw_label if raw_label is not None else label)
    elif method == "virement":
        match = TRANSFER_TO_RE.search(label) or TRANSFER_FAVOR_RE.search(label)
        if match:
            merchant = match.group(1).strip()

    return PaymentDetails(merchant=merchant or None, payment_method=method)


def extract_merchant(description: str) -> str | None:
    """Marchand d'une description libre (flux Tink) : dates, numéros de carte et préfixes retirés."""
    cleaned = description
    for pattern in _DESCRIPTION_NOISE:
        cleaned = pattern.sub("", cleaned)
    cleaned = cleaned.strip()
    return cleaned[:MERCHANT_MAX_LENGTH] if len(cleaned) > 2 else None
