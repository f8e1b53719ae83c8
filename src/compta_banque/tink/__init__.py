"""Intégration Open Banking Tink."""

from compta_banque.tink.client import TinkApiClient
from compta_banque.tink.normalizer import TinkNormalizer

__all__ = ["TinkApiClient", "TinkNormalizer"]
