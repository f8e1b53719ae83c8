"""Classe abstraite de base pour les parsers de relevés."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path

from compta_banque.models import ImportSourceError, ParseResult

logger = logging.getLogger(__name__)

StatementSource = Path | BytesIO | bytes | str


class BaseParser(ABC):
    """Classe abstraite définissant l'interface commune des parsers."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    @abstractmethod
    def parse(self, content: str) -> ParseResult:
        """Parse le texte d'un relevé et retourne un ParseResult normalisé."""

    def read_source(self, source: StatementSource) -> str:
        """Lit une source (chemin, buffer, octets ou texte) et retourne son texte.

        Raises:
            ImportSourceError: fichier absent, contenu indécodable ou vide.
        """
        if isinstance(source, Path):
            if not source.exists():
                raise ImportSourceError(f"Fichier introuvable : {source}")
            try:
                raw: bytes | str = source.read_bytes()
            except OSError as e:
                raise ImportSourceError(f"Lecture impossible de {source} : {e}") from e
        elif isinstance(source, BytesIO):
            raw = source.getvalue()
        else:
            raw = source

        if isinstance(raw, bytes):
            try:
                text = raw.decode(self.encoding)
            except UnicodeDecodeError as e:
                raise ImportSourceError(f"Encodage invalide (attendu : {self.encoding}) : {e}") from e
        else:
            text = raw

        text = text.lstrip("\ufeff")
        if not text.strip():
            raise ImportSourceError("Contenu du relevé vide")
        return text

    def parse_source(self, source: StatementSource) -> ParseResult:
        """Lit puis parse une source."""
        return self.parse(self.read_source(source))
