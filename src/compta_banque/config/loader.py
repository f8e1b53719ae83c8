"""Chargement et validation de la configuration YAML."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from compta_banque.models import ConfigError

logger = logging.getLogger(__name__)

SUPPORTED_ENCODINGS = {"utf-8", "utf-8-sig", "latin-1", "iso-8859-1", "cp1252"}

DEFAULT_TINK_BASE_URL = "https://api.tink.com"
DEFAULT_TINK_LINK_URL = "https://link.tink.com/1.0/transactions/connect-accounts"

ENV_CLIENT_ID = "TINK_CLIENT_ID"
ENV_CLIENT_SECRET = "TINK_CLIENT_SECRET"


@dataclass
class CsvConfig:
    """Lecture des relevés CSV (non frozen, dataclass technique)."""

    encoding: str = "utf-8"
    date_format: str = "%d/%m/%Y"


@dataclass
class TinkConfig:
    """Paramètres de l'API Open Banking Tink.

    ``client_id`` et ``client_secret`` viennent de l'environnement, jamais du YAML.
    """

    base_url: str = DEFAULT_TINK_BASE_URL
    link_url: str = DEFAULT_TINK_LINK_URL
    market: str = "FR"
    locale: str = "fr_FR"
    test: bool = False
    page_size: int = 500
    timeout: float | None = None
    client_id: str = ""
    client_secret: str = ""


@dataclass
class AppConfig:
    """Configuration complète de l'application (non frozen, dataclass technique)."""

    currency: str = "EUR"
    default_account_name: str = "Compte Principal"
    csv: CsvConfig = field(default_factory=CsvConfig)
    tink: TinkConfig = field(default_factory=TinkConfig)
    # Empreintes stables pour les lignes CSV (réimport détecté). Désactivé par défaut.
    deterministic_import_hash: bool = False

    @classmethod
    def default(cls) -> AppConfig:
        """Configuration par défaut, secrets Tink lus dans l'environnement."""
        config = cls()
        _apply_env_secrets(config.tink)
        return config


def _apply_env_secrets(tink: TinkConfig) -> None:
    tink.client_id = os.getenv(ENV_CLIENT_ID, "")
    tink.client_secret = os.getenv(ENV_CLIENT_SECRET, "")


def _load_yaml(filepath: Path) -> dict[str, object]:
    """Charge un fichier YAML et retourne son contenu."""
    if not filepath.exists():
        raise ConfigError(f"Fichier de configuration manquant : {filepath}")
    try:
        with open(filepath, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML malformé dans {filepath} : {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Le fichier {filepath} doit contenir un mapping YAML (reçu : {type(data).__name__})")
    return data


def _section(data: dict[str, object], key: str, context: str) -> dict[str, object]:
    """Retourne une sous-section optionnelle, vide si absente."""
    section = data.get(key, {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{key}' doit être un mapping dans {context}")
    return section


def _validate_currency(data: dict[str, object], context: str) -> str:
    currency = str(data.get("currency", "EUR")).strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ConfigError(f"Devise '{currency}' invalide dans {context} : code ISO à 3 lettres attendu")
    return currency


def _validate_csv(data: dict[str, object], context: str) -> CsvConfig:
    section = _section(data, "csv", context)
    csv_config = CsvConfig()

    if "encoding" in section:
        encoding = str(section["encoding"])
        if encoding not in SUPPORTED_ENCODINGS:
            raise ConfigError(
                f"Encodage '{encoding}' non supporté dans {context}. "
                f"Encodages acceptés : {', '.join(sorted(SUPPORTED_ENCODINGS))}"
            )
        csv_config.encoding = encoding

    if "date_format" in section:
        date_format = str(section["date_format"])
        if "%" not in date_format:
            raise ConfigError(f"'csv.date_format' invalide dans {context} : {date_format!r}")
        csv_config.date_format = date_format

    return csv_config


def _validate_tink(data: dict[str, object], context: str) -> TinkConfig:
    section = _section(data, "tink", context)
    tink = TinkConfig()

    for key in ("base_url", "link_url"):
        if key in section:
            url = str(section[key]).rstrip("/")
            if not url.startswith(("http://", "https://")):
                raise ConfigError(f"'tink.{key}' doit être une URL http(s) dans {context} (reçu : {url!r})")
            setattr(tink, key, url)

    if "market" in section:
        tink.market = str(section["market"])
    if "locale" in section:
        tink.locale = str(section["locale"])

    if "test" in section:
        if not isinstance(section["test"], bool):
            raise ConfigError(f"'tink.test' doit être un booléen dans {context}")
        tink.test = section["test"]

    if "page_size" in section:
        page_size = section["page_size"]
        if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size <= 0:
            raise ConfigError(f"'tink.page_size' doit être un entier positif dans {context}")
        tink.page_size = page_size

    if "timeout" in section and section["timeout"] is not None:
        timeout = section["timeout"]
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
            raise ConfigError(f"'tink.timeout' doit être un nombre positif dans {context}")
        tink.timeout = float(timeout)

    if "client_id" in section or "client_secret" in section:
        raise ConfigError(
            f"Les secrets Tink ne doivent pas figurer dans {context} : "
            f"utilisez {ENV_CLIENT_ID} / {ENV_CLIENT_SECRET}"
        )

    _apply_env_secrets(tink)
    return tink


def load_config(config_path: Path) -> AppConfig:
    """Charge et valide la configuration depuis un fichier YAML.

    Toutes les sections sont optionnelles ; les valeurs absentes prennent
    les valeurs par défaut d'``AppConfig``.

    Raises:
        ConfigError: Si le fichier est manquant, malformé, ou contient des valeurs invalides.
    """
    logger.info("Chargement de la configuration depuis %s", config_path)
    context = config_path.name

    data = _load_yaml(config_path)

    hashing = _section(data, "hashing", context)
    deterministic = hashing.get("deterministic_import", False)
    if not isinstance(deterministic, bool):
        raise ConfigError(f"'hashing.deterministic_import' doit être un booléen dans {context}")

    config = AppConfig(
        currency=_validate_currency(data, context),
        default_account_name=str(data.get("default_account_name", "Compte Principal")),
        csv=_validate_csv(data, context),
        tink=_validate_tink(data, context),
        deterministic_import_hash=deterministic,
    )

    if config.deterministic_import_hash:
        logger.warning("Empreintes déterministes activées pour les lignes CSV importées")
    logger.debug("Marché Tink : %s (%s), page_size=%d", config.tink.market, config.tink.locale, config.tink.page_size)

    return config
