"""Point d'entrée CLI de compta-banque."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from compta_banque.bootstrap import build_services
from compta_banque.config.loader import AppConfig, load_config
from compta_banque.exporters.excel import export_ledger, print_summary
from compta_banque.models import ConfigError, ExternalApiError, ImportSourceError

logger = logging.getLogger("compta_banque.main")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse les arguments CLI."""
    parser = argparse.ArgumentParser(
        prog="compta-banque",
        description="Import et rapprochement de relevés bancaires",
    )
    parser.add_argument("statement", help="Relevé CSV à importer (format Date;Libellé;Débit;Crédit)")
    parser.add_argument("--output", help="Fichier Excel de sortie (grand livre + synthèse mensuelle)")
    parser.add_argument(
        "--initial-balance",
        help="Solde initial du compte avant import (ex. 1250.30)",
    )
    parser.add_argument(
        "--config",
        help="Fichier de configuration YAML (défaut : configuration intégrée)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=VALID_LOG_LEVELS,
        help="Niveau de log (défaut : INFO)",
    )
    return parser.parse_args(args)


def main(args: list[str] | None = None) -> None:
    """Point d'entrée principal."""
    parsed = parse_args(args)

    logging.basicConfig(
        level=getattr(logging, parsed.log_level),
        format=LOG_FORMAT,
    )

    try:
        config = load_config(Path(parsed.config)) if parsed.config else AppConfig.default()
    except ConfigError as e:
        logger.error("Erreur de configuration : %s", e)
        sys.exit(2)

    try:
        services = build_services(config)
        account = services.accounts.get_or_create_default()
        if parsed.initial_balance is not None:
            services.accounts.update_initial_balance(account.id, parsed.initial_balance)

        statement = Path(parsed.statement)
        result = services.pipeline.import_csv(statement, statement.name, account.id)

        if parsed.output:
            export_ledger(services.transactions.list_for_account(account.id), Path(parsed.output))
            logger.info("Grand livre exporté vers %s", parsed.output)

        print_summary(result, services.accounts.get(account.id))
    except (ImportSourceError, ExternalApiError) as e:
        print(f"ERREUR : {e}")
        sys.exit(3)
    except Exception:
        logger.exception("Erreur inattendue")
        sys.exit(1)


if __name__ == "__main__":
    main()
