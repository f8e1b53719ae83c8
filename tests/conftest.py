from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

from compta_banque.bootstrap import Services, build_services
from compta_banque.config.loader import AppConfig
from compta_banque.models import Account

STATEMENT_HEADER = "Date;Libellé;Débit euros;Crédit euros;"

SAMPLE_STATEMENT = (
    f"{STATEMENT_HEADER}\n"
    '01/03/2024;"PAIEMENT PAR CARTE X7055 LIDL PARIS 01/03";45,20;;\n'
    '02/03/2024;"PRELEVEMENT\nEDF CLIENTS PARTICULIERS\nREF 123";82,10;;\n'
    "05/03/2024;VIREMENT EN VOTRE FAVEUR EMPLOYEUR SA 0503;;1 500,00;\n"
)


def make_response(payload: Any = None, status_code: int = 200, text: str = "") -> MagicMock:
    """Réponse HTTP simulée (interface ``requests.Response`` utilisée par le client)."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    response.json.return_value = payload
    return response


def tink_amount(unscaled: str, scale: str = "2") -> dict[str, str]:
    return {"unscaledValue": unscaled, "scale": scale}


def tink_transaction(
    tx_id: str,
    unscaled: str,
    description: str = "CARREFOUR MARKET",
    booked: str = "2024-03-01",
) -> dict[str, Any]:
    return {
        "id": tx_id,
        "amount": {"value": tink_amount(unscaled), "currencyCode": "EUR"},
        "descriptions": {"original": description, "display": description},
        "dates": {"booked": booked},
        "status": "BOOKED",
    }


def tink_account(
    account_id: str = "acc-1",
    name: str = "Compte courant",
    type: str = "CHECKING",
    balance: str | None = "100000",
) -> dict[str, Any]:
    account: dict[str, Any] = {
        "id": account_id,
        "name": name,
        "type": type,
        "identifiers": {"iban": {"iban": "FR7630006000011234567890189"}},
    }
    if balance is not None:
        account["balances"] = {"booked": {"amount": {"value": tink_amount(balance), "currencyCode": "EUR"}}}
    return account


class FakeTinkSession:
    """Session HTTP simulée : routes Tink → payloads fixes."""

    def __init__(
        self,
        accounts: list[dict[str, Any]] | None = None,
        transactions: list[dict[str, Any]] | None = None,
    ) -> None:
        self.accounts = accounts if accounts is not None else [tink_account()]
        self.transactions = transactions if transactions is not None else []
        self.request = MagicMock(side_effect=self._route)

    def _route(self, method: str, url: str, **kwargs: Any) -> MagicMock:
        if url.endswith("/api/v1/oauth/token"):
            return make_response(
                {"access_token": "tok-123", "token_type": "bearer", "expires_in": 7200, "scope": "accounts:read"}
            )
        if url.endswith("/data/v2/accounts"):
            return make_response({"accounts": self.accounts})
        if url.endswith("/data/v2/transactions"):
            return make_response({"transactions": self.transactions})
        raise requests.ConnectionError(f"URL inattendue : {url}")


@pytest.fixture
def config() -> AppConfig:
    """AppConfig par défaut, sans secrets."""
    return AppConfig()


@pytest.fixture
def tink_session() -> FakeTinkSession:
    return FakeTinkSession()


@pytest.fixture
def services(config: AppConfig, tink_session: FakeTinkSession) -> Services:
    """Graphe de services neuf pour chaque test."""
    return build_services(config, session=tink_session)  # type: ignore[arg-type]


@pytest.fixture
def account(services: Services) -> Account:
    return services.accounts.get_or_create_default()


@pytest.fixture
def sample_statement() -> str:
    """Relevé CSV : un paiement carte, un prélèvement multi-lignes, un virement reçu."""
    return SAMPLE_STATEMENT


@pytest.fixture
def tink_tx() -> Any:
    """Fabrique de transactions Tink brutes."""
    return tink_transaction


@pytest.fixture
def tink_acc() -> Any:
    """Fabrique de comptes Tink bruts."""
    return tink_account


@pytest.fixture
def http_response() -> Any:
    """Fabrique de réponses HTTP simulées."""
    return make_response
