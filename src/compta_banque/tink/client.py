"""Client de l'API Open Banking Tink (flux OAuth2 authorization code)."""

from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import urlencode

import requests

from compta_banque.config.loader import DEFAULT_TINK_BASE_URL, DEFAULT_TINK_LINK_URL
from compta_banque.models import ExternalApiError, TinkToken

logger = logging.getLogger(__name__)

SCOPE = "accounts:read,transactions:read,balances:read,credentials:read"


class TinkApiClient:
    """Appels HTTP séquentiels et bloquants vers Tink.

    Toute réponse non-2xx ou erreur réseau lève ``ExternalApiError`` :
    pas de reprise partielle.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        base_url: str = DEFAULT_TINK_BASE_URL,
        link_url: str = DEFAULT_TINK_LINK_URL,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self.link_url = link_url
        self.session = session or requests.Session()
        self.timeout = timeout

        if not self.client_id or not self.client_secret:
            logger.warning("TINK_CLIENT_ID ou TINK_CLIENT_SECRET non configuré")

    def generate_auth_url(
        self,
        redirect_uri: str,
        state: str | None = None,
        market: str = "FR",
        locale: str = "fr_FR",
        test: bool = False,
    ) -> str:
        """Construit l'URL Tink Link d'authentification OAuth2."""
        params: dict[str, str] = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": SCOPE,
            "market": market,
            "locale": locale,
            "response_type": "code",
            # Nouvelle session à chaque connexion
            "input_provider": "",
        }
        if state:
            params["state"] = state
        if test:
            params["test"] = "true"
        params["t"] = str(time.time_ns() // 1_000_000)

        return f"{self.link_url}?{urlencode(params)}"

    def exchange_code_for_token(self, code: str, redirect_uri: str) -> TinkToken:
        """Échange le code d'autorisation contre un access token."""
        logger.info("Échange du code d'autorisation Tink")
        data = self._request(
            "POST",
            "/api/v1/oauth/token",
            context="échange code",
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
        try:
            return TinkToken(
                access_token=str(data["access_token"]),
                token_type=str(data.get("token_type", "bearer")),
                expires_in=int(data.get("expires_in", 0)),
                scope=str(data.get("scope", "")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ExternalApiError(f"Réponse token invalide : {e}", status_code=200, body=str(data)) from e

    def get_accounts(self, access_token: str) -> list[dict[str, Any]]:
        data = self._request("GET", "/data/v2/accounts", context="comptes", access_token=access_token)
        accounts = data.get("accounts") or []
        logger.info("Tink : %d comptes récupérés", len(accounts))
        return list(accounts)

    def get_transactions(
        self,
        access_token: str,
        account_id: str | None = None,
        page_size: int = 100,
    ) -> list[dict[str, Any]]:
        params: dict[str, str | int] = {"pageSize": page_size}
        if account_id:
            params["accountIdIn"] = account_id
        data = self._request(
            "GET",
            "/data/v2/transactions",
            context="transactions",
            access_token=access_token,
            params=params,
        )
        transactions = data.get("transactions") or []
        logger.info("Tink : %d transactions récupérées", len(transactions))
        return list(transactions)

    def _request(
        self,
        method: str,
        path: str,
        *,
        context: str,
        access_token: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        headers: dict[str, str] = {}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            logger.error("Erreur réseau Tink (%s) : %s", context, e)
            raise ExternalApiError(f"Erreur {context} : {e}") from e

        if not response.ok:
            logger.error("Erreur Tink (%s) : %d %s", context, response.status_code, response.text)
            raise ExternalApiError(
                f"Erreur {context} ({response.status_code}): {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ExternalApiError(
                f"Réponse JSON invalide ({context}) : {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e
        if not isinstance(payload, dict):
            raise ExternalApiError(
                f"Réponse inattendue ({context}) : objet JSON attendu",
                status_code=response.status_code,
                body=response.text,
            )
        return payload
