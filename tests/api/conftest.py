"""Fixtures pour les tests d'intégration API."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from compta_banque.bootstrap import build_services
from compta_banque.config.loader import AppConfig


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, tink_session: Any) -> Iterator[TestClient]:
    """TestClient FastAPI avec services neufs et API Tink simulée."""
    monkeypatch.delenv("CONFIG_PATH", raising=False)

    from api.app.main import app

    with TestClient(app) as c:
        app.state.services = build_services(AppConfig(), session=tink_session)
        yield c


@pytest.fixture
def statement_file(sample_statement: str) -> dict[str, tuple[str, bytes, str]]:
    """Relevé CSV pour upload multipart."""
    return {"file": ("releve.csv", sample_statement.encode("utf-8"), "text/csv")}
