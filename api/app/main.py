"""Application FastAPI : point d'entrée du backend API."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from compta_banque.bootstrap import build_services
from compta_banque.config.loader import AppConfig, load_config

from .routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Charge la configuration et assemble les services au démarrage."""
    config_path = os.getenv("CONFIG_PATH")
    if config_path:
        config = load_config(Path(config_path))
        logger.info("Configuration chargée depuis %s", config_path)
    else:
        config = AppConfig.default()
        logger.info("Configuration par défaut")
    application.state.services = build_services(config)
    yield


app = FastAPI(
    title="compta-banque API",
    description="API REST d'import et de rapprochement de relevés bancaires.",
    lifespan=lifespan,
)

# CORS
cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_methods=["POST", "GET", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(router)
