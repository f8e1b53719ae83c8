"""Endpoints de l'API : imports CSV, connexion Tink, transactions, statistiques et export du compte."""

from __future__ import annotations

import datetime
import logging

from fastapi import APIRouter, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from compta_banque.bootstrap import Services
from compta_banque.exporters.excel import export_to_bytes
from compta_banque.models import (
    DuplicateTransactionError,
    ExternalApiError,
    ImportSourceError,
    ParseError,
    TransactionNotFoundError,
)

from .schemas import InitialBalanceUpdate, TinkCallback, TinkResync, TransactionCreate
from .serializers import (
    serialize_connection,
    serialize_import_result,
    serialize_monthly,
    serialize_stats,
    serialize_transaction,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB


def _services(request: Request) -> Services:
    return request.app.state.services


def _bank_error(e: ExternalApiError | ParseError) -> HTTPException:
    if isinstance(e, ParseError):
        logger.error("Réponse de l'API bancaire illisible : %s", e)
        return HTTPException(status_code=502, detail=f"Réponse de l'API bancaire illisible : {e}")
    logger.error("Erreur API bancaire (%d) : %s", e.status_code, e)
    return HTTPException(status_code=502, detail=f"Erreur de l'API bancaire ({e.status_code})")


@router.post("/api/imports/csv")
async def import_csv(request: Request, file: UploadFile) -> JSONResponse:
    """Upload d'un relevé CSV → compteurs d'import."""
    filename = file.filename or "unknown"
    if not filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=422,
            detail=f"Extension invalide pour '{filename}' : seuls les fichiers .csv sont acceptés.",
        )
    content = await file.read()
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=413,
            detail=f"Fichier '{filename}' trop volumineux : {len(content)} octets (maximum {MAX_FILE_SIZE}).",
        )

    try:
        result = _services(request).pipeline.import_csv(content, filename)
    except ImportSourceError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return JSONResponse(content=serialize_import_result(result))


@router.get("/api/tink/auth-url")
async def tink_auth_url(request: Request, redirect_uri: str, state: str | None = None) -> dict[str, str]:
    return {"url": _services(request).pipeline.tink_auth_url(redirect_uri, state)}


@router.post("/api/tink/callback")
def tink_callback(request: Request, body: TinkCallback) -> JSONResponse:
    """Retour OAuth2 Tink : échange du code, import et recalage du solde.

    Handler synchrone : les appels HTTP bloquants passent par le threadpool.
    """
    try:
        result = _services(request).pipeline.process_tink_callback(body.code, body.redirect_uri)
    except (ExternalApiError, ParseError) as e:
        raise _bank_error(e)
    return JSONResponse(content=serialize_connection(result))


@router.post("/api/tink/resync")
def tink_resync(request: Request, body: TinkResync) -> JSONResponse:
    try:
        result = _services(request).pipeline.resync_tink(body.access_token)
    except (ExternalApiError, ParseError) as e:
        raise _bank_error(e)
    return JSONResponse(content=serialize_import_result(result))


@router.post("/api/transactions", status_code=201)
async def create_transaction(request: Request, body: TransactionCreate) -> JSONResponse:
    """Saisie manuelle ; 409 si l'empreinte existe déjà."""
    services = _services(request)
    account = services.accounts.get_or_create_default()
    try:
        transaction = services.transactions.create(
            account.id,
            body.date,
            body.label,
            body.amount,
            body.type,
            merchant=body.merchant,
            payment_method=body.payment_method,
            category=body.category,
        )
    except DuplicateTransactionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return JSONResponse(status_code=201, content=serialize_transaction(transaction))


@router.delete("/api/transactions/{transaction_id}")
async def delete_transaction(request: Request, transaction_id: int) -> dict[str, bool]:
    try:
        _services(request).transactions.delete(transaction_id)
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True}


@router.get("/api/accounts/default/stats")
async def account_stats(request: Request) -> JSONResponse:
    services = _services(request)
    account = services.accounts.get_or_create_default()
    return JSONResponse(content=serialize_stats(services.accounts.get_stats(account.id)))


@router.get("/api/accounts/default/monthly")
async def account_monthly(request: Request, year: int | None = None, month: int | None = None) -> JSONResponse:
    if month is not None and not 1 <= month <= 12:
        raise HTTPException(status_code=422, detail=f"Mois invalide : {month}")
    services = _services(request)
    account = services.accounts.get_or_create_default()
    stats = services.accounts.get_monthly_stats(account.id, year, month)
    return JSONResponse(content=serialize_monthly(stats))


@router.get("/api/accounts/default/export")
def download_ledger(request: Request) -> StreamingResponse:
    """Grand livre et synthèse mensuelle du compte par défaut en .xlsx."""
    services = _services(request)
    account = services.accounts.get_or_create_default()
    buffer = export_to_bytes(services.transactions.list_for_account(account.id))
    filename = f"grand_livre_{datetime.date.today().isoformat()}.xlsx"
    return StreamingResponse(
        buffer,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/api/accounts/default/initial-balance")
async def update_initial_balance(request: Request, body: InitialBalanceUpdate) -> JSONResponse:
    services = _services(request)
    account = services.accounts.get_or_create_default()
    services.accounts.update_initial_balance(account.id, body.initial_balance)
    return JSONResponse(content=serialize_stats(services.accounts.get_stats(account.id)))


@router.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
