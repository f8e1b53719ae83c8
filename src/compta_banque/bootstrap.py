"""Assemblage des services : une instance par processus (ou par test), sans état global."""

from __future__ import annotations

from dataclasses import dataclass

import requests

from compta_banque.config.loader import AppConfig
from compta_banque.engine.accounts import AccountService
from compta_banque.engine.balance import BalanceCalculator
from compta_banque.engine.locks import AccountLocks
from compta_banque.engine.reconciler import ImportReconciler
from compta_banque.engine.transactions import TransactionService
from compta_banque.parsers.statement import CsvStatementParser
from compta_banque.pipeline import ImportPipeline
from compta_banque.storage.memory import InMemoryLedger
from compta_banque.tink.client import TinkApiClient
from compta_banque.tink.normalizer import TinkNormalizer


@dataclass
class Services:
    config: AppConfig
    storage: InMemoryLedger
    balance: BalanceCalculator
    reconciler: ImportReconciler
    accounts: AccountService
    transactions: TransactionService
    pipeline: ImportPipeline


def build_services(
    config: AppConfig,
    storage: InMemoryLedger | None = None,
    session: requests.Session | None = None,
) -> Services:
    """Construit le graphe de dépendances complet."""
    storage = storage or InMemoryLedger()
    locks = AccountLocks()

    balance = BalanceCalculator(storage.accounts, storage.transactions, locks)
    reconciler = ImportReconciler(storage.accounts, storage.transactions, storage.batches, balance, locks)
    accounts = AccountService(
        storage.accounts,
        storage.transactions,
        storage.batches,
        balance,
        locks,
        default_name=config.default_account_name,
        currency=config.currency,
    )
    transactions = TransactionService(storage.accounts, storage.transactions, balance)

    parser = CsvStatementParser(
        encoding=config.csv.encoding,
        date_format=config.csv.date_format,
        deterministic_hash=config.deterministic_import_hash,
    )
    tink_client = TinkApiClient(
        config.tink.client_id,
        config.tink.client_secret,
        base_url=config.tink.base_url,
        link_url=config.tink.link_url,
        session=session,
        timeout=config.tink.timeout,
    )
    pipeline = ImportPipeline(config, accounts, reconciler, parser, tink_client, TinkNormalizer())

    return Services(
        config=config,
        storage=storage,
        balance=balance,
        reconciler=reconciler,
        accounts=accounts,
        transactions=transactions,
        pipeline=pipeline,
    )
