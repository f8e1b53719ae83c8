"""Orchestrateur des imports : relevé CSV et synchronisation Tink."""

from __future__ import annotations

import datetime
import logging

from compta_banque.config.loader import AppConfig
from compta_banque.engine.accounts import AccountService
from compta_banque.engine.reconciler import ImportReconciler
from compta_banque.models import (
    BankConnectionResult,
    ExternalAccount,
    ExternalApiError,
    ImportResult,
    ImportSourceError,
    ParseError,
)
from compta_banque.parsers.base import StatementSource
from compta_banque.parsers.statement import CsvStatementParser
from compta_banque.tink.client import TinkApiClient
from compta_banque.tink.normalizer import TinkNormalizer

logger = logging.getLogger(__name__)

TINK_BANK_NAME = "Tink"


class ImportPipeline:
    """Orchestre source → transactions canoniques → rapprochement → solde."""

    def __init__(
        self,
        config: AppConfig,
        accounts: AccountService,
        reconciler: ImportReconciler,
        parser: CsvStatementParser,
        tink_client: TinkApiClient,
        normalizer: TinkNormalizer,
    ) -> None:
        self.config = config
        self.accounts = accounts
        self.reconciler = reconciler
        self.parser = parser
        self.tink_client = tink_client
        self.normalizer = normalizer

    # --- CSV ---

    def import_csv(
        self,
        source: StatementSource,
        filename: str,
        account_id: int | None = None,
    ) -> ImportResult:
        """Importe un relevé CSV dans le compte (par défaut : compte principal).

        Raises:
            ImportSourceError: source illisible ou vide ; le batch passe en ``failed``.
        """
        if account_id is None:
            account_id = self.accounts.get_or_create_default().id

        batch = self.reconciler.open_batch(account_id, filename)
        try:
            parse_result = self.parser.parse_source(source)
        except ImportSourceError as e:
            self.reconciler.fail_batch(batch, str(e))
            raise

        result = self.reconciler.import_into_batch(batch, parse_result.transactions)
        logger.info(
            "Import %s : %d importées, %d doublons, %d erreurs de lecture",
            filename,
            result.imported,
            result.skipped,
            len(parse_result.errors),
        )
        return ImportResult(
            imported=result.imported,
            skipped=result.skipped,
            errors=[*parse_result.errors, *result.errors],
            batch_id=result.batch_id,
        )

    # --- Tink ---

    def tink_auth_url(self, redirect_uri: str, state: str | None = None) -> str:
        tink = self.config.tink
        return self.tink_client.generate_auth_url(
            redirect_uri,
            state=state,
            market=tink.market,
            locale=tink.locale,
            test=tink.test,
        )

    def process_tink_callback(
        self,
        code: str,
        redirect_uri: str,
        account_id: int | None = None,
    ) -> BankConnectionResult:
        """Traite le retour OAuth2 : token, comptes, transactions, import, recalage."""
        token = self.tink_client.exchange_code_for_token(code, redirect_uri)
        accounts, import_result = self._sync(token.access_token, account_id)
        return BankConnectionResult(
            access_token=token.access_token,
            expires_in=token.expires_in,
            accounts=accounts,
            import_result=import_result,
        )

    def resync_tink(self, access_token: str, account_id: int | None = None) -> ImportResult:
        """Resynchronise avec un token existant ; les doublons sont ignorés."""
        _accounts, import_result = self._sync(access_token, account_id)
        return import_result

    def _sync(self, access_token: str, account_id: int | None) -> tuple[list[ExternalAccount], ImportResult]:
        if account_id is None:
            account_id = self.accounts.get_or_create_default().id

        batch = self.reconciler.open_batch(account_id, f"tink_sync_{datetime.date.today().isoformat()}")
        try:
            raw_accounts = self.tink_client.get_accounts(access_token)
            accounts = self.normalizer.transform_accounts(raw_accounts)
            primary = self.normalizer.select_primary_account(accounts)
            raw_transactions = self.tink_client.get_transactions(
                access_token,
                account_id=primary.id if primary else None,
                page_size=self.config.tink.page_size,
            )
        except (ExternalApiError, ParseError) as e:
            self.reconciler.fail_batch(batch, str(e))
            raise

        if primary is not None:
            self.accounts.update_bank_info(
                account_id,
                bank=TINK_BANK_NAME,
                name=primary.name,
                account_number=primary.iban,
                currency=primary.currency,
            )

        parse_result = self.normalizer.transform_transactions(raw_transactions)
        result = self.reconciler.import_into_batch(batch, parse_result.transactions)

        if primary is not None and primary.balance is not None:
            self.reconciler.reconcile_bank_balance(account_id, primary.balance)

        logger.info(
            "Synchronisation Tink : %d importées, %d doublons",
            result.imported,
            result.skipped,
        )
        return accounts, ImportResult(
            imported=result.imported,
            skipped=result.skipped,
            errors=[*parse_result.errors, *result.errors],
            batch_id=result.batch_id,
        )
