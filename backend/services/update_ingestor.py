"""
Account update ingestion: indexing of the latest valid update per account.

Only the most recent update of an account is kept in memory, where "most
recent" means the highest version number. Each newly indexed update is handed
to every registered handler, in registration order.

Assumption: an account ID is unique and bound to a single account type.
"""

from __future__ import annotations

from typing import Callable, Optional

from models.account import AccountUpdate, IndexedAccount
from services.account_validator import validate_account_update
from services.base_service import AccountUpdateHandler, BaseService

Validator = Callable[[AccountUpdate], list[str]]


class AccountUpdateIngestor(BaseService):
    """Index of the last accepted update per account ID."""

    def __init__(self, validator: Optional[Validator] = None):
        super().__init__()
        self._validator: Validator = validator or validate_account_update
        self._accounts: dict[str, AccountUpdate] = {}
        self._handlers: list[AccountUpdateHandler] = []

    # ==================== INGESTION ====================

    def ingest(self, account_update: AccountUpdate) -> bool:
        """Index an account update if it is valid and newer than the stored one.

        Returns ``True`` when the update was indexed and dispatched.
        """
        if account_update is None:
            raise ValueError("Unprocessable account update event: None")

        issues = self._validator(account_update)
        if issues:
            self.logger.warning(
                f"Ignoring account update {account_update.id} v{account_update.version} - not indexing",
                issues=issues,
            )
            return False

        indexed = self._accounts.get(account_update.id)
        if indexed is not None and account_update.version <= indexed.version:
            self.logger.debug(
                "Superseded account update ignored",
                account_id=account_update.id,
                version=account_update.version,
                indexed_version=indexed.version,
            )
            return False

        self._accounts[account_update.id] = account_update
        self.logger.info(
            f"Indexing update v{account_update.version} for {account_update.id}",
        )
        self._dispatch(account_update)
        return True

    async def ingest_async(self, account_update: AccountUpdate) -> None:
        """Listener entry point for the event source."""
        self.ingest(account_update)

    def _dispatch(self, account_update: AccountUpdate) -> None:
        for handler in list(self._handlers):
            try:
                handler.process(account_update)
            except Exception as e:
                # One failing handler must not starve the others.
                self.logger.exception(
                    "Account update handler failed",
                    handler=type(handler).__name__,
                    account_id=account_update.id,
                    version=account_update.version,
                    error=str(e),
                )

    # ==================== HANDLERS ====================

    def register_observer(self, handler: AccountUpdateHandler) -> None:
        """Register a handler to be notified of every newly indexed update."""
        if handler is None:
            raise ValueError("Attempt to register an undefined account update handler")
        self._handlers.append(handler)

    @property
    def handlers(self) -> list[AccountUpdateHandler]:
        return list(self._handlers)

    # ==================== REPORTING ====================

    def report_status(self) -> list[IndexedAccount]:
        """List every indexed account with its last accepted update."""
        return [
            IndexedAccount(account_id=account_id, last_update=update)
            for account_id, update in self._accounts.items()
        ]

    def flush(self) -> list[IndexedAccount]:
        """Return the indexed accounts and clear the index, e.g. before a new session."""
        snapshot = self.report_status()
        self._accounts = {}
        self.logger.info("Flushed indexed account updates", flushed=len(snapshot))
        return snapshot

    def shutdown(self, signal: str = "") -> None:
        self._handlers = []
        self._accounts = {}
        super().shutdown(signal)
