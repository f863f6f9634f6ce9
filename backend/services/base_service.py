"""Common lifecycle and validation behaviour shared by the account services."""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from models.account import AccountUpdate
from services.account_validator import validate_account_update
from utils.logger import ContextLogger, get_logger


class BaseService:
    """Base class for services: a class-named logger, init and shutdown hooks."""

    def __init__(self, logger: Optional[ContextLogger] = None):
        self.logger = logger or get_logger(type(self).__name__)

    def validate_account_update(self, account_update: Optional[AccountUpdate]) -> list[str]:
        """Check an account update against the supported schema.

        Raises ``ValueError`` when no update is given at all, which is a
        caller bug rather than bad input.
        """
        if account_update is None:
            raise ValueError("Unprocessable account update event: None")
        issues = validate_account_update(account_update)
        if issues:
            self.logger.warning(
                f"Ignoring the non-supported account update {account_update.id} v{account_update.version}",
                issues=issues,
            )
        return issues

    def init(self) -> bool:
        self.logger.debug("Initializing the service")
        return True

    def shutdown(self, signal: str = "") -> None:
        self.logger.debug(f"Shutting down the service on signal: {signal}")


@runtime_checkable
class AccountUpdateHandler(Protocol):
    """Anything notified of newly indexed account updates."""

    def process(self, account_update: AccountUpdate) -> bool:
        """Handle an indexed update, return whether it changed the handler state."""
        ...

    def shutdown(self, signal: str = "") -> None: ...
