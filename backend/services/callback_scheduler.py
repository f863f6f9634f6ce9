"""
Debounced per-account callbacks.

Every indexed update (re)arms a timer for its account: the callback fires
``callback_time_ms`` after the latest update, and an update arriving before
then cancels the pending timer and starts a new one. Per account the state is
either idle (no entry) or pending (one ``asyncio.TimerHandle``).

Timers live on an event loop: updates are processed from a coroutine, or the
scheduler is given the loop to use. Without either ``process`` raises
``RuntimeError`` and nothing is scheduled.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional

from models.account import AccountUpdate, CallbackStatus
from services.base_service import BaseService

TriggerHook = Callable[[AccountUpdate], None]


class AccountCallbackScheduler(BaseService):
    """Keeps at most one pending callback per account ID."""

    def __init__(
        self,
        on_trigger: Optional[TriggerHook] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        super().__init__()
        self._on_trigger = on_trigger
        self._loop = loop
        self._callback_timeouts: dict[str, asyncio.TimerHandle] = {}
        self._triggered_count = 0
        self._cancelled_count = 0

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError as e:
            raise RuntimeError(
                f"{type(self).__name__} needs a running event loop, or one given at construction"
            ) from e

    # ==================== SCHEDULING ====================

    def process(self, account_update: AccountUpdate) -> bool:
        """Cancel the account's pending callback, if any, and schedule a new one."""
        if self.validate_account_update(account_update):
            return False
        loop = self._get_loop()

        account_id = account_update.id
        existing = self._callback_timeouts.pop(account_id, None)
        if existing is not None:
            existing.cancel()
            self._cancelled_count += 1
            self.logger.info(f"Callback CANCELLED for {account_id} (replaced)")

        handle = loop.call_later(
            account_update.callback_time_ms / 1000.0,
            self._trigger,
            account_update,
        )
        self._callback_timeouts[account_id] = handle
        return True

    def _trigger(self, account_update: AccountUpdate) -> None:
        self._callback_timeouts.pop(account_update.id, None)
        self._triggered_count += 1
        self.logger.info(
            f"Callback TRIGGERED for {account_update.id} v{account_update.version}",
            account_type=account_update.account_type.value,
            tokens=account_update.tokens,
        )
        if self._on_trigger is not None:
            try:
                self._on_trigger(account_update)
            except Exception as e:
                self.logger.exception(
                    "Callback hook failed",
                    account_id=account_update.id,
                    error=str(e),
                )

    # ==================== REPORTING ====================

    def report_status(self) -> CallbackStatus:
        """Number of pending callbacks and the accounts they belong to."""
        return CallbackStatus(
            callbacks=len(self._callback_timeouts),
            accounts=list(self._callback_timeouts.keys()),
        )

    @property
    def stats(self) -> dict[str, int]:
        return {
            "pending": len(self._callback_timeouts),
            "triggered": self._triggered_count,
            "cancelled": self._cancelled_count,
        }

    async def wait_until_drained(
        self,
        max_wait_seconds: float,
        poll_interval_seconds: float = 0.5,
    ) -> bool:
        """Wait for pending callbacks to fire, at most ``max_wait_seconds``.

        Returns ``True`` if nothing is left pending.
        """
        deadline = time.monotonic() + max(0.0, max_wait_seconds)
        while True:
            status = self.report_status()
            remaining = deadline - time.monotonic()
            if status.callbacks == 0:
                return True
            if remaining <= 0:
                self.logger.warning(
                    "Gave up waiting for pending callbacks",
                    pending=status.callbacks,
                )
                return False
            self.logger.debug(
                "Waiting for pending callbacks",
                pending=status.callbacks,
                time_left_seconds=round(remaining, 2),
            )
            await asyncio.sleep(min(poll_interval_seconds, remaining))

    def shutdown(self, signal: str = "") -> None:
        """Cancel every pending callback; none of them will fire."""
        for handle in self._callback_timeouts.values():
            handle.cancel()
        self._callback_timeouts.clear()
        super().shutdown(signal)
