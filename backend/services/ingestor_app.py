"""
Wiring and lifecycle of the account ingestion services.

    EventSourceMock --account-event--> AccountUpdateIngestor --process--> AccountCallbackScheduler
                    --service-event--> IngestorApp                   +--> TokenLeaderboard

The app owns one instance of each service; nothing here is a module-level
singleton so several apps can coexist (e.g. in tests).
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Optional

from config import settings
from models.account import AppStatus, ServiceStatusEvent
from services.base_service import BaseService
from services.callback_scheduler import AccountCallbackScheduler
from services.event_source import EventName, EventSourceMock
from services.token_leaders import TokenLeaderboard
from services.update_ingestor import AccountUpdateIngestor


class ExitSignal(str, Enum):
    """App specific reasons for shutting down"""

    DONE = "DONE"
    INIT_FAIL = "INIT_FAIL"
    LEFTOVER = "LEFTOVER"
    SIGRPC = "SIGRPC"


class IngestorApp(BaseService):
    """Binds the event source, the ingestor and the update handlers together."""

    def __init__(
        self,
        source: Optional[EventSourceMock] = None,
        ingestor: Optional[AccountUpdateIngestor] = None,
        callback_scheduler: Optional[AccountCallbackScheduler] = None,
        leaderboard: Optional[TokenLeaderboard] = None,
        exit_max_wait_seconds: Optional[float] = None,
        exit_poll_interval_seconds: Optional[float] = None,
        exit_on_stop: Optional[bool] = None,
        on_exit: Optional[Callable[[str], None]] = None,
    ):
        super().__init__()
        self.source = source or EventSourceMock()
        self.ingestor = ingestor or AccountUpdateIngestor()
        self.callback_scheduler = callback_scheduler or AccountCallbackScheduler()
        self.leaderboard = leaderboard or TokenLeaderboard()
        self.exit_max_wait_seconds = (
            exit_max_wait_seconds if exit_max_wait_seconds is not None else settings.EXIT_MAX_WAIT_SECONDS
        )
        self.exit_poll_interval_seconds = (
            exit_poll_interval_seconds
            if exit_poll_interval_seconds is not None
            else settings.EXIT_POLL_INTERVAL_SECONDS
        )
        self.exit_on_stop = exit_on_stop if exit_on_stop is not None else settings.EXIT_ON_STOP
        self._on_exit = on_exit
        self._exit_task: Optional[asyncio.Task] = None
        self._restarting = False
        self.source_active = False
        self.last_source_status: Optional[ServiceStatusEvent] = None
        self._bound = False
        self._stopped = False

    # ==================== LIFECYCLE ====================

    def init(self) -> bool:
        ok = all(
            service.init()
            for service in (self.leaderboard, self.callback_scheduler, self.ingestor, self.source)
        )
        if ok:
            self.bind_services()
        return ok and super().init()

    def bind_services(self) -> None:
        """Source -> ingestor -> handlers, plus source status -> app."""
        if self._bound:
            return
        self.source.register_listener(EventName.SERVICE_UPDATE, self.handle_service_event)
        self.source.register_listener(EventName.ACCOUNT_UPDATE, self.ingestor.ingest_async)
        self.ingestor.register_observer(self.callback_scheduler)
        self.ingestor.register_observer(self.leaderboard)
        self._bound = True

    async def start(self) -> int:
        """Start casting and ingesting account update events."""
        self.logger.info("Start the casting & ingestion of account update events")
        return await self._start_source()

    async def recast(self) -> int:
        """Flush the indexed updates and start a new casting session."""
        self.ingestor.flush()
        return await self._start_source()

    async def _start_source(self) -> int:
        # The running session, if any, is stopped first: that stop is not an exit.
        self._restarting = True
        try:
            return await self.source.start_importing_updates()
        finally:
            self._restarting = False

    async def handle_service_event(self, status_event: ServiceStatusEvent) -> None:
        if status_event is None:
            return
        if status_event.source == type(self.source).__name__:
            self.source_active = status_event.active
            self.last_source_status = status_event
            if not status_event.active:
                exit_signal = ExitSignal.DONE if status_event.leftover == 0 else ExitSignal.LEFTOVER
                self.logger.info(
                    "Event source inactive",
                    leftover=status_event.leftover,
                    signal=exit_signal.value,
                )
                exiting = self._stopped or self._exit_task is not None
                if self.exit_on_stop and not self._restarting and not exiting:
                    # Run apart from the cast loop: shutting the source down cancels it.
                    self._exit_task = asyncio.create_task(self._exit(exit_signal.value))

    async def _exit(self, signal: str) -> None:
        await self.graceful_shutdown(signal)
        if self._on_exit is not None:
            self._on_exit(signal)

    async def wait_for_exit(self) -> None:
        """Wait for a shutdown triggered by the end of the event source, if any."""
        if self._exit_task is not None:
            await self._exit_task

    def is_connected(self) -> bool:
        return self._bound and not self._stopped

    # ==================== REPORTING ====================

    def report_status(self) -> AppStatus:
        return AppStatus(
            accounts=self.ingestor.report_status(),
            maxtokens=self.leaderboard.report_status(),
            pending=self.callback_scheduler.report_status(),
        )

    def _log_top_holders(self) -> None:
        lines = [
            f"\t{entry.type}\t{entry.accounts[0].id}\t{entry.accounts[0].tokens} tokens"
            for entry in self.leaderboard.report_status().leaderboard
            if entry.accounts
        ]
        if lines:
            self.logger.info("Max tokens holder, per account type:\n" + "\n".join(lines))

    # ==================== SHUTDOWN ====================

    async def graceful_shutdown(self, signal: str = ExitSignal.SIGRPC.value) -> bool:
        """Stop the source, let pending callbacks fire (bounded wait), then shut everything down.

        Returns whether every pending callback fired before the services were
        shut down. Calling it again is a no-op.
        """
        if self._stopped:
            return True
        self._stopped = True

        if signal == ExitSignal.DONE.value:
            self.logger.warning(f"Shutting down the app - job {signal}")
        else:
            self.logger.warning(f"Graceful app shutdown required on signal {signal}")
        await self.source.stop_importing_updates()

        drained = await self.callback_scheduler.wait_until_drained(
            self.exit_max_wait_seconds,
            self.exit_poll_interval_seconds,
        )
        self._log_top_holders()

        for service in (self.source, self.ingestor, self.callback_scheduler, self.leaderboard):
            try:
                service.shutdown(signal)
            except Exception as e:
                self.logger.error(
                    "Failed to properly shut down a service",
                    service=type(service).__name__,
                    error=str(e),
                )
        super().shutdown(signal)
        return drained
