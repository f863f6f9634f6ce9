"""
Mock real-time source of account update events.

Instead of monitoring an actual on-chain stream, a JSON event log is loaded
(from a local file or an HTTP URL), validated against the account update
schema, and then cast one event at a time with a random pause between two
events to emulate real-time arrival.

Two channels can be listened to:
    EventName.ACCOUNT_UPDATE  -- one AccountUpdate per call
    EventName.SERVICE_UPDATE  -- ServiceStatusEvent when casting starts or stops
"""

from __future__ import annotations

import asyncio
import inspect
import json
import random
import types
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

import httpx

from config import settings
from models.account import AccountUpdate, ServiceStatusEvent
from services.account_validator import ParsedUpdates, parse_account_updates
from services.base_service import BaseService

Listener = Callable[[Any], Any]


class EventName(str, Enum):
    ACCOUNT_UPDATE = "account-event"
    SERVICE_UPDATE = "service-event"


class EventSourceError(Exception):
    """The mock event log could not be loaded."""


class EventSourceMock(BaseService):
    """Loads a JSON log of account updates and casts them sequentially."""

    def __init__(
        self,
        source: Optional[str] = None,
        max_interval_ms: Optional[int] = None,
        fetch_timeout_seconds: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        super().__init__()
        self.source = source or settings.MOCK_DATA_SOURCE
        self.max_interval_ms = max(
            1, max_interval_ms if max_interval_ms is not None else settings.EVENT_CASTING_MAX_INTERVAL_MS
        )
        self.fetch_timeout_seconds = (
            fetch_timeout_seconds if fetch_timeout_seconds is not None else settings.MOCK_FETCH_TIMEOUT_SECONDS
        )
        self._rng = rng or random.Random()
        self._listeners: dict[EventName, list[Listener]] = {name: [] for name in EventName}
        self._queue: deque[AccountUpdate] = deque()
        self._cast_task: Optional[asyncio.Task] = None
        self._session = 0  # Bumped on every start/stop, older cast loops then exit
        self._waiting = False
        self._casting = False
        self._cast_count = 0

    # ==================== LISTENERS ====================

    def register_listener(
        self,
        event_name: EventName,
        callback: Listener,
        context: Any = None,
    ) -> None:
        """Register a callback for one channel.

        The callback receives the event payload and may be sync or async.
        When ``context`` is given and the callback is a plain function, it is
        bound to ``context`` as if it were one of its methods.
        """
        if callback is None:
            raise ValueError(f"Attempt to register an undefined listener for '{EventName(event_name).value}'")
        if context is not None and not inspect.ismethod(callback):
            callback = types.MethodType(callback, context)
        self._listeners[EventName(event_name)].append(callback)

    def remove_all_listeners(self) -> None:
        for listeners in self._listeners.values():
            listeners.clear()

    async def _emit(self, event_name: EventName, data: Any) -> bool:
        listeners = list(self._listeners[event_name])
        if not listeners:
            self.logger.warning(f"No listeners found for events '{event_name.value}'")
            return False

        for callback in listeners:
            try:
                result = callback(data)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.exception(
                    "Listener error",
                    event_name=event_name.value,
                    error_type=type(e).__name__,
                    error=str(e),
                )
        return True

    async def _emit_status(self, active: bool, leftover: int) -> None:
        await self._emit(
            EventName.SERVICE_UPDATE,
            ServiceStatusEvent(source=type(self).__name__, active=active, leftover=leftover),
        )

    # ==================== LOADING ====================

    async def _read_source(self, source: str) -> str:
        if source.startswith(("http://", "https://")):
            try:
                async with httpx.AsyncClient(timeout=self.fetch_timeout_seconds) as client:
                    response = await client.get(source)
                    response.raise_for_status()
                    return response.text
            except httpx.HTTPError as e:
                raise EventSourceError(
                    f"Failed to fetch account events mock data from '{source}': {e}"
                ) from e

        try:
            return await asyncio.to_thread(Path(source).read_text, encoding="utf-8")
        except OSError as e:
            raise EventSourceError(f"Failed to read account events mock data from '{source}': {e}") from e

    async def load_account_updates(self, source: Optional[str] = None) -> ParsedUpdates:
        """Load and validate the account updates of a JSON event log.

        The log is either a JSON array of updates or an object holding them
        under ``"list"``. Invalid items are skipped and reported.
        """
        source = source or self.source
        raw_text = await self._read_source(source)
        try:
            payload = json.loads(raw_text)
        except json.JSONDecodeError as e:
            raise EventSourceError(f"Malformed JSON in account events mock data '{source}': {e}") from e

        if isinstance(payload, dict) and isinstance(payload.get("list"), list):
            payload = payload["list"]
        if not isinstance(payload, list):
            raise EventSourceError(
                f"Expected a list of account updates in '{source}', got {type(payload).__name__}"
            )
        loaded = parse_account_updates(payload)
        if loaded.validation_errors:
            self.logger.warning(
                "Dropped invalid account updates",
                source=source,
                valid=len(loaded.events),
                issues=loaded.validation_errors,
            )
        return loaded

    # ==================== CASTING ====================

    @property
    def is_casting(self) -> bool:
        return self._casting

    @property
    def leftover(self) -> int:
        return len(self._queue)

    @property
    def cast_count(self) -> int:
        return self._cast_count

    async def start_importing_updates(self, source: Optional[str] = None) -> int:
        """Load the event log and start casting its events in the background.

        A casting session already running is stopped first. Returns the
        number of events queued for casting.
        """
        loaded = await self.load_account_updates(source)
        await self.stop_importing_updates()

        self.logger.info(
            f"{len(loaded.events)} account updates available for casting",
            rejected=len(loaded.validation_errors),
        )
        self._queue = deque(loaded.events)
        self._session += 1
        self._casting = True
        await self._emit_status(active=True, leftover=len(self._queue))
        self._cast_task = asyncio.create_task(self._cast_loop(self._session))
        return len(loaded.events)

    async def _cast_loop(self, session: int) -> None:
        while self._queue and self._session == session:
            delay_ms = self._rng.randint(1, self.max_interval_ms)
            self._waiting = True
            try:
                await asyncio.sleep(delay_ms / 1000.0)
            finally:
                self._waiting = False
            if self._session != session:
                return

            account_update = self._queue.popleft()
            self._cast_count += 1
            await self._emit(EventName.ACCOUNT_UPDATE, account_update)

        if self._session == session:
            self._casting = False
            self.logger.warning("Casting of account update events is OVER - no more left")
            await self._emit_status(active=False, leftover=0)

    async def wait_until_exhausted(self) -> None:
        """Wait for the current casting session to end."""
        task = self._cast_task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def stop_importing_updates(self) -> None:
        """Stop casting. A pending pause is cancelled; an emission in progress completes."""
        self._session += 1
        task = self._cast_task
        self._cast_task = None
        if task is not None and not task.done() and self._waiting:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._casting:
            self._casting = False
            leftover = len(self._queue)
            self.logger.info("Stopped casting account update events", leftover=leftover)
            await self._emit_status(active=False, leftover=leftover)

    async def shutdown_async(self, signal: str = "") -> None:
        await self.stop_importing_updates()
        self.shutdown(signal)

    def shutdown(self, signal: str = "") -> None:
        self._session += 1
        if self._cast_task is not None and not self._cast_task.done():
            self._cast_task.cancel()
        self._cast_task = None
        self._casting = False
        self._queue.clear()
        self.remove_all_listeners()
        super().shutdown(signal)
