import asyncio
import json
import random
import sys
from pathlib import Path

import httpx
import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from services.event_source import EventName, EventSourceError, EventSourceMock


class _SlowRng(random.Random):
    """Always picks the longest pause."""

    def randint(self, a, b):
        return b


class _SlowFirstRng(random.Random):
    """Longest pause for the first event only, then the shortest."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def randint(self, a, b):
        self.calls += 1
        return b if self.calls == 1 else a


def _fast_source(path) -> EventSourceMock:
    return EventSourceMock(source=str(path), max_interval_ms=1, rng=random.Random(7))


def _collect(source: EventSourceMock):
    updates, statuses = [], []
    source.register_listener(EventName.ACCOUNT_UPDATE, updates.append)
    source.register_listener(EventName.SERVICE_UPDATE, statuses.append)
    return updates, statuses


@pytest.mark.asyncio
async def test_load_account_updates_skips_invalid_items(event_log_file):
    source = _fast_source(event_log_file)

    loaded = await source.load_account_updates()

    assert [event.tokens for event in loaded.events] == [500000, 10]
    assert loaded.validation_errors
    assert all(issue.startswith("[1] ") for issue in loaded.validation_errors)


@pytest.mark.asyncio
async def test_load_account_updates_accepts_wrapped_list(tmp_path, raw_account_update):
    path = tmp_path / "wrapped.json"
    path.write_text(json.dumps({"list": [raw_account_update]}), encoding="utf-8")

    loaded = await _fast_source(path).load_account_updates()

    assert [event.id for event in loaded.events] == [raw_account_update["id"]]


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["{not json", json.dumps({"items": []}), json.dumps(42)])
async def test_load_account_updates_rejects_bad_logs(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(EventSourceError):
        await _fast_source(path).load_account_updates()


@pytest.mark.asyncio
async def test_load_account_updates_missing_file(tmp_path):
    with pytest.raises(EventSourceError):
        await _fast_source(tmp_path / "missing.json").load_account_updates()


@pytest.mark.asyncio
async def test_load_account_updates_over_http(monkeypatch, raw_account_update):
    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/updates.json":
            return httpx.Response(200, json=[raw_account_update])
        return httpx.Response(404)

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(_handler), **kwargs),
    )
    source = EventSourceMock(source="http://mock.local/updates.json", max_interval_ms=1)

    loaded = await source.load_account_updates()
    assert [event.version for event in loaded.events] == [123]

    with pytest.raises(EventSourceError):
        await source.load_account_updates("http://mock.local/missing.json")


@pytest.mark.asyncio
async def test_casts_every_valid_update_in_order(event_log_file):
    source = _fast_source(event_log_file)
    updates, statuses = _collect(source)

    queued = await source.start_importing_updates()
    await source.wait_until_exhausted()

    assert queued == 2
    assert [event.tokens for event in updates] == [500000, 10]
    assert [(s.source, s.active, s.leftover) for s in statuses] == [
        ("EventSourceMock", True, 2),
        ("EventSourceMock", False, 0),
    ]
    assert source.is_casting is False
    assert source.cast_count == 2


@pytest.mark.asyncio
async def test_stop_cancels_pending_pause_and_reports_leftover(event_log_file):
    source = EventSourceMock(source=str(event_log_file), max_interval_ms=60_000, rng=_SlowRng())
    updates, statuses = _collect(source)

    await source.start_importing_updates()
    await asyncio.sleep(0.01)
    await source.stop_importing_updates()

    assert updates == []
    assert [(s.active, s.leftover) for s in statuses] == [(True, 2), (False, 2)]
    assert source.leftover == 2
    assert source.is_casting is False


@pytest.mark.asyncio
async def test_restart_replaces_the_running_session(event_log_file):
    source = EventSourceMock(source=str(event_log_file), max_interval_ms=60_000, rng=_SlowFirstRng())
    updates, statuses = _collect(source)

    await source.start_importing_updates()
    await source.start_importing_updates()
    await source.wait_until_exhausted()
    await asyncio.sleep(0.01)

    assert [event.tokens for event in updates] == [500000, 10]
    assert [(s.active, s.leftover) for s in statuses] == [(True, 2), (False, 2), (True, 2), (False, 0)]


@pytest.mark.asyncio
async def test_listener_failure_does_not_block_other_listeners(event_log_file):
    source = _fast_source(event_log_file)

    def _broken(_event):
        raise RuntimeError("listener failed")

    received = []

    async def _async_listener(event):
        received.append(event.id)

    source.register_listener(EventName.ACCOUNT_UPDATE, _broken)
    source.register_listener(EventName.ACCOUNT_UPDATE, _async_listener)

    await source.start_importing_updates()
    await source.wait_until_exhausted()

    assert len(received) == 2


@pytest.mark.asyncio
async def test_listener_is_bound_to_its_context(event_log_file):
    class _Counter:
        def __init__(self):
            self.seen = 0

    def _count(self, _event):
        self.seen += 1

    counter = _Counter()
    source = _fast_source(event_log_file)
    source.register_listener(EventName.ACCOUNT_UPDATE, _count, context=counter)

    await source.start_importing_updates()
    await source.wait_until_exhausted()

    assert counter.seen == 2


def test_register_missing_listener_fails_fast(event_log_file):
    source = _fast_source(event_log_file)

    with pytest.raises(ValueError):
        source.register_listener(EventName.ACCOUNT_UPDATE, None)


@pytest.mark.asyncio
async def test_shutdown_drops_queue_and_listeners(event_log_file):
    source = EventSourceMock(source=str(event_log_file), max_interval_ms=60_000, rng=_SlowRng())
    updates, _ = _collect(source)
    await source.start_importing_updates()

    await source.shutdown_async("TEST")
    await asyncio.sleep(0.01)

    assert updates == []
    assert source.leftover == 0
    assert source.is_casting is False
