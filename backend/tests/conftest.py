"""Shared fixtures for account ingestor tests."""

import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

import json

import pytest

from models.account import AccountType, AccountUpdate


def account_id(label: str) -> str:
    """Build a realistic 44-char alphanumeric account ID from a short label."""
    return (label + "x" * 44)[:44]


# ---------------------------------------------------------------------------
# Account update fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_update():
    """Factory for valid AccountUpdate instances."""

    def _make(
        id: str = "acct1",
        account_type: AccountType = AccountType.ACCOUNT,
        tokens: int = 100,
        version: int = 1,
        callback_time_ms: int = 0,
    ) -> AccountUpdate:
        return AccountUpdate(
            id=id,
            account_type=account_type,
            tokens=tokens,
            version=version,
            callback_time_ms=callback_time_ms,
        )

    return _make


@pytest.fixture
def invalid_update():
    """An update built without validation, with a negative token count."""
    return AccountUpdate.model_construct(
        schema_version=1,
        id="acct1",
        account_type=AccountType.ACCOUNT,
        tokens=-10,
        callback_time_ms=0,
        data=None,
        version=1,
    )


@pytest.fixture
def raw_account_update():
    """A realistic account update as logged in the JSON event log."""
    return {
        "id": "6BhkGCMVMyrjEEkrASJcLxfAvoW43g6BubxjpeUyZFoz",
        "accountType": "account",
        "tokens": 500000,
        "callbackTimeMs": 400,
        "data": {"img": "https://example.com/a.png"},
        "version": 123,
    }


@pytest.fixture
def event_log_file(tmp_path, raw_account_update):
    """A small JSON event log on disk, with one invalid entry."""
    second = dict(raw_account_update, id=account_id("second"), tokens=10, version=1)
    invalid = dict(raw_account_update, id=account_id("broken"), tokens=-1)
    path = tmp_path / "account_updates.json"
    path.write_text(json.dumps([raw_account_update, invalid, second]), encoding="utf-8")
    return path


class FakeClock:
    """Deterministic millisecond clock."""

    def __init__(self, start_ms: int = 1_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock():
    return FakeClock()
