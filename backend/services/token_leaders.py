"""
Leaderboard of the accounts holding the most tokens, per account type.

For every account type two structures are maintained:

    leaders  -- accounts sorted by token count (descending). A few extra
                entries beyond the published size are retained so that an
                update that pushes a leader down does not immediately lose
                track of the runner-up candidates.
    history  -- append-only record of when the top account changed, used to
                answer "who led at time T" with a binary search.
"""

from __future__ import annotations

from typing import Callable, Optional

from config import settings
from models.account import (
    AccountTime,
    AccountTimeRange,
    AccountToken,
    AccountTypeTokenOwners,
    AccountTypeTopOwnerHistory,
    AccountUpdate,
    LeaderboardStatus,
)
from services.base_service import BaseService
from utils.ranked_insert import insert_bounded_descending, search_insert, sort_descending
from utils.utcnow import now_ms


def _token_count(entry: AccountToken) -> int:
    return entry.tokens


def _type_key(account_type) -> str:
    return getattr(account_type, "value", account_type)


class TokenLeaderboard(BaseService):
    """Tracks top token owners per account type and their leadership history."""

    def __init__(
        self,
        list_size: Optional[int] = None,
        size_buffer: Optional[int] = None,
        history_max_size: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
    ):
        super().__init__()
        self.list_size = list_size if list_size is not None else settings.LEADERBOARD_LIST_SIZE
        self.size_buffer = size_buffer if size_buffer is not None else settings.LEADERBOARD_SIZE_BUFFER
        self.history_max_size = (
            history_max_size if history_max_size is not None else settings.TOP_OWNERS_HISTORY_MAX_SIZE
        )
        if self.list_size < 1 or self.size_buffer < 0 or self.history_max_size < 1:
            raise ValueError(
                f"Invalid leaderboard bounds: size={self.list_size} "
                f"buffer={self.size_buffer} history={self.history_max_size}"
            )
        self._clock = clock
        self._max_token_owners: dict[str, list[AccountToken]] = {}
        self._top_owner_over_time: dict[str, list[AccountTime]] = {}

    @property
    def capacity(self) -> int:
        """Number of entries retained per account type"""
        return self.list_size + self.size_buffer

    # ==================== PROCESSING ====================

    def process(self, account_update: AccountUpdate) -> bool:
        """Update the leaderboard of the update's account type.

        Returns ``True`` if the update changed the leaderboard.
        """
        if self.validate_account_update(account_update):
            return False

        account_type = _type_key(account_update.account_type)
        leaders = self._max_token_owners.setdefault(account_type, [])

        recorded = False
        for entry in leaders:
            if entry.id == account_update.id:
                entry.tokens = account_update.tokens
                sort_descending(leaders, _token_count)
                recorded = True
                break

        if not recorded:
            candidate = AccountToken(id=account_update.id, tokens=account_update.tokens)
            if len(leaders) < self.capacity or account_update.tokens > leaders[-1].tokens:
                insert_bounded_descending(leaders, candidate, self.capacity, _token_count)
                recorded = True

        if recorded:
            self._track_top_owner(account_type, leaders[0].id)
        return recorded

    def _track_top_owner(self, account_type: str, top_account_id: str) -> None:
        history = self._top_owner_over_time.setdefault(account_type, [])
        if history and history[-1].account_id == top_account_id:
            return

        from_ms = self._clock()
        if history and from_ms <= history[-1].from_ms:
            # Keep start times strictly increasing for the binary search.
            from_ms = history[-1].from_ms + 1

        history.append(AccountTime(account_id=top_account_id, from_ms=from_ms))
        if len(history) > self.history_max_size:
            del history[: len(history) - self.history_max_size]

        self.logger.info(
            "New top token owner",
            account_type=account_type,
            account_id=top_account_id,
            from_ms=from_ms,
        )

    # ==================== QUERIES ====================

    def retrieve_top_owner_at_time(self, account_type, time_ms: int) -> AccountTimeRange:
        """Which account held the most tokens of a type at a given time.

        ``time_ms`` is a Unix epoch timestamp in milliseconds. Unknown types,
        or times before the first recorded leader, give an empty range.
        """
        history = self._top_owner_over_time.get(_type_key(account_type))
        if not history:
            return AccountTimeRange()

        start_times = [entry.from_ms for entry in history]
        index = search_insert(start_times, time_ms)
        if index < len(start_times) and start_times[index] == time_ms:
            # A leader starting exactly at time_ms owns that instant.
            index += 1
        if index == 0:
            return AccountTimeRange()

        current = history[index - 1]
        until_ms = history[index].from_ms if index < len(history) else -1
        return AccountTimeRange(
            account_id=current.account_id,
            from_ms=current.from_ms,
            until_ms=until_ms,
        )

    def report_leaderboard(self) -> dict[str, list[AccountToken]]:
        """Top accounts per account type, without the buffer entries."""
        return {
            account_type: [entry.model_copy() for entry in leaders[: self.list_size]]
            for account_type, leaders in self._max_token_owners.items()
        }

    def report_status(self) -> LeaderboardStatus:
        """Leaderboard and top owner history for every known account type."""
        leaderboard = [
            AccountTypeTokenOwners(type=account_type, accounts=accounts)
            for account_type, accounts in self.report_leaderboard().items()
        ]
        history = [
            AccountTypeTopOwnerHistory(type=account_type, history=list(entries))
            for account_type, entries in self._top_owner_over_time.items()
        ]
        return LeaderboardStatus(leaderboard=leaderboard, history=history)

    def shutdown(self, signal: str = "") -> None:
        self._max_token_owners.clear()
        self._top_owner_over_time.clear()
        super().shutdown(signal)
