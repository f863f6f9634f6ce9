from .account import (
    AccountType,
    AccountUpdate,
    AccountUpdateData,
    AccountToken,
    AccountTime,
    AccountTimeRange,
    AccountTypeTokenOwners,
    AccountTypeTopOwnerHistory,
    AppStatus,
    CallbackStatus,
    IndexedAccount,
    LeaderboardStatus,
    ServiceStatusEvent,
)

__all__ = [
    "AccountType",
    "AccountUpdate",
    "AccountUpdateData",
    "AccountToken",
    "AccountTime",
    "AccountTimeRange",
    "AccountTypeTokenOwners",
    "AccountTypeTopOwnerHistory",
    "AppStatus",
    "CallbackStatus",
    "IndexedAccount",
    "LeaderboardStatus",
    "ServiceStatusEvent",
]
