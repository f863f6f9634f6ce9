from pydantic import BaseModel, ConfigDict, Field, StrictInt
from typing import Optional
from enum import Enum


class AccountType(str, Enum):
    """Supported account types"""

    ACCOUNT = "account"
    METADATA = "metadata"
    MINT = "mint"
    AUCTION = "auction"
    AUCTION_DATA = "auctionData"
    MASTER_EDITION = "masterEdition"
    ESCROW = "escrow"


class _WireModel(BaseModel):
    """Base for models exchanged with the outside world using camelCase names."""

    model_config = ConfigDict(populate_by_name=True)


class AccountUpdateData(_WireModel):
    """Free-form data attached to an account update"""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    img: Optional[str] = Field(default=None, min_length=6, max_length=256)
    mint_id: Optional[str] = Field(default=None, alias="mintId", min_length=1, max_length=256)
    expiry: Optional[StrictInt] = Field(default=None, ge=-1)
    current_bid: Optional[float] = Field(default=None, alias="currentBid", allow_inf_nan=False)


class AccountUpdate(_WireModel):
    """Account update event, as logged on chain.

    Immutable once built. Field values are checked on construction; an
    instance built with ``model_construct`` skips those checks, which is why
    consumers re-validate through ``services.account_validator``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    schema_version: StrictInt = Field(default=1, alias="_version", ge=0)  # Data model version
    id: str = Field(min_length=1, max_length=50, pattern=r"^[A-Za-z0-9]+$")
    account_type: AccountType = Field(alias="accountType")
    tokens: StrictInt = Field(ge=0)
    callback_time_ms: StrictInt = Field(alias="callbackTimeMs", ge=0)  # Delay before the callback fires
    data: AccountUpdateData = Field(default_factory=AccountUpdateData)
    version: StrictInt = Field(ge=0)  # On-chain version, higher is more recent


class ServiceStatusEvent(_WireModel):
    """Status update broadcast by a service, e.g. when an event stream is over"""

    source: str = Field(min_length=3, max_length=20)
    active: bool = True
    leftover: int = Field(default=0, ge=0)  # Items still to be processed


class AccountToken(_WireModel):
    """An account and its number of tokens"""

    id: str
    tokens: int


class AccountTime(_WireModel):
    """Start of the period during which an account was the top token owner"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    account_id: str = Field(alias="accountId")
    from_ms: int = Field(alias="from")


class AccountTimeRange(_WireModel):
    """Top token owner over a time range. ``-1`` bounds mean unknown or open-ended."""

    account_id: Optional[str] = Field(default=None, alias="accountId")
    from_ms: int = Field(default=-1, alias="from")
    until_ms: int = Field(default=-1, alias="until")


class AccountTypeTokenOwners(_WireModel):
    type: str
    accounts: list[AccountToken] = []


class AccountTypeTopOwnerHistory(_WireModel):
    type: str
    history: list[AccountTime] = []


class LeaderboardStatus(_WireModel):
    leaderboard: list[AccountTypeTokenOwners] = []
    history: list[AccountTypeTopOwnerHistory] = []


class CallbackStatus(_WireModel):
    """Number of pending callbacks and the accounts they belong to"""

    callbacks: int = 0
    accounts: list[str] = []


class IndexedAccount(_WireModel):
    account_id: str = Field(alias="accountId")
    last_update: AccountUpdate = Field(alias="lastUpdate")


class AppStatus(_WireModel):
    """Snapshot of every service state"""

    accounts: list[IndexedAccount] = []
    maxtokens: LeaderboardStatus = Field(default_factory=LeaderboardStatus)
    pending: CallbackStatus = Field(default_factory=CallbackStatus)
