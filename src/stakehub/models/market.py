"""Market, Pool, Stake - lifecycle entities derived from ledger reads."""

from __future__ import annotations

from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field


class Phase(IntEnum):
    """Market lifecycle. Strictly forward-moving."""

    OPEN = 0
    LOCKED = 1
    BRIDGED = 2
    TRADING = 3
    SETTLED = 4
    COMPLETED = 5

    @classmethod
    def from_code(cls, code: int) -> Phase:
        return cls(int(code))


class Outcome(IntEnum):
    """Wire codes for outcomes (contract enum order)."""

    A = 0
    B = 1
    DRAW = 2


class MarketStatus(str, Enum):
    OPEN = "open"
    CLOSING_SOON = "closing-soon"
    CLOSED = "closed"
    COMPLETED = "completed"


class MarketMetadata(BaseModel):
    """Parsed metadata blob. Both fields optional."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str | None = None
    polymarket_url: str | None = Field(None, alias="polymarketUrl")


class Pool(BaseModel):
    """Accumulated stake per outcome (wei)."""

    model_config = ConfigDict(frozen=True)

    a: int = Field(0, ge=0)
    b: int = Field(0, ge=0)
    draw: int = Field(0, ge=0)

    @property
    def total(self) -> int:
        return self.a + self.b + self.draw

    def get(self, outcome: Outcome) -> int:
        return (self.a, self.b, self.draw)[outcome]


class Odds(BaseModel):
    """Pool-weighted odds. `yes` is outcome A, `no` is outcome B."""

    model_config = ConfigDict(frozen=True)

    yes: float
    no: float
    draw: float = 0.0


class MarketSnapshot(BaseModel):
    """Point-in-time view of one market. Disposable; re-derive on demand."""

    model_config = ConfigDict(frozen=True)

    address: str
    phase: Phase
    staking_deadline: int  # epoch seconds
    pool: Pool
    total_pool: int = Field(..., ge=0)
    metadata: MarketMetadata = Field(default_factory=MarketMetadata)
    polymarket_id: str = ""
    title: str
    polymarket_url: str
    status: MarketStatus
    observed_at: float  # epoch seconds
    chosen_outcome: Outcome | None = None
    winning_outcome: Outcome | None = None


class Stake(BaseModel):
    """One account's stake on one outcome of one market."""

    market: str
    account: str
    outcome: Outcome
    amount: int = Field(..., ge=0)


class ClaimInfo(BaseModel):
    """Authoritative claim facts as read from the ledger."""

    can_claim: bool
    potential_reward: int = Field(0, ge=0)
    has_claimed: bool = False
