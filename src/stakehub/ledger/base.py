"""Ledger gateway protocol and tagged read results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from stakehub.models import ClaimInfo, Outcome, TxReceipt

REQUIRED_MARKET_FIELDS = (
    "metadata",
    "staking_deadline",
    "state",
    "total_pool",
    "pool_info",
    "polymarket_id",
)


@dataclass(frozen=True)
class ReadResult:
    """Outcome of one contract read: either a value or an error message."""

    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> ReadResult:
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> ReadResult:
        return cls(error=error)


@dataclass
class MarketReads:
    """Raw per-field reads for one market, keyed by REQUIRED_MARKET_FIELDS plus optional extras."""

    address: str
    fields: dict[str, ReadResult] = field(default_factory=dict)

    def get(self, name: str) -> ReadResult:
        return self.fields.get(name) or ReadResult.failure("not read")

    def failed(self, names: tuple[str, ...] = REQUIRED_MARKET_FIELDS) -> list[str]:
        return [n for n in names if not self.get(n).ok]


class LedgerGateway(Protocol):
    """Read/write boundary to the ledger. Owns signing, nonces and broadcast."""

    def read_market(self, address: str) -> MarketReads: ...

    def read_stake(self, address: str, account: str, outcome: Outcome) -> int: ...

    def read_claim(self, address: str, account: str) -> ClaimInfo: ...

    def is_member(self, address: str, account: str) -> bool: ...

    def write_phase_transition(self, address: str, outcome: Outcome) -> TxReceipt: ...

    def write_settlement(self, address: str, winning_outcome: Outcome, payout_wei: int) -> TxReceipt: ...
