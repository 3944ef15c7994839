"""Shared fixtures: in-memory ledger gateway and market reads."""

from __future__ import annotations

import json
import time

import pytest

from stakehub.errors import LedgerWriteError
from stakehub.ledger.base import MarketReads, ReadResult
from stakehub.models import ClaimInfo, Outcome, Phase, TxReceipt

MARKET = "0x1234567890abcdef1234567890abcdef12345678"
ACCOUNT = "0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"


def market_reads(
    address: str = MARKET,
    *,
    phase: int = 0,
    deadline: int | None = None,
    pool=(3, 1, 0),
    metadata: str = '{"title":"X","polymarketUrl":"Y"}',
    polymarket_id: str = "nba-mem-dal",
    now: float | None = None,
    fail: tuple[str, ...] = (),
) -> MarketReads:
    now = time.time() if now is None else now
    deadline = int(now + 2 * 3600) if deadline is None else deadline
    values = {
        "metadata": metadata,
        "staking_deadline": deadline,
        "state": phase,
        "total_pool": sum(pool) if isinstance(pool, (list, tuple)) else 0,
        "pool_info": list(pool) if isinstance(pool, tuple) else pool,
        "polymarket_id": polymarket_id,
    }
    fields = {
        name: ReadResult.failure("execution reverted") if name in fail else ReadResult.success(v)
        for name, v in values.items()
    }
    return MarketReads(address=address, fields=fields)


class FakeGateway:
    """In-memory ledger. Rejects a second phase transition like the contract does."""

    def __init__(self, *, phase: Phase = Phase.OPEN, stale_reads: bool = False, **read_kwargs):
        self.phase = phase
        self.stale_reads = stale_reads
        self._initial_phase = phase
        self.read_kwargs = read_kwargs
        self.writes: list[tuple[str, Outcome]] = []
        self.settlements: list[tuple[str, Outcome, int]] = []
        self.reads = 0
        self.stakes: dict[tuple[str, int], int] = {}
        self.members: set[str] = set()
        self.claim = ClaimInfo(can_claim=True, potential_reward=5, has_claimed=False)

    def read_market(self, address: str) -> MarketReads:
        self.reads += 1
        phase = self._initial_phase if self.stale_reads else self.phase
        return market_reads(address, phase=int(phase), **self.read_kwargs)

    def read_stake(self, address: str, account: str, outcome: Outcome) -> int:
        return self.stakes.get((account, int(outcome)), 0)

    def read_claim(self, address: str, account: str) -> ClaimInfo:
        return self.claim

    def is_member(self, address: str, account: str) -> bool:
        return account in self.members

    def write_phase_transition(self, address: str, outcome: Outcome) -> TxReceipt:
        if self.phase != Phase.OPEN:
            raise LedgerWriteError("triggerExecution rejected", detail="execution reverted: not open")
        self.phase = Phase.LOCKED
        self.writes.append((address, outcome))
        return TxReceipt(tx_hash="0xabc", block_number=42, status="success")

    def write_settlement(self, address: str, winning_outcome: Outcome, payout_wei: int) -> TxReceipt:
        if self.phase != Phase.TRADING:
            raise LedgerWriteError("mockPolymarketReturn rejected", detail="execution reverted: not trading")
        self.phase = Phase.SETTLED
        self.settlements.append((address, winning_outcome, payout_wei))
        return TxReceipt(tx_hash="0xdef", block_number=43, status="success")


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


def lock_reply(**overrides) -> bytes:
    body = {"success": True, "txHash": "0xabc", "blockNumber": "42", "status": "1"}
    body.update(overrides)
    return json.dumps(body).encode()
