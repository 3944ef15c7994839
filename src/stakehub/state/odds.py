"""Odds and eligibility - pure functions over a MarketSnapshot."""

from __future__ import annotations

from typing import TYPE_CHECKING

from stakehub.models import ClaimInfo, MarketSnapshot, Odds, Outcome, Phase, Pool, Stake

if TYPE_CHECKING:
    from stakehub.ledger.base import LedgerGateway

WEI_PER_UNIT = 10**18
MIN_BET_WEI = WEI_PER_UNIT // 100  # 0.01 CHZ


def odds(pool: Pool) -> Odds:
    """Pool-weighted odds. An empty pool splits 0.5/0.5 between A and B."""
    total = pool.total
    if total == 0:
        return Odds(yes=0.5, no=0.5, draw=0.0)
    return Odds(yes=pool.a / total, no=pool.b / total, draw=pool.draw / total)


def can_stake(snapshot: MarketSnapshot, now: float, is_member: bool) -> bool:
    """Staking is allowed while OPEN, before the deadline, for community members."""
    return snapshot.phase == Phase.OPEN and now < snapshot.staking_deadline and is_member


def read_stakes(gateway: LedgerGateway, snapshot: MarketSnapshot, account: str) -> list[Stake]:
    """One Stake per outcome; stakes on different outcomes coexist."""
    return [
        Stake(
            market=snapshot.address,
            account=account,
            outcome=outcome,
            amount=gateway.read_stake(snapshot.address, account, outcome),
        )
        for outcome in Outcome
    ]


def claim_is_meaningful(snapshot: MarketSnapshot) -> bool:
    return snapshot.phase >= Phase.SETTLED


def read_claim_info(gateway: LedgerGateway, snapshot: MarketSnapshot, account: str) -> ClaimInfo | None:
    """Ask the ledger for claim facts, only once the market has settled."""
    if not claim_is_meaningful(snapshot):
        return None
    return gateway.read_claim(snapshot.address, account)


def total_bets_estimate(total_pool: int) -> int:
    # Unique stakers aren't readable; assume every bet is at least the minimum.
    return max(1, total_pool // MIN_BET_WEI)
