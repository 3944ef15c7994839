"""Minimal ABIs for the Market and PredictionHub contracts (only what the gateway calls)."""

from __future__ import annotations

from typing import Any


def _fn(
    name: str,
    inputs: list[tuple[str, str]] | None = None,
    outputs: list[str] | None = None,
    mutability: str = "view",
) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t, "internalType": t} for n, t in (inputs or [])],
        "outputs": [{"name": "", "type": t, "internalType": t} for t in (outputs or [])],
    }


MARKET_ABI: list[dict[str, Any]] = [
    _fn("metadata", outputs=["string"]),
    _fn("stakingDeadline", outputs=["uint256"]),
    _fn("state", outputs=["uint8"]),
    _fn("getTotalPool", outputs=["uint256"]),
    _fn("getPoolInfo", outputs=["uint256", "uint256", "uint256"]),
    _fn("polymarketId", outputs=["string"]),
    _fn("hub", outputs=["address"]),
    _fn("chosenOutcome", outputs=["uint8"]),
    _fn("winningOutcome", outputs=["uint8"]),
    _fn("getStake", [("user", "address"), ("outcome", "uint8")], ["uint256"]),
    _fn("canClaim", [("user", "address")], ["bool"]),
    _fn("getPotentialReward", [("user", "address")], ["uint256"]),
    _fn("hasClaimed", [("user", "address")], ["bool"]),
    _fn("triggerExecution", [("outcome", "uint8")], [], mutability="nonpayable"),
    _fn("mockPolymarketReturn", [("winningOutcome", "uint8"), ("payout", "uint256")], [], mutability="payable"),
]

HUB_ABI: list[dict[str, Any]] = [
    _fn("getMarketCommunity", [("market", "address")], ["uint256"]),
    _fn("isCommunityMember", [("communityId", "uint256"), ("user", "address")], ["bool"]),
]

# Contract getter -> MarketReads field name.
MARKET_READS = {
    "metadata": "metadata",
    "stakingDeadline": "staking_deadline",
    "state": "state",
    "getTotalPool": "total_pool",
    "getPoolInfo": "pool_info",
    "polymarketId": "polymarket_id",
    "chosenOutcome": "chosen_outcome",
    "winningOutcome": "winning_outcome",
}
