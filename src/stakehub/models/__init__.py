"""Canonical schema (Pydantic) - Market, Stake, ExecutionJob."""

from stakehub.models.execution import ExecutionJob, JobStatus, LockRequest, LockResponse, TxReceipt
from stakehub.models.market import (
    ClaimInfo,
    MarketMetadata,
    MarketSnapshot,
    MarketStatus,
    Odds,
    Outcome,
    Phase,
    Pool,
    Stake,
)

__all__ = [
    "Phase",
    "Outcome",
    "MarketStatus",
    "MarketMetadata",
    "MarketSnapshot",
    "Pool",
    "Odds",
    "Stake",
    "ClaimInfo",
    "ExecutionJob",
    "JobStatus",
    "LockRequest",
    "LockResponse",
    "TxReceipt",
]
