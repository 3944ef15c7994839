"""ExecutionJob and the lock request/response wire shapes."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from stakehub.models.market import Outcome


class JobStatus(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ExecutionJob(BaseModel):
    """One lock attempt for (market_address, outcome). Lives for a single invocation."""

    market_address: str
    outcome: Outcome
    status: JobStatus = JobStatus.PENDING
    tx_hash: str | None = None
    block_number: str | None = None
    error_kind: str | None = None
    error: str | None = None


class LockRequest(BaseModel):
    """Body posted to the execution endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    market_address: str = Field(..., alias="marketAddress", min_length=1)
    outcome: Outcome


class LockResponse(BaseModel):
    """Execution endpoint reply. Only `success` is required so failures still decode."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    tx_hash: str | None = Field(None, alias="txHash")
    block_number: str | None = Field(None, alias="blockNumber")
    status: str | None = None
    error: str | None = None
    details: str | None = None


class TxReceipt(BaseModel):
    """Minimal receipt returned by the ledger gateway after a write."""

    tx_hash: str
    block_number: int
    status: str
