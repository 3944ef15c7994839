"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. status_unknown, market_not_open")


# --- Ledger writes (lock, submit-results) ---
class WriteFailureResponse(BaseModel):
    success: bool = False
    error: str
    details: str | None = None


# --- Markets ---
class OddsView(BaseModel):
    yes: float
    no: float
    draw: float


class PoolView(BaseModel):
    a: str
    b: str
    draw: str
    total: str


class MarketView(BaseModel):
    address: str
    title: str
    status: str
    phase: str
    polymarket_url: str
    staking_deadline: int
    execution_window: int
    odds: OddsView
    pool: PoolView
    total_bets: int
    chosen_outcome: int | None = None
    winning_outcome: int | None = None
