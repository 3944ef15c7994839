"""FastAPI execution endpoint: receives lock and result submissions and delegates the writes to the ledger gateway."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import Body, FastAPI, Request
from fastapi.responses import JSONResponse
from web3 import Web3

from stakehub.api.schemas import (
    ErrorResponse,
    HealthResponse,
    MarketView,
    OddsView,
    PoolView,
    WriteFailureResponse,
)
from stakehub.errors import MalformedSnapshot, StakehubError
from stakehub.ledger.base import LedgerGateway
from stakehub.models import Outcome, Phase
from stakehub.state.odds import odds, total_bets_estimate
from stakehub.state.reader import build_snapshot, execution_window

log = structlog.get_logger(__name__)


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(status_code=status_code, content={"detail": message, "code": code})


def _write_error(message: str, status_code: int, details: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "details": details},
    )


def _market_address(body: dict[str, Any]) -> str | None:
    address = body.get("marketAddress")
    return address if isinstance(address, str) and address else None


def create_app(gateway: LedgerGateway) -> FastAPI:
    """Build the app around a ledger gateway (web3 in production, a fake in tests)."""
    app = FastAPI(title="StakeHub Execution API", version="0.1.0")
    app.state.gateway = gateway

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse()

    @app.post(
        "/api/market/lock",
        responses={
            400: {"model": WriteFailureResponse},
            409: {"model": WriteFailureResponse},
            500: {"model": WriteFailureResponse},
        },
    )
    def lock_market(request: Request, body: Any = Body(None)) -> JSONResponse:
        """Lock a market for an outcome (0=A, 1=B, 2=Draw). Rejects markets no longer open."""
        gw: LedgerGateway = request.app.state.gateway
        if not isinstance(body, dict):
            return _write_error("JSON object body is required", 400)
        market_address = _market_address(body)
        outcome = body.get("outcome")
        if market_address is None:
            return _write_error("marketAddress is required", 400)
        if outcome is None:
            return _write_error("outcome is required (0=A, 1=B, 2=Draw)", 400)
        if isinstance(outcome, bool) or outcome not in (0, 1, 2):
            return _write_error("outcome must be 0 (A), 1 (B), or 2 (Draw)", 400)
        bound = log.bind(market_address=market_address, outcome=outcome)
        try:
            snapshot = build_snapshot(gw.read_market(market_address))
            if snapshot.phase != Phase.OPEN:
                bound.info("lock_rejected", phase=snapshot.phase.name)
                return _write_error(f"Market is not open (phase {snapshot.phase.name})", 409)
            receipt = gw.write_phase_transition(market_address, Outcome(outcome))
        except StakehubError as e:
            bound.error("lock_failed", kind=e.kind, error=str(e), detail=e.detail)
            return _write_error(str(e) or "Failed to lock market", 500, e.detail)
        bound.info("lock_written", tx_hash=receipt.tx_hash, block_number=receipt.block_number)
        return JSONResponse(
            {
                "success": True,
                "txHash": receipt.tx_hash,
                "blockNumber": str(receipt.block_number),
                "status": receipt.status,
            }
        )

    @app.post(
        "/api/market/submit-results",
        responses={400: {"model": WriteFailureResponse}, 500: {"model": WriteFailureResponse}},
    )
    def submit_results(request: Request, body: Any = Body(None)) -> JSONResponse:
        """Report the external result and fund the payout; the market contract settles on it."""
        gw: LedgerGateway = request.app.state.gateway
        if not isinstance(body, dict):
            return _write_error("JSON object body is required", 400)
        market_address = _market_address(body)
        winning_outcome = body.get("winningOutcome")
        payout = body.get("payout")
        if market_address is None:
            return _write_error("marketAddress is required", 400)
        if winning_outcome is None:
            return _write_error("winningOutcome is required (0=A, 1=B, 2=Draw)", 400)
        if isinstance(winning_outcome, bool) or winning_outcome not in (0, 1, 2):
            return _write_error("winningOutcome must be 0 (A), 1 (B), or 2 (Draw)", 400)
        if not payout:
            return _write_error("payout is required (in CHZ, e.g., '1.5' for 1.5 CHZ)", 400)
        try:
            payout_wei = Web3.to_wei(str(payout), "ether")
        except (ArithmeticError, TypeError, ValueError):
            return _write_error("Invalid payout amount. Must be a valid number.", 400)
        bound = log.bind(market_address=market_address, winning_outcome=winning_outcome)
        try:
            receipt = gw.write_settlement(market_address, Outcome(winning_outcome), payout_wei)
        except StakehubError as e:
            bound.error("results_failed", kind=e.kind, error=str(e), detail=e.detail)
            return _write_error(str(e) or "Failed to submit results", 500, e.detail)
        bound.info("results_written", tx_hash=receipt.tx_hash, payout_wei=payout_wei)
        return JSONResponse(
            {
                "success": True,
                "txHash": receipt.tx_hash,
                "blockNumber": str(receipt.block_number),
                "status": receipt.status,
                "payout": payout,
            }
        )

    @app.get("/api/markets/{address}", response_model=MarketView, responses={503: {"model": ErrorResponse}})
    def get_market(request: Request, address: str):
        """Snapshot view for presentation. Unknown state is reported, never guessed."""
        gw: LedgerGateway = request.app.state.gateway
        try:
            snap = build_snapshot(gw.read_market(address))
        except MalformedSnapshot as e:
            return _error_json("status_unknown", f"{e} - try again", status_code=503)
        o = odds(snap.pool)
        return MarketView(
            address=snap.address,
            title=snap.title,
            status=snap.status.value,
            phase=snap.phase.name,
            polymarket_url=snap.polymarket_url,
            staking_deadline=snap.staking_deadline,
            execution_window=execution_window(snap),
            odds=OddsView(yes=o.yes, no=o.no, draw=o.draw),
            pool=PoolView(a=str(snap.pool.a), b=str(snap.pool.b), draw=str(snap.pool.draw), total=str(snap.total_pool)),
            total_bets=total_bets_estimate(snap.total_pool),
            chosen_outcome=int(snap.chosen_outcome) if snap.chosen_outcome is not None else None,
            winning_outcome=int(snap.winning_outcome) if snap.winning_outcome is not None else None,
        )

    return app


def run_api(host: str, port: int, gateway: LedgerGateway) -> None:
    """Run uvicorn with the execution API."""
    import uvicorn

    uvicorn.run(create_app(gateway), host=host, port=port)
