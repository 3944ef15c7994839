"""
Lock-market workflow: one scheduled invocation per (market, outcome).

Sequence per invocation: read ledger -> snapshot -> due? -> consensus-gated
POST to the execution endpoint -> report. Retries happen only on the next
scheduler tick; the endpoint and ledger reject duplicates.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

import structlog

from stakehub.errors import DecodeError, ExecutionRejected, StakehubError
from stakehub.execution.requester import (
    CachePolicy,
    ConsensusGroup,
    HttpRequest,
    HttpResponse,
    Requester,
    decode_json,
    encode_json_body,
)
from stakehub.ledger.base import LedgerGateway
from stakehub.models import ExecutionJob, JobStatus, LockRequest, LockResponse, Outcome
from stakehub.state.reader import build_snapshot, is_due_for_lock

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LockTarget:
    market_address: str
    outcome: Outcome


def build_lock_request(target: LockTarget, api_url: str, cache: CachePolicy) -> HttpRequest:
    """Request carrying market address and outcome only, so duplicates are recognisable downstream."""
    payload = LockRequest(market_address=target.market_address, outcome=target.outcome)
    body = encode_json_body(payload.model_dump(by_alias=True, mode="json"))
    return HttpRequest(
        url=api_url,
        method="POST",
        headers={"Content-Type": "application/json"},
        body=body,
        cache=cache,
    )


def post_lock_request(requester: Requester, request: HttpRequest) -> HttpResponse:
    """Per-executor step: send and reduce the reply to (status, body) for aggregation."""
    return requester.send(request)


def interpret_lock_response(response: HttpResponse) -> LockResponse:
    """Aggregated reply -> LockResponse. Non-2xx, bad body or success=false raise."""
    if not response.ok:
        raise ExecutionRejected(
            f"HTTP request failed with status: {response.status_code}",
            status_code=response.status_code,
            detail=response.body[:500].decode("utf-8", errors="replace"),
        )
    result = decode_json(response.body, LockResponse)
    if not result.success:
        raise ExecutionRejected(
            f"Failed to lock market: {result.model_dump_json(by_alias=True, exclude_none=True)}",
            status_code=response.status_code,
        )
    if not result.tx_hash or result.block_number is None:
        raise DecodeError("Success reply is missing txHash or blockNumber")
    return result


class LockMarketWorkflow:
    """Drives one lock target. Holds no state between invocations."""

    def __init__(
        self,
        target: LockTarget,
        gateway: LedgerGateway,
        consensus: ConsensusGroup,
        api_url: str,
        *,
        cache: CachePolicy | None = None,
        lock_lead_sec: int | None = None,
    ) -> None:
        self.target = target
        self.gateway = gateway
        self.consensus = consensus
        self.api_url = api_url
        self.cache = cache or CachePolicy(read_from_cache=True, max_age_ms=60_000)
        self.lock_lead_sec = lock_lead_sec

    def run_once(self, now: float | None = None) -> ExecutionJob | None:
        """
        Run one invocation. Returns None when the market is not due (already
        locked, or outside the lead window), the confirmed job on success.
        Raises a StakehubError on any failure after logging it.
        """
        now = time.time() if now is None else now
        address, outcome = self.target.market_address, self.target.outcome
        bound = log.bind(market_address=address, outcome=int(outcome))

        job = ExecutionJob(market_address=address, outcome=outcome)
        try:
            snapshot = build_snapshot(self.gateway.read_market(address), now=now)
            if not is_due_for_lock(snapshot, now, self.lock_lead_sec):
                bound.info(
                    "lock_invocation",
                    result="skipped",
                    phase=snapshot.phase.name,
                    seconds_to_deadline=int(snapshot.staking_deadline - now),
                )
                return None

            job.status = JobStatus.IN_FLIGHT
            request = build_lock_request(self.target, self.api_url, self.cache)
            response = self.consensus.run(post_lock_request, request)
            result = interpret_lock_response(response)
        except StakehubError as e:
            job.status = JobStatus.FAILED
            job.error_kind = e.kind
            job.error = str(e)
            bound.error("lock_invocation", result="failed", **e.to_dict())
            raise

        job.status = JobStatus.CONFIRMED
        job.tx_hash = result.tx_hash
        job.block_number = result.block_number
        bound.info(
            "lock_invocation",
            result="confirmed",
            tx_hash=result.tx_hash,
            block_number=result.block_number,
            tx_status=result.status,
        )
        return job



def run_lock_job(workflow: LockMarketWorkflow) -> ExecutionJob | None:
    """
    Scheduler entry point for one tick. Known failures were already logged by
    run_once; anything else is logged here. Both are re-raised so the
    scheduler records the run as failed.
    """
    try:
        return workflow.run_once()
    except StakehubError:
        raise
    except Exception:
        log.exception(
            "lock_job_crashed",
            market_address=workflow.target.market_address,
            outcome=int(workflow.target.outcome),
        )
        raise
