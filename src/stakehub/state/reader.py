"""Raw ledger reads -> MarketSnapshot. Pure transforms, no I/O."""

from __future__ import annotations

import json
import time
from collections.abc import Mapping, Sequence
from typing import Any

from stakehub.errors import MalformedSnapshot
from stakehub.ledger.base import MarketReads
from stakehub.models import MarketMetadata, MarketSnapshot, MarketStatus, Outcome, Phase, Pool

POLYMARKET_EVENT_URL = "https://polymarket.com/event/"
CLOSING_SOON_HOURS = 24
EXECUTION_WINDOW_SEC = 2 * 60 * 60

# Named-field pool shapes, tried in order after the positional tuple shape.
_POOL_KEYSETS = (
    ("totala", "totalb", "totaldraw"),
    ("a", "b", "draw"),
)


def _int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name}: bool is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValueError(f"{name}: expected integer, got {type(value).__name__}")


def decode_pool(raw: Any) -> Pool:
    """Decode pool info. Positional (A, B, Draw) first, then named fields; anything else is malformed."""
    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        if len(raw) != 3:
            raise ValueError(f"pool_info: expected 3 values, got {len(raw)}")
        a, b, d = (_int(v, "pool_info") for v in raw)
    elif isinstance(raw, Mapping):
        lowered = {str(k).lower(): v for k, v in raw.items()}
        for keys in _POOL_KEYSETS:
            if all(k in lowered for k in keys):
                a, b, d = (_int(lowered[k], "pool_info") for k in keys)
                break
        else:
            raise ValueError(f"pool_info: unrecognised keys {sorted(lowered)}")
    else:
        raise ValueError(f"pool_info: unsupported shape {type(raw).__name__}")
    if min(a, b, d) < 0:
        raise ValueError("pool_info: negative stake")
    return Pool(a=a, b=b, draw=d)


def parse_metadata(raw: str | None) -> MarketMetadata:
    """Parse the metadata blob. Never fails: non-objects and garbage become the title."""
    if raw is None or not str(raw).strip():
        return MarketMetadata()
    raw = str(raw)
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        return MarketMetadata(title=raw)
    if not isinstance(parsed, dict):
        return MarketMetadata(title=raw)
    title = parsed.get("title")
    url = parsed.get("polymarketUrl") or parsed.get("externalUrl")
    return MarketMetadata(
        title=str(title) if title is not None else None,
        polymarket_url=str(url) if url else None,
    )


def shorten_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


def derive_title(metadata: MarketMetadata, polymarket_id: str, address: str) -> str:
    """Metadata title, else title-cased polymarket id, else shortened address."""
    if metadata.title and metadata.title.strip():
        return metadata.title
    if polymarket_id and polymarket_id.strip():
        return " ".join(w[:1].upper() + w[1:] for w in polymarket_id.split("-"))
    return f"Market {shorten_address(address)}"


def derive_url(metadata: MarketMetadata, polymarket_id: str) -> str:
    return metadata.polymarket_url or f"{POLYMARKET_EVENT_URL}{polymarket_id}"


def derive_status(phase: Phase, staking_deadline: int, now: float) -> MarketStatus:
    """Display status from (phase, deadline, now)."""
    hours_left = (staking_deadline - now) / 3600
    if phase == Phase.OPEN and hours_left > CLOSING_SOON_HOURS:
        return MarketStatus.OPEN
    if phase == Phase.OPEN and 0 < hours_left <= CLOSING_SOON_HOURS:
        return MarketStatus.CLOSING_SOON
    if phase == Phase.COMPLETED:
        return MarketStatus.COMPLETED
    return MarketStatus.CLOSED


def execution_window(snapshot: MarketSnapshot) -> int:
    """Epoch seconds at which the lock window opens (2h before the staking deadline)."""
    return snapshot.staking_deadline - EXECUTION_WINDOW_SEC


def is_due_for_lock(snapshot: MarketSnapshot, now: float, lead_seconds: int | None = None) -> bool:
    """True when the lock should be requested: still OPEN, and inside the lead window if one is set."""
    if snapshot.phase != Phase.OPEN:
        return False
    if lead_seconds is None:
        return True
    return snapshot.staking_deadline - now <= lead_seconds


def _optional_outcome(reads: MarketReads, name: str, phase: Phase, min_phase: Phase) -> Outcome | None:
    r = reads.fields.get(name)
    if r is None or not r.ok or phase < min_phase:
        return None
    try:
        return Outcome(int(r.value))
    except (TypeError, ValueError):
        return None


def build_snapshot(reads: MarketReads, now: float | None = None) -> MarketSnapshot:
    """
    Build a MarketSnapshot from raw reads.
    Any failed or unparsable required read invalidates the whole snapshot (MalformedSnapshot).
    """
    now = time.time() if now is None else now
    address = reads.address
    failed = reads.failed()
    if failed:
        errors = "; ".join(f"{n}: {reads.get(n).error}" for n in failed)
        raise MalformedSnapshot(
            f"Ledger reads failed for {address}: {', '.join(failed)}", fields=failed, detail=errors
        )
    try:
        phase = Phase.from_code(_int(reads.get("state").value, "state"))
        deadline = _int(reads.get("staking_deadline").value, "staking_deadline")
        pool = decode_pool(reads.get("pool_info").value)
        total_pool = _int(reads.get("total_pool").value, "total_pool")
    except ValueError as e:
        raise MalformedSnapshot(f"Unparsable ledger read for {address}", detail=str(e)) from e
    if total_pool < 0:
        raise MalformedSnapshot(f"Negative total pool for {address}", fields=["total_pool"])
    raw_meta = reads.get("metadata").value
    metadata = parse_metadata(raw_meta if isinstance(raw_meta, str) else None)
    polymarket_id = str(reads.get("polymarket_id").value or "")
    return MarketSnapshot(
        address=address,
        phase=phase,
        staking_deadline=deadline,
        pool=pool,
        total_pool=total_pool,
        metadata=metadata,
        polymarket_id=polymarket_id,
        title=derive_title(metadata, polymarket_id, address),
        polymarket_url=derive_url(metadata, polymarket_id),
        status=derive_status(phase, deadline, now),
        observed_at=now,
        chosen_outcome=_optional_outcome(reads, "chosen_outcome", phase, Phase.TRADING),
        winning_outcome=_optional_outcome(reads, "winning_outcome", phase, Phase.SETTLED),
    )
