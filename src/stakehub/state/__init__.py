"""Market state derivation and odds/eligibility."""

from stakehub.state.odds import (
    can_stake,
    claim_is_meaningful,
    odds,
    read_claim_info,
    read_stakes,
    total_bets_estimate,
)
from stakehub.state.reader import build_snapshot, derive_status, derive_title, is_due_for_lock, parse_metadata

__all__ = [
    "build_snapshot",
    "derive_status",
    "derive_title",
    "parse_metadata",
    "is_due_for_lock",
    "odds",
    "can_stake",
    "claim_is_meaningful",
    "read_claim_info",
    "read_stakes",
    "total_bets_estimate",
]
