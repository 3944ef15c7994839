"""Market state reader: metadata, title fallback, status, malformed reads."""

import pytest

from conftest import MARKET, market_reads
from stakehub.errors import MalformedSnapshot
from stakehub.ledger.base import ReadResult
from stakehub.models import MarketMetadata, MarketStatus, Outcome, Phase
from stakehub.state.reader import (
    build_snapshot,
    decode_pool,
    derive_status,
    derive_title,
    execution_window,
    is_due_for_lock,
    parse_metadata,
)

NOW = 1_700_000_000.0


def test_metadata_title_and_url_pass_through():
    snap = build_snapshot(market_reads(metadata='{"title":"X","polymarketUrl":"Y"}', now=NOW), now=NOW)
    assert snap.title == "X"
    assert snap.polymarket_url == "Y"
    assert snap.metadata.model_dump(by_alias=True) == {"title": "X", "polymarketUrl": "Y"}


@pytest.mark.parametrize("blob", ["", "   "])
def test_empty_metadata_falls_back_to_polymarket_id(blob):
    snap = build_snapshot(market_reads(metadata=blob, polymarket_id="nba-mem-dal", now=NOW), now=NOW)
    assert snap.title == "Nba Mem Dal"
    assert snap.polymarket_url == "https://polymarket.com/event/nba-mem-dal"


def test_unparsable_metadata_becomes_title():
    assert parse_metadata("{not json").title == "{not json"
    assert parse_metadata("Lakers vs Celtics").title == "Lakers vs Celtics"


@pytest.mark.parametrize("raw", ["42", "null", "true", "1e2", '"quoted"', "[1, 2]"])
def test_non_object_json_metadata_keeps_raw_title(raw):
    assert parse_metadata(raw).title == raw


def test_external_url_alias_accepted():
    assert parse_metadata('{"externalUrl":"https://x"}').polymarket_url == "https://x"


def test_title_falls_back_to_short_address():
    assert derive_title(MarketMetadata(), "", MARKET) == "Market 0x1234...5678"
    assert derive_title(MarketMetadata(title="  "), " ", MARKET) == "Market 0x1234...5678"


@pytest.mark.parametrize(
    "phase,hours,expected",
    [
        (Phase.OPEN, 48, MarketStatus.OPEN),
        (Phase.OPEN, 24.5, MarketStatus.OPEN),
        (Phase.OPEN, 24, MarketStatus.CLOSING_SOON),
        (Phase.OPEN, 2, MarketStatus.CLOSING_SOON),
        (Phase.OPEN, 0, MarketStatus.CLOSED),
        (Phase.OPEN, -1, MarketStatus.CLOSED),
        (Phase.LOCKED, 48, MarketStatus.CLOSED),
        (Phase.SETTLED, -5, MarketStatus.CLOSED),
        (Phase.COMPLETED, 48, MarketStatus.COMPLETED),
        (Phase.COMPLETED, -5, MarketStatus.COMPLETED),
    ],
)
def test_derive_status(phase, hours, expected):
    assert derive_status(phase, int(NOW + hours * 3600), NOW) == expected


def test_status_never_reverts_once_closed():
    deadline = int(NOW + 3600)
    for phase in Phase:
        seen_closed = False
        for step in range(0, 48 * 3600, 900):
            status = derive_status(phase, deadline, NOW + step)
            if status in (MarketStatus.CLOSED, MarketStatus.COMPLETED):
                seen_closed = True
            elif seen_closed:
                pytest.fail(f"{phase.name} reverted to {status} at +{step}s")


def test_closing_soon_scenario():
    snap = build_snapshot(market_reads(phase=0, deadline=int(NOW + 7200), pool=(3, 1, 0), now=NOW), now=NOW)
    assert snap.status == MarketStatus.CLOSING_SOON
    assert snap.pool.a == 3 and snap.pool.b == 1 and snap.pool.draw == 0
    assert snap.total_pool == 4
    assert execution_window(snap) == int(NOW + 7200) - 7200


def test_any_failed_read_invalidates_snapshot():
    reads = market_reads(fail=("pool_info",), now=NOW)
    with pytest.raises(MalformedSnapshot) as exc:
        build_snapshot(reads, now=NOW)
    assert exc.value.fields == ["pool_info"]
    assert exc.value.kind == "malformed_snapshot"


def test_missing_read_invalidates_snapshot():
    reads = market_reads(now=NOW)
    del reads.fields["state"]
    with pytest.raises(MalformedSnapshot):
        build_snapshot(reads, now=NOW)


def test_unknown_phase_code_is_malformed():
    with pytest.raises(MalformedSnapshot):
        build_snapshot(market_reads(phase=9, now=NOW), now=NOW)


def test_pool_shapes():
    assert decode_pool([1, 2, 3]).total == 6
    assert decode_pool({"totalA": 1, "totalB": "2", "totalDraw": 0}).b == 2
    assert decode_pool({"A": 5, "B": 0, "Draw": 1}).draw == 1
    for bad in ([1, 2], {"x": 1}, "123", None, [1, -1, 0]):
        with pytest.raises(ValueError):
            decode_pool(bad)


def test_unrecognised_pool_shape_is_malformed():
    reads = market_reads(now=NOW)
    reads.fields["pool_info"] = ReadResult.success({"yes": 1})
    with pytest.raises(MalformedSnapshot):
        build_snapshot(reads, now=NOW)


def test_outcomes_only_exposed_after_their_phase():
    reads = market_reads(phase=int(Phase.LOCKED), now=NOW)
    reads.fields["chosen_outcome"] = ReadResult.success(1)
    reads.fields["winning_outcome"] = ReadResult.success(1)
    snap = build_snapshot(reads, now=NOW)
    assert snap.chosen_outcome is None and snap.winning_outcome is None

    reads.fields["state"] = ReadResult.success(int(Phase.SETTLED))
    snap = build_snapshot(reads, now=NOW)
    assert snap.chosen_outcome == Outcome.B
    assert snap.winning_outcome == Outcome.B


def test_due_for_lock():
    snap = build_snapshot(market_reads(deadline=int(NOW + 7200), now=NOW), now=NOW)
    assert is_due_for_lock(snap, NOW)
    assert is_due_for_lock(snap, NOW, lead_seconds=7200)
    assert not is_due_for_lock(snap, NOW, lead_seconds=3600)
    locked = build_snapshot(market_reads(phase=1, now=NOW), now=NOW)
    assert not is_due_for_lock(locked, NOW)
