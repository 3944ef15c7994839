"""Execution endpoint and market view."""

import pytest
from fastapi.testclient import TestClient

from conftest import MARKET, FakeGateway
from stakehub.api.main import create_app
from stakehub.models import Outcome, Phase


@pytest.fixture
def client(gateway):
    return TestClient(create_app(gateway))


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_lock_writes_transition(client, gateway):
    resp = client.post("/api/market/lock", json={"marketAddress": MARKET, "outcome": 2})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "txHash": "0xabc", "blockNumber": "42", "status": "success"}
    assert gateway.writes == [(MARKET, Outcome.DRAW)]


@pytest.mark.parametrize(
    "body,message",
    [
        ({"outcome": 0}, "marketAddress is required"),
        ({"marketAddress": MARKET}, "outcome is required (0=A, 1=B, 2=Draw)"),
        ({"marketAddress": MARKET, "outcome": 3}, "outcome must be 0 (A), 1 (B), or 2 (Draw)"),
        ({"marketAddress": MARKET, "outcome": "1"}, "outcome must be 0 (A), 1 (B), or 2 (Draw)"),
        ({"marketAddress": [MARKET], "outcome": 0}, "marketAddress is required"),
        ({"marketAddress": 12345, "outcome": 0}, "marketAddress is required"),
        ([1, 2], "JSON object body is required"),
    ],
)
def test_lock_validation(client, gateway, body, message):
    resp = client.post("/api/market/lock", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"] == message
    assert gateway.writes == []


def test_lock_rejects_market_not_open():
    gw = FakeGateway(phase=Phase.LOCKED)
    resp = TestClient(create_app(gw)).post("/api/market/lock", json={"marketAddress": MARKET, "outcome": 0})
    assert resp.status_code == 409
    assert resp.json()["success"] is False
    assert gw.writes == []


def test_lock_surfaces_ledger_rejection():
    gw = FakeGateway(stale_reads=True)
    client = TestClient(create_app(gw))
    assert client.post("/api/market/lock", json={"marketAddress": MARKET, "outcome": 0}).status_code == 200
    resp = client.post("/api/market/lock", json={"marketAddress": MARKET, "outcome": 0})
    assert resp.status_code == 500
    assert resp.json()["details"] == "execution reverted: not open"


def test_market_view(client):
    data = client.get(f"/api/markets/{MARKET}").json()
    assert data["title"] == "X"
    assert data["status"] == "closing-soon"
    assert data["phase"] == "OPEN"
    assert data["odds"] == {"yes": 0.75, "no": 0.25, "draw": 0.0}
    assert data["pool"]["total"] == "4"


def test_market_view_unknown_status():
    gw = FakeGateway(fail=("staking_deadline",))
    resp = TestClient(create_app(gw)).get(f"/api/markets/{MARKET}")
    assert resp.status_code == 503
    assert resp.json()["code"] == "status_unknown"


def test_submit_results_settles_trading_market():
    gw = FakeGateway(phase=Phase.TRADING)
    resp = TestClient(create_app(gw)).post(
        "/api/market/submit-results", json={"marketAddress": MARKET, "winningOutcome": 1, "payout": "1.5"}
    )
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "txHash": "0xdef",
        "blockNumber": "43",
        "status": "success",
        "payout": "1.5",
    }
    assert gw.settlements == [(MARKET, Outcome.B, 1_500_000_000_000_000_000)]
    assert gw.phase == Phase.SETTLED


def test_submit_results_accepts_numeric_payout():
    gw = FakeGateway(phase=Phase.TRADING)
    resp = TestClient(create_app(gw)).post(
        "/api/market/submit-results", json={"marketAddress": MARKET, "winningOutcome": 2, "payout": 2}
    )
    assert resp.status_code == 200
    assert gw.settlements == [(MARKET, Outcome.DRAW, 2 * 10**18)]


@pytest.mark.parametrize(
    "body,message",
    [
        ({"winningOutcome": 0, "payout": "1"}, "marketAddress is required"),
        ({"marketAddress": 7, "winningOutcome": 0, "payout": "1"}, "marketAddress is required"),
        ({"marketAddress": MARKET, "payout": "1"}, "winningOutcome is required (0=A, 1=B, 2=Draw)"),
        ({"marketAddress": MARKET, "winningOutcome": 3, "payout": "1"}, "winningOutcome must be 0 (A), 1 (B), or 2 (Draw)"),
        ({"marketAddress": MARKET, "winningOutcome": True, "payout": "1"}, "winningOutcome must be 0 (A), 1 (B), or 2 (Draw)"),
        ({"marketAddress": MARKET, "winningOutcome": 0}, "payout is required (in CHZ, e.g., '1.5' for 1.5 CHZ)"),
        ({"marketAddress": MARKET, "winningOutcome": 0, "payout": ""}, "payout is required (in CHZ, e.g., '1.5' for 1.5 CHZ)"),
        ({"marketAddress": MARKET, "winningOutcome": 0, "payout": "lots"}, "Invalid payout amount. Must be a valid number."),
        ({"marketAddress": MARKET, "winningOutcome": 0, "payout": "-1"}, "Invalid payout amount. Must be a valid number."),
    ],
)
def test_submit_results_validation(body, message):
    gw = FakeGateway(phase=Phase.TRADING)
    resp = TestClient(create_app(gw)).post("/api/market/submit-results", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"] == message
    assert gw.settlements == []


def test_submit_results_surfaces_ledger_rejection(client, gateway):
    resp = client.post("/api/market/submit-results", json={"marketAddress": MARKET, "winningOutcome": 0, "payout": "1"})
    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert resp.json()["details"] == "execution reverted: not trading"
    assert gateway.settlements == []
