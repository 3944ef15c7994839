"""Market subcommand: show, stake."""

from __future__ import annotations

import time
from datetime import datetime, timezone

import typer

from stakehub.errors import MalformedSnapshot
from stakehub.ledger.web3_gateway import Web3LedgerGateway
from stakehub.state.odds import can_stake, odds, read_claim_info, read_stakes, total_bets_estimate
from stakehub.state.reader import build_snapshot, execution_window

app = typer.Typer(help="Read-only market views")

WEI = 10**18


def _ts(epoch: int) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()


@app.command("show")
def show(ctx: typer.Context, address: str = typer.Argument(..., help="Market contract address")) -> None:
    """Show lifecycle status, pool and odds for one market."""
    gateway = Web3LedgerGateway.from_settings(ctx.obj["settings"])
    try:
        snap = build_snapshot(gateway.read_market(address))
    except MalformedSnapshot as e:
        typer.echo(f"Status unknown, try again: {e}", err=True)
        raise typer.Exit(1)
    o = odds(snap.pool)
    typer.echo(f"{snap.title}  [{snap.status.value}]  phase={snap.phase.name}")
    typer.echo(f"  Deadline:         {_ts(snap.staking_deadline)}")
    typer.echo(f"  Execution window: {_ts(execution_window(snap))}")
    typer.echo(f"  Pool:  A={snap.pool.a / WEI:.4f}  B={snap.pool.b / WEI:.4f}  Draw={snap.pool.draw / WEI:.4f}")
    typer.echo(f"  Odds:  yes={o.yes:.2%}  no={o.no:.2%}")
    typer.echo(f"  Bets (est.): {total_bets_estimate(snap.total_pool)}")
    typer.echo(f"  Polymarket: {snap.polymarket_url}")


@app.command("stake")
def stake(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Market contract address"),
    account: str = typer.Argument(..., help="Account address"),
) -> None:
    """Show an account's stakes, staking eligibility and, once settled, claim info."""
    gateway = Web3LedgerGateway.from_settings(ctx.obj["settings"])
    try:
        snap = build_snapshot(gateway.read_market(address))
        stakes = read_stakes(gateway, snap, account)
        member = gateway.is_member(address, account)
        claim = read_claim_info(gateway, snap, account)
    except MalformedSnapshot as e:
        typer.echo(f"Status unknown, try again: {e}", err=True)
        raise typer.Exit(1)
    for s in stakes:
        typer.echo(f"  {s.outcome.name:<5} {s.amount / WEI:.4f}")
    typer.echo(f"  Can stake: {can_stake(snap, time.time(), member)}")
    if claim is None:
        typer.echo("  Claim: not before settlement")
    else:
        typer.echo(
            f"  Claim: can_claim={claim.can_claim} reward={claim.potential_reward / WEI:.4f} "
            f"claimed={claim.has_claimed}"
        )
