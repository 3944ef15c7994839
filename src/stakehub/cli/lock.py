"""Lock subcommand: run once, schedule."""

from __future__ import annotations

import typer

from stakehub.config import Settings, WorkflowConfig
from stakehub.errors import ConfigError, StakehubError
from stakehub.execution.requester import CachePolicy, ConsensusGroup
from stakehub.execution.scheduler import LockScheduler
from stakehub.execution.workflow import LockMarketWorkflow, LockTarget
from stakehub.ledger.base import LedgerGateway
from stakehub.ledger.web3_gateway import Web3LedgerGateway
from stakehub.models import Outcome

app = typer.Typer(help="Consensus-gated market locking")


def build_workflows(
    cfg: WorkflowConfig, gateway: LedgerGateway, consensus: ConsensusGroup
) -> list[LockMarketWorkflow]:
    cache = CachePolicy(read_from_cache=cfg.cache_read, max_age_ms=cfg.cache_max_age_ms)
    return [
        LockMarketWorkflow(
            LockTarget(market_address=m.address, outcome=Outcome(m.outcome)),
            gateway,
            consensus,
            cfg.api_url,
            cache=cache,
            lock_lead_sec=cfg.lock_lead_sec,
        )
        for m in cfg.markets
    ]


def _load(settings: Settings) -> WorkflowConfig:
    try:
        return WorkflowConfig.from_settings(settings)
    except ConfigError as e:
        typer.echo(f"Config error: {e}", err=True)
        if e.detail:
            typer.echo(e.detail, err=True)
        raise typer.Exit(2)


@app.command("run")
def run_once(ctx: typer.Context) -> None:
    """Run one invocation for every configured market. Exit 1 if any failed."""
    cfg = _load(ctx.obj["settings"])
    gateway = Web3LedgerGateway.from_settings(ctx.obj["settings"])
    consensus = ConsensusGroup.create(cfg.executors, cfg.timeout_sec)
    failures = 0
    try:
        for wf in build_workflows(cfg, gateway, consensus):
            try:
                job = wf.run_once()
            except StakehubError as e:
                failures += 1
                typer.echo(f"{wf.target.market_address}: failed ({e.kind}) {e}")
                continue
            if job is None:
                typer.echo(f"{wf.target.market_address}: skipped (not due)")
            else:
                typer.echo(f"{wf.target.market_address}: confirmed tx={job.tx_hash} block={job.block_number}")
    finally:
        consensus.close()
    if failures:
        raise typer.Exit(1)


@app.command("schedule")
def schedule(ctx: typer.Context) -> None:
    """Validate config and run the lock workflows on the configured cron schedule (Ctrl+C to stop)."""
    cfg = _load(ctx.obj["settings"])
    gateway = Web3LedgerGateway.from_settings(ctx.obj["settings"])
    consensus = ConsensusGroup.create(cfg.executors, cfg.timeout_sec)
    scheduler = LockScheduler(cfg.schedule, build_workflows(cfg, gateway, consensus))
    typer.echo(f"Scheduling {len(cfg.markets)} market(s) on '{cfg.schedule}' (Ctrl+C to stop)...")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        pass
    finally:
        scheduler.shutdown()
        consensus.close()
    typer.echo("Stopped.")
