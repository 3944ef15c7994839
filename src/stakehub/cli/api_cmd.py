"""API server command."""

import typer

from stakehub.api.main import run_api
from stakehub.ledger.web3_gateway import Web3LedgerGateway

app = typer.Typer(help="Start the execution endpoint (lock API)")


@app.callback(invoke_without_command=True)
def api(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", help="Bind host (default from [api] config)"),
    port: int | None = typer.Option(None, "--port", help="Bind port (default from [api] config)"),
) -> None:
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    gateway = Web3LedgerGateway.from_settings(settings)
    run_api(host=host or settings.api_host, port=port or settings.api_port, gateway=gateway)
