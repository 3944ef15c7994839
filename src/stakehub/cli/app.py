"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from stakehub.config import configure_logging, get_settings
from stakehub.errors import ConfigError

app = typer.Typer(
    name="stakehub",
    help="StakeHub - community stake pools with consensus-gated, scheduled market locking.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Configure logging and store options in context."""
    try:
        settings = get_settings(profile, config_dir)
    except ConfigError as e:
        typer.echo(f"Config error: {e}", err=True)
        raise typer.Exit(2)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from stakehub.cli import api_cmd, lock, market  # noqa: E402

app.add_typer(lock.app, name="lock")
app.add_typer(market.app, name="market")
app.add_typer(api_cmd.app, name="api")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
