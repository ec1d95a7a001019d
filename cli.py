"""
Command line entry point for Keeper Client.

Configuration priority (highest wins): CLI flags, environment variables,
built-in defaults.
"""

import logging
from typing import Annotated, Optional

import typer

from config import Config, VERSION, READ_POLICIES

app = typer.Typer(
    name="keeper-client",
    help="Local client for the Keeper secret storage service.",
    add_completion=False,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"keeper-client {VERSION}")
        raise typer.Exit()


def build_config(
    host: Optional[str] = None,
    port: Optional[str] = None,
    log_level: Optional[str] = None,
    crypto_key: Optional[str] = None,
    read_policy: Optional[str] = None,
) -> Config:
    """Apply CLI overrides on top of the environment defaults."""
    overrides = {
        "SERVER_HOST": host,
        "SERVER_PORT": port,
        "LOG_LEVEL": log_level,
        "CRYPTO_KEY": crypto_key,
        "READ_POLICY": read_policy,
    }
    return Config(**{name: value for name, value in overrides.items() if value is not None})


def uvicorn_log_level(level: str) -> str:
    level = level.lower()
    return "warning" if level == "warn" else level


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def main(
    host: Annotated[Optional[str], typer.Option("--host", help="Keeper server host.")] = None,
    port: Annotated[Optional[str], typer.Option("--port", help="Keeper server port.")] = None,
    log_level: Annotated[Optional[str], typer.Option("--log", help="Log level.")] = None,
    crypto_key: Annotated[
        Optional[str],
        typer.Option("--crypto-key", help="Encryption passphrase.", envvar="CRYPTO_KEY", show_envvar=False),
    ] = None,
    read_policy: Annotated[
        Optional[str],
        typer.Option("--read-policy", help=f"One of: {', '.join(READ_POLICIES)}."),
    ] = None,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-V", help="Show version and exit.", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Run the local Keeper API."""
    import uvicorn

    from main import create_app

    try:
        cfg = build_config(host, port, log_level, crypto_key, read_policy)
    except ValueError as e:
        typer.echo(f"config error: {e}", err=True)
        raise typer.Exit(code=1)

    setup_logging(cfg.LOG_LEVEL)
    uvicorn.run(
        create_app(cfg),
        host=cfg.HOST,
        port=cfg.PORT,
        log_level=uvicorn_log_level(cfg.LOG_LEVEL),
    )


if __name__ == "__main__":
    app()
