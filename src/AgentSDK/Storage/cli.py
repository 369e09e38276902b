"""Typer-based CLI for AgentSDK.Storage with Pydantic v2 configuration."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from AgentSDK.Storage.client import IPFSClient
from AgentSDK.Storage.config import export_config_schema, load_config
from AgentSDK.Storage.config.loader import CONFIG_PATH_ENV
from AgentSDK.Storage.errors import StorageError
from AgentSDK.Storage.logging_utils import setup_logging

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(help="AgentSDK decentralized storage client")
config_app = typer.Typer(help="Inspect configuration")
app.add_typer(config_app, name="config")


# ============================================================================
# Commands
# ============================================================================


@app.command()
def get(
    cid: str = typer.Argument(..., help="CID, ipfs://<cid> or ipfs://<cid>/<path>"),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
        envvar=CONFIG_PATH_ENV,
    ),
    gateway: Optional[List[str]] = typer.Option(
        None, "--gateway", "-g", help="Gateway base URL (repeatable, replaces configured list)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Parse and pretty-print JSON content"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose"),
) -> None:
    """Retrieve verified content and print it."""
    setup_logging(level="DEBUG" if verbose else "WARNING")

    cli_overrides: dict = {}
    if gateway:
        cli_overrides["gateway"] = {"gateways": list(gateway)}

    try:
        cfg = load_config(path=config, cli_overrides=cli_overrides)
        content = asyncio.run(_retrieve(cfg, cid, as_json))
    except StorageError as e:
        err_console.print(f"[red]✗ {type(e).__name__}: {e}[/red]")
        raise typer.Exit(code=1)
    except ValueError as e:
        # pydantic.ValidationError and JSON decode errors are ValueErrors
        err_console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(content, indent=2))
    else:
        typer.echo(content)


async def _retrieve(cfg, cid: str, as_json: bool):
    async with IPFSClient(cfg) as ipfs:
        if as_json:
            return await ipfs.get_json(cid)
        return await ipfs.get(cid)


@config_app.command("show")
def config_show(
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Path to config file", envvar=CONFIG_PATH_ENV
    ),
) -> None:
    """Print merged configuration after file → environment → CLI precedence."""
    try:
        cfg = load_config(path=config)
    except ValueError as e:
        err_console.print(f"[red]✗ Error loading config: {e}[/red]")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(cfg.model_dump(mode="json"), indent=2))


@config_app.command("schema")
def config_schema(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write schema to file"),
) -> None:
    """Export JSON Schema for IDE/tooling integration."""
    schema = json.dumps(export_config_schema(), indent=2)
    if output is None:
        typer.echo(schema)
        return
    output.write_text(schema, encoding="utf-8")
    console.print(f"[green]✓ Schema exported to {output}[/green]")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
