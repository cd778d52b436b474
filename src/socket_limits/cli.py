"""
socket-limits command line.

Usage:
    socket-limits [OPTIONS] COMMAND [ARGS]...
"""
from __future__ import annotations

import asyncio
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .addresses import IntegrationType, load_deployment_addresses
from .chains import default_registry
from .config import get_config
from .digest import execution_overhead_digest
from .errors import UpdateError
from .logging_utils import setup_logging
from .rpc_client import close_all_clients
from .updater import ExecutionOverheadUpdater

console = Console()

# Exit code when the transaction was mined but the checker did not confirm it
EXIT_UNCONFIRMED = 3


def _chain_id(value: str) -> int:
    try:
        return default_registry().resolve(value)
    except UpdateError as e:
        raise click.BadParameter(e.message) from None


@click.group()
@click.version_option(package_name="socket-limits", message="%(prog)s %(version)s")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Load environment variables from this file (default: .env)",
)
@click.option("--log-level", default=None, help="Override SOCKET_LIMITS_LOG_LEVEL")
@click.pass_context
def cli(ctx, env_file: Optional[str], log_level: Optional[str]):
    """Socket switchboard limit updates."""
    ctx.ensure_object(dict)

    load_dotenv(env_file)
    config = get_config()
    setup_logging(
        level=log_level or config.logging.level,
        json_format=config.logging.json_format,
    )
    ctx.obj["config"] = config


@cli.command()
@click.option("--testnets/--no-testnets", default=True, help="Include testnets")
def chains(testnets: bool):
    """List chain slugs and their chain ids."""
    registry = default_registry()

    table = Table(title="Chains")
    table.add_column("Slug", style="cyan")
    table.add_column("Chain ID", justify="right")
    table.add_column("Network")

    for slug, chain_id in registry.items():
        is_testnet = registry.is_testnet(chain_id)
        if is_testnet and not testnets:
            continue
        table.add_row(slug.value, str(chain_id), "testnet" if is_testnet else "mainnet")

    console.print(table)


@cli.command()
@click.option("--nonce", required=True, type=int, help="Switchboard nonce of the signer")
@click.option("--src", "src", required=True, help="Source chain slug or id")
@click.option("--dst", "dst", required=True, help="Destination chain slug or id")
@click.option("--overhead", required=True, type=int, help="Execution overhead")
def digest(nonce: int, src: str, dst: str, overhead: int):
    """Print the digest a signer would sign for an update."""
    try:
        value = execution_overhead_digest(nonce, _chain_id(src), _chain_id(dst), overhead)
    except UpdateError as e:
        raise click.BadParameter(e.message) from None
    click.echo("0x" + value.hex())


@cli.command("set-execution-overhead")
@click.option("--src", "src", required=True, help="Source chain slug or id")
@click.option("--dst", "dst", required=True, help="Destination chain slug or id")
@click.option("--switchboard", default=None, help="Switchboard address on the source chain")
@click.option(
    "--addresses",
    "addresses_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Deployment address file to look the switchboard up in",
)
@click.option(
    "--integration",
    type=click.Choice([t.value for t in IntegrationType]),
    default=IntegrationType.FAST.value,
    show_default=True,
    help="Integration type used with --addresses",
)
@click.option("--overhead", required=True, type=int, help="New execution overhead")
@click.pass_context
def set_execution_overhead(
    ctx,
    src: str,
    dst: str,
    switchboard: Optional[str],
    addresses_path: Optional[str],
    integration: str,
    overhead: int,
):
    """Sign and submit setExecutionOverhead on the source chain switchboard."""
    src_chain_id = _chain_id(src)
    dst_chain_id = _chain_id(dst)

    if switchboard is None:
        if addresses_path is None:
            raise click.UsageError("Pass --switchboard or --addresses")
        try:
            switchboard = load_deployment_addresses(addresses_path).switchboard_for(
                src_chain_id, dst_chain_id, IntegrationType(integration)
            )
        except UpdateError as e:
            console.print(f"[red]Error: {escape(e.message)}[/red]")
            ctx.exit(1)

    console.print(
        f"Updating execution overhead {src_chain_id} -> {dst_chain_id} "
        f"to [cyan]{overhead}[/cyan] via [cyan]{switchboard}[/cyan]"
    )

    try:
        confirmed = asyncio.run(
            _run_update(ctx.obj["config"], src_chain_id, dst_chain_id, switchboard, overhead)
        )
    except UpdateError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        ctx.exit(1)

    if confirmed:
        console.print("[green]✓ Execution overhead updated[/green]")
    else:
        console.print("[yellow]Transaction mined but not confirmed[/yellow]")
        ctx.exit(EXIT_UNCONFIRMED)


async def _run_update(config, src_chain_id, dst_chain_id, switchboard, overhead) -> bool:
    updater = ExecutionOverheadUpdater(config=config)
    try:
        return await updater.set_execution_overhead(
            src_chain_id, dst_chain_id, switchboard, overhead
        )
    finally:
        await close_all_clients()


if __name__ == "__main__":
    cli()
