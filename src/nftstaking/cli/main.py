#!/usr/bin/env python3
"""
NFT Staking CLI
Command-line interface for a local staking chain with rich terminal output
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from nftstaking.core.config import (
    API_HOST,
    API_PORT,
    DATA_DIR,
    DEFAULT_BLOCK_REWARD,
    DEFAULT_POOL_KEY_TOKEN,
    DEFAULT_REWARD_SUPPLY,
    LOG_LEVEL,
    MAX_BACKUPS,
    NETWORK,
    STATE_FILE_NAME,
    get_config,
)
from nftstaking.core.exceptions import ConfigurationError, NftStakingError
from nftstaking.core.local_chain import LocalChain
from nftstaking.core.logging_config import setup_logging
from nftstaking.core.staking.events import EventType
from nftstaking.core.staking_persistence import StakingStorage

# Configure module logger
logger = logging.getLogger(__name__)

# Rich console for terminal output
console = Console()

CLI_ERRORS = (NftStakingError, click.ClickException, ValueError, KeyError, TypeError)


def _cli_fail(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging."""
    logger.error("CLI error: %s", exc, exc_info=True, extra={"event": "cli.error"})
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def _storage(ctx: click.Context) -> StakingStorage:
    return StakingStorage(ctx.obj["data_dir"], STATE_FILE_NAME, max_backups=MAX_BACKUPS)


def _open_chain(ctx: click.Context) -> LocalChain:
    storage = _storage(ctx)
    if not storage.exists():
        raise click.ClickException(
            f"No staking pool deployed in {ctx.obj['data_dir']}. Run 'nftstake init' first."
        )
    return LocalChain.open(storage)


def _emit_payload(ctx: click.Context, payload: Dict[str, Any], title: str) -> None:
    if ctx.obj["json_output"]:
        click.echo(json.dumps(payload, indent=2))
        return

    table = Table(show_header=False, box=box.ROUNDED)
    for key, value in payload.items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items()) or "-"
        table.add_row(f"[bold cyan]{key}", str(value))
    console.print(Panel(table, title=f"[bold green]{title}", border_style="cyan"))


def _emit_receipt(ctx: click.Context, chain: LocalChain, message: str, **payload: Any) -> None:
    receipt = {"success": True, "block_number": chain.block_number, **payload}
    if ctx.obj["json_output"]:
        click.echo(json.dumps(receipt, indent=2))
        return
    console.print(f"[bold green]✓[/] {message} [dim](block {chain.block_number})[/]")


# ============================================================================
# CLI Group
# ============================================================================

@click.group()
@click.option(
    '--data-dir',
    envvar='NFTSTAKING_DATA_DIR',
    type=click.Path(file_okay=False, path_type=Path),
    default=DATA_DIR,
    show_default=True,
    help='Directory holding the local chain state',
)
@click.option(
    '--network',
    envvar='NFTSTAKING_NETWORK',
    default=NETWORK,
    show_default=True,
    help='Deployment profile (development or production)',
)
@click.option('--json-output', is_flag=True, help='Output raw JSON')
@click.option('--verbose', is_flag=True, help='Print structured logs to stderr')
@click.pass_context
def cli(ctx: click.Context, data_dir: Path, network: str, json_output: bool, verbose: bool):
    """
    NFT Staking CLI

    Stake collectibles into a flat-rate reward pool running on a local,
    auto-mining chain. Every transaction mines one block.
    """
    ctx.ensure_object(dict)
    setup_logging(name="nftstaking", level=LOG_LEVEL, environment=network, enable_console=verbose)
    try:
        config = get_config(network)
    except ConfigurationError as exc:
        _cli_fail(exc)

    # Reconfigure with the profile's log file now that the network is validated
    setup_logging(
        name="nftstaking",
        log_file=config.LOG_FILE or None,
        level=config.LOG_LEVEL,
        environment=config.ENVIRONMENT,
        enable_console=verbose,
    )
    ctx.obj['config'] = config
    ctx.obj['data_dir'] = Path(data_dir).expanduser()
    ctx.obj['json_output'] = json_output


# ============================================================================
# Deployment & Tokens
# ============================================================================

@cli.command('init')
@click.option('--owner', default=None,
              help='Pool owner address (deployer); defaults to NFTSTAKING_POOL_OWNER')
@click.option('--reward-supply', type=int, default=DEFAULT_REWARD_SUPPLY, show_default=True,
              help='Reward tokens minted to the owner (base units)')
@click.option('--block-reward', type=int, default=DEFAULT_BLOCK_REWARD, show_default=True,
              help='Reward per block per staked unit (base units)')
@click.option('--key-token', 'key_token', type=int, default=DEFAULT_POOL_KEY_TOKEN, show_default=True,
              help='Collectible id accepted for staking')
@click.option('--fund', 'fund_amount', type=int, default=None,
              help='Reward tokens moved into the reserve after deployment (default: whole supply)')
@click.option('--force', is_flag=True, help='Overwrite an existing deployment')
@click.pass_context
def init(
    ctx: click.Context,
    owner: Optional[str],
    reward_supply: int,
    block_reward: int,
    key_token: int,
    fund_amount: Optional[int],
    force: bool,
):
    """Deploy the reward token, collectible ledger and staking pool"""
    try:
        owner = owner or ctx.obj['config'].POOL_OWNER
        if not owner:
            raise click.UsageError("--owner is required (or set NFTSTAKING_POOL_OWNER)")
        storage = _storage(ctx)
        if storage.exists() and not force:
            raise click.ClickException(
                f"A pool is already deployed in {ctx.obj['data_dir']}. Use --force to replace it."
            )

        chain = LocalChain.deploy(
            owner=owner,
            reward_supply=reward_supply,
            block_reward=block_reward,
            pool_key_token=key_token,
            storage=storage,
        )
        amount = reward_supply if fund_amount is None else fund_amount
        if amount > 0:
            chain.fund(owner, amount)

        status = chain.status()
        if ctx.obj['json_output']:
            click.echo(json.dumps({"success": True, "pool": status}, indent=2))
            return

        table = Table(show_header=False, box=box.ROUNDED)
        table.add_row("[bold cyan]Pool", status["address"])
        table.add_row("[bold cyan]Owner", status["owner"])
        table.add_row("[bold cyan]Reward Token", status["reward_token"]["address"])
        table.add_row("[bold cyan]Collectibles", status["collectibles"]["address"])
        table.add_row("[bold green]Reserve", str(status["reserve_balance"]))
        table.add_row("[bold green]Block Reward", str(status["block_reward"]))
        table.add_row("[bold green]Key Token", str(status["pool_key_token"]))
        console.print(Panel(table, title="[bold green]Staking Pool Deployed", border_style="green"))

    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('mint')
@click.argument('to')
@click.argument('collectible_id', type=int)
@click.argument('amount', type=int)
@click.option('--caller', envvar='NFTSTAKING_CALLER', required=True, help='Collectible contract owner')
@click.pass_context
def mint(ctx: click.Context, to: str, collectible_id: int, amount: int, caller: str):
    """Mint collectible units to an address"""
    try:
        chain = _open_chain(ctx)
        chain.mint_collectibles(caller, to, collectible_id, amount)
        _emit_receipt(
            ctx, chain,
            f"Minted {amount} x #{collectible_id} to {to}",
            to=to.lower(),
            collectible_id=collectible_id,
            balance=chain.collectibles.balance_of(to, collectible_id),
        )
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('approve')
@click.option('--caller', envvar='NFTSTAKING_CALLER', required=True, help='Collectible holder')
@click.option('--revoke', is_flag=True, help='Revoke the pool operator approval instead')
@click.pass_context
def approve(ctx: click.Context, caller: str, revoke: bool):
    """Approve the pool to take custody of your collectibles"""
    try:
        chain = _open_chain(ctx)
        chain.approve(caller, not revoke)
        verb = "Revoked" if revoke else "Granted"
        _emit_receipt(
            ctx, chain,
            f"{verb} pool operator approval for {caller}",
            operator=chain.pool.address,
            approved=not revoke,
        )
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('fund')
@click.argument('amount', type=int)
@click.option('--caller', envvar='NFTSTAKING_CALLER', required=True, help='Reward token holder')
@click.pass_context
def fund(ctx: click.Context, amount: int, caller: str):
    """Transfer reward tokens into the pool reserve"""
    try:
        chain = _open_chain(ctx)
        chain.fund(caller, amount)
        reserve = chain.pool.reserve_balance()
        _emit_receipt(ctx, chain, f"Reserve topped up to {reserve}", reserve_balance=reserve)
    except CLI_ERRORS as exc:
        _cli_fail(exc)


# ============================================================================
# Staking
# ============================================================================

@cli.command('stake')
@click.argument('amount', type=int)
@click.option('--id', 'collectible_id', type=int, default=None,
              help='Collectible id (defaults to the current pool key token)')
@click.option('--caller', envvar='NFTSTAKING_CALLER', required=True, help='Staker address')
@click.pass_context
def stake(ctx: click.Context, amount: int, collectible_id: Optional[int], caller: str):
    """Stake collectible units"""
    try:
        chain = _open_chain(ctx)
        token_id = chain.pool.get_pool_key_token() if collectible_id is None else collectible_id
        chain.stake(caller, amount, token_id)
        staked = chain.pool.total_staked_for(caller)
        _emit_receipt(
            ctx, chain,
            f"Staked {amount} x #{token_id} (total staked: {staked})",
            staked=staked,
        )
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('unstake')
@click.argument('amount', type=int)
@click.option('--id', 'collectible_id', type=int, default=None,
              help='Collectible id the units were staked under (defaults to the pool key token)')
@click.option('--caller', envvar='NFTSTAKING_CALLER', required=True, help='Staker address')
@click.pass_context
def unstake(ctx: click.Context, amount: int, collectible_id: Optional[int], caller: str):
    """Withdraw staked collectible units"""
    try:
        chain = _open_chain(ctx)
        token_id = chain.pool.get_pool_key_token() if collectible_id is None else collectible_id
        chain.unstake(caller, amount, token_id)
        staked = chain.pool.total_staked_for(caller)
        _emit_receipt(
            ctx, chain,
            f"Unstaked {amount} x #{token_id} (total staked: {staked})",
            staked=staked,
        )
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('claim')
@click.option('--caller', envvar='NFTSTAKING_CALLER', required=True, help='Staker address')
@click.pass_context
def claim(ctx: click.Context, caller: str):
    """Claim accrued rewards"""
    try:
        chain = _open_chain(ctx)
        paid = chain.claim(caller)
        outstanding = chain.outstanding_rewards(caller)
        message = f"Claimed {paid} reward units"
        if outstanding:
            message += f" ({outstanding} still owed, reserve exhausted)"
        _emit_receipt(ctx, chain, message, paid=paid, outstanding=outstanding)
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('earned')
@click.argument('address')
@click.pass_context
def earned(ctx: click.Context, address: str):
    """Show rewards an address could claim right now"""
    try:
        chain = _open_chain(ctx)
        amount = chain.earned(address)
        if ctx.obj['json_output']:
            click.echo(json.dumps({"address": address.lower(), "earned": amount,
                                   "block_number": chain.block_number}, indent=2))
            return
        console.print(f"[bold cyan]{address}[/] earned [bold green]{amount}[/] "
                      f"[dim](block {chain.block_number})[/]")
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('status')
@click.pass_context
def status(ctx: click.Context):
    """Show pool configuration and totals"""
    try:
        chain = _open_chain(ctx)
        _emit_payload(ctx, chain.status(), "Staking Pool")
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('account')
@click.argument('address')
@click.pass_context
def account(ctx: click.Context, address: str):
    """Show the stake record and balances of an address"""
    try:
        chain = _open_chain(ctx)
        _emit_payload(ctx, chain.account(address), f"Account {address[:12]}...")
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('events')
@click.option('--type', 'event_type', type=click.Choice([t.value for t in EventType]),
              default=None, help='Only events of this type')
@click.option('--account', 'account_filter', default=None, help='Only events for this address')
@click.option('--limit', default=20, show_default=True, help='Number of most recent events to show')
@click.pass_context
def events(ctx: click.Context, event_type: Optional[str], account_filter: Optional[str], limit: int):
    """List pool events"""
    try:
        chain = _open_chain(ctx)
        selected = chain.events(
            event_type=EventType(event_type) if event_type else None,
            account=account_filter,
            limit=limit,
        )

        if ctx.obj['json_output']:
            click.echo(json.dumps([event.to_dict() for event in selected], indent=2))
            return

        if not selected:
            console.print("[yellow]No events found[/]")
            return

        table = Table(title="Pool Events", box=box.ROUNDED)
        table.add_column("Block", style="cyan", justify="right")
        table.add_column("Event", style="magenta")
        table.add_column("Account", style="yellow")
        table.add_column("Amount", style="green", justify="right")
        table.add_column("Data", style="blue")

        for event in selected:
            data = ", ".join(f"{k}={v}" for k, v in event.data.items())
            table.add_row(
                str(event.block_number),
                event.event_type.value,
                event.account[:20] or "-",
                str(event.amount),
                data or "-",
            )

        console.print(table)
    except CLI_ERRORS as exc:
        _cli_fail(exc)


# ============================================================================
# Owner Controls
# ============================================================================

@cli.command('pause')
@click.option('--caller', envvar='NFTSTAKING_CALLER', required=True, help='Pool owner')
@click.pass_context
def pause(ctx: click.Context, caller: str):
    """Pause stake, unstake and claim"""
    try:
        chain = _open_chain(ctx)
        chain.set_paused(caller, True)
        _emit_receipt(ctx, chain, "Pool paused", paused=True)
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('unpause')
@click.option('--caller', envvar='NFTSTAKING_CALLER', required=True, help='Pool owner')
@click.pass_context
def unpause(ctx: click.Context, caller: str):
    """Resume stake, unstake and claim"""
    try:
        chain = _open_chain(ctx)
        chain.set_paused(caller, False)
        _emit_receipt(ctx, chain, "Pool resumed", paused=False)
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('set-reward')
@click.argument('rate', type=int)
@click.option('--caller', envvar='NFTSTAKING_CALLER', required=True, help='Pool owner')
@click.pass_context
def set_reward(ctx: click.Context, rate: int, caller: str):
    """Change the reward paid per block per staked unit"""
    try:
        chain = _open_chain(ctx)
        chain.change_block_reward(caller, rate)
        _emit_receipt(ctx, chain, f"Block reward set to {rate}", block_reward=rate)
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('set-key-token')
@click.argument('collectible_id', type=int)
@click.option('--caller', envvar='NFTSTAKING_CALLER', required=True, help='Pool owner')
@click.pass_context
def set_key_token(ctx: click.Context, collectible_id: int, caller: str):
    """Change the collectible id accepted for new stakes"""
    try:
        chain = _open_chain(ctx)
        chain.change_pool_key_token(caller, collectible_id)
        _emit_receipt(ctx, chain, f"Pool key token set to #{collectible_id}",
                      pool_key_token=collectible_id)
    except CLI_ERRORS as exc:
        _cli_fail(exc)


@cli.command('transfer-ownership')
@click.argument('new_owner')
@click.option('--caller', envvar='NFTSTAKING_CALLER', required=True, help='Current pool owner')
@click.pass_context
def transfer_ownership(ctx: click.Context, new_owner: str, caller: str):
    """Hand pool ownership to another address"""
    try:
        chain = _open_chain(ctx)
        chain.transfer_ownership(caller, new_owner)
        _emit_receipt(ctx, chain, f"Ownership transferred to {new_owner}", owner=chain.pool.owner)
    except CLI_ERRORS as exc:
        _cli_fail(exc)


# ============================================================================
# API Server
# ============================================================================

@cli.command('serve')
@click.option('--host', default=API_HOST, show_default=True, help='Bind address')
@click.option('--port', default=API_PORT, show_default=True, type=int, help='Bind port')
@click.pass_context
def serve(ctx: click.Context, host: str, port: int):
    """Serve the staking HTTP API"""
    from nftstaking.core.api import create_app

    try:
        chain = _open_chain(ctx)
        app = create_app(chain)
        console.print(f"[bold green]Staking API[/] listening on http://{host}:{port}")
        app.run(host=host, port=port, threaded=True)
    except CLI_ERRORS as exc:
        _cli_fail(exc)


def main():
    """Main CLI entry point"""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/]")
        sys.exit(130)


if __name__ == '__main__':
    main()
