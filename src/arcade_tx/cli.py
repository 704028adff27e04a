"""CLI entry point for the arcade_tx transaction pipeline."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click

from arcade_tx.api.routes import run_server
from arcade_tx.config import load_config
from arcade_tx.errors import PipelineError
from arcade_tx.ledger.amounts import LAMPORTS_PER_SOL, from_raw_amount
from arcade_tx.models.launch import TokenMetadata
from arcade_tx.pipeline import TransactionPipeline
from arcade_tx.storage.sqlite import SQLiteJournal


def _sol(lamports: int) -> str:
    return f"{lamports / LAMPORTS_PER_SOL:.9f} SOL"


def _mask(secret: str) -> str:
    return "***configured***" if secret else "(not set)"


def _load(ctx: click.Context):
    """Load config; its log_level applies unless -v was given."""
    cfg = load_config(ctx.obj["config_path"])
    if not ctx.obj["verbose"]:
        logging.getLogger().setLevel(cfg.log_level.upper())
    return cfg


def _require_token(token: str | None) -> str:
    """Exit with error if no caller credential was given."""
    if not token:
        click.echo("Error: No caller credential given.", err=True)
        click.echo("Pass --token or set ARCADE_TX_TOKEN.", err=True)
        sys.exit(1)
    return token


def _require_jwt_secret(cfg) -> None:
    """Exit with error if credentials cannot be verified locally."""
    if not cfg.jwt_secret:
        click.echo("Error: No JWT secret configured.", err=True)
        click.echo("Set ARCADE_TX_JWT_SECRET or [auth] jwt_secret in config.", err=True)
        sys.exit(1)


def _run_operation(cfg, operation) -> None:
    """Run one pipeline call and print its result as JSON."""

    async def _go():
        async with TransactionPipeline(cfg) as pipeline:
            return await operation(pipeline)

    try:
        result = asyncio.run(_go())
    except PipelineError as exc:
        click.echo(json.dumps({"success": False, "error": exc.to_dict()}, indent=2), err=True)
        sys.exit(1)
    click.echo(json.dumps({"success": True, "data": result.to_dict()}, indent=2))


token_option = click.option(
    "--token", envvar="ARCADE_TX_TOKEN", default=None,
    help="Caller bearer credential (or ARCADE_TX_TOKEN)",
)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """arcade-tx - transaction orchestration for the arcade launchpad."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Server ─────────────────────────────────────────────


@cli.command()
@click.option("--host", default=None, help="Bind address (overrides config)")
@click.option("--port", type=int, default=None, help="Bind port (overrides config)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Serve the HTTP API."""
    cfg = _load(ctx)
    _require_jwt_secret(cfg)
    host = host or cfg.host
    port = port or cfg.port

    click.echo(f"Starting arcade-tx on http://{host}:{port}")
    asyncio.run(run_server(TransactionPipeline(cfg), host, port))


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show pipeline configuration."""
    cfg = _load(ctx)
    click.echo(f"RPC URL:    {cfg.solana.rpc_url}")
    click.echo(f"Commitment: {cfg.solana.commitment}")
    click.echo(f"Confirm:    {cfg.solana.confirm_timeout:g}s every {cfg.solana.confirm_interval:g}s")
    click.echo(f"Signer:     {cfg.signer.sign_url}")
    click.echo(f"Aggregator: {cfg.aggregator.base_url}")
    click.echo(f"Minter:     {cfg.minter.base_url}")
    click.echo(f"Minter key: {_mask(cfg.minter.api_key)}")
    click.echo(f"Finalizer:  {cfg.launch_finalizer.value}")
    click.echo(f"Treasury:   {cfg.treasury_address}")
    click.echo(f"Transfer:   {cfg.default_transfer_lamports} lamports "
               f"({_sol(cfg.default_transfer_lamports)})")
    click.echo(f"JWT secret: {_mask(cfg.jwt_secret)}")
    click.echo(f"DB path:    {cfg.db_path}")
    click.echo(f"Listen:     {cfg.host}:{cfg.port}")


@cli.command("mint-info")
@click.argument("mint")
@click.pass_context
def mint_info(ctx: click.Context, mint: str) -> None:
    """Show decimals and supply of a token mint."""
    cfg = _load(ctx)

    async def _info():
        async with TransactionPipeline(cfg) as pipeline:
            return await pipeline.resolve_mint(mint)

    try:
        info = asyncio.run(_info())
    except PipelineError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    click.echo(f"Mint:       {info.mint}")
    click.echo(f"Decimals:   {info.decimals}")
    click.echo(f"Supply:     {info.supply} raw ({from_raw_amount(info.supply, info.decimals)})")


# ── Operations ─────────────────────────────────────────


@cli.command()
@click.argument("amount")
@click.argument("mint")
@token_option
@click.pass_context
def buy(ctx: click.Context, amount: str, mint: str, token: str | None) -> None:
    """Buy MINT, spending AMOUNT SOL."""
    cfg = _load(ctx)
    token = _require_token(token)
    _run_operation(cfg, lambda p: p.buy(amount, mint, token))


@cli.command()
@click.argument("amount")
@click.argument("mint")
@token_option
@click.pass_context
def sell(ctx: click.Context, amount: str, mint: str, token: str | None) -> None:
    """Sell AMOUNT of MINT for SOL."""
    cfg = _load(ctx)
    token = _require_token(token)
    _run_operation(cfg, lambda p: p.sell(amount, mint, token))


@cli.command()
@click.argument("amount", required=False)
@token_option
@click.pass_context
def transfer(ctx: click.Context, amount: str | None, token: str | None) -> None:
    """Transfer AMOUNT SOL (default from config) to the treasury."""
    cfg = _load(ctx)
    token = _require_token(token)
    _run_operation(cfg, lambda p: p.transfer(amount, token))


@cli.command()
@click.argument("tx_hex")
@token_option
@click.pass_context
def sign(ctx: click.Context, tx_hex: str, token: str | None) -> None:
    """Sign a hex-encoded transaction and broadcast it."""
    cfg = _load(ctx)
    token = _require_token(token)
    _run_operation(cfg, lambda p: p.sign_and_broadcast(tx_hex, token))


@cli.command()
@click.option("--name", required=True, help="Token name (2-50 characters)")
@click.option("--ticker", required=True, help="Token ticker (2-10 letters/digits)")
@click.option("--description", required=True, help="Token description (max 500 characters)")
@click.option("--image", required=True, help="Image URL or data:image/...;base64,...")
@click.option("--website", default=None)
@click.option("--twitter", default=None)
@click.option("--telegram", default=None)
@click.option("--initial-buy", default=None, help="Initial buy amount in SOL")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@token_option
@click.pass_context
def launch(
    ctx: click.Context,
    name: str,
    ticker: str,
    description: str,
    image: str,
    website: str | None,
    twitter: str | None,
    telegram: str | None,
    initial_buy: str | None,
    yes: bool,
    token: str | None,
) -> None:
    """Launch a new token through the minter."""
    cfg = _load(ctx)
    token = _require_token(token)
    meta = TokenMetadata(
        name=name,
        token_ticker=ticker,
        description=description,
        image=image,
        website=website,
        twitter=twitter,
        telegram=telegram,
        initial_buy_amount=initial_buy,
    )

    click.echo(f"Launching {meta.name} ({meta.symbol})")
    click.echo(f"  Finalizer:   {cfg.launch_finalizer.value}")
    if initial_buy:
        click.echo(f"  Initial buy: {initial_buy} SOL")
    if not yes:
        click.confirm("\nProceed with launch?", abort=True)

    _run_operation(cfg, lambda p: p.launch(meta, token))


# ── Journal ────────────────────────────────────────────


@cli.group()
def journal():
    """Inspect the operation journal."""
    pass


@journal.command("open")
@click.option("-n", "--limit", type=int, default=20, help="Number of operations to show")
@click.pass_context
def journal_open(ctx: click.Context, limit: int) -> None:
    """List operations that never reached a terminal stage."""
    cfg = _load(ctx)

    async def _open():
        store = SQLiteJournal(cfg.db_path)
        await store.initialize()
        try:
            ops = await store.get_open_operations(limit)
            if not ops:
                click.echo("No open operations.")
                return
            click.echo(f"Open operations ({len(ops)}):")
            for c in ops:
                txid = c.detail.get("transactionId") or "-"
                click.echo(
                    f"  {c.operation_id} {c.kind:<16} stage={c.stage:<12} "
                    f"caller={c.caller[:16]}... tx={txid} at={c.created_at}"
                )
        finally:
            await store.close()

    asyncio.run(_open())


@journal.command("show")
@click.argument("operation_id")
@click.pass_context
def journal_show(ctx: click.Context, operation_id: str) -> None:
    """Show every checkpoint of one operation."""
    cfg = _load(ctx)

    async def _show():
        store = SQLiteJournal(cfg.db_path)
        await store.initialize()
        try:
            return await store.get_checkpoints(operation_id)
        finally:
            await store.close()

    checkpoints = asyncio.run(_show())
    if not checkpoints:
        click.echo(f"No checkpoints for {operation_id}.", err=True)
        sys.exit(1)
    click.echo(f"{checkpoints[0].kind} {operation_id} by {checkpoints[0].caller}")
    for c in checkpoints:
        click.echo(f"  {c.created_at} {c.stage:<12} {json.dumps(c.detail)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
