"""CLI entry point for the gmammoth client."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import click
import httpx

from gmammoth.config import load_config
from gmammoth.exceptions import SubmissionError
from gmammoth.models.config import ClientConfig
from gmammoth.notify.sinks import ClickNotificationSink
from gmammoth.registry.status import RegistrationStatusCache
from gmammoth.registry.wallets import RegisteredWallets
from gmammoth.session import GMammothSession, ViewState
from gmammoth.stellar.wallet import KeypairWallet

log = logging.getLogger(__name__)


def _require_secret(cfg: ClientConfig) -> None:
    """Exit with error if no keypair secret is configured."""
    if not cfg.keypair_secret:
        click.echo("Error: No keypair secret configured.", err=True)
        click.echo("Set GMAMMOTH_SECRET env var or keypair_secret in config.", err=True)
        sys.exit(1)


def _require_contract(cfg: ClientConfig) -> None:
    """Exit with error if no contract ID is configured."""
    if not cfg.contract_id:
        click.echo("Error: No contract ID configured.", err=True)
        click.echo("Set GMAMMOTH_CONTRACT_ID or contract_id in config.", err=True)
        sys.exit(1)


def _short(address: str) -> str:
    return f"{address[:5]}...{address[-5:]}"


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """gmammoth - send and receive gMammoths on Soroban."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show client configuration."""
    cfg = load_config(ctx.obj["config_path"])
    wallet = KeypairWallet.from_secret(cfg.keypair_secret)
    click.echo(f"Network:    {cfg.network}")
    click.echo(f"RPC URL:    {cfg.rpc_url}")
    click.echo(f"Contract:   {cfg.contract_id or '(not set)'}")
    click.echo(f"Account:    {wallet.public_key or '(not connected)'}")
    click.echo(f"Secret:     {'***configured***' if cfg.keypair_secret else '(not set)'}")


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Show registration status and the registered wallets."""
    cfg = load_config(ctx.obj["config_path"])
    _require_secret(cfg)
    _require_contract(cfg)

    async def _info():
        session = GMammothSession.from_config(cfg, ClickNotificationSink())
        try:
            account = KeypairWallet.from_secret(cfg.keypair_secret).public_key
            status_cache = RegistrationStatusCache(session.transport, session.subscriptions, account)
            registered = await status_cache.refresh()
            wallets = await session.wallets.refresh()
            click.echo(f"Address:    {account}")
            click.echo(f"Registered: {'yes' if registered else 'no'}")
            if not registered:
                click.echo("  Run 'gmammoth register' to join.")
            click.echo(f"Wallets:    {len(wallets)} registered")
        finally:
            await session.aclose()

    asyncio.run(_info())


@cli.command()
@click.pass_context
def wallets(ctx: click.Context) -> None:
    """List registered wallets."""
    cfg = load_config(ctx.obj["config_path"])
    _require_contract(cfg)

    async def _wallets():
        session = GMammothSession.from_config(cfg, ClickNotificationSink())
        try:
            registered = RegisteredWallets(session.transport, session.subscriptions)
            found = await registered.refresh()
        finally:
            await session.aclose()
        if not found:
            click.echo("No registered wallets.")
            return
        for address in found:
            click.echo(f"  {_short(address)}  {address}")

    asyncio.run(_wallets())


# ── Transactions ───────────────────────────────────────


def _run_tx(cfg: ClientConfig, action: str, *args: str) -> None:
    _require_secret(cfg)
    _require_contract(cfg)

    async def _tx():
        session = GMammothSession.from_config(cfg, ClickNotificationSink())
        try:
            return await getattr(session.submitter, action)(*args)
        finally:
            await session.aclose()

    try:
        receipt = asyncio.run(_tx())
    except SubmissionError as exc:
        log.debug("%s failed", action, exc_info=exc.__cause__)
        sys.exit(1)
    click.echo(f"  Tx: {receipt.tx_id}")


@cli.command()
@click.pass_context
def register(ctx: click.Context) -> None:
    """Register this wallet with the gMammoth contract."""
    _run_tx(load_config(ctx.obj["config_path"]), "register")


@cli.command()
@click.pass_context
def deregister(ctx: click.Context) -> None:
    """Remove this wallet from the gMammoth contract."""
    _run_tx(load_config(ctx.obj["config_path"]), "deregister")


@cli.command()
@click.argument("to_address")
@click.pass_context
def send(ctx: click.Context, to_address: str) -> None:
    """Send a gMammoth to TO_ADDRESS."""
    _run_tx(load_config(ctx.obj["config_path"]), "send_gmammoth", to_address)


# ── Watch ──────────────────────────────────────────────


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Stay connected and print incoming gMammoths until interrupted."""
    cfg = load_config(ctx.obj["config_path"])
    _require_secret(cfg)
    _require_contract(cfg)

    async def _watch():
        session = GMammothSession.from_config(cfg, ClickNotificationSink())
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                pass

        try:
            account = await session.connect()
            if account is None:
                click.echo("Connect a wallet to start.", err=True)
                return
            click.echo(f"Connected as {account}")
            if session.view is ViewState.NEEDS_REGISTRATION:
                click.echo("Not registered; run 'gmammoth register' to receive gMammoths.")
            click.echo(f"{len(session.registered_wallets)} registered wallets. Ctrl-C to stop.")
            await stop.wait()
        finally:
            await session.aclose()
            click.echo("Disconnected.")

    asyncio.run(_watch())


# ── Testnet ────────────────────────────────────────────


@cli.command()
@click.pass_context
def fund(ctx: click.Context) -> None:
    """Fund this account from the testnet Friendbot."""
    cfg = load_config(ctx.obj["config_path"])
    _require_secret(cfg)
    if cfg.network != "testnet":
        click.echo(f"Error: Friendbot is only available on testnet (network: {cfg.network}).", err=True)
        sys.exit(1)

    address = KeypairWallet.from_secret(cfg.keypair_secret).public_key
    try:
        resp = httpx.get(cfg.friendbot_url, params={"addr": address}, timeout=30)
    except httpx.HTTPError as exc:
        click.echo(f"Error: Friendbot request failed: {exc}", err=True)
        sys.exit(1)
    if resp.status_code != 200:
        click.echo(f"Error: Friendbot returned {resp.status_code}: {resp.text[:200]}", err=True)
        sys.exit(1)
    click.echo(f"Funded {address}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
