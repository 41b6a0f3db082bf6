"""
Command-line interface for the Musqet identity SDK.
"""

from __future__ import annotations

import logging

import click

from musqet.client.client import IdentityClient
from musqet.client.infrastructure.config_loader import ConfigLoader
from musqet.common.exceptions import ValidationError
from musqet.common.models import ClientConfig


def _fail(client: IdentityClient, action: str) -> click.ClickException:
    detail = client.errors[-1].message if client.errors else "unknown error"
    return click.ClickException(f"{action} failed: {detail}")


def _login(ctx: click.Context, email: str, passphrase: str) -> IdentityClient:
    client = IdentityClient(ctx.obj)
    if not client.login(email, passphrase):
        raise _fail(client, "Login")
    return client


@click.group()
@click.option(
    "--api-url",
    default=None,
    help="Account API base URL (default: from MUSQET_API_URL env or testnet)",
)
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, api_url: str | None, verbose: bool) -> None:  # noqa: FBT001
    """Musqet identity CLI"""
    ctx.obj = ClientConfig(api_url=api_url, log_level=logging.DEBUG if verbose else None)


@cli.command()
@click.option("--email", required=True, help="Account email address")
@click.password_option("--passphrase", confirmation_prompt=False)
@click.pass_context
def fingerprint(ctx: click.Context, email: str, passphrase: str) -> None:
    """Derive keys locally and show the account handle"""
    try:
        identity = ConfigLoader(ctx.obj).build_key_deriver().derive(email, passphrase)
    except ValidationError as err:
        raise click.ClickException(str(err)) from err
    click.echo(f"Handle: {identity.handle}")
    click.echo(f"Fingerprint: {identity.fingerprint}")


@cli.command()
@click.option("--name", required=True, help="Account holder name")
@click.option("--email", required=True, help="Account email address")
@click.password_option("--passphrase")
@click.pass_context
def signup(ctx: click.Context, name: str, email: str, passphrase: str) -> None:
    """Create a new account"""
    client = IdentityClient(ctx.obj)
    if not client.signup(name, email, passphrase):
        raise _fail(client, "Signup")
    if not client.backup():
        raise _fail(client, "Backup")
    click.echo(f"Account created: {client.handle}")


@cli.command()
@click.option("--email", required=True, help="Account email address")
@click.password_option("--passphrase", confirmation_prompt=False)
@click.pass_context
def login(ctx: click.Context, email: str, passphrase: str) -> None:
    """Log in and show the restored account"""
    client = _login(ctx, email, passphrase)
    state = client.state
    click.echo(f"Logged in as {state.name or email} ({client.handle})")
    if state.business.business_id:
        click.echo(f"Business: {state.business.business_name} [{state.business.business_id}]")


@cli.command()
@click.argument("currency")
@click.option("--email", required=True, help="Account email address")
@click.password_option("--passphrase", confirmation_prompt=False)
@click.pass_context
def price(ctx: click.Context, currency: str, email: str, passphrase: str) -> None:
    """Show the BTC price in CURRENCY"""
    client = _login(ctx, email, passphrase)
    quote = client.get_price(currency.upper())
    if quote is None:
        raise _fail(client, "Price lookup")
    click.echo(f"{quote.symbol}{quote.price}")


@cli.command("node-status")
@click.option("--email", required=True, help="Account email address")
@click.password_option("--passphrase", confirmation_prompt=False)
@click.pass_context
def node_status(ctx: click.Context, email: str, passphrase: str) -> None:
    """Show the business lightning node status"""
    client = _login(ctx, email, passphrase)
    snapshot = client.get_node_status()
    if snapshot is None:
        raise _fail(client, "Node status")
    click.echo(f"Status: {snapshot.status.value}")
    if snapshot.block_tip:
        synced = round(snapshot.block_height * 100 / snapshot.block_tip)
        click.echo(f"Sync: {synced}% ({snapshot.block_height}/{snapshot.block_tip})")


if __name__ == "__main__":
    cli()
