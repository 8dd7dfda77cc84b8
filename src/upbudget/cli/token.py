#!/usr/bin/env python3
"""
Token CLI - Up Personal Access Token Management

Stores, verifies and removes the Up API token used by every other command.
"""

import click

from ..core.credentials import CredentialError, mask_token
from .common import get_services, run_async


@click.group()
def token() -> None:
    """Manage the Up personal access token."""
    pass


@token.command("set")
@click.argument("value", required=False)
@click.option("--no-verify", is_flag=True, help="Store without checking the token against the API")
@click.pass_context
def set_token(ctx: click.Context, value: str | None, no_verify: bool) -> None:
    """
    Store the API token and verify it with a ping.

    The token is prompted for when not given as an argument. A token the API
    rejects is removed again.

    Example:
      upbudget token set up:yeah:abc123
    """
    services = get_services(ctx)
    if not value:
        value = click.prompt("Up personal access token", hide_input=True)

    run_async(services.client.store_token(value))

    if no_verify:
        click.echo(f"Stored token {mask_token(value.strip())} (not verified)")
        return

    if not run_async(services.client.verify_token()):
        services.credentials.delete()
        raise click.ClickException("The Up API rejected this token; it was not kept.")

    click.echo(f"Token {mask_token(value.strip())} verified and stored")


@token.command()
@click.pass_context
def clear(ctx: click.Context) -> None:
    """Remove the stored API token."""
    services = get_services(ctx)
    try:
        services.credentials.delete()
    except CredentialError as e:
        raise click.ClickException(str(e)) from e
    services.client.invalidate_token()
    click.echo("Token removed")


@token.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show whether a token is stored."""
    services = get_services(ctx)
    if not services.credentials.exists():
        click.echo("No token stored")
        return
    click.echo(f"Token stored: {mask_token(services.credentials.retrieve())}")
