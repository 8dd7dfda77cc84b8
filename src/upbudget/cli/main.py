#!/usr/bin/env python3
"""
Main CLI Entry Point for upbudget

Provides unified command-line interface for Up sync and budget tracking.
"""

import logging
import os

import click

from ..core.config import get_config
from .common import get_services, run_async


@click.group()
@click.option(
    "--config-env",
    type=click.Choice(["development", "test", "production"]),
    help="Override environment configuration",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_env: str | None, verbose: bool, debug: bool) -> None:
    """
    upbudget - Up Bank Sync and Budget Tracking

    Synchronizes your Up accounts and transactions and tracks spending
    against category and tag based budgets.
    """
    # Ensure context object exists
    ctx.ensure_object(dict)

    # Set environment if specified
    if config_env:
        os.environ["UPBUDGET_ENV"] = config_env

    # Configure debug logging if requested
    if debug:
        os.environ["LOG_LEVEL"] = "DEBUG"
        logging.getLogger().setLevel(logging.DEBUG)
        logging.getLogger("upbudget").setLevel(logging.DEBUG)

    # Store global options
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    if "config" not in ctx.obj:
        ctx.obj["config"] = get_config()

    if verbose:
        click.echo(f"Environment: {ctx.obj['config'].environment.value}")
        click.echo(f"Data directory: {ctx.obj['config'].data_dir}")

    if debug:
        click.echo("Debug logging enabled")


@main.command()
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show version information."""
    from upbudget import __author__, __version__

    click.echo(f"upbudget v{__version__}")
    click.echo(f"Author: {__author__}")


@main.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Show current configuration."""
    config_obj = ctx.obj["config"]

    click.echo("Current Configuration:")
    click.echo(f"  Environment: {config_obj.environment.value}")
    click.echo(f"  Data Directory: {config_obj.data_dir}")
    click.echo(f"  API Base URL: {config_obj.up.base_url}")
    click.echo(f"  Request Timeout: {config_obj.up.timeout}s")
    click.echo(f"  Sync Page Size: {config_obj.up.sync_page_size}")
    click.echo(f"  Budget Database: {config_obj.storage.db_path}")
    click.echo(f"  Debug Mode: {config_obj.debug}")
    click.echo(f"  Log Level: {config_obj.log_level}")


@main.command()
@click.pass_context
def ping(ctx: click.Context) -> None:
    """Check connectivity and the stored API token."""
    services = get_services(ctx)
    meta = run_async(services.client.ping())
    click.echo(f"Ping OK {meta.get('statusEmoji', '')}".rstrip())
    if ctx.obj.get("verbose"):
        click.echo(f"Token id: {meta.get('id', 'unknown')}")


# Import command groups
from .budgets import budgets  # noqa: E402
from .sync import sync, transactions  # noqa: E402
from .token import token  # noqa: E402
from .webhooks import webhooks  # noqa: E402

main.add_command(token)
main.add_command(sync)
main.add_command(transactions)
main.add_command(budgets)
main.add_command(webhooks)


if __name__ == "__main__":
    main()
