#!/usr/bin/env python3
"""
Webhooks CLI - Up Webhook Management

Registers, lists and deletes Up webhooks, and feeds received webhook payloads
into the sync engine.
"""

import click

from .common import get_services, load_watermark, run_async, save_watermark


@click.group()
def webhooks() -> None:
    """Up webhook management commands."""
    pass


@webhooks.command()
@click.argument("url")
@click.option("--description", help="Webhook description (default: upbudget webhook)")
@click.pass_context
def create(ctx: click.Context, url: str, description: str | None) -> None:
    """Register a webhook that Up will call for new transactions."""
    services = get_services(ctx)
    webhook_id = run_async(services.sync.setup_webhook(url, description))
    click.echo(f"Created webhook {webhook_id}")


@webhooks.command("list")
@click.pass_context
def list_webhooks(ctx: click.Context) -> None:
    """List registered webhooks."""
    services = get_services(ctx)
    hooks = run_async(services.sync.list_webhooks())

    if not hooks:
        click.echo("No webhooks registered.")
        return

    for hook in hooks:
        click.echo(f"{hook.id}  {hook.url}  {hook.description or ''}".rstrip())


@webhooks.command()
@click.argument("webhook_id")
@click.pass_context
def delete(ctx: click.Context, webhook_id: str) -> None:
    """Delete a webhook."""
    services = get_services(ctx)
    run_async(services.sync.remove_webhook(webhook_id))
    click.echo(f"Deleted webhook {webhook_id}")


@webhooks.command()
@click.argument("payload", type=click.File("rb"), default="-")
@click.pass_context
def receive(ctx: click.Context, payload) -> None:
    """
    Process a webhook delivery body (file or stdin).

    Refreshes account balances, advances the sync watermark and recomputes
    budgets.

    Example:
      upbudget webhooks receive event.json
    """
    services = get_services(ctx)
    load_watermark(services)
    body = payload.read()

    async def _receive():
        await services.budgets.load_budgets(refresh=False)
        return await services.sync.process_webhook_event(body)

    event = run_async(_receive())
    save_watermark(services)
    click.echo(f"Processed {event.event_type or 'unknown'} event")
