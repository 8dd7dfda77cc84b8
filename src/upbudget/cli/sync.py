#!/usr/bin/env python3
"""
Sync CLI - Up Data Synchronization

Pulls accounts and transactions from Up and recomputes budgets from the
fresh data. The sync watermark is kept in the budget database between runs.
"""

from datetime import datetime

import click

from ..core.currency import format_cents
from ..up.client import TransactionFilter
from ..up.models import TransactionStatus
from .common import get_services, load_watermark, run_async, save_watermark


@click.command()
@click.option("--incremental", is_flag=True, help="Only fetch transactions since the last sync")
@click.pass_context
def sync(ctx: click.Context, incremental: bool) -> None:
    """
    Synchronize accounts and transactions from Up.

    An incremental sync without a previous sync runs a full sync instead.

    Example:
      upbudget sync --incremental
    """
    services = get_services(ctx)
    load_watermark(services)

    async def _sync():
        # Budgets must be loaded so the post-sync recompute has something to update
        await services.budgets.load_budgets(refresh=False)
        if incremental:
            return await services.sync.perform_incremental_sync()
        return await services.sync.perform_initial_sync()

    result = run_async(_sync())
    save_watermark(services)

    click.echo(f"{result.kind.capitalize()} sync complete: {result.transaction_count} transaction(s)")
    for account in services.sync.accounts:
        click.echo(f"  {account.display_name:<30} {format_cents(account.balance.value_in_base_units):>12}")

    failures = services.aggregation.failures
    if failures:
        click.echo(f"Warning: {len(failures)} budget(s) could not be recomputed", err=True)


@click.group()
def transactions() -> None:
    """Transaction queries and re-categorization."""
    pass


@transactions.command("list")
@click.option("--since", type=click.DateTime(formats=["%Y-%m-%d"]), help="Only transactions on or after this date")
@click.option("--until", type=click.DateTime(formats=["%Y-%m-%d"]), help="Only transactions before this date")
@click.option("--category", "category_id", help="Filter by category id")
@click.option("--tag", help="Filter by tag")
@click.option("--status", type=click.Choice(["HELD", "SETTLED"]), help="Filter by status")
@click.option("--limit", type=click.IntRange(1, 100), help="Page size (default: UP_PAGE_SIZE)")
@click.option("--after", help="Cursor for the next page")
@click.option("--before", help="Cursor for the previous page")
@click.pass_context
def list_transactions(
    ctx: click.Context,
    since: datetime | None,
    until: datetime | None,
    category_id: str | None,
    tag: str | None,
    status: str | None,
    limit: int | None,
    after: str | None,
    before: str | None,
) -> None:
    """
    List one page of transactions.

    Use the printed cursors with --after or --before to move between pages.

    Example:
      upbudget transactions list --tag holiday --after CURSOR
    """
    if after and before:
        raise click.UsageError("--after and --before are mutually exclusive")

    services = get_services(ctx)
    filter = TransactionFilter(
        since=since.date() if since else None,
        until=until.date() if until else None,
        category_id=category_id,
        tag=tag,
        status=TransactionStatus(status) if status else None,
        page_size=limit or services.config.up.page_size,
        after=after,
        before=before,
    )
    page = run_async(services.client.list_transactions(filter))

    if not page.items:
        click.echo("No transactions found.")
        return

    for txn in page.items:
        created = txn.created_at.date().isoformat()
        category = txn.category_id or "-"
        click.echo(f"{created}  {format_cents(txn.amount.value_in_base_units):>11}  {txn.description:<30} {category}")
        if ctx.obj.get("verbose"):
            click.echo(f"            id={txn.id} tags={','.join(txn.tag_ids) or '-'}")

    if page.next_cursor:
        click.echo(f"Next page: --after {page.next_cursor}")
    if page.prev_cursor:
        click.echo(f"Previous page: --before {page.prev_cursor}")


@transactions.command()
@click.argument("transaction_id")
@click.argument("category_id", required=False)
@click.option("--clear", is_flag=True, help="Remove the transaction's category")
@click.pass_context
def categorize(ctx: click.Context, transaction_id: str, category_id: str | None, clear: bool) -> None:
    """
    Set or clear a transaction's category and recompute affected budgets.

    Example:
      upbudget transactions categorize TXN_ID groceries
    """
    if not clear and not category_id:
        raise click.UsageError("Give a CATEGORY_ID or use --clear")
    if clear and category_id:
        raise click.UsageError("CATEGORY_ID and --clear are mutually exclusive")

    services = get_services(ctx)

    async def _categorize():
        await services.budgets.load_budgets(refresh=False)
        return await services.sync.set_transaction_category(transaction_id, None if clear else category_id)

    updated = run_async(_categorize())
    click.echo(f"Transaction {updated.id} category: {updated.category_id or 'none'}")
