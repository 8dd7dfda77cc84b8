#!/usr/bin/env python3
"""
Budgets CLI - Budget Tracking Commands

Create, list, delete and refresh budgets matched by Up category and tags.
"""

from datetime import datetime

import click

from ..budgets.models import BudgetDraft, BudgetPeriod
from ..core.currency import format_amount
from .common import get_services, run_async


@click.group()
def budgets() -> None:
    """Budget tracking commands."""
    pass


@budgets.command("list")
@click.option("--refresh", is_flag=True, help="Recompute spent amounts from Up before listing")
@click.pass_context
def list_budgets(ctx: click.Context, refresh: bool) -> None:
    """
    List budgets with spending progress.

    Example:
      upbudget budgets list --refresh
    """
    services = get_services(ctx)
    run_async(services.budgets.load_budgets(refresh=refresh))
    repo = services.repository

    if not repo.budgets:
        click.echo("No budgets found.")
        return

    click.echo("Budgets:")
    click.echo("=" * 72)
    for budget in repo.budgets:
        marker = " OVER" if budget.is_over_budget else ""
        click.echo(f"\n{budget.name}{marker}")
        if ctx.obj.get("verbose"):
            click.echo(f"  Id: {budget.id}")
        click.echo(f"  Category: {budget.category or '-'}  Tags: {', '.join(budget.tags) or '-'}")
        click.echo(
            f"  Period: {budget.period.display_name} "
            f"({budget.start_date.isoformat()} to {budget.end_date.isoformat()})"
        )
        click.echo(
            f"  Spent: {format_amount(budget.spent)} of {format_amount(budget.amount)} "
            f"({budget.progress:.0%}), remaining {format_amount(budget.remaining)}"
        )

    click.echo(f"\n{'-' * 72}")
    click.echo(
        f"Total: {len(repo.budgets)} budgets, {format_amount(repo.total_spent())} of "
        f"{format_amount(repo.total_budgeted())} ({repo.overall_progress():.0%})"
    )
    if repo.is_overall_over_budget():
        click.echo("Overall over budget!")

    failures = services.aggregation.failures
    for budget_id, error in failures.items():
        budget = repo.get(budget_id)
        name = budget.name if budget else budget_id
        click.echo(f"Warning: could not refresh {name}: {error}", err=True)


@budgets.command()
@click.argument("name")
@click.argument("amount")
@click.option("--category", help="Category name (resolved to an Up category id)")
@click.option("--category-id", help="Up category id")
@click.option("--tag", "tags", multiple=True, help="Tag to match (repeatable)")
@click.option(
    "--period",
    type=click.Choice(["weekly", "monthly", "yearly", "custom"]),
    default="monthly",
    show_default=True,
)
@click.option("--days", type=click.IntRange(min=1), help="Length of a custom period in days")
@click.option("--start-date", type=click.DateTime(formats=["%Y-%m-%d"]), help="Period start (default: today)")
@click.option("--color", default="#007AFF", show_default=True, help="Display color")
@click.pass_context
def create(
    ctx: click.Context,
    name: str,
    amount: str,
    category: str | None,
    category_id: str | None,
    tags: tuple[str, ...],
    period: str,
    days: int | None,
    start_date: datetime | None,
    color: str,
) -> None:
    """
    Create a budget and compute its current spending.

    AMOUNT accepts a comma as decimal separator ("12,50").

    Example:
      upbudget budgets create Groceries 500 --category Groceries --tag essentials
    """
    if period == "custom":
        if days is None:
            raise click.UsageError("--days is required for a custom period")
        budget_period = BudgetPeriod.custom(days)
    else:
        budget_period = BudgetPeriod.from_storage(period)

    draft = BudgetDraft(
        name=name,
        amount=amount,
        category=category,
        category_id=category_id,
        tags=list(tags),
        period=budget_period,
        color=color,
    )
    if start_date:
        draft.start_date = start_date.date()

    services = get_services(ctx)

    async def _create():
        await services.repository.load()
        return await services.budgets.create_budget(draft)

    budget = run_async(_create())
    click.echo(f"Created budget {budget.name} ({budget.id})")
    click.echo(f"  Spent: {format_amount(budget.spent)} of {format_amount(budget.amount)}")
    if budget.category and not budget.category_id:
        click.echo(f"  Note: no Up category named {budget.category!r}; matching by tags only")


@budgets.command()
@click.argument("budget_id")
@click.pass_context
def delete(ctx: click.Context, budget_id: str) -> None:
    """Delete a budget."""
    services = get_services(ctx)

    async def _delete():
        await services.repository.load()
        return await services.budgets.delete_budget(budget_id)

    if not run_async(_delete()):
        raise click.ClickException(f"No budget with id {budget_id}")
    click.echo(f"Deleted budget {budget_id}")


@budgets.command()
@click.pass_context
def refresh(ctx: click.Context) -> None:
    """Recompute spent amounts for every budget."""
    services = get_services(ctx)

    async def _refresh():
        await services.repository.load()
        return await services.budgets.refresh_all()

    refreshed = run_async(_refresh())
    for budget in refreshed:
        click.echo(f"{budget.name:<24} {format_amount(budget.spent):>12} of {format_amount(budget.amount)}")

    failures = services.aggregation.failures
    if failures:
        raise click.ClickException(f"{len(failures)} budget(s) could not be refreshed")
