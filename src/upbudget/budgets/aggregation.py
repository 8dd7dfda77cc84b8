#!/usr/bin/env python3
"""
Budget Aggregation Engine

Computes each budget's `spent` from Up transactions.

Two independent passes update a budget:

- Category pass: fetch the category's transactions since the budget start
  (first page plus a few follow-up pages, no upper date bound), then
  OVERWRITE the cached transaction set and spent with that snapshot.
- Tag pass (one per tag): fetch a single page of the tag's transactions since
  the budget start, MERGE new ones into the cached set by id, and recompute
  spent over the merged set.

The stored spent therefore reflects whichever pass ran last. A full
recompute (category then tags) yields the union; a later category-only
recompute drops tag-only transactions again.

A failed pass is logged and recorded in `failures` without affecting other
budgets; the budget keeps its last spent value. Cancellation propagates and
is never recorded as a failure.
"""

import asyncio
import logging
import sqlite3
from collections.abc import Iterable
from decimal import Decimal
from typing import TYPE_CHECKING

from ..core.credentials import CredentialError
from ..core.currency import cents_to_decimal
from ..core.events import CategoryChanged, TransactionsReceived
from ..up.client import UpBankClient
from ..up.errors import UpBankError
from ..up.models import Transaction
from .models import Budget
from .store import BudgetStoreError

if TYPE_CHECKING:
    from ..up.sync import SyncEngine
    from .repository import BudgetRepository

logger = logging.getLogger(__name__)

CATEGORY_PASS_PAGE_SIZE = 100
MAX_TAG_PAGE_SIZE = 100

# Failures contained per budget; anything else is a bug and propagates
RECOVERABLE_ERRORS = (UpBankError, CredentialError, BudgetStoreError, sqlite3.Error)


def compute_spent(transactions: Iterable[Transaction]) -> Decimal:
    """
    Sum the absolute value of expense (negative) transactions.

    Income and zero amounts are ignored, so the result is never negative.
    Summation uses integer cents; the result is Decimal dollars.

    Example:
        [-320.00, +50.00, -0.50] -> Decimal("320.50")
    """
    cents = sum(
        -t.amount.value_in_base_units for t in transactions if t.amount.value_in_base_units < 0
    )
    return cents_to_decimal(cents)


class BudgetAggregationEngine:
    """Recomputes budget spending from the Up API and writes it to the repository."""

    def __init__(
        self,
        client: UpBankClient,
        repository: "BudgetRepository",
        sync_engine: "SyncEngine | None" = None,
        tag_page_size: int = MAX_TAG_PAGE_SIZE,
    ):
        """
        Initialize aggregation engine.

        Args:
            client: Up API client used for category and tag queries
            repository: Budget repository receiving spent updates
            sync_engine: When given, recomputes wait for any in-flight sync
            tag_page_size: Page size for tag queries (capped at 100)
        """
        self.client = client
        self.repository = repository
        self.sync_engine = sync_engine
        self.tag_page_size = min(tag_page_size, MAX_TAG_PAGE_SIZE)
        self.failures: dict[str, BaseException] = {}
        self._budget_locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, budget_id: str) -> asyncio.Lock:
        lock = self._budget_locks.get(budget_id)
        if lock is None:
            lock = self._budget_locks[budget_id] = asyncio.Lock()
        return lock

    def is_recomputing(self, budget_id: str) -> bool:
        lock = self._budget_locks.get(budget_id)
        return lock is not None and lock.locked()

    async def _wait_for_sync(self) -> None:
        if self.sync_engine is not None:
            await self.sync_engine.wait_until_idle()

    # -- passes (caller holds the budget lock) -----------------------------

    async def _category_pass(self, budget: Budget) -> Budget | None:
        transactions = await self.client.list_transactions_for_category_expanded(
            budget.category_id,
            since=budget.start_date,
            page_size=CATEGORY_PASS_PAGE_SIZE,
        )
        spent = compute_spent(transactions)
        updated = await self.repository.record_spent(budget.id, spent, transactions)
        logger.info(f"Budget {budget.name!r}: spent {spent} from category {budget.category_id}")
        return updated

    async def _tag_pass(self, budget: Budget, tag: str) -> Budget | None:
        transactions = await self.client.list_transactions_for_tag(
            tag,
            since=budget.start_date,
            page_size=self.tag_page_size,
        )
        updated = await self.repository.merge_transactions(budget.id, transactions)
        if updated is not None:
            logger.info(f"Budget {budget.name!r}: spent {updated.spent} after tag {tag!r}")
        return updated

    async def _contained(self, budget: Budget, label: str, pass_coro) -> bool:
        """Run one pass, recording a recoverable failure instead of raising it."""
        try:
            await pass_coro
        except asyncio.CancelledError:
            logger.debug(f"{label} for budget {budget.name!r} cancelled")
            raise
        except RECOVERABLE_ERRORS as e:
            self.failures[budget.id] = e
            logger.error(f"{label} failed for budget {budget.name!r}: {e}")
            return False
        return True

    # -- entry points ------------------------------------------------------

    async def recompute_budget(self, budget_id: str) -> Budget | None:
        """
        Run the category pass and then every tag pass for one budget.

        Returns:
            The budget after recompute, or None if it does not exist
        """
        async with self._lock_for(budget_id):
            await self._wait_for_sync()
            budget = self.repository.get(budget_id)
            if budget is None:
                return None

            ok = True
            if budget.category_id:
                ok &= await self._contained(budget, "Category pass", self._category_pass(budget))
            for tag in budget.tags:
                ok &= await self._contained(budget, f"Tag pass {tag!r}", self._tag_pass(budget, tag))

            if ok:
                self.failures.pop(budget_id, None)
            return self.repository.get(budget_id)

    async def recompute_category_pass(self, budget_id: str) -> Budget | None:
        """Run only the category pass for one budget."""
        async with self._lock_for(budget_id):
            await self._wait_for_sync()
            budget = self.repository.get(budget_id)
            if budget is None or not budget.category_id:
                return budget

            if await self._contained(budget, "Category pass", self._category_pass(budget)):
                self.failures.pop(budget_id, None)
            return self.repository.get(budget_id)

    async def recompute_tag_passes(self, budget_id: str) -> Budget | None:
        """Run only the tag passes for one budget."""
        async with self._lock_for(budget_id):
            await self._wait_for_sync()
            budget = self.repository.get(budget_id)
            if budget is None:
                return None

            ok = True
            for tag in budget.tags:
                ok &= await self._contained(budget, f"Tag pass {tag!r}", self._tag_pass(budget, tag))
            if ok and budget.tags:
                self.failures.pop(budget_id, None)
            return self.repository.get(budget_id)

    async def recompute_all(self) -> list[Budget]:
        """Recompute every budget; one budget's failure does not stop the others."""
        budgets = self.repository.budgets
        logger.info(f"Recomputing spent for {len(budgets)} budget(s)")
        for budget in budgets:
            await self.recompute_budget(budget.id)
        if self.failures:
            logger.warning(f"{len(self.failures)} budget(s) failed to recompute")
        return self.repository.budgets

    async def recompute_for_category(self, category_id: str) -> list[Budget]:
        """Run the category pass for every budget linked to `category_id`."""
        results = []
        for budget in self.repository.budgets_for_category_id(category_id):
            updated = await self.recompute_category_pass(budget.id)
            if updated is not None:
                results.append(updated)
        return results

    async def recompute_after_edit(self, budget: Budget) -> Budget | None:
        """
        Recompute after a budget was created or edited.

        Every budget sharing the budget's category gets a category pass, then
        the budget itself gets its tag passes.
        """
        if budget.category_id:
            await self.recompute_for_category(budget.category_id)
        if budget.tags:
            return await self.recompute_tag_passes(budget.id)
        return self.repository.get(budget.id)

    # -- signal handlers ---------------------------------------------------

    async def on_category_changed(self, event: CategoryChanged) -> None:
        for category_id in sorted(event.category_ids):
            if self.repository.budgets_for_category_id(category_id):
                logger.info(f"Transaction {event.transaction_id} changed category; recomputing {category_id}")
                await self.recompute_for_category(category_id)

    async def on_transactions_received(self, event: TransactionsReceived) -> None:
        logger.info(f"{event.count} transaction(s) received from {event.source}; recomputing all budgets")
        await self.recompute_all()
