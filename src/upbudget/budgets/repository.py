#!/usr/bin/env python3
"""
Budget Repository

Live in-memory projection of the stored budgets, plus the per-budget cache of
transactions currently counted toward `spent`.

Every mutation runs under one asyncio.Lock and writes through to the
BudgetStore, so concurrent recomputes never interleave a read-modify-write of
the same budget. Statistics are pure functions of the current snapshot.
"""

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Iterable
from decimal import Decimal

from ..up.models import Transaction
from .aggregation import compute_spent
from .models import Budget
from .store import BudgetStore

logger = logging.getLogger(__name__)

BudgetListener = Callable[[list[Budget]], None]

_ZERO = Decimal("0.00")


class BudgetRepository:
    """Observable collection of budgets mirroring the BudgetStore."""

    def __init__(self, store: BudgetStore):
        self.store = store
        self.related_transactions: dict[str, list[Transaction]] = {}
        self._budgets: list[Budget] = []
        self._lock = asyncio.Lock()
        self._listeners: list[BudgetListener] = []

    # -- observation -------------------------------------------------------

    @property
    def budgets(self) -> list[Budget]:
        return list(self._budgets)

    def get(self, budget_id: str) -> Budget | None:
        return next((b for b in self._budgets if b.id == budget_id), None)

    def subscribe(self, listener: BudgetListener) -> Callable[[], None]:
        """
        Register a callback invoked with the budget list after every change.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.budgets
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Budget listener {listener!r} failed")

    def _index_of(self, budget_id: str) -> int | None:
        for index, budget in enumerate(self._budgets):
            if budget.id == budget_id:
                return index
        return None

    # -- mutations ---------------------------------------------------------

    async def load(self) -> list[Budget]:
        """Replace the in-memory list with the stored budgets."""
        async with self._lock:
            self._budgets = self.store.list_budgets()
            known = {b.id for b in self._budgets}
            self.related_transactions = {k: v for k, v in self.related_transactions.items() if k in known}
            logger.info(f"Loaded {len(self._budgets)} budget(s) from {self.store.db_path}")
        self._notify()
        return self.budgets

    async def add(self, budget: Budget) -> Budget:
        async with self._lock:
            self.store.save(budget)
            self._budgets.append(budget)
        self._notify()
        return budget

    async def replace(self, budget: Budget) -> Budget:
        """
        Replace a budget's stored fields.

        Raises:
            BudgetNotFound: If the budget is not stored
        """
        async with self._lock:
            self.store.update(budget)
            index = self._index_of(budget.id)
            if index is None:
                self._budgets.append(budget)
            else:
                self._budgets[index] = budget
        self._notify()
        return budget

    async def remove(self, budget_id: str) -> bool:
        """Delete a budget and discard its cached transactions."""
        async with self._lock:
            deleted = self.store.delete(budget_id)
            index = self._index_of(budget_id)
            if index is not None:
                del self._budgets[index]
            self.related_transactions.pop(budget_id, None)
        self._notify()
        return deleted or index is not None

    async def record_spent(self, budget_id: str, spent: Decimal, transactions: Iterable[Transaction]) -> Budget | None:
        """
        Overwrite a budget's spent amount and cached transactions.

        Returns:
            The updated budget, or None if it was deleted in the meantime
        """
        async with self._lock:
            index = self._index_of(budget_id)
            if index is None:
                logger.debug(f"Budget {budget_id} no longer exists; dropping spent update")
                return None
            updated = dataclasses.replace(self._budgets[index], spent=spent)
            self.store.update(updated)
            self._budgets[index] = updated
            self.related_transactions[budget_id] = list(transactions)
        self._notify()
        return updated

    async def merge_transactions(self, budget_id: str, transactions: Iterable[Transaction]) -> Budget | None:
        """
        Add transactions not already cached for a budget and recompute spent.

        The cache is read and written under the lock with no await in
        between, so concurrent merges cannot lose each other's additions.

        Returns:
            The updated budget, or None if it was deleted in the meantime
        """
        async with self._lock:
            index = self._index_of(budget_id)
            if index is None:
                logger.debug(f"Budget {budget_id} no longer exists; dropping merge")
                return None

            merged = list(self.related_transactions.get(budget_id, []))
            seen = {t.id for t in merged}
            for transaction in transactions:
                if transaction.id not in seen:
                    seen.add(transaction.id)
                    merged.append(transaction)

            updated = dataclasses.replace(self._budgets[index], spent=compute_spent(merged))
            self.store.update(updated)
            self._budgets[index] = updated
            self.related_transactions[budget_id] = merged
        self._notify()
        return updated

    # -- queries -----------------------------------------------------------

    def transactions_for_budget(self, budget_id: str) -> list[Transaction]:
        return list(self.related_transactions.get(budget_id, []))

    def total_budgeted(self) -> Decimal:
        return sum((b.amount for b in self._budgets), _ZERO)

    def total_spent(self) -> Decimal:
        return sum((b.spent for b in self._budgets), _ZERO)

    def overall_remaining(self) -> Decimal:
        """Total budgeted minus total spent (negative when overspent overall)."""
        return self.total_budgeted() - self.total_spent()

    def overall_progress(self) -> float:
        total = self.total_budgeted()
        if total <= 0:
            return 0.0
        return float(min(self.total_spent() / total, Decimal(1)))

    def is_overall_over_budget(self) -> bool:
        return self.total_spent() > self.total_budgeted()

    def active_budgets(self) -> list[Budget]:
        return [b for b in self._budgets if b.is_active]

    def over_budget_items(self) -> list[Budget]:
        return [b for b in self._budgets if b.is_over_budget]

    def budgets_for_category(self, category: str) -> list[Budget]:
        return [b for b in self._budgets if b.category == category]

    def budgets_for_category_id(self, category_id: str) -> list[Budget]:
        return [b for b in self._budgets if b.category_id == category_id]

    def budgets_with_tag(self, tag: str) -> list[Budget]:
        return [b for b in self._budgets if b.matches_tag(tag)]
