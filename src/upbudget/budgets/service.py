#!/usr/bin/env python3
"""
Budget Service

User-facing budget workflow: load (with one-time sample seeding), create from
a validated form, edit, delete and manual refresh. Also wires the sync
engine's signals to the aggregation engine.
"""

import logging
from collections.abc import Callable
from datetime import date

from ..core.credentials import CredentialError
from ..up.errors import UpBankError
from ..up.models import Category
from .aggregation import BudgetAggregationEngine
from .models import Budget, BudgetDraft
from .repository import BudgetRepository

logger = logging.getLogger(__name__)

SEEDED_FLAG = "has_seeded_budgets"

# (name, amount, category name, tags, color)
SAMPLE_BUDGETS = [
    ("Groceries", "500", "Food", ["groceries", "essentials"], "#34C759"),
    ("Dining Out", "300", "Food", ["dining", "restaurants"], "#FF9500"),
    ("Entertainment", "200", "Leisure", ["entertainment", "movies"], "#AF52DE"),
    ("Transportation", "150", "Transport", ["transport"], "#007AFF"),
    ("Shopping", "250", "Shopping", ["clothing", "personal"], "#FF3B30"),
]


def find_category_id(categories: list[Category], name: str | None) -> str | None:
    """Resolve a category id by case-insensitive name."""
    if not name:
        return None
    wanted = name.lower()
    return next((c.id for c in categories if c.name.lower() == wanted), None)


def find_category_name(categories: list[Category], category_id: str | None) -> str | None:
    if not category_id:
        return None
    return next((c.name for c in categories if c.id == category_id), None)


def sample_budgets(categories: list[Category], start_date: date | None = None) -> list[Budget]:
    """Build the first-run sample budgets, linking categories found by name."""
    budgets = []
    for name, amount, category, tags, color in SAMPLE_BUDGETS:
        category_id = find_category_id(categories, category)
        if category_id:
            logger.debug(f"Matched sample category {category!r} to {category_id}")
        else:
            logger.debug(f"No category named {category!r}; sample budget {name!r} uses tags only")
        budgets.append(
            Budget(
                name=name,
                amount=amount,
                category=category,
                category_id=category_id,
                tags=list(tags),
                start_date=start_date or date.today(),
                color=color,
            )
        )
    return budgets


class BudgetService:
    """Coordinates the budget repository, aggregation engine and sync signals."""

    def __init__(
        self,
        repository: BudgetRepository,
        aggregation: BudgetAggregationEngine,
        categories_source: Callable | None = None,
    ):
        """
        Initialize budget service.

        Args:
            repository: Budget repository
            aggregation: Aggregation engine used for recomputes
            categories_source: Coroutine function returning the category list
                (normally SyncEngine.get_categories)
        """
        self.repository = repository
        self.aggregation = aggregation
        self.categories_source = categories_source
        self._unsubscribers: list[Callable[[], None]] = []

    def connect(self) -> None:
        """Subscribe the aggregation engine to the sync engine's signals."""
        sync_engine = self.aggregation.sync_engine
        if sync_engine is None or self._unsubscribers:
            return
        self._unsubscribers = [
            sync_engine.category_changed.subscribe(self.aggregation.on_category_changed),
            sync_engine.transactions_received.subscribe(self.aggregation.on_transactions_received),
        ]

    def disconnect(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    async def _categories(self) -> list[Category]:
        if self.categories_source is None:
            return []
        try:
            return await self.categories_source()
        except (UpBankError, CredentialError) as e:
            logger.warning(f"Could not load categories: {e}")
            return []

    async def load_budgets(self, categories: list[Category] | None = None, refresh: bool = True) -> list[Budget]:
        """
        Load stored budgets, seeding the sample budgets on first run.

        Seeding happens only when nothing is stored and it has never happened
        before, so deleting every budget does not bring the samples back.

        Args:
            categories: Categories for name resolution (fetched when None)
            refresh: Recompute spent for every budget after loading
        """
        store = self.repository.store
        budgets = await self.repository.load()

        if not budgets and not store.get_flag(SEEDED_FLAG):
            if categories is None:
                categories = await self._categories()
            logger.info("No stored budgets; creating sample budgets")
            for budget in sample_budgets(categories):
                await self.repository.add(budget)
            store.set_flag(SEEDED_FLAG)

        if refresh:
            await self.aggregation.recompute_all()
        return self.repository.budgets

    async def create_budget(self, draft: BudgetDraft, categories: list[Category] | None = None) -> Budget:
        """
        Validate a form and create the budget.

        Raises:
            ValidationError: Invalid name or amount (nothing is fetched or stored)
        """
        draft.validate()

        if categories is None and (draft.category_id or draft.category):
            categories = await self._categories()
        categories = categories or []

        category_name = draft.category or find_category_name(categories, draft.category_id)
        category_id = draft.category_id or find_category_id(categories, category_name)

        budget = draft.to_budget(category_id=category_id)
        budget.category = category_name
        await self.repository.add(budget)
        logger.info(f"Created budget {budget.name!r} ({budget.id})")

        updated = await self.aggregation.recompute_after_edit(budget)
        return updated or budget

    async def update_budget(self, budget: Budget) -> Budget:
        """
        Persist an edited budget and recompute its filters.

        Raises:
            ValidationError: Invalid name or amount (nothing is fetched or stored)
        """
        budget.validate()
        budget.name = budget.name.strip()
        await self.repository.replace(budget)
        updated = await self.aggregation.recompute_after_edit(budget)
        return updated or budget

    async def delete_budget(self, budget_id: str) -> bool:
        deleted = await self.repository.remove(budget_id)
        self.aggregation.failures.pop(budget_id, None)
        if deleted:
            logger.info(f"Deleted budget {budget_id}")
        return deleted

    async def refresh_all(self) -> list[Budget]:
        """Manual refresh: recompute every budget."""
        return await self.aggregation.recompute_all()
