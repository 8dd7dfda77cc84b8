#!/usr/bin/env python3
"""Tests for the budget service workflow."""

from dataclasses import replace
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from tests.fixtures.up_payloads import make_category, make_transaction

from upbudget.budgets.aggregation import BudgetAggregationEngine
from upbudget.budgets.models import BudgetDraft, ValidationError
from upbudget.budgets.service import SAMPLE_BUDGETS, SEEDED_FLAG, BudgetService, find_category_id, sample_budgets
from upbudget.core.credentials import InMemoryCredentialStore
from upbudget.core.events import CategoryChanged
from upbudget.up.client import UpBankClient
from upbudget.up.errors import TransportError
from upbudget.up.sync import SyncEngine

CATEGORIES = [make_category("groceries", "Food"), make_category("public-transport", "Transport")]


@pytest.fixture
def mock_client():
    client = AsyncMock(spec=UpBankClient)
    client.list_transactions_for_category_expanded.return_value = []
    client.list_transactions_for_tag.return_value = []
    client.list_categories.return_value = CATEGORIES
    return client


@pytest.fixture
def aggregation(mock_client, repository):
    return BudgetAggregationEngine(mock_client, repository)


@pytest.fixture
def service(repository, aggregation):
    return BudgetService(repository, aggregation, categories_source=AsyncMock(return_value=CATEGORIES))


class TestCategoryLookup:
    """Test category name resolution."""

    @pytest.mark.budgets
    def test_case_insensitive(self):
        assert find_category_id(CATEGORIES, "food") == "groceries"
        assert find_category_id(CATEGORIES, "Leisure") is None
        assert find_category_id(CATEGORIES, None) is None

    @pytest.mark.budgets
    def test_sample_budgets(self):
        budgets = sample_budgets(CATEGORIES)

        assert [b.name for b in budgets] == [name for name, *_ in SAMPLE_BUDGETS]
        by_name = {b.name: b for b in budgets}
        assert by_name["Groceries"].category_id == "groceries"
        assert by_name["Transportation"].category_id == "public-transport"
        assert by_name["Entertainment"].category_id is None
        assert by_name["Groceries"].amount == Decimal("500.00")


class TestLoadBudgets:
    """Test loading with first-run seeding."""

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_seeds_once(self, service, repository, budget_store):
        budgets = await service.load_budgets(refresh=False)

        assert len(budgets) == len(SAMPLE_BUDGETS)
        assert budget_store.get_flag(SEEDED_FLAG)

        for b in list(repository.budgets):
            await service.delete_budget(b.id)

        assert await service.load_budgets(refresh=False) == []

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_existing_budgets_not_seeded(self, service, budget_store):
        await service.create_budget(BudgetDraft(name="Mine", amount="10"))

        budgets = await service.load_budgets(refresh=False)

        assert [b.name for b in budgets] == ["Mine"]

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_refresh_recomputes(self, service, mock_client):
        await service.load_budgets(categories=CATEGORIES, refresh=True)

        # Three sample budgets link to known categories
        assert mock_client.list_transactions_for_category_expanded.await_count == 3

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_category_failure_still_seeds(self, repository, aggregation):
        service = BudgetService(
            repository, aggregation, categories_source=AsyncMock(side_effect=TransportError(OSError("offline")))
        )

        budgets = await service.load_budgets(refresh=False)

        assert len(budgets) == len(SAMPLE_BUDGETS)
        assert all(b.category_id is None for b in budgets)


class TestCreateBudget:
    """Test budget creation from a form."""

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_resolves_category_by_name(self, service, mock_client):
        mock_client.list_transactions_for_category_expanded.return_value = [make_transaction("t", -4599)]

        budget = await service.create_budget(BudgetDraft(name="Food", amount="400", category="food"))

        assert budget.category_id == "groceries"
        assert budget.spent == Decimal("45.99")

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_resolves_category_name_from_id(self, service):
        budget = await service.create_budget(BudgetDraft(name="Bus", amount="50", category_id="public-transport"))

        assert budget.category == "Transport"

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_invalid_draft_stores_nothing(self, service, repository):
        with pytest.raises(ValidationError):
            await service.create_budget(BudgetDraft(name="  ", amount="10", category="Food"))

        assert repository.budgets == []
        service.categories_source.assert_not_awaited()

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_update_budget(self, service, mock_client, repository):
        budget = await service.create_budget(BudgetDraft(name="Trip", amount="100"))
        budget.tags = ["holiday"]
        mock_client.list_transactions_for_tag.return_value = [make_transaction("t", -2500)]

        updated = await service.update_budget(budget)

        assert updated.spent == Decimal("25.00")
        assert repository.store.get(budget.id).tags == ["holiday"]

    @pytest.mark.budgets
    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,amount", [("   ", "100"), ("Trip", "0"), ("Trip", "-5")])
    async def test_update_rejects_invalid_edit(self, service, mock_client, repository, name, amount):
        budget = await service.create_budget(BudgetDraft(name="Trip", amount="100"))
        mock_client.reset_mock()

        with pytest.raises(ValidationError):
            await service.update_budget(replace(budget, name=name, amount=Decimal(amount)))

        stored = repository.store.get(budget.id)
        assert stored.name == "Trip"
        assert stored.amount == Decimal("100.00")
        mock_client.list_transactions_for_tag.assert_not_awaited()
        mock_client.list_transactions_for_category_expanded.assert_not_awaited()

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_update_trims_name(self, service, repository):
        budget = await service.create_budget(BudgetDraft(name="Trip", amount="100"))

        await service.update_budget(replace(budget, name="  Holiday  "))

        assert repository.store.get(budget.id).name == "Holiday"


class TestSignalWiring:
    """Test subscription to sync engine signals."""

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self, mock_client, repository):
        sync = SyncEngine(mock_client, InMemoryCredentialStore("tok"))
        aggregation = BudgetAggregationEngine(mock_client, repository, sync_engine=sync)
        service = BudgetService(repository, aggregation)
        budget = await service.create_budget(BudgetDraft(name="Food", amount="100", category_id="groceries"))
        mock_client.list_transactions_for_category_expanded.reset_mock()

        service.connect()
        service.connect()
        assert sync.category_changed.subscriber_count == 1
        assert sync.transactions_received.subscriber_count == 1

        await sync.category_changed.publish(CategoryChanged("txn", None, budget.category_id))
        mock_client.list_transactions_for_category_expanded.assert_awaited_once()

        service.disconnect()
        assert sync.category_changed.subscriber_count == 0
        assert sync.transactions_received.subscriber_count == 0
