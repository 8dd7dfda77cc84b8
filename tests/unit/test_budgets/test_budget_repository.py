#!/usr/bin/env python3
"""Tests for the observable budget repository."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from tests.fixtures.up_payloads import make_transaction

from upbudget.budgets.models import Budget
from upbudget.budgets.store import BudgetNotFound


def budget(name: str, amount: str, spent: str = "0", **kwargs) -> Budget:
    return Budget(name=name, amount=Decimal(amount), spent=Decimal(spent), start_date=date(2024, 1, 1), **kwargs)


class TestMutations:
    """Test write-through mutations."""

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_add_writes_through(self, repository, budget_store):
        b = await repository.add(budget("Groceries", "500"))

        assert repository.get(b.id) is b
        assert budget_store.get(b.id) == b

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_load_replaces_list(self, repository, budget_store):
        stored = budget("Stored", "100")
        budget_store.save(stored)

        loaded = await repository.load()

        assert [b.id for b in loaded] == [stored.id]

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_replace(self, repository):
        b = await repository.add(budget("Groceries", "500"))
        b.amount = Decimal("600.00")

        await repository.replace(b)

        assert repository.store.get(b.id).amount == Decimal("600.00")

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_replace_unknown(self, repository):
        with pytest.raises(BudgetNotFound):
            await repository.replace(budget("Ghost", "1"))
        assert repository.budgets == []

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_remove_discards_cache(self, repository):
        b = await repository.add(budget("Groceries", "500"))
        await repository.record_spent(b.id, Decimal("1.00"), [make_transaction("t1", -100)])

        assert await repository.remove(b.id)

        assert repository.get(b.id) is None
        assert repository.transactions_for_budget(b.id) == []
        assert not await repository.remove(b.id)

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_record_spent_overwrites(self, repository):
        b = await repository.add(budget("Groceries", "500"))
        await repository.record_spent(b.id, Decimal("3.00"), [make_transaction("t1", -300)])

        updated = await repository.record_spent(b.id, Decimal("1.00"), [make_transaction("t2", -100)])

        assert updated.spent == Decimal("1.00")
        assert [t.id for t in repository.transactions_for_budget(b.id)] == ["t2"]
        assert repository.store.get(b.id).spent == Decimal("1.00")

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_record_spent_for_deleted_budget(self, repository):
        assert await repository.record_spent("gone", Decimal("1"), []) is None


class TestMergeTransactions:
    """Test merging tag pass results into the cache."""

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_merge_is_union_by_id(self, repository):
        b = await repository.add(budget("Holiday", "1000"))
        a_txn, b_txn, c_txn = make_transaction("A", -1000), make_transaction("B", -2000), make_transaction("C", -4000)
        await repository.record_spent(b.id, Decimal("30.00"), [a_txn, b_txn])

        updated = await repository.merge_transactions(b.id, [b_txn, c_txn])

        assert sorted(t.id for t in repository.transactions_for_budget(b.id)) == ["A", "B", "C"]
        assert updated.spent == Decimal("70.00")

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_merge_ignores_income(self, repository):
        b = await repository.add(budget("Holiday", "1000"))

        updated = await repository.merge_transactions(b.id, [make_transaction("refund", 5000), make_transaction("x", -250)])

        assert updated.spent == Decimal("2.50")

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_concurrent_merges_keep_both(self, repository):
        b = await repository.add(budget("Holiday", "1000"))

        await asyncio.gather(
            repository.merge_transactions(b.id, [make_transaction("A", -100)]),
            repository.merge_transactions(b.id, [make_transaction("B", -200)]),
        )

        assert sorted(t.id for t in repository.transactions_for_budget(b.id)) == ["A", "B"]
        assert repository.get(b.id).spent == Decimal("3.00")


class TestStatistics:
    """Test aggregate statistics over the snapshot."""

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_totals(self, repository):
        await repository.add(budget("Groceries", "500", "320"))
        await repository.add(budget("Dining", "100", "150"))

        assert repository.total_budgeted() == Decimal("600.00")
        assert repository.total_spent() == Decimal("470.00")
        assert repository.overall_remaining() == Decimal("130.00")
        assert repository.overall_progress() == pytest.approx(470 / 600)
        assert not repository.is_overall_over_budget()
        assert [b.name for b in repository.over_budget_items()] == ["Dining"]

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_overall_remaining_can_be_negative(self, repository):
        await repository.add(budget("Dining", "100", "150"))

        assert repository.overall_remaining() == Decimal("-50.00")
        assert repository.is_overall_over_budget()
        assert repository.overall_progress() == 1.0

    @pytest.mark.budgets
    def test_empty_repository(self, repository):
        assert repository.total_budgeted() == Decimal("0")
        assert repository.overall_progress() == 0.0
        assert repository.active_budgets() == []

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_filters(self, repository):
        food = await repository.add(budget("Food", "500", category="Food", category_id="groceries", tags=["essentials"]))
        await repository.add(budget("Fun", "200", tags=["movies"], is_active=False))

        assert repository.budgets_for_category("Food") == [food]
        assert repository.budgets_for_category_id("groceries") == [food]
        assert repository.budgets_with_tag("essentials") == [food]
        assert repository.active_budgets() == [food]


class TestListeners:
    """Test change notifications."""

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_listener_receives_snapshots(self, repository):
        snapshots = []
        unsubscribe = repository.subscribe(lambda budgets: snapshots.append([b.name for b in budgets]))

        await repository.add(budget("A", "1"))
        await repository.add(budget("B", "1"))
        unsubscribe()
        await repository.add(budget("C", "1"))

        assert snapshots == [["A"], ["A", "B"]]

    @pytest.mark.budgets
    @pytest.mark.asyncio
    async def test_failing_listener_is_isolated(self, repository):
        def broken(budgets):
            raise RuntimeError("boom")

        repository.subscribe(broken)

        b = await repository.add(budget("A", "1"))

        assert repository.get(b.id) is b
