"""
Budgeting Package

Budget tracking layered on synchronized Up data.

This package provides:
- Budget models with period arithmetic and form validation
- SQLite persistence with category/tag links and a settings table
- Observable in-memory repository with derived statistics
- Aggregation engine computing spent from category and tag queries
- Budget service handling seeding, creation, edits and refresh
"""

from .aggregation import BudgetAggregationEngine, compute_spent
from .models import Budget, BudgetDraft, BudgetPeriod, PeriodKind, ValidationError, infer_period
from .repository import BudgetRepository
from .service import BudgetService
from .store import BudgetNotFound, BudgetStore, BudgetStoreError

__all__ = [
    # Models
    "Budget",
    "BudgetDraft",
    "BudgetPeriod",
    "PeriodKind",
    "ValidationError",
    "infer_period",
    # Persistence
    "BudgetNotFound",
    "BudgetStore",
    "BudgetStoreError",
    "BudgetRepository",
    # Aggregation
    "BudgetAggregationEngine",
    "compute_spent",
    # Service
    "BudgetService",
]
