"""
upbudget - Up Bank Sync and Budget Tracking

Synchronizes accounts, transactions, categories and tags from the Up banking
API and tracks spending against budgets built on top of that data.

Key Features:
- Asynchronous Up API client with typed models and error classification
- Full and incremental sync with a watermark and single-flight guard
- Budgets matched by category and tags, recomputed as data changes
- SQLite budget store and file-based token storage
- Command-line interface for token, sync, budget and webhook management

Domain Packages:
- core: Currency handling, money, dates, credentials, events, configuration
- up: Up API client, models and sync engine
- budgets: Budget models, storage, repository, aggregation and service
- cli: Command-line interface

Example Usage:
    from upbudget.core.config import get_config
    from upbudget.services import create_services

    services = create_services(get_config())
    await services.sync.perform_initial_sync()
"""

__version__ = "0.1.0"
__author__ = "upbudget contributors"

from .core.config import Environment, get_config
from .core.money import Money

__all__ = [
    "Environment",
    "Money",
    "get_config",
]
