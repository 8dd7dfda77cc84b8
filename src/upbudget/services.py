#!/usr/bin/env python3
"""
Service Composition

Builds every long-lived component once and passes references explicitly.
Nothing here is a module-level singleton; callers own the returned
AppServices and close it when done.
"""

import logging
from dataclasses import dataclass

from .budgets.aggregation import BudgetAggregationEngine
from .budgets.repository import BudgetRepository
from .budgets.service import BudgetService
from .budgets.store import BudgetStore
from .core.config import Config
from .core.credentials import CredentialStore, FileCredentialStore
from .up.client import UpBankClient
from .up.http import UpHttpTransport
from .up.sync import SyncEngine

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Wired application components."""

    config: Config
    credentials: CredentialStore
    client: UpBankClient
    sync: SyncEngine
    store: BudgetStore
    repository: BudgetRepository
    aggregation: BudgetAggregationEngine
    budgets: BudgetService

    def close(self) -> None:
        self.budgets.disconnect()
        self.store.close()


def create_services(
    config: Config,
    credentials: CredentialStore | None = None,
    transport: UpHttpTransport | None = None,
) -> AppServices:
    """
    Construct and wire all components from configuration.

    Args:
        config: Application configuration
        credentials: Credential store override (default: token file from config)
        transport: HTTP transport override (tests inject one with a fake session)

    Returns:
        AppServices with the aggregation engine subscribed to sync signals
    """
    credentials = credentials or FileCredentialStore(config.storage.token_file)
    transport = transport or UpHttpTransport(base_url=config.up.base_url, timeout=config.up.timeout)

    client = UpBankClient(
        credentials,
        transport,
        max_expansion_pages=config.up.category_expansion_pages,
    )
    sync = SyncEngine(client, credentials, page_size=config.up.sync_page_size)

    store = BudgetStore(config.storage.db_path)
    repository = BudgetRepository(store)
    aggregation = BudgetAggregationEngine(
        client,
        repository,
        sync_engine=sync,
        tag_page_size=config.up.page_size,
    )
    budgets = BudgetService(repository, aggregation, categories_source=sync.get_categories)
    budgets.connect()

    logger.debug(f"Services created for {config.environment.value} environment")
    return AppServices(
        config=config,
        credentials=credentials,
        client=client,
        sync=sync,
        store=store,
        repository=repository,
        aggregation=aggregation,
        budgets=budgets,
    )
