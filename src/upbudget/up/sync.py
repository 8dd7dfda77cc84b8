#!/usr/bin/env python3
"""
Sync Engine

Orchestrates full and incremental pulls from the Up API and tracks the
watermark (`last_sync_at`) that bounds the next incremental pull.

Syncs are single-flight: a sync requested while another is running awaits
the running one and receives its outcome. Signals are published on typed
channels once the sync has finished, so subscribers that wait for the engine
to go idle never deadlock against the publisher.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..core.credentials import CredentialError, CredentialNotFound, CredentialStore
from ..core.events import CategoryChanged, EventChannel, TransactionsReceived
from .client import TransactionFilter, UpBankClient
from .errors import Unauthorized, UpBankError
from .models import Account, Category, Tag, Transaction, Webhook, WebhookEvent

logger = logging.getLogger(__name__)

DEFAULT_SYNC_PAGE_SIZE = 100
DEFAULT_WEBHOOK_DESCRIPTION = "upbudget webhook"


def _now() -> datetime:
    return datetime.now().astimezone()


class SyncFailed(Exception):
    """
    A sync or webhook operation failed.

    The original classified error stays reachable through `cause` (and
    `__cause__`), so callers can still tell Unauthorized apart.
    """

    def __init__(self, reason: str, cause: BaseException | None = None):
        super().__init__(reason)
        self.reason = reason
        self.cause = cause

    @property
    def is_unauthorized(self) -> bool:
        return isinstance(self.cause, Unauthorized)


@dataclass
class SyncResult:
    """Outcome of one completed sync run."""

    kind: str  # "initial", "incremental" or "webhook"
    transaction_count: int
    since: datetime | None
    finished_at: datetime = field(default_factory=_now)


class SyncEngine:
    """
    Pulls accounts, categories, tags and transactions from the Up API.

    State is replaced only when a run succeeds; a failed run leaves the
    previous snapshot and watermark untouched.
    """

    def __init__(
        self,
        client: UpBankClient,
        credentials: CredentialStore,
        page_size: int = DEFAULT_SYNC_PAGE_SIZE,
        clock: Callable[[], datetime] = _now,
    ):
        """
        Initialize sync engine.

        Args:
            client: Up API client
            credentials: Credential store, checked before a full sync
            page_size: Page size used when walking account transactions
            clock: Source of aware "now" timestamps
        """
        self.client = client
        self.credentials = credentials
        self.page_size = page_size
        self.clock = clock

        self.last_sync_at: datetime | None = None
        self.last_error: SyncFailed | None = None
        self.accounts: list[Account] = []
        self.tags: list[Tag] = []
        self.transactions: dict[str, Transaction] = {}
        self._categories: list[Category] = []
        self._inflight: asyncio.Task | None = None
        self._inflight_kind: str | None = None

        self.category_changed: EventChannel[CategoryChanged] = EventChannel("category_changed")
        self.transactions_received: EventChannel[TransactionsReceived] = EventChannel("transactions_received")

    @property
    def is_syncing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    @property
    def categories(self) -> list[Category]:
        return list(self._categories)

    async def get_categories(self) -> list[Category]:
        """Return cached categories, fetching them only when the cache is empty."""
        if not self._categories:
            self._categories = await self.client.list_categories()
            logger.info(f"Cached {len(self._categories)} categories")
        return list(self._categories)

    async def wait_until_idle(self) -> None:
        """Wait for an in-flight sync to finish, whatever its outcome."""
        task = self._inflight
        if task is not None and not task.done():
            logger.debug("Waiting for in-flight sync to finish")
            await asyncio.wait({task})

    # -- sync entry points -------------------------------------------------

    async def perform_initial_sync(self) -> SyncResult:
        """
        Full pull: ping, accounts, categories, tags and every transaction page.

        Raises:
            SyncFailed: On any failure; watermark and snapshot are unchanged
        """
        return await self._single_flight("initial", self._initial_sync)

    async def perform_incremental_sync(self) -> SyncResult:
        """
        Pull transactions since the watermark.

        Runs a full initial sync instead when there is no watermark yet.

        Raises:
            SyncFailed: On any failure; watermark and snapshot are unchanged
        """
        return await self._single_flight("incremental", self._incremental_sync)

    async def _single_flight(
        self, kind: str, body: Callable[[datetime], Awaitable[SyncResult]]
    ) -> SyncResult:
        # A webhook refresh is never joined; wait it out and run a real sync
        while self.is_syncing and self._inflight_kind == "webhook":
            await self.wait_until_idle()

        task = self._inflight
        if task is not None and not task.done():
            logger.info(f"{kind.capitalize()} sync requested while a sync is running; joining it")
            return await asyncio.shield(task)

        result = await asyncio.shield(self._start(kind, body))

        # Published outside the single-flight region
        await self.transactions_received.publish(
            TransactionsReceived(count=result.transaction_count, source=f"{kind}_sync", since=result.since)
        )
        return result

    def _start(self, kind: str, body: Callable[[datetime], Awaitable[SyncResult]]) -> asyncio.Task:
        task = asyncio.ensure_future(self._run(kind, body))
        self._inflight = task
        self._inflight_kind = kind
        return task

    async def _run(self, kind: str, body: Callable[[datetime], Awaitable[SyncResult]]) -> SyncResult:
        started = self.clock()
        logger.info(f"Starting {kind} sync")
        try:
            result = await body(started)
        except asyncio.CancelledError:
            logger.info(f"{kind.capitalize()} sync cancelled")
            raise
        except SyncFailed as e:
            self.last_error = e
            logger.error(f"{kind.capitalize()} sync failed: {e}")
            raise
        except (UpBankError, CredentialError) as e:
            failure = SyncFailed(f"{kind.capitalize()} sync failed: {e}", e)
            self.last_error = failure
            logger.error(str(failure))
            raise failure from e

        self.last_error = None
        logger.info(
            f"{result.kind.capitalize()} sync complete: {len(self.accounts)} account(s), "
            f"{result.transaction_count} transaction(s)"
        )
        return result

    async def _initial_sync(self, started: datetime) -> SyncResult:
        if not self.credentials.exists():
            cause = CredentialNotFound()
            raise SyncFailed("No API token stored; cannot sync", cause) from cause

        await self.client.ping()
        accounts = await self.client.list_accounts()
        categories = await self.client.list_categories()
        tags = await self.client.list_tags()

        fetched: dict[str, Transaction] = {}
        for account in accounts:
            for transaction in await self._fetch_account_transactions(account.id, since=None):
                fetched[transaction.id] = transaction

        self.accounts = accounts
        self._categories = categories
        self.tags = tags
        self.transactions = fetched
        self.last_sync_at = self.clock()
        return SyncResult(kind="initial", transaction_count=len(fetched), since=None)

    async def _incremental_sync(self, started: datetime) -> SyncResult:
        since = self.last_sync_at
        if since is None:
            logger.info("No sync watermark yet; running initial sync")
            return await self._initial_sync(started)

        accounts = await self.client.list_accounts()
        fetched: dict[str, Transaction] = {}
        for account in accounts:
            for transaction in await self._fetch_account_transactions(account.id, since=since):
                fetched[transaction.id] = transaction

        self.accounts = accounts
        self.transactions.update(fetched)
        self.last_sync_at = started
        return SyncResult(kind="incremental", transaction_count=len(fetched), since=since)

    async def _fetch_account_transactions(self, account_id: str, since: datetime | None) -> list[Transaction]:
        """Walk every transaction page of one account."""
        filter = TransactionFilter(since=since, page_size=self.page_size)
        page = await self.client.list_transactions_for_account(account_id, filter)
        transactions = list(page.items)
        pages = 1

        while page.next_cursor:
            filter = TransactionFilter(since=since, page_size=self.page_size, after=page.next_cursor)
            page = await self.client.list_transactions_for_account(account_id, filter)
            transactions.extend(page.items)
            pages += 1

        logger.debug(f"Account {account_id}: {len(transactions)} transaction(s) over {pages} page(s)")
        return transactions

    # -- webhooks ----------------------------------------------------------

    async def setup_webhook(self, url: str, description: str | None = None) -> str:
        """
        Register a webhook.

        Returns:
            Id of the new webhook, for later deletion
        """
        try:
            webhook = await self.client.create_webhook(url, description or DEFAULT_WEBHOOK_DESCRIPTION)
        except (UpBankError, CredentialError) as e:
            raise SyncFailed(f"Failed to set up webhook: {e}", e) from e
        logger.info(f"Registered webhook {webhook.id} for {url}")
        return webhook.id

    async def list_webhooks(self) -> list[Webhook]:
        try:
            return await self.client.list_webhooks()
        except (UpBankError, CredentialError) as e:
            raise SyncFailed(f"Failed to list webhooks: {e}", e) from e

    async def remove_webhook(self, webhook_id: str) -> None:
        try:
            await self.client.delete_webhook(webhook_id)
        except (UpBankError, CredentialError) as e:
            raise SyncFailed(f"Failed to delete webhook {webhook_id}: {e}", e) from e
        logger.info(f"Deleted webhook {webhook_id}")

    async def process_webhook_event(self, payload: bytes | str) -> WebhookEvent:
        """
        Handle a webhook delivery.

        The payload is parsed only for logging. Account balances are refreshed,
        the watermark advances and TransactionsReceived is published.

        Raises:
            SyncFailed: If refreshing accounts fails
        """
        event = WebhookEvent.parse(payload)
        logger.info(
            f"Webhook event {event.event_type or 'UNKNOWN'} "
            f"(transaction {event.transaction_id or 'n/a'})"
        )

        # The refresh takes the in-flight slot so it never interleaves with a sync
        while self.is_syncing:
            await self.wait_until_idle()
        await asyncio.shield(self._start("webhook", self._webhook_refresh))

        await self.transactions_received.publish(TransactionsReceived(count=0, source="webhook"))
        return event

    async def _webhook_refresh(self, started: datetime) -> SyncResult:
        self.accounts = await self.client.list_accounts()
        self.last_sync_at = started
        return SyncResult(kind="webhook", transaction_count=0, since=None)

    # -- mutations ---------------------------------------------------------

    async def set_transaction_category(self, transaction_id: str, category_id: str | None) -> Transaction:
        """
        Re-categorize a transaction and announce the change.

        Args:
            transaction_id: Transaction to update
            category_id: New category id, or None to clear the category

        Returns:
            The re-fetched transaction
        """
        try:
            current = await self.client.get_transaction(transaction_id)
            await self.client.set_transaction_category(transaction_id, category_id)
            updated = await self.client.get_transaction(transaction_id)
        except (UpBankError, CredentialError) as e:
            raise SyncFailed(f"Failed to categorize transaction {transaction_id}: {e}", e) from e

        self.transactions[transaction_id] = updated
        logger.info(f"Transaction {transaction_id}: category {current.category_id} -> {updated.category_id}")
        await self.category_changed.publish(
            CategoryChanged(
                transaction_id=transaction_id,
                old_category_id=current.category_id,
                new_category_id=category_id,
            )
        )
        return updated
