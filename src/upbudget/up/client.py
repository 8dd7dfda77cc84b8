#!/usr/bin/env python3
"""
Up Bank API Client

Typed, asynchronous operations over the Up API. The client obtains the bearer
token from the credential store, caches it for the process, and applies the
single-retry policy on Unauthorized:

1. the cached token is dropped
2. the token is "refreshed" by re-reading the credential store (Up has no
   refresh-token grant, so this only helps when the stored token changed)
3. the request is retried exactly once; a second 401 propagates
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, TypeVar

from ..core.credentials import CredentialStore, mask_token
from ..core.dates import to_api_timestamp
from .errors import Unauthorized
from .http import UpHttpTransport
from .models import (
    Account,
    Category,
    Page,
    Tag,
    Transaction,
    TransactionStatus,
    Webhook,
    WebhookEvent,
    decode_page,
    decode_single,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 30
CATEGORY_PAGE_SIZE = 50
MAX_EXPANSION_PAGES = 3


@dataclass
class TransactionFilter:
    """
    Query filters for transaction listings.

    Dates are sent as ISO-8601 timestamps with the local UTC offset. Plain
    dates mean local midnight.
    """

    since: date | datetime | None = None
    until: date | datetime | None = None
    category_id: str | None = None
    tag: str | None = None
    status: TransactionStatus | None = None
    page_size: int = DEFAULT_PAGE_SIZE
    after: str | None = None
    before: str | None = None

    def to_params(self, include_resource_filters: bool = True) -> dict[str, str]:
        """
        Build query parameters.

        Args:
            include_resource_filters: Send category/tag/status filters. The
                per-account endpoint only receives the date and page filters.
        """
        params = {"page[size]": str(self.page_size)}

        if self.since is not None:
            params["filter[since]"] = to_api_timestamp(self.since)
        if self.until is not None:
            params["filter[until]"] = to_api_timestamp(self.until)

        if include_resource_filters:
            if self.category_id:
                params["filter[category]"] = self.category_id
            if self.tag:
                params["filter[tag]"] = self.tag
            if self.status is not None:
                params["filter[status]"] = self.status.value

        if self.after:
            params["page[after]"] = self.after
        if self.before:
            params["page[before]"] = self.before

        return params


class UpBankClient:
    """Asynchronous Up API client with credential caching and 401 retry."""

    def __init__(
        self,
        credentials: CredentialStore,
        transport: UpHttpTransport | None = None,
        max_expansion_pages: int = MAX_EXPANSION_PAGES,
    ):
        """
        Initialize client.

        Args:
            credentials: Store holding the personal access token
            transport: HTTP transport (default: production base URL)
            max_expansion_pages: Pages followed after the first one by
                list_transactions_for_category_expanded
        """
        self.credentials = credentials
        self.transport = transport or UpHttpTransport()
        self.max_expansion_pages = max_expansion_pages
        self._token: str | None = None

    # -- credentials -------------------------------------------------------

    def _current_token(self) -> str:
        if self._token is None:
            self._token = self.credentials.retrieve()
        return self._token

    def invalidate_token(self) -> None:
        """Forget the cached token; the next request re-reads the credential store."""
        self._token = None

    def _refresh_token(self) -> str:
        self.invalidate_token()
        return self._current_token()

    async def store_token(self, token: str) -> None:
        """Persist a new token and drop the cached one."""
        self.credentials.store(token)
        self.invalidate_token()

    async def verify_token(self) -> bool:
        """
        Check the stored token against the ping endpoint.

        Returns:
            True if the API accepted the token, False on Unauthorized

        Raises:
            CredentialNotFound: No token is stored
        """
        try:
            await self.ping()
        except Unauthorized:
            return False
        return True

    # -- request plumbing -------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json_body: Any = None,
    ) -> Any:
        token = self._current_token()
        try:
            return await self.transport.request(method, path, token, params, json_body)
        except Unauthorized:
            logger.warning(f"{method} {path} unauthorized with token {mask_token(token)}; retrying once")

        token = self._refresh_token()
        try:
            return await self.transport.request(method, path, token, params, json_body)
        except Unauthorized:
            self.invalidate_token()
            raise

    async def _get_page(
        self, path: str, decoder: Callable[[Any, str], T], params: dict[str, str] | None = None
    ) -> Page[T]:
        payload = await self._request("GET", path, params=params)
        page = decode_page(payload, decoder)
        logger.debug(f"GET {path}: {len(page)} item(s), next={'yes' if page.has_next else 'no'}")
        return page

    async def _get_all(
        self, path: str, decoder: Callable[[Any, str], T], params: dict[str, str] | None = None
    ) -> list[T]:
        page = await self._get_page(path, decoder, params)
        items = list(page.items)
        while page.next_url:
            page = await self._get_page(page.next_url, decoder)
            items.extend(page.items)
        return items

    # -- utility ----------------------------------------------------------

    async def ping(self) -> dict[str, Any]:
        """
        Liveness and credential check.

        Returns:
            The `meta` object of the ping response (id, statusEmoji)
        """
        payload = await self._request("GET", "/util/ping")
        meta = payload.get("meta") if isinstance(payload, dict) else None
        return meta if isinstance(meta, dict) else {}

    # -- accounts ---------------------------------------------------------

    async def list_accounts(self, page_size: int = DEFAULT_PAGE_SIZE) -> list[Account]:
        return await self._get_all("/accounts", Account.from_dict, {"page[size]": str(page_size)})

    async def get_account(self, account_id: str) -> Account:
        payload = await self._request("GET", f"/accounts/{account_id}")
        return decode_single(payload, Account.from_dict)

    # -- transactions -----------------------------------------------------

    async def list_transactions(self, filter: TransactionFilter | None = None) -> Page[Transaction]:
        """
        Fetch one page of transactions across all accounts.

        Args:
            filter: Date, category, tag, status and pagination filters

        Returns:
            Page with next/prev cursors for further pagination
        """
        filter = filter or TransactionFilter()
        return await self._get_page("/transactions", Transaction.from_dict, filter.to_params())

    async def list_transactions_for_account(
        self, account_id: str, filter: TransactionFilter | None = None
    ) -> Page[Transaction]:
        """Fetch one page of an account's transactions (date and page filters only)."""
        filter = filter or TransactionFilter()
        return await self._get_page(
            f"/accounts/{account_id}/transactions",
            Transaction.from_dict,
            filter.to_params(include_resource_filters=False),
        )

    async def next_transactions_page(self, page: Page[Transaction]) -> Page[Transaction] | None:
        """Follow a page's `links.next` URL; None when there is no next page."""
        if not page.next_url:
            return None
        return await self._get_page(page.next_url, Transaction.from_dict)

    async def get_transaction(self, transaction_id: str) -> Transaction:
        payload = await self._request("GET", f"/transactions/{transaction_id}")
        return decode_single(payload, Transaction.from_dict)

    async def list_transactions_for_category_expanded(
        self,
        category_id: str,
        since: date | datetime | None = None,
        page_size: int = CATEGORY_PAGE_SIZE,
    ) -> list[Transaction]:
        """
        Fetch a category's transactions, following at most a few extra pages.

        The first page is always fetched; then `links.next` is followed for at
        most `max_expansion_pages` further pages. No `until` bound is sent.

        Returns:
            Concatenated transactions of all fetched pages
        """
        filter = TransactionFilter(since=since, category_id=category_id, page_size=page_size)
        page = await self.list_transactions(filter)
        transactions = list(page.items)

        extra_pages = 0
        while page.next_url and extra_pages < self.max_expansion_pages:
            page = await self._get_page(page.next_url, Transaction.from_dict)
            transactions.extend(page.items)
            extra_pages += 1

        logger.info(f"Fetched {len(transactions)} transaction(s) for category {category_id} ({1 + extra_pages} page(s))")
        return transactions

    async def list_transactions_for_tag(
        self,
        tag: str,
        since: date | datetime | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[Transaction]:
        """Fetch a single page of transactions carrying `tag`."""
        page = await self.list_transactions(TransactionFilter(since=since, tag=tag, page_size=page_size))
        return page.items

    async def add_tag_to_transaction(self, transaction_id: str, tag_id: str) -> None:
        await self._request(
            "POST",
            f"/transactions/{transaction_id}/relationships/tags",
            json_body={"data": [{"type": "tags", "id": tag_id}]},
        )

    async def remove_tag_from_transaction(self, transaction_id: str, tag_id: str) -> None:
        await self._request(
            "DELETE",
            f"/transactions/{transaction_id}/relationships/tags",
            json_body={"data": [{"type": "tags", "id": tag_id}]},
        )

    async def set_transaction_category(self, transaction_id: str, category_id: str | None) -> None:
        """
        Categorize a transaction.

        Args:
            transaction_id: Transaction to update
            category_id: New category, or None to remove the category
        """
        data = {"type": "categories", "id": category_id} if category_id else None
        await self._request(
            "PATCH",
            f"/transactions/{transaction_id}/relationships/category",
            json_body={"data": data},
        )

    # -- categories and tags ----------------------------------------------

    async def list_categories(self) -> list[Category]:
        payload = await self._request("GET", "/categories")
        return decode_page(payload, Category.from_dict).items

    async def get_category(self, category_id: str) -> Category:
        payload = await self._request("GET", f"/categories/{category_id}")
        return decode_single(payload, Category.from_dict)

    async def list_tags(self, page_size: int = DEFAULT_PAGE_SIZE) -> list[Tag]:
        return await self._get_all("/tags", Tag.from_dict, {"page[size]": str(page_size)})

    async def create_tag(self, tag_id: str) -> Tag:
        payload = await self._request("POST", "/tags", json_body={"data": {"type": "tags", "id": tag_id}})
        return decode_single(payload, Tag.from_dict)

    # -- webhooks ---------------------------------------------------------

    async def create_webhook(self, url: str, description: str | None = None) -> Webhook:
        attributes: dict[str, str] = {"url": url}
        if description is not None:
            attributes["description"] = description
        payload = await self._request("POST", "/webhooks", json_body={"data": {"attributes": attributes}})
        return decode_single(payload, Webhook.from_dict)

    async def list_webhooks(self) -> list[Webhook]:
        return await self._get_all("/webhooks", Webhook.from_dict)

    async def delete_webhook(self, webhook_id: str) -> None:
        await self._request("DELETE", f"/webhooks/{webhook_id}")

    async def ping_webhook(self, webhook_id: str) -> WebhookEvent:
        """Ask the API to deliver a PING event to a webhook."""
        payload = await self._request("POST", f"/webhooks/{webhook_id}/ping")
        return WebhookEvent.from_payload(payload)
