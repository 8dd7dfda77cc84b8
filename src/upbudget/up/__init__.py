"""
Up Bank API Integration Package

Asynchronous client and sync engine for the Up banking API.

This package provides:
- Typed models for accounts, transactions, categories, tags and webhooks
- HTTP transport with timeout handling and status classification
- API client with credential caching and a single retry on 401
- Sync engine with watermark tracking, single-flight syncs and webhook entry point
"""

from .client import TransactionFilter, UpBankClient
from .errors import (
    ClientError,
    DecodeError,
    Forbidden,
    HttpError,
    RateLimited,
    ServerError,
    TransportError,
    Unauthorized,
    UnexpectedStatus,
    UpBankError,
)
from .http import UpHttpTransport
from .models import (
    Account,
    AccountType,
    Category,
    OwnershipType,
    Page,
    ResourceIdentifier,
    Tag,
    Transaction,
    TransactionStatus,
    Webhook,
    WebhookEvent,
)
from .sync import SyncEngine, SyncFailed, SyncResult

__all__ = [
    # Models
    "Account",
    "AccountType",
    "Category",
    "OwnershipType",
    "Page",
    "ResourceIdentifier",
    "Tag",
    "Transaction",
    "TransactionStatus",
    "Webhook",
    "WebhookEvent",
    # Client
    "TransactionFilter",
    "UpBankClient",
    "UpHttpTransport",
    # Sync
    "SyncEngine",
    "SyncFailed",
    "SyncResult",
    # Errors
    "ClientError",
    "DecodeError",
    "Forbidden",
    "HttpError",
    "RateLimited",
    "ServerError",
    "TransportError",
    "Unauthorized",
    "UnexpectedStatus",
    "UpBankError",
]
