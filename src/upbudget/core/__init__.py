"""
Core Utilities Package

Shared primitives used by the Up integration and budgeting packages.

This package provides:
- Currency handling with integer arithmetic for precision
- Money value type mirroring the Up API money object
- Local-offset timestamp formatting and calendar arithmetic
- Credential storage for the API token
- Typed event channels for cross-component signals
- Configuration management for environment-specific settings
"""

from .config import Config, Environment, get_config, reload_config
from .credentials import (
    CredentialError,
    CredentialNotFound,
    CredentialStore,
    CredentialStoreError,
    FileCredentialStore,
    GateFailed,
    GateUnavailable,
    InMemoryCredentialStore,
)
from .currency import (
    cents_to_amount_str,
    cents_to_decimal,
    decimal_to_cents,
    format_amount,
    format_cents,
    parse_amount,
)
from .events import CategoryChanged, EventChannel, TransactionsReceived
from .money import Money

__all__ = [
    # Configuration
    "Config",
    "Environment",
    "get_config",
    "reload_config",
    # Credentials
    "CredentialError",
    "CredentialNotFound",
    "CredentialStore",
    "CredentialStoreError",
    "FileCredentialStore",
    "GateFailed",
    "GateUnavailable",
    "InMemoryCredentialStore",
    # Currency utilities
    "cents_to_amount_str",
    "cents_to_decimal",
    "decimal_to_cents",
    "format_amount",
    "format_cents",
    "parse_amount",
    # Events
    "CategoryChanged",
    "EventChannel",
    "TransactionsReceived",
    # Money
    "Money",
]
