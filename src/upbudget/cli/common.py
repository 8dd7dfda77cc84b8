#!/usr/bin/env python3
"""
Shared CLI Helpers

Service lookup, coroutine execution and conversion of domain errors into
click errors for the command modules.
"""

import asyncio
import logging
from collections.abc import Coroutine
from datetime import datetime
from typing import Any, TypeVar

import click

from ..budgets.models import ValidationError
from ..budgets.store import BudgetStoreError
from ..core.credentials import CredentialError, CredentialNotFound
from ..services import AppServices, create_services
from ..up.errors import UpBankError
from ..up.sync import SyncFailed

logger = logging.getLogger(__name__)

T = TypeVar("T")

WATERMARK_SETTING = "last_sync_at"


def get_services(ctx: click.Context) -> AppServices:
    """
    Get the wired services for this invocation, creating them on first use.

    Tests may pre-populate ctx.obj["services"].
    """
    root = ctx.find_root()
    root.ensure_object(dict)
    services = root.obj.get("services")
    if services is None:
        services = create_services(root.obj["config"])
        root.obj["services"] = services
        root.call_on_close(services.close)
    return services


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion, reporting domain errors as click errors."""
    try:
        return asyncio.run(coro)
    except ValidationError as e:
        raise click.BadParameter(e.message, param_hint=e.field) from e
    except CredentialNotFound as e:
        raise click.ClickException("No API token stored. Run 'upbudget token set' first.") from e
    except SyncFailed as e:
        if isinstance(e.cause, CredentialNotFound):
            raise click.ClickException("No API token stored. Run 'upbudget token set' first.") from e
        if e.is_unauthorized:
            raise click.ClickException(f"{e.reason} (the stored token was rejected)") from e
        raise click.ClickException(e.reason) from e
    except (UpBankError, CredentialError, BudgetStoreError) as e:
        raise click.ClickException(str(e)) from e


def load_watermark(services: AppServices) -> None:
    """Restore the sync watermark persisted by a previous run."""
    value = services.store.get_setting(WATERMARK_SETTING)
    if value:
        services.sync.last_sync_at = datetime.fromisoformat(value)


def save_watermark(services: AppServices) -> None:
    if services.sync.last_sync_at is not None:
        services.store.set_setting(WATERMARK_SETTING, services.sync.last_sync_at.isoformat())
