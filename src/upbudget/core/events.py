#!/usr/bin/env python3
"""
Typed Event Channels

Cross-component signals (a transaction was re-categorized, new transactions
arrived) travel over explicit, typed channels owned by the component that
emits them. Subscribers are coroutines invoked in subscription order.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")


@dataclass(frozen=True)
class CategoryChanged:
    """A transaction moved from one category to another (either may be None)."""

    transaction_id: str
    old_category_id: str | None
    new_category_id: str | None

    @property
    def category_ids(self) -> set[str]:
        """Category ids affected by the change."""
        return {cid for cid in (self.old_category_id, self.new_category_id) if cid}


@dataclass(frozen=True)
class TransactionsReceived:
    """A sync or webhook delivered fresh transaction data."""

    count: int
    source: str
    since: datetime | None = None
    received_at: datetime = field(default_factory=lambda: datetime.now().astimezone())


class EventChannel(Generic[E]):
    """
    Publish/subscribe channel for a single event type.

    Handler failures are logged and do not stop delivery to later handlers;
    cancellation is propagated.
    """

    def __init__(self, name: str):
        self.name = name
        self._handlers: list[Callable[[E], Awaitable[None]]] = []

    def subscribe(self, handler: Callable[[E], Awaitable[None]]) -> Callable[[], None]:
        """
        Register a coroutine handler.

        Returns:
            Callable that removes the handler again
        """
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    async def publish(self, event: E) -> None:
        """Deliver an event to every current subscriber."""
        logger.debug(f"Publishing {event!r} on {self.name} to {len(self._handlers)} subscriber(s)")
        for handler in list(self._handlers):
            try:
                await handler(event)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Subscriber {handler!r} failed handling {self.name} event")
