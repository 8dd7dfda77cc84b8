#!/usr/bin/env python3
"""
Budget Domain Models

A Budget tracks spending against a target amount over a period, matched to
Up transactions by category id and/or tags. `spent` is derived: it is
recomputed from fetched transactions and never edited directly.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from dateutil.relativedelta import relativedelta

from ..core.currency import parse_amount, quantize_amount
from ..core.dates import add_days

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#007AFF"

_ZERO = Decimal("0.00")


class ValidationError(Exception):
    """Budget form input was rejected."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class PeriodKind(Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


@dataclass(frozen=True)
class BudgetPeriod:
    """
    Budget period: weekly, monthly, yearly or a custom number of days.

    Stored as "weekly", "monthly", "yearly" or "custom:<days>".
    """

    kind: PeriodKind
    days: int = 0  # Only meaningful for CUSTOM

    def __post_init__(self) -> None:
        if self.kind == PeriodKind.CUSTOM and self.days <= 0:
            raise ValueError(f"Custom period needs a positive number of days, got {self.days}")

    @classmethod
    def weekly(cls) -> "BudgetPeriod":
        return cls(PeriodKind.WEEKLY)

    @classmethod
    def monthly(cls) -> "BudgetPeriod":
        return cls(PeriodKind.MONTHLY)

    @classmethod
    def yearly(cls) -> "BudgetPeriod":
        return cls(PeriodKind.YEARLY)

    @classmethod
    def custom(cls, days: int) -> "BudgetPeriod":
        return cls(PeriodKind.CUSTOM, days)

    @property
    def display_name(self) -> str:
        if self.kind == PeriodKind.CUSTOM:
            return f"{self.days} days"
        return self.kind.value.capitalize()

    def end_date(self, start: date) -> date:
        """Calendar end of a period starting at `start` (month ends are clamped)."""
        if self.kind == PeriodKind.WEEKLY:
            return add_days(start, 7)
        if self.kind == PeriodKind.MONTHLY:
            return start + relativedelta(months=1)
        if self.kind == PeriodKind.YEARLY:
            return start + relativedelta(years=1)
        return add_days(start, self.days)

    def to_storage(self) -> str:
        if self.kind == PeriodKind.CUSTOM:
            return f"custom:{self.days}"
        return self.kind.value

    @classmethod
    def from_storage(cls, text: str) -> "BudgetPeriod":
        """
        Parse a stored period string.

        Unrecognised values fall back to monthly, the default period.
        """
        if text.startswith("custom:"):
            try:
                return cls.custom(int(text.removeprefix("custom:")))
            except ValueError:
                logger.warning(f"Invalid custom period {text!r}; using monthly")
                return cls.monthly()
        try:
            kind = PeriodKind(text)
        except ValueError:
            logger.warning(f"Unknown period {text!r}; using monthly")
            return cls.monthly()
        if kind == PeriodKind.CUSTOM:
            return cls.monthly()
        return cls(kind)

    def __str__(self) -> str:
        return self.display_name


def infer_period(start: date, end: date) -> BudgetPeriod:
    """
    Guess a period from a legacy (start, end) pair.

    Whole years give yearly, whole months give monthly, a 6-8 day span gives
    weekly, anything else becomes custom(days). A zero-length span becomes
    monthly since a custom period needs a positive length.
    """
    days = (end - start).days
    if days <= 0:
        return BudgetPeriod.monthly()

    delta = relativedelta(end, start)
    if delta.years > 0:
        return BudgetPeriod.yearly()
    if delta.months > 0:
        return BudgetPeriod.monthly()

    if 6 <= days <= 8:
        return BudgetPeriod.weekly()
    return BudgetPeriod.custom(days)


@dataclass
class Budget:
    """
    Spending target for a period.

    `category` is a display cache of the category name; `category_id` is
    authoritative when present. Amounts are Decimal major units (dollars).
    """

    name: str
    amount: Decimal
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    spent: Decimal = _ZERO
    category: str | None = None
    category_id: str | None = None
    tags: list[str] = field(default_factory=list)
    period: BudgetPeriod = field(default_factory=BudgetPeriod.monthly)
    start_date: date = field(default_factory=date.today)
    color: str = DEFAULT_COLOR
    is_active: bool = True

    def __post_init__(self) -> None:
        self.amount = quantize_amount(Decimal(self.amount))
        self.spent = quantize_amount(Decimal(self.spent))

    @property
    def end_date(self) -> date:
        return self.period.end_date(self.start_date)

    @property
    def progress(self) -> float:
        """Fraction of the target spent, capped at 1.0 (0 when the target is 0)."""
        if self.amount <= 0:
            return 0.0
        return float(min(self.spent / self.amount, Decimal(1)))

    @property
    def remaining(self) -> Decimal:
        return max(self.amount - self.spent, _ZERO)

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.amount

    def matches_tag(self, tag: str) -> bool:
        return tag in self.tags

    def validate(self) -> None:
        """
        Check an edited budget before it is stored.

        Raises:
            ValidationError: Name is blank or amount is not positive
        """
        if not self.name.strip():
            raise ValidationError("name", "Budget name cannot be empty")
        if self.amount <= 0:
            raise ValidationError("amount", "Please enter a valid positive amount")


@dataclass
class BudgetDraft:
    """
    Unvalidated budget form input.

    `amount` is the raw text typed by the user; a comma is accepted as the
    decimal separator.
    """

    name: str
    amount: str
    category: str | None = None
    category_id: str | None = None
    tags: list[str] = field(default_factory=list)
    period: BudgetPeriod = field(default_factory=BudgetPeriod.monthly)
    start_date: date = field(default_factory=date.today)
    color: str = DEFAULT_COLOR

    def validate(self) -> tuple[str, Decimal]:
        """
        Check the form fields.

        Returns:
            (trimmed name, parsed amount)

        Raises:
            ValidationError: Name is blank or amount is not a positive number
        """
        name = self.name.strip()
        if not name:
            raise ValidationError("name", "Budget name cannot be empty")

        try:
            amount = parse_amount(self.amount)
        except ValueError as e:
            raise ValidationError("amount", "Please enter a valid positive amount") from e

        if amount <= 0:
            raise ValidationError("amount", "Please enter a valid positive amount")

        return name, amount

    def to_budget(self, category_id: str | None = None) -> Budget:
        """
        Validate and build a new Budget.

        Args:
            category_id: Resolved category id; overrides the draft's own id
        """
        name, amount = self.validate()
        tags = [tag.strip() for tag in self.tags if tag.strip()]
        return Budget(
            name=name,
            amount=amount,
            category=self.category or None,
            category_id=category_id or self.category_id or None,
            tags=tags,
            period=self.period,
            start_date=self.start_date,
            color=self.color,
        )
