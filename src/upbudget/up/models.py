#!/usr/bin/env python3
"""
Up API Domain Models

Type-safe models representing Up API resources (JSON:API style). Each model
decodes from the raw API dict via `from_dict`, which raises DecodeError
carrying the dotted path of the offending field, e.g.
"data[3].attributes.amount.valueInBaseUnits".

Relationships are decoded to ResourceIdentifier values straight from the
relationship `data` member; link URLs are never parsed to recover ids.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Generic, TypeVar
from urllib.parse import parse_qs, urlparse

from ..core.dates import parse_api_timestamp
from ..core.money import Money
from .errors import DecodeError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Decoding helpers
# ---------------------------------------------------------------------------


def _join(path: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else key


def _as_dict(value: Any, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise DecodeError(path, f"expected object, got {type(value).__name__}")
    return value


def _as_list(value: Any, path: str) -> list[Any]:
    if not isinstance(value, list):
        raise DecodeError(path, f"expected array, got {type(value).__name__}")
    return value


def _require(obj: dict[str, Any], key: str, path: str) -> Any:
    if obj.get(key) is None:
        raise DecodeError(_join(path, key), "missing required field")
    return obj[key]


def _str(obj: dict[str, Any], key: str, path: str) -> str:
    value = _require(obj, key, path)
    if not isinstance(value, str):
        raise DecodeError(_join(path, key), f"expected string, got {type(value).__name__}")
    return value


def _optional_str(obj: dict[str, Any], key: str, path: str) -> str | None:
    if obj.get(key) is None:
        return None
    return _str(obj, key, path)


def _bool(obj: dict[str, Any], key: str, path: str) -> bool:
    value = _require(obj, key, path)
    if not isinstance(value, bool):
        raise DecodeError(_join(path, key), f"expected boolean, got {type(value).__name__}")
    return value


def _int(obj: dict[str, Any], key: str, path: str) -> int:
    value = _require(obj, key, path)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(_join(path, key), f"expected integer, got {type(value).__name__}")
    if round(value) != value:
        raise DecodeError(_join(path, key), f"expected whole number, got {value!r}")
    return int(value)


def _timestamp(obj: dict[str, Any], key: str, path: str) -> datetime:
    text = _str(obj, key, path)
    try:
        return parse_api_timestamp(text)
    except ValueError as e:
        raise DecodeError(_join(path, key), str(e)) from e


def _optional_timestamp(obj: dict[str, Any], key: str, path: str) -> datetime | None:
    if obj.get(key) is None:
        return None
    return _timestamp(obj, key, path)


def _enum(enum_cls: type[Enum], obj: dict[str, Any], key: str, path: str) -> Any:
    text = _str(obj, key, path)
    try:
        return enum_cls(text)
    except ValueError as e:
        raise DecodeError(_join(path, key), f"unknown {enum_cls.__name__} {text!r}") from e


def decode_money(data: Any, path: str) -> Money:
    """Decode an Up money object ({currencyCode, value, valueInBaseUnits})."""
    obj = _as_dict(data, path)
    return Money(
        currency_code=_str(obj, "currencyCode", path),
        value=_str(obj, "value", path),
        value_in_base_units=_int(obj, "valueInBaseUnits", path),
    )


def _money(obj: dict[str, Any], key: str, path: str) -> Money:
    return decode_money(_require(obj, key, path), _join(path, key))


def _optional_money(obj: dict[str, Any], key: str, path: str) -> Money | None:
    if obj.get(key) is None:
        return None
    return _money(obj, key, path)


def parse_body(body: bytes | str, path: str = "") -> Any:
    """Parse a JSON response body, mapping syntax errors to DecodeError."""
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise DecodeError(path, f"invalid JSON: {e}") from e


# ---------------------------------------------------------------------------
# Relationships and envelopes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResourceIdentifier:
    """JSON:API resource linkage: {"type": "categories", "id": "groceries"}."""

    type: str
    id: str

    @classmethod
    def from_dict(cls, data: Any, path: str) -> "ResourceIdentifier":
        obj = _as_dict(data, path)
        return cls(type=_str(obj, "type", path), id=_str(obj, "id", path))


def _to_one(relationships: dict[str, Any], key: str, path: str) -> ResourceIdentifier | None:
    """Decode a to-one relationship; absent relationship or null data gives None."""
    rel = relationships.get(key)
    if rel is None:
        return None
    rel_path = _join(path, key)
    linkage = _as_dict(rel, rel_path).get("data")
    if linkage is None:
        return None
    return ResourceIdentifier.from_dict(linkage, _join(rel_path, "data"))


def _to_many(relationships: dict[str, Any], key: str, path: str) -> list[ResourceIdentifier]:
    """Decode a to-many relationship; absent relationship gives an empty list."""
    rel = relationships.get(key)
    if rel is None:
        return []
    rel_path = _join(path, key)
    linkage = _as_dict(rel, rel_path).get("data")
    if linkage is None:
        return []
    data_path = _join(rel_path, "data")
    return [
        ResourceIdentifier.from_dict(item, _join(data_path, i))
        for i, item in enumerate(_as_list(linkage, data_path))
    ]


def _cursor(url: str | None, param: str) -> str | None:
    if not url:
        return None
    values = parse_qs(urlparse(url).query).get(param)
    return values[0] if values else None


@dataclass
class Page(Generic[T]):
    """
    One page of a list endpoint.

    `next_url`/`prev_url` are the raw `links` values; the cursors are the
    `page[after]`/`page[before]` query parameters extracted from them.
    """

    items: list[T]
    next_url: str | None = None
    prev_url: str | None = None

    @property
    def next_cursor(self) -> str | None:
        return _cursor(self.next_url, "page[after]")

    @property
    def prev_cursor(self) -> str | None:
        return _cursor(self.prev_url, "page[before]")

    @property
    def has_next(self) -> bool:
        return self.next_url is not None

    def __len__(self) -> int:
        return len(self.items)


def decode_page(payload: Any, decoder: Callable[[Any, str], T]) -> Page[T]:
    """
    Decode a list envelope {data: [...], links: {prev, next}}.

    Args:
        payload: Parsed JSON body
        decoder: Callable(item, path) producing one resource

    Returns:
        Page of decoded resources
    """
    envelope = _as_dict(payload, "")
    items = _as_list(_require(envelope, "data", ""), "data")
    decoded = [decoder(item, _join("data", i)) for i, item in enumerate(items)]

    links = envelope.get("links") or {}
    links = _as_dict(links, "links")
    return Page(
        items=decoded,
        next_url=_optional_str(links, "next", "links"),
        prev_url=_optional_str(links, "prev", "links"),
    )


def decode_single(payload: Any, decoder: Callable[[Any, str], T]) -> T:
    """Decode a single-resource envelope {data: {...}}."""
    envelope = _as_dict(payload, "")
    return decoder(_require(envelope, "data", ""), "data")


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class AccountType(Enum):
    SAVER = "SAVER"
    TRANSACTIONAL = "TRANSACTIONAL"
    HOME_LOAN = "HOME_LOAN"


class OwnershipType(Enum):
    INDIVIDUAL = "INDIVIDUAL"
    JOINT = "JOINT"


class TransactionStatus(Enum):
    HELD = "HELD"
    SETTLED = "SETTLED"


@dataclass(frozen=True)
class Account:
    """
    Up account from API.

    Refreshed wholesale on each fetch; only the balance changes over time.
    """

    id: str
    display_name: str
    account_type: AccountType
    ownership_type: OwnershipType
    balance: Money
    created_at: datetime

    @classmethod
    def from_dict(cls, data: Any, path: str = "data") -> "Account":
        """
        Create Account from API dict.

        Args:
            data: Account resource object from the Up API
            path: Field path of `data`, used in DecodeError diagnostics

        Returns:
            Account instance
        """
        obj = _as_dict(data, path)
        attr_path = _join(path, "attributes")
        attrs = _as_dict(_require(obj, "attributes", path), attr_path)
        return cls(
            id=_str(obj, "id", path),
            display_name=_str(attrs, "displayName", attr_path),
            account_type=_enum(AccountType, attrs, "accountType", attr_path),
            ownership_type=_enum(OwnershipType, attrs, "ownershipType", attr_path),
            balance=_money(attrs, "balance", attr_path),
            created_at=_timestamp(attrs, "createdAt", attr_path),
        )


@dataclass(frozen=True)
class HoldInfo:
    amount: Money
    foreign_amount: Money | None = None


@dataclass(frozen=True)
class RoundUp:
    amount: Money
    boost_portion: Money | None = None


@dataclass(frozen=True)
class Cashback:
    description: str
    amount: Money


@dataclass(frozen=True)
class Transaction:
    """
    Up transaction from API.

    Immutable snapshot; superseded by a re-fetch after any mutation such as
    re-categorization. Amount is signed: negative means money out.
    """

    id: str
    description: str
    amount: Money
    status: TransactionStatus
    is_categorizable: bool
    created_at: datetime
    account: ResourceIdentifier
    message: str | None = None
    raw_text: str | None = None
    hold_info: HoldInfo | None = None
    round_up: RoundUp | None = None
    cashback: Cashback | None = None
    settled_at: datetime | None = None
    transfer_account: ResourceIdentifier | None = None
    category: ResourceIdentifier | None = None
    parent_category: ResourceIdentifier | None = None
    tags: list[ResourceIdentifier] = field(default_factory=list)

    @property
    def account_id(self) -> str:
        return self.account.id

    @property
    def category_id(self) -> str | None:
        return self.category.id if self.category else None

    @property
    def tag_ids(self) -> list[str]:
        return [tag.id for tag in self.tags]

    @property
    def is_expense(self) -> bool:
        return self.amount.is_expense

    @classmethod
    def from_dict(cls, data: Any, path: str = "data") -> "Transaction":
        """
        Create Transaction from API dict.

        Args:
            data: Transaction resource object from the Up API
            path: Field path of `data`, used in DecodeError diagnostics

        Returns:
            Transaction instance
        """
        obj = _as_dict(data, path)
        attr_path = _join(path, "attributes")
        attrs = _as_dict(_require(obj, "attributes", path), attr_path)
        rel_path = _join(path, "relationships")
        rels = _as_dict(_require(obj, "relationships", path), rel_path)

        account = _to_one(rels, "account", rel_path)
        if account is None:
            raise DecodeError(_join(_join(rel_path, "account"), "data"), "missing required field")

        hold_info = None
        if attrs.get("holdInfo") is not None:
            hold_path = _join(attr_path, "holdInfo")
            hold = _as_dict(attrs["holdInfo"], hold_path)
            hold_info = HoldInfo(
                amount=_money(hold, "amount", hold_path),
                foreign_amount=_optional_money(hold, "foreignAmount", hold_path),
            )

        round_up = None
        if attrs.get("roundUp") is not None:
            round_path = _join(attr_path, "roundUp")
            rnd = _as_dict(attrs["roundUp"], round_path)
            round_up = RoundUp(
                amount=_money(rnd, "amount", round_path),
                boost_portion=_optional_money(rnd, "boostPortion", round_path),
            )

        cashback = None
        if attrs.get("cashback") is not None:
            cash_path = _join(attr_path, "cashback")
            cash = _as_dict(attrs["cashback"], cash_path)
            cashback = Cashback(
                description=_str(cash, "description", cash_path),
                amount=_money(cash, "amount", cash_path),
            )

        return cls(
            id=_str(obj, "id", path),
            description=_str(attrs, "description", attr_path),
            amount=_money(attrs, "amount", attr_path),
            status=_enum(TransactionStatus, attrs, "status", attr_path),
            is_categorizable=_bool(attrs, "isCategorizable", attr_path),
            created_at=_timestamp(attrs, "createdAt", attr_path),
            account=account,
            message=_optional_str(attrs, "message", attr_path),
            raw_text=_optional_str(attrs, "rawText", attr_path),
            hold_info=hold_info,
            round_up=round_up,
            cashback=cashback,
            settled_at=_optional_timestamp(attrs, "settledAt", attr_path),
            transfer_account=_to_one(rels, "transferAccount", rel_path),
            category=_to_one(rels, "category", rel_path),
            parent_category=_to_one(rels, "parentCategory", rel_path),
            tags=_to_many(rels, "tags", rel_path),
        )


@dataclass(frozen=True)
class Category:
    """Up spending category. Parent categories group child categories."""

    id: str
    name: str
    parent_id: str | None = None
    children_ids: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Any, path: str = "data") -> "Category":
        obj = _as_dict(data, path)
        attr_path = _join(path, "attributes")
        attrs = _as_dict(_require(obj, "attributes", path), attr_path)
        rel_path = _join(path, "relationships")
        rels = _as_dict(obj.get("relationships") or {}, rel_path)

        parent = _to_one(rels, "parent", rel_path)
        return cls(
            id=_str(obj, "id", path),
            name=_str(attrs, "name", attr_path),
            parent_id=parent.id if parent else None,
            children_ids=tuple(child.id for child in _to_many(rels, "children", rel_path)),
        )


@dataclass(frozen=True)
class Tag:
    """User-defined tag; the id doubles as the display name."""

    id: str

    @property
    def name(self) -> str:
        return self.id

    @classmethod
    def from_dict(cls, data: Any, path: str = "data") -> "Tag":
        return cls(id=_str(_as_dict(data, path), "id", path))


@dataclass(frozen=True)
class Webhook:
    """
    Registered webhook.

    The secret key is only returned by the API when the webhook is created.
    """

    id: str
    url: str
    created_at: datetime
    description: str | None = None
    secret_key: str | None = None

    @classmethod
    def from_dict(cls, data: Any, path: str = "data") -> "Webhook":
        obj = _as_dict(data, path)
        attr_path = _join(path, "attributes")
        attrs = _as_dict(_require(obj, "attributes", path), attr_path)
        return cls(
            id=_str(obj, "id", path),
            url=_str(attrs, "url", attr_path),
            created_at=_timestamp(attrs, "createdAt", attr_path),
            description=_optional_str(attrs, "description", attr_path),
            secret_key=_optional_str(attrs, "secretKey", attr_path),
        )


@dataclass(frozen=True)
class WebhookEvent:
    """
    Webhook delivery, decoded only as far as needed for logging.

    Payloads are never validated: `parse` falls back to empty fields when the
    blob is not the expected shape.
    """

    event_type: str | None = None
    transaction_id: str | None = None
    webhook_id: str | None = None

    @classmethod
    def parse(cls, payload: bytes | str) -> "WebhookEvent":
        """Best-effort parse of a raw webhook delivery body."""
        try:
            body = json.loads(payload)
        except (ValueError, UnicodeDecodeError):
            logger.debug("Webhook payload is not JSON")
            return cls()
        return cls.from_payload(body)

    @classmethod
    def from_payload(cls, body: Any) -> "WebhookEvent":
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            return cls()

        attrs = data.get("attributes")
        event_type = attrs.get("eventType") if isinstance(attrs, dict) else None

        rels = data.get("relationships")
        rels = rels if isinstance(rels, dict) else {}

        def linked_id(key: str) -> str | None:
            rel = rels.get(key)
            linkage = rel.get("data") if isinstance(rel, dict) else None
            value = linkage.get("id") if isinstance(linkage, dict) else None
            return value if isinstance(value, str) else None

        return cls(
            event_type=event_type if isinstance(event_type, str) else None,
            transaction_id=linked_id("transaction"),
            webhook_id=linked_id("webhook"),
        )
