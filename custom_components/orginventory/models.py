"""Typed models and validation helpers for OrgInventory.

This module defines the persisted shapes for Organization and InventoryItem
along with the helpers that validate raw user input and produce new or
updated records. Everything here is pure: no I/O and no locking. The
repositories compose these helpers inside store transactions.
"""

from __future__ import annotations

import math
import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta

from .const import DEFAULT_CURRENCY, NAME_MAX_LENGTH, QUANTITY_MAX
from .exceptions import NotFoundError, ValidationError


@dataclass
class InventoryItem:
    """Persisted shape for an inventory item."""

    id: str
    name: str
    quantity: int
    price: float
    description: str | None = None
    updated_at: str = field(default_factory=lambda: iso_utc_now())


@dataclass
class Organization:
    """Persisted shape for an organization and its nested inventory."""

    id: str
    name: str
    currency: str = DEFAULT_CURRENCY
    created_at: str = field(default_factory=lambda: iso_utc_now())
    inventory: list[InventoryItem] = field(default_factory=list)


@dataclass(frozen=True)
class ItemDraft:
    """Validated mutable fields of an item, ready to be applied."""

    name: str
    quantity: int
    price: float
    description: str | None


# -----------------------------
# Identifiers and timestamps
# -----------------------------


def new_id() -> str:
    """Generate a hyphenated UUID v4 string."""

    return str(uuid.uuid4())


def iso_utc_now() -> str:
    """Return ISO-8601 UTC timestamp string with 'Z'."""

    now = datetime.now(tz=UTC)
    # No microseconds to keep it compact and stable
    return now.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def monotonic_timestamp_after(previous_ts: str) -> str:
    """Return a UTC ISO-8601 'Z' timestamp strictly after previous_ts.

    If the clock has not moved past the previous timestamp (second
    resolution), bump by one second to keep updates ordered.
    """

    now_dt = datetime.now(tz=UTC).replace(microsecond=0)
    try:
        prev_dt = parse_iso8601_utc(previous_ts, field_name="previous_ts")
    except ValidationError:
        # Older documents may carry millisecond timestamps or none at all
        prev_dt = now_dt - timedelta(seconds=1)
    if now_dt <= prev_dt:
        now_dt = prev_dt + timedelta(seconds=1)
    return now_dt.isoformat().replace("+00:00", "Z")


def parse_iso8601_utc(ts: str, *, field_name: str) -> datetime:
    """Parse a UTC ISO-8601 timestamp with trailing 'Z' into a datetime.

    Raises ValidationError on bad format.
    """

    try:
        if not isinstance(ts, str) or not ts.endswith("Z"):
            raise ValueError
        return datetime.strptime(ts, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=UTC)
    except ValueError as exc:
        raise ValidationError(f"{field_name} must be an ISO-8601 UTC timestamp with 'Z'") from exc


# -----------------------------
# Input parsing
# -----------------------------

CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")
QUANTITY_RE = re.compile(r"^\d+$")
DELTA_RE = re.compile(r"^[+-]?\d+$")


def validate_name(value: object, *, field_name: str = "name") -> str:
    """Validate a display name and return the trimmed value."""

    if not isinstance(value, str) or len(value.strip()) == 0:
        raise ValidationError(f"{field_name} is required and must be a non-empty string")
    trimmed = value.strip()
    if len(trimmed) > NAME_MAX_LENGTH:
        raise ValidationError(f"{field_name} must be at most {NAME_MAX_LENGTH} characters")
    return trimmed


def normalize_currency(value: object) -> str:
    """Return an upper-case 3-letter currency code.

    ``None`` and blank strings fall back to the default currency.
    """

    if value is None:
        return DEFAULT_CURRENCY
    if not isinstance(value, str):
        raise ValidationError("currency must be a 3-letter code")
    code = value.strip()
    if not code:
        return DEFAULT_CURRENCY
    if not CURRENCY_RE.match(code):
        raise ValidationError("currency must be a 3-letter code")
    return code.upper()


def parse_quantity(value: object) -> int:
    """Parse a non-negative integer quantity from an int or a decimal string."""

    if isinstance(value, bool):
        raise ValidationError("quantity must be an integer >= 0")
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, str) and QUANTITY_RE.match(value.strip()):
        quantity = int(value.strip())
    else:
        raise ValidationError("quantity must be an integer >= 0")
    if quantity < 0:
        raise ValidationError("quantity must be an integer >= 0")
    if quantity > QUANTITY_MAX:
        raise ValidationError(f"quantity must be at most {QUANTITY_MAX}")
    return quantity


def parse_price(value: object) -> float:
    """Parse a finite, non-negative price from a number or a numeric string."""

    if isinstance(value, bool):
        raise ValidationError("price must be a number >= 0")
    if isinstance(value, int | float):
        price = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            price = float(value.strip())
        except ValueError as exc:
            raise ValidationError("price must be a number >= 0") from exc
    else:
        raise ValidationError("price must be a number >= 0")
    if not math.isfinite(price) or price < 0:
        raise ValidationError("price must be a number >= 0")
    return price


def parse_description(value: object) -> str | None:
    """Return a trimmed description, or None when absent or blank."""

    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("description must be a string")
    trimmed = value.strip()
    return trimmed or None


def parse_delta(value: object) -> int:
    """Parse a signed integer quantity delta."""

    if isinstance(value, bool):
        raise ValidationError("delta must be an integer")
    if isinstance(value, int):
        delta = value
    elif isinstance(value, str) and DELTA_RE.match(value.strip()):
        delta = int(value.strip())
    else:
        raise ValidationError("delta must be an integer")
    if abs(delta) > QUANTITY_MAX:
        raise ValidationError(f"delta must be between -{QUANTITY_MAX} and {QUANTITY_MAX}")
    return delta


def validate_item_fields(
    name: object, quantity: object, price: object, description: object = None
) -> ItemDraft:
    """Validate raw item input and return a normalized draft."""

    return ItemDraft(
        name=validate_name(name),
        quantity=parse_quantity(quantity),
        price=parse_price(price),
        description=parse_description(description),
    )


# -----------------------------
# Creation and update helpers
# -----------------------------


def create_organization(name: object, currency: object = None) -> Organization:
    """Create a validated Organization with a fresh id and empty inventory."""

    return Organization(
        id=new_id(),
        name=validate_name(name),
        currency=normalize_currency(currency),
        created_at=iso_utc_now(),
        inventory=[],
    )


def create_item_from_draft(draft: ItemDraft) -> InventoryItem:
    return InventoryItem(
        id=new_id(),
        name=draft.name,
        quantity=draft.quantity,
        price=draft.price,
        description=draft.description,
        updated_at=iso_utc_now(),
    )


def apply_item_draft(item: InventoryItem, draft: ItemDraft) -> InventoryItem:
    """Replace all mutable fields of ``item`` and refresh ``updated_at``."""

    return replace(
        item,
        name=draft.name,
        quantity=draft.quantity,
        price=draft.price,
        description=draft.description,
        updated_at=monotonic_timestamp_after(item.updated_at),
    )


def adjust_item_quantity(item: InventoryItem, delta: int) -> InventoryItem:
    """Return a copy of ``item`` with quantity moved by ``delta``, floored at 0.

    Raises ValidationError when the result would exceed QUANTITY_MAX.
    """

    quantity = max(0, int(item.quantity) + int(delta))
    if quantity > QUANTITY_MAX:
        raise ValidationError(f"quantity must be at most {QUANTITY_MAX}")
    return replace(
        item,
        quantity=quantity,
        updated_at=monotonic_timestamp_after(item.updated_at),
    )


# -----------------------------
# Lookup helpers
# -----------------------------


def find_organization_index(organizations: list[Organization], org_id: str) -> int | None:
    key = str(org_id)
    for idx, org in enumerate(organizations):
        if org.id == key:
            return idx
    return None


def find_item_index(organization: Organization, item_id: str) -> int | None:
    key = str(item_id)
    for idx, item in enumerate(organization.inventory):
        if item.id == key:
            return idx
    return None


def get_organization(organizations: list[Organization], org_id: str) -> Organization:
    idx = find_organization_index(organizations, org_id)
    if idx is None:
        raise NotFoundError("organization not found")
    return organizations[idx]


def get_item_index(organization: Organization, item_id: str) -> int:
    idx = find_item_index(organization, item_id)
    if idx is None:
        raise NotFoundError("item not found")
    return idx


def get_item(organization: Organization, item_id: str) -> InventoryItem:
    return organization.inventory[get_item_index(organization, item_id)]


def get_counts(organizations: Iterable[Organization]) -> dict[str, int]:
    orgs = list(organizations)
    return {
        "organizations_total": len(orgs),
        "items_total": sum(len(org.inventory) for org in orgs),
        "out_of_stock_count": sum(
            1 for org in orgs for item in org.inventory if item.quantity == 0
        ),
    }
