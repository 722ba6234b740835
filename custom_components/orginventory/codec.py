"""Document codec for the persisted organization list.

The document is a UTF-8 JSON array of organizations, each carrying its
inventory as a nested array:

    [
        {
            "id": str,
            "name": str,
            "currency": str,
            "createdAt": str,
            "inventory": [
                {
                    "id": str,
                    "name": str,
                    "quantity": int,
                    "price": float,
                    "description": str | null,
                    "updatedAt": str,
                },
            ],
        },
    ]

There is no version field. An absent or empty document decodes to an empty
list. Anything else that does not match the shape above is reported as
CorruptDocumentError; decoding never recovers partially.
"""

from __future__ import annotations

import math
from typing import Any

from homeassistant.helpers.json import json_bytes
from homeassistant.util.json import json_loads

from .const import DEFAULT_CURRENCY
from .exceptions import CorruptDocumentError
from .models import InventoryItem, Organization


def item_to_dict(item: InventoryItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "quantity": int(item.quantity),
        "price": float(item.price),
        "description": item.description,
        "updatedAt": item.updated_at,
    }


def organization_to_dict(org: Organization) -> dict[str, Any]:
    return {
        "id": org.id,
        "name": org.name,
        "currency": org.currency,
        "createdAt": org.created_at,
        "inventory": [item_to_dict(item) for item in org.inventory],
    }


def encode(organizations: list[Organization]) -> bytes:
    """Serialize organizations to the persisted byte representation."""

    return json_bytes([organization_to_dict(org) for org in organizations])


def decode(data: bytes | str | None) -> list[Organization]:
    """Deserialize the persisted byte representation.

    ``None`` and empty (or whitespace-only) input mean "no data yet" and
    yield an empty list.
    """

    if data is None:
        return []
    if isinstance(data, bytes | bytearray):
        if not bytes(data).strip():
            return []
    elif isinstance(data, str):
        if not data.strip():
            return []
    else:
        raise CorruptDocumentError(f"unsupported document type: {type(data).__name__}")

    try:
        raw = json_loads(data)
    except ValueError as exc:
        raise CorruptDocumentError("document is not valid JSON") from exc

    if not isinstance(raw, list):
        raise CorruptDocumentError("document root must be a list of organizations")

    organizations = [_decode_organization(entry, index) for index, entry in enumerate(raw)]
    seen: set[str] = set()
    for org in organizations:
        if org.id in seen:
            raise CorruptDocumentError(f"duplicate organization id {org.id}")
        seen.add(org.id)
    return organizations


# -----------------------------
# Field decoding helpers
# -----------------------------


def _require_str(obj: dict[str, Any], key: str, where: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise CorruptDocumentError(f"{where}.{key} must be a string")
    return value


def _decode_organization(entry: Any, index: int) -> Organization:
    where = f"organizations[{index}]"
    if not isinstance(entry, dict):
        raise CorruptDocumentError(f"{where} must be an object")

    currency = entry.get("currency")
    if currency is None:
        currency = DEFAULT_CURRENCY
    elif not isinstance(currency, str):
        raise CorruptDocumentError(f"{where}.currency must be a string")

    inventory_raw = entry.get("inventory")
    if inventory_raw is None:
        inventory_raw = []
    elif not isinstance(inventory_raw, list):
        raise CorruptDocumentError(f"{where}.inventory must be a list")

    inventory = [
        _decode_item(item, f"{where}.inventory[{idx}]") for idx, item in enumerate(inventory_raw)
    ]
    item_ids = [item.id for item in inventory]
    if len(set(item_ids)) != len(item_ids):
        raise CorruptDocumentError(f"{where}.inventory contains duplicate item ids")

    return Organization(
        id=_require_str(entry, "id", where),
        name=_require_str(entry, "name", where),
        currency=currency,
        created_at=_require_str(entry, "createdAt", where),
        inventory=inventory,
    )


def _decode_item(entry: Any, where: str) -> InventoryItem:
    if not isinstance(entry, dict):
        raise CorruptDocumentError(f"{where} must be an object")

    quantity = entry.get("quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise CorruptDocumentError(f"{where}.quantity must be an integer >= 0")

    price = entry.get("price")
    if isinstance(price, bool) or not isinstance(price, int | float):
        raise CorruptDocumentError(f"{where}.price must be a number")
    if not math.isfinite(price) or price < 0:
        raise CorruptDocumentError(f"{where}.price must be a finite number >= 0")

    description = entry.get("description")
    if description is not None and not isinstance(description, str):
        raise CorruptDocumentError(f"{where}.description must be a string or null")

    return InventoryItem(
        id=_require_str(entry, "id", where),
        name=_require_str(entry, "name", where),
        quantity=quantity,
        price=float(price),
        description=description,
        updated_at=_require_str(entry, "updatedAt", where),
    )
