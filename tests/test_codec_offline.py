"""Offline tests for the document codec.

Scenarios:
- Absent, empty and whitespace-only documents decode to an empty list
- Encoded documents use camelCase keys and decode back to equal models
- Legacy records without currency or inventory get defaults
- Malformed documents raise CorruptDocumentError instead of partial data
"""

from __future__ import annotations

import json

import pytest
from custom_components.orginventory.codec import decode, encode, organization_to_dict
from custom_components.orginventory.exceptions import CorruptDocumentError
from custom_components.orginventory.models import InventoryItem, Organization

CREATED_AT = "2024-05-01T12:00:00Z"
UPDATED_AT = "2024-05-02T08:30:00Z"


def _org() -> Organization:
    return Organization(
        id="o1",
        name="Shop A",
        currency="EUR",
        created_at=CREATED_AT,
        inventory=[
            InventoryItem(
                id="i1",
                name="Widget",
                quantity=10,
                price=2.5,
                description="blue",
                updated_at=UPDATED_AT,
            ),
            InventoryItem(id="i2", name="Bolt", quantity=0, price=0.0, updated_at=UPDATED_AT),
        ],
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [None, b"", b"   \n", "", "  "])
async def test_decode_empty_document(raw) -> None:
    assert decode(raw) == []


@pytest.mark.asyncio
async def test_encode_uses_persisted_field_names() -> None:
    data = encode([_org()])
    assert isinstance(data, bytes)

    raw = json.loads(data)
    assert raw[0]["createdAt"] == CREATED_AT
    assert raw[0]["currency"] == "EUR"
    first = raw[0]["inventory"][0]
    assert set(first) == {"id", "name", "quantity", "price", "description", "updatedAt"}
    assert first["quantity"] == 10
    assert first["price"] == 2.5
    assert raw[0]["inventory"][1]["description"] is None


DOCUMENTS = {
    "empty": [],
    "full": [_org()],
    "empty_inventory": [Organization(id="o1", name="Shop A", created_at=CREATED_AT)],
    "no_description_zero_price": [
        Organization(
            id="o1",
            name="Shop A",
            created_at=CREATED_AT,
            inventory=[
                InventoryItem(
                    id="i1", name="Freebie", quantity=3, price=0.0, updated_at=UPDATED_AT
                )
            ],
        )
    ],
    "legacy_without_currency": decode(
        json.dumps([{"id": "o1", "name": "Shop A", "createdAt": CREATED_AT}])
    ),
    "several_organizations": [
        _org(),
        Organization(id="o2", name="Shop B", currency="JPY", created_at=CREATED_AT),
        Organization(id="o3", name="Shop C", created_at=UPDATED_AT),
    ],
}


@pytest.mark.asyncio
@pytest.mark.parametrize("name", sorted(DOCUMENTS))
async def test_decode_restores_models(name: str) -> None:
    organizations = DOCUMENTS[name]
    assert decode(encode(organizations)) == organizations
    assert decode(encode(organizations).decode("utf-8")) == organizations


@pytest.mark.asyncio
async def test_decode_applies_defaults_for_missing_optional_fields() -> None:
    raw = json.dumps([{"id": "o1", "name": "Shop A", "createdAt": CREATED_AT}])
    (org,) = decode(raw)
    assert org.currency == "USD"
    assert org.inventory == []


@pytest.mark.asyncio
async def test_decode_integral_price_becomes_float() -> None:
    doc = organization_to_dict(_org())
    doc["inventory"][0]["price"] = 3
    (org,) = decode(json.dumps([doc]))
    assert isinstance(org.inventory[0].price, float)
    assert org.inventory[0].price == 3.0


def _with_item_field(key: str, value) -> str:
    doc = organization_to_dict(_org())
    doc["inventory"][0][key] = value
    return json.dumps([doc])


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw",
    [
        b"{not json",
        b'{"organizations": []}',
        b"[1, 2]",
        json.dumps([{"name": "Shop A", "createdAt": CREATED_AT}]),
        json.dumps([{"id": "o1", "name": "Shop A", "createdAt": CREATED_AT, "inventory": {}}]),
        _with_item_field("quantity", -1),
        _with_item_field("quantity", 1.5),
        _with_item_field("quantity", True),
        _with_item_field("price", "2.50"),
        _with_item_field("price", -0.5),
        _with_item_field("description", 7),
        _with_item_field("updatedAt", None),
    ],
)
async def test_decode_rejects_malformed_documents(raw) -> None:
    with pytest.raises(CorruptDocumentError):
        decode(raw)


@pytest.mark.asyncio
async def test_decode_rejects_duplicate_ids() -> None:
    doc = organization_to_dict(_org())
    with pytest.raises(CorruptDocumentError):
        decode(json.dumps([doc, doc]))

    doc["inventory"][1]["id"] = doc["inventory"][0]["id"]
    with pytest.raises(CorruptDocumentError):
        decode(json.dumps([doc]))


@pytest.mark.asyncio
async def test_decode_rejects_unsupported_input_type() -> None:
    with pytest.raises(CorruptDocumentError):
        decode(12)  # type: ignore[arg-type]
