"""Service registration and handlers for OrgInventory.

Exposes Home Assistant services under the ``orginventory`` domain for
automations and scripts. Input is validated with voluptuous and operations
are delegated to the repositories stored in ``hass.data[DOMAIN]``.

Domain errors (validation, not found, storage) are logged with contextual
fields and re-raised so the service call fails visibly.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import voluptuous as vol
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.helpers import config_validation as cv

from .codec import item_to_dict, organization_to_dict
from .const import DOMAIN
from .exceptions import NotFoundError, StorageError, ValidationError
from .repository import InventoryRepository, OrganizationRepository
from .storage import DocumentStore

LOGGER = logging.getLogger(__name__)


# -----------------------------
# Validation schemas
# -----------------------------

_QUANTITY = vol.Any(int, str)
_PRICE = vol.Any(int, float, str)
_DELTA = vol.Any(int, str)

SCHEMA_ORGANIZATION_CREATE = vol.Schema(
    {vol.Required("name"): str, vol.Optional("currency"): vol.Any(str, None)}
)

SCHEMA_ORGANIZATION_RENAME = vol.Schema(
    {
        vol.Required("organization_id"): str,
        vol.Required("name"): str,
        vol.Optional("currency"): vol.Any(str, None),
    }
)

SCHEMA_ORGANIZATION_DELETE = vol.Schema({vol.Required("organization_id"): str})

SCHEMA_ITEM_CREATE = vol.Schema(
    {
        vol.Required("organization_id"): str,
        vol.Required("name"): str,
        vol.Required("quantity"): _QUANTITY,
        vol.Required("price"): _PRICE,
        vol.Optional("description"): vol.Any(str, None),
    }
)

SCHEMA_ITEM_UPDATE = SCHEMA_ITEM_CREATE.extend({vol.Required("item_id"): str})

SCHEMA_ITEM_DELETE = vol.Schema(
    {vol.Required("organization_id"): str, vol.Required("item_id"): str}
)

SCHEMA_ITEM_ADJUST_QTY = vol.Schema(
    {
        vol.Required("organization_id"): str,
        vol.Required("item_id"): str,
        vol.Required("delta"): _DELTA,
    }
)

SCHEMA_RESET_DOCUMENT = vol.Schema({vol.Required("confirm"): cv.boolean})


# -----------------------------
# Internal helpers
# -----------------------------


def _bucket_entry(hass: HomeAssistant, key: str) -> Any:
    bucket = hass.data.get(DOMAIN) or {}
    value = bucket.get(key)
    if value is None:
        raise StorageError(f"{key} not initialized; run integration setup")
    return value


def _organizations(hass: HomeAssistant) -> OrganizationRepository:
    return _bucket_entry(hass, "organizations")  # type: ignore[no-any-return]


def _inventory(hass: HomeAssistant) -> InventoryRepository:
    return _bucket_entry(hass, "inventory")  # type: ignore[no-any-return]


def _store(hass: HomeAssistant) -> DocumentStore:
    return _bucket_entry(hass, "store")  # type: ignore[no-any-return]


def _log_domain_error(op: str, context: dict[str, Any], exc: Exception) -> None:
    level = logging.ERROR if isinstance(exc, StorageError) else logging.WARNING
    LOGGER.log(level, str(exc), extra={"domain": DOMAIN, "op": op, **context})


# -----------------------------
# Service handlers (exported for tests)
# -----------------------------


async def service_organization_create(hass: HomeAssistant, data: dict) -> dict[str, Any]:
    op = "organization_create"
    try:
        org = await _organizations(hass).async_create(data["name"], data.get("currency"))
    except (ValidationError, NotFoundError, StorageError) as exc:
        _log_domain_error(op, {"organization_name": data.get("name")}, exc)
        raise
    return {"organization": organization_to_dict(org)}


async def service_organization_rename(hass: HomeAssistant, data: dict) -> dict[str, Any]:
    op = "organization_rename"
    org_id = data.get("organization_id")
    try:
        org = await _organizations(hass).async_rename(org_id, data["name"], data.get("currency"))
    except (ValidationError, NotFoundError, StorageError) as exc:
        _log_domain_error(op, {"organization_id": org_id}, exc)
        raise
    return {"organization": organization_to_dict(org)}


async def service_organization_delete(hass: HomeAssistant, data: dict) -> None:
    op = "organization_delete"
    org_id = data.get("organization_id")
    try:
        await _organizations(hass).async_delete(org_id)
    except StorageError as exc:
        _log_domain_error(op, {"organization_id": org_id}, exc)
        raise


async def service_item_create(hass: HomeAssistant, data: dict) -> dict[str, Any]:
    op = "item_create"
    org_id = data.get("organization_id")
    try:
        item = await _inventory(hass).async_create(
            org_id, data["name"], data["quantity"], data["price"], data.get("description")
        )
    except (ValidationError, NotFoundError, StorageError) as exc:
        _log_domain_error(op, {"organization_id": org_id, "item_name": data.get("name")}, exc)
        raise
    return {"item": item_to_dict(item)}


async def service_item_update(hass: HomeAssistant, data: dict) -> dict[str, Any]:
    op = "item_update"
    org_id = data.get("organization_id")
    item_id = data.get("item_id")
    try:
        item = await _inventory(hass).async_update(
            org_id,
            item_id,
            data["name"],
            data["quantity"],
            data["price"],
            data.get("description"),
        )
    except (ValidationError, NotFoundError, StorageError) as exc:
        _log_domain_error(op, {"organization_id": org_id, "item_id": item_id}, exc)
        raise
    return {"item": item_to_dict(item)}


async def service_item_delete(hass: HomeAssistant, data: dict) -> None:
    op = "item_delete"
    org_id = data.get("organization_id")
    item_id = data.get("item_id")
    try:
        await _inventory(hass).async_delete(org_id, item_id)
    except StorageError as exc:
        _log_domain_error(op, {"organization_id": org_id, "item_id": item_id}, exc)
        raise


async def service_item_adjust_quantity(hass: HomeAssistant, data: dict) -> dict[str, Any]:
    op = "item_adjust_quantity"
    org_id = data.get("organization_id")
    item_id = data.get("item_id")
    try:
        item = await _inventory(hass).async_adjust_quantity(org_id, item_id, data["delta"])
    except (ValidationError, NotFoundError, StorageError) as exc:
        _log_domain_error(
            op, {"organization_id": org_id, "item_id": item_id, "delta": data.get("delta")}, exc
        )
        raise
    return {"item": item_to_dict(item)}


async def service_reset_document(hass: HomeAssistant, data: dict) -> None:
    op = "reset_document"
    try:
        await _store(hass).async_reset(confirm=bool(data.get("confirm")))
    except (ValidationError, StorageError) as exc:
        _log_domain_error(op, {}, exc)
        raise


# -----------------------------
# Registration
# -----------------------------

_ServiceFunc = Callable[[HomeAssistant, dict], Awaitable[Any]]

SERVICES: dict[str, tuple[_ServiceFunc, vol.Schema, SupportsResponse]] = {
    "organization_create": (
        service_organization_create,
        SCHEMA_ORGANIZATION_CREATE,
        SupportsResponse.OPTIONAL,
    ),
    "organization_rename": (
        service_organization_rename,
        SCHEMA_ORGANIZATION_RENAME,
        SupportsResponse.OPTIONAL,
    ),
    "organization_delete": (
        service_organization_delete,
        SCHEMA_ORGANIZATION_DELETE,
        SupportsResponse.NONE,
    ),
    "item_create": (service_item_create, SCHEMA_ITEM_CREATE, SupportsResponse.OPTIONAL),
    "item_update": (service_item_update, SCHEMA_ITEM_UPDATE, SupportsResponse.OPTIONAL),
    "item_delete": (service_item_delete, SCHEMA_ITEM_DELETE, SupportsResponse.NONE),
    "item_adjust_quantity": (
        service_item_adjust_quantity,
        SCHEMA_ITEM_ADJUST_QTY,
        SupportsResponse.OPTIONAL,
    ),
    "reset_document": (service_reset_document, SCHEMA_RESET_DOCUMENT, SupportsResponse.NONE),
}


def _make_handler(
    hass: HomeAssistant, func: _ServiceFunc
) -> Callable[[ServiceCall], Awaitable[ServiceResponse]]:
    async def _handler(call: ServiceCall) -> ServiceResponse:
        return await func(hass, dict(call.data))

    return _handler


def setup(hass: HomeAssistant) -> None:
    """Register orginventory.* services on Home Assistant."""

    # Idempotent: avoid duplicate registration across reloads
    bucket = hass.data.setdefault(DOMAIN, {})
    if bucket.get("services_registered"):
        return

    # Home Assistant validates inputs against these schemas before invoking
    # the handler.
    for name, (func, schema, supports_response) in SERVICES.items():
        hass.services.async_register(
            DOMAIN,
            name,
            _make_handler(hass, func),
            schema=schema,
            supports_response=supports_response,
        )

    bucket["services_registered"] = True


def unload(hass: HomeAssistant) -> None:
    """Remove orginventory.* services."""

    for name in SERVICES:
        hass.services.async_remove(DOMAIN, name)

    bucket = hass.data.get(DOMAIN) or {}
    bucket.pop("services_registered", None)
