"""WebSocket command handlers for OrgInventory.

Implements the commands the frontend uses to list, create, rename and delete
organizations and to manage each organization's inventory. Every mutating
command is one repository call, which is one store transaction.

Envelope: input {id, type, ...payload}, output result_message or an error
with a stable code (validation_error, not_found, corrupt_document,
persist_failed, storage_error).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import voluptuous as vol
from homeassistant.components import websocket_api
from homeassistant.core import HomeAssistant, callback

from .codec import item_to_dict, organization_to_dict
from .const import DOMAIN, INTEGRATION_VERSION
from .exceptions import (
    CorruptDocumentError,
    NotFoundError,
    PersistFailedError,
    StorageError,
    ValidationError,
)
from .models import Organization, get_counts
from .repository import InventoryRepository, OrganizationRepository
from .storage import DocumentStore

LOGGER = logging.getLogger(__name__)


def _bucket_entry(hass: HomeAssistant, key: str) -> Any:
    bucket = hass.data.get(DOMAIN) or {}
    value = bucket.get(key)
    if value is None:
        raise StorageError(f"{key} not initialized; run integration setup")
    return value


def _store(hass: HomeAssistant) -> DocumentStore:
    return _bucket_entry(hass, "store")  # type: ignore[no-any-return]


def _organizations(hass: HomeAssistant) -> OrganizationRepository:
    return _bucket_entry(hass, "organizations")  # type: ignore[no-any-return]


def _inventory(hass: HomeAssistant) -> InventoryRepository:
    return _bucket_entry(hass, "inventory")  # type: ignore[no-any-return]


def _error_code(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, NotFoundError):
        return "not_found"
    if isinstance(exc, CorruptDocumentError):
        return "corrupt_document"
    if isinstance(exc, PersistFailedError):
        return "persist_failed"
    if isinstance(exc, StorageError):
        return "storage_error"
    return "unknown_error"


def _context_from_msg(op: str, msg: dict, fields: tuple[str, ...]) -> dict[str, Any]:
    payload: dict[str, Any] = {"op": op}
    for field in fields:
        if field not in msg:
            continue
        key = field
        # 'name' is a reserved LogRecord attribute
        if field == "name":
            key = "item_name" if op.startswith("item_") else "organization_name"
        payload[key] = msg.get(field)
    return payload


# -----------------------------
# Unified exception handling for WS handlers
# -----------------------------

_WSHandler = Callable[[HomeAssistant, Any, dict], Awaitable[Any]]


def ws_guard(op: str, context_fields: tuple[str, ...] = ()) -> Callable[[_WSHandler], _WSHandler]:
    """Decorator mapping domain exceptions to websocket error envelopes.

    Validation and lookup failures log at WARNING, storage failures at ERROR,
    each with a structured context built from selected message fields.
    """

    def decorator(func: _WSHandler) -> _WSHandler:
        async def wrapper(hass: HomeAssistant, conn, msg):  # type: ignore[no-untyped-def]
            try:
                return await func(hass, conn, msg)
            except (ValidationError, NotFoundError, StorageError) as exc:
                ctx = _context_from_msg(op, msg, context_fields)
                level = logging.ERROR if isinstance(exc, StorageError) else logging.WARNING
                LOGGER.log(level, str(exc), extra={"domain": DOMAIN, **ctx})
                conn.send_error(msg.get("id", 0), _error_code(exc), str(exc))
                return None

        wrapper.__name__ = getattr(func, "__name__", "ws_handler")
        return wrapper

    return decorator


def _send_result(conn, msg: dict, result: Any = None) -> None:  # type: ignore[no-untyped-def]
    conn.send_message(websocket_api.result_message(msg.get("id", 0), result))


def _serialize_organizations(organizations: list[Organization]) -> list[dict[str, Any]]:
    return [organization_to_dict(org) for org in organizations]


# -----------------------------
# Utility commands
# -----------------------------


@websocket_api.websocket_command({vol.Required("type"): "orginventory/version"})
@websocket_api.async_response
async def ws_version(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, {"integration_version": INTEGRATION_VERSION})


@websocket_api.websocket_command({vol.Required("type"): "orginventory/stats"})
@websocket_api.async_response
@ws_guard("stats")
async def ws_stats(hass: HomeAssistant, conn, msg):
    organizations = await _organizations(hass).async_list()
    _send_result(conn, msg, get_counts(organizations))


@websocket_api.websocket_command({vol.Required("type"): "orginventory/subscribe"})
@websocket_api.async_response
@ws_guard("subscribe")
async def ws_subscribe(hass: HomeAssistant, conn, msg):
    msg_id = msg["id"]

    @callback
    def _forward(organizations: list[Organization]) -> None:
        conn.send_message(
            websocket_api.event_message(
                msg_id, {"organizations": _serialize_organizations(organizations)}
            )
        )

    conn.subscriptions[msg_id] = _store(hass).async_add_listener(_forward)
    LOGGER.debug(
        "Subscribed", extra={"domain": DOMAIN, "op": "subscribe", "subscription_id": msg_id}
    )
    _send_result(conn, msg)


# -----------------------------
# Organizations
# -----------------------------


@websocket_api.websocket_command({vol.Required("type"): "orginventory/organization/list"})
@websocket_api.async_response
@ws_guard("organization_list")
async def ws_organization_list(hass: HomeAssistant, conn, msg):
    organizations = await _organizations(hass).async_list()
    _send_result(conn, msg, _serialize_organizations(organizations))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "orginventory/organization/get",
        vol.Required("organization_id"): str,
    }
)
@websocket_api.async_response
@ws_guard("organization_get", ("organization_id",))
async def ws_organization_get(hass: HomeAssistant, conn, msg):
    org = await _organizations(hass).async_get(msg["organization_id"])
    _send_result(conn, msg, organization_to_dict(org))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "orginventory/organization/create",
        vol.Required("name"): str,
        vol.Optional("currency"): vol.Any(str, None),
    }
)
@websocket_api.async_response
@ws_guard("organization_create", ("name", "currency"))
async def ws_organization_create(hass: HomeAssistant, conn, msg):
    org = await _organizations(hass).async_create(msg["name"], msg.get("currency"))
    _send_result(conn, msg, organization_to_dict(org))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "orginventory/organization/rename",
        vol.Required("organization_id"): str,
        vol.Required("name"): str,
        vol.Optional("currency"): vol.Any(str, None),
    }
)
@websocket_api.async_response
@ws_guard("organization_rename", ("organization_id", "name", "currency"))
async def ws_organization_rename(hass: HomeAssistant, conn, msg):
    org = await _organizations(hass).async_rename(
        msg["organization_id"], msg["name"], msg.get("currency")
    )
    _send_result(conn, msg, organization_to_dict(org))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "orginventory/organization/delete",
        vol.Required("organization_id"): str,
    }
)
@websocket_api.async_response
@ws_guard("organization_delete", ("organization_id",))
async def ws_organization_delete(hass: HomeAssistant, conn, msg):
    await _organizations(hass).async_delete(msg["organization_id"])
    _send_result(conn, msg)


# -----------------------------
# Items
# -----------------------------

_QUANTITY = vol.Any(int, str)
_PRICE = vol.Any(int, float, str)


@websocket_api.websocket_command(
    {
        vol.Required("type"): "orginventory/item/list",
        vol.Required("organization_id"): str,
    }
)
@websocket_api.async_response
@ws_guard("item_list", ("organization_id",))
async def ws_item_list(hass: HomeAssistant, conn, msg):
    items = await _inventory(hass).async_list(msg["organization_id"])
    _send_result(conn, msg, [item_to_dict(item) for item in items])


@websocket_api.websocket_command(
    {
        vol.Required("type"): "orginventory/item/create",
        vol.Required("organization_id"): str,
        vol.Required("name"): str,
        vol.Required("quantity"): _QUANTITY,
        vol.Required("price"): _PRICE,
        vol.Optional("description"): vol.Any(str, None),
    }
)
@websocket_api.async_response
@ws_guard("item_create", ("organization_id", "name", "quantity", "price"))
async def ws_item_create(hass: HomeAssistant, conn, msg):
    item = await _inventory(hass).async_create(
        msg["organization_id"],
        msg["name"],
        msg["quantity"],
        msg["price"],
        msg.get("description"),
    )
    _send_result(conn, msg, item_to_dict(item))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "orginventory/item/update",
        vol.Required("organization_id"): str,
        vol.Required("item_id"): str,
        vol.Required("name"): str,
        vol.Required("quantity"): _QUANTITY,
        vol.Required("price"): _PRICE,
        vol.Optional("description"): vol.Any(str, None),
    }
)
@websocket_api.async_response
@ws_guard("item_update", ("organization_id", "item_id", "name", "quantity", "price"))
async def ws_item_update(hass: HomeAssistant, conn, msg):
    item = await _inventory(hass).async_update(
        msg["organization_id"],
        msg["item_id"],
        msg["name"],
        msg["quantity"],
        msg["price"],
        msg.get("description"),
    )
    _send_result(conn, msg, item_to_dict(item))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "orginventory/item/delete",
        vol.Required("organization_id"): str,
        vol.Required("item_id"): str,
    }
)
@websocket_api.async_response
@ws_guard("item_delete", ("organization_id", "item_id"))
async def ws_item_delete(hass: HomeAssistant, conn, msg):
    await _inventory(hass).async_delete(msg["organization_id"], msg["item_id"])
    _send_result(conn, msg)


@websocket_api.websocket_command(
    {
        vol.Required("type"): "orginventory/item/adjust_quantity",
        vol.Required("organization_id"): str,
        vol.Required("item_id"): str,
        vol.Required("delta"): int,
    }
)
@websocket_api.async_response
@ws_guard("item_adjust_quantity", ("organization_id", "item_id", "delta"))
async def ws_item_adjust_quantity(hass: HomeAssistant, conn, msg):
    item = await _inventory(hass).async_adjust_quantity(
        msg["organization_id"], msg["item_id"], msg["delta"]
    )
    _send_result(conn, msg, item_to_dict(item))


# -----------------------------
# Registration
# -----------------------------


def setup(hass: HomeAssistant) -> None:
    # Idempotent: avoid duplicate registration across reloads
    bucket = hass.data.setdefault(DOMAIN, {})
    if bucket.get("ws_registered"):
        return

    handlers = [
        ws_version,
        ws_stats,
        ws_subscribe,
        ws_organization_list,
        ws_organization_get,
        ws_organization_create,
        ws_organization_rename,
        ws_organization_delete,
        ws_item_list,
        ws_item_create,
        ws_item_update,
        ws_item_delete,
        ws_item_adjust_quantity,
    ]

    for handler in handlers:
        websocket_api.async_register_command(hass, handler)

    bucket["ws_registered"] = True
