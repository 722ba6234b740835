"""OrgInventory integration bootstrap.

This module wires the persistent document store and the repositories for a
config entry and registers services and WebSocket commands. The store is
created here and handed to both repositories; nothing else holds a storage
handle.
"""

from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers import config_validation as cv

from . import services as services_mod
from . import ws as ws_mod
from .const import DOMAIN, STORAGE_KEY
from .exceptions import CorruptDocumentError, StorageError
from .models import Organization, get_counts
from .repository import InventoryRepository, OrganizationRepository
from .storage import DocumentStore, FileBackend

LOGGER = logging.getLogger(__name__)


# This integration is config-entry only; no YAML configuration is accepted.
CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)


async def async_setup(hass: HomeAssistant, _config: dict) -> bool:
    """Set up the OrgInventory domain at Home Assistant startup.

    Initializes an empty domain bucket in hass.data with no side effects.
    """
    hass.data.setdefault(DOMAIN, {})
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up OrgInventory from a config entry."""
    bucket = hass.data.setdefault(DOMAIN, {})

    store = DocumentStore(FileBackend.for_key(hass, STORAGE_KEY), key=STORAGE_KEY)
    organizations = OrganizationRepository(store)

    try:
        loaded = await organizations.async_list()
    except CorruptDocumentError:
        # Keep the entry loaded so the document can be inspected and reset
        # through the reset_document service; never replace it here.
        LOGGER.error(
            "Stored document is corrupt; operations will fail until it is reset",
            extra={"domain": DOMAIN, "op": "setup_storage", "storage_key": STORAGE_KEY},
        )
    except StorageError as exc:
        LOGGER.error(
            "Failed to load storage during setup",
            extra={"domain": DOMAIN, "op": "setup_storage", "storage_key": STORAGE_KEY},
            exc_info=True,
        )
        raise ConfigEntryNotReady("storage load failed") from exc
    else:
        _log_storage_health(loaded)

    bucket["store"] = store
    bucket["organizations"] = organizations
    bucket["inventory"] = InventoryRepository(store)

    services_mod.setup(hass)
    ws_mod.setup(hass)

    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry.

    Every transaction commits before it returns, so there is nothing to
    flush. Services are removed; WebSocket commands stay registered and
    report storage_error until the entry is set up again.
    """

    services_mod.unload(hass)

    bucket = hass.data.get(DOMAIN) or {}
    bucket.pop("store", None)
    bucket.pop("organizations", None)
    bucket.pop("inventory", None)

    return True


def _log_storage_health(organizations: list[Organization]) -> None:
    """Log a storage summary after the initial load."""

    counts = get_counts(organizations)
    level = logging.INFO if counts["organizations_total"] == 0 else logging.DEBUG
    LOGGER.log(
        level,
        "Storage health: organizations=%s items=%s",
        counts["organizations_total"],
        counts["items_total"],
        extra={
            "domain": DOMAIN,
            "op": "setup_storage_health",
            "organizations_count": counts["organizations_total"],
            "items_count": counts["items_total"],
        },
    )
