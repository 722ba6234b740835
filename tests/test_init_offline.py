"""Offline tests for integration setup and unload.

Scenarios:
- Setting up an entry stores the store and repositories and registers services
- Storage health is logged after the initial load
- A corrupt document keeps the entry loaded and can be reset via service
- An unreadable document makes setup retry
- Unload removes services and repositories
"""

from __future__ import annotations

import logging

import pytest
from custom_components.orginventory import storage as storage_mod
from custom_components.orginventory.const import DOMAIN
from custom_components.orginventory.exceptions import CorruptDocumentError
from custom_components.orginventory.repository import (
    InventoryRepository,
    OrganizationRepository,
)
from custom_components.orginventory.services import SERVICES
from custom_components.orginventory.storage import DocumentStore
from homeassistant.config_entries import ConfigEntryState
from pytest_homeassistant_custom_component.common import MockConfigEntry


@pytest.mark.asyncio
async def test_setup_entry_populates_bucket(hass, setup_integration) -> None:
    assert setup_integration.state is ConfigEntryState.LOADED

    bucket = hass.data[DOMAIN]
    assert isinstance(bucket["store"], DocumentStore)
    assert isinstance(bucket["organizations"], OrganizationRepository)
    assert isinstance(bucket["inventory"], InventoryRepository)
    for name in SERVICES:
        assert hass.services.has_service(DOMAIN, name)


@pytest.mark.asyncio
async def test_storage_health_logged_on_empty_document(
    hass, enable_custom_integrations, document_path, caplog
) -> None:
    caplog.set_level(logging.INFO)
    entry = MockConfigEntry(domain=DOMAIN, title="OrgInventory", data={})
    entry.add_to_hass(hass)

    assert await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()

    assert "Storage health: organizations=0 items=0" in caplog.text
    # Loading alone never creates the file
    assert not document_path.exists()


@pytest.mark.asyncio
async def test_corrupt_document_keeps_entry_and_can_be_reset(
    hass, enable_custom_integrations, document_path, caplog
) -> None:
    # Arrange
    document_path.parent.mkdir(parents=True, exist_ok=True)
    document_path.write_bytes(b"{broken")
    entry = MockConfigEntry(domain=DOMAIN, title="OrgInventory", data={})
    entry.add_to_hass(hass)

    # Act
    assert await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()

    # Assert
    assert entry.state is ConfigEntryState.LOADED
    assert "Stored document is corrupt" in caplog.text
    assert document_path.read_bytes() == b"{broken"
    with pytest.raises(CorruptDocumentError):
        await hass.data[DOMAIN]["organizations"].async_list()

    await hass.services.async_call(DOMAIN, "reset_document", {"confirm": True}, blocking=True)
    assert document_path.read_bytes() == b"[]"
    assert await hass.data[DOMAIN]["organizations"].async_list() == []


@pytest.mark.asyncio
async def test_unreadable_document_retries_setup(
    hass, enable_custom_integrations, document_path, monkeypatch
) -> None:
    def _raise(_path):
        raise PermissionError("denied")

    monkeypatch.setattr(storage_mod, "_read_bytes", _raise)
    entry = MockConfigEntry(domain=DOMAIN, title="OrgInventory", data={})
    entry.add_to_hass(hass)

    assert not await hass.config_entries.async_setup(entry.entry_id)
    assert entry.state is ConfigEntryState.SETUP_RETRY

    assert await hass.config_entries.async_unload(entry.entry_id)


@pytest.mark.asyncio
async def test_unload_removes_services(hass, setup_integration) -> None:
    assert await hass.config_entries.async_unload(setup_integration.entry_id)
    await hass.async_block_till_done()

    assert setup_integration.state is ConfigEntryState.NOT_LOADED
    for name in SERVICES:
        assert not hass.services.has_service(DOMAIN, name)
    bucket = hass.data[DOMAIN]
    assert "store" not in bucket
    assert "organizations" not in bucket
    assert "services_registered" not in bucket
