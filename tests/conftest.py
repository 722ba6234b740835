"""Shared fixtures for OrgInventory tests.

Store and repository tests run against ``MemoryBackend`` and need no Home
Assistant instance. Integration-level tests use the ``hass`` fixture from
pytest-homeassistant-custom-component and point the config directory at a
temporary path so the document file never leaks between tests.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path for module imports
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from custom_components.orginventory.const import DOMAIN, STORAGE_KEY  # noqa: E402
from custom_components.orginventory.repository import (  # noqa: E402
    InventoryRepository,
    OrganizationRepository,
)
from custom_components.orginventory.storage import DocumentStore, MemoryBackend  # noqa: E402
from pytest_homeassistant_custom_component.common import MockConfigEntry  # noqa: E402


class SlowBackend(MemoryBackend):
    """Memory backend that yields to the event loop on every read and write.

    Records the order of I/O calls so tests can check that transactions never
    interleave.
    """

    def __init__(self, data: bytes | None = None, *, delay: float = 0.01) -> None:
        super().__init__(data)
        self.delay = delay
        self.calls: list[str] = []

    async def async_read(self) -> bytes | None:
        self.calls.append("read")
        await asyncio.sleep(self.delay)
        return await super().async_read()

    async def async_write(self, data: bytes) -> None:
        self.calls.append("write")
        await asyncio.sleep(self.delay)
        await super().async_write(data)


class FailingBackend(MemoryBackend):
    """Memory backend whose writes fail while ``fail_writes`` is set."""

    def __init__(self, data: bytes | None = None) -> None:
        super().__init__(data)
        self.fail_writes = False

    async def async_write(self, data: bytes) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        await super().async_write(data)


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def slow_backend() -> SlowBackend:
    return SlowBackend()


@pytest.fixture
def failing_backend() -> FailingBackend:
    return FailingBackend()


@pytest.fixture
def store(memory_backend: MemoryBackend) -> DocumentStore:
    return DocumentStore(memory_backend, key="test_store")


@pytest.fixture
def organizations(store: DocumentStore) -> OrganizationRepository:
    return OrganizationRepository(store)


@pytest.fixture
def inventory(store: DocumentStore) -> InventoryRepository:
    return InventoryRepository(store)


@pytest.fixture
def document_path(hass, tmp_path) -> Path:
    """Point the config dir at tmp_path and return where the document lives."""

    hass.config.config_dir = str(tmp_path)
    return tmp_path / ".storage" / STORAGE_KEY


@pytest.fixture
async def setup_integration(hass, enable_custom_integrations, document_path) -> MockConfigEntry:
    """Set up the integration with its document under a temporary config dir."""

    entry = MockConfigEntry(domain=DOMAIN, title="OrgInventory", data={})
    entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()
    return entry
