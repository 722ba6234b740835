"""Offline tests for the OrgInventory config flow.

Scenarios:
- The user step creates an entry with no data
- A second flow aborts because only one instance is allowed
"""

from __future__ import annotations

import pytest
from custom_components.orginventory.const import DOMAIN
from homeassistant import config_entries
from homeassistant.data_entry_flow import FlowResultType


@pytest.mark.asyncio
async def test_user_step_creates_entry(hass, enable_custom_integrations, document_path) -> None:
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    await hass.async_block_till_done()

    assert result["type"] is FlowResultType.CREATE_ENTRY
    assert result["title"] == "OrgInventory"
    assert result["data"] == {}
    assert len(hass.config_entries.async_entries(DOMAIN)) == 1


@pytest.mark.asyncio
async def test_second_flow_aborts(hass, setup_integration) -> None:
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    assert result["type"] is FlowResultType.ABORT
    assert result["reason"] == "single_instance_allowed"
