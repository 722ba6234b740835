"""Repositories over the organization document.

``OrganizationRepository`` works on the root list of organizations and
``InventoryRepository`` on one organization's nested items. Each public
method validates its input first and then runs exactly one
``DocumentStore.async_transact`` call, so concurrent operations are
serialized by the store instead of racing on a shared snapshot.
"""

from __future__ import annotations

import logging

from .const import DOMAIN
from .models import (
    InventoryItem,
    Organization,
    adjust_item_quantity,
    apply_item_draft,
    create_item_from_draft,
    create_organization,
    find_item_index,
    find_organization_index,
    get_item,
    get_item_index,
    get_organization,
    normalize_currency,
    parse_delta,
    validate_item_fields,
    validate_name,
)
from .storage import DocumentStore

LOGGER = logging.getLogger(__name__)


class OrganizationRepository:
    """CRUD over the root organization list."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def async_list(self) -> list[Organization]:
        return await self._store.async_transact(lambda orgs: orgs)

    async def async_get(self, org_id: str) -> Organization:
        orgs = await self._store.async_transact(lambda orgs: orgs)
        return get_organization(orgs, org_id)

    async def async_create(self, name: str, currency: str | None = None) -> Organization:
        new_org = create_organization(name, currency)

        def _append(orgs: list[Organization]) -> list[Organization]:
            orgs.append(new_org)
            return orgs

        orgs = await self._store.async_transact(_append)
        LOGGER.debug(
            "Organization created",
            extra={"domain": DOMAIN, "op": "organization_create", "organization_id": new_org.id},
        )
        return get_organization(orgs, new_org.id)

    async def async_rename(
        self, org_id: str, name: str, currency: str | None = None
    ) -> Organization:
        """Replace name and currency; inventory and created_at are untouched."""

        new_name = validate_name(name)
        new_currency = normalize_currency(currency)

        def _rename(orgs: list[Organization]) -> list[Organization]:
            org = get_organization(orgs, org_id)
            org.name = new_name
            org.currency = new_currency
            return orgs

        orgs = await self._store.async_transact(_rename)
        LOGGER.debug(
            "Organization renamed",
            extra={"domain": DOMAIN, "op": "organization_rename", "organization_id": str(org_id)},
        )
        return get_organization(orgs, org_id)

    async def async_delete(self, org_id: str) -> None:
        """Remove an organization with its whole inventory. Absent ids are a no-op."""

        removed = False

        def _delete(orgs: list[Organization]) -> list[Organization]:
            nonlocal removed
            idx = find_organization_index(orgs, org_id)
            if idx is None:
                return orgs
            removed = True
            del orgs[idx]
            return orgs

        await self._store.async_transact(_delete)
        LOGGER.debug(
            "Organization deleted" if removed else "Organization already absent",
            extra={"domain": DOMAIN, "op": "organization_delete", "organization_id": str(org_id)},
        )


class InventoryRepository:
    """CRUD and quantity adjustment over one organization's items."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def async_list(self, org_id: str) -> list[InventoryItem]:
        orgs = await self._store.async_transact(lambda orgs: orgs)
        return get_organization(orgs, org_id).inventory

    async def async_create(
        self,
        org_id: str,
        name: str,
        quantity: int | str,
        price: float | str,
        description: str | None = None,
    ) -> InventoryItem:
        new_item = create_item_from_draft(validate_item_fields(name, quantity, price, description))

        def _append(orgs: list[Organization]) -> list[Organization]:
            get_organization(orgs, org_id).inventory.append(new_item)
            return orgs

        orgs = await self._store.async_transact(_append)
        LOGGER.debug(
            "Item created",
            extra={
                "domain": DOMAIN,
                "op": "item_create",
                "organization_id": str(org_id),
                "item_id": new_item.id,
            },
        )
        return get_item(get_organization(orgs, org_id), new_item.id)

    async def async_update(
        self,
        org_id: str,
        item_id: str,
        name: str,
        quantity: int | str,
        price: float | str,
        description: str | None = None,
    ) -> InventoryItem:
        """Replace all mutable fields of an item and refresh updated_at."""

        draft = validate_item_fields(name, quantity, price, description)

        def _update(orgs: list[Organization]) -> list[Organization]:
            org = get_organization(orgs, org_id)
            idx = get_item_index(org, item_id)
            org.inventory[idx] = apply_item_draft(org.inventory[idx], draft)
            return orgs

        orgs = await self._store.async_transact(_update)
        LOGGER.debug(
            "Item updated",
            extra={
                "domain": DOMAIN,
                "op": "item_update",
                "organization_id": str(org_id),
                "item_id": str(item_id),
            },
        )
        return get_item(get_organization(orgs, org_id), item_id)

    async def async_delete(self, org_id: str, item_id: str) -> None:
        """Remove an item. Absent items (or organizations) are a no-op."""

        def _delete(orgs: list[Organization]) -> list[Organization]:
            org_idx = find_organization_index(orgs, org_id)
            if org_idx is None:
                return orgs
            org = orgs[org_idx]
            item_idx = find_item_index(org, item_id)
            if item_idx is not None:
                del org.inventory[item_idx]
            return orgs

        await self._store.async_transact(_delete)
        LOGGER.debug(
            "Item deleted",
            extra={
                "domain": DOMAIN,
                "op": "item_delete",
                "organization_id": str(org_id),
                "item_id": str(item_id),
            },
        )

    async def async_adjust_quantity(self, org_id: str, item_id: str, delta: int) -> InventoryItem:
        """Move an item's quantity by ``delta`` in one transaction, floored at 0."""

        step = parse_delta(delta)

        def _adjust(orgs: list[Organization]) -> list[Organization]:
            org = get_organization(orgs, org_id)
            idx = get_item_index(org, item_id)
            org.inventory[idx] = adjust_item_quantity(org.inventory[idx], step)
            return orgs

        orgs = await self._store.async_transact(_adjust)
        updated = get_item(get_organization(orgs, org_id), item_id)
        LOGGER.debug(
            "Item quantity adjusted",
            extra={
                "domain": DOMAIN,
                "op": "item_adjust_quantity",
                "organization_id": str(org_id),
                "item_id": str(item_id),
                "delta": step,
                "quantity": updated.quantity,
            },
        )
        return updated
