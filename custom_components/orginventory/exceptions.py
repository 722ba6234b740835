"""Exception taxonomy for the OrgInventory integration.

Defines a small hierarchy of exceptions used by the store, the repositories,
services and the WebSocket API. These extend Home Assistant's
HomeAssistantError so they surface consistently through the platform.

All exceptions accept a human-readable message. ``str(exception)`` returns the
message unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.exceptions import HomeAssistantError

if TYPE_CHECKING:
    from .models import Organization


class OrgInventoryError(HomeAssistantError):
    """Base exception for OrgInventory-related errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ValidationError(OrgInventoryError):
    """Raised when input values are missing or malformed."""


class NotFoundError(OrgInventoryError):
    """Raised when a referenced organization or item does not exist."""


class StorageError(OrgInventoryError):
    """Raised when storage operations fail or storage is not initialized."""


class CorruptDocumentError(StorageError):
    """Raised when the persisted document cannot be decoded."""


class PersistFailedError(StorageError):
    """Raised when writing the document did not complete.

    ``previous`` holds the last committed organizations, which remain
    authoritative.
    """

    def __init__(self, message: str, *, previous: list[Organization] | None = None) -> None:
        super().__init__(message)
        self.previous: list[Organization] = list(previous or [])
