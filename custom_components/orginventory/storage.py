"""Persistent document store for OrgInventory.

All reads and writes of the persisted organization document go through
``DocumentStore.async_transact``. A transaction holds the store's lock while
it reads the current bytes, decodes them, applies a pure function and writes
the encoded result back. Concurrent callers queue on the lock, so two
read-modify-write cycles never overlap and no update is lost.

Bytes live behind a small backend interface:

- ``FileBackend`` keeps the document in ``<config>/.storage`` and replaces it
  atomically (temporary file + rename) in Home Assistant's executor.
- ``MemoryBackend`` keeps the bytes in process; tests use it as a double.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from copy import deepcopy
from pathlib import Path

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.util.file import write_utf8_file_atomic

from .codec import decode, encode
from .const import DOMAIN, STORAGE_KEY
from .exceptions import CorruptDocumentError, PersistFailedError, StorageError, ValidationError
from .models import Organization

_LOGGER = logging.getLogger(__name__)

Transaction = Callable[[list[Organization]], list[Organization]]
Listener = Callable[[list[Organization]], None]


# -----------------------------
# Backends
# -----------------------------


class DocumentBackend(ABC):
    """Raw byte access to the single persisted document."""

    @abstractmethod
    async def async_read(self) -> bytes | None:
        """Return the stored bytes, or None when nothing was stored yet."""

    @abstractmethod
    async def async_write(self, data: bytes) -> None:
        """Replace the stored bytes. Must be all-or-nothing."""


class MemoryBackend(DocumentBackend):
    """In-process backend holding the document bytes in an attribute."""

    def __init__(self, data: bytes | None = None) -> None:
        self.data = data
        self.writes = 0

    async def async_read(self) -> bytes | None:
        return self.data

    async def async_write(self, data: bytes) -> None:
        self.data = bytes(data)
        self.writes += 1


def _read_bytes(path: str) -> bytes | None:
    try:
        return Path(path).read_bytes()
    except FileNotFoundError:
        return None


def _write_bytes(path: str, data: bytes) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    write_utf8_file_atomic(path, data, private=True, mode="wb")


class FileBackend(DocumentBackend):
    """File backend running blocking I/O in Home Assistant's executor."""

    def __init__(self, hass: HomeAssistant, path: str | os.PathLike[str]) -> None:
        self._hass = hass
        self._path = os.fspath(path)

    @classmethod
    def for_key(cls, hass: HomeAssistant, key: str = STORAGE_KEY) -> FileBackend:
        """Place the document next to Home Assistant's own storage files."""

        return cls(hass, hass.config.path(".storage", key))

    @property
    def path(self) -> str:
        return self._path

    async def async_read(self) -> bytes | None:
        return await self._hass.async_add_executor_job(_read_bytes, self._path)

    async def async_write(self, data: bytes) -> None:
        await self._hass.async_add_executor_job(_write_bytes, self._path, data)


# -----------------------------
# Store
# -----------------------------


class DocumentStore:
    """Serialized read-modify-write access to the organization document.

    The store is created once per config entry and handed to the
    repositories. Nothing else touches the backend.
    """

    def __init__(self, backend: DocumentBackend, *, key: str = STORAGE_KEY) -> None:
        self._backend = backend
        self._key = key
        self._lock = asyncio.Lock()
        self._snapshot: list[Organization] | None = None
        self._listeners: list[Listener] = []

    @property
    def key(self) -> str:
        return self._key

    @property
    def snapshot(self) -> list[Organization] | None:
        """Last committed organizations, or None before the first transaction."""

        return deepcopy(self._snapshot) if self._snapshot is not None else None

    async def async_transact(self, fn: Transaction) -> list[Organization]:
        """Apply ``fn`` to the current document under exclusive access.

        ``fn`` receives a private copy of the decoded organizations and
        returns the new list. It must not perform I/O. Errors raised by
        ``fn`` propagate and leave the document untouched.
        """

        async with self._lock:
            start_time = time.monotonic()
            current = await self._async_read_current()
            self._snapshot = current

            updated = fn(deepcopy(current))
            if not isinstance(updated, list):
                raise TypeError("transaction must return a list of organizations")

            if updated == current:
                return deepcopy(current)

            await self._async_write(encode(updated), previous=current, op="transact")
            self._snapshot = updated
            _LOGGER.debug(
                "Document committed",
                extra={
                    "domain": DOMAIN,
                    "op": "transact",
                    "storage_key": self._key,
                    "organizations": len(updated),
                    "elapsed_ms": int((time.monotonic() - start_time) * 1000),
                },
            )
            self._notify(updated)
            return deepcopy(updated)

    async def async_reset(self, *, confirm: bool = False) -> None:
        """Replace the document with an empty one.

        The old bytes are not decoded, so this also clears a corrupt
        document. Refused unless ``confirm`` is true.
        """

        if confirm is not True:
            raise ValidationError("resetting the document requires explicit confirmation")

        async with self._lock:
            previous = self._snapshot or []
            await self._async_write(encode([]), previous=previous, op="reset")
            self._snapshot = []
            _LOGGER.warning(
                "Document reset to an empty organization list",
                extra={"domain": DOMAIN, "op": "reset", "storage_key": self._key},
            )
            self._notify([])

    @callback
    def async_add_listener(self, listener: Listener) -> CALLBACK_TYPE:
        """Call ``listener`` with the new organizations after each commit."""

        self._listeners.append(listener)

        @callback
        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # -----------------------------
    # Internal helpers
    # -----------------------------

    async def _async_read_current(self) -> list[Organization]:
        try:
            raw = await self._backend.async_read()
        except OSError as exc:
            _LOGGER.error(
                "Failed to read document",
                extra={"domain": DOMAIN, "op": "read", "storage_key": self._key},
                exc_info=True,
            )
            raise StorageError("failed to read document") from exc

        try:
            return decode(raw)
        except CorruptDocumentError:
            _LOGGER.error(
                "Stored document is corrupt; refusing to overwrite it",
                extra={"domain": DOMAIN, "op": "decode", "storage_key": self._key},
                exc_info=True,
            )
            raise

    async def _async_write(self, payload: bytes, *, previous: list[Organization], op: str) -> None:
        start_time = time.monotonic()
        try:
            await self._backend.async_write(payload)
        except Exception as exc:
            _LOGGER.error(
                "Failed to persist document",
                extra={
                    "domain": DOMAIN,
                    "op": f"{op}_persist_failed",
                    "storage_key": self._key,
                    "elapsed_ms": int((time.monotonic() - start_time) * 1000),
                },
                exc_info=True,
            )
            raise PersistFailedError(
                "failed to persist document", previous=deepcopy(previous)
            ) from exc

    def _notify(self, organizations: list[Organization]) -> None:
        for listener in list(self._listeners):
            try:
                listener(deepcopy(organizations))
            except Exception:  # pragma: no cover
                _LOGGER.error(
                    "Document listener failed",
                    extra={"domain": DOMAIN, "op": "notify", "storage_key": self._key},
                    exc_info=True,
                )
