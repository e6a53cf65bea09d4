"""
BioCredits — Credit Store Protocol

The registry persists through an external key-value byte store, normally a
smart contract. This module defines the narrow interface the core consumes
and an in-process implementation used for tests and local sessions.

Contract:
  is_available()           probe; the core checks it before any access
  get_data(key)            stored bytes, or b"" when the key was never set
  set_data(key, value)     overwrite

Stores that can swap atomically also satisfy CasStore:
  compare_and_set(...)     atomic swap when current == expected

The registry checks isinstance(store, CasStore); other stores get a plain
read-merge-write on the index document.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

import structlog

if TYPE_CHECKING:
    from biocredits.clients.contract import ContractStore
    from biocredits.clients.redis import RedisStore
    from biocredits.config import BioCreditsConfig

logger = structlog.get_logger("biocredits.clients.store")


@runtime_checkable
class CreditStore(Protocol):
    async def is_available(self) -> bool: ...

    async def get_data(self, key: str) -> bytes: ...

    async def set_data(self, key: str, value: bytes) -> None: ...


@runtime_checkable
class CasStore(CreditStore, Protocol):
    async def compare_and_set(self, key: str, expected: bytes, value: bytes) -> bool: ...


class MemoryStore:
    """
    Dict-backed store. Single event loop, so each call is atomic.
    """

    def __init__(self, data: dict[str, bytes] | None = None, available: bool = True) -> None:
        self._data: dict[str, bytes] = dict(data or {})
        self.available = available

    async def is_available(self) -> bool:
        return self.available

    async def get_data(self, key: str) -> bytes:
        return self._data.get(key, b"")

    async def set_data(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def compare_and_set(self, key: str, expected: bytes, value: bytes) -> bool:
        if self._data.get(key, b"") != expected:
            logger.debug("memory_store_cas_mismatch", key=key)
            return False
        self._data[key] = bytes(value)
        return True

    def keys(self) -> list[str]:
        return list(self._data)

    async def health_check(self) -> dict[str, object]:
        return {"status": "connected" if self.available else "unavailable", "keys": len(self._data)}


def build_store(config: BioCreditsConfig) -> MemoryStore | RedisStore | ContractStore:
    """Construct the configured backend. Network stores still need connect()."""
    backend = config.store.backend
    if backend == "memory":
        return MemoryStore()
    if backend == "redis":
        from biocredits.clients.redis import RedisStore

        return RedisStore(config.redis)
    if backend == "contract":
        from biocredits.clients.contract import ContractStore

        return ContractStore(config.contract)
    raise ValueError(f"Unsupported store backend: {backend}")
