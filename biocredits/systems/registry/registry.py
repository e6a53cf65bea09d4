"""
BioCredits — Credit Registry

Key-indexed collection of credit records over an external byte store.

Layout in the store:
  "credit_keys"      JSON array of ids, insertion order
  "credit_<id>"      one JSON record per credit

The store is authoritative. Every listing is a fresh read-through; nothing
is cached between calls.

Consistency rules:
  - create() writes the record first, then appends to the index. A crash
    in between leaves an unindexed record, invisible until indexed.
  - list_credits() tolerates index entries with no (or unparsable) record: they
    are skipped and logged, never fatal.
  - Index appends are read-merge-write. On stores with compare-and-set the
    write is conditional and retried, so concurrent appends are merged; on
    stores without it the index document is last-writer-wins.
  - Status updates are a single-record read-modify-write, last-writer-wins.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import orjson
import structlog
from pydantic import ValidationError as PydanticValidationError

from biocredits.clients.store import CasStore
from biocredits.errors import (
    BackendUnavailable,
    DecodeError,
    IndexConflict,
    NotFound,
    RecordInvalid,
    ValidationError,
)
from biocredits.primitives.common import new_id, unix_now
from biocredits.systems.cipher.transform import compute_score
from biocredits.systems.registry.types import Credit, CreditStatus, RegistryStats

if TYPE_CHECKING:
    from biocredits.clients.store import CreditStore
    from biocredits.config import RegistryConfig, StoreConfig
    from biocredits.systems.cipher.codec import EncryptedValue, ScalarCodec

logger = structlog.get_logger("biocredits.registry")


class CreditRegistry:
    """
    Reads and writes credits through a CreditStore.

    Thread-safety: NOT thread-safe. Single-threaded asyncio, one logical
    actor per session.
    """

    def __init__(
        self,
        store: CreditStore,
        codec: ScalarCodec,
        store_config: StoreConfig | None = None,
        registry_config: RegistryConfig | None = None,
    ) -> None:
        self._store = store
        self._codec = codec
        self._index_key = store_config.index_key if store_config else "credit_keys"
        self._record_prefix = store_config.record_prefix if store_config else "credit_"
        self._max_retries = registry_config.index_max_retries if registry_config else 5
        self._logger = logger.bind(component="credit_registry")

    @property
    def store(self) -> CreditStore:
        return self._store

    def record_key(self, credit_id: str) -> str:
        return f"{self._record_prefix}{credit_id}"

    # ─── Reads ────────────────────────────────────────────────────

    async def list_credits(self) -> list[Credit]:
        """
        All readable credits, newest first.

        An unavailable store reads as an empty registry.
        """
        if not await self._store.is_available():
            self._logger.info("registry_store_unavailable")
            return []

        _, keys = await self._read_index()
        credits: list[Credit] = []
        for credit_id in keys:
            try:
                raw = await self._store.get_data(self.record_key(credit_id))
            except Exception as e:
                self._logger.warning("registry_record_read_failed", credit_id=credit_id, error=str(e))
                continue
            if not raw:
                self._logger.warning("registry_record_missing", credit_id=credit_id)
                continue
            try:
                credits.append(self._parse_record(credit_id, raw))
            except RecordInvalid as e:
                self._logger.warning("registry_record_invalid", credit_id=credit_id, fields=e.fields)
            except DecodeError as e:
                self._logger.warning("registry_record_unparsable", credit_id=credit_id, error=str(e))

        credits.sort(key=lambda c: c.timestamp, reverse=True)
        self._logger.debug("registry_listed", indexed=len(keys), loaded=len(credits))
        return credits

    async def get(self, credit_id: str) -> Credit:
        """A single credit. NotFound when absent (or the store is unavailable)."""
        if not await self._store.is_available():
            raise NotFound(credit_id)
        _, credit = await self._load(credit_id)
        return credit

    async def stats(self) -> RegistryStats:
        return RegistryStats.from_credits(await self.list_credits())

    async def locations(self, limit: int | None = None) -> list[str]:
        """Distinct locations in display order."""
        seen: dict[str, None] = {}
        for credit in await self.list_credits():
            seen.setdefault(credit.location, None)
        names = list(seen)
        return names[:limit] if limit is not None else names

    # ─── Writes ───────────────────────────────────────────────────

    async def create(
        self,
        owner: str,
        location: str,
        area_size: float,
        species_count: int,
    ) -> Credit:
        """
        Validate, score, encode and persist a new pending credit.

        Nothing is written when validation fails.
        """
        owner, location, area_size, species_count = _validate_creation(
            owner, location, area_size, species_count,
        )
        await self._require_available()

        credit = Credit(
            id=new_id(),
            encrypted_score=self._codec.encode(compute_score(species_count, area_size)),
            timestamp=unix_now(),
            owner=owner,
            location=location,
            area_size=area_size,
            species_count=species_count,
            status=CreditStatus.PENDING,
        )

        await self._store.set_data(self.record_key(credit.id), orjson.dumps(credit.to_wire()))
        await self._append_to_index(credit.id)

        self._logger.info(
            "credit_created",
            credit_id=credit.id,
            owner=owner,
            location=location,
        )
        return credit

    async def update_status(
        self,
        credit_id: str,
        new_status: CreditStatus,
        new_encrypted_score: EncryptedValue | None = None,
    ) -> Credit:
        """
        Read-modify-write of one record.

        Fields the registry does not model are carried through untouched.
        """
        await self._require_available()
        body, _ = await self._load(credit_id)

        body["status"] = CreditStatus(new_status).value
        if new_encrypted_score is not None:
            body["score"] = new_encrypted_score

        updated = self._to_credit(credit_id, body)
        await self._store.set_data(self.record_key(credit_id), orjson.dumps(body))

        self._logger.info(
            "credit_status_updated",
            credit_id=credit_id,
            status=updated.status.value,
            rescored=new_encrypted_score is not None,
        )
        return updated

    # ─── Index ────────────────────────────────────────────────────

    async def _read_index(self) -> tuple[bytes, list[str]]:
        """Raw index bytes (for compare-and-set) and the deduplicated id list."""
        raw = await self._store.get_data(self._index_key)
        if not raw or not raw.strip():
            return raw, []
        try:
            parsed = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            self._logger.error("registry_index_unparsable", error=str(e))
            return raw, []
        if not isinstance(parsed, list):
            self._logger.error("registry_index_not_a_list", kind=type(parsed).__name__)
            return raw, []

        keys = [str(k) for k in parsed if isinstance(k, (str, int))]
        unique = list(dict.fromkeys(keys))
        if len(unique) != len(keys):
            self._logger.warning("registry_index_duplicates", duplicates=len(keys) - len(unique))
        return raw, unique

    async def _append_to_index(self, credit_id: str) -> None:
        supports_cas = isinstance(self._store, CasStore)
        for attempt in range(1, self._max_retries + 1):
            raw, keys = await self._read_index()
            if credit_id in keys:
                return
            updated = orjson.dumps([*keys, credit_id])

            if not supports_cas:
                await self._store.set_data(self._index_key, updated)
                return
            if await self._store.compare_and_set(self._index_key, raw, updated):
                return

            self._logger.info("registry_index_conflict", credit_id=credit_id, attempt=attempt)

        raise IndexConflict(
            f"Index changed concurrently {self._max_retries} times; credit {credit_id} not indexed"
        )

    # ─── Internal helpers ─────────────────────────────────────────

    async def _require_available(self) -> None:
        if not await self._store.is_available():
            raise BackendUnavailable("Credit store is not available")

    async def _load(self, credit_id: str) -> tuple[dict[str, Any], Credit]:
        raw = await self._store.get_data(self.record_key(credit_id))
        if not raw:
            raise NotFound(credit_id)
        body = _decode_body(raw)
        return body, self._to_credit(credit_id, body)

    def _parse_record(self, credit_id: str, raw: bytes) -> Credit:
        return self._to_credit(credit_id, _decode_body(raw))

    @staticmethod
    def _to_credit(credit_id: str, body: dict[str, Any]) -> Credit:
        try:
            return Credit.from_wire(credit_id, body)
        except PydanticValidationError as e:
            fields = sorted({".".join(str(part) for part in err["loc"]) or "<record>" for err in e.errors()})
            raise RecordInvalid(credit_id, fields) from e


def _decode_body(raw: bytes) -> dict[str, Any]:
    try:
        body = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise DecodeError("Credit record is not valid JSON") from e
    if not isinstance(body, dict):
        raise DecodeError("Credit record is not a JSON object")
    return body


def _validate_creation(
    owner: str,
    location: str,
    area_size: float,
    species_count: int | float,
) -> tuple[str, str, float, int]:
    if not owner or not str(owner).strip():
        raise ValidationError("An owner identity is required")
    if not location or not str(location).strip():
        raise ValidationError("Location is required")
    if isinstance(area_size, bool) or not isinstance(area_size, (int, float)):
        raise ValidationError("Area size must be a number")
    if not math.isfinite(area_size) or area_size <= 0:
        raise ValidationError("Area size must be a positive number")
    if isinstance(species_count, bool) or not isinstance(species_count, (int, float)):
        raise ValidationError("Species count must be a number")
    if isinstance(species_count, float) and not species_count.is_integer():
        raise ValidationError("Species count must be a whole number")
    if species_count <= 0:
        raise ValidationError("Species count must be positive")
    return str(owner).strip(), str(location).strip(), float(area_size), int(species_count)
