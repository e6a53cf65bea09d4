"""
BioCredits — Credit Service

The single entry point a presentation layer talks to. Wires the store,
codec, Transform Engine, registry, lifecycle and reveal protocol from
configuration.

Interface:
  initialize()          connect the configured store
  list_credits()        newest-first read-through listing
  create_credit()       validate, score, encode, persist
  verify() / reject()   owner-only lifecycle transitions
  stats() / locations() listing summaries
  preview()             score preview for the creation form
  new_session()         per-session decryption challenge context
  decrypt()             signature-gated reveal of an encrypted score
  shutdown()            close the store
  health()              self-health report

start_service() is the process entry point. It loads config and logging, then connects.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

import structlog

from biocredits.clients.store import build_store
from biocredits.config import load_config
from biocredits.systems.cipher.codec import build_codec
from biocredits.systems.cipher.transform import TransformEngine, preview_score
from biocredits.systems.lifecycle.machine import CreditAction, CreditLifecycle
from biocredits.systems.registry.registry import CreditRegistry
from biocredits.systems.reveal.protocol import DecryptionAuthorizer
from biocredits.systems.reveal.session import SessionContext
from biocredits.telemetry.logging import setup_logging

if TYPE_CHECKING:
    from biocredits.clients.store import CreditStore
    from biocredits.clients.wallet import Signer
    from biocredits.config import BioCreditsConfig
    from biocredits.systems.cipher.codec import EncryptedValue, ScalarCodec
    from biocredits.systems.cipher.transform import ScorePreview
    from biocredits.systems.registry.types import Credit, RegistryStats

logger = structlog.get_logger("biocredits.service")


class CreditService:
    """
    Facade over the encrypted-value lifecycle engine.

    Pass store/codec explicitly to override what the config would build.
    """

    def __init__(
        self,
        config: BioCreditsConfig,
        store: CreditStore | None = None,
        codec: ScalarCodec | None = None,
    ) -> None:
        self._config = config
        self._store: Any = store if store is not None else build_store(config)
        self._codec = codec if codec is not None else build_codec(config.codec)
        self._engine = TransformEngine(self._codec, lenient=config.codec.lenient_transforms)
        self._registry = CreditRegistry(
            self._store,
            self._codec,
            store_config=config.store,
            registry_config=config.registry,
        )
        self._lifecycle = CreditLifecycle(self._registry, self._engine)
        self._authorizer = DecryptionAuthorizer(
            self._codec,
            verify_signatures=config.session.verify_signatures,
        )
        self._initialized = False

    # ─── Lifecycle ──────────────────────────────────────────────

    async def initialize(self) -> None:
        connect = getattr(self._store, "connect", None)
        if connect is not None:
            await connect()
        self._initialized = True
        logger.info(
            "credit_service_initialized",
            store=type(self._store).__name__,
            codec=self._codec.name,
        )

    async def shutdown(self) -> None:
        close = getattr(self._store, "close", None)
        if close is not None:
            await close()
        self._initialized = False
        logger.info("credit_service_shutdown")

    async def health(self) -> dict[str, Any]:
        available = await self._store.is_available()
        return {
            "status": "healthy" if available else "degraded",
            "initialized": self._initialized,
            "store": type(self._store).__name__,
            "store_available": available,
            "codec": self._codec.name,
        }

    # ─── Accessors ──────────────────────────────────────────────

    @property
    def registry(self) -> CreditRegistry:
        return self._registry

    @property
    def lifecycle(self) -> CreditLifecycle:
        return self._lifecycle

    @property
    def engine(self) -> TransformEngine:
        return self._engine

    @property
    def codec(self) -> ScalarCodec:
        return self._codec

    # ─── Registry ───────────────────────────────────────────────

    async def list_credits(self) -> list[Credit]:
        return await self._registry.list_credits()

    async def create_credit(
        self,
        owner: str,
        location: str,
        area_size: float,
        species_count: int,
    ) -> Credit:
        return await self._registry.create(owner, location, area_size, species_count)

    async def stats(self) -> RegistryStats:
        return await self._registry.stats()

    async def locations(self, limit: int | None = None) -> list[str]:
        return await self._registry.locations(limit)

    def preview(self, area_size: float, species_count: float) -> ScorePreview | None:
        return preview_score(self._codec, area_size, species_count)

    # ─── Lifecycle transitions ──────────────────────────────────

    async def verify(self, credit_id: str, caller: str) -> Credit:
        return await self._lifecycle.verify(credit_id, caller)

    async def reject(self, credit_id: str, caller: str) -> Credit:
        return await self._lifecycle.reject(credit_id, caller)

    def available_actions(self, credit: Credit, caller: str) -> list[CreditAction]:
        return self._lifecycle.available_actions(credit, caller)

    # ─── Reveal ─────────────────────────────────────────────────

    def new_session(self, chain_id: int | None = None) -> SessionContext:
        """Challenge context for one presentation session."""
        return SessionContext.create(
            contract_address=self._config.contract.address,
            chain_id=self._config.contract.chain_id if chain_id is None else chain_id,
            duration_days=self._config.session.duration_days,
        )

    async def decrypt(
        self,
        encrypted_value: EncryptedValue,
        session: SessionContext,
        signer: Signer,
        identity: str | None = None,
    ) -> float:
        return await self._authorizer.request_decryption(
            encrypted_value, session, signer, identity=identity,
        )


async def start_service(
    config_path: str | None = None,
    store: CreditStore | None = None,
    codec: ScalarCodec | None = None,
) -> CreditService:
    """
    Load configuration, configure logging and return an initialized service.

    The config path defaults to BIOCREDITS_CONFIG_PATH, then config/default.yaml.
    """
    path = config_path or os.environ.get("BIOCREDITS_CONFIG_PATH", "config/default.yaml")
    config = load_config(path)
    setup_logging(config.logging)
    logger.info("biocredits_starting", config_path=path, store_backend=config.store.backend)

    service = CreditService(config, store=store, codec=codec)
    await service.initialize()
    return service
