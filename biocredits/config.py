"""
BioCredits — Configuration System

All configuration is Pydantic-validated and loaded from:
1. a YAML file (defaults for a deployment)
2. Environment variables (overrides, secrets)

Every tunable parameter of the engine lives here.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ─── Sub-configs ──────────────────────────────────────────────────


class StoreConfig(BaseModel):
    backend: Literal["memory", "redis", "contract"] = "memory"
    index_key: str = "credit_keys"
    record_prefix: str = "credit_"


class RegistryConfig(BaseModel):
    # Compare-and-set attempts for an index append before IndexConflict
    index_max_retries: int = Field(default=5, ge=1)


class RedisConfig(BaseModel):
    url: str = "redis://localhost:6379/0"
    prefix: str = "biocredits"
    password: str = ""

    @property
    def full_url(self) -> str:
        """Build URL with password injected."""
        clean_pw = self.password.strip() if self.password else ""
        if clean_pw and "://" in self.url:
            scheme, rest = self.url.split("://", 1)
            return f"{scheme}://:{clean_pw}@{rest}"
        return self.url


class ContractConfig(BaseModel):
    rpc_url: str = "http://localhost:8545"
    address: str = ""  # Required for the contract backend
    chain_id: int = 0
    sender: str = ""  # Node-managed account used for setData transactions
    receipt_timeout_s: float = 120.0

    @model_validator(mode="after")
    def _strip_address(self) -> ContractConfig:
        # Secret managers can inject trailing \r\n into env vars
        if self.address:
            object.__setattr__(self, "address", self.address.strip())
        return self


class CodecConfig(BaseModel):
    backend: Literal["reversible", "paillier"] = "reversible"
    paillier_key_bits: int = 2048
    # Keypair file; created on first use. Empty means an ephemeral keypair
    paillier_key_path: str = ""
    # Unknown transform kinds pass the value through instead of raising
    lenient_transforms: bool = False


class SessionConfig(BaseModel):
    duration_days: int = Field(default=30, ge=1)
    # Check EIP-191 signatures recover to the requesting identity
    verify_signatures: bool = True


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "console"  # "console" | "json"


# ─── Root Configuration ──────────────────────────────────────────


class BioCreditsConfig(BaseSettings):
    """
    Root configuration. Loads from YAML, overridable by env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="BIOCREDITS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    store: StoreConfig = Field(default_factory=StoreConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    contract: ContractConfig = Field(default_factory=ContractConfig)
    codec: CodecConfig = Field(default_factory=CodecConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> BioCreditsConfig:
    """
    Load configuration from YAML file, then apply environment variable overrides.
    """
    raw: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    # Inject secrets from environment
    if redis_pw := os.environ.get("BIOCREDITS_REDIS_PASSWORD"):
        raw.setdefault("redis", {})["password"] = redis_pw
    if rpc_url := os.environ.get("BIOCREDITS_RPC_URL"):
        raw.setdefault("contract", {})["rpc_url"] = rpc_url
    if contract_address := os.environ.get("BIOCREDITS_CONTRACT_ADDRESS"):
        raw.setdefault("contract", {})["address"] = contract_address
    if paillier_key_path := os.environ.get("BIOCREDITS_PAILLIER_KEY_PATH"):
        raw.setdefault("codec", {})["paillier_key_path"] = paillier_key_path

    if overrides:
        raw = _deep_merge(raw, overrides)

    return BioCreditsConfig(**raw)
