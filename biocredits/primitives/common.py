"""
BioCredits — Common Primitives

Shared id, clock and base-model helpers used across all systems.
"""

from __future__ import annotations

import time

from pydantic import BaseModel
from ulid import ULID


def new_id() -> str:
    """Generate a new ULID string. Time-sortable, globally unique."""
    return str(ULID())


def unix_now() -> int:
    """Current unix time in whole seconds (the on-store timestamp format)."""
    return int(time.time())


def same_identity(a: str | None, b: str | None) -> bool:
    """Addresses compare case-insensitively (EIP-55 checksums vary in case)."""
    if not a or not b:
        return False
    return a.strip().lower() == b.strip().lower()


class BioBaseModel(BaseModel):
    """Base model for all BioCredits primitives."""

    model_config = {"populate_by_name": True, "from_attributes": True}
