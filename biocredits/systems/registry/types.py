"""
BioCredits — Registry Types

The Credit record and its on-store JSON shape.

Wire format (UTF-8 JSON at key "credit_<id>"):
  {"score": "<EncryptedValue>", "timestamp": <unix seconds>,
   "owner": "0x…", "location": "…", "areaSize": <float>,
   "speciesCount": <int>, "status": "pending|verified|rejected"}

The id is not stored in the record body; it is the key suffix.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field, field_validator

from biocredits.primitives.common import BioBaseModel


class CreditStatus(enum.StrEnum):
    """Lifecycle state of a credit."""

    PENDING = "pending"      # Initial; the only state with outgoing transitions
    VERIFIED = "verified"    # Terminal; score carries the verification uplift
    REJECTED = "rejected"    # Terminal; score unchanged


class Credit(BioBaseModel):
    """
    A biodiversity credit.

    Immutable value: status changes produce a new Credit via the registry.
    """

    model_config = {"populate_by_name": True, "from_attributes": True, "frozen": True}

    id: str
    encrypted_score: str = Field(alias="score")
    timestamp: int
    owner: str
    location: str
    area_size: float = Field(alias="areaSize")
    species_count: int = Field(alias="speciesCount")
    status: CreditStatus = CreditStatus.PENDING

    @field_validator("status", mode="before")
    @classmethod
    def _blank_status_is_pending(cls, value: Any) -> Any:
        # Web clients wrote null or "" for a credit never reviewed
        return value or CreditStatus.PENDING

    def to_wire(self) -> dict[str, Any]:
        """Record body as stored (camelCase, no id)."""
        return self.model_dump(by_alias=True, exclude={"id"}, mode="json")

    @classmethod
    def from_wire(cls, credit_id: str, body: dict[str, Any]) -> Credit:
        return cls.model_validate({**body, "id": credit_id})


class RegistryStats(BioBaseModel):
    """Per-status totals for a registry listing."""

    total: int = 0
    pending: int = 0
    verified: int = 0
    rejected: int = 0

    @classmethod
    def from_credits(cls, credits: list[Credit]) -> RegistryStats:
        counts = {status: 0 for status in CreditStatus}
        for credit in credits:
            counts[credit.status] += 1
        return cls(
            total=len(credits),
            pending=counts[CreditStatus.PENDING],
            verified=counts[CreditStatus.VERIFIED],
            rejected=counts[CreditStatus.REJECTED],
        )
