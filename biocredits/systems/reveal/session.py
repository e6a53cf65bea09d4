"""
BioCredits — Decryption Session Context

The five values a signer sees in every decryption challenge. Built once per
presentation session and passed explicitly to the reveal protocol.

Challenge layout (newline-joined, fixed order):
  publickey:<public_key>
  contractAddresses:<contract_address>
  contractsChainId:<chain_id>
  startTimestamp:<start_timestamp>
  durationDays:<duration_days>
"""

from __future__ import annotations

import secrets

from pydantic import Field

from biocredits.primitives.common import BioBaseModel, unix_now

_PUBLIC_KEY_HEX_DIGITS = 2000
_SECONDS_PER_DAY = 86_400


def generate_public_key() -> str:
    """Per-session public key: 0x + 2000 random hex digits."""
    return "0x" + secrets.token_hex(_PUBLIC_KEY_HEX_DIGITS // 2)


class SessionContext(BioBaseModel):
    """Immutable per-session challenge parameters."""

    model_config = {"populate_by_name": True, "from_attributes": True, "frozen": True}

    public_key: str
    contract_address: str
    chain_id: int
    start_timestamp: int
    duration_days: int = Field(default=30, ge=1)

    @classmethod
    def create(
        cls,
        contract_address: str,
        chain_id: int,
        duration_days: int = 30,
    ) -> SessionContext:
        return cls(
            public_key=generate_public_key(),
            contract_address=contract_address,
            chain_id=chain_id,
            start_timestamp=unix_now(),
            duration_days=duration_days,
        )

    @property
    def expires_at(self) -> int:
        return self.start_timestamp + self.duration_days * _SECONDS_PER_DAY

    def is_expired(self, now: int | None = None) -> bool:
        return (unix_now() if now is None else now) >= self.expires_at

    def challenge_message(self) -> str:
        return "\n".join(
            [
                f"publickey:{self.public_key}",
                f"contractAddresses:{self.contract_address}",
                f"contractsChainId:{self.chain_id}",
                f"startTimestamp:{self.start_timestamp}",
                f"durationDays:{self.duration_days}",
            ]
        )
