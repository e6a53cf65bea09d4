"""
BioCredits — Transform Engine

Named arithmetic applied to an encrypted value. The caller hands in an
EncryptedValue and gets one back; the intermediate plaintext (if the
backend needs one at all) never leaves the codec.

Also home to the creation-time score formula, a plain function kept next
to the operators because both define what a credit's number means.
"""

from __future__ import annotations

import enum
import math
from typing import TYPE_CHECKING

import structlog

from biocredits.errors import UnsupportedOperation
from biocredits.primitives.common import BioBaseModel

if TYPE_CHECKING:
    from biocredits.systems.cipher.codec import EncryptedValue, ScalarCodec

logger = structlog.get_logger("biocredits.cipher.transform")


class OperationKind(enum.StrEnum):
    INCREASE_10PCT = "increase_10pct"
    DECREASE_10PCT = "decrease_10pct"
    DOUBLE = "double"
    IDENTITY = "identity"


OPERATION_FACTORS: dict[OperationKind, float] = {
    OperationKind.INCREASE_10PCT: 1.1,
    OperationKind.DECREASE_10PCT: 0.9,
    OperationKind.DOUBLE: 2.0,
    OperationKind.IDENTITY: 1.0,
}

# Legacy names still sent by the web client
_ALIASES: dict[str, OperationKind] = {
    "increase10%": OperationKind.INCREASE_10PCT,
    "decrease10%": OperationKind.DECREASE_10PCT,
}


def parse_operation(op: str | OperationKind) -> OperationKind | None:
    """Resolve an operation name (canonical or alias). None if unknown."""
    if isinstance(op, OperationKind):
        return op
    key = str(op).strip()
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return OperationKind(key.lower())
    except ValueError:
        return None


class TransformEngine:
    """
    Applies OperationKind transforms through a ScalarCodec.

    Strict by default: an unknown kind raises UnsupportedOperation.
    lenient=True passes unknown kinds through unchanged.
    """

    def __init__(self, codec: ScalarCodec, lenient: bool = False) -> None:
        self._codec = codec
        self._lenient = lenient

    @property
    def codec(self) -> ScalarCodec:
        return self._codec

    def apply(self, op: str | OperationKind, value: EncryptedValue) -> EncryptedValue:
        kind = parse_operation(op)
        if kind is None:
            if self._lenient:
                logger.warning("transform_unknown_operation_passthrough", op=str(op))
                return value
            raise UnsupportedOperation(f"Unsupported transform operation: {op!r}")

        if kind is OperationKind.IDENTITY:
            return value
        return self._codec.scale(value, OPERATION_FACTORS[kind])


# ─── Score Formula ────────────────────────────────────────────────


def compute_score(species_count: float, area_size: float) -> float:
    """score = species_count × √area_size. Inputs are validated by the caller."""
    return species_count * math.sqrt(area_size)


class ScorePreview(BioBaseModel):
    """What the creation form shows before submission."""

    score: float
    encrypted: str
    formula: str


def preview_score(
    codec: ScalarCodec,
    area_size: float,
    species_count: float,
) -> ScorePreview | None:
    """Preview for partially filled input; None until both values are positive."""
    if not (area_size > 0 and species_count > 0):
        return None
    score = compute_score(species_count, area_size)
    return ScorePreview(
        score=score,
        encrypted=codec.encode(score),
        formula=f"{species_count:g} × √{area_size:g} = {score:.2f}",
    )
