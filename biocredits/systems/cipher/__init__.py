"""
BioCredits — Cipher (Encrypted Scalars)

Scalar codecs and the Transform Engine that operates on their output.
"""

from biocredits.systems.cipher.codec import (
    EncryptedValue,
    PaillierCodec,
    ReversibleCodec,
    ScalarCodec,
    build_codec,
)
from biocredits.systems.cipher.transform import (
    OPERATION_FACTORS,
    OperationKind,
    ScorePreview,
    TransformEngine,
    compute_score,
    parse_operation,
    preview_score,
)

__all__ = [
    "EncryptedValue",
    "ScalarCodec",
    "ReversibleCodec",
    "PaillierCodec",
    "build_codec",
    "OperationKind",
    "OPERATION_FACTORS",
    "TransformEngine",
    "parse_operation",
    "compute_score",
    "ScorePreview",
    "preview_score",
]
