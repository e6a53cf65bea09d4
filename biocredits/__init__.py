"""
BioCredits — Encrypted-Value Lifecycle Engine

Biodiversity credits whose ecological score stays encrypted end-to-end,
is transformed without exposing plaintext, and is revealed to a holder
only after a signed challenge.
"""

from biocredits.config import BioCreditsConfig, load_config
from biocredits.errors import (
    AuthorizationDenied,
    BackendUnavailable,
    CreditError,
    DecodeError,
    Forbidden,
    IndexConflict,
    NotFound,
    RecordInvalid,
    SignatureDeclined,
    UnsupportedOperation,
    ValidationError,
)
from biocredits.service import CreditService, start_service

__all__ = [
    "BioCreditsConfig",
    "load_config",
    "CreditService",
    "start_service",
    "CreditError",
    "DecodeError",
    "RecordInvalid",
    "UnsupportedOperation",
    "ValidationError",
    "NotFound",
    "Forbidden",
    "AuthorizationDenied",
    "SignatureDeclined",
    "BackendUnavailable",
    "IndexConflict",
]
