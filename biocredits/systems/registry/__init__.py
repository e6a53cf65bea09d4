"""
BioCredits — Credit Registry

The key-indexed, append-only store of biodiversity credits.
"""

from biocredits.systems.registry.registry import CreditRegistry
from biocredits.systems.registry.types import Credit, CreditStatus, RegistryStats

__all__ = [
    "CreditRegistry",
    "Credit",
    "CreditStatus",
    "RegistryStats",
]
