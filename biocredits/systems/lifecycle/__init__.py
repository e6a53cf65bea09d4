"""
BioCredits — Credit Lifecycle

The pending → verified / rejected state machine.
"""

from biocredits.systems.lifecycle.machine import (
    STATE_CONFIG,
    CreditAction,
    CreditLifecycle,
    is_terminal,
    next_status,
)

__all__ = [
    "STATE_CONFIG",
    "CreditAction",
    "CreditLifecycle",
    "is_terminal",
    "next_status",
]
