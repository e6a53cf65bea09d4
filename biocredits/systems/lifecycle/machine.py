"""
BioCredits — Credit Lifecycle State Machine

  pending ──verify──▶ verified   (score × 1.1, same record write)
     │
     └────reject──▶ rejected     (score unchanged)

verified and rejected are terminal. Only the credit owner may trigger a
transition, compared case-insensitively. Every rule lives in
STATE_CONFIG; callers never re-implement the checks.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Any

import structlog

from biocredits.errors import Forbidden
from biocredits.primitives.common import same_identity
from biocredits.systems.cipher.transform import OperationKind
from biocredits.systems.registry.types import Credit, CreditStatus

if TYPE_CHECKING:
    from biocredits.systems.cipher.transform import TransformEngine
    from biocredits.systems.registry.registry import CreditRegistry

logger = structlog.get_logger("biocredits.lifecycle")


class CreditAction(enum.StrEnum):
    VERIFY = "verify"
    REJECT = "reject"


STATE_CONFIG: dict[CreditStatus, dict[str, Any]] = {
    CreditStatus.PENDING: {
        "description": "Submitted by the owner, awaiting review",
        "transitions": {
            CreditAction.VERIFY: CreditStatus.VERIFIED,
            CreditAction.REJECT: CreditStatus.REJECTED,
        },
        "terminal": False,
    },
    CreditStatus.VERIFIED: {
        "description": "Accepted; encrypted score carries the verification uplift",
        "transitions": {},
        "terminal": True,
    },
    CreditStatus.REJECTED: {
        "description": "Refused; kept in the registry for the record",
        "transitions": {},
        "terminal": True,
    },
}

# Transform applied to the encrypted score on entry to a state
ENTRY_TRANSFORM: dict[CreditStatus, OperationKind] = {
    CreditStatus.VERIFIED: OperationKind.INCREASE_10PCT,
}


def next_status(current: CreditStatus, action: CreditAction) -> CreditStatus | None:
    return STATE_CONFIG[current]["transitions"].get(action)


def is_terminal(status: CreditStatus) -> bool:
    return bool(STATE_CONFIG[status]["terminal"])


class CreditLifecycle:
    """
    Validates and applies credit transitions.

    The check and the single record write happen back to back; there is no
    lock across sessions, so a concurrent writer can still win the record.
    """

    def __init__(self, registry: CreditRegistry, engine: TransformEngine) -> None:
        self._registry = registry
        self._engine = engine
        self._logger = logger.bind(component="credit_lifecycle")

    # ─── Rules ────────────────────────────────────────────────────

    def check(self, credit: Credit, action: CreditAction, caller: str) -> CreditStatus:
        """Target status for a permitted transition; Forbidden otherwise."""
        if not same_identity(caller, credit.owner):
            raise Forbidden(f"Only the owner of credit {credit.id} may {action.value} it")
        target = next_status(credit.status, action)
        if target is None:
            raise Forbidden(
                f"Cannot {action.value} credit {credit.id}: status is {credit.status.value}"
            )
        return target

    def can_transition(self, credit: Credit, action: CreditAction, caller: str) -> bool:
        try:
            self.check(credit, action, caller)
        except Forbidden:
            return False
        return True

    def available_actions(self, credit: Credit, caller: str) -> list[CreditAction]:
        """Actions the presentation layer may offer this caller."""
        return [a for a in CreditAction if self.can_transition(credit, a, caller)]

    # ─── Transitions ──────────────────────────────────────────────

    async def verify(self, credit_id: str, caller: str) -> Credit:
        return await self._transition(credit_id, CreditAction.VERIFY, caller)

    async def reject(self, credit_id: str, caller: str) -> Credit:
        return await self._transition(credit_id, CreditAction.REJECT, caller)

    async def _transition(self, credit_id: str, action: CreditAction, caller: str) -> Credit:
        credit = await self._registry.get(credit_id)
        try:
            target = self.check(credit, action, caller)
        except Forbidden:
            self._logger.warning(
                "credit_transition_forbidden",
                credit_id=credit_id,
                action=action.value,
                status=credit.status.value,
                caller=caller,
            )
            raise

        new_score = None
        op = ENTRY_TRANSFORM.get(target)
        if op is not None:
            new_score = self._engine.apply(op, credit.encrypted_score)

        updated = await self._registry.update_status(credit_id, target, new_score)
        self._logger.info(
            "credit_transitioned",
            credit_id=credit_id,
            action=action.value,
            from_status=credit.status.value,
            to_status=target.value,
        )
        return updated
