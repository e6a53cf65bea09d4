"""
BioCredits — Error Hierarchy

All exceptions raised by the encrypted-value lifecycle engine.

Every failure is scoped to the single requested operation; nothing here is
fatal to the process. The presentation layer decides how each is shown.

Propagation guide:
  ValidationError, Forbidden   surfaced immediately, never retried
  DecodeError                  per-record during listing: skipped and logged
  RecordInvalid                as DecodeError, logged with the offending fields
  BackendUnavailable           listing: empty registry; mutations: raised
  AuthorizationDenied          no plaintext is returned
"""

from __future__ import annotations


class CreditError(RuntimeError):
    """Base for all BioCredits errors."""


class DecodeError(CreditError):
    """An encrypted value carries no codec tag and is not a finite number."""


class UnsupportedOperation(CreditError):
    """The Transform Engine was asked for an operation kind it does not know."""


class ValidationError(CreditError):
    """
    Creation input was rejected before any write.

    Raised for an empty location, a non-positive area or a non-positive
    species count.
    """


class NotFound(CreditError):
    """No stored record exists for the requested credit id."""

    def __init__(self, credit_id: str) -> None:
        super().__init__(f"Credit not found: {credit_id}")
        self.credit_id = credit_id


class Forbidden(CreditError):
    """
    A lifecycle transition was refused.

    Either the caller is not the credit owner or the credit is no longer in
    a state that allows the transition. State is never mutated.
    """


class AuthorizationDenied(CreditError):
    """The signature challenge was declined, failed or did not verify."""


class SignatureDeclined(AuthorizationDenied):
    """The wallet holder explicitly refused to sign the challenge."""


class BackendUnavailable(CreditError):
    """The store availability probe failed."""


class IndexConflict(CreditError):
    """The registry index kept changing underneath a compare-and-set append."""


class RecordInvalid(DecodeError):
    """A stored record is well-formed JSON but does not fit the credit schema."""

    def __init__(self, credit_id: str, fields: list[str]) -> None:
        super().__init__(f"Credit record {credit_id} has invalid fields: {', '.join(fields)}")
        self.credit_id = credit_id
        self.fields = fields
