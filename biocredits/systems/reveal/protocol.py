"""
BioCredits — Decryption Authorization Protocol

A plaintext score is revealed only after the requester signs the session
challenge. Every request asks for a fresh signature; nothing about a prior
authorization is remembered.

Steps:
  1. refuse an expired session before bothering the signer
  2. await signer.sign(challenge); decline or provider failure is denial
  3. optionally check the signature recovers to the expected identity
  4. decode through the Scalar Codec

The signature wait is unbounded. Cancelling the awaiting task abandons the
request with no effect on stored state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from biocredits.clients.wallet import recover_signer
from biocredits.errors import AuthorizationDenied
from biocredits.primitives.common import same_identity

if TYPE_CHECKING:
    from biocredits.clients.wallet import Signer
    from biocredits.systems.cipher.codec import EncryptedValue, ScalarCodec
    from biocredits.systems.reveal.session import SessionContext

logger = structlog.get_logger("biocredits.reveal")


class DecryptionAuthorizer:
    """
    Signature-gated access to the Scalar Codec's decode.

    verify_signatures=True checks EIP-191 signatures against the expected
    identity; signers that do not produce EIP-191 signatures need it off.
    """

    def __init__(self, codec: ScalarCodec, verify_signatures: bool = True) -> None:
        self._codec = codec
        self._verify_signatures = verify_signatures
        self._logger = logger.bind(component="decryption_authorizer")

    async def request_decryption(
        self,
        encrypted_value: EncryptedValue,
        session: SessionContext,
        signer: Signer,
        identity: str | None = None,
    ) -> float:
        if session.is_expired():
            self._logger.info("decryption_session_expired", expires_at=session.expires_at)
            raise AuthorizationDenied("Decryption session has expired; start a new session")

        expected = identity or getattr(signer, "address", None)
        message = session.challenge_message()

        try:
            signature = await signer.sign(message)
        except AuthorizationDenied:
            self._logger.info("decryption_signature_declined", identity=expected)
            raise
        except Exception as e:
            self._logger.warning("decryption_signer_failed", identity=expected, error=str(e))
            raise AuthorizationDenied(f"Signature provider failed: {e}") from e

        if not signature:
            raise AuthorizationDenied("Signature provider returned no signature")

        if self._verify_signatures and expected:
            self._check_signature(message, signature, expected)

        value = self._codec.decode(encrypted_value)
        self._logger.info("decryption_authorized", identity=expected)
        return value

    def _check_signature(self, message: str, signature: str, expected: str) -> None:
        try:
            recovered = recover_signer(message, signature)
        except Exception as e:
            self._logger.warning("decryption_signature_unrecoverable", error=str(e))
            raise AuthorizationDenied("Signature could not be verified") from e
        if not same_identity(recovered, expected):
            self._logger.warning(
                "decryption_signature_mismatch",
                expected=expected,
                recovered=recovered,
            )
            raise AuthorizationDenied("Signature does not belong to the requesting identity")
