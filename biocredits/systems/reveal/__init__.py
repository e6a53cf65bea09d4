"""
BioCredits — Reveal (Decryption Authorization)

Signature-gated decryption of encrypted scores.
"""

from biocredits.systems.reveal.protocol import DecryptionAuthorizer
from biocredits.systems.reveal.session import SessionContext, generate_public_key

__all__ = [
    "DecryptionAuthorizer",
    "SessionContext",
    "generate_public_key",
]
