"""
BioCredits — Wallet Signer

Off-chain identity for decryption challenges. A signer produces an EIP-191
personal-message signature over the challenge text; the reveal protocol
only ever sees the signature, never key material.

WalletSigner wraps an eth_account LocalAccount. Browser wallets live in the
presentation layer and implement the same Signer protocol directly.

An optional approval hook models the wallet prompt: it receives the exact
message and returns False when the holder declines.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

import structlog
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount

from biocredits.errors import SignatureDeclined

logger = structlog.get_logger("biocredits.clients.wallet")

ApprovalHook = Callable[[str], Awaitable[bool]]


@runtime_checkable
class Signer(Protocol):
    """Anything that can sign a challenge message for an identity."""

    @property
    def address(self) -> str: ...

    async def sign(self, message: str) -> str: ...


def recover_signer(message: str, signature: str) -> str:
    """Recover the 0x address that produced a personal-sign signature."""
    return Account.recover_message(encode_defunct(text=message), signature=signature)


class WalletSigner:
    """
    Local-key signer implementing the Signer protocol.

    Signatures are hex strings with a 0x prefix (65 bytes: r, s, v).
    """

    def __init__(self, account: LocalAccount, approve: ApprovalHook | None = None) -> None:
        self._account = account
        self._approve = approve

    @classmethod
    def from_key(cls, private_key: str | bytes, approve: ApprovalHook | None = None) -> WalletSigner:
        return cls(Account.from_key(private_key), approve=approve)

    @classmethod
    def create(cls, approve: ApprovalHook | None = None) -> WalletSigner:
        """Fresh random account (tests and throwaway sessions)."""
        return cls(Account.create(), approve=approve)

    @property
    def address(self) -> str:
        return self._account.address

    async def sign(self, message: str) -> str:
        if self._approve is not None and not await self._approve(message):
            logger.info("wallet_signature_declined", address=self.address)
            raise SignatureDeclined("User rejected the signature request")

        signed = self._account.sign_message(encode_defunct(text=message))
        signature = "0x" + bytes(signed.signature).hex()
        logger.debug("wallet_message_signed", address=self.address)
        return signature

    def __repr__(self) -> str:
        return f"WalletSigner({self.address})"
