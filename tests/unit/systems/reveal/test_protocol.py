"""
Tests for the Decryption Authorization Protocol.

Covers:
  - Successful reveal after a verified signature
  - Decline, provider failure, empty signature, wrong signer
  - Expired sessions never reach the signer
  - A fresh signature per request
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from biocredits.clients.wallet import WalletSigner
from biocredits.errors import AuthorizationDenied, DecodeError, SignatureDeclined
from biocredits.systems.cipher.codec import ReversibleCodec
from biocredits.systems.reveal.protocol import DecryptionAuthorizer
from biocredits.systems.reveal.session import SessionContext

CODEC = ReversibleCodec()


def _make_session() -> SessionContext:
    return SessionContext.create(contract_address="0x1234", chain_id=31337)


def _mock_signer(signature: str = "0xsig", address: str | None = None) -> MagicMock:
    signer = MagicMock()
    signer.address = address
    signer.sign = AsyncMock(return_value=signature)
    return signer


class TestReveal:
    @pytest.mark.asyncio
    async def test_wallet_signature_reveals_plaintext(self):
        authorizer = DecryptionAuthorizer(CODEC)
        value = await authorizer.request_decryption(
            CODEC.encode(60.0), _make_session(), WalletSigner.create(),
        )
        assert value == 60.0

    @pytest.mark.asyncio
    async def test_signer_sees_the_canonical_challenge(self):
        session = _make_session()
        signer = _mock_signer()
        authorizer = DecryptionAuthorizer(CODEC, verify_signatures=False)
        await authorizer.request_decryption(CODEC.encode(1.0), session, signer)
        signer.sign.assert_awaited_once_with(session.challenge_message())

    @pytest.mark.asyncio
    async def test_every_request_needs_a_fresh_signature(self):
        signer = _mock_signer()
        authorizer = DecryptionAuthorizer(CODEC, verify_signatures=False)
        session = _make_session()
        encrypted = CODEC.encode(5.0)
        for _ in range(3):
            assert await authorizer.request_decryption(encrypted, session, signer) == 5.0
        assert signer.sign.await_count == 3

    @pytest.mark.asyncio
    async def test_decode_failure_after_authorization_is_decode_error(self):
        authorizer = DecryptionAuthorizer(CODEC, verify_signatures=False)
        with pytest.raises(DecodeError):
            await authorizer.request_decryption("garbage", _make_session(), _mock_signer())


class TestDenial:
    @pytest.mark.asyncio
    async def test_user_decline(self):
        async def decline(_message: str) -> bool:
            return False

        authorizer = DecryptionAuthorizer(CODEC)
        with pytest.raises(SignatureDeclined):
            await authorizer.request_decryption(
                CODEC.encode(60.0), _make_session(), WalletSigner.create(approve=decline),
            )

    @pytest.mark.asyncio
    async def test_provider_error_becomes_denial(self):
        signer = _mock_signer()
        signer.sign.side_effect = ConnectionError("wallet disconnected")
        authorizer = DecryptionAuthorizer(CODEC, verify_signatures=False)
        with pytest.raises(AuthorizationDenied):
            await authorizer.request_decryption(CODEC.encode(60.0), _make_session(), signer)

    @pytest.mark.asyncio
    async def test_empty_signature_is_denied(self):
        authorizer = DecryptionAuthorizer(CODEC, verify_signatures=False)
        with pytest.raises(AuthorizationDenied):
            await authorizer.request_decryption(
                CODEC.encode(60.0), _make_session(), _mock_signer(signature=""),
            )

    @pytest.mark.asyncio
    async def test_signature_from_another_identity_is_denied(self):
        authorizer = DecryptionAuthorizer(CODEC)
        other = WalletSigner.create()
        with pytest.raises(AuthorizationDenied):
            await authorizer.request_decryption(
                CODEC.encode(60.0), _make_session(), WalletSigner.create(), identity=other.address,
            )

    @pytest.mark.asyncio
    async def test_unrecoverable_signature_is_denied(self):
        authorizer = DecryptionAuthorizer(CODEC)
        signer = _mock_signer(signature="0xdeadbeef", address="0x" + "1" * 40)
        with pytest.raises(AuthorizationDenied):
            await authorizer.request_decryption(CODEC.encode(60.0), _make_session(), signer)

    @pytest.mark.asyncio
    async def test_expired_session_never_asks_signer(self):
        session = SessionContext(
            public_key="0xabc",
            contract_address="0x1234",
            chain_id=1,
            start_timestamp=1_000,
            duration_days=1,
        )
        signer = _mock_signer()
        authorizer = DecryptionAuthorizer(CODEC, verify_signatures=False)
        with pytest.raises(AuthorizationDenied):
            await authorizer.request_decryption(CODEC.encode(60.0), session, signer)
        signer.sign.assert_not_awaited()


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_request_propagates_cancellation(self):
        waiting = asyncio.Event()

        async def never_signs(_message: str) -> str:
            waiting.set()
            await asyncio.Event().wait()
            return "0xsig"

        signer = MagicMock()
        signer.address = None
        signer.sign = never_signs
        authorizer = DecryptionAuthorizer(CODEC, verify_signatures=False)

        task = asyncio.create_task(
            authorizer.request_decryption(CODEC.encode(1.0), _make_session(), signer)
        )
        await waiting.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
