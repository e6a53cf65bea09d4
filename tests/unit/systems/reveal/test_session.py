"""Tests for the decryption session context and its challenge message."""

from __future__ import annotations

import re

from biocredits.systems.reveal.session import SessionContext, generate_public_key


def _make_session(**overrides) -> SessionContext:
    fields = {
        "public_key": "0xabc",
        "contract_address": "0x1234",
        "chain_id": 11155111,
        "start_timestamp": 1_700_000_000,
        "duration_days": 30,
    }
    fields.update(overrides)
    return SessionContext(**fields)


class TestChallengeMessage:
    def test_fixed_field_order(self):
        assert _make_session().challenge_message() == (
            "publickey:0xabc\n"
            "contractAddresses:0x1234\n"
            "contractsChainId:11155111\n"
            "startTimestamp:1700000000\n"
            "durationDays:30"
        )

    def test_identical_across_calls(self):
        session = SessionContext.create("0x1234", 1)
        assert session.challenge_message() == session.challenge_message()


class TestCreate:
    def test_public_key_shape(self):
        key = generate_public_key()
        assert re.fullmatch(r"0x[0-9a-f]{2000}", key)

    def test_sessions_get_distinct_keys(self):
        assert SessionContext.create("0x1", 1).public_key != SessionContext.create("0x1", 1).public_key

    def test_defaults(self):
        session = SessionContext.create("0x1234", 8009, duration_days=7)
        assert session.duration_days == 7
        assert session.chain_id == 8009
        assert session.start_timestamp > 0


class TestExpiry:
    def test_window(self):
        session = _make_session(duration_days=1)
        assert session.expires_at == 1_700_000_000 + 86_400
        assert not session.is_expired(now=1_700_000_000 + 86_399)
        assert session.is_expired(now=1_700_000_000 + 86_400)

    def test_fresh_session_is_live(self):
        assert not SessionContext.create("0x1", 1).is_expired()
