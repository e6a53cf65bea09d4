"""
Tests for the Scalar Codec backends.

Covers:
  - Round-trip for the reversible codec (exact)
  - Untagged numeric fallback and DecodeError
  - Paillier round-trip and homomorphic scaling
  - Paillier key persistence and foreign-key rejection
"""

from __future__ import annotations

import base64
import math

import orjson
import pytest

from biocredits.config import CodecConfig
from biocredits.errors import DecodeError
from biocredits.systems.cipher.codec import PaillierCodec, ReversibleCodec, build_codec, key_fingerprint


@pytest.fixture(scope="module")
def paillier_codec() -> PaillierCodec:
    # Small key keeps the suite fast; size does not change behaviour.
    return PaillierCodec.generate(key_bits=512)


class TestReversibleCodec:
    @pytest.mark.parametrize(
        "value",
        [0.0, 60.0, 66.00000000000001, -12.5, 1e-300, 1.7976931348623157e308, 0.1 + 0.2],
    )
    def test_round_trip_is_exact(self, value: float):
        codec = ReversibleCodec()
        assert codec.decode(codec.encode(value)) == value

    def test_encoded_value_is_tagged_and_opaque(self):
        codec = ReversibleCodec()
        encrypted = codec.encode(60.0)
        assert encrypted.startswith("FHE-")
        assert "60" not in encrypted

    def test_decodes_values_written_by_web_client(self):
        # The web client encoded with JavaScript's toString: "60" not "60.0"
        legacy = "FHE-" + base64.b64encode(b"60").decode()
        assert ReversibleCodec().decode(legacy) == 60.0

    def test_untagged_numeric_falls_back_to_parse(self):
        assert ReversibleCodec().decode("42.5") == 42.5

    def test_untagged_garbage_raises(self):
        with pytest.raises(DecodeError):
            ReversibleCodec().decode("not-a-number")

    def test_tagged_garbage_raises(self):
        with pytest.raises(DecodeError):
            ReversibleCodec().decode("FHE-!!!notbase64")

    def test_non_finite_fallback_raises(self):
        with pytest.raises(DecodeError):
            ReversibleCodec().decode("nan")
        with pytest.raises(DecodeError):
            ReversibleCodec().decode("inf")

    def test_encode_rejects_non_finite(self):
        with pytest.raises(DecodeError):
            ReversibleCodec().encode(math.inf)

    def test_non_string_input_raises(self):
        with pytest.raises(DecodeError):
            ReversibleCodec().decode(60.0)  # type: ignore[arg-type]

    def test_scale_multiplies(self):
        codec = ReversibleCodec()
        assert codec.decode(codec.scale(codec.encode(60.0), 1.1)) == pytest.approx(66.0)


class TestPaillierCodec:
    def test_round_trip(self, paillier_codec: PaillierCodec):
        encrypted = paillier_codec.encode(60.0)
        assert encrypted.startswith("PHE-")
        assert paillier_codec.decode(encrypted) == pytest.approx(60.0)

    def test_encryption_is_randomised(self, paillier_codec: PaillierCodec):
        assert paillier_codec.encode(60.0) != paillier_codec.encode(60.0)

    def test_scale_runs_on_ciphertext(self, paillier_codec: PaillierCodec):
        scaled = paillier_codec.scale(paillier_codec.encode(60.0), 1.1)
        assert scaled.startswith("PHE-")
        assert paillier_codec.decode(scaled) == pytest.approx(66.0)

    def test_public_only_codec_can_scale_but_not_decode(self, paillier_codec: PaillierCodec):
        public_only = PaillierCodec(paillier_codec.public_key)
        assert public_only.can_decrypt is False
        scaled = public_only.scale(public_only.encode(10.0), 2.0)
        with pytest.raises(DecodeError):
            public_only.decode(scaled)
        assert paillier_codec.decode(scaled) == pytest.approx(20.0)

    def test_legacy_plaintext_is_encrypted_when_scaled(self, paillier_codec: PaillierCodec):
        scaled = paillier_codec.scale("50", 0.9)
        assert scaled.startswith("PHE-")
        assert paillier_codec.decode(scaled) == pytest.approx(45.0)

    def test_malformed_ciphertext_raises(self, paillier_codec: PaillierCodec):
        bad = "PHE-" + base64.b64encode(b'{"c": "x"}').decode()
        with pytest.raises(DecodeError):
            paillier_codec.decode(bad)

    def test_other_codec_tag_is_not_numeric(self, paillier_codec: PaillierCodec):
        with pytest.raises(DecodeError):
            paillier_codec.decode(ReversibleCodec().encode(1.0))


class TestPaillierKeys:
    def test_ciphertext_from_another_keypair_is_rejected(self, paillier_codec: PaillierCodec):
        other = PaillierCodec.generate(key_bits=512)
        foreign = other.encode(60.0)

        with pytest.raises(DecodeError):
            paillier_codec.decode(foreign)
        with pytest.raises(DecodeError):
            paillier_codec.scale(foreign, 1.1)
        assert other.decode(foreign) == pytest.approx(60.0)

    def test_ciphertext_without_fingerprint_is_rejected(self, paillier_codec: PaillierCodec):
        number = paillier_codec.public_key.encrypt(60.0)
        body = orjson.dumps({"c": str(number.ciphertext()), "e": number.exponent})
        with pytest.raises(DecodeError):
            paillier_codec.decode("PHE-" + base64.b64encode(body).decode())

    def test_fingerprint_tracks_public_key(self, paillier_codec: PaillierCodec):
        public_only = PaillierCodec(paillier_codec.public_key)
        assert public_only.fingerprint == paillier_codec.fingerprint
        assert paillier_codec.fingerprint == key_fingerprint(paillier_codec.public_key)
        assert PaillierCodec.generate(key_bits=512).fingerprint != paillier_codec.fingerprint

    def test_key_file_round_trip(self, paillier_codec: PaillierCodec, tmp_path):
        path = tmp_path / "keys" / "paillier.json"
        paillier_codec.save_keypair(path)

        restored = PaillierCodec.load_keypair(path)

        assert restored.fingerprint == paillier_codec.fingerprint
        assert restored.can_decrypt
        assert restored.decode(paillier_codec.encode(42.0)) == pytest.approx(42.0)
        assert (path.stat().st_mode & 0o777) == 0o600

    def test_from_key_file_creates_once(self, tmp_path):
        path = tmp_path / "paillier.json"
        first = PaillierCodec.from_key_file(path, key_bits=512)
        second = PaillierCodec.from_key_file(path, key_bits=512)

        assert path.exists()
        assert second.fingerprint == first.fingerprint
        assert second.decode(first.scale(first.encode(60.0), 1.1)) == pytest.approx(66.0)

    def test_public_only_codec_cannot_be_saved(self, paillier_codec: PaillierCodec, tmp_path):
        with pytest.raises(ValueError):
            PaillierCodec(paillier_codec.public_key).save_keypair(tmp_path / "k.json")

    def test_unknown_key_file_version(self, tmp_path):
        path = tmp_path / "paillier.json"
        path.write_text('{"version": 99, "n": "15"}')
        with pytest.raises(ValueError):
            PaillierCodec.load_keypair(path)


class TestBuildCodec:
    def test_default_is_reversible(self):
        assert build_codec(CodecConfig()).name == "reversible"

    def test_paillier_backend(self):
        codec = build_codec(CodecConfig(backend="paillier", paillier_key_bits=512))
        assert isinstance(codec, PaillierCodec)
        assert codec.can_decrypt

    def test_paillier_key_path_is_shared_across_builds(self, tmp_path):
        config = CodecConfig(
            backend="paillier",
            paillier_key_bits=512,
            paillier_key_path=str(tmp_path / "paillier.json"),
        )
        writer = build_codec(config)
        reader = build_codec(config)
        assert reader.decode(writer.encode(60.0)) == pytest.approx(60.0)
