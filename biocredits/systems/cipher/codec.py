"""
BioCredits — Scalar Codec

Encrypted values are opaque strings: the only way to produce one is
ScalarCodec.encode, the only way to read one is ScalarCodec.decode (or the
Transform Engine, which never hands plaintext to its caller).

Two backends share the interface:
  ReversibleCodec  "FHE-" + base64(shortest round-trip decimal). NOT a
                   security primitive; a stand-in for a ciphertext.
  PaillierCodec    "PHE-" + base64(JSON{c, e, k}) of a Paillier ciphertext
                   and the fingerprint of the key that produced it.
                   Additively homomorphic, so scale() runs on the
                   ciphertext without decrypting.

Untagged strings fall back to a plain numeric parse so values written
before encoding was introduced stay readable.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import math
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

import orjson
import structlog
from phe import paillier

from biocredits.errors import DecodeError

if TYPE_CHECKING:
    from biocredits.config import CodecConfig

logger = structlog.get_logger("biocredits.cipher.codec")

EncryptedValue = str

_KEY_FILE_VERSION = 1


def _require_finite(value: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Not a number: {value!r}") from e
    if not math.isfinite(number):
        raise DecodeError(f"Not a finite number: {value!r}")
    return number


class ScalarCodec(ABC):
    """
    Strategy base class for encrypted-scalar representations.

    Subclasses supply the tag and the payload codec; tag handling, the
    untagged numeric fallback and finiteness checks live here.
    """

    tag: str = ""

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable identifier for this backend."""
        ...

    @abstractmethod
    def _encode_payload(self, value: float) -> str: ...

    @abstractmethod
    def _decode_payload(self, payload: str) -> float: ...

    def encode(self, value: float) -> EncryptedValue:
        return self.tag + self._encode_payload(_require_finite(value))

    def decode(self, value: EncryptedValue) -> float:
        if not isinstance(value, str):
            raise DecodeError(f"Encrypted value must be a string, got {type(value).__name__}")
        if self.is_encrypted(value):
            return _require_finite(self._decode_payload(value[len(self.tag):]))
        try:
            return _require_finite(float(value.strip()))
        except DecodeError:
            raise DecodeError("Value carries no codec tag and is not numeric") from None

    def is_encrypted(self, value: str) -> bool:
        return value.startswith(self.tag)

    def scale(self, value: EncryptedValue, factor: float) -> EncryptedValue:
        """Multiply an encrypted value by a plaintext factor."""
        return self.encode(self.decode(value) * factor)


class ReversibleCodec(ScalarCodec):
    """Base64 of the float's repr. Exact round-trip for every finite float."""

    tag = "FHE-"

    @property
    def name(self) -> str:
        return "reversible"

    def _encode_payload(self, value: float) -> str:
        return base64.b64encode(repr(value).encode("ascii")).decode("ascii")

    def _decode_payload(self, payload: str) -> float:
        try:
            text = base64.b64decode(payload, validate=True).decode("ascii")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise DecodeError("Malformed encrypted value") from e
        return _require_finite(text)


class PaillierCodec(ScalarCodec):
    """
    Paillier-backed codec (phe).

    Encoding needs only the public key; decoding needs the private key.
    A codec built from a public key alone can still create and scale
    values, which is what the verify path requires.

    Every ciphertext carries a fingerprint of the public key it was
    produced under. A value from another keypair raises DecodeError
    instead of decrypting (or scaling) into garbage. Keys must therefore
    outlive the process: see from_key_file().
    """

    tag = "PHE-"

    def __init__(
        self,
        public_key: paillier.PaillierPublicKey,
        private_key: paillier.PaillierPrivateKey | None = None,
    ) -> None:
        self._public_key = public_key
        self._private_key = private_key
        self._fingerprint = key_fingerprint(public_key)

    @classmethod
    def generate(cls, key_bits: int = 2048) -> PaillierCodec:
        public_key, private_key = paillier.generate_paillier_keypair(n_length=key_bits)
        codec = cls(public_key, private_key)
        logger.info("paillier_keypair_generated", key_bits=key_bits, fingerprint=codec.fingerprint)
        return codec

    # ── Key persistence ───────────────────────────────────────

    @classmethod
    def from_key_file(cls, path: str | Path, key_bits: int = 2048) -> PaillierCodec:
        """Load the keypair at path, or generate one and save it there."""
        key_path = Path(path)
        if key_path.exists():
            return cls.load_keypair(key_path)
        codec = cls.generate(key_bits)
        codec.save_keypair(key_path)
        return codec

    @classmethod
    def load_keypair(cls, path: str | Path) -> PaillierCodec:
        """
        Read a key file written by save_keypair().

        A file holding only "n" yields an encrypt-and-scale codec.
        """
        key_path = Path(path)
        raw = orjson.loads(key_path.read_bytes())
        version = raw.get("version", 0)
        if version != _KEY_FILE_VERSION:
            raise ValueError(f"Unsupported Paillier key file version: {version}")

        public_key = paillier.PaillierPublicKey(int(raw["n"]))
        private_key = None
        if raw.get("p") and raw.get("q"):
            private_key = paillier.PaillierPrivateKey(public_key, int(raw["p"]), int(raw["q"]))

        codec = cls(public_key, private_key)
        logger.info(
            "paillier_keypair_loaded",
            path=str(key_path),
            fingerprint=codec.fingerprint,
            can_decrypt=codec.can_decrypt,
        )
        return codec

    def save_keypair(self, path: str | Path) -> None:
        """Write the keypair as JSON, readable by the owner only."""
        if self._private_key is None:
            raise ValueError("Cannot save a Paillier keypair without its private key")
        key_path = Path(path)
        key_path.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "version": _KEY_FILE_VERSION,
            "n": str(self._public_key.n),
            "p": str(self._private_key.p),
            "q": str(self._private_key.q),
        }
        key_path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        key_path.chmod(0o600)
        logger.info("paillier_keypair_saved", path=str(key_path), fingerprint=self.fingerprint)

    # ── Codec ─────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return "paillier"

    @property
    def public_key(self) -> paillier.PaillierPublicKey:
        return self._public_key

    @property
    def fingerprint(self) -> str:
        return self._fingerprint

    @property
    def can_decrypt(self) -> bool:
        return self._private_key is not None

    def _serialize(self, number: paillier.EncryptedNumber) -> str:
        body = {
            "c": str(number.ciphertext(be_secure=True)),
            "e": number.exponent,
            "k": self._fingerprint,
        }
        return base64.b64encode(orjson.dumps(body)).decode("ascii")

    def _deserialize(self, payload: str) -> paillier.EncryptedNumber:
        try:
            body = orjson.loads(base64.b64decode(payload, validate=True))
            ciphertext, exponent = int(body["c"]), int(body["e"])
            fingerprint = body.get("k")
        except (binascii.Error, orjson.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError("Malformed Paillier ciphertext") from e

        if fingerprint != self._fingerprint:
            logger.warning(
                "paillier_key_mismatch",
                expected=self._fingerprint,
                found=fingerprint,
            )
            raise DecodeError("Ciphertext was produced under a different Paillier key")
        return paillier.EncryptedNumber(self._public_key, ciphertext, exponent)

    def _encode_payload(self, value: float) -> str:
        return self._serialize(self._public_key.encrypt(value))

    def _decode_payload(self, payload: str) -> float:
        if self._private_key is None:
            raise DecodeError("Paillier codec has no private key; cannot decrypt")
        number = self._deserialize(payload)
        try:
            return float(self._private_key.decrypt(number))
        except (OverflowError, ValueError) as e:
            raise DecodeError("Paillier ciphertext does not decrypt to a number") from e

    def scale(self, value: EncryptedValue, factor: float) -> EncryptedValue:
        if not self.is_encrypted(value):
            # Legacy plaintext: encrypt first, then stay on the ciphertext path.
            value = self.encode(self.decode(value))
        number = self._deserialize(value[len(self.tag):])
        return self.tag + self._serialize(number * _require_finite(factor))


def key_fingerprint(public_key: paillier.PaillierPublicKey) -> str:
    """Short stable identifier of a Paillier public key (sha256 of n)."""
    return hashlib.sha256(str(public_key.n).encode("ascii")).hexdigest()[:16]


def build_codec(config: CodecConfig) -> ScalarCodec:
    """Construct the configured codec backend."""
    if config.backend == "reversible":
        return ReversibleCodec()
    if config.backend == "paillier":
        if config.paillier_key_path:
            return PaillierCodec.from_key_file(config.paillier_key_path, config.paillier_key_bits)
        logger.warning(
            "paillier_ephemeral_keypair",
            hint="Values written with this key are unreadable after restart. "
                 "Set codec.paillier_key_path (or BIOCREDITS_PAILLIER_KEY_PATH).",
        )
        return PaillierCodec.generate(config.paillier_key_bits)
    raise ValueError(f"Unsupported codec backend: {config.backend}")
