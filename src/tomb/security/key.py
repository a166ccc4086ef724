"""AES-256 key material, key fingerprints and the framed encrypt/decrypt protocol.

A :class:`Key` is an immutable triple of base64 strings (encryption key,
MAC key, IV). Every ciphertext it produces starts with the key's 32-byte
digest, ``HMAC-SHA256(mac, iv)``, so a wrong key is detected before any
cipher work is attempted::

    blob = digest (32 bytes) || AES-256-CBC/PKCS7(plaintext)

Key material layout (kept for compatibility with existing key files):

- 256 bytes are derived (or drawn from the OS RNG)
- ``key`` holds bytes ``[0:127]`` and ``mac`` holds bytes ``[128:255]``;
  byte 127 and byte 255 are unused
- AES-256 consumes the first 32 bytes of ``key``
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from tomb.core.exceptions import DecodeError, KeyMismatchError, StorageError, TruncatedCiphertextError
from tomb.core.jsonfile import absolute_path, load_document, save_document

from . import cipher
from .kdf import IV_SIZE, KEY_SIZE, Config


logger = logging.getLogger(__name__)

ALGO = cipher.ALGO
DIGEST_SIZE = 32

# path used when neither a key file nor TOMB_KEY is given
TOMB_KEY = "~/.tomb.key"


def default_key_filename() -> str:
    return str(absolute_path(os.environ.get("TOMB_KEY") or TOMB_KEY))


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(data: str | bytes) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"invalid base64: {exc}") from exc


def bytes_match(a: bytes, b: bytes) -> bool:
    """XOR-fold both buffers and OR the result; unequal lengths never match."""
    if len(a) != len(b):
        return False
    diff = 0
    for x, y in zip(a, b):
        diff |= x ^ y
    return diff == 0


def hmac_sha256_digest(mac_key: bytes, iv: bytes) -> bytes:
    return hmac.new(mac_key, iv, hashlib.sha256).digest()[:DIGEST_SIZE]


def generate_key_material() -> bytes:
    return os.urandom(KEY_SIZE)


def generate_iv() -> bytes:
    return os.urandom(IV_SIZE)


def _split_key_material(key_material: bytes) -> Tuple[bytes, bytes]:
    return key_material[0:127], key_material[128:255]


@dataclass(frozen=True)
class Key:
    key: str
    mac: str
    iv: str
    algo: str = ALGO
    magic: Optional[Tuple[int, int, int]] = None

    def __post_init__(self):
        if self.algo != ALGO:
            raise DecodeError(f"unsupported key algorithm {self.algo!r}, expected {ALGO!r}")
        for name in ("key", "mac", "iv"):
            try:
                b64decode(getattr(self, name))
            except DecodeError as exc:
                raise DecodeError(f"parse base64 {name}: {exc}") from exc
        if len(self.iv_bytes()) != IV_SIZE:
            raise DecodeError(f"iv must be {IV_SIZE} bytes long")
        if len(self.key_bytes()) < cipher.AES_KEY_SIZE:
            raise DecodeError(f"key must be at least {cipher.AES_KEY_SIZE} bytes long")
        if self.magic is not None:
            object.__setattr__(self, "magic", tuple(self.magic))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_password(cls, password: str | bytes, config: Config) -> "Key":
        """Derive a key deterministically from ``password`` and ``config``'s cycles."""
        logger.info(
            "deriving key from password (cycles key=%d salt=%d iv=%d)",
            config.cycles.key,
            config.cycles.salt,
            config.cycles.iv,
        )
        iv = config.derive_iv(password)
        salt = config.derive_salt(password)
        enc_key, mac_key = _split_key_material(config.derive_key(password, salt))
        return cls(
            key=b64encode(enc_key),
            mac=b64encode(mac_key),
            iv=b64encode(iv),
            magic=tuple(config.cycles.to_list()),
        )

    @classmethod
    def generate(cls) -> "Key":
        """Create a random key that is not bound to any password."""
        enc_key, mac_key = _split_key_material(generate_key_material())
        return cls(key=b64encode(enc_key), mac=b64encode(mac_key), iv=b64encode(generate_iv()))

    # ------------------------------------------------------------------
    # Raw material
    # ------------------------------------------------------------------

    def iv_bytes(self) -> bytes:
        return base64.b64decode(self.iv)

    def key_bytes(self) -> bytes:
        return base64.b64decode(self.key)

    def mac_bytes(self) -> bytes:
        return base64.b64decode(self.mac)

    def cipher_key(self) -> bytes:
        return self.key_bytes()[:cipher.AES_KEY_SIZE]

    # ------------------------------------------------------------------
    # Fingerprint
    # ------------------------------------------------------------------

    def digest(self) -> bytes:
        return hmac_sha256_digest(self.mac_bytes(), self.iv_bytes())

    def check_digest(self, candidate: bytes) -> bool:
        return bytes_match(bytes(candidate), self.digest())

    def owns_file(self, filename: str) -> bool:
        """Return True when ``filename`` starts with this key's digest."""
        path = absolute_path(filename)
        try:
            with open(path, "rb") as f:
                head = f.read(DIGEST_SIZE)
        except OSError as exc:
            raise StorageError(f"reading the first {DIGEST_SIZE} bytes from file {path}: {exc}") from exc
        return self.check_digest(head)

    # ------------------------------------------------------------------
    # Encryption
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: bytes) -> bytes:
        return self.digest() + cipher.encrypt(self.cipher_key(), self.iv_bytes(), bytes(plaintext))

    def decrypt(self, blob: bytes) -> bytes:
        if len(blob) < DIGEST_SIZE:
            raise TruncatedCiphertextError(
                f"ciphertext is {len(blob)} bytes long, too short to contain a {DIGEST_SIZE}-byte digest"
            )
        if not self.check_digest(blob[:DIGEST_SIZE]):
            logger.debug("digest mismatch, refusing to decrypt")
            raise KeyMismatchError("cannot decrypt: data was not encrypted with the provided key")
        return cipher.decrypt(self.cipher_key(), self.iv_bytes(), bytes(blob[DIGEST_SIZE:]))

    # ------------------------------------------------------------------
    # Key file
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algo": self.algo,
            "key": self.key,
            "mac": self.mac,
            "iv": self.iv,
            "magic": list(self.magic) if self.magic is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Key":
        try:
            magic = data.get("magic")
            if magic is not None and (
                not isinstance(magic, list) or len(magic) != 3 or not all(isinstance(m, int) for m in magic)
            ):
                raise ValueError("magic must be a list of three integers")
            return cls(
                algo=data.get("algo", ALGO),
                key=data["key"],
                mac=data["mac"],
                iv=data["iv"],
                magic=tuple(magic) if magic is not None else None,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise DecodeError(f"invalid key data: {exc}") from exc

    def export(self, filename: str) -> str:
        return save_document(filename, self.to_dict())

    @classmethod
    def import_file(cls, filename: str) -> "Key":
        return cls.from_dict(load_document(filename))

    def __repr__(self):
        # key material stays out of logs and tracebacks
        return f"Key(algo={self.algo!r}, magic={self.magic!r})"
