"""Password-based key derivation (PBKDF2/HMAC-SHA256) for Tomb keys."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from tomb.core.exceptions import DecodeError


logger = logging.getLogger(__name__)

# builtin number of PBKDF2 iterations for each derivation
KEY_CYCLES = 16000
SALT_CYCLES = 16000
IV_CYCLES = 16000

KEY_SIZE = 256
IV_SIZE = 16


def _to_bytes(password: str | bytes) -> bytes:
    if isinstance(password, str):
        return password.encode("utf-8")
    return bytes(password)


def pbkdf2_sha256(password: str | bytes, salt: bytes, iterations: int, length: int) -> bytes:
    """Run PBKDF2 keyed by ``password`` over ``salt`` and return ``length`` bytes."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(_to_bytes(password))


@dataclass(frozen=True)
class CyclesConfig:
    """PBKDF2 iteration counts for the key, salt and iv derivations."""

    key: int = KEY_CYCLES
    salt: int = SALT_CYCLES
    iv: int = IV_CYCLES

    def __post_init__(self):
        for name in ("key", "salt", "iv"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} cycles must be a positive integer, got {value!r}")

    def to_list(self) -> List[int]:
        return [self.key, self.salt, self.iv]

    @classmethod
    def from_list(cls, values: Sequence[int]) -> "CyclesConfig":
        if len(values) != 3:
            raise ValueError(f"expected 3 cycle counts (key, salt, iv), got {len(values)}")
        return cls(key=values[0], salt=values[1], iv=values[2])


@dataclass(frozen=True)
class Config:
    """Key derivation configuration.

    Holds the iteration counts used by :meth:`tomb.security.key.Key.from_password`
    and, optionally, the default key file path. Built once at startup and
    treated as read-only afterwards.
    """

    cycles: CyclesConfig
    default_key_path: Optional[str] = None

    @classmethod
    def builtin(cls, default_key_path: Optional[str] = None) -> "Config":
        return cls(cycles=CyclesConfig(), default_key_path=default_key_path)

    @classmethod
    def from_list(cls, values: Sequence[int]) -> "Config":
        return cls(cycles=CyclesConfig.from_list(values))

    def derive_iv(self, password: str | bytes) -> bytes:
        password = _to_bytes(password)
        return pbkdf2_sha256(password, password, self.cycles.iv, IV_SIZE)

    def derive_salt(self, password: str | bytes) -> bytes:
        # The password doubles as its own salt input; nothing random is stored.
        password = _to_bytes(password)
        return pbkdf2_sha256(password, password, self.cycles.salt, KEY_SIZE)

    def derive_key(self, password: str | bytes, salt: bytes) -> bytes:
        return pbkdf2_sha256(password, salt, self.cycles.key, KEY_SIZE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycles": {"key": self.cycles.key, "salt": self.cycles.salt, "iv": self.cycles.iv},
            "default_key_path": self.default_key_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        try:
            cycles = data["cycles"]
            default_key_path = data.get("default_key_path")
            if default_key_path is not None and not isinstance(default_key_path, str):
                raise TypeError("default_key_path must be a string")
            return cls(
                cycles=CyclesConfig(key=cycles["key"], salt=cycles["salt"], iv=cycles["iv"]),
                default_key_path=default_key_path,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise DecodeError(f"invalid key derivation config: {exc}") from exc
