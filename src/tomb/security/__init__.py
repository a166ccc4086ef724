"""Security package of Tomb: key derivation, keys and the AES-256-CBC engine.

- PBKDF2/HMAC-SHA256 key derivation driven by a cycles config
- Key objects carrying encryption key, MAC key and IV
- digest-framed AES-256-CBC/PKCS7 encryption and decryption
"""

from .kdf import Config, CyclesConfig
from .key import (
    ALGO,
    DIGEST_SIZE,
    Key,
    bytes_match,
    default_key_filename,
    hmac_sha256_digest,
)

__all__ = [
    "Config",
    "CyclesConfig",
    "ALGO",
    "DIGEST_SIZE",
    "Key",
    "bytes_match",
    "default_key_filename",
    "hmac_sha256_digest",
]
