"""Streaming AES-256-CBC with PKCS#7 padding.

Plaintext and ciphertext are pushed through the cipher in fixed-size chunks
(BLOCK_SIZE bytes) until the context is finalized, so large payloads never
need a second full-size buffer for padding. These functions know nothing
about key digests; :class:`tomb.security.key.Key` frames the output.
"""
from __future__ import annotations

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from tomb.core.exceptions import DecryptionError, EncryptionError


ALGO = "aes-256-cbc"
AES_KEY_SIZE = 32
AES_BLOCK_BITS = 128
BLOCK_SIZE = 4096


def _chunks(data: bytes, chunk_size: int):
    view = memoryview(data)
    for offset in range(0, len(view), chunk_size):
        yield view[offset:offset + chunk_size]


def _cipher(key: bytes, iv: bytes) -> Cipher:
    return Cipher(algorithms.AES(key), modes.CBC(iv))


def encrypt(key: bytes, iv: bytes, plaintext: bytes, chunk_size: int = BLOCK_SIZE) -> bytes:
    """Return AES-256-CBC(PKCS7(plaintext)) under ``key``/``iv``."""
    try:
        encryptor = _cipher(key, iv).encryptor()
        padder = padding.PKCS7(AES_BLOCK_BITS).padder()
        out = bytearray()
        for chunk in _chunks(plaintext, chunk_size):
            out += encryptor.update(padder.update(chunk))
        out += encryptor.update(padder.finalize())
        out += encryptor.finalize()
    except ValueError as exc:
        raise EncryptionError(f"failed to encrypt data: {exc}") from exc
    return bytes(out)


def decrypt(key: bytes, iv: bytes, ciphertext: bytes, chunk_size: int = BLOCK_SIZE) -> bytes:
    """Reverse :func:`encrypt`. Bad length or padding raises DecryptionError."""
    try:
        decryptor = _cipher(key, iv).decryptor()
        unpadder = padding.PKCS7(AES_BLOCK_BITS).unpadder()
        out = bytearray()
        for chunk in _chunks(ciphertext, chunk_size):
            out += unpadder.update(decryptor.update(chunk))
        out += unpadder.update(decryptor.finalize())
        out += unpadder.finalize()
    except ValueError as exc:
        raise DecryptionError(f"cannot decrypt data: {exc}") from exc
    return bytes(out)
