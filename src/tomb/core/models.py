"""
Data model for a single encrypted secret stored in a tomb.
"""

import copy
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from tomb.security.key import DIGEST_SIZE, Key, b64decode, b64encode

from .exceptions import DecodeError, EncryptionError, PathMismatchError, TombError
from .hashing import path_to_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def digest_to_list(digest: bytes):
    return list(digest)


def digest_from_list(value) -> bytes:
    if isinstance(value, str):
        # hex form is accepted for hand-written files
        value = bytes.fromhex(value)
    digest = bytes(value)
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"digest must be {DIGEST_SIZE} bytes long, got {len(digest)}")
    return digest


class SecretRecord:
    """
    One named secret: the base64 ciphertext plus the digest of the key that
    produced it, optional metadata and timestamps.
    """

    __slots__ = (
        'digest',
        'path',
        'value',
        'notes',
        'username',
        'url',
        'attributes',
        'created_at',
        'updated_at',
    )

    def __init__(self, path, ciphertext, key, notes=None, username=None, url=None, attributes=None):
        now = utcnow()
        self.digest = key.digest()
        self.path = path
        self.value = b64encode(ciphertext)
        self.notes = notes
        self.username = username
        self.url = url
        self.attributes = dict(attributes) if attributes is not None else {}
        self.created_at = now
        self.updated_at = now

    def key_id(self) -> str:
        return path_to_id(self.path)

    def set_notes(self, notes: Optional[str]) -> None:
        self.notes = notes

    def with_notes(self, notes: Optional[str]) -> "SecretRecord":
        self.set_notes(notes)
        return self.copy()

    def set_username(self, username: Optional[str]) -> None:
        self.username = username

    def with_username(self, username: Optional[str]) -> "SecretRecord":
        self.set_username(username)
        return self.copy()

    def set_url(self, url: Optional[str]) -> None:
        self.url = url

    def with_url(self, url: Optional[str]) -> "SecretRecord":
        self.set_url(url)
        return self.copy()

    def value_bytes(self) -> bytes:
        return b64decode(self.value)

    def update(self, path: str, plaintext: bytes, key: Key) -> None:
        """ Re-encrypt ``plaintext`` with ``key`` and take over ``path``. """
        try:
            ciphertext = key.encrypt(plaintext)
        except EncryptionError as e:
            raise EncryptionError(f"cannot encrypt data for path {path} with the provided key: {e}") from e
        self.digest = key.digest()
        self.path = path
        self.value = b64encode(ciphertext)
        self.updated_at = utcnow()

    def get_bytes(self, path: str, key: Key) -> bytes:
        if path != self.path:
            raise PathMismatchError(f"path {path} does not match {self.path}")
        try:
            return key.decrypt(self.value_bytes())
        except TombError as e:
            # same subclass, more context
            raise type(e)(f"cannot decrypt value from secret {path} with the provided key: {e}") from e

    def get_string(self, path: str, key: Key) -> str:
        raw = self.get_bytes(path, key)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"cannot convert value from key {path} to a valid utf-8 string: {e}") from e

    def get_base64_string(self, path: str, key: Key) -> str:
        return b64encode(self.get_bytes(path, key))

    def copy(self) -> "SecretRecord":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'digest': digest_to_list(self.digest),
            'path': self.path,
            'value': self.value,
            'notes': self.notes,
            'username': self.username,
            'url': self.url,
            'attributes': self.attributes,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecretRecord":
        try:
            record = cls.__new__(cls)
            record.digest = digest_from_list(data['digest'])
            record.path = data['path']
            record.value = data['value']
            if not isinstance(record.path, str) or not isinstance(record.value, str):
                raise TypeError("path and value must be strings")
            b64decode(record.value)
            record.notes = data.get('notes')
            record.username = data.get('username')
            record.url = data.get('url')
            attributes = data.get('attributes')
            record.attributes = {str(k): str(v) for k, v in attributes.items()} if attributes else {}
            record.created_at = _parse_timestamp(data['created_at'])
            record.updated_at = _parse_timestamp(data['updated_at'])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"invalid secret record: {e}") from e
        return record

    def __repr__(self):
        return f"SecretRecord(path={self.path!r}, updated_at={self.updated_at.isoformat()!r})"

    def __eq__(self, other):
        if not isinstance(other, SecretRecord):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in self.__slots__)

    __hash__ = None
