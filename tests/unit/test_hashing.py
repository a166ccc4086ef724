"""Unit tests for secret path ids."""

import hashlib

from tomb.core.hashing import path_to_id


def test_path_to_id_is_md5_hex() -> None:
    assert path_to_id("email/password") == hashlib.md5(b"email/password").hexdigest()


def test_path_to_id_empty() -> None:
    assert path_to_id("") == "d41d8cd98f00b204e9800998ecf8427e"


def test_path_to_id_utf8() -> None:
    assert path_to_id("café") == hashlib.md5("café".encode("utf-8")).hexdigest()
