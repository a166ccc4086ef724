"""Unit tests for SecretRecord."""

from datetime import timezone

import pytest

from tomb.core.exceptions import DecodeError, KeyMismatchError, PathMismatchError
from tomb.core.hashing import path_to_id
from tomb.core.models import SecretRecord, digest_from_list, digest_to_list


@pytest.fixture
def record(key):
    return SecretRecord("email/password", key.encrypt(b"hunter2"), key, username="me")


def test_new_record_fields(record, key):
    assert record.path == "email/password"
    assert record.digest == key.digest()
    assert record.key_id() == path_to_id("email/password")
    assert record.username == "me"
    assert record.notes is None
    assert record.attributes == {}
    assert record.created_at == record.updated_at
    assert record.created_at.tzinfo is timezone.utc


def test_get_string(record, key):
    assert record.get_string("email/password", key) == "hunter2"
    assert record.get_bytes("email/password", key) == b"hunter2"


def test_get_base64_string(record, key):
    assert record.get_base64_string("email/password", key) == "aHVudGVyMg=="


def test_path_mismatch(record, key):
    with pytest.raises(PathMismatchError):
        record.get_bytes("other", key)


def test_wrong_key_keeps_error_type(record, other_key):
    with pytest.raises(KeyMismatchError, match="email/password"):
        record.get_string("email/password", other_key)


def test_invalid_utf8(key):
    rec = SecretRecord("bin", key.encrypt(b"\xff\xfe"), key)
    with pytest.raises(DecodeError):
        rec.get_string("bin", key)
    assert rec.get_bytes("bin", key) == b"\xff\xfe"


def test_update_keeps_created_at(record, key):
    created = record.created_at
    record.update("email/new", b"changed", key)
    assert record.path == "email/new"
    assert record.created_at == created
    assert record.updated_at >= created
    assert record.get_string("email/new", key) == "changed"


def test_metadata_setters(record):
    copy = record.with_notes("n")
    record.set_url("https://example.org")
    assert copy.notes == "n"
    assert record.notes == "n"
    assert record.url == "https://example.org"
    assert copy.url is None


def test_copy_is_independent(record):
    dolly = record.copy()
    dolly.attributes["x"] = "y"
    assert record.attributes == {}
    assert dolly != record


def test_dict_round_trip(record):
    doc = record.to_dict()
    assert doc["digest"] == list(record.digest)
    loaded = SecretRecord.from_dict(doc)
    assert loaded == record


@pytest.mark.parametrize("field", ["digest", "path", "value", "created_at"])
def test_from_dict_missing_field(record, field):
    doc = record.to_dict()
    del doc[field]
    with pytest.raises(DecodeError):
        SecretRecord.from_dict(doc)


def test_from_dict_bad_value(record):
    doc = record.to_dict()
    doc["value"] = "***"
    with pytest.raises(DecodeError):
        SecretRecord.from_dict(doc)


def test_digest_helpers():
    digest = bytes(range(32))
    assert digest_from_list(digest_to_list(digest)) == digest
    assert digest_from_list(digest.hex()) == digest
    with pytest.raises(ValueError):
        digest_from_list([1, 2, 3])
