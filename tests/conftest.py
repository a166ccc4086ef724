"""Shared fixtures: cheap key derivation so tests do not pay builtin PBKDF2 costs."""

import pytest

from tomb.core.store import SecretStore
from tomb.security.kdf import Config
from tomb.security.key import Key


@pytest.fixture
def fast_config() -> Config:
    return Config.from_list([10, 10, 10])


@pytest.fixture
def key(fast_config) -> Key:
    return Key.from_password("123456", fast_config)


@pytest.fixture
def other_key(fast_config) -> Key:
    return Key.from_password("654321", fast_config)


@pytest.fixture
def store(tmp_path, key, fast_config) -> SecretStore:
    return SecretStore.new(str(tmp_path / "tomb.json"), key, fast_config)
