"""
Exceptions for Tomb.
Every recoverable failure of the core derives from TombError so callers have a
single thing to catch.
"""


class TombError(Exception):
    # general container for errors
    pass


class StorageError(TombError):
    # raised when opening, reading or writing a file fails
    pass


class DecodeError(TombError):
    # raised on invalid base64 or a malformed structured document
    pass


class KeyMismatchError(TombError):
    # raised when the digest check fails: data was encrypted with another key
    pass


class TruncatedCiphertextError(KeyMismatchError, DecodeError):
    # raised when a blob is too short to even carry a key digest
    pass


class SecretNotFoundError(TombError):
    # raised when a path or id is not in the store
    pass


class PathMismatchError(TombError):
    # raised when a record is asked for a path other than its own
    pass


class EncryptionError(TombError):
    # raised when the cipher refuses to encrypt
    pass


class DecryptionError(TombError):
    # raised on malformed ciphertext or bad padding
    pass


class InvalidPatternError(TombError):
    # raised when a glob pattern cannot be compiled
    pass


class SecretExistsError(TombError):
    # raised when renaming a secret onto a path that is already taken
    pass
