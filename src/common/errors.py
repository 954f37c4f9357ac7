from __future__ import annotations


class StoreError(RuntimeError):
    """Base error for the record store and its cache backend."""


class BackendUnavailableError(StoreError):
    """The cache transport failed (connection refused, timeout, protocol error)."""


class KeyNotFoundError(StoreError):
    """The requested key does not exist (never written, deleted, or expired)."""


class MarshalError(StoreError):
    """A value could not be serialized before writing it to the cache."""


class UnmarshalError(StoreError):
    """A stored payload could not be deserialized into the requested shape."""


class CryptoError(StoreError):
    """Base error for the encryption envelope."""


class KeyLengthError(CryptoError):
    """The configured key is not exactly 32 bytes."""


class MalformedCiphertextError(CryptoError):
    """Ciphertext is not valid base64 or is shorter than one cipher block."""


class PaddingError(CryptoError):
    """Block-mode plaintext carries invalid PKCS#7 padding."""


class InvalidArgumentError(StoreError, ValueError):
    """The caller passed an argument the operation cannot work with."""


__all__ = [
    "StoreError",
    "BackendUnavailableError",
    "KeyNotFoundError",
    "MarshalError",
    "UnmarshalError",
    "CryptoError",
    "KeyLengthError",
    "MalformedCiphertextError",
    "PaddingError",
    "InvalidArgumentError",
]
