from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from cache.redis_backend import RedisBackend
from cache.status import CacheResult, CacheStatus
from common.crypto import CipherMode, Envelope
from common.errors import (
    InvalidArgumentError,
    KeyNotFoundError,
    MarshalError,
    StoreError,
    UnmarshalError,
)

from .config import StoreSettings
from .models import Record


logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


class RecordStore(ABC, Generic[R]):
    """
    Encrypted, TTL-bounded record store over a cache backend.

    Read paths
    - `get_existing(id)` is strict: every failure (miss, transport error,
      bad ciphertext, bad JSON) is raised as a `StoreError` subclass.
    - `_resolve(id, ...)` is the resilient path used by the subclasses' `get`:
      any failure fabricates a brand-new empty record (`is_new=True`). A
      backend outage therefore silently demotes an existing record to a new
      one; that is the expected behaviour, not a bug.

    Write path
    - `save(record)` serializes, encrypts and writes with `record.max_age` as
      TTL, raising on any failure.

    Concurrency: safe for concurrent use on different ids. Two concurrent
    get -> mutate -> save sequences on the same id race; the last save wins
    (there is no version check or compare-and-swap).
    """

    record_type: Type[R]

    def __init__(
        self,
        backend: RedisBackend,
        secret_key: str | bytes,
        default_max_age: int,
        *,
        cipher_mode: CipherMode | int = CipherMode.CBC,
    ) -> None:
        if default_max_age < 0:
            raise InvalidArgumentError("default_max_age must be >= 0")
        self._backend = backend
        # Invalid cipher modes fail here, at construction time
        self._envelope = Envelope(secret_key, cipher_mode)
        self._default_max_age = int(default_max_age)

    # -------- Construction helpers --------
    @classmethod
    def from_settings(cls, settings: StoreSettings, *, backend: Optional[RedisBackend] = None, **kwargs: Any):
        backend = backend or RedisBackend.from_url(settings.redis_url)
        return cls(
            backend,
            settings.secret_key,
            settings.default_max_age,
            cipher_mode=settings.cipher_mode,
            **kwargs,
        )

    @classmethod
    def from_env(cls, *, backend: Optional[RedisBackend] = None):
        return cls.from_settings(StoreSettings.from_env(), backend=backend)

    @property
    def backend(self) -> RedisBackend:
        return self._backend

    @property
    def default_max_age(self) -> int:
        return self._default_max_age

    @property
    def cipher_mode(self) -> CipherMode:
        return self._envelope.mode

    # -------- Codec --------
    def encode(self, record: R) -> str:
        """Serialize and encrypt `record` into the ciphertext stored in the cache."""
        try:
            plaintext = record.to_json()
        except (PydanticSerializationError, TypeError, ValueError) as ex:
            raise MarshalError(f"cannot serialize record {record.id}") from ex
        return self._envelope.encrypt(plaintext)

    def decode(self, ciphertext: str) -> R:
        """Decrypt and deserialize a stored ciphertext. Raises CryptoError/UnmarshalError."""
        plaintext = self._envelope.decrypt(ciphertext)
        try:
            return self.record_type.model_validate_json(plaintext)
        except ValidationError as ex:
            raise UnmarshalError("decrypted payload is not a valid record") from ex

    # -------- Retrieval --------
    def _fetch(self, record_id: str) -> R:
        result = self._backend.get(record_id, into=str)
        if not result.found:
            _raise_result(result, record_id)
        record = self.decode(result.value)
        if record.id != record_id:
            raise UnmarshalError(f"stored record id does not match cache key {record_id}")
        record.is_new = False
        return record

    def get_existing(self, record_id: str) -> R:
        """Return the stored record for `record_id` or raise the failure."""
        if not record_id:
            raise KeyNotFoundError("record does not exist")
        return self._fetch(record_id)

    @abstractmethod
    def _create(self, record_id: Optional[str], name: str, max_age: int) -> R:
        """Build a fresh empty record for the resilient read path."""

    def _resolve(self, record_id: Optional[str], name: str, max_age: Optional[int]) -> R:
        """Resilient lookup: the stored record, or a fresh one on any failure."""
        ttl = self._default_max_age if max_age is None else int(max_age)
        if not record_id:
            return self._create(record_id, name, ttl)
        try:
            return self._fetch(record_id)
        except KeyNotFoundError:
            # Most likely expired in the cache
            logger.debug("Record %s (%s) not found; creating a new one", record_id, name)
        except StoreError as ex:
            # Cache down, or data corrupted in the cache or by the cipher
            logger.warning(
                "Could not load record %s (%s), creating a new one: %s",
                record_id,
                name,
                ex,
            )
        return self._create(record_id, name, ttl)

    # -------- Persistence --------
    def _write(self, record: R) -> CacheResult:
        ciphertext = self.encode(record)
        result = self._backend.set_with_expiry(record.id, ciphertext, record.max_age)
        if result.status is not CacheStatus.UPDATED:
            _raise_result(result, record.id)
        logger.debug("Saved record %s (%s) ttl=%ss", record.id, record.name, record.max_age)
        return result

    def save(self, record: R) -> None:
        """Encrypt and write `record` with its max age as TTL."""
        self._write(record)

    def delete(self, record: R) -> int:
        """Remove the record from the cache; returns the number of keys removed."""
        result = self._backend.delete(record.id)
        result.raise_for_status()
        return int(result.value or 0)

    def close(self) -> None:
        """Close the backend connection once you are done."""
        self._backend.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _raise_result(result: CacheResult, key: str) -> None:
    if result.error is not None:
        raise result.error
    raise StoreError(f"unexpected cache status {result.status.name} for key {key}")
