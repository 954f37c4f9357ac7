from __future__ import annotations

import json
import logging
import os
import typing
from typing import Any, Optional

import redis
from pydantic import TypeAdapter, ValidationError
from redis.exceptions import RedisError

from common.errors import (
    BackendUnavailableError,
    InvalidArgumentError,
    KeyNotFoundError,
    MarshalError,
    UnmarshalError,
)

from .status import CacheResult, CacheStatus


logger = logging.getLogger(__name__)

ENV_REDIS_URL = "REDIS_URL"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def _is_output_type(into: Any) -> bool:
    # Plain classes and parametrized generics such as Dict[str, int]
    return isinstance(into, type) or typing.get_origin(into) is not None


class RedisBackend:
    """
    Typed wrapper over a synchronous redis-py client.

    - Values are JSON encoded on write and decoded/validated on read.
    - Every operation returns a `CacheResult`; transport errors become
      `BackendUnavailableError` inside FETCH_ERROR / UPDATE_ERROR results.
    - The client is long-lived and shared; redis-py's connection pool makes it
      safe to use from several threads.
    """

    def __init__(self, client: Any) -> None:
        self._client = client
        self._closed = False
        self._adapters: dict[Any, TypeAdapter] = {}

    # -------- Construction helpers --------
    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisBackend":
        return cls(redis.Redis.from_url(url, **kwargs))

    @classmethod
    def from_env(cls) -> "RedisBackend":
        url = os.environ.get(ENV_REDIS_URL) or DEFAULT_REDIS_URL
        return cls.from_url(url)

    @property
    def client(self) -> Any:
        return self._client

    def _adapter(self, into: Any) -> TypeAdapter:
        adapter = self._adapters.get(into)
        if adapter is None:
            adapter = TypeAdapter(into)
            self._adapters[into] = adapter
        return adapter

    # -------- Key/value --------
    def set(self, key: str, value: Any) -> CacheResult:
        """Write `value` with no expiry."""
        return self.set_with_expiry(key, value, 0)

    def set_with_expiry(self, key: str, value: Any, ttl_seconds: int) -> CacheResult:
        """Write `value`; the key is evicted `ttl_seconds` after the write.

        `ttl_seconds == 0` writes without expiry. Negative values are rejected
        with INVALID_ARGS.
        """
        if ttl_seconds < 0:
            return CacheResult(
                CacheStatus.INVALID_ARGS,
                error=InvalidArgumentError(f"ttl_seconds must be >= 0, got {ttl_seconds}"),
            )
        try:
            payload = json.dumps(value, separators=(",", ":"))
        except (TypeError, ValueError) as ex:
            return CacheResult(
                CacheStatus.MARSHAL_ERROR,
                error=_chain(MarshalError(f"cannot serialize value for key {key!r}"), ex),
            )

        try:
            if ttl_seconds > 0:
                self._client.set(key, payload, ex=int(ttl_seconds))
            else:
                self._client.set(key, payload)
        except RedisError as ex:
            logger.warning("Redis SET failed for key %s: %s", key, ex)
            return CacheResult(CacheStatus.UPDATE_ERROR, error=_unavailable("SET", ex))
        return CacheResult(CacheStatus.UPDATED)

    def get(self, key: str, into: Any = str) -> CacheResult:
        """Fetch `key` and decode it into `into` (a type or generic alias)."""
        if not _is_output_type(into):
            return CacheResult(
                CacheStatus.INVALID_ARGS,
                error=InvalidArgumentError("`into` must be a type to decode the stored value into"),
            )
        try:
            blob = self._client.get(key)
        except RedisError as ex:
            logger.warning("Redis GET failed for key %s: %s", key, ex)
            return CacheResult(CacheStatus.FETCH_ERROR, error=_unavailable("GET", ex))
        if blob is None:
            return CacheResult(CacheStatus.NOT_FOUND, error=KeyNotFoundError(f"key not found: {key}"))

        try:
            value = self._adapter(into).validate_json(blob)
        except ValidationError as ex:
            return CacheResult(
                CacheStatus.UNMARSHAL_ERROR,
                error=_chain(UnmarshalError(f"stored value for key {key!r} does not decode into {into!r}"), ex),
            )
        return CacheResult(CacheStatus.FOUND, value=value)

    def delete(self, key: str) -> CacheResult:
        """Remove `key`; `value` is the number of keys actually removed (0 or 1)."""
        try:
            count = int(self._client.delete(key))
        except RedisError as ex:
            return CacheResult(CacheStatus.UPDATE_ERROR, value=0, error=_unavailable("DEL", ex))
        return CacheResult(CacheStatus.UPDATED, value=count)

    # -------- Sets --------
    def add_to_set(self, set_name: str, member: str) -> CacheResult:
        """Add `member` to the set, creating it if needed. Duplicates are no-ops."""
        try:
            self._client.sadd(set_name, member)
        except RedisError as ex:
            return CacheResult(CacheStatus.UPDATE_ERROR, error=_unavailable("SADD", ex))
        return CacheResult(CacheStatus.UPDATED)

    def is_in_set(self, set_name: str, member: str) -> CacheResult:
        """FOUND if `member` is in the set, NOT_FOUND otherwise."""
        try:
            present = bool(self._client.sismember(set_name, member))
        except RedisError as ex:
            return CacheResult(CacheStatus.FETCH_ERROR, error=_unavailable("SISMEMBER", ex))
        if present:
            return CacheResult(CacheStatus.FOUND, value=True)
        return CacheResult(CacheStatus.NOT_FOUND, value=False)

    def remove_from_set(self, set_name: str, member: str) -> CacheResult:
        """Remove `member`; `value` is True only if it was present."""
        try:
            removed = int(self._client.srem(set_name, member))
        except RedisError as ex:
            return CacheResult(CacheStatus.UPDATE_ERROR, value=False, error=_unavailable("SREM", ex))
        return CacheResult(CacheStatus.UPDATED, value=removed == 1)

    # -------- Lifecycle --------
    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._client.close()

    def __enter__(self) -> "RedisBackend":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _chain(err: Exception, cause: BaseException) -> Exception:
    err.__cause__ = cause
    return err


def _unavailable(command: str, cause: BaseException) -> BackendUnavailableError:
    return _chain(BackendUnavailableError(f"Redis {command} failed: {cause}"), cause)  # type: ignore[return-value]


__all__ = ["RedisBackend", "ENV_REDIS_URL", "DEFAULT_REDIS_URL"]
