from __future__ import annotations

from typing import Dict

import pytest

from cache.redis_backend import RedisBackend
from cache.status import CacheResult, CacheStatus
from common.errors import (
    BackendUnavailableError,
    InvalidArgumentError,
    KeyNotFoundError,
    MarshalError,
    UnmarshalError,
)


def test_set_then_get_found(backend):
    assert backend.set("k", "v").status is CacheStatus.UPDATED

    res = backend.get("k", into=str)
    assert res.status is CacheStatus.FOUND
    assert res.found and res.ok
    assert res.value == "v"


def test_get_into_generic_shape(backend):
    backend.set("m", {"a": 1, "b": 2})
    res = backend.get("m", into=Dict[str, int])
    assert res.found
    assert res.value == {"a": 1, "b": 2}


def test_get_missing_key(backend):
    res = backend.get("nope")
    assert res.status is CacheStatus.NOT_FOUND
    assert res.missing and not res.failed
    assert isinstance(res.error, KeyNotFoundError)


def test_get_transport_failure(backend, fake_redis):
    fake_redis.down = True
    res = backend.get("k")
    assert res.status is CacheStatus.FETCH_ERROR
    assert isinstance(res.error, BackendUnavailableError)
    with pytest.raises(BackendUnavailableError):
        res.raise_for_status()


def test_get_unmarshal_error(backend, fake_redis):
    fake_redis.put_raw("bad", b"{not json")
    res = backend.get("bad")
    assert res.status is CacheStatus.UNMARSHAL_ERROR
    assert isinstance(res.error, UnmarshalError)

    backend.set("num", "text")
    assert backend.get("num", into=int).status is CacheStatus.UNMARSHAL_ERROR


def test_get_requires_a_type(backend):
    backend.set("k", "v")
    res = backend.get("k", into="str")
    assert res.status is CacheStatus.INVALID_ARGS
    assert isinstance(res.error, InvalidArgumentError)


def test_set_with_expiry_passes_ttl(backend, fake_redis):
    assert backend.set_with_expiry("k", "v", 60).status is CacheStatus.UPDATED
    assert fake_redis.last_ex["k"] == 60

    fake_redis.advance(59)
    assert backend.get("k").found
    fake_redis.advance(1)
    assert backend.get("k").missing


def test_zero_ttl_means_no_expiry(backend, fake_redis):
    backend.set_with_expiry("k", "v", 0)
    assert fake_redis.last_ex["k"] is None
    fake_redis.advance(10_000_000)
    assert backend.get("k").found


def test_negative_ttl_is_rejected(backend, fake_redis):
    res = backend.set_with_expiry("k", "v", -1)
    assert res.status is CacheStatus.INVALID_ARGS
    assert "k" not in fake_redis.last_ex


def test_set_marshal_error(backend):
    res = backend.set("k", object())
    assert res.status is CacheStatus.MARSHAL_ERROR
    assert isinstance(res.error, MarshalError)


def test_set_update_error(backend, fake_redis):
    fake_redis.down = True
    res = backend.set_with_expiry("k", "v", 5)
    assert res.status is CacheStatus.UPDATE_ERROR
    assert isinstance(res.error, BackendUnavailableError)


def test_delete_reports_count(backend):
    backend.set("k", "v")
    assert backend.delete("k").value == 1
    assert backend.delete("k").value == 0


def test_set_operations(backend):
    assert backend.add_to_set("revoked", "a").ok
    assert backend.add_to_set("revoked", "a").ok  # duplicate is a no-op

    assert backend.is_in_set("revoked", "a").status is CacheStatus.FOUND
    assert backend.is_in_set("revoked", "b").status is CacheStatus.NOT_FOUND

    assert backend.remove_from_set("revoked", "a").value is True
    assert backend.remove_from_set("revoked", "a").value is False
    assert backend.is_in_set("revoked", "a").missing


def test_set_operations_surface_transport_errors(backend, fake_redis):
    fake_redis.down = True
    assert backend.add_to_set("s", "a").status is CacheStatus.UPDATE_ERROR
    assert backend.is_in_set("s", "a").status is CacheStatus.FETCH_ERROR
    res = backend.remove_from_set("s", "a")
    assert res.status is CacheStatus.UPDATE_ERROR and res.value is False


def test_close_is_idempotent(fake_redis):
    with RedisBackend(fake_redis) as b:
        b.close()
    assert fake_redis.closed == 1


def test_raise_for_status_passes_success_through():
    res = CacheResult(CacheStatus.UPDATED, value=3)
    assert res.raise_for_status() is res
