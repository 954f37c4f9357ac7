import os
import sys

import pytest


def pytest_configure():
    # Ensure `src/` is importable as top-level for `common.*`, `cache.*`, `state.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


class FakeRedis:
    """
    In-memory stand-in for a synchronous redis-py client.

    - Stores values as bytes like redis-py without decode_responses.
    - `now` is a manual clock; `advance()` moves it and expires keys.
    - `down = True` makes every command raise a redis ConnectionError.
    """

    def __init__(self) -> None:
        self._data = {}  # key -> (bytes, expires_at | None)
        self._sets = {}  # name -> set[str]
        self.now = 0.0
        self.down = False
        self.closed = 0
        self.last_ex = {}  # key -> ex passed to the last SET

    def _check(self) -> None:
        if self.down:
            from redis.exceptions import ConnectionError as RedisConnectionError

            raise RedisConnectionError("Connection refused")

    def _live(self, key):
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= self.now:
            del self._data[key]
            return None
        return value

    def advance(self, seconds: float) -> None:
        self.now += seconds

    # -------- redis-py surface --------
    def set(self, key, value, ex=None):
        self._check()
        if isinstance(value, str):
            value = value.encode("utf-8")
        self._data[key] = (value, self.now + ex if ex else None)
        self.last_ex[key] = ex
        return True

    def get(self, key):
        self._check()
        return self._live(key)

    def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                del self._data[key]
                removed += 1
        return removed

    def sadd(self, name, *members):
        self._check()
        s = self._sets.setdefault(name, set())
        before = len(s)
        s.update(members)
        return len(s) - before

    def sismember(self, name, member):
        self._check()
        return member in self._sets.get(name, set())

    def srem(self, name, *members):
        self._check()
        s = self._sets.get(name, set())
        removed = 0
        for m in members:
            if m in s:
                s.discard(m)
                removed += 1
        return removed

    def close(self):
        self.closed += 1

    # -------- test helpers --------
    def raw(self, key):
        return self._data[key][0]

    def put_raw(self, key, value: bytes) -> None:
        self._data[key] = (value, None)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def backend(fake_redis):
    from cache.redis_backend import RedisBackend

    return RedisBackend(fake_redis)


SECRET = "0123456789abcdef0123456789abcdef"


@pytest.fixture
def secret():
    return SECRET
