"""
Cache backend over a remote key-value store (Redis).

Operations never raise on business-level outcomes; they return a
`CacheResult` whose `status` says found / missing / updated / failed.
"""

from .redis_backend import RedisBackend
from .status import CacheResult, CacheStatus

__all__ = ["RedisBackend", "CacheResult", "CacheStatus"]
