from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional


class CacheStatus(IntEnum):
    FOUND = 1
    NOT_FOUND = 2
    FETCH_ERROR = 3
    UPDATED = 4
    MARSHAL_ERROR = 5
    UNMARSHAL_ERROR = 6
    UPDATE_ERROR = 7
    INVALID_ARGS = 8


_ERROR_STATUSES = frozenset(
    {
        CacheStatus.FETCH_ERROR,
        CacheStatus.MARSHAL_ERROR,
        CacheStatus.UNMARSHAL_ERROR,
        CacheStatus.UPDATE_ERROR,
        CacheStatus.INVALID_ARGS,
    }
)


@dataclass(frozen=True)
class CacheResult:
    """
    Outcome of one cache backend operation.

    Keeps apart the three cases callers care about:
    - hit/success: `status` is FOUND or UPDATED, `value` carries the payload
      (decoded value, removed count, membership flag, ...)
    - miss: `status` is NOT_FOUND, `error` holds a KeyNotFoundError for callers
      that want to raise it
    - failure: any other status, `error` holds the exception
    """

    status: CacheStatus
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status in (CacheStatus.FOUND, CacheStatus.UPDATED)

    @property
    def found(self) -> bool:
        return self.status is CacheStatus.FOUND

    @property
    def missing(self) -> bool:
        return self.status is CacheStatus.NOT_FOUND

    @property
    def failed(self) -> bool:
        return self.status in _ERROR_STATUSES

    def raise_for_status(self) -> "CacheResult":
        """Raise the carried error unless the operation succeeded."""
        if not self.ok and self.error is not None:
            raise self.error
        return self
