from __future__ import annotations

import base64
import binascii
from abc import abstractmethod
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


# Tag used to carry bytes through JSON: {"$bytes": "<base64url>"}
BYTES_TAG = "$bytes"
# Wraps user dicts that would otherwise read back as a tag: {"$escaped": {...}}
ESCAPE_TAG = "$escaped"
_TAGS = (BYTES_TAG, ESCAPE_TAG)


def _is_tagged(value: Any) -> bool:
    return isinstance(value, dict) and len(value) == 1 and next(iter(value)) in _TAGS


def _wrap_bytes(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return {BYTES_TAG: base64.urlsafe_b64encode(bytes(value)).decode("ascii")}
    if _is_tagged(value):
        return {ESCAPE_TAG: value}
    return value


def _unwrap_bytes(value: Any) -> Any:
    if not _is_tagged(value):
        return value
    inner = value.get(ESCAPE_TAG)
    if isinstance(inner, dict):
        return inner
    encoded = value.get(BYTES_TAG)
    if not isinstance(encoded, str):
        raise ValueError(f"malformed tagged value: {value!r}")
    try:
        return base64.urlsafe_b64decode(encoded)
    except binascii.Error as ex:
        raise ValueError(f"invalid {BYTES_TAG} payload") from ex


def _matches(value: Any, kind: type) -> bool:
    # bool is an int subclass; never hand a bool out as an int (or a float)
    if isinstance(value, bool):
        return kind is bool
    if kind is float:
        return isinstance(value, (int, float))
    if kind is bytes:
        return isinstance(value, (bytes, bytearray))
    return isinstance(value, kind)


class Record(BaseModel):
    """
    Mutable key-value payload persisted (encrypted) under `id`.

    Fields
    - id: cache key; unique and URL-safe.
    - name: kind of record (cookie or header name for sessions and tokens).
    - values: the caller's data, serialized as `value`. Never None.
    - is_new: True when the store fabricated this record instead of loading it.

    `Record` is abstract (`max_age` is left to the variants); instantiate
    `Session`, `Token` or `Item`.

    Notes
    - Mutators and accessors only touch `values` in memory; call the store's
      `save()` to persist changes.
    - Accessors are type-checked reads: a value of the wrong runtime type
      yields the supplied default instead of an error.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    values: Dict[str, Any] = Field(default_factory=dict, alias="value")
    is_new: bool = False

    @field_validator("values", mode="before")
    @classmethod
    def _load_values(cls, raw: Any) -> Any:
        if raw is None:
            return {}
        if isinstance(raw, dict):
            return {str(k): _unwrap_bytes(v) for k, v in raw.items()}
        return raw

    @field_serializer("values")
    def _dump_values(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return {k: _wrap_bytes(v) for k, v in values.items()}

    @property
    @abstractmethod
    def max_age(self) -> int:
        """TTL in seconds used when the record is saved."""

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, text: str | bytes) -> "Record":
        return cls.model_validate_json(text)

    # -------- Mutators --------
    def store_int(self, key: str, val: int) -> None:
        self.values[key] = int(val)

    def store_text(self, key: str, val: str) -> None:
        self.values[key] = val

    def store_bool(self, key: str, val: bool) -> None:
        self.values[key] = bool(val)

    def store_float(self, key: str, val: float) -> None:
        self.values[key] = float(val)

    def store_bytes(self, key: str, val: bytes) -> None:
        self.values[key] = bytes(val)

    def store_any(self, key: str, val: Any) -> None:
        self.values[key] = val

    def delete_any(self, key: str) -> None:
        """Drop `key` from the values; persisted only by the next `save()`."""
        self.values.pop(key, None)

    # -------- Accessors --------
    def lookup(self, key: str, kind: Type[Any], default: Any) -> Tuple[Any, bool]:
        """Return `(value, default_used)` for a type-checked read of `key`."""
        if key in self.values:
            val = self.values[key]
            if _matches(val, kind):
                if kind is float:
                    return float(val), False
                if kind is bytes:
                    return bytes(val), False
                return val, False
        return default, True

    def get_text(self, key: str, default: str = "") -> str:
        return self.lookup(key, str, default)[0]

    def get_int(self, key: str, default: int = 0) -> int:
        return self.lookup(key, int, default)[0]

    def get_bool(self, key: str, default: bool = False) -> bool:
        return self.lookup(key, bool, default)[0]

    def get_float(self, key: str, default: float = 0.0) -> float:
        return self.lookup(key, float, default)[0]

    def get_bytes(self, key: str, default: bytes = b"") -> bytes:
        return self.lookup(key, bytes, default)[0]

    def get_any(self, key: str) -> Any:
        return self.values.get(key)


class SameSite(str, Enum):
    DEFAULT = "default"
    LAX = "lax"
    STRICT = "strict"
    NONE = "none"


class CookieOptions(BaseModel):
    """
    Cookie attributes for a web session.

    max_age semantics (cookie side):
    - 0: no Max-Age attribute; cookie dies with the browser session
    - < 0: expire the cookie immediately
    - > 0: Max-Age in seconds (also the cache TTL)
    """

    path: str = "/"
    domain: str = ""
    max_age: int = 0
    secure: bool = False
    http_only: bool = False
    same_site: SameSite = SameSite.DEFAULT


class Session(Record):
    """Web session carried by a cookie."""

    options: CookieOptions = Field(default_factory=CookieOptions)

    @property
    def max_age(self) -> int:
        return self.options.max_age

    @max_age.setter
    def max_age(self, seconds: int) -> None:
        self.options.max_age = int(seconds)


class _TimedRecord(Record):
    max_age_s: int = Field(default=0, alias="max_age")

    @property
    def max_age(self) -> int:
        return self.max_age_s

    @max_age.setter
    def max_age(self, seconds: int) -> None:
        self.max_age_s = int(seconds)


class Token(_TimedRecord):
    """API token session carried by a request/response header."""


class Item(_TimedRecord):
    """Free-standing key-value item stored under a caller-chosen id."""
