from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from common.crypto import CipherMode
from cache.redis_backend import DEFAULT_REDIS_URL, ENV_REDIS_URL


# Environment variable names for convenience configuration
ENV_SECRET_KEY = "WEBREDIS_SECRET_KEY"
ENV_DEFAULT_MAX_AGE = "WEBREDIS_DEFAULT_MAX_AGE"
ENV_CIPHER_MODE = "WEBREDIS_CIPHER_MODE"
ENV_COOKIE_DOMAIN = "WEBREDIS_COOKIE_DOMAIN"

DEFAULT_MAX_AGE = 7200

_MODE_NAMES = {"cfb": CipherMode.CFB, "cbc": CipherMode.CBC, "0": CipherMode.CFB, "1": CipherMode.CBC}


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


class StoreSettings(BaseModel):
    """
    Settings shared by the session, token and item stores.

    Fields
    - secret_key: 32-byte AES key (str is UTF-8 encoded).
    - default_max_age: TTL in seconds for records the store creates.
    - cipher_mode: CBC (default) or CFB; must not change while data exists.
    - redis_url: connection URL used by `from_env()` constructors.
    - cookie_domain: Domain attribute for fresh web-session cookies.

    Environment variables
    - `WEBREDIS_SECRET_KEY` (required)
    - `WEBREDIS_DEFAULT_MAX_AGE`, `WEBREDIS_CIPHER_MODE` (cfb|cbc|0|1),
      `WEBREDIS_COOKIE_DOMAIN`, `REDIS_URL`
    """

    secret_key: str = Field(repr=False)
    default_max_age: int = Field(default=DEFAULT_MAX_AGE, ge=0)
    cipher_mode: CipherMode = CipherMode.CBC
    redis_url: str = DEFAULT_REDIS_URL
    cookie_domain: str = ""

    @field_validator("cipher_mode", mode="before")
    @classmethod
    def _parse_mode(cls, raw):
        if isinstance(raw, str):
            mode = _MODE_NAMES.get(raw.strip().lower())
            if mode is None:
                raise ValueError(f"unknown cipher mode {raw!r}; expected cfb or cbc")
            return mode
        return raw

    @classmethod
    def from_env(cls) -> "StoreSettings":
        secret = _getenv(ENV_SECRET_KEY)
        if not secret:
            raise RuntimeError(
                f"Missing required environment variables for record store: {ENV_SECRET_KEY}"
            )
        data = {"secret_key": secret}
        optional = {
            "default_max_age": _getenv(ENV_DEFAULT_MAX_AGE),
            "cipher_mode": _getenv(ENV_CIPHER_MODE),
            "redis_url": _getenv(ENV_REDIS_URL),
            "cookie_domain": _getenv(ENV_COOKIE_DOMAIN),
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return cls.model_validate(data)
