from __future__ import annotations

import base64
import secrets
import time
from datetime import datetime, UTC


# Crockford base32, as used by the ULID spec
_CROCKFORD = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_DECODE = {c: i for i, c in enumerate(_CROCKFORD)}

ULID_LENGTH = 26
_TIMESTAMP_CHARS = 10
_MAX_TIMESTAMP_MS = (1 << 48) - 1


def _encode_base32(value: int, length: int) -> str:
    out = []
    for _ in range(length):
        out.append(_CROCKFORD[value & 0x1F])
        value >>= 5
    return "".join(reversed(out))


def new_ulid(*, now_ms: int | None = None) -> str:
    """Return a 26-char ULID: 48-bit millisecond timestamp + 80 random bits.

    The random part comes from the OS CSPRNG, which is safe to call from many
    threads at once without any lock of our own. Blocks (inside the OS) rather
    than returning weaker randomness.
    """
    ts = int(time.time() * 1000) if now_ms is None else now_ms
    if ts < 0 or ts > _MAX_TIMESTAMP_MS:
        raise ValueError("timestamp out of ULID range")
    rand = int.from_bytes(secrets.token_bytes(10), "big")
    return _encode_base32((ts << 80) | rand, ULID_LENGTH)


def new_id() -> str:
    """Return a new record id: URL-safe, unpadded base64 of a fresh ULID."""
    raw = new_ulid().encode("ascii")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def ulid_timestamp(ulid: str) -> datetime:
    """Decode the creation time embedded in a ULID string."""
    if len(ulid) != ULID_LENGTH:
        raise ValueError(f"ULID must be {ULID_LENGTH} characters")
    ms = 0
    for ch in ulid[:_TIMESTAMP_CHARS].upper():
        try:
            ms = (ms << 5) | _DECODE[ch]
        except KeyError:
            raise ValueError(f"invalid ULID character: {ch!r}") from None
    return datetime.fromtimestamp(ms / 1000, UTC)


def ulid_from_id(record_id: str) -> str:
    """Reverse `new_id`: recover the ULID text carried inside a record id."""
    pad = "=" * (-len(record_id) % 4)
    try:
        return base64.urlsafe_b64decode(record_id + pad).decode("ascii")
    except (ValueError, UnicodeDecodeError) as ex:
        raise ValueError("not a record id produced by new_id()") from ex
