"""
Common building blocks for the record store.

Modules:
- ids: time-ordered, URL-safe record identifiers (ULID based)
- crypto: AES envelope (CFB or CBC) for payloads at rest
- errors: exception taxonomy shared by the cache backend and the stores
"""

__all__ = [
    "crypto",
    "errors",
    "ids",
]
