"""
Encrypted record stores over a Redis cache.

This package defines the records (sessions, tokens, items) that are
serialized to JSON, encrypted with AES, and stored with a TTL, plus the
stores that load, fabricate, save and delete them.
"""

from .config import StoreSettings
from .items import ItemStore
from .models import CookieOptions, Item, Record, SameSite, Session, Token
from .record_store import RecordStore
from .sessions import SessionStore, new_cookie
from .tokens import TokenStore

__all__ = [
    "StoreSettings",
    "Record",
    "Session",
    "Token",
    "Item",
    "CookieOptions",
    "SameSite",
    "RecordStore",
    "SessionStore",
    "TokenStore",
    "ItemStore",
    "new_cookie",
]
