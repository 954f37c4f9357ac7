from __future__ import annotations

from typing import Mapping, MutableMapping, Optional

from common.errors import KeyNotFoundError
from common.ids import new_id

from .models import Token
from .record_store import RecordStore


class TokenStore(RecordStore[Token]):
    """
    Token sessions for REST APIs, keyed by a request/response header.

    The header name doubles as the token `name`; `save()` writes
    `name: id` to the response headers once the record is in the cache.
    """

    record_type = Token

    def _create(self, record_id: Optional[str], name: str, max_age: int) -> Token:
        return Token(id=new_id(), name=name, values={}, is_new=True, max_age=max_age)

    def get(self, headers: Mapping[str, str], name: str, max_age: Optional[int] = None) -> Token:
        """Return the token named by header `name`, or a new one. Never raises on lookup failures."""
        token_id = headers.get(name) if headers is not None else None
        return self._resolve(token_id, name, max_age)

    def get_existing_from(self, headers: Mapping[str, str], name: str) -> Token:
        """Strict lookup of the token whose id is carried in header `name`."""
        token_id = headers.get(name) if headers is not None else None
        if not token_id:
            raise KeyNotFoundError(f"no {name} header; token does not exist")
        return self.get_existing(token_id)

    def save(self, token: Token, response_headers: Optional[MutableMapping[str, str]] = None) -> None:
        self._write(token)
        if response_headers is not None:
            response_headers[token.name] = token.id
