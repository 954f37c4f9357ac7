from __future__ import annotations

from datetime import datetime, timedelta, UTC
from email.utils import format_datetime
from http.cookies import SimpleCookie
from typing import Any, List, Mapping, MutableMapping, Optional, Tuple, Union

from cache.redis_backend import RedisBackend
from common.crypto import CipherMode
from common.errors import InvalidArgumentError
from common.ids import new_id

from .config import StoreSettings
from .models import CookieOptions, SameSite, Session
from .record_store import RecordStore


HeaderSink = Union[MutableMapping[str, str], List[Tuple[str, str]]]

# Expires value used to make a browser drop the cookie right away
_EXPIRED = datetime.fromtimestamp(1, UTC)


def new_cookie(name: str, value: str, options: CookieOptions, *, now: Optional[datetime] = None) -> str:
    """Build a `Set-Cookie` header value for `name=value` with `options`.

    Positive max age sets both Max-Age and Expires (older browsers ignore
    Max-Age). Negative max age expires the cookie immediately. Zero leaves
    both out so the cookie lasts for the browser session.
    """
    jar: SimpleCookie = SimpleCookie()
    jar[name] = value
    morsel = jar[name]
    if options.path:
        morsel["path"] = options.path
    if options.domain:
        morsel["domain"] = options.domain
    if options.max_age > 0:
        current = now or datetime.now(UTC)
        morsel["max-age"] = str(options.max_age)
        morsel["expires"] = format_datetime(current + timedelta(seconds=options.max_age), usegmt=True)
    elif options.max_age < 0:
        morsel["max-age"] = "0"
        morsel["expires"] = format_datetime(_EXPIRED, usegmt=True)
    if options.secure:
        morsel["secure"] = True
    if options.http_only:
        morsel["httponly"] = True
    if options.same_site is not SameSite.DEFAULT:
        morsel["samesite"] = options.same_site.value.capitalize()
    return morsel.OutputString()


class SessionStore(RecordStore[Session]):
    """
    Web sessions keyed by a cookie.

    - `get(cookies, name)` reads the session id from the cookie `name` and
      returns the stored session or, on any failure, a fresh one.
    - `save(session, response_headers)` persists the session and, only once the
      write succeeded, adds the `Set-Cookie` header carrying the id.

    Header sinks
    - a list of `(name, value)` pairs (WSGI/ASGI style): the cookie is appended,
      other `Set-Cookie` entries are kept.
    - a mapping: holds a single `Set-Cookie`. A previous cookie of the same
      name is replaced; a different cookie already there is an
      `InvalidArgumentError`, raised before anything is written.
    """

    record_type = Session

    def __init__(
        self,
        backend: RedisBackend,
        secret_key: str | bytes,
        default_max_age: int,
        *,
        cipher_mode: CipherMode | int = CipherMode.CBC,
        cookie_domain: str = "",
    ) -> None:
        super().__init__(backend, secret_key, default_max_age, cipher_mode=cipher_mode)
        self._cookie_domain = cookie_domain

    @classmethod
    def from_settings(cls, settings: StoreSettings, *, backend: Optional[RedisBackend] = None, **kwargs: Any):
        kwargs.setdefault("cookie_domain", settings.cookie_domain)
        return super().from_settings(settings, backend=backend, **kwargs)

    def _create(self, record_id: Optional[str], name: str, max_age: int) -> Session:
        options = CookieOptions(path="/", domain=self._cookie_domain, max_age=max_age)
        return Session(id=new_id(), name=name, values={}, is_new=True, options=options)

    def get(self, cookies: Mapping[str, str], name: str, max_age: Optional[int] = None) -> Session:
        """Return the session named by cookie `name`, or a new one. Never raises on lookup failures."""
        session_id = cookies.get(name) if cookies is not None else None
        return self._resolve(session_id, name, max_age)

    def save(self, session: Session, response_headers: Optional[HeaderSink] = None) -> str:
        """Persist `session`; returns the `Set-Cookie` value added to `response_headers`."""
        if isinstance(response_headers, MutableMapping):
            _check_single_cookie(response_headers, session.name)
        self._write(session)
        cookie = new_cookie(session.name, session.id, session.options)
        if isinstance(response_headers, list):
            response_headers.append(("Set-Cookie", cookie))
        elif response_headers is not None:
            response_headers["Set-Cookie"] = cookie
        return cookie


def _cookie_name(header_value: str) -> str:
    return header_value.split("=", 1)[0].strip()


def _check_single_cookie(headers: MutableMapping[str, str], name: str) -> None:
    existing = headers.get("Set-Cookie")
    if existing and _cookie_name(existing) != name:
        raise InvalidArgumentError(
            f"response headers already set cookie {_cookie_name(existing)!r}; "
            "pass a list of (name, value) header pairs to send several cookies"
        )
