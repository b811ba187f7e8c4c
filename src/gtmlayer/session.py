"""Session slot for flashed data, plus signed cookie sessions.

``FlashBridge`` needs one durable per-session slot. It reads the session
from ``scope["session"]``, the ASGI convention shared by Starlette's
``SessionMiddleware`` and by the ``SessionMiddleware`` below, so any
mutable-mapping session works.

Session data is serialized as JSON and signed using ``itsdangerous``.
Sessions are signed, not encrypted: don't flash secrets.
"""

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any

from itsdangerous import BadData, URLSafeTimedSerializer

from gtmlayer._internal.asgi import ASGIApp, Message, Receive, Scope, Send, get_header
from gtmlayer._internal.cookies import parse_cookies
from gtmlayer.errors import ConfigurationError

logger = logging.getLogger("gtmlayer.session")

SESSION_SCOPE_KEY = "session"


# -- Flash slot --


class FlashSlot:
    """A single session key holding a list of serialized flash records.

    A missing session is not an error: reads return ``[]`` and writes are
    dropped.
    """

    __slots__ = ("_key", "_session")

    def __init__(self, session: MutableMapping[str, Any] | None, key: str) -> None:
        self._session = session
        self._key = key

    @classmethod
    def from_scope(cls, scope: Scope, key: str) -> "FlashSlot":
        session = scope.get(SESSION_SCOPE_KEY)
        if not isinstance(session, MutableMapping):
            session = None
        return cls(session, key)

    @property
    def key(self) -> str:
        return self._key

    @property
    def available(self) -> bool:
        """True when a session is active for this request."""
        return self._session is not None

    def get(self) -> list[dict[str, Any]]:
        """Return the stored records, or ``[]`` if absent or malformed."""
        if self._session is None:
            return []
        raw = self._session.get(self._key)
        if raw is None:
            return []
        if not isinstance(raw, list) or not all(isinstance(r, dict) for r in raw):
            logger.warning("Discarding malformed flash data in session key %r", self._key)
            return []
        return raw

    def set(self, records: list[dict[str, Any]]) -> None:
        """Replace the slot's contents."""
        if self._session is None:
            return
        self._session[self._key] = records

    def delete(self) -> None:
        if self._session is None:
            return
        self._session.pop(self._key, None)

    def __repr__(self) -> str:
        state = "active" if self._session is not None else "no-session"
        return f"<FlashSlot {self._key!r} {state}>"


# -- Configuration --


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Signed cookie session configuration.

    ``secret_key`` is required — sessions are signed, not encrypted.
    """

    secret_key: str
    cookie_name: str = "gtm_session"
    max_age: int = 86400  # 24 hours
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"


# -- Middleware --


class SessionMiddleware:
    """ASGI signed cookie session middleware.

    Reads the session cookie, verifies the signature, exposes the dict as
    ``scope["session"]``, then writes it back as a ``Set-Cookie`` header
    when the response starts.

    Usage::

        app = SessionMiddleware(FlashBridge(app, config), SessionConfig(
            secret_key="my-secret-key",
        ))
    """

    __slots__ = ("_app", "_config", "_serializer")

    def __init__(self, app: ASGIApp, config: SessionConfig) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)

        self._app = app
        self._config = config
        self._serializer = URLSafeTimedSerializer(config.secret_key, salt="gtmlayer.session")

    def _load_session(self, scope: Scope) -> tuple[dict[str, Any], bool]:
        """Deserialize and verify the session cookie.

        Returns the session and whether a cookie was presented at all.
        """
        cookies = parse_cookies(get_header(scope.get("headers", ()), "cookie"))
        cookie_value = cookies.get(self._config.cookie_name)
        if not cookie_value:
            return {}, False

        try:
            data = self._serializer.loads(cookie_value, max_age=self._config.max_age)
        except BadData:
            logger.debug("Ignoring session cookie that failed to load")
            return {}, True

        if not isinstance(data, dict):
            return {}, True
        return data, True

    def _cookie_header(self, session: dict[str, Any]) -> tuple[bytes, bytes]:
        """Build the ``set-cookie`` header carrying the signed session."""
        cfg = self._config
        directives = [
            f"{cfg.cookie_name}={self._serializer.dumps(session)}",
            f"Max-Age={cfg.max_age}",
            f"Path={cfg.path}",
        ]
        if cfg.domain:
            directives.append(f"Domain={cfg.domain}")
        if cfg.secure:
            directives.append("Secure")
        if cfg.httponly:
            directives.append("HttpOnly")
        if cfg.samesite:
            directives.append(f"SameSite={cfg.samesite.title()}")
        return (b"set-cookie", "; ".join(directives).encode("latin-1"))

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Load session, dispatch, then save session on response start."""
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        session, had_cookie = self._load_session(scope)
        scope[SESSION_SCOPE_KEY] = session

        async def send_with_cookie(message: Message) -> None:
            if message["type"] == "http.response.start" and (session or had_cookie):
                # Refresh the signature timestamp for sliding expiration
                headers = list(message.get("headers", []))
                headers.append(self._cookie_header(session))
                message = {**message, "headers": headers}
            await send(message)

        await self._app(scope, receive, send_with_cookie)
