"""Async test client for ASGI apps wrapped with gtmlayer.

Sends requests through the ASGI interface directly (no HTTP involved)
and keeps a cookie jar so session cookies (and therefore flashed data)
carry over from one request to the next, like a browser following a
redirect.
"""

from dataclasses import dataclass, field
from typing import Any

from gtmlayer._internal.asgi import ASGIApp, Message, get_all_headers, get_header
from gtmlayer._internal.cookies import parse_cookies


@dataclass(frozen=True, slots=True)
class TestResponse:
    """A captured ASGI response."""

    __test__ = False  # Tell pytest this is not a test class

    status: int
    headers: tuple[tuple[bytes, bytes], ...]
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def content_type(self) -> str:
        return get_header(self.headers, "content-type")

    def header(self, name: str) -> str:
        return get_header(self.headers, name)

    @property
    def cookies(self) -> dict[str, str]:
        """Cookies set by this response, name → value."""
        jar: dict[str, str] = {}
        for value in get_all_headers(self.headers, "set-cookie"):
            pair = value.split(";", 1)[0]
            jar.update(parse_cookies(pair))
        return jar


@dataclass(slots=True)
class TestClient:
    """Async test client for ASGI applications.

    Usage::

        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.status == 200
    """

    __test__ = False  # Tell pytest this is not a test class

    app: ASGIApp
    cookies: dict[str, str] = field(default_factory=dict)
    follow_redirects: bool = False

    async def __aenter__(self) -> "TestClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        self.cookies.clear()

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        """Send a GET request."""
        return await self.request("GET", path, headers=headers)

    async def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> TestResponse:
        """Send a POST request."""
        return await self.request("POST", path, headers=headers, body=body)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> TestResponse:
        """Send an arbitrary request through the ASGI app."""
        response = await self._send(method, path, headers=headers, body=body)
        if self.follow_redirects:
            hops = 0
            while response.status in (301, 302, 303, 307, 308) and hops < 10:
                location = response.header("location")
                if not location:
                    break
                hops += 1
                response = await self._send("GET", location, headers=headers)
        return response

    async def _send(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None,
        body: bytes | None,
    ) -> TestResponse:
        # Split path and query string
        path_part, _, query_string = path.partition("?")

        # Build raw ASGI headers
        raw_headers: list[tuple[bytes, bytes]] = []
        for name, value in (headers or {}).items():
            raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))
        if self.cookies and not any(k == b"cookie" for k, _ in raw_headers):
            cookie_header = "; ".join(f"{k}={v}" for k, v in self.cookies.items())
            raw_headers.append((b"cookie", cookie_header.encode("latin-1")))

        scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "scheme": "http",
            "path": path_part,
            "raw_path": path_part.encode("latin-1"),
            "query_string": query_string.encode("latin-1"),
            "root_path": "",
            "headers": raw_headers,
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 0),
        }

        request_body = body or b""
        body_sent = False

        async def receive() -> Message:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": request_body, "more_body": False}
            return {"type": "http.disconnect"}

        status = 500
        response_headers: list[tuple[bytes, bytes]] = []
        body_parts: list[bytes] = []

        async def send(message: Message) -> None:
            nonlocal status, response_headers
            if message["type"] == "http.response.start":
                status = message["status"]
                response_headers = list(message.get("headers", []))
            elif message["type"] == "http.response.body":
                body_parts.append(message.get("body", b""))

        await self.app(scope, receive, send)

        response = TestResponse(
            status=status,
            headers=tuple(response_headers),
            body=b"".join(body_parts),
        )
        self.cookies.update(response.cookies)
        return response
