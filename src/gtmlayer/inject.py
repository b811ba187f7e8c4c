"""Automatic GTM snippet injection.

Inserts ``head_snippet`` before ``</head>`` and ``body_snippet`` right
after the opening ``<body>`` tag of every full-page ``text/html``
response, so templates need no changes.

Only complete HTML documents are touched: responses without a
``</head>`` (fragments, partials) and non-HTML or compressed responses
pass through unchanged. The body is buffered until the last chunk.

Must sit inside ``FlashBridge`` so the request's layer is on the scope::

    app = FlashBridge(SnippetInjector(app), config)
"""

import re

from gtmlayer._internal.asgi import ASGIApp, Message, Receive, Scope, Send, get_header, set_header
from gtmlayer.context import SCOPE_KEY
from gtmlayer.datalayer import DataLayer
from gtmlayer.snippets import body_snippet, head_snippet

_HEAD_CLOSE = re.compile(r"</head\s*>", re.IGNORECASE)
_BODY_OPEN = re.compile(r"<body\b[^>]*>", re.IGNORECASE)
_CHARSET = re.compile(r"charset=([\w-]+)", re.IGNORECASE)


def inject_snippets(document: str, layer: DataLayer) -> str:
    """Return *document* with the layer's head and body fragments inserted.

    Returns the document unchanged when the layer is disabled or the
    document has no ``</head>``.
    """
    if not layer.is_enabled():
        return document
    head_close = _HEAD_CLOSE.search(document)
    if head_close is None:
        return document

    pos = head_close.start()
    document = document[:pos] + head_snippet(layer) + document[pos:]

    body_open = _BODY_OPEN.search(document, pos)
    if body_open is not None:
        end = body_open.end()
        document = document[:end] + body_snippet(layer) + document[end:]
    return document


def _rewrite(body: bytes, start: Message, layer: DataLayer) -> bytes:
    match = _CHARSET.search(get_header(start.get("headers", []), "content-type"))
    charset = match.group(1) if match else "utf-8"
    try:
        document = body.decode(charset)
    except (LookupError, UnicodeDecodeError):
        return body
    injected = inject_snippets(document, layer)
    if injected == document:
        return body
    return injected.encode(charset, errors="xmlcharrefreplace")


class SnippetInjector:
    """ASGI middleware that injects GTM fragments into HTML pages."""

    __slots__ = ("_app",)

    def __init__(self, app: ASGIApp) -> None:
        self._app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("method") == "HEAD":
            await self._app(scope, receive, send)
            return

        start: Message | None = None
        chunks: list[bytes] = []
        passthrough = False

        async def buffer_html(message: Message) -> None:
            nonlocal start, passthrough
            if message["type"] == "http.response.start":
                headers = message.get("headers", [])
                content_type = get_header(headers, "content-type")
                layer = scope.get(SCOPE_KEY)
                if (
                    "text/html" not in content_type
                    or get_header(headers, "content-encoding")
                    or not isinstance(layer, DataLayer)
                ):
                    passthrough = True
                    await send(message)
                    return
                start = message
                return

            if passthrough or start is None or message["type"] != "http.response.body":
                await send(message)
                return

            chunks.append(message.get("body", b""))
            if message.get("more_body", False):
                return

            original = b"".join(chunks)
            body = _rewrite(original, start, scope[SCOPE_KEY])
            if body is original:
                # Untouched: the app's own content-length still holds
                await send(start)
            else:
                headers = set_header(
                    list(start.get("headers", [])), "content-length", str(len(body))
                )
                await send({**start, "headers": headers})
            await send({"type": "http.response.body", "body": body, "more_body": False})

        await self._app(scope, receive, buffer_html)
