"""Tests for gtmlayer.inject — automatic snippet injection."""

from typing import Any

from gtmlayer.config import GTMConfig
from gtmlayer.context import get_datalayer
from gtmlayer.datalayer import DataLayer
from gtmlayer.flash import FlashBridge
from gtmlayer.inject import SnippetInjector, inject_snippets
from gtmlayer.testing import TestClient

PAGE = "<html><head><title>T</title></head><body class=\"x\"><h1>Hi</h1></body></html>"


def make_app(body: str, content_type: str = "text/html; charset=utf-8", chunks: int = 1):
    async def app(scope: dict[str, Any], receive: Any, send: Any) -> None:
        get_datalayer().set("page.type", "home")
        raw = body.encode()
        await send(
            {
                "type": "http.response.start",
                "status": 200,
                "headers": [
                    (b"content-type", content_type.encode()),
                    (b"content-length", str(len(raw)).encode()),
                ],
            }
        )
        size = max(1, len(raw) // chunks)
        parts = [raw[i : i + size] for i in range(0, len(raw), size)] or [b""]
        for i, part in enumerate(parts):
            await send(
                {"type": "http.response.body", "body": part, "more_body": i < len(parts) - 1}
            )

    return app


def _stack(app: Any, **config: object) -> Any:
    return FlashBridge(SnippetInjector(app), GTMConfig(id="GTM-INJ", **config))  # type: ignore[arg-type]


class TestInjectSnippets:
    def test_inserts_head_and_body(self) -> None:
        layer = DataLayer(GTMConfig(id="GTM-1"))
        out = inject_snippets(PAGE, layer)
        assert out.index("dataLayer = ") < out.index("</head>")
        assert '<body class="x"><noscript>' in out
        assert out.endswith("<h1>Hi</h1></body></html>")

    def test_fragment_unchanged(self) -> None:
        layer = DataLayer()
        assert inject_snippets("<div>fragment</div>", layer) == "<div>fragment</div>"

    def test_disabled_unchanged(self) -> None:
        layer = DataLayer(GTMConfig(enabled=False))
        assert inject_snippets(PAGE, layer) == PAGE

    def test_case_insensitive_tags(self) -> None:
        page = "<HTML><HEAD></HEAD><BODY></BODY></HTML>"
        out = inject_snippets(page, DataLayer())
        assert "dataLayer = [{}];</script>" in out
        assert "<BODY><noscript>" in out


class TestSnippetInjector:
    async def test_injects_into_html(self) -> None:
        async with TestClient(_stack(make_app(PAGE))) as client:
            response = await client.get("/")

        assert response.status == 200
        assert '<script>dataLayer = [{"page":{"type":"home"}}];</script>' in response.text
        assert "ns.html?id=GTM-INJ" in response.text
        assert response.header("content-length") == str(len(response.body))

    async def test_chunked_body_is_buffered(self) -> None:
        async with TestClient(_stack(make_app(PAGE, chunks=4))) as client:
            response = await client.get("/")
        assert "gtm.js" in response.text
        assert response.text.endswith("</body></html>")

    async def test_non_html_passes_through(self) -> None:
        body = '{"ok": true}'
        async with TestClient(_stack(make_app(body, "application/json"))) as client:
            response = await client.get("/")
        assert response.text == body

    async def test_fragment_passes_through(self) -> None:
        async with TestClient(_stack(make_app("<div>x</div>"))) as client:
            response = await client.get("/")
        assert response.text == "<div>x</div>"

    async def test_disabled_passes_through(self) -> None:
        async with TestClient(_stack(make_app(PAGE), enabled=False)) as client:
            response = await client.get("/")
        assert response.text == PAGE

    async def test_without_bridge_passes_through(self) -> None:
        async def app(scope: dict[str, Any], receive: Any, send: Any) -> None:
            await send(
                {"type": "http.response.start", "status": 200, "headers": [(b"content-type", b"text/html")]}
            )
            await send({"type": "http.response.body", "body": PAGE.encode()})

        async with TestClient(SnippetInjector(app)) as client:
            response = await client.get("/")
        assert response.text == PAGE

    async def test_head_request_keeps_content_length(self) -> None:
        async def app(scope: dict[str, Any], receive: Any, send: Any) -> None:
            headers = [(b"content-type", b"text/html"), (b"content-length", b"120")]
            await send({"type": "http.response.start", "status": 200, "headers": headers})
            await send({"type": "http.response.body", "body": b""})

        async with TestClient(_stack(app)) as client:
            response = await client.request("HEAD", "/")
        assert response.header("content-length") == "120"
        assert response.body == b""

    async def test_unchanged_body_keeps_content_length(self) -> None:
        async def app(scope: dict[str, Any], receive: Any, send: Any) -> None:
            headers = [(b"content-type", b"text/html"), (b"content-length", b"120")]
            await send({"type": "http.response.start", "status": 200, "headers": headers})
            await send({"type": "http.response.body", "body": b""})

        async with TestClient(_stack(app)) as client:
            response = await client.get("/")
        assert response.header("content-length") == "120"
