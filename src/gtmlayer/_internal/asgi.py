"""ASGI type aliases and header helpers shared by the middleware."""

from collections.abc import Awaitable, Callable, Iterable, MutableMapping
from typing import Any, TypeAlias

# Raw ASGI types (matching the spec)
Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]
ASGIApp: TypeAlias = Callable[[Scope, Receive, Send], Awaitable[None]]

RawHeaders: TypeAlias = list[tuple[bytes, bytes]]


def get_header(headers: Iterable[tuple[bytes, bytes]], name: str) -> str:
    """Return the first header named *name* (case-insensitive), or ``""``."""
    wanted = name.lower().encode("latin-1")
    for key, value in headers:
        if key.lower() == wanted:
            return value.decode("latin-1")
    return ""


def get_all_headers(headers: Iterable[tuple[bytes, bytes]], name: str) -> list[str]:
    wanted = name.lower().encode("latin-1")
    return [value.decode("latin-1") for key, value in headers if key.lower() == wanted]


def set_header(headers: RawHeaders, name: str, value: str) -> RawHeaders:
    """Return *headers* with every *name* header replaced by one *value*."""
    wanted = name.lower().encode("latin-1")
    kept = [(k, v) for k, v in headers if k.lower() != wanted]
    kept.append((wanted, value.encode("latin-1")))
    return kept
