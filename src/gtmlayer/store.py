"""Nested key-path store.

A plain ordered ``dict`` tree addressed with dot-delimited paths::

    store = KeyPathStore()
    store.set("page.type", "product")
    store.set({"user": {"id": 7}})
    store.get("page.type")  # "product"
    store.to_json()         # '{"page":{"type":"product"},"user":{"id":7}}'

Mappings are deep-merged on write, everything else is replaced. Path
segments are split on ``.`` verbatim: empty segments (``"a..b"``,
``"a."``, ``""``) are literal empty-string keys.
"""

import json
from collections.abc import Iterator, Mapping
from copy import deepcopy
from typing import Any

from gtmlayer.errors import SerializationError

SEPARATOR = "."


def split_path(path: str) -> list[str]:
    """Split a dot path into segments. Empty segments are kept."""
    return path.split(SEPARATOR)


def copy_value(value: Any) -> Any:
    """Copy a value into the tree, turning every mapping into a plain dict."""
    if isinstance(value, Mapping):
        return {str(k): copy_value(v) for k, v in value.items()}
    return deepcopy(value)


def deep_merge(target: dict[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """Merge *source* into *target* in place and return *target*.

    Keys in *source* win. When both sides hold a mapping under the same
    key the merge recurses; otherwise the source value replaces.
    """
    for key, value in source.items():
        key = str(key)
        existing = target.get(key)
        if isinstance(value, Mapping) and isinstance(existing, dict):
            deep_merge(existing, value)
        else:
            target[key] = copy_value(value)
    return target


def to_json(value: Any) -> str:
    """Serialize *value* as compact JSON, raising ``SerializationError``.

    NaN and infinities are rejected since they are not valid JSON.
    """
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        msg = f"Value is not JSON serializable: {exc}"
        raise SerializationError(msg) from exc


class KeyPathStore:
    """Nested mapping keyed by dot-delimited paths.

    Owns its tree outright: values are copied on the way in and out, so
    nothing a caller holds can reach internal state.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = {}
        if data:
            self.set(data)

    def set(self, key: str | Mapping[str, Any], value: Any = None) -> None:
        """Set *value* at path *key*, or merge a mapping of paths into the root.

        With a mapping, each top-level key is treated as a path and set in
        turn, so ``set({"a.b": 1})`` is ``set("a.b", 1)``.
        """
        if isinstance(key, Mapping):
            for path, item in key.items():
                self._set_path(str(path), item)
            return
        self._set_path(key, value)

    def _set_path(self, path: str, value: Any) -> None:
        *parents, leaf = split_path(path)
        node = self._data
        for segment in parents:
            child = node.get(segment)
            if not isinstance(child, dict):
                # Last write wins: scalars in the way are discarded
                child = {}
                node[segment] = child
            node = child

        existing = node.get(leaf)
        if isinstance(value, Mapping) and isinstance(existing, dict):
            deep_merge(existing, value)
        else:
            node[leaf] = copy_value(value)

    def _lookup(self, path: str) -> tuple[bool, Any]:
        node: Any = self._data
        for segment in split_path(path):
            if not isinstance(node, dict) or segment not in node:
                return False, None
            node = node[segment]
        return True, node

    def get(self, path: str, default: Any = None) -> Any:
        """Return the value at *path*, or *default* if any segment is absent."""
        found, value = self._lookup(path)
        if not found:
            return default
        return deepcopy(value)

    def has(self, path: str) -> bool:
        """True if a value (including ``None``) exists at *path*."""
        return self._lookup(path)[0]

    def all(self) -> dict[str, Any]:
        """Return a deep copy of the full nested structure."""
        return deepcopy(self._data)

    def clear(self) -> None:
        self._data.clear()

    def to_json(self) -> str:
        """Serialize the tree as compact JSON. An empty store is ``{}``."""
        return to_json(self._data)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.has(path)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return bool(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, KeyPathStore):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"KeyPathStore({self._data!r})"
