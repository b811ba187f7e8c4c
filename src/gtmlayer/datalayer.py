"""Request-scoped data layer.

One ``DataLayer`` is created per request by ``FlashBridge`` and lives
until the response is sent. Application code accumulates values with
``set``, marks values for the next request with ``flash``, and queues
``dataLayer.push`` events with ``push``. The view layer renders it via
``gtmlayer.snippets`` or the kida helpers in ``gtmlayer.templating``.

Not thread-safe and never shared: each request owns its instance.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import partial
from typing import Any, ClassVar

from gtmlayer.config import GTMConfig
from gtmlayer.extensions import Extension, ExtensionRegistry
from gtmlayer.store import KeyPathStore, copy_value, to_json

# JSON is valid JS, but not inside <script> if it can close the tag.
_SCRIPT_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}
_SCRIPT_ESCAPE_TABLE = str.maketrans(_SCRIPT_ESCAPES)


def script_safe(payload: str) -> str:
    """Escape JSON text for embedding in a ``<script>`` element body."""
    return payload.translate(_SCRIPT_ESCAPE_TABLE)


@dataclass(frozen=True, slots=True)
class FlashedEntry:
    """A key path and value destined for the next request only."""

    path: str
    value: Any


class DataLayer:
    """Per-request GTM data layer.

    Usage::

        layer = DataLayer(GTMConfig(id="GTM-XXXXXX"))
        layer.set("page.type", "checkout")
        layer.flash("formResponse", "success")
        layer.render()  # '[{"page":{"type":"checkout"},"formResponse":"success"}]'

    Extensions registered with ``DataLayer.macro`` are available on every
    instance, by attribute or through ``call()``.
    """

    extensions: ClassVar[ExtensionRegistry] = ExtensionRegistry()

    __slots__ = ("_config", "_enabled", "_flash_pushes", "_flashed", "_pushes", "_store")

    def __init__(self, config: GTMConfig | None = None) -> None:
        self._config = config or GTMConfig()
        self._enabled = self._config.enabled
        self._store = KeyPathStore()
        self._flashed: list[FlashedEntry] = []
        self._pushes: list[dict[str, Any]] = []
        self._flash_pushes: list[dict[str, Any]] = []

    # -- Configuration --

    @property
    def config(self) -> GTMConfig:
        return self._config

    @property
    def id(self) -> str:
        return self._config.id or ""

    def get_id(self) -> str:
        """Return the configured container id (``""`` when unset)."""
        return self.id

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        """Suppress all rendering for this request. Data is kept."""
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    # -- Data --

    def set(self, key: str | Mapping[str, Any], value: Any = None) -> None:
        """Set a value at a dot path, or merge a mapping of paths."""
        self._store.set(key, value)

    def flash(self, key: str | Mapping[str, Any], value: Any = None) -> None:
        """Set a value now and deliver it again on the next request.

        Raises ``SerializationError`` at call time, not when the session is
        written, if a value cannot be stored as JSON. Nothing is set then.
        """
        if isinstance(key, Mapping):
            entries = [FlashedEntry(str(k), copy_value(v)) for k, v in key.items()]
        else:
            entries = [FlashedEntry(key, copy_value(value))]
        for entry in entries:
            to_json(entry.value)
        self._store.set(key, value)
        self._flashed.extend(entries)

    def push(self, data: Mapping[str, Any]) -> None:
        """Queue a ``dataLayer.push(...)`` event after the initial data layer."""
        self._pushes.append(copy_value(dict(data)))

    def flash_push(self, data: Mapping[str, Any]) -> None:
        """Push an event now and again on the next request."""
        event = copy_value(dict(data))
        to_json(event)
        self._pushes.append(event)
        self._flash_pushes.append(event)

    def get(self, path: str, default: Any = None) -> Any:
        return self._store.get(path, default)

    def all(self) -> dict[str, Any]:
        return self._store.all()

    get_data_layer = all

    def pushes(self) -> tuple[dict[str, Any], ...]:
        return tuple(copy_value(p) for p in self._pushes)

    def flashed(self) -> tuple[FlashedEntry, ...]:
        """Entries flashed during this request, in call order."""
        return tuple(self._flashed)

    def flashed_pushes(self) -> tuple[dict[str, Any], ...]:
        return tuple(copy_value(p) for p in self._flash_pushes)

    def clear(self) -> None:
        """Drop accumulated data and pushes. Pending flashes still deliver."""
        self._store.clear()
        self._pushes.clear()

    # -- Serialization --

    def to_json(self) -> str:
        return self._store.to_json()

    def render(self) -> str:
        """Return ``[<json>]`` for a ``<script>`` body, or ``""`` when disabled."""
        if not self._enabled:
            return ""
        return f"[{script_safe(self._store.to_json())}]"

    def render_pushes(self) -> list[str]:
        """Script-safe JSON for every queued push, or ``[]`` when disabled."""
        if not self._enabled:
            return []
        return [script_safe(to_json(event)) for event in self._pushes]

    @staticmethod
    def dump(value: Any) -> str:
        """Serialize an arbitrary value to JSON without touching the layer."""
        return to_json(value)

    # -- Extensions --

    @classmethod
    def macro(cls, name: str) -> Callable[[Extension], Extension]:
        """Decorator registering an extension on every DataLayer.

        ::

            @DataLayer.macro("page_view")
            def page_view(layer, page_type):
                layer.set("page.type", page_type)
        """

        def decorator(func: Extension) -> Extension:
            return cls.extensions.register(name, func)

        return decorator

    @classmethod
    def register_extension(cls, name: str, func: Extension, *, replace: bool = False) -> None:
        cls.extensions.register(name, func, replace=replace)

    @classmethod
    def has_extension(cls, name: str) -> bool:
        return name in cls.extensions

    def call(self, name: str, /, *args: Any, **kwargs: Any) -> Any:
        """Invoke the extension *name* with this layer as first argument.

        Raises ``ExtensionNotFoundError`` if nothing is registered as *name*.
        """
        func = type(self).extensions.resolve(name)
        return func(self, *args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        # Only reached for names that are not real attributes
        ext = type(self).extensions.get(name)
        if ext is None:
            msg = f"{type(self).__name__!r} object has no attribute or extension {name!r}"
            raise AttributeError(msg)
        return partial(ext.func, self)

    def __repr__(self) -> str:
        state = "enabled" if self._enabled else "disabled"
        return f"<DataLayer {self.id or '-'} {state} {self._store.all()!r}>"
