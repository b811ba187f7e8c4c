"""Extension registry — named helpers callable on any DataLayer.

Extensions are plain functions taking the data layer as their first
argument::

    from gtmlayer import DataLayer

    @DataLayer.macro("impression")
    def impression(layer, product, position=1):
        layer.push({"event": "impression", "product": product, "position": position})

    layer.impression("sku-42")          # attribute dispatch
    layer.call("impression", "sku-42")  # explicit dispatch

The registry is populated during startup (directly, or by executing the
file named by ``GTMConfig.macro_path``) and frozen by ``install()``.
Registration after the freeze raises ``ConfigurationError``.

Free-threading safety:
    - Registration is guarded by a lock and only happens at startup
    - After ``freeze()`` the table is read-only
"""

import importlib.util
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from gtmlayer.errors import ConfigurationError, ExtensionNotFoundError

logger = logging.getLogger("gtmlayer.extensions")

type Extension = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class ExtensionDef:
    """A registered extension."""

    name: str
    func: Extension


class ExtensionRegistry:
    """Name → function table consulted by ``DataLayer.call()``."""

    __slots__ = ("_extensions", "_frozen", "_lock", "_sources")

    def __init__(self) -> None:
        self._extensions: dict[str, ExtensionDef] = {}
        self._frozen = False
        self._lock = threading.Lock()
        self._sources: set[Path] = set()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, name: str, func: Extension, *, replace: bool = False) -> Extension:
        """Register *func* under *name* and return it unchanged.

        Raises ``ConfigurationError`` if the registry is frozen, the name
        is not an identifier, or the name is taken and *replace* is false.
        """
        if not name.isidentifier() or name.startswith("_"):
            msg = f"Extension name must be a public identifier, got {name!r}"
            raise ConfigurationError(msg)
        if not callable(func):
            msg = f"Extension {name!r} must be callable, got {type(func).__name__}"
            raise ConfigurationError(msg)

        with self._lock:
            if self._frozen:
                msg = f"Cannot register extension {name!r}: registry is frozen after startup"
                raise ConfigurationError(msg)
            if name in self._extensions and not replace:
                msg = f"Duplicate extension name: {name!r}"
                raise ConfigurationError(msg)
            self._extensions[name] = ExtensionDef(name=name, func=func)

        logger.debug("Registered data layer extension %r", name)
        return func

    def unregister(self, name: str) -> None:
        with self._lock:
            if self._frozen:
                msg = f"Cannot remove extension {name!r}: registry is frozen after startup"
                raise ConfigurationError(msg)
            self._extensions.pop(name, None)

    def freeze(self) -> None:
        """Make the registry read-only. Idempotent."""
        with self._lock:
            self._frozen = True

    def get(self, name: str) -> ExtensionDef | None:
        """Look up an extension by name. Returns ``None`` if not found."""
        return self._extensions.get(name)

    def resolve(self, name: str) -> Extension:
        """Return the function for *name* or raise ``ExtensionNotFoundError``."""
        ext = self._extensions.get(name)
        if ext is None:
            raise ExtensionNotFoundError(name)
        return ext.func

    def record_source(self, path: str | Path) -> None:
        with self._lock:
            self._sources.add(Path(path).resolve())

    def loaded_from(self, path: str | Path) -> bool:
        """True if the extensions file at *path* was already executed."""
        return Path(path).resolve() in self._sources

    def names(self) -> tuple[str, ...]:
        return tuple(self._extensions)

    def __contains__(self, name: object) -> bool:
        return name in self._extensions

    def __len__(self) -> int:
        return len(self._extensions)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"<ExtensionRegistry {state} {list(self._extensions)!r}>"


def load_extensions(path: str | Path, registry: ExtensionRegistry) -> None:
    """Execute an extensions file once, in an isolated module namespace.

    The file may register through ``DataLayer.macro`` at import time, or
    define ``register(registry)``, which is called after execution.

    Raises:
        ConfigurationError: If the file does not exist, cannot be loaded,
            or raises while executing.
    """
    file_path = Path(path)
    if not file_path.is_file():
        msg = f"Extensions file not found: {file_path}"
        raise ConfigurationError(msg)

    module_name = f"_gtmlayer_extensions_{file_path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    if spec is None or spec.loader is None:
        msg = f"Cannot load extensions file: {file_path}"
        raise ConfigurationError(msg)

    module = importlib.util.module_from_spec(spec)
    before = set(registry.names())
    try:
        spec.loader.exec_module(module)
        hook = getattr(module, "register", None)
        if callable(hook):
            hook(registry)
    except ConfigurationError:
        raise
    except Exception as exc:
        msg = f"Extensions file {file_path} raised an error: {exc}"
        raise ConfigurationError(msg) from exc

    registry.record_source(file_path)
    added = sorted(set(registry.names()) - before)
    logger.debug("Loaded %d extension(s) from %s: %s", len(added), file_path, ", ".join(added))
