"""Request-scoped access to the active DataLayer.

``FlashBridge`` creates one ``DataLayer`` per request and exposes it two
ways:

- ``scope["datalayer"]`` for code that is handed the ASGI scope
  (framework request objects usually carry it).
- ``get_datalayer()`` for code running inside the request's task, such
  as template globals.

Both are opt-in: outside a ``FlashBridge`` request, ``get_datalayer()``
raises ``LookupError``.

Thread safety:
    ``ContextVar`` is task-local under asyncio and thread-local under
    free-threading. No locks needed.
"""

from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any

from gtmlayer.datalayer import DataLayer

SCOPE_KEY = "datalayer"

datalayer_var: ContextVar[DataLayer | None] = ContextVar("gtm_datalayer", default=None)
"""The current request's data layer. Set by ``FlashBridge`` around dispatch."""


def get_datalayer() -> DataLayer:
    """Return the current request's data layer.

    Raises ``LookupError`` if called outside a request with
    ``FlashBridge`` active.
    """
    layer = datalayer_var.get()
    if layer is None:
        msg = (
            "No active data layer. Ensure FlashBridge wraps the app "
            "before accessing the data layer."
        )
        raise LookupError(msg)
    return layer


def datalayer_from_scope(scope: MutableMapping[str, Any]) -> DataLayer:
    """Return the data layer stored on an ASGI scope by ``FlashBridge``."""
    layer = scope.get(SCOPE_KEY)
    if not isinstance(layer, DataLayer):
        msg = "ASGI scope has no data layer. Ensure FlashBridge wraps the app."
        raise LookupError(msg)
    return layer
