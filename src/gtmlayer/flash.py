"""FlashBridge — per-request DataLayer lifecycle and flash handoff.

Wraps an ASGI app. On every HTTP request it:

1. Creates a fresh ``DataLayer`` from the app's ``GTMConfig``.
2. **Before** the app runs: reads the session flash slot written by the
   previous request, applies each entry with ``set`` (or ``push``), and
   deletes the slot so every entry is delivered exactly once.
3. Exposes the layer as ``scope["datalayer"]`` and via ``get_datalayer()``.
4. **After** the app runs (at ``http.response.start``, so a session
   middleware wrapping this one still sees the write), stores the
   entries flashed during this request in the slot for the next one.

A request without a session, or without prior flashed data, simply has
nothing to rehydrate. Delivery is best-effort: whatever the session
backend keeps is what arrives.

Ordering: the session middleware must wrap ``FlashBridge``::

    app = SessionMiddleware(FlashBridge(app, config), session_config)
"""

import logging
from collections.abc import Mapping
from typing import Any

from gtmlayer._internal.asgi import ASGIApp, Message, Receive, Scope, Send
from gtmlayer.config import GTMConfig
from gtmlayer.context import SCOPE_KEY, datalayer_var
from gtmlayer.datalayer import DataLayer, FlashedEntry
from gtmlayer.session import FlashSlot

logger = logging.getLogger("gtmlayer.flash")


def encode_entries(
    entries: tuple[FlashedEntry, ...] | list[FlashedEntry],
    pushes: tuple[dict[str, Any], ...] | list[dict[str, Any]] = (),
) -> list[dict[str, Any]]:
    """Serialize flashed entries and pushes into session-storable records."""
    records: list[dict[str, Any]] = [{"path": e.path, "value": e.value} for e in entries]
    records.extend({"push": push} for push in pushes)
    return records


def apply_records(layer: DataLayer, records: list[dict[str, Any]]) -> int:
    """Apply stored records to *layer*. Returns how many were applied.

    Rehydrated entries are ``set``, not re-flashed, so they stop here.
    """
    applied = 0
    for record in records:
        if isinstance(record.get("push"), Mapping):
            layer.push(record["push"])
        elif isinstance(record.get("path"), str):
            layer.set(record["path"], record.get("value"))
        else:
            logger.warning("Skipping unrecognized flash record: %r", record)
            continue
        applied += 1
    return applied


class FlashBridge:
    """ASGI middleware owning the request's ``DataLayer``.

    Usage::

        from gtmlayer import FlashBridge, GTMConfig

        app = FlashBridge(app, GTMConfig(id="GTM-XXXXXX"))

        # In a handler, before redirecting:
        get_datalayer().flash("formResponse", "success")
    """

    __slots__ = ("_app", "_config", "_session_key")

    def __init__(
        self,
        app: ASGIApp,
        config: GTMConfig | None = None,
        *,
        session_key: str | None = None,
    ) -> None:
        self._app = app
        self._config = config or GTMConfig()
        self._session_key = session_key or self._config.session_key

    @property
    def config(self) -> GTMConfig:
        return self._config

    def create_datalayer(self) -> DataLayer:
        return DataLayer(self._config)

    def slot_for(self, scope: Scope) -> FlashSlot:
        return FlashSlot.from_scope(scope, self._session_key)

    def rehydrate(self, layer: DataLayer, slot: FlashSlot) -> int:
        """Before-hook: apply the previous request's flashes, then clear them."""
        if not slot.available:
            logger.debug("No session on request; nothing to rehydrate")
            return 0
        records = slot.get()
        slot.delete()
        if not records:
            return 0
        applied = apply_records(layer, records)
        logger.debug("Rehydrated %d flashed entr%s", applied, "y" if applied == 1 else "ies")
        return applied

    def persist(self, layer: DataLayer, slot: FlashSlot) -> int:
        """After-hook: store this request's flashes, replacing the slot."""
        records = encode_entries(layer.flashed(), layer.flashed_pushes())
        if not slot.available:
            if records:
                logger.debug("No session on request; dropping %d flashed entries", len(records))
            return 0
        if records:
            slot.set(records)
        else:
            slot.delete()
        return len(records)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        layer = self.create_datalayer()
        slot = self.slot_for(scope)
        self.rehydrate(layer, slot)
        scope[SCOPE_KEY] = layer

        persisted = False

        def persist_once() -> None:
            nonlocal persisted
            if not persisted:
                persisted = True
                self.persist(layer, slot)

        async def send_after_hook(message: Message) -> None:
            if message["type"] == "http.response.start":
                persist_once()
            await send(message)

        token = datalayer_var.set(layer)
        try:
            await self._app(scope, receive, send_after_hook)
        finally:
            datalayer_var.reset(token)
            # App failed before starting a response: keep the flashes anyway
            persist_once()
