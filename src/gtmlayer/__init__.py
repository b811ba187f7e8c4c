"""gtmlayer — Google Tag Manager data layer for ASGI apps.

Accumulates tracking data per request, renders it into the page for the
GTM container, and carries flashed values across one redirect.

Basic usage::

    from gtmlayer import GTMConfig, get_datalayer, install
    from gtmlayer.session import SessionConfig

    app = install(app, GTMConfig(id="GTM-XXXXXX"), session=SessionConfig(secret_key="..."))

    # In a handler:
    layer = get_datalayer()
    layer.set("page.type", "checkout")
    layer.flash("formResponse", "success")  # this request and the next

Extensions::

    from gtmlayer import DataLayer

    @DataLayer.macro("impression")
    def impression(layer, sku):
        layer.push({"event": "impression", "sku": sku})
"""

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "DataLayer",
    "ExtensionNotFoundError",
    "ExtensionRegistry",
    "FlashBridge",
    "FlashedEntry",
    "GTMConfig",
    "GTMError",
    "KeyPathStore",
    "SerializationError",
    "SnippetInjector",
    "body_snippet",
    "get_datalayer",
    "head_snippet",
    "install",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import gtmlayer`` cheap and defers ``itsdangerous`` and ``kida``
    until a middleware or the template helpers are imported.
    """
    if name == "KeyPathStore":
        from gtmlayer.store import KeyPathStore

        return KeyPathStore

    if name in ("DataLayer", "FlashedEntry"):
        from gtmlayer import datalayer as _dl

        return getattr(_dl, name)

    if name == "GTMConfig":
        from gtmlayer.config import GTMConfig

        return GTMConfig

    if name == "ExtensionRegistry":
        from gtmlayer.extensions import ExtensionRegistry

        return ExtensionRegistry

    if name == "FlashBridge":
        from gtmlayer.flash import FlashBridge

        return FlashBridge

    if name == "SnippetInjector":
        from gtmlayer.inject import SnippetInjector

        return SnippetInjector

    if name in ("head_snippet", "body_snippet"):
        from gtmlayer import snippets as _snippets

        return getattr(_snippets, name)

    if name == "get_datalayer":
        from gtmlayer.context import get_datalayer

        return get_datalayer

    if name == "install":
        from gtmlayer.app import install

        return install

    if name in ("ConfigurationError", "ExtensionNotFoundError", "GTMError", "SerializationError"):
        from gtmlayer import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
