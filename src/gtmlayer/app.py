"""Startup wiring.

``install()`` is the one-call setup for an ASGI app::

    from gtmlayer import GTMConfig, install
    from gtmlayer.session import SessionConfig

    app = install(
        app,
        GTMConfig.from_env(),
        session=SessionConfig(secret_key=os.environ["SECRET_KEY"]),
    )

It loads extensions from ``config.macro_path`` (once per file, so a second
``install()`` in the same process reuses them), freezes the extension
registry, and wraps the app as::

    SessionMiddleware (when session is given)
      FlashBridge
        SnippetInjector (when config.auto_inject)
          app

Leave ``session`` unset when another middleware already provides
``scope["session"]``.
"""

import logging

from gtmlayer._internal.asgi import ASGIApp
from gtmlayer.config import GTMConfig
from gtmlayer.datalayer import DataLayer
from gtmlayer.extensions import load_extensions
from gtmlayer.flash import FlashBridge
from gtmlayer.inject import SnippetInjector
from gtmlayer.session import SessionConfig, SessionMiddleware

logger = logging.getLogger("gtmlayer")


def install(
    app: ASGIApp,
    config: GTMConfig | None = None,
    *,
    session: SessionConfig | None = None,
) -> ASGIApp:
    """Wrap *app* with the GTM middleware stack and freeze extensions."""
    config = config or GTMConfig()

    registry = DataLayer.extensions
    if config.macro_path is not None:
        if registry.frozen and registry.loaded_from(config.macro_path):
            logger.debug("Extensions from %s already loaded", config.macro_path)
        else:
            load_extensions(config.macro_path, registry)
    registry.freeze()

    if not config.id:
        logger.warning("GTMConfig.id is empty; the container snippet will have no id")

    wrapped: ASGIApp = app
    if config.auto_inject:
        wrapped = SnippetInjector(wrapped)
    wrapped = FlashBridge(wrapped, config)
    if session is not None:
        wrapped = SessionMiddleware(wrapped, session)
    return wrapped
