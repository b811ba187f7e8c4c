"""kida template helpers.

Registers globals and filters that read the current request's layer, so
page templates can place the fragments themselves::

    <head>
      {{ gtm_head() }}
    </head>
    <body>
      {{ gtm_body() }}
      <button data-track="{{ {"event": "cta"} | gtm_dump }}">Buy</button>
    </body>

Setup, once per Environment::

    from kida import Environment
    from gtmlayer.templating import register_template_helpers

    env = Environment(autoescape=True)
    register_template_helpers(env)
"""

import html
from collections.abc import Callable
from typing import Any

from kida import Environment
from kida.template import Markup

from gtmlayer.context import get_datalayer
from gtmlayer.datalayer import DataLayer
from gtmlayer.snippets import body_snippet, head_snippet


def gtm_head() -> Markup:
    """``<head>`` fragment for the current request's layer."""
    return Markup(head_snippet(get_datalayer()))


def gtm_body() -> Markup:
    """``<body>`` fragment for the current request's layer."""
    return Markup(body_snippet(get_datalayer()))


def gtm_id() -> str:
    return get_datalayer().get_id()


def gtm_enabled() -> bool:
    return get_datalayer().is_enabled()


def gtm_dump(value: Any) -> Markup:
    """Serialize a value as HTML-escaped JSON for a markup attribute.

    Example:
        <div data-gtm="{{ product | gtm_dump }}"></div>
    """
    return Markup(html.escape(DataLayer.dump(value), quote=True))


TEMPLATE_FILTERS: dict[str, Callable[..., Any]] = {
    "gtm_dump": gtm_dump,
}

TEMPLATE_GLOBALS: dict[str, Any] = {
    "gtm_head": gtm_head,
    "gtm_body": gtm_body,
    "gtm_id": gtm_id,
    "gtm_enabled": gtm_enabled,
}


def register_template_helpers(env: Environment) -> Environment:
    """Add the GTM globals and filters to *env* and return it."""
    env.update_filters(TEMPLATE_FILTERS)
    for name, value in TEMPLATE_GLOBALS.items():
        env.add_global(name, value)
    return env
