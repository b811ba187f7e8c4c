"""Embeddable GTM fragments.

``head_snippet`` belongs as high in ``<head>`` as possible; it declares
the data layer and loads the container. ``body_snippet`` belongs right
after the opening ``<body>`` tag; it is the ``<noscript>`` fallback.

Both render ``""`` when the layer is disabled, so templates can include
them unconditionally.
"""

import html
import json
from urllib.parse import quote

from gtmlayer.datalayer import DataLayer, script_safe


def _js_string(value: str) -> str:
    return script_safe(json.dumps(value))


def loader_snippet(container_id: str, domain: str = "www.googletagmanager.com") -> str:
    """Build the GTM container loader script tag."""
    src = _js_string(f"https://{domain}/gtm.js?id=")
    return (
        "<script>(function(w,d,s,l,i){w[l]=w[l]||[];w[l].push({'gtm.start':"
        "new Date().getTime(),event:'gtm.js'});var f=d.getElementsByTagName(s)[0],"
        "j=d.createElement(s),dl=l!='dataLayer'?'&l='+l:'';j.async=true;j.src="
        f"{src}+i+dl;f.parentNode.insertBefore(j,f);"
        f"}})(window,document,'script','dataLayer',{_js_string(container_id)});</script>"
    )


def head_snippet(layer: DataLayer) -> str:
    """Data layer declaration, queued pushes, then the container loader."""
    if not layer.is_enabled():
        return ""
    parts = [f"<script>dataLayer = {layer.render()};</script>"]
    parts.extend(f"<script>dataLayer.push({event});</script>" for event in layer.render_pushes())
    parts.append(loader_snippet(layer.get_id(), layer.config.domain))
    return "\n".join(parts)


def body_snippet(layer: DataLayer) -> str:
    """The ``<noscript>`` iframe fallback for the container."""
    if not layer.is_enabled():
        return ""
    src = f"https://{layer.config.domain}/ns.html?id={quote(layer.get_id(), safe='')}"
    return (
        f'<noscript><iframe src="{html.escape(src, quote=True)}" '
        'height="0" width="0" style="display:none;visibility:hidden"></iframe></noscript>'
    )
