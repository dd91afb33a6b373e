"""Reverse-proxy awareness for client address and scheme."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Wrap the WSGI app in :class:`ProxyFix` unless ``USE_PROXYFIX`` is off.

    The login rate limit keys on the client address and the ``device-id``
    cookie is marked ``Secure`` only for HTTPS requests, so both rely on the
    forwarded headers. ``PROXY_HOPS`` sets how many proxies are trusted.
    """
    if not app.config.get("USE_PROXYFIX", True):
        return
    hops = int(app.config.get("PROXY_HOPS", 1))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops)
