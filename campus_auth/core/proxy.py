"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Trust ``X-Forwarded-*`` headers from the single hop in front of the API.

    The external rate-limiting policy keys callers by client address, so the
    address seen by the application must be the forwarded one. Disable with
    ``USE_PROXYFIX = False`` when the service is exposed directly.
    """
    if app.config.get("USE_PROXYFIX", True):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)
