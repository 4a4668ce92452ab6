"""Application factory wiring Flask extensions, blueprints and the auth container."""

from __future__ import annotations

import atexit

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from authcore.core.config import BaseConfig, get_config
from authcore.core.logger import configure_logging, init_app as init_logging


def _apply_proxy_fix(app: Flask) -> None:
    """Trust ``X-Forwarded-*`` headers from ``PROXY_FIX_HOPS`` upstream proxies (0 disables)."""
    hops = int(app.config.get("PROXY_FIX_HOPS", 1))
    if hops > 0:
        app.wsgi_app = ProxyFix(  # type: ignore[method-assign]
            app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops, x_prefix=hops
        )


def _sql_engine_options(app: Flask) -> None:
    """Bound pool checkouts by ``STORAGE_TIMEOUT_SECONDS`` on server databases."""
    uri = str(app.config.get("SQLALCHEMY_DATABASE_URI", ""))
    if uri.startswith("sqlite"):
        return
    options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    options.setdefault("pool_timeout", float(app.config.get("STORAGE_TIMEOUT_SECONDS", 5.0)))
    options.setdefault("pool_pre_ping", True)
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = options


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config class, object or import path; defaults to the class
        selected by ``APP_ENV``.
    :raises ValueError: When the auth container cannot be built from the
        configuration (unknown backend, bad or placeholder signing keys).
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)
    _sql_engine_options(app)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    _apply_proxy_fix(app)

    from authcore.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from authcore.core import cors

    cors.init_app(app)

    from authcore.api import init_app as init_api

    init_api(app)

    from authcore.core import errors

    errors.init_app(app)

    from authcore import cli as app_cli

    app_cli.init_app(app)

    from authcore.api.deps import EXTENSION_KEY
    from authcore.container import AuthContainer
    from authcore.core.extensions import db

    container = AuthContainer.from_config(app.config, session_factory=lambda: db.session)
    app.extensions[EXTENSION_KEY] = container
    atexit.register(container.close)

    return app
