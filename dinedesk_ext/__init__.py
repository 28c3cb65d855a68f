"""Application factory and shared extension instances."""
from __future__ import annotations

import os
from importlib import import_module
from typing import Dict, Type

from flask import Flask
from flask_caching import Cache

from config import BaseConfig, DevConfig, ProdConfig, TestConfig
from dinedesk_ext import auth as auth_ext
from dinedesk_ext import db as db_ext
from dinedesk_ext import errors as errors_ext
from dinedesk_ext import logging as logging_ext
from dinedesk_ext import ratelimit as ratelimit_ext
from dinedesk_ext import security as security_ext

cache = Cache()

CONFIG_MAP: Dict[str, Type[BaseConfig]] = {
    "development": DevConfig,
    "dev": DevConfig,
    "production": ProdConfig,
    "prod": ProdConfig,
    "testing": TestConfig,
    "test": TestConfig,
}


def create_app(
    config_object: str | Type[BaseConfig] | None = None,
    *,
    create_db: bool = False,
) -> Flask:
    """Application factory used by both CLI and WSGI entrypoints."""
    app = Flask(__name__, template_folder=None, static_folder=None)

    _load_config(app, config_object)
    logging_ext.configure_logging(app)
    errors_ext.init_app(app)

    db_ext.init_app(app)
    security_ext.init_app(app)
    auth_ext.init_app(app)
    cache.init_app(app)
    ratelimit_ext.init_app(app)

    _register_models()
    _register_blueprints(app)
    _register_cli(app)
    _register_middleware(app)

    if create_db:
        with app.app_context():
            db_ext.db.create_all()

    return app


def _load_config(app: Flask, config_object: str | Type[BaseConfig] | None) -> None:
    if config_object is None:
        env_name = os.getenv("FLASK_ENV", "development").lower()
        config_cls = CONFIG_MAP.get(env_name, DevConfig)
    elif isinstance(config_object, str):
        key = config_object.lower()
        if key in CONFIG_MAP:
            config_cls = CONFIG_MAP[key]
        else:
            module_path, _, attr = config_object.rpartition(".")
            if module_path:
                module = import_module(module_path)
                config_cls = getattr(module, attr)
            else:
                raise KeyError(f"Unknown config identifier: {config_object}")
    else:
        config_cls = config_object

    app.config.from_object(config_cls)


def _register_models() -> None:
    import dinedesk_models  # noqa: F401


def _register_blueprints(app: Flask) -> None:
    from dinedesk_admin import admin_bp
    from dinedesk_auth import auth_bp
    from dinedesk_business import business_bp
    from dinedesk_menu import menu_bp
    from dinedesk_web import web_bp

    app.register_blueprint(web_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(business_bp, url_prefix="/api")
    app.register_blueprint(menu_bp, url_prefix="/api")

    # API blueprints accept JSON and multipart bodies without a CSRF token.
    for blueprint in (auth_bp, admin_bp, business_bp, menu_bp):
        security_ext.csrf.exempt(blueprint)


def _register_cli(app: Flask) -> None:
    from dinedesk_cli.manage import manage_cli

    app.cli.add_command(manage_cli, "manage")


def _register_middleware(app: Flask) -> None:
    from dinedesk_web.middleware import init_app as middleware_init

    middleware_init(app)
