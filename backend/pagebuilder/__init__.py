from flask import Flask
from .config import config_by_name
from .errors import register_error_handlers
from .selector import PageBuilder, get_repository, get_settings


def create_app(config_name: str = "development", config_overrides=None, mongo_client=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    if config_overrides:
        app.config.update(config_overrides)

    # -------------------------------------------------
    # Storage backend (bound once for the app lifetime)
    # -------------------------------------------------
    PageBuilder(app, mongo_client=mongo_client)

    # -------------------------------------------------
    # Error handlers for the presentation layer
    # -------------------------------------------------
    register_error_handlers(app)

    return app


__all__ = ["create_app", "PageBuilder", "get_repository", "get_settings"]
