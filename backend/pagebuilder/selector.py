"""
Backend selector.

The storage backend is chosen once, when the application is created, from
``LPB_DATABASE_DRIVER``:

    app = create_app("production")
    pages = get_repository()        # bound page repository
    settings = get_settings()       # bound global settings

Exactly one backend is bound per application; nothing switches per request.
"""

from flask import current_app
from pymongo import MongoClient
from werkzeug.utils import import_string

from pagebuilder.config import BaseConfig
from pagebuilder.extensions import db
from pagebuilder.repositories.mongo.global_settings import MongoGlobalSettings
from pagebuilder.repositories.mongo.page_repository import MongoPageRepository
from pagebuilder.repositories.sql.global_settings import SqlGlobalSettings
from pagebuilder.repositories.sql.page_repository import SqlPageRepository

EXTENSION_KEY = "pagebuilder"
DRIVER_ALIASES = {"mongodb": "mongo"}


class BoundBackend:
    """What init_app stores in ``app.extensions``."""

    def __init__(self, driver, pages, settings):
        self.driver = driver
        self.pages = pages
        self.settings = settings


def resolve_driver(name):
    driver = DRIVER_ALIASES.get(name, name)
    if driver not in BACKENDS:
        raise ValueError(f"Unknown backend: {name}")
    return driver


def resolve_page_class(app, default):
    """
    Optional LPB_PAGE_REPOSITORY override (dotted path). It has to extend the
    driver's own repository so the storage technology cannot change under it.
    """
    path = app.config.get("LPB_PAGE_REPOSITORY")
    if not path:
        return default

    cls = import_string(path)
    if not (isinstance(cls, type) and issubclass(cls, default)):
        raise TypeError(f"{path} must subclass {default.__name__}")
    return cls


def _sql_backend(app, mongo_client=None):
    if app.config.get("LPB_TABLE_PREFIX", BaseConfig.LPB_TABLE_PREFIX) != BaseConfig.LPB_TABLE_PREFIX:
        app.logger.warning(
            "LPB_TABLE_PREFIX differs from the environment value; "
            "relational table names use %r",
            BaseConfig.LPB_TABLE_PREFIX,
        )

    db.init_app(app)
    pages = resolve_page_class(app, SqlPageRepository)()
    return pages, SqlGlobalSettings()


def _mongo_backend(app, mongo_client=None):
    client = mongo_client or MongoClient(app.config["MONGO_URI"])
    database = client[app.config["MONGO_DATABASE"]]
    prefix = app.config.get("LPB_TABLE_PREFIX", BaseConfig.LPB_TABLE_PREFIX)

    pages = resolve_page_class(app, MongoPageRepository)(database, f"{prefix}pages")
    return pages, MongoGlobalSettings(database, f"{prefix}global_settings")


BACKENDS = {
    "sql": _sql_backend,
    "mongo": _mongo_backend,
}


class PageBuilder:
    """Flask extension binding one storage backend to an application."""

    def __init__(self, app=None, mongo_client=None):
        if app is not None:
            self.init_app(app, mongo_client=mongo_client)

    def init_app(self, app, mongo_client=None):
        if EXTENSION_KEY in app.extensions:
            raise RuntimeError("A storage backend is already bound to this application")

        driver = resolve_driver(app.config.get("LPB_DATABASE_DRIVER", "sql"))
        pages, settings = BACKENDS[driver](app, mongo_client=mongo_client)
        app.extensions[EXTENSION_KEY] = BoundBackend(driver, pages, settings)

        if app.config.get("LPB_AUTO_SETUP", True):
            with app.app_context():
                pages.ensure_schema()
                settings.ensure_schema()

        app.logger.info("pagebuilder storage bound to the %s backend", driver)


def _bound():
    backend = current_app.extensions.get(EXTENSION_KEY)
    if backend is None:
        raise RuntimeError("No storage backend bound; call PageBuilder.init_app first")
    return backend


def get_repository():
    """The page repository bound to the current application."""
    return _bound().pages


def get_settings():
    """The global settings repository bound to the current application."""
    return _bound().settings


def get_driver():
    return _bound().driver
