import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # sql | mongo
    LPB_DATABASE_DRIVER = os.getenv("LPB_DATABASE_DRIVER", "sql")
    LPB_TABLE_PREFIX = os.getenv("LPB_TABLE_PREFIX", "lpb_")
    LPB_AUTO_SETUP = _env_flag("LPB_AUTO_SETUP", True)
    LPB_PAGE_REPOSITORY = os.getenv("LPB_PAGE_REPOSITORY")

    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DATABASE = os.getenv("MONGO_DATABASE", "pagebuilder")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URI", "sqlite:///pagebuilder.db")


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI")


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LPB_DATABASE_DRIVER = "sql"
    MONGO_DATABASE = "pagebuilder_test"


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
