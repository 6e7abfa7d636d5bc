from datetime import datetime, timezone
from pagebuilder.config import BaseConfig
from pagebuilder.extensions import db


def utc_now():
    return datetime.now(timezone.utc)


def table_name(name: str) -> str:
    """Physical table name with the configured prefix applied."""
    return f"{BaseConfig.LPB_TABLE_PREFIX}{name}"


class TimestampMixin:
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)


class BaseModel(db.Model, TimestampMixin):
    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    def __init__(self, **kwargs):
        """
        Dummy __init__ to satisfy static type checkers (Pylance, MyPy).
        SQLAlchemy ORM will populate fields dynamically.
        """
        super().__init__(**kwargs)
