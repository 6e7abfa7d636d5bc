from pagebuilder.extensions import db
from .base import BaseModel, table_name


class GlobalSetting(BaseModel):
    __tablename__ = table_name("global_settings")

    key = db.Column(db.String(255), nullable=False)
    value = db.Column(db.JSON(none_as_null=True), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("key", name="uq_global_settings_key"),
    )
