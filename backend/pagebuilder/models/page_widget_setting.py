from pagebuilder.extensions import db
from .base import BaseModel, table_name


class PageWidgetSetting(BaseModel):
    __tablename__ = table_name("page_widget_settings")

    key = db.Column(db.String(255), nullable=False)
    value = db.Column(db.JSON, nullable=True)
    widget_id = db.Column(
        db.Integer,
        db.ForeignKey(f"{table_name('page_widgets')}.id", ondelete="CASCADE", name="fk_widget_setting_widget"),
        nullable=False,
        index=True,
    )

    widget = db.relationship("PageWidget", back_populates="settings")

    __table_args__ = (
        db.UniqueConstraint("widget_id", "key", name="uq_widget_setting"),
    )
