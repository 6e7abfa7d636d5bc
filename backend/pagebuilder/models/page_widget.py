from pagebuilder.extensions import db
from .base import BaseModel, table_name


class PageWidget(BaseModel):
    __tablename__ = table_name("page_widgets")

    widget = db.Column(db.String(255), nullable=False)  # renderer name, opaque here
    position_x = db.Column(db.Integer, nullable=False, default=0)
    position_y = db.Column(db.Integer, nullable=False, default=0)
    order = db.Column(db.Integer, nullable=False, default=0)
    parent_id = db.Column(
        db.Integer,
        db.ForeignKey(f"{table_name('page_widgets')}.id", ondelete="SET NULL", name="fk_widgets_parent"),
        nullable=True,
        index=True,
    )
    page_id = db.Column(
        db.String(36),
        db.ForeignKey(f"{table_name('pages')}.id", ondelete="CASCADE", name="fk_widgets_page"),
        nullable=False,
    )

    page = db.relationship("Page", back_populates="widgets")
    settings = db.relationship(
        "PageWidgetSetting",
        back_populates="widget",
        order_by="PageWidgetSetting.id",
        passive_deletes=True,
    )

    __table_args__ = (
        db.CheckConstraint("position_x >= 0", name="chk_widgets_position_x"),
        db.CheckConstraint("position_y >= 0", name="chk_widgets_position_y"),
        db.Index("idx_widgets_page_order", "page_id", "order"),
    )
