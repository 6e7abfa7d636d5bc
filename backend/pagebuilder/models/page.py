import uuid
from pagebuilder.domain.lifecycle.page import DEFAULT_STATUS, PAGE_STATUSES
from pagebuilder.extensions import db
from .base import TimestampMixin, table_name


class Page(db.Model, TimestampMixin):
    __tablename__ = table_name("pages")

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = db.Column(db.String(255), nullable=False)
    extra_css = db.Column(db.Text, nullable=True)
    extra_js = db.Column(db.Text, nullable=True)
    slug = db.Column(db.String(255), nullable=False)
    status = db.Column(
        db.Enum(*PAGE_STATUSES, name="page_status", create_constraint=True),
        nullable=False,
        default=DEFAULT_STATUS,
        index=True,
    )
    theme = db.Column(db.Boolean, nullable=False, default=False)
    # Insertion sequence; listings follow it so equal timestamps keep a stable order
    seq = db.Column(db.Integer, nullable=False, default=0, index=True)

    __table_args__ = (
        db.UniqueConstraint("slug", name="uq_pages_slug"),
    )

    # Children are removed by the ON DELETE CASCADE rules, not by the ORM
    widgets = db.relationship(
        "PageWidget",
        back_populates="page",
        order_by="PageWidget.order",
        passive_deletes=True,
    )
    metatags = db.relationship(
        "Metatag",
        back_populates="page",
        order_by="Metatag.position",
        passive_deletes=True,
    )
