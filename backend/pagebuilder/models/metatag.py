from pagebuilder.extensions import db
from .base import BaseModel, table_name


class Metatag(BaseModel):
    __tablename__ = table_name("metatags")

    name = db.Column(db.String(255), nullable=True)
    property = db.Column(db.String(255), nullable=True)
    content = db.Column(db.Text, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    page_id = db.Column(
        db.String(36),
        db.ForeignKey(f"{table_name('pages')}.id", ondelete="CASCADE", name="fk_metatags_page"),
        nullable=False,
        index=True,
    )

    page = db.relationship("Page", back_populates="metatags")

    __table_args__ = (
        db.UniqueConstraint("page_id", "name", name="uq_page_name"),
        db.UniqueConstraint("page_id", "property", name="uq_page_property"),
        db.CheckConstraint(
            "(name IS NOT NULL) <> (property IS NOT NULL)",
            name="chk_metatags_name_xor_property",
        ),
    )
