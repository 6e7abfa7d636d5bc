"""
Relational page repository (Flask-SQLAlchemy).

Pages, metatags, widgets and widget settings are separate tables joined by
foreign keys. The widget sequence is the ``order`` column, kept equal to the
array index so the index-based widget operations behave exactly like the
document backend's array operations.

Integrity is left to the database:
- deleting a page is one DELETE; metatags and widgets go via ON DELETE CASCADE
- deleting a widget nulls its children's parent_id (ON DELETE SET NULL)
- slug uniqueness, metatag XOR/uniqueness and position checks are table
  constraints, surfaced as ConstraintViolation
"""

from flask import current_app
from sqlalchemy import delete, select, update
from sqlalchemy.orm import selectinload

from pagebuilder.domain.exceptions import ConcurrencyConflict
from pagebuilder.domain.invariants.metatag import assert_metatag_shape
from pagebuilder.domain.invariants.page import SCALAR_PAGE_FIELDS, assert_page_data
from pagebuilder.domain.invariants.widget import assert_acyclic, assert_widget_data
from pagebuilder.extensions import db
from pagebuilder.models.base import utc_now
from pagebuilder.models.metatag import Metatag
from pagebuilder.models.page import Page
from pagebuilder.models.page_widget import PageWidget
from pagebuilder.models.page_widget_setting import PageWidgetSetting
from pagebuilder.normalizers.page import normalize_page
from pagebuilder.repositories.base import PageRepositoryInterface
from pagebuilder.utils.optimistic_lock import enforce_optimistic_lock
from pagebuilder.utils.order import compact_order, next_order
from pagebuilder.utils.transaction import transactional


def _in_bounds(index, length):
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < length


class SqlPageRepository(PageRepositoryInterface):

    model = Page

    # ------------------------
    # Loading
    # ------------------------

    def _load(self, id, *options):
        if id is None:
            return None

        stmt = (
            select(self.model)
            .where(self.model.id == str(id))
            .options(*options)
            .execution_options(populate_existing=True)
        )
        return db.session.execute(stmt).scalar_one_or_none()

    def _list(self, *criteria):
        stmt = select(self.model).where(*criteria).order_by(
            self.model.seq.asc(),
            self.model.id.asc(),
        )
        return [normalize_page(p) for p in db.session.execute(stmt).scalars()]

    def _aggregate(self, id):
        page = self._load(
            id,
            selectinload(Page.widgets).selectinload(PageWidget.settings),
            selectinload(Page.metatags),
        )
        return normalize_page(page, widgets=True, metatags=True)

    # ------------------------
    # CRUD
    # ------------------------

    def find(self, id):
        page = self._load(id)
        return normalize_page(page) if page else None

    def all(self):
        return self._list()

    def create(self, data):
        assert_page_data(data)

        page = self.model()
        for field in SCALAR_PAGE_FIELDS:
            if field in data:
                setattr(page, field, data[field])

        with transactional(operation="page.create"):
            page.seq = next_order(Page, "seq")
            db.session.add(page)
            db.session.flush()  # ensures page.id is available

            if "metatags" in data:
                self._replace_metatags(page, data["metatags"])
            if "widgets" in data:
                self._replace_widgets(page, data["widgets"])

        current_app.logger.debug("page.create id=%s slug=%s", page.id, page.slug)
        return self.find(page.id)

    def update(self, id, data):
        assert_page_data(data, partial=True)

        page = self._load(id)
        if page is None:
            return None

        with transactional(operation="page.update", entity_id=page.id):
            for field in SCALAR_PAGE_FIELDS:
                if field in data:
                    setattr(page, field, data[field])

            if "metatags" in data:
                self._replace_metatags(page, data["metatags"])
            if "widgets" in data:
                self._replace_widgets(page, data["widgets"])

            page.updated_at = utc_now()

        current_app.logger.debug("page.update id=%s fields=%s", page.id, sorted(data))
        return self.find(page.id)

    def delete(self, id):
        if id is None:
            return False

        with transactional(operation="page.delete", entity_id=id):
            result = db.session.execute(
                delete(Page).where(Page.id == str(id)),
                execution_options={"synchronize_session": False},
            )

        deleted = result.rowcount > 0
        if deleted:
            current_app.logger.debug("page.delete id=%s", id)
        return deleted

    def ensure_schema(self):
        db.create_all()

    # ------------------------
    # Queries
    # ------------------------

    def find_by_slug(self, slug):
        page = db.session.execute(
            select(Page).where(Page.slug == slug)
        ).scalar_one_or_none()
        return normalize_page(page) if page else None

    def get_by_status(self, status):
        return self._list(Page.status == status)

    def with_widgets(self, id):
        # Two extra SELECTs (widgets, settings) regardless of widget count
        page = self._load(id, selectinload(Page.widgets).selectinload(PageWidget.settings))
        return normalize_page(page, widgets=True) if page else None

    def with_metatags(self, id):
        page = self._load(id, selectinload(Page.metatags))
        return normalize_page(page, metatags=True) if page else None

    # ------------------------
    # Aggregate mutations
    # ------------------------

    def _mutate(self, page_id, operation, expected_updated_at, apply):
        """
        Run ``apply(page)`` in one transaction and return the fresh aggregate.

        ``apply`` returns False for a no-op; the page is then left untouched.
        """
        page = self._load(page_id)
        if page is None:
            return None

        page_id, stored = page.id, page.updated_at
        enforce_optimistic_lock(
            stored,
            expected_updated_at,
            operation=operation,
            entity_id=page_id,
        )

        with transactional(operation=operation, entity_id=page_id):
            changed = apply(page)
            if changed is not False:
                if expected_updated_at is None:
                    page.updated_at = utc_now()
                else:
                    self._touch_if_unchanged(page_id, stored, operation)

        if changed is not False:
            current_app.logger.debug("%s page=%s", operation, page_id)
        return self._aggregate(page_id)

    def _touch_if_unchanged(self, page_id, stored, operation):
        # Conditional on the updated_at read before the check; a writer that
        # committed in between leaves no matching row and the whole unit rolls back
        result = db.session.execute(
            update(Page)
            .where(Page.id == page_id, Page.updated_at == stored)
            .values(updated_at=utc_now()),
            execution_options={"synchronize_session": False},
        )
        if result.rowcount == 0:
            raise ConcurrencyConflict(operation=operation, entity_id=page_id)

    # Widgets

    def add_widget(self, page_id, widget, expected_updated_at=None):
        assert_widget_data(widget)

        def apply(page):
            parents = {w.id: w.parent_id for w in page.widgets}
            assert_acyclic(
                parents,
                widget_id=None,
                parent_id=widget.get("parent_id"),
                operation="widget.add",
                entity_id=page.id,
            )
            row = self._new_widget(page, widget, order=next_order(PageWidget, page_id=page.id))
            row.parent_id = widget.get("parent_id")
            db.session.flush()

        return self._mutate(page_id, "widget.add", expected_updated_at, apply)

    def update_widget(self, page_id, index, data, expected_updated_at=None):
        assert_widget_data(data, partial=True)

        def apply(page):
            widgets = page.widgets
            if not _in_bounds(index, len(widgets)):
                return False
            self._merge_widget(page, widgets[index], data, "widget.update")

        return self._mutate(page_id, "widget.update", expected_updated_at, apply)

    def update_widget_by_id(self, page_id, widget_id, data, expected_updated_at=None):
        assert_widget_data(data, partial=True)

        def apply(page):
            row = next((w for w in page.widgets if w.id == widget_id), None)
            if row is None:
                return False
            self._merge_widget(page, row, data, "widget.update")

        return self._mutate(page_id, "widget.update", expected_updated_at, apply)

    def remove_widget(self, page_id, index, expected_updated_at=None):
        def apply(page):
            widgets = list(page.widgets)
            if not _in_bounds(index, len(widgets)):
                return False
            self._delete_widget(widgets, widgets[index])

        return self._mutate(page_id, "widget.remove", expected_updated_at, apply)

    def remove_widget_by_id(self, page_id, widget_id, expected_updated_at=None):
        def apply(page):
            widgets = list(page.widgets)
            row = next((w for w in widgets if w.id == widget_id), None)
            if row is None:
                return False
            self._delete_widget(widgets, row)

        return self._mutate(page_id, "widget.remove", expected_updated_at, apply)

    def _new_widget(self, page, data, order):
        row = PageWidget()
        row.page_id = page.id
        row.widget = data["widget"]
        row.position_x = data.get("position_x", 0)
        row.position_y = data.get("position_y", 0)
        row.order = order
        db.session.add(row)
        db.session.flush()  # ensures row.id for settings

        for setting in data.get("settings", []):
            self._new_setting(row, setting)
        return row

    def _new_setting(self, widget, setting):
        row = PageWidgetSetting()
        row.widget_id = widget.id
        row.key = setting["key"]
        row.value = setting["value"]
        db.session.add(row)

    def _merge_widget(self, page, row, data, operation):
        for field in ("widget", "position_x", "position_y"):
            if field in data:
                setattr(row, field, data[field])

        if "parent_id" in data:
            parents = {w.id: w.parent_id for w in page.widgets}
            assert_acyclic(
                parents,
                widget_id=row.id,
                parent_id=data["parent_id"],
                operation=operation,
                entity_id=page.id,
            )
            row.parent_id = data["parent_id"]

        if "settings" in data:
            # Shallow merge: the settings list is replaced as a whole
            db.session.execute(
                delete(PageWidgetSetting).where(PageWidgetSetting.widget_id == row.id),
                execution_options={"synchronize_session": False},
            )
            for setting in data["settings"]:
                self._new_setting(row, setting)

        db.session.flush()

    def _delete_widget(self, widgets, row):
        # Settings cascade; children's parent_id is nulled by the FK rule
        db.session.execute(
            delete(PageWidget).where(PageWidget.id == row.id),
            execution_options={"synchronize_session": False},
        )
        compact_order([w for w in widgets if w is not row])

    def _replace_widgets(self, page, widgets):
        db.session.execute(
            delete(PageWidget).where(PageWidget.page_id == page.id),
            execution_options={"synchronize_session": False},
        )
        for order, widget in enumerate(widgets):
            self._new_widget(page, widget, order=order)
        db.session.flush()

    # Metatags

    def add_metatag(self, page_id, name, content, expected_updated_at=None):
        assert_metatag_shape({"name": name, "content": content})

        def apply(page):
            self._new_metatag(page, {"name": name, "content": content})
            db.session.flush()

        return self._mutate(page_id, "metatag.add", expected_updated_at, apply)

    def set_metatag(self, page_id, name, content, expected_updated_at=None):
        assert_metatag_shape({"name": name, "content": content})

        def apply(page):
            tag = next((t for t in page.metatags if t.name == name), None)
            if tag is None:
                self._new_metatag(page, {"name": name, "content": content})
            else:
                tag.content = content
            db.session.flush()

        return self._mutate(page_id, "metatag.set", expected_updated_at, apply)

    def get_metatag(self, page_id, name):
        if page_id is None:
            return None

        return db.session.execute(
            select(Metatag.content)
            .where(Metatag.page_id == str(page_id), Metatag.name == name)
            .order_by(Metatag.position.asc())
            .limit(1)
        ).scalar_one_or_none()

    def _new_metatag(self, page, tag, position=None):
        row = Metatag()
        row.page_id = page.id
        row.name = tag.get("name")
        row.property = tag.get("property")
        row.content = tag["content"]
        row.position = (
            next_order(Metatag, "position", page_id=page.id) if position is None else position
        )
        db.session.add(row)
        return row

    def _replace_metatags(self, page, metatags):
        db.session.execute(
            delete(Metatag).where(Metatag.page_id == page.id),
            execution_options={"synchronize_session": False},
        )
        for position, tag in enumerate(metatags):
            self._new_metatag(page, tag, position=position)
        db.session.flush()
