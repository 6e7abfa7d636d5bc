"""
Document page repository (PyMongo).

One document per page; metatags and widgets are embedded arrays:

    {
        "_id": ObjectId, "title", "extra_css", "extra_js", "slug",
        "status", "theme", "created_at", "updated_at",
        "widgets": [{"id", "widget", "position_x", "position_y",
                     "parent_id", "settings": [{"key", "value"}]}],
        "metatags": [{"name", "content"}],
    }

Every mutation reads the whole document, changes it in Python and writes it
back with ``replace_one``. Two callers mutating the same page concurrently
race: the later write silently discards the earlier one's array changes.
Passing ``expected_updated_at`` turns the write into a conditional replace
that raises ConcurrencyConflict instead.
"""

import uuid
from datetime import datetime, timezone

from bson import ObjectId
from flask import current_app
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from pagebuilder.domain.exceptions import ConcurrencyConflict, ConstraintViolation
from pagebuilder.domain.invariants.metatag import assert_metatag_shape, assert_metatag_xor
from pagebuilder.domain.invariants.page import SCALAR_PAGE_FIELDS, assert_page_data
from pagebuilder.domain.invariants.widget import (
    assert_acyclic,
    assert_widget_data,
    assert_widget_positions,
)
from pagebuilder.domain.lifecycle.page import DEFAULT_STATUS
from pagebuilder.normalizers.page import normalize_page_document
from pagebuilder.repositories.base import PageRepositoryInterface
from pagebuilder.utils.optimistic_lock import enforce_optimistic_lock

SLUG_INDEX = "uq_pages_slug"
STATUS_INDEX = "idx_pages_status"

# Projections that keep page listings free of embedded arrays
WITHOUT_CHILDREN = {"widgets": 0, "metatags": 0}


def utc_now():
    # BSON dates hold milliseconds; truncate so returned values round-trip
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _in_bounds(index, length):
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < length


def duplicate_key_constraint(exc: DuplicateKeyError, default: str) -> str:
    details = getattr(exc, "details", None) or {}
    key_pattern = details.get("keyPattern") or {}
    if "slug" in key_pattern or SLUG_INDEX in str(exc):
        return SLUG_INDEX
    return default


class MongoPageRepository(PageRepositoryInterface):

    def __init__(self, database, collection_name="lpb_pages"):
        self.collection = database[collection_name]

    # ------------------------
    # Loading
    # ------------------------

    @staticmethod
    def _object_id(id):
        if isinstance(id, ObjectId):
            return id
        if isinstance(id, str) and ObjectId.is_valid(id):
            return ObjectId(id)
        return None

    def _load(self, id, projection=None):
        oid = self._object_id(id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid}, projection)

    def _list(self, query):
        cursor = self.collection.find(query, WITHOUT_CHILDREN).sort("_id", ASCENDING)
        return [normalize_page_document(doc, widgets=False, metatags=False) for doc in cursor]

    # ------------------------
    # CRUD
    # ------------------------

    def find(self, id):
        doc = self._load(id, WITHOUT_CHILDREN)
        return normalize_page_document(doc, widgets=False, metatags=False) if doc else None

    def all(self):
        return self._list({})

    def create(self, data):
        assert_page_data(data)
        self._assert_children(data, operation="page.create")

        now = utc_now()
        doc = {
            "title": data["title"],
            "extra_css": data.get("extra_css"),
            "extra_js": data.get("extra_js"),
            "slug": data["slug"],
            "status": data.get("status", DEFAULT_STATUS),
            "theme": data.get("theme", False),
            "metatags": [self._new_metatag(t) for t in data.get("metatags", [])],
            "widgets": [self._new_widget(w) for w in data.get("widgets", [])],
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError as exc:
            raise self._violation(exc, "page.create", None) from exc

        doc["_id"] = result.inserted_id
        current_app.logger.debug("page.create id=%s slug=%s", doc["_id"], doc["slug"])
        return normalize_page_document(doc, widgets=False, metatags=False)

    def update(self, id, data):
        assert_page_data(data, partial=True)

        doc = self._load(id)
        if doc is None:
            return None

        self._assert_children(data, operation="page.update", entity_id=str(doc["_id"]))

        for field in SCALAR_PAGE_FIELDS:
            if field in data:
                doc[field] = data[field]
        if "metatags" in data:
            doc["metatags"] = [self._new_metatag(t) for t in data["metatags"]]
        if "widgets" in data:
            doc["widgets"] = [self._new_widget(w) for w in data["widgets"]]

        self._save(doc, "page.update")
        current_app.logger.debug("page.update id=%s fields=%s", doc["_id"], sorted(data))
        return normalize_page_document(doc, widgets=False, metatags=False)

    def delete(self, id):
        oid = self._object_id(id)
        if oid is None:
            return False

        # Embedded widgets and metatags go with the document
        deleted = self.collection.delete_one({"_id": oid}).deleted_count == 1
        if deleted:
            current_app.logger.debug("page.delete id=%s", oid)
        return deleted

    def ensure_schema(self):
        self.collection.create_index([("slug", ASCENDING)], unique=True, name=SLUG_INDEX)
        self.collection.create_index([("status", ASCENDING)], name=STATUS_INDEX)

    # ------------------------
    # Queries
    # ------------------------

    def find_by_slug(self, slug):
        doc = self.collection.find_one({"slug": slug}, WITHOUT_CHILDREN)
        return normalize_page_document(doc, widgets=False, metatags=False) if doc else None

    def get_by_status(self, status):
        return self._list({"status": status})

    # Children are embedded: these are plain fetches with a narrower projection

    def with_widgets(self, id):
        doc = self._load(id, {"metatags": 0})
        return normalize_page_document(doc, widgets=True, metatags=False) if doc else None

    def with_metatags(self, id):
        doc = self._load(id, {"widgets": 0})
        return normalize_page_document(doc, widgets=False, metatags=True) if doc else None

    # ------------------------
    # Persistence
    # ------------------------

    def _violation(self, exc, operation, entity_id):
        constraint = duplicate_key_constraint(exc, default=SLUG_INDEX)
        current_app.logger.warning("%s violated %s (id=%s)", operation, constraint, entity_id)
        return ConstraintViolation(operation=operation, constraint=constraint, entity_id=entity_id)

    def _save(self, doc, operation, guarded=False):
        """Write the whole document back."""
        previous = doc.get("updated_at")
        doc["updated_at"] = utc_now()

        query = {"_id": doc["_id"]}
        if guarded:
            query["updated_at"] = previous

        try:
            result = self.collection.replace_one(query, doc)
        except DuplicateKeyError as exc:
            raise self._violation(exc, operation, str(doc["_id"])) from exc

        if guarded and result.matched_count == 0:
            raise ConcurrencyConflict(operation=operation, entity_id=str(doc["_id"]))

    def _mutate(self, page_id, operation, expected_updated_at, apply):
        """
        Read-modify-write of one page document.

        ``apply`` edits the document in place and returns False for a no-op,
        in which case nothing is written.
        """
        doc = self._load(page_id)
        if doc is None:
            return None

        enforce_optimistic_lock(
            doc.get("updated_at"),
            expected_updated_at,
            operation=operation,
            entity_id=str(doc["_id"]),
        )

        if apply(doc) is not False:
            self._save(doc, operation, guarded=expected_updated_at is not None)
            current_app.logger.debug("%s page=%s", operation, doc["_id"])

        return normalize_page_document(doc)

    # ------------------------
    # Embedded values
    # ------------------------

    def _assert_children(self, data, operation, entity_id=None):
        for tag in data.get("metatags", []):
            assert_metatag_xor(tag, operation=operation, entity_id=entity_id)
        for widget in data.get("widgets", []):
            assert_widget_positions(widget, operation=operation, entity_id=entity_id)

    @staticmethod
    def _new_metatag(tag):
        value = {"name": tag.get("name"), "content": tag["content"]}
        if tag.get("property") is not None:
            value["property"] = tag["property"]
        return value

    @staticmethod
    def _new_widget(data):
        return {
            "id": uuid.uuid4().hex,
            "widget": data["widget"],
            "position_x": data.get("position_x", 0),
            "position_y": data.get("position_y", 0),
            "parent_id": data.get("parent_id"),
            "settings": [dict(s) for s in data.get("settings", [])],
        }

    @staticmethod
    def _parents(widgets):
        return {w.get("id"): w.get("parent_id") for w in widgets}

    # Widgets

    def add_widget(self, page_id, widget, expected_updated_at=None):
        assert_widget_data(widget)

        def apply(doc):
            assert_widget_positions(widget, operation="widget.add", entity_id=str(doc["_id"]))
            widgets = doc.setdefault("widgets", [])
            assert_acyclic(
                self._parents(widgets),
                widget_id=None,
                parent_id=widget.get("parent_id"),
                operation="widget.add",
                entity_id=str(doc["_id"]),
            )
            widgets.append(self._new_widget(widget))

        return self._mutate(page_id, "widget.add", expected_updated_at, apply)

    def update_widget(self, page_id, index, data, expected_updated_at=None):
        """
        Shallow-merge ``data`` into the widget at ``index``.

        Only widget fields are merged; any other key (``{"a": 1}``) raises
        ValidationError instead of being copied into the embedded element.
        """
        assert_widget_data(data, partial=True)

        def apply(doc):
            widgets = doc.setdefault("widgets", [])
            if not _in_bounds(index, len(widgets)):
                return False
            self._merge_widget(doc, index, data)

        return self._mutate(page_id, "widget.update", expected_updated_at, apply)

    def update_widget_by_id(self, page_id, widget_id, data, expected_updated_at=None):
        assert_widget_data(data, partial=True)

        def apply(doc):
            index = self._index_of(doc.setdefault("widgets", []), widget_id)
            if index is None:
                return False
            self._merge_widget(doc, index, data)

        return self._mutate(page_id, "widget.update", expected_updated_at, apply)

    def remove_widget(self, page_id, index, expected_updated_at=None):
        def apply(doc):
            widgets = doc.setdefault("widgets", [])
            if not _in_bounds(index, len(widgets)):
                return False
            self._remove_at(widgets, index)

        return self._mutate(page_id, "widget.remove", expected_updated_at, apply)

    def remove_widget_by_id(self, page_id, widget_id, expected_updated_at=None):
        def apply(doc):
            widgets = doc.setdefault("widgets", [])
            index = self._index_of(widgets, widget_id)
            if index is None:
                return False
            self._remove_at(widgets, index)

        return self._mutate(page_id, "widget.remove", expected_updated_at, apply)

    @staticmethod
    def _index_of(widgets, widget_id):
        for index, widget in enumerate(widgets):
            if widget.get("id") == widget_id:
                return index
        return None

    def _merge_widget(self, doc, index, data):
        widgets = doc["widgets"]
        target = widgets[index]
        entity_id = str(doc["_id"])

        assert_widget_positions(data, operation="widget.update", entity_id=entity_id)
        if "parent_id" in data:
            assert_acyclic(
                self._parents(widgets),
                widget_id=target.get("id"),
                parent_id=data["parent_id"],
                operation="widget.update",
                entity_id=entity_id,
            )

        # Shallow merge: keys present in data overwrite the element's keys
        merged = {**target, **data}
        if "settings" in data:
            merged["settings"] = [dict(s) for s in data["settings"]]
        widgets[index] = merged

    @staticmethod
    def _remove_at(widgets, index):
        removed = widgets.pop(index)
        # Same outcome as ON DELETE SET NULL in the relational schema
        for widget in widgets:
            if removed.get("id") is not None and widget.get("parent_id") == removed.get("id"):
                widget["parent_id"] = None

    # Metatags

    def add_metatag(self, page_id, name, content, expected_updated_at=None):
        assert_metatag_shape({"name": name, "content": content})

        def apply(doc):
            # No uniqueness check on this path
            doc.setdefault("metatags", []).append({"name": name, "content": content})

        return self._mutate(page_id, "metatag.add", expected_updated_at, apply)

    def set_metatag(self, page_id, name, content, expected_updated_at=None):
        assert_metatag_shape({"name": name, "content": content})

        def apply(doc):
            metatags = doc.setdefault("metatags", [])
            for tag in metatags:
                if tag.get("name") == name:
                    tag["content"] = content
                    return
            metatags.append({"name": name, "content": content})

        return self._mutate(page_id, "metatag.set", expected_updated_at, apply)

    def get_metatag(self, page_id, name):
        doc = self._load(page_id, {"metatags": 1})
        if doc is None:
            return None

        for tag in doc.get("metatags") or []:
            if tag.get("name") == name:
                return tag.get("content")
        return None
