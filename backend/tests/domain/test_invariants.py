from datetime import datetime, timezone

import pytest

from pagebuilder.domain.exceptions import ConcurrencyConflict, ConstraintViolation, ValidationError
from pagebuilder.domain.invariants.metatag import assert_metatag_shape, assert_metatag_xor
from pagebuilder.domain.invariants.page import assert_page_data
from pagebuilder.domain.invariants.widget import (
    assert_acyclic,
    assert_widget_data,
    assert_widget_positions,
)
from pagebuilder.normalizers.widget import widget_tree
from pagebuilder.utils.optimistic_lock import (
    enforce_optimistic_lock,
    normalize_ts,
    parse_version_token,
)


# ------------------------
# Page payloads
# ------------------------

def test_partial_page_data_needs_no_required_fields():
    assert_page_data({"status": "archived"}, partial=True)


def test_nested_widgets_cannot_carry_parent_links():
    with pytest.raises(ValidationError):
        assert_page_data({"title": "Home", "slug": "home", "widgets": [{"widget": "hero", "parent_id": 1}]})


def test_nested_metatags_are_shape_checked():
    with pytest.raises(ValidationError):
        assert_page_data({"title": "Home", "slug": "home", "metatags": [{"name": "description"}]})


@pytest.mark.parametrize("data", [
    "not-a-mapping",
    {"title": "   ", "slug": "home"},
    {"title": "Home", "slug": "home", "extra_css": 42},
    {"title": "Home", "slug": "home", "widgets": {"widget": "hero"}},
])
def test_malformed_page_data(data):
    with pytest.raises(ValidationError):
        assert_page_data(data)


# ------------------------
# Widgets and metatags
# ------------------------

@pytest.mark.parametrize("data", [
    {},
    {"widget": ""},
    {"widget": "hero", "position_x": "10"},
    {"widget": "hero", "position_y": True},
    {"widget": "hero", "settings": {"title": "x"}},
    {"widget": "hero", "settings": [{"key": "", "value": 1}]},
    {"widget": "hero", "parent_id": 1.5},
])
def test_malformed_widget_data(data):
    with pytest.raises(ValidationError):
        assert_widget_data(data)


def test_widget_positions_must_not_be_negative():
    assert_widget_positions({"position_x": 0, "position_y": 3}, operation="widget.add")

    with pytest.raises(ConstraintViolation) as exc_info:
        assert_widget_positions({"position_y": -1}, operation="widget.add")

    assert exc_info.value.constraint == "chk_widgets_position_y"


def test_metatag_xor():
    assert_metatag_xor({"name": "description", "content": "x"}, operation="metatag.add")
    assert_metatag_xor({"property": "og:title", "content": "x"}, operation="metatag.add")

    with pytest.raises(ConstraintViolation):
        assert_metatag_xor({"content": "x"}, operation="metatag.add")


def test_metatag_content_is_required():
    with pytest.raises(ValidationError):
        assert_metatag_shape({"name": "description", "content": None})


# ------------------------
# Widget hierarchy
# ------------------------

def test_acyclic_accepts_a_chain():
    parents = {1: None, 2: 1, 3: 2}

    assert_acyclic(parents, widget_id=4, parent_id=3, operation="widget.add")


@pytest.mark.parametrize("widget_id, parent_id, constraint", [
    (1, 1, "widget_parent_acyclic"),
    (1, 3, "widget_parent_acyclic"),
    (2, 99, "fk_widgets_parent"),
])
def test_acyclic_rejects(widget_id, parent_id, constraint):
    parents = {1: None, 2: 1, 3: 2}

    with pytest.raises(ConstraintViolation) as exc_info:
        assert_acyclic(parents, widget_id=widget_id, parent_id=parent_id, operation="widget.update")

    assert exc_info.value.constraint == constraint


def test_widget_tree_nests_children_in_order():
    widgets = [
        {"id": "a", "parent_id": None},
        {"id": "b", "parent_id": "a"},
        {"id": "c", "parent_id": None},
        {"id": "d", "parent_id": "a"},
        {"id": "e", "parent_id": "missing"},
    ]

    tree = widget_tree(widgets)

    assert [n["id"] for n in tree] == ["a", "c", "e"]
    assert [n["id"] for n in tree[0]["children"]] == ["b", "d"]
    assert tree[1]["children"] == []


# ------------------------
# Version tokens
# ------------------------

def test_naive_timestamps_are_treated_as_utc():
    assert normalize_ts(datetime(2024, 5, 1, 12, 0)) == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert normalize_ts(None) is None


def test_version_token_accepts_strings_and_datetimes():
    expected = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    assert parse_version_token("2024-05-01T12:00:00Z") == expected
    assert parse_version_token("2024-05-01T14:00:00+02:00") == expected
    assert parse_version_token(expected) == expected


@pytest.mark.parametrize("token", ["yesterday-ish", 12345])
def test_version_token_rejects_garbage(token):
    with pytest.raises(ValidationError):
        parse_version_token(token)


def test_optimistic_lock():
    stored = datetime(2024, 5, 1, 12, 0)

    enforce_optimistic_lock(stored, None, operation="widget.add", entity_id="p1")
    enforce_optimistic_lock(stored, "2024-05-01T12:00:00Z", operation="widget.add", entity_id="p1")

    with pytest.raises(ConcurrencyConflict):
        enforce_optimistic_lock(stored, "2024-05-01T11:59:59Z", operation="widget.add", entity_id="p1")
