from datetime import datetime, timezone

import pytest
from sqlalchemy import event, func, select, update

from pagebuilder import get_repository
from pagebuilder.domain.exceptions import ConstraintViolation
from pagebuilder.extensions import db
from pagebuilder.models.metatag import Metatag
from pagebuilder.models.page import Page
from pagebuilder.models.page_widget import PageWidget
from pagebuilder.models.page_widget_setting import PageWidgetSetting


@pytest.fixture
def repo(sql_app):
    return get_repository()


def count(model):
    return db.session.execute(select(func.count()).select_from(model)).scalar()


@pytest.fixture
def statements():
    """Collects every SQL statement sent to the engine."""
    seen = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        seen.append(statement)

    event.listen(db.engine, "before_cursor_execute", before_cursor_execute)
    yield seen
    event.remove(db.engine, "before_cursor_execute", before_cursor_execute)


def test_page_ids_are_uuids(repo):
    page = repo.create({"title": "Home", "slug": "home"})

    assert len(page["id"]) == 36
    assert page["id"].count("-") == 4


@pytest.mark.parametrize("tag", [
    {"name": "description", "property": "og:description", "content": "both"},
    {"content": "neither"},
])
def test_metatag_xor_is_enforced_by_the_table(repo, tag):
    with pytest.raises(ConstraintViolation) as exc_info:
        repo.create({"title": "Home", "slug": "home", "metatags": [tag]})

    assert exc_info.value.constraint == "chk_metatags_name_xor_property"
    assert count(Page) == 0
    assert count(Metatag) == 0


def test_metatag_name_is_unique_per_page(repo):
    page = repo.create({"title": "Home", "slug": "home"})
    repo.add_metatag(page["id"], "description", "first")

    with pytest.raises(ConstraintViolation) as exc_info:
        repo.add_metatag(page["id"], "description", "second")

    assert exc_info.value.constraint == "uq_page_name"
    assert repo.get_metatag(page["id"], "description") == "first"


def test_metatag_property_is_unique_per_page(repo):
    with pytest.raises(ConstraintViolation) as exc_info:
        repo.create({
            "title": "Home",
            "slug": "home",
            "metatags": [
                {"property": "og:title", "content": "a"},
                {"property": "og:title", "content": "b"},
            ],
        })

    assert exc_info.value.constraint == "uq_page_property"


def test_same_metatag_name_on_different_pages(repo):
    first = repo.create({"title": "One", "slug": "one"})
    second = repo.create({"title": "Two", "slug": "two"})

    repo.add_metatag(first["id"], "description", "one")
    repo.add_metatag(second["id"], "description", "two")

    assert repo.get_metatag(first["id"], "description") == "one"
    assert repo.get_metatag(second["id"], "description") == "two"


def test_widget_setting_keys_are_unique(repo):
    page = repo.create({"title": "Home", "slug": "home"})

    with pytest.raises(ConstraintViolation) as exc_info:
        repo.add_widget(page["id"], {
            "widget": "hero",
            "settings": [{"key": "title", "value": "a"}, {"key": "title", "value": "b"}],
        })

    assert exc_info.value.constraint == "uq_widget_setting"
    assert count(PageWidget) == 0


def test_delete_cascades_at_the_storage_layer(repo):
    page = repo.create({
        "title": "Home",
        "slug": "home",
        "metatags": [{"name": "description", "content": "x"}],
        "widgets": [
            {"widget": "hero", "settings": [{"key": "title", "value": "Hi"}]},
            {"widget": "text", "settings": [{"key": "body", "value": "..."}]},
        ],
    })
    assert (count(Metatag), count(PageWidget), count(PageWidgetSetting)) == (1, 2, 2)

    assert repo.delete(page["id"]) is True

    assert (count(Page), count(Metatag), count(PageWidget), count(PageWidgetSetting)) == (0, 0, 0, 0)


def test_removing_a_widget_nulls_children_instead_of_cascading(repo):
    page = repo.create({"title": "Home", "slug": "home", "widgets": [{"widget": "parent"}, {"widget": "child"}]})
    parent, child = repo.with_widgets(page["id"])["widgets"]
    repo.update_widget(page["id"], 1, {"parent_id": parent["id"]})

    repo.remove_widget(page["id"], 0)
    db.session.expire_all()

    row = db.session.get(PageWidget, child["id"])
    assert row is not None
    assert row.parent_id is None


def test_widget_order_column_matches_indexes(repo):
    page = repo.create({
        "title": "Home",
        "slug": "home",
        "widgets": [{"widget": "a"}, {"widget": "b"}, {"widget": "c"}, {"widget": "d"}],
    })

    repo.remove_widget(page["id"], 1)
    repo.remove_widget(page["id"], 0)
    repo.add_widget(page["id"], {"widget": "e"})

    rows = db.session.execute(
        select(PageWidget.widget, PageWidget.order).order_by(PageWidget.order)
    ).all()
    assert [tuple(r) for r in rows] == [("c", 0), ("d", 1), ("e", 2)]


def test_with_widgets_loads_children_in_bounded_queries(repo, statements):
    page = repo.create({
        "title": "Home",
        "slug": "home",
        "widgets": [
            {"widget": f"w{i}", "settings": [{"key": "k", "value": i}]}
            for i in range(5)
        ],
    })
    db.session.expire_all()
    statements.clear()

    result = repo.with_widgets(page["id"])

    assert len(result["widgets"]) == 5
    selects = [s for s in statements if s.lstrip().upper().startswith("SELECT")]
    # page, widgets, settings
    assert len(selects) == 3


def test_failed_write_rolls_back(repo):
    page = repo.create({"title": "Home", "slug": "home"})

    with pytest.raises(ConstraintViolation):
        repo.update(page["id"], {
            "title": "Changed",
            "metatags": [{"name": "a", "property": "b", "content": "x"}],
        })

    assert repo.find(page["id"])["title"] == "Home"


def test_listings_keep_insertion_order_on_equal_timestamps(repo):
    for slug in ("c", "a", "d", "b"):
        repo.create({"title": slug.upper(), "slug": slug, "status": "published"})

    same = datetime(2024, 1, 1, tzinfo=timezone.utc)
    db.session.execute(update(Page).values(created_at=same, updated_at=same))
    db.session.commit()

    assert [p["slug"] for p in repo.all()] == ["c", "a", "d", "b"]
    assert [p["slug"] for p in repo.get_published()] == ["c", "a", "d", "b"]
