"""
Shared fixtures.

Every backend-facing test runs inside an application context, because the
backend is bound to a Flask app exactly as it is in production:
- relational: in-memory SQLite through Flask-SQLAlchemy
- document: mongomock client injected into the selector
"""

import mongomock
import pytest

from pagebuilder import create_app, get_repository, get_settings
from pagebuilder.extensions import db

# Valid ObjectId, valid string id for SQL, never assigned by either backend
MISSING_ID = "5f0c6b2e8e1b2a3c4d5e6f70"


@pytest.fixture
def sql_app():
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def mongo_client():
    return mongomock.MongoClient()


@pytest.fixture
def mongo_app(mongo_client):
    app = create_app(
        "testing",
        {"LPB_DATABASE_DRIVER": "mongo"},
        mongo_client=mongo_client,
    )
    with app.app_context():
        yield app


@pytest.fixture(params=["sql", "mongo"])
def app(request):
    """Runs the requesting test once per backend."""
    return request.getfixturevalue(f"{request.param}_app")


@pytest.fixture
def repo(app):
    return get_repository()


@pytest.fixture
def settings(app):
    return get_settings()


@pytest.fixture
def missing_id():
    return MISSING_ID


@pytest.fixture
def make_page(repo):
    """Create a page with sensible defaults; keyword args override them."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "title": f"Page {counter['n']}",
            "slug": f"page-{counter['n']}",
        }
        data.update(overrides)
        return repo.create(data)

    return _make
