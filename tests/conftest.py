"""Shared fixtures: one app per test on a throwaway sqlite file and storage root."""

from datetime import datetime, timedelta

import pytest

from app import create_app
from auth import create_user
from config import Config
from models import db, Post


@pytest.fixture
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = "test-secret"
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "test.db")
        STORAGE_ROOT = str(tmp_path / "storage")
        STORAGE_PUBLIC_URL = "http://testserver.local"
        GEMINI_API_KEY = "test-key"
        LOG_LEVEL = "WARNING"

    app = create_app(TestConfig)
    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_id(app):
    with app.app_context():
        return create_user("admin@example.com", "secret").id


@pytest.fixture
def other_id(app):
    with app.app_context():
        return create_user("other@example.com", "secret").id


@pytest.fixture
def auth_client(client, admin_id):
    resp = client.post("/admin", data={"email": "admin@example.com", "password": "secret"})
    assert resp.status_code == 302
    return client


@pytest.fixture
def make_post(app):
    """Insert a post directly; returns its id."""
    counter = {"n": 0}

    def _make(author_id, **fields):
        counter["n"] += 1
        n = counter["n"]
        values = {
            "title": f"Post {n}",
            "slug": f"post-{n}",
            "content": f"<p>Body {n}</p>",
            "category": "tech",
            "published": True,
            "author_id": author_id,
            "created_at": datetime(2024, 1, 1) + timedelta(hours=n),
        }
        values.update(fields)
        with app.app_context():
            post = Post(**values)
            db.session.add(post)
            db.session.commit()
            return post.id

    return _make
