import itertools

import pytest

from libris import create_app
from libris.config import TestConfig
from libris.extensions import db
from libris.models.book import Book, BookStatus
from libris.models.user import Role
from libris.services.auth_service import AuthService

PASSWORD = "pass123"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make(name=None, role=Role.USER, email=None):
        n = next(counter)
        name = name or f"User {n}"
        email = email or f"user{n}@example.com"
        return AuthService(db.session).register(name, email, PASSWORD, role=role)

    return _make


@pytest.fixture
def make_book(app):
    def _make(title="Dune", author="Frank Herbert", status=BookStatus.AVAILABLE):
        book = Book(title=title, author=author, status=status)
        db.session.add(book)
        db.session.commit()
        return book

    return _make


@pytest.fixture
def login(app):
    """Returns a fresh test client logged in as ``user``."""
    def _login(user):
        c = app.test_client()
        resp = c.post("/users/login", json={"email": user.email, "password": PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        return c

    return _login


@pytest.fixture
def admin(make_user):
    return make_user(name="Admin", role=Role.ADMIN, email="admin@example.com")
