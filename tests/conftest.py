from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from extensions import db as _db
from models import RoleName, TransportService, User
from utils.auth import issue_tokens


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


def _make_service(name, price, days, delivery_type=None):
    service = TransportService(
        name=name,
        description=f"{name} test service",
        price=Decimal(price),
        delivery_days=days,
        delivery_type=delivery_type,
    )
    _db.session.add(service)
    return service


@pytest.fixture
def services(app):
    """Three services priced on the default rate card."""
    created = [
        _make_service("Фура", "1000.00", 3),
        _make_service("Газель", "500.00", 1),
        _make_service("Рефрижератор", "2000.00", 7),
    ]
    _db.session.commit()
    return created


def _make_user(login, role):
    user = User(login=login, email=f"{login}@example.com", name=login.title(), role=role)
    user.set_password("secret123")
    _db.session.add(user)
    _db.session.commit()
    return user


@pytest.fixture
def buyer(app):
    return _make_user("buyer", RoleName.BUYER)


@pytest.fixture
def other_buyer(app):
    return _make_user("other", RoleName.BUYER)


@pytest.fixture
def manager(app):
    return _make_user("manager", RoleName.MANAGER)


@pytest.fixture
def admin(app):
    return _make_user("admin", RoleName.ADMIN)


@pytest.fixture
def auth_headers(app):
    def _headers(user, token_type="access_token"):
        tokens = issue_tokens(user)
        return {"Authorization": f"Bearer {tokens[token_type]}"}
    return _headers
