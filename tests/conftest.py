import pytest

from shelfmark import create_app
from shelfmark.config import TestConfig
from shelfmark.extensions import db
from shelfmark.models import User


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.drop_all()
        db.create_all()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user_id(app):
    with app.app_context():
        user = User(username="reader", is_active=True)
        user.set_password("secret")
        db.session.add(user)
        db.session.commit()
        return user.id
