"""Pytest configuration: in-memory app, client and factories."""

import pytest
from flask_jwt_extended import create_access_token

from merci import create_app
from merci.extensions import db as _db

STORE_ID = "1001"
OTHER_STORE_ID = "2002"


@pytest.fixture()
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SECRET_KEY": "test",
        "JWT_SECRET_KEY": "test-secret-with-enough-length-for-hs256",
        "TN_CLIENT_ID": "client-1",
        "TN_CLIENT_SECRET": "secret-1",
        "APP_BASE_URL": "https://merci.test",
        "STORE_TIMEZONE": "UTC",
        "MONEY_PLACES": 2,
        "LOG_LEVEL": "WARNING",
    })
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def db(app):
    return _db


@pytest.fixture()
def client(app):
    return app.test_client()


def _headers_for(store_id):
    return {"Authorization": f"Bearer {create_access_token(identity=store_id)}"}


@pytest.fixture()
def auth_headers(app):
    return _headers_for(STORE_ID)


@pytest.fixture()
def other_auth_headers(app):
    return _headers_for(OTHER_STORE_ID)


@pytest.fixture()
def make_campaign(app):
    from merci.services import campaign_service

    def _make(store_id=STORE_ID, **overrides):
        payload = {
            "code": "MERCI10",
            "name": "Merci",
            "discount_type": "percent",
            "discount_value": 10,
            "apply_scope": "all",
        }
        payload.update(overrides)
        return campaign_service.create_campaign(store_id, payload)

    return _make
