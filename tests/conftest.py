"""Shared fixtures: a fresh app on a temporary SQLite file per test."""

import pytest

from plantgenius import create_app
from plantgenius.config import TestConfig
from plantgenius.extensions import db
from plantgenius.services.payment_verifier import PaymentVerification


class FakeVerifier:
    """Stands in for the Paystack API; succeeds unless told otherwise."""

    def __init__(self):
        self.results = {}
        self.error = None
        self.calls = []

    def verify(self, reference):
        self.calls.append(reference)
        if self.error is not None:
            raise self.error
        if reference in self.results:
            return self.results[reference]
        return PaymentVerification(
            success=True,
            reference=reference,
            amount=10_000_000,
            currency="NGN",
            paid_at="2025-01-01T10:00:00.000Z",
            channel="card",
        )


class RecordingMailer:
    def __init__(self):
        self.sent = []
        self.welcomed = []

    def send_password_reset(self, email, reset_url):
        self.sent.append((email, reset_url))

    def send_welcome(self, email, full_name=None):
        self.welcomed.append((email, full_name))


def make_config(tmp_path, **overrides):
    attrs = {"SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'plantgenius_test.db'}"}
    attrs.update(overrides)
    return type("LocalTestConfig", (TestConfig,), attrs)


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def app_factory(tmp_path, verifier, mailer):
    """Build apps on a temporary SQLite file; config overrides as keyword args."""
    created = []

    def _create(**overrides):
        app = create_app(make_config(tmp_path, **overrides), payment_verifier=verifier, mailer=mailer)
        created.append(app)
        return app

    yield _create
    for app in created:
        with app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()


@pytest.fixture
def app(app_factory):
    return app_factory()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_service(app):
    return app.extensions["auth_service"]


@pytest.fixture
def entitlements(app):
    return app.extensions["entitlement_service"]


@pytest.fixture
def signup(client):
    """Sign a user up through the API; returns (user, token)."""

    def _signup(email="a@x.com", password="secret1", full_name=None):
        body = {"email": email, "password": password}
        if full_name is not None:
            body["fullName"] = full_name
        resp = client.post("/api/auth/signup", json=body)
        assert resp.status_code == 200, resp.get_json()
        data = resp.get_json()
        return data["user"], data["token"]

    return _signup


@pytest.fixture
def bearer():
    def _bearer(token):
        return {"Authorization": f"Bearer {token}"}

    return _bearer
