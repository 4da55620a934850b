import threading

import pytest
from flask import g
from flask_login import FlaskLoginClient

from santamatch import create_app
from santamatch.extensions import db
from santamatch.models import Group, Membership, User


class RecordingTransport:
    """Collects sent mails; addresses in ``fail_for`` raise instead."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []
        self._lock = threading.Lock()

    def send(self, address, subject, body):
        if address in self.fail_for:
            raise ConnectionError(f"mailbox unavailable: {address}")
        with self._lock:
            self.sent.append((address, subject, body))

    @property
    def addresses(self):
        return {address for address, _, _ in self.sent}


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def app(tmp_path, transport):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
            "WTF_CSRF_ENABLED": False,
            "APP_BASE_URL": "https://santa.example",
            "NOTIFICATION_TRANSPORT": transport,
        }
    )
    app.test_client_class = FlaskLoginClient

    # The fixture keeps one app context open, so ``g`` outlives each request;
    # drop Flask-Login's cached user so every test client logs in as its own user.
    @app.teardown_request
    def _forget_login_user(exc):
        g.pop("_login_user", None)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_user(app):
    def _make(name, email=None):
        u = User(screen_name=name, email=email, passkey_hash="unused")
        db.session.add(u)
        db.session.commit()
        return u

    return _make


@pytest.fixture
def make_group(app, make_user):
    """Creates a group whose first member is the moderator; returns (group, users)."""

    def _make(names, name="Office Party", with_email=True):
        users = [make_user(n, f"{n.lower()}@example.com" if with_email else None) for n in names]
        g = Group(name=name, moderator_id=users[0].id)
        db.session.add(g)
        db.session.flush()
        for u in users:
            db.session.add(Membership(group_id=g.id, user_id=u.id))
        db.session.commit()
        return g, users

    return _make
