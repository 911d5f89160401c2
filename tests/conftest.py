import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

from datetime import datetime, timedelta, timezone

import pytest
from studyadmin import create_app
from studyadmin.extensions import db
from studyadmin.models import AuthIdentity, Profile

@pytest.fixture(scope="session")
def app():
    app = create_app()
    app.config.update(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
        SQLALCHEMY_EXPIRE_ON_COMMIT=False,  # avoid DetachedInstanceError in tests
        APP_BASE_URL="http://example.test",
        WTF_CSRF_ENABLED=False,
        APP_ENV="test",
    )
    with app.app_context():
        db.create_all()
        db.session.expire_on_commit = False
    yield app
    with app.app_context():
        db.drop_all()

@pytest.fixture()
def client(app):
    return app.test_client()

@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()


_BASE_TS = datetime(2024, 1, 1, tzinfo=timezone.utc)

def make_user(idx, email=None, display_name=None, *, is_admin=False, password=None):
    """Identity + profile; higher idx = newer signup."""
    created = _BASE_TS + timedelta(minutes=idx)
    identity = AuthIdentity(id=f"u-{idx:04d}", email=email, is_admin=is_admin, created_at=created)
    if password:
        identity.set_password(password)
    db.session.add(identity)
    db.session.add(Profile(id=identity.id, display_name=display_name, created_at=created))
    db.session.commit()
    return identity

@pytest.fixture()
def admin(app):
    with app.app_context():
        # no profile row: keeps the admin out of user listings
        identity = AuthIdentity(id="admin-1", email="admin@example.test", is_admin=True)
        identity.set_password("s3cret-pass")
        db.session.add(identity)
        db.session.commit()
        return identity.id

@pytest.fixture()
def admin_client(client, admin):
    with client.session_transaction() as sess:
        sess["_user_id"] = admin
        sess["_fresh"] = True
    return client
