import types

import pytest
from sqlalchemy.exc import OperationalError

from studyadmin.extensions import db
from studyadmin.models import AuthIdentity, FeatureFeedback, Profile
from studyadmin.services.errors import StoreError
from studyadmin.services.store import RowStore, attach, safe_lookup_map

from conftest import make_user


def test_iter_identities_pages_until_short_page(app):
    with app.app_context():
        for i in range(23):
            make_user(i, f"p{i}@x.test")
        store = RowStore(db.session)
        ids = [i.id for i in store.iter_identities(page_size=5)]
        assert len(ids) == 23 and len(set(ids)) == 23
        # exact multiple of the page size still terminates
        assert len(list(store.iter_identities(page_size=23))) == 23

def test_identity_emails_skips_missing(app):
    with app.app_context():
        make_user(1, "a@x.test")
        make_user(2, None)
        assert RowStore(db.session).identity_emails() == {"u-0001": "a@x.test"}

def test_select_with_range_and_order(app):
    with app.app_context():
        for i in range(6):
            make_user(i, f"r{i}@x.test")
        rows = RowStore(db.session).select(Profile, order=[Profile.id.asc()], range_=(2, 3))
        assert [r.id for r in rows] == ["u-0002", "u-0003", "u-0004"]

def test_delete_requires_predicate(app):
    with app.app_context():
        with pytest.raises(StoreError):
            RowStore(db.session).delete(FeatureFeedback)

def test_lookup_map_and_attach(app):
    with app.app_context():
        make_user(1, "a@x.test", "A")
        store = RowStore(db.session)
        assert store.lookup_map(Profile, [None, ""]) == {}
        lookup = store.lookup_map(Profile, ["u-0001", "ghost", None])
        assert set(lookup) == {"u-0001"}

        rows = [types.SimpleNamespace(user_id="u-0001"), types.SimpleNamespace(user_id="ghost")]
        paired = attach(rows, lookup, key="user_id", default="n/a")
        assert paired[0][1].display_name == "A"
        assert paired[1][1] == "n/a"

def test_safe_lookup_map_degrades_on_store_error(app, monkeypatch):
    with app.app_context():
        store = RowStore(db.session)

        def boom(*a, **kw):
            raise StoreError("down")

        monkeypatch.setattr(store, "select", boom)
        assert safe_lookup_map(store, AuthIdentity, ["x"]) == {}

class DummySession:
    """Session whose reads fail like a dropped connection."""
    def __init__(self):
        self.rollbacks = 0

    def _fail(self, *a, **kw):
        raise OperationalError("SELECT 1", {}, Exception("connection lost"))

    query = _fail
    get = _fail

    def rollback(self):
        self.rollbacks += 1

def test_failed_reads_roll_back_before_raising():
    session = DummySession()
    store = RowStore(session)
    with pytest.raises(StoreError):
        store.select(Profile)
    with pytest.raises(StoreError):
        store.count(Profile)
    with pytest.raises(StoreError):
        store.get(Profile, "u-0001")
    assert session.rollbacks == 3
