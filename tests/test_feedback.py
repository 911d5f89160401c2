from datetime import datetime, timedelta, timezone

import pytest

from studyadmin.extensions import db
from studyadmin.models import FeatureFeedback
from studyadmin.services.errors import StoreError
from studyadmin.services.feedback import (
    UNKNOWN_USER,
    delete_feedback,
    feedback_breakdown,
    feedback_stats,
    list_feature_feedback,
)

from conftest import make_user

_T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)

def _seed():
    make_user(1, "a@x.test", "Alice")
    rows = [
        ("f1", "u-0001", "smart_notes", "like"),
        ("f2", "u-0001", "smart_notes", "dislike"),
        ("f3", None, "flashcards", "maybe"),
        ("f4", "ghost", "smart_notes", "great!"),
    ]
    for i, (fid, uid, feature, option) in enumerate(rows):
        db.session.add(FeatureFeedback(id=fid, user_id=uid, feature_name=feature, selected_option=option,
                                       created_at=_T0 + timedelta(hours=i)))
    db.session.commit()


def test_list_is_newest_first_with_display_names(app):
    with app.app_context():
        _seed()
        rows = list_feature_feedback(db.session)
        assert [r.id for r in rows] == ["f4", "f3", "f2", "f1"]
        names = {r.id: r.display_name for r in rows}
        assert names["f1"] == "Alice"
        assert names["f3"] == UNKNOWN_USER
        assert names["f4"] == UNKNOWN_USER

def test_list_search_filters_by_feature_or_user(app):
    with app.app_context():
        _seed()
        assert {r.id for r in list_feature_feedback(db.session, search="alice")} == {"f1", "f2"}
        assert {r.id for r in list_feature_feedback(db.session, search="FLASH")} == {"f3"}

def test_stats_count_per_feature_and_option(app):
    with app.app_context():
        _seed()
        stats = feedback_stats(db.session)
        assert stats["total"] == 4
        assert stats["by_feature"] == {"smart_notes": 3, "flashcards": 1}
        assert stats["by_option"]["like"] == 1

def test_breakdown_groups_by_feature(app):
    with app.app_context():
        _seed()
        out = feedback_breakdown(db.session)
        assert [t.feature_name for t in out] == ["smart_notes", "flashcards"]
        notes = out[0]
        assert (notes.positive, notes.negative, notes.neutral) == (1, 1, 1)

def test_delete_feedback(app):
    with app.app_context():
        _seed()
        delete_feedback(db.session, "f2")
        assert db.session.get(FeatureFeedback, "f2") is None
        with pytest.raises(StoreError):
            delete_feedback(db.session, "f2")


def test_feedback_page_and_breakdown_json(app, admin_client):
    with app.app_context():
        _seed()
    r = admin_client.get("/admin/feedback")
    assert r.status_code == 200
    assert b"Alice" in r.data and b"Smart notes" in r.data

    r = admin_client.get("/admin/feedback/breakdown.json")
    body = r.get_json()
    assert body[0] == {"feature_name": "smart_notes", "total": 3, "positive": 1, "negative": 1, "neutral": 1}

def test_delete_route_flashes_and_redirects(app, admin_client):
    with app.app_context():
        _seed()
    r = admin_client.post("/admin/feedback/f1/delete")
    assert r.status_code == 302
    with app.app_context():
        assert db.session.get(FeatureFeedback, "f1") is None
    r = admin_client.post("/admin/feedback/f1/delete", follow_redirects=True)
    assert b"Failed to delete feedback" in r.data
