import pytest
from flask import Flask
from werkzeug.exceptions import Forbidden, Unauthorized
from studyadmin.services import policy

class DummyUser:
    def __init__(self, uid, auth=True, active=True, admin=False):
        self.id, self.is_authenticated, self.is_active, self.is_admin = uid, auth, active, admin

def make_app():
    app = Flask(__name__); app.config.update(SECRET_KEY="x", TESTING=True)
    return app

def test_admin_check_unauth_json(monkeypatch):
    app = make_app()
    monkeypatch.setattr(policy, "current_user", DummyUser(None, auth=False))
    with app.test_request_context("/x", headers={"Accept":"application/json"}):
        r = policy.admin_check(); assert r[1] == 401 and r[0].json["error"] == "unauthorized"

def test_admin_check_inactive_is_unauthorized(monkeypatch):
    app = make_app()
    monkeypatch.setattr(policy, "current_user", DummyUser("a", active=False, admin=True))
    with app.test_request_context("/x.json"):
        r = policy.admin_check(); assert r[1] == 401

def test_admin_check_member_forbidden_json(monkeypatch):
    app = make_app()
    monkeypatch.setattr(policy, "current_user", DummyUser("m"))
    with app.test_request_context("/x", headers={"Accept":"application/json"}):
        r = policy.admin_check(); assert r[1] == 403 and r[0].json["error"] == "forbidden"

def test_admin_check_html_aborts(monkeypatch):
    app = make_app()
    monkeypatch.setattr(policy, "current_user", DummyUser("m"))
    with app.test_request_context("/x"):
        with pytest.raises(Forbidden):
            policy.admin_check()
    monkeypatch.setattr(policy, "current_user", DummyUser(None, auth=False))
    with app.test_request_context("/x"):
        with pytest.raises(Unauthorized):
            policy.admin_check()

def test_admin_check_ok(monkeypatch):
    app = make_app()
    monkeypatch.setattr(policy, "current_user", DummyUser("a", admin=True))
    with app.test_request_context("/x", headers={"Accept":"application/json"}):
        assert policy.admin_check() is None
