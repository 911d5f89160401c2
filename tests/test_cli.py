import csv
import io

from studyadmin.extensions import db
from studyadmin.models import AuthIdentity

from conftest import make_user


def test_admins_create_and_revoke(app):
    runner = app.test_cli_runner()
    r = runner.invoke(args=["admins", "create", "--email", "ops@x.test", "--password", "pw-123456", "--display-name", "Ops"])
    assert r.exit_code == 0, r.output
    with app.app_context():
        identity = db.session.query(AuthIdentity).filter_by(email="ops@x.test").one()
        assert identity.is_admin and identity.check_password("pw-123456")

    r = runner.invoke(args=["admins", "revoke", "--email", "ops@x.test"])
    assert r.exit_code != 0 and "last admin" in r.output

def test_admins_create_rejects_bad_email(app):
    r = app.test_cli_runner().invoke(args=["admins", "create", "--email", "nope", "--password", "x"])
    assert r.exit_code != 0 and "Invalid email" in r.output

def test_emails_export_writes_deduplicated_csv(app, tmp_path):
    with app.app_context():
        make_user(1, "a@x.test", "Ann")
        make_user(2, "a@x.test", "Ann again")
        make_user(3, "b@x.test", "Bob")
    out = tmp_path / "emails.csv"
    r = app.test_cli_runner().invoke(args=["emails", "export", "--out", str(out)])
    assert r.exit_code == 0, r.output
    rows = list(csv.reader(io.StringIO(out.read_text(encoding="utf-8"))))
    assert rows[0] == ["id", "display_name", "email", "joined"]
    assert [row[2] for row in rows[1:]] == ["b@x.test", "a@x.test"]
    assert "Exported 2 emails" in r.output
