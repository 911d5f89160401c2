import csv
import sys

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import func
from studyadmin.extensions import db
from studyadmin.models import AuthIdentity, Profile
from studyadmin.services.errors import StoreError
from studyadmin.services.user_emails import get_users_with_emails
from studyadmin.utils.validators import is_valid_email

@click.group()
def admins():
    """Dashboard admin management."""

@admins.command("create")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--display-name", default=None)
@with_appcontext
def admins_create(email, password, display_name):
    if not is_valid_email(email):
        raise click.ClickException("Invalid email")

    identity = db.session.query(AuthIdentity).filter(func.lower(AuthIdentity.email) == email.lower()).one_or_none()
    if identity is None:
        identity = AuthIdentity(email=email)
        db.session.add(identity)
        db.session.flush()
        db.session.add(Profile(id=identity.id, display_name=display_name))
    identity.set_password(password)
    identity.is_admin = True
    identity.is_active = True
    db.session.commit()

    click.echo(f"Admin ready id={identity.id} email={identity.email}")

@admins.command("revoke")
@click.option("--email", required=True)
@with_appcontext
def admins_revoke(email):
    identity = db.session.query(AuthIdentity).filter(func.lower(AuthIdentity.email) == email.lower()).one_or_none()
    if not identity:
        raise click.ClickException("Identity not found")

    # Safety rail: keep at least one admin able to sign in
    admins_left = db.session.query(AuthIdentity).filter_by(is_admin=True, is_active=True).count()
    if identity.is_admin and admins_left <= 1:
        raise click.ClickException("Refused: cannot revoke the last admin")

    identity.is_admin = False
    db.session.commit()
    click.echo(f"Revoked admin for {identity.email}")

@click.group()
def emails():
    """User email export."""

@emails.command("export")
@click.option("--q", "search", default="", help="Filter by name or email substring")
@click.option("--out", type=click.Path(dir_okay=False, writable=True), default=None, help="CSV path (default stdout)")
@with_appcontext
def emails_export(search, out):
    page_size = current_app.config.get("IDENTITY_PAGE_SIZE", 1000)
    try:
        # one page holding everything: the listing is already materialised in memory
        result = get_users_with_emails(db.session, page=1, limit=sys.maxsize, search=search, page_size=page_size)
    except StoreError as e:
        raise click.ClickException(str(e))

    fh = open(out, "w", newline="", encoding="utf-8") if out else sys.stdout
    try:
        writer = csv.writer(fh)
        writer.writerow(["id", "display_name", "email", "joined"])
        seen = set()
        for u in result.users:
            if u.email in seen:
                continue
            seen.add(u.email)
            writer.writerow([u.id, u.display_name or "", u.email, u.created_at.date().isoformat() if u.created_at else ""])
    finally:
        if out:
            fh.close()

    if out:
        click.echo(f"Exported {len(seen)} emails to {out}")

def register_cli(app):
    app.cli.add_command(admins)
    app.cli.add_command(emails)
