import logging

from flask import render_template, request, redirect, url_for
from flask_login import login_user, logout_user, current_user
from sqlalchemy import func
from studyadmin.extensions import db, limiter
from studyadmin.models import AuthIdentity
from studyadmin.observability import log_event
from . import bp

logger = logging.getLogger(__name__)


def _login_email_scope():
    email = (request.form.get("email") or "").strip().lower()
    # Keep a stable scope even if email is blank
    return f"login-email:{email or 'missing'}"

# Only allow internal paths like "/admin/reports" (no external URLs or "//" protocol-relative).
def _safe_next_path(next_raw: str) -> str:
    next_raw = (next_raw or "").strip()
    if next_raw.startswith("/") and not next_raw.startswith("//"):
        return next_raw
    return url_for("admin.index")

@bp.get("/login")
def login_get():
    if current_user.is_authenticated and getattr(current_user, "is_admin", False):
        return redirect(_safe_next_path(request.args.get("next")))
    return render_template("auth/login.html")

@bp.post("/login")
@limiter.limit("10 per minute; 100 per hour")              # per-IP
@limiter.limit("5 per minute; 20 per hour", key_func=_login_email_scope)  # per-account
def login_post():
    email = (request.form.get("email") or "").strip()
    password = request.form.get("password") or ""

    if not email or not password:
        return render_template("auth/login.html", error="Email and password are required"), 400

    identity = db.session.execute(
        db.select(AuthIdentity).where(func.lower(AuthIdentity.email) == func.lower(email))
    ).scalar_one_or_none()

    # Same message for unknown, wrong password, inactive and non-admin (anti-enumeration)
    if not identity or not identity.check_password(password) or not identity.is_active or not identity.is_admin:
        log_event(logger, "admin_login_rejected", level=logging.WARNING, email=email.lower())
        return render_template("auth/login.html", error="Invalid credentials"), 400

    login_user(identity)
    log_event(logger, "admin_login", identity_id=identity.id)
    return redirect(_safe_next_path(request.args.get("next")))

@bp.post("/logout")
def logout_post():
    if current_user.is_authenticated:
        logout_user()
    return redirect(url_for("auth.login_get"))
