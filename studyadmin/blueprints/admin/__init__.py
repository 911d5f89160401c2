from flask import Blueprint

bp = Blueprint("admin", __name__, template_folder="templates")

from flask_login import current_user
from flask import request, redirect, url_for

from studyadmin.services.policy import admin_check

@bp.before_request
def _require_login_admin():
    if not current_user.is_authenticated:
        wants_json = "application/json" in (request.headers.get("Accept") or "").lower() or request.path.endswith(".json")
        if not wants_json:
            return redirect(url_for("auth.login_get", next=request.full_path))
    return admin_check()

@bp.get("/")
def index():
    return redirect(url_for("admin.feedback"))


# Import submodules so their routes register on the same bp
from . import feedback
from . import partners
from . import reports
from . import user_emails
