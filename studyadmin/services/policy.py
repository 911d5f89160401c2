from flask import abort, request, jsonify
from flask_login import current_user


def _abort_smart(code: int):
    # If the client asked for JSON, return a JSON-shaped error
    accept = (request.headers.get("Accept") or "").lower()
    if "application/json" in accept or request.path.endswith(".json"):
        return jsonify({"error": {401: "unauthorized", 403: "forbidden", 404: "not_found"}[code], "code": code}), code
    abort(code)


def admin_check():
    """None when the current identity may use the dashboard, else an error response."""
    if not getattr(current_user, "is_authenticated", False):
        return _abort_smart(401)
    if not getattr(current_user, "is_active", False):
        return _abort_smart(401)
    if not getattr(current_user, "is_admin", False):
        return _abort_smart(403)
    return None

