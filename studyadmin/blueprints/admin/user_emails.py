import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

from flask import (
    render_template, request, redirect, url_for, flash, jsonify, session, current_app, Response, abort,
)
from . import bp

from studyadmin.extensions import db, limiter
from studyadmin.services.errors import FetchError, StoreError
from studyadmin.services.selection import EmailSelectionController, PageQuery, PAGE_SIZES
from studyadmin.services.user_emails import get_users_with_emails, get_all_user_emails, get_user_details

logger = logging.getLogger(__name__)

SESSION_KEY = "user_emails_state"
STALE_LISTING = "The user list changed since this page was loaded; reload and try again"


# Blocking store reads. Kept off the loop's default executor, which asyncio.run()
# joins on exit; a timed-out read must not hold the response.
_fetch_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="user-emails-fetch")


def _in_worker(app, fn, *args, **kwargs):
    """Run fn in its own app context (own scoped session) on the fetch pool."""
    def _call():
        with app.app_context():
            return fn(db.session, *args, **kwargs)
    return asyncio.get_running_loop().run_in_executor(_fetch_pool, _call)


def _controller() -> EmailSelectionController:
    """Rebuild the listing/selection state for this admin from the session."""
    app = current_app._get_current_object()
    page_size = current_app.config.get("IDENTITY_PAGE_SIZE", 1000)

    async def fetch_page(query: PageQuery):
        return await _in_worker(
            app, get_users_with_emails,
            page=query.page, limit=query.limit, search=query.search, page_size=page_size,
        )

    async def fetch_all_emails(search: str):
        return await _in_worker(app, get_all_user_emails, search=search, page_size=page_size)

    return EmailSelectionController.from_session(
        session.get(SESSION_KEY),
        fetch_page,
        fetch_all_emails,
        timeout=current_app.config.get("FETCH_TIMEOUT_SECONDS"),
    )


def _save(ctrl: EmailSelectionController) -> None:
    session[SESSION_KEY] = ctrl.to_session()


def _wants_json() -> bool:
    return request.is_json or "application/json" in (request.headers.get("Accept") or "").lower()


def _state(ctrl: EmailSelectionController) -> dict:
    return {
        "generation": ctrl.generation,
        "page": ctrl.query.page,
        "limit": ctrl.query.limit,
        "q": ctrl.query.search,
        "total": ctrl.total,
        "total_pages": ctrl.total_pages,
        "selected_count": ctrl.selected_count,
        "select_all": ctrl.select_all_matching_active,
        "selected_ids": sorted(ctrl.selected_ids),
    }


def _load_page():
    """Apply ?page&limit&q to the stored state and fetch that page."""
    ctrl = _controller()
    ctrl.navigate(PageQuery.from_args(request.args))
    error = None
    try:
        asyncio.run(ctrl.refresh())
    except FetchError as e:
        logger.error("Error fetching users: %s", e)
        ctrl.rows, ctrl.total = [], 0
        error = "Failed to fetch users"
    _save(ctrl)
    return ctrl, error


def _back(ctrl: EmailSelectionController, status: int = 200, error: str | None = None):
    if _wants_json():
        payload = _state(ctrl)
        if error:
            payload["error"] = error
        return jsonify(payload), status
    if error:
        flash(error, "error")
    return redirect(url_for("admin.user_emails", **ctrl.query.to_args()))


@bp.get("/user-emails")
def user_emails():
    ctrl, error = _load_page()
    if error:
        flash(error, "error")
    return render_template("admin/user_emails.html", ctrl=ctrl, page_sizes=PAGE_SIZES)


@bp.get("/user-emails.json")
def user_emails_json():
    ctrl, error = _load_page()
    payload = _state(ctrl)
    payload["users"] = [u.to_dict() for u in ctrl.rows]
    if error:
        payload["error"] = error
        return jsonify(payload), 503
    return jsonify(payload)


@bp.post("/user-emails/selection/toggle")
def toggle_user():
    ctrl = _controller()
    data = request.get_json(silent=True) or request.form
    row_id = (data.get("id") or "").strip()
    if row_id not in ctrl.page_ids:
        return _back(ctrl, 400, "User is not on the current page")
    ctrl.toggle_row(row_id)
    _save(ctrl)
    return _back(ctrl)


@bp.post("/user-emails/selection/toggle-page")
def toggle_page():
    ctrl = _controller()
    ctrl.toggle_all_on_page()
    _save(ctrl)
    return _back(ctrl)


@bp.post("/user-emails/selection/all")
@limiter.limit("30 per minute")
def select_all_matching():
    ctrl = _controller()
    data = request.get_json(silent=True) or request.form
    if not ctrl.is_current(data.get("q"), data.get("generation")):
        return _back(ctrl, 409, STALE_LISTING)
    try:
        applied = asyncio.run(ctrl.select_all_matching())
    except FetchError as e:
        logger.error("Error selecting all: %s", e)
        return _back(ctrl, 503, "Failed to select all users")
    if not applied:
        return _back(ctrl, 409, STALE_LISTING)
    _save(ctrl)
    if not _wants_json():
        flash(f"Selected {ctrl.selection.count} users across all pages", "success")
    return _back(ctrl)


@bp.post("/user-emails/selection/clear")
def clear_selection():
    ctrl = _controller()
    ctrl.clear_selection()
    _save(ctrl)
    return _back(ctrl)


@bp.get("/user-emails/selection/emails")
def selected_emails():
    """Newline-separated addresses of the current selection (for the clipboard)."""
    ctrl = _controller()
    # the clipboard link names the listing it was rendered from
    if "generation" in request.args and not ctrl.is_current(request.args.get("q"), request.args["generation"]):
        return jsonify({"error": STALE_LISTING}), 409
    try:
        emails = asyncio.run(ctrl.resolve_selected_emails())
    except FetchError as e:
        logger.error("Error copying emails: %s", e)
        return jsonify({"error": "Failed to resolve selected emails"}), 503
    if _wants_json():
        return jsonify({"emails": emails, "count": len(emails)})
    return Response("\n".join(emails), mimetype="text/plain")


@bp.get("/users/<user_id>.json")
def user_details(user_id: str):
    try:
        details = get_user_details(db.session, user_id)
    except StoreError as e:
        logger.error("Error fetching user details for %s: %s", user_id, e)
        return jsonify({"error": "Failed to fetch user details"}), 503
    if details is None:
        abort(404)
    return jsonify(details)
