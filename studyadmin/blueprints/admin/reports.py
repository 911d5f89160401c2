from flask import render_template, request, redirect, url_for, flash, abort
from . import bp

from studyadmin.extensions import db
from studyadmin.services.errors import ServiceError, StoreError
from studyadmin.services.reports import (
    REPORT_KINDS,
    get_kind,
    list_reports,
    report_counts,
    delete_reported_message as svc_delete_reported_message,
    dismiss_report as svc_dismiss_report,
)


def _kind_or_404(kind_key: str):
    try:
        return get_kind(kind_key)
    except ServiceError:
        abort(404)


@bp.get("/reports")
def reports():
    q = (request.args.get("q") or "").strip()
    sections = []
    for kind in REPORT_KINDS.values():
        try:
            rows = list_reports(db.session, kind, search=q)
            error = None
        except StoreError as e:
            rows, error = [], str(e)
        sections.append({"kind": kind, "rows": rows, "error": error})
    return render_template(
        "admin/reports.html",
        sections=sections,
        counts=report_counts(db.session),
        q=q,
    )


@bp.post("/reports/<kind_key>/messages/<message_id>/delete")
def delete_reported_message(kind_key: str, message_id: str):
    kind = _kind_or_404(kind_key)
    try:
        result = svc_delete_reported_message(db.session, kind, message_id)
        flash(f"Message deleted successfully ({result.reports_removed} report(s) closed).", "success")
    except StoreError:
        flash("Failed to delete message", "error")
    return redirect(url_for("admin.reports", q=request.args.get("q") or None))


@bp.post("/reports/<kind_key>/<report_id>/dismiss")
def dismiss_report(kind_key: str, report_id: str):
    kind = _kind_or_404(kind_key)
    try:
        svc_dismiss_report(db.session, kind, report_id)
        flash("Report dismissed successfully", "success")
    except StoreError:
        flash("Failed to dismiss report", "error")
    return redirect(url_for("admin.reports", q=request.args.get("q") or None))
