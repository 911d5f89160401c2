from flask import render_template, request, redirect, url_for, flash, jsonify
from . import bp

from studyadmin.extensions import db
from studyadmin.services.errors import StoreError
from studyadmin.services.feedback import (
    list_feature_feedback,
    feedback_stats,
    feedback_breakdown,
    delete_feedback as svc_delete_feedback,
)


@bp.get("/feedback")
def feedback():
    q = (request.args.get("q") or "").strip()
    stats = feedback_stats(db.session)
    by_feature = sorted(stats["by_feature"].items(), key=lambda kv: kv[1], reverse=True)
    return render_template(
        "admin/feedback.html",
        rows=list_feature_feedback(db.session, search=q),
        stats=stats,
        by_feature=by_feature,
        breakdown=feedback_breakdown(db.session),
        q=q,
    )


@bp.get("/feedback/breakdown.json")
def feedback_breakdown_json():
    return jsonify([t.to_dict() for t in feedback_breakdown(db.session)])


@bp.post("/feedback/<feedback_id>/delete")
def delete_feedback(feedback_id: str):
    try:
        svc_delete_feedback(db.session, feedback_id)
        flash("Feedback deleted.", "success")
    except StoreError as e:
        flash(f"Failed to delete feedback: {e}", "error")
    return redirect(url_for("admin.feedback"))
