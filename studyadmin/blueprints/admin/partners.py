import logging

from flask import render_template, request, redirect, url_for, flash, jsonify, current_app, send_from_directory, abort
from . import bp

from studyadmin.extensions import db, limiter
from studyadmin.models import PARTNER_TYPES
from studyadmin.observability import log_event
from studyadmin.services.blob_store import LocalBlobStore, blob_store_from_config
from studyadmin.services.errors import ServiceError, StoreError
from studyadmin.services.partners import (
    parse_partner_form,
    list_partners as svc_list_partners,
    create_partner as svc_create_partner,
    update_partner as svc_update_partner,
    delete_partner as svc_delete_partner,
    toggle_featured as svc_toggle_featured,
    upload_partner_logo,
)

logger = logging.getLogger(__name__)


def _blob_store():
    return current_app.extensions.get("blob_store") or blob_store_from_config(current_app.config)


@bp.get("/partners")
def list_partners():
    try:
        partners = svc_list_partners(db.session)
    except StoreError as e:
        logger.error("Error fetching partners: %s", e)
        flash(str(e), "error")
        partners = []
    return render_template("admin/partners.html", partners=partners, partner_types=PARTNER_TYPES)


@bp.post("/partners")
def create_partner():
    try:
        data = parse_partner_form(request.form)
        partner = svc_create_partner(db.session, data)
        log_event(logger, "partner_created", partner_id=partner.id)
        flash("Partner created.", "success")
    except ServiceError as e:
        flash(str(e), "error")
    return redirect(url_for("admin.list_partners"))


@bp.post("/partners/<partner_id>")
def update_partner(partner_id: str):
    try:
        data = parse_partner_form(request.form)
        svc_update_partner(db.session, partner_id, data)
        flash("Partner updated.", "success")
    except ServiceError as e:
        flash(str(e), "error")
    return redirect(url_for("admin.list_partners"))


@bp.post("/partners/<partner_id>/delete")
def delete_partner(partner_id: str):
    try:
        svc_delete_partner(db.session, partner_id)
        log_event(logger, "partner_deleted", partner_id=partner_id)
        flash("Partner deleted.", "success")
    except ServiceError as e:
        flash(str(e), "error")
    return redirect(url_for("admin.list_partners"))


@bp.post("/partners/<partner_id>/featured")
def toggle_partner_featured(partner_id: str):
    try:
        partner = svc_toggle_featured(db.session, partner_id)
        flash("Partner featured." if partner.featured else "Partner unfeatured.", "success")
    except ServiceError as e:
        flash(str(e), "error")
    return redirect(url_for("admin.list_partners"))


@bp.post("/partners/logo")
@limiter.limit("30 per minute")
def upload_logo():
    """JSON-only: multipart `file` in, {"url": ...} out."""
    file = request.files.get("file")
    if file is None:
        return jsonify({"error": "No file provided"}), 400
    try:
        url = upload_partner_logo(
            _blob_store(),
            filename=file.filename or "logo",
            data=file.read(),
            content_type=file.mimetype,
            bucket=current_app.config.get("PARTNER_LOGO_BUCKET", "partners"),
            max_bytes=current_app.config.get("MAX_LOGO_BYTES", 5 * 1024 * 1024),
        )
    except ServiceError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"url": url}), 201


@bp.get("/uploads/<bucket>/<path:key>")
def uploaded_file(bucket: str, key: str):
    store = _blob_store()
    if not isinstance(store, LocalBlobStore):
        abort(404)
    try:
        path = store.path_for(bucket, key)
    except StoreError:
        abort(404)
    return send_from_directory(path.parent, path.name)
