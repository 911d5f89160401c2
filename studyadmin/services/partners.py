from __future__ import annotations

import re
import time
from dataclasses import dataclass, asdict
from typing import List, Mapping, Optional

from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from studyadmin.models import Partner, PARTNER_TYPES
from studyadmin.utils.validators import clean_str, parse_tags, is_truthy
from .blob_store import BlobStore
from .errors import StoreError, ValidationError
from .store import RowStore

MAX_LOGO_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class PartnerInput:
    name: str
    type: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    link_url: Optional[str] = None
    link_label: Optional[str] = None
    featured: bool = False
    tags: Optional[List[str]] = None

    def as_values(self) -> dict:
        return asdict(self)


def parse_partner_form(form: Mapping[str, str]) -> PartnerInput:
    """Validate a create/update submission. Raises ValidationError before any store call."""
    name = clean_str(form.get("name"))
    ptype = clean_str(form.get("type"))
    if not name or not ptype:
        raise ValidationError("Partner name and type are required")
    if ptype not in PARTNER_TYPES:
        raise ValidationError(f"Partner type must be one of: {', '.join(PARTNER_TYPES)}")

    return PartnerInput(
        name=name,
        type=ptype,
        description=(form.get("description") or "").strip() or None,
        logo_url=(form.get("logo_url") or "").strip() or None,
        link_url=(form.get("link_url") or "").strip() or None,
        link_label=clean_str(form.get("link_label"), max_len=120),
        featured=is_truthy(form.get("featured")),
        tags=parse_tags(form.get("tags")),
    )


def list_partners(session: Session) -> List[Partner]:
    return RowStore(session).select(Partner, order=[Partner.created_at.desc()])


def get_partner(session: Session, partner_id: str) -> Partner:
    obj = RowStore(session).get(Partner, partner_id)
    if obj is None:
        raise StoreError(f"Partner {partner_id} not found")
    return obj


def create_partner(session: Session, data: PartnerInput) -> Partner:
    return RowStore(session).insert(Partner(**data.as_values()))


def update_partner(session: Session, partner_id: str, data: PartnerInput) -> Partner:
    partner = get_partner(session, partner_id)
    return RowStore(session).update(partner, updated_at=func.now(), **data.as_values())


def delete_partner(session: Session, partner_id: str) -> None:
    if not RowStore(session).delete(Partner, Partner.id == partner_id):
        raise StoreError(f"Partner {partner_id} not found")


def toggle_featured(session: Session, partner_id: str) -> Partner:
    partner = get_partner(session, partner_id)
    return RowStore(session).update(partner, featured=not partner.featured, updated_at=func.now())


def logo_key(filename: str, now_ms: Optional[int] = None) -> str:
    """<epoch-millis>-<filename with whitespace runs collapsed to '-'>"""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    name = re.sub(r"\s+", "-", filename or "logo")
    return f"{stamp}-{name}"


def upload_partner_logo(
    blob_store: BlobStore,
    *,
    filename: str,
    data: Optional[bytes],
    content_type: Optional[str],
    bucket: str = "partners",
    max_bytes: int = MAX_LOGO_BYTES,
) -> str:
    """Validate and store a logo; returns its public URL."""
    if not data:
        raise ValidationError("No file provided")
    if not (content_type or "").startswith("image/"):
        raise ValidationError("File must be an image")
    if len(data) > max_bytes:
        raise ValidationError(f"File must be smaller than {max_bytes // (1024 * 1024)}MB")
    return blob_store.upload(bucket, logo_key(filename), data, content_type)
