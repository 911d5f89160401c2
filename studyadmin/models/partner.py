from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.sql import func

from studyadmin.extensions import db
from .identity import new_uuid

# Keep simple text+CHECK for evolvable types (no DB enum migration pain)
PARTNER_TYPE_COMMUNITY = "community"
PARTNER_TYPE_CREATOR = "creator"
PARTNER_TYPE_PLATFORM = "platform"
PARTNER_TYPES = (PARTNER_TYPE_COMMUNITY, PARTNER_TYPE_CREATOR, PARTNER_TYPE_PLATFORM)


class Partner(db.Model):
    __tablename__ = "partners"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)

    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(40), nullable=False)
    description = db.Column(db.Text, nullable=True)
    logo_url = db.Column(db.Text, nullable=True)
    link_url = db.Column(db.Text, nullable=True)
    link_label = db.Column(db.String(120), nullable=True)
    featured = db.Column(db.Boolean, nullable=False, default=False, server_default=text("false"))
    tags = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        db.CheckConstraint(
            "type IN ('community','creator','platform')",
            name="ck_partners_type_valid",
        ),
        db.Index("ix_partners_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Partner id={self.id} name={self.name!r} featured={self.featured}>"
