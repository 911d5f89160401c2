from sqlalchemy import func
from studyadmin.extensions import db


class Profile(db.Model):
    __tablename__ = "profiles"

    # Same id as the auth identity (one profile per user)
    id = db.Column(db.String(36), db.ForeignKey("auth_identities.id", ondelete="CASCADE"), primary_key=True)
    display_name = db.Column(db.String(255), nullable=True)
    avatar_url = db.Column(db.Text, nullable=True)
    bio = db.Column(db.Text, nullable=True)

    xp = db.Column(db.Integer, nullable=False, default=0)
    level = db.Column(db.Integer, nullable=False, default=1)
    streak_days = db.Column(db.Integer, nullable=False, default=0)
    last_activity_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        db.Index("ix_profiles_created_at", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "avatar_url": self.avatar_url,
            "bio": self.bio,
            "xp": self.xp,
            "level": self.level,
            "streak_days": self.streak_days,
            "last_activity_date": self.last_activity_date.isoformat() if self.last_activity_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
