import uuid
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy import func
from studyadmin.extensions import db, login_manager


def new_uuid() -> str:
    return str(uuid.uuid4())


class AuthIdentity(db.Model, UserMixin):
    """One sign-in identity; carries at most one email. Also the dashboard login."""
    __tablename__ = "auth_identities"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    # Phone/OAuth identities may have no email; email listings drop those
    email = db.Column(db.String(255), nullable=True)
    password_hash = db.Column(db.String(255), nullable=True)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        db.Index("ix_auth_identities_created_at", "created_at"),
    )

    # helpers
    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def get_id(self) -> str:
        return str(self.id)

@login_manager.user_loader
def load_identity(identity_id: str):
    try:
        return db.session.get(AuthIdentity, identity_id)
    except Exception:
        return None
