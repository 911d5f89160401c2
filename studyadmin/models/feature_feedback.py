from studyadmin.extensions import db
from .identity import new_uuid

class FeatureFeedback(db.Model):
    __tablename__ = "feature_feedback"
    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    # Keep user id loose; feedback outlives deleted profiles
    user_id = db.Column(db.String(36), nullable=True, index=True)
    feature_name = db.Column(db.String(120), nullable=False)
    selected_option = db.Column(db.String(60), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=db.func.now(), nullable=False)

    __table_args__ = (
        db.Index("ix_feature_feedback_feature_created_at", "feature_name", "created_at"),
    )
