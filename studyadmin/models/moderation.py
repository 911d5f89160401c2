from sqlalchemy import func
from studyadmin.extensions import db
from .identity import new_uuid


class CommunityMessage(db.Model):
    __tablename__ = "community_messages"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), nullable=True, index=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())


class CommunityReport(db.Model):
    __tablename__ = "community_reports"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    # No FK: the message may already be gone when the report is reviewed
    message_id = db.Column(db.String(36), nullable=True, index=True)
    reporter_id = db.Column(db.String(36), nullable=True, index=True)
    reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())


class StudyRoom(db.Model):
    __tablename__ = "study_rooms"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())


class StudyRoomMessage(db.Model):
    __tablename__ = "study_room_messages"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    room_id = db.Column(db.String(36), nullable=True, index=True)
    user_id = db.Column(db.String(36), nullable=True, index=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())


class StudyRoomReport(db.Model):
    __tablename__ = "study_room_reports"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    message_id = db.Column(db.String(36), nullable=True, index=True)
    reporter_id = db.Column(db.String(36), nullable=True, index=True)
    room_id = db.Column(db.String(36), nullable=True, index=True)
    reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
