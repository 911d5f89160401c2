"""Study-app activity tables. Read-only here; only counted for the user detail card."""
from sqlalchemy import func
from studyadmin.extensions import db
from .identity import new_uuid


class Task(db.Model):
    __tablename__ = "tasks"
    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())


class Note(db.Model):
    __tablename__ = "notes"
    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())


class FlashcardDeck(db.Model):
    __tablename__ = "flashcard_decks"
    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)


class Flashcard(db.Model):
    __tablename__ = "flashcards"
    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    deck_id = db.Column(db.String(36), db.ForeignKey("flashcard_decks.id", ondelete="CASCADE"), nullable=False, index=True)
    front = db.Column(db.Text, nullable=False)
    back = db.Column(db.Text, nullable=True)


class StudyPlan(db.Model):
    __tablename__ = "study_plans"
    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)


class PomodoroSession(db.Model):
    __tablename__ = "pomodoro_sessions"
    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())


class UserAchievement(db.Model):
    __tablename__ = "user_achievements"
    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    achievement_key = db.Column(db.String(120), nullable=False)
    unlocked_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())


class Subscription(db.Model):
    __tablename__ = "subscriptions"
    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    user_id = db.Column(db.String(36), nullable=False, unique=True)
    status = db.Column(db.String(32), nullable=False)  # active|trialing|past_due|canceled
    plan = db.Column(db.String(64), nullable=True)
    current_period_end = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "plan": self.plan,
            "current_period_end": self.current_period_end.isoformat() if self.current_period_end else None,
        }
