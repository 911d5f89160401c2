from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "3f1c9a7e2b10"
down_revision = None
branch_labels = None
depends_on = None

_TS = postgresql.TIMESTAMP(timezone=True)
_NOW = sa.text("now()")


def _id():
    return sa.Column("id", sa.String(length=36), nullable=False)


def upgrade():
    op.create_table(
        "auth_identities",
        _id(),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", _TS, nullable=False, server_default=_NOW),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_auth_identities_created_at", "auth_identities", ["created_at"])
    op.create_index("ix_auth_identities_lower_email", "auth_identities", [sa.text("lower(email)")])

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=36), sa.ForeignKey("auth_identities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("streak_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity_date", sa.Date(), nullable=True),
        sa.Column("created_at", _TS, nullable=False, server_default=_NOW),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_profiles_created_at", "profiles", ["created_at"])

    op.create_table(
        "feature_feedback",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("feature_name", sa.String(length=120), nullable=False),
        sa.Column("selected_option", sa.String(length=60), nullable=True),
        sa.Column("created_at", _TS, nullable=False, server_default=_NOW),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_feature_feedback_user_id", "feature_feedback", ["user_id"])
    op.create_index("ix_feature_feedback_feature_created_at", "feature_feedback", ["feature_name", "created_at"])

    for table, extra in (
        ("community_messages", []),
        ("study_room_messages", [sa.Column("room_id", sa.String(length=36), nullable=True)]),
    ):
        op.create_table(
            table,
            _id(),
            *extra,
            sa.Column("user_id", sa.String(length=36), nullable=True),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("created_at", _TS, nullable=False, server_default=_NOW),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(f"ix_{table}_user_id", table, ["user_id"])
    op.create_index("ix_study_room_messages_room_id", "study_room_messages", ["room_id"])

    op.create_table(
        "study_rooms",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", _TS, nullable=False, server_default=_NOW),
        sa.PrimaryKeyConstraint("id"),
    )

    for table, extra in (
        ("community_reports", []),
        ("study_room_reports", [sa.Column("room_id", sa.String(length=36), nullable=True)]),
    ):
        op.create_table(
            table,
            _id(),
            sa.Column("message_id", sa.String(length=36), nullable=True),
            sa.Column("reporter_id", sa.String(length=36), nullable=True),
            *extra,
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column("created_at", _TS, nullable=False, server_default=_NOW),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(f"ix_{table}_message_id", table, ["message_id"])
        op.create_index(f"ix_{table}_reporter_id", table, ["reporter_id"])
    op.create_index("ix_study_room_reports_room_id", "study_room_reports", ["room_id"])

    op.create_table(
        "partners",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("link_url", sa.Text(), nullable=True),
        sa.Column("link_label", sa.String(length=120), nullable=True),
        sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("created_at", _TS, nullable=False, server_default=_NOW),
        sa.Column("updated_at", _TS, nullable=False, server_default=_NOW),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("type IN ('community','creator','platform')", name="ck_partners_type_valid"),
    )
    op.create_index("ix_partners_created_at", "partners", ["created_at"])

    op.create_table(
        "tasks",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", _TS, nullable=False, server_default=_NOW),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "notes",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("created_at", _TS, nullable=False, server_default=_NOW),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "flashcard_decks",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "flashcards",
        _id(),
        sa.Column("deck_id", sa.String(length=36), sa.ForeignKey("flashcard_decks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("front", sa.Text(), nullable=False),
        sa.Column("back", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "study_plans",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "pomodoro_sessions",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", _TS, nullable=False, server_default=_NOW),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "user_achievements",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("achievement_key", sa.String(length=120), nullable=False),
        sa.Column("unlocked_at", _TS, nullable=False, server_default=_NOW),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "subscriptions",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("plan", sa.String(length=64), nullable=True),
        sa.Column("current_period_end", _TS, nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", name="uq_subscriptions_user_id"),
    )
    for table in ("tasks", "notes", "flashcard_decks", "study_plans", "pomodoro_sessions", "user_achievements"):
        op.create_index(f"ix_{table}_user_id", table, ["user_id"])
    op.create_index("ix_flashcards_deck_id", "flashcards", ["deck_id"])


def downgrade():
    for table in (
        "subscriptions", "user_achievements", "pomodoro_sessions", "study_plans",
        "flashcards", "flashcard_decks", "notes", "tasks", "partners",
        "study_room_reports", "community_reports", "study_rooms",
        "study_room_messages", "community_messages", "feature_feedback",
        "profiles", "auth_identities",
    ):
        op.drop_table(table)
