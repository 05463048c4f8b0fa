"""
Initial schema: plans, users, watch history, family sharing.

- plans (seeded separately by scripts/seed_plans.py)
- users with plan/screens/trial entitlement
- watch_history keyed by (user, tmdb id, media type, season, episode)
- families / family_members / family_invites
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic.
revision = "20261017_01_watch_history_and_family"
down_revision = None
branch_labels = None
depends_on = None

media_type = sa.Enum("movie", "tv", name="media_type")
invite_status = sa.Enum("pending", "accepted", "revoked", "expired", name="invite_status")


def upgrade() -> None:
    op.create_table(
        "plans",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("screens", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("price_monthly", sa.Numeric(10, 2), nullable=True),
        sa.Column("price_yearly", sa.Numeric(10, 2), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.CheckConstraint("screens >= 1", name="ck_plans_screens_positive"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=120), nullable=True),
        sa.Column("is_email_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("plan_id", sa.String(length=32), sa.ForeignKey("plans.id", ondelete="SET NULL"), nullable=True),
        sa.Column("max_screens", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_used", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("length(trim(email)) > 0", name="ck_users_email_not_blank"),
        sa.CheckConstraint("max_screens >= 1", name="ck_users_max_screens_positive"),
    )
    op.create_index("ix_users_plan_id", "users", ["plan_id"])
    op.create_index("ix_users_trial_ends_at", "users", ["trial_ends_at"])
    op.create_index("uq_users_email_lower", "users", [sa.text("lower(email)")], unique=True)

    op.create_table(
        "watch_history",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tmdb_id", sa.Integer(), nullable=False),
        sa.Column("media_type", media_type, nullable=False),
        sa.Column("season_number", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("episode_number", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("progress", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_watched_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "user_id", "tmdb_id", "media_type", "season_number", "episode_number",
            name="uq_watch_history_user_item",
        ),
        sa.CheckConstraint("tmdb_id > 0", name="ck_watch_history_tmdb_positive"),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_watch_history_progress_range"),
        sa.CheckConstraint("season_number >= 0 AND episode_number >= 0", name="ck_watch_history_numbers_nonneg"),
    )
    op.create_index("ix_watch_history_user_id", "watch_history", ["user_id"])
    op.create_index("ix_watch_history_user_recent", "watch_history", ["user_id", "last_watched_at"])
    op.create_index("ix_watch_history_user_title", "watch_history", ["user_id", "tmdb_id", "media_type"])

    op.create_table(
        "families",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("max_members", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("max_members >= 1", name="ck_families_max_members_positive"),
    )

    op.create_table(
        "family_members",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("family_id", sa.Uuid(), sa.ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("family_id", "user_id", name="uq_family_members_family_user"),
    )
    op.create_index("ix_family_members_family_id", "family_members", ["family_id"])

    op.create_table(
        "family_invites",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("family_id", sa.Uuid(), sa.ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False, unique=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("status", invite_status, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_by", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_family_invites_family_id", "family_invites", ["family_id"])
    op.create_index("ix_family_invites_status_expires", "family_invites", ["status", "expires_at"])


def downgrade() -> None:
    op.drop_table("family_invites")
    op.drop_table("family_members")
    op.drop_table("families")
    op.drop_table("watch_history")
    op.drop_table("users")
    op.drop_table("plans")
    invite_status.drop(op.get_bind(), checkfirst=True)
    media_type.drop(op.get_bind(), checkfirst=True)
