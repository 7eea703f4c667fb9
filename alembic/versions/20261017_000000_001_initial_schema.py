"""Initial schema: users, consents, token denylist, newsletter.

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:  # type: ignore[type-arg]
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    auth_provider = sa.Enum("GOOGLE", "KAKAO", name="auth_provider")
    user_role = sa.Enum("USER", "ADMIN", name="user_role")
    revocation_reason = sa.Enum("LOGOUT", "ACCOUNT_DELETED", name="revocation_reason")

    # Users
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("google_id", sa.String(255), nullable=True),
        sa.Column("kakao_id", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("picture", sa.String(1024), nullable=True),
        sa.Column("provider", auth_provider, nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
        sa.UniqueConstraint("google_id", name=op.f("uq_users_google_id")),
        sa.UniqueConstraint("kakao_id", name=op.f("uq_users_kakao_id")),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "user_stats",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("total_sessions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_messages", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("streak_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_study_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_stats")),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_user_stats_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("user_id", name=op.f("uq_user_stats_user_id")),
    )

    # Append-only consent log
    op.create_table(
        "user_consents",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("terms_accepted", sa.Boolean(), nullable=False),
        sa.Column("privacy_accepted", sa.Boolean(), nullable=False),
        sa.Column("newsletter_opt_in", sa.Boolean(), nullable=False),
        sa.Column("terms_version", sa.String(32), nullable=False),
        sa.Column("privacy_version", sa.String(32), nullable=False),
        sa.Column("newsletter_version", sa.String(32), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_consents")),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_user_consents_user_id_users"),
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_user_consents_user_created", "user_consents", ["user_id", "created_at"]
    )

    # Revoked session tokens (no FK: entries outlive deleted users)
    op.create_table(
        "invalidated_tokens",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("token_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("reason", revocation_reason, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_invalidated_tokens")),
        sa.UniqueConstraint("token_id", name=op.f("uq_invalidated_tokens_token_id")),
    )
    op.create_index(
        op.f("ix_invalidated_tokens_user_id"), "invalidated_tokens", ["user_id"]
    )
    op.create_index(
        op.f("ix_invalidated_tokens_expires_at"), "invalidated_tokens", ["expires_at"]
    )

    # Newsletter
    op.create_table(
        "newsletter_subscribers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("confirm_token", sa.String(128), nullable=True),
        sa.Column("unsubscribe_token", sa.String(128), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("subscribed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_newsletter_subscribers")),
        sa.UniqueConstraint("email", name=op.f("uq_newsletter_subscribers_email")),
        sa.UniqueConstraint(
            "confirm_token", name=op.f("uq_newsletter_subscribers_confirm_token")
        ),
        sa.UniqueConstraint(
            "unsubscribe_token", name=op.f("uq_newsletter_subscribers_unsubscribe_token")
        ),
    )

    op.create_table(
        "articles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("trend_topic", sa.String(255), nullable=False),
        sa.Column("korean_article", sa.Text(), nullable=False),
        sa.Column("english_translation", sa.Text(), nullable=False),
        sa.Column("expression", sa.String(255), nullable=False),
        sa.Column("literal_translation", sa.String(255), nullable=False),
        sa.Column("idiomatic_translation", sa.String(255), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_articles")),
    )

    op.create_table(
        "dispatch_pointers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("article_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_dispatch_pointers")),
        sa.ForeignKeyConstraint(
            ["article_id"],
            ["articles.id"],
            name=op.f("fk_dispatch_pointers_article_id_articles"),
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("name", name=op.f("uq_dispatch_pointers_name")),
    )


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_table("dispatch_pointers")
    op.drop_table("articles")
    op.drop_table("newsletter_subscribers")
    op.drop_table("invalidated_tokens")
    op.drop_index("ix_user_consents_user_created", table_name="user_consents")
    op.drop_table("user_consents")
    op.drop_table("user_stats")
    op.drop_table("users")

    # Drop enum types
    op.execute("DROP TYPE IF EXISTS revocation_reason")
    op.execute("DROP TYPE IF EXISTS user_role")
    op.execute("DROP TYPE IF EXISTS auth_provider")
