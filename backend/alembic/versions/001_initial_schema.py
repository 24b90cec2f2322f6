"""Initial schema

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates every table: users, posts, post_media, comments, reactions,
       follows, chats, chat_members, messages, moderation_flags,
       device_tokens.
How:   Composite primary keys carry the uniqueness rules (one reaction row
       per post/user/type, one follow per pair, one membership per chat/user);
       the error transformer turns their violations into CONFLICT.

Rollback: downgrade() drops everything (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def _user_fk(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.String(64), sa.ForeignKey("users.id", ondelete="CASCADE"), **kwargs)


def upgrade() -> None:
    # ── Users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True, comment="Identity provider user id"),
        sa.Column("username", sa.String(30), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("is_moderator", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("suspended_until", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    # ── Posts, media, comments ────────────────────────────────────────────
    op.create_table(
        "posts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk("author_id", nullable=False),
        sa.Column("caption", sa.Text(), nullable=True),
        sa.Column("visibility", sa.String(16), nullable=False, server_default="PUBLIC"),
        sa.Column("location_name", sa.String(200), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        _created_at(),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False,
                  comment="created_at + post_ttl_hours; past this the post is GONE"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    # Feed: newest live posts first
    op.create_index("idx_posts_created_at", "posts", [sa.text("created_at DESC")])
    op.create_index("idx_posts_author", "posts", ["author_id"])

    op.create_table(
        "post_media",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("post_id", sa.Uuid(), sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("media_url", sa.String(500), nullable=False),
        sa.Column("public_id", sa.String(255), nullable=True, comment="Media host asset id"),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("ordering", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("duration_seconds", sa.Float(), nullable=True),
    )

    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("post_id", sa.Uuid(), sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
        _user_fk("author_id", nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        _created_at(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_comments_post_created", "comments", ["post_id", "created_at"])

    # ── Reactions and follows ─────────────────────────────────────────────
    op.create_table(
        "reactions",
        sa.Column("post_id", sa.Uuid(), sa.ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
        _user_fk("user_id", primary_key=True),
        sa.Column("type", sa.String(16), primary_key=True),
        _created_at(),
    )
    op.create_index("idx_reactions_user", "reactions", ["user_id"])

    op.create_table(
        "follows",
        _user_fk("follower_id", primary_key=True),
        _user_fk("followee_id", primary_key=True),
        _created_at(),
        sa.CheckConstraint("follower_id <> followee_id", name="ck_follows_not_self"),
    )
    op.create_index("idx_follows_followee", "follows", ["followee_id"])

    # ── Chats ─────────────────────────────────────────────────────────────
    op.create_table(
        "chats",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("is_group", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("title", sa.String(100), nullable=True),
        _created_at(),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "chat_members",
        sa.Column("chat_id", sa.Uuid(), sa.ForeignKey("chats.id", ondelete="CASCADE"), primary_key=True),
        _user_fk("member_id", primary_key=True),
        _created_at("joined_at"),
    )
    op.create_index("idx_chat_members_member", "chat_members", ["member_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("chat_id", sa.Uuid(), sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False),
        _user_fk("sender_id", nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, comment="Sent time"),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_messages_chat_created", "messages", ["chat_id", "created_at"])

    # ── Moderation ────────────────────────────────────────────────────────
    op.create_table(
        "moderation_flags",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("entity_type", sa.String(16), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        _user_fk("reporter_id", nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_by", sa.String(64), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "reporter_id", "entity_type", "entity_id", name="uq_moderation_flags_reporter_entity"
        ),
    )
    op.create_index("idx_moderation_flags_status", "moderation_flags", ["status"])
    op.create_index("idx_moderation_flags_entity", "moderation_flags", ["entity_type", "entity_id"])

    # ── Device tokens ─────────────────────────────────────────────────────
    op.create_table(
        "device_tokens",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk("user_id", nullable=False),
        sa.Column("token", sa.String(512), nullable=False, unique=True),
        sa.Column("platform", sa.String(16), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_device_tokens_user", "device_tokens", ["user_id"])


def downgrade() -> None:
    for table in (
        "device_tokens",
        "moderation_flags",
        "messages",
        "chat_members",
        "chats",
        "follows",
        "reactions",
        "comments",
        "post_media",
        "posts",
        "users",
    ):
        op.drop_table(table)
