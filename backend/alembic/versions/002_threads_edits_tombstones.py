"""Comment replies, edit timestamps, message tombstones

Revision ID: 002
Revises: 001
Create Date: 2024-02-02 00:00:00.000000+00:00

What:  comments.parent_id (+ idx_comments_parent) and comments.edited_at,
       posts.updated_at, messages.deleted_at.
How:   Nullable columns only, so existing rows need no backfill. SQLite
       cannot ALTER constraints in place; batch_alter_table rebuilds the
       comments table there and is a plain ALTER on PostgreSQL.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("comments") as batch:
        batch.add_column(sa.Column("parent_id", sa.Uuid(), nullable=True))
        batch.add_column(sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True))
        batch.create_foreign_key(
            "fk_comments_parent", "comments", ["parent_id"], ["id"], ondelete="CASCADE"
        )
    op.create_index("idx_comments_parent", "comments", ["parent_id"])

    op.add_column("posts", sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    op.add_column("messages", sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True))


def downgrade() -> None:
    op.drop_column("messages", "deleted_at")
    op.drop_column("posts", "updated_at")

    op.drop_index("idx_comments_parent", table_name="comments")
    with op.batch_alter_table("comments") as batch:
        batch.drop_constraint("fk_comments_parent", type_="foreignkey")
        batch.drop_column("edited_at")
        batch.drop_column("parent_id")
