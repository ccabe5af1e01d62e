"""Create users, expert_details, session_reviews and notifications tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema for session reviews and the reputation state they feed.
How:   PostgreSQL UUID primary keys and TIMESTAMP WITH TIME ZONE. Enum
       columns are plain VARCHARs, matching the non-native SQLAlchemy enums
       on the models. Badges and expertise are JSON arrays.

Rollback: downgrade() drops all four tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("avatar", sa.String(512), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'USER'")),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "expert_details",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("headline", sa.String(200), nullable=True),
        sa.Column("about", sa.Text(), nullable=True),
        sa.Column("expertise", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column(
            "ratings",
            sa.Float(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Average review rating rounded to one decimal",
        ),
        sa.Column(
            "progress_level",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'BRONZE'"),
        ),
        sa.Column("badges", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_expert_details_user_id", "expert_details", ["user_id"], unique=True)

    op.create_table(
        "session_reviews",
        _uuid_pk(),
        sa.Column("expert_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reviewer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "session_id",
            sa.String(100),
            nullable=True,
            comment="Opaque reference to the booked session",
        ),
        sa.Column("rating", sa.Float(), nullable=False),
        sa.Column("satisfaction", sa.String(30), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["expert_id"], ["expert_details.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reviewer_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "reviewer_id", "expert_id", name="uq_session_reviews_reviewer_expert"
        ),
    )
    op.create_index(
        "idx_session_reviews_expert_created",
        "session_reviews",
        ["expert_id", "created_at"],
    )
    op.create_index("idx_session_reviews_reviewer", "session_reviews", ["reviewer_id"])

    op.create_table(
        "notifications",
        _uuid_pk(),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("recipient_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("sender_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "idx_notifications_recipient_created",
        "notifications",
        ["recipient_id", "created_at"],
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order. All data is lost."""
    op.drop_index("idx_notifications_recipient_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("idx_session_reviews_reviewer", table_name="session_reviews")
    op.drop_index("idx_session_reviews_expert_created", table_name="session_reviews")
    op.drop_table("session_reviews")
    op.drop_index("ix_expert_details_user_id", table_name="expert_details")
    op.drop_table("expert_details")
    op.drop_table("users")
