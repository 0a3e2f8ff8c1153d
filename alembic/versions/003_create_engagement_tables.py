"""Create favorites, click_records and api_tokens tables.

Revision ID: 003
Revises: 002
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the engagement and credential tables."""
    op.create_table(
        "favorites",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("link_id", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_favorites")),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_favorites_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["link_id"],
            ["links.id"],
            name=op.f("fk_favorites_link_id_links"),
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("user_id", "link_id", name=op.f("uq_favorites_user_id")),
    )
    op.create_index(op.f("ix_favorites_user_id"), "favorites", ["user_id"])
    op.create_index(op.f("ix_favorites_link_id"), "favorites", ["link_id"])

    # No foreign key on link_id: click history outlives deleted links
    op.create_table(
        "click_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "link_id",
            sa.Integer(),
            nullable=False,
            comment="Id of the clicked link (references links.id)",
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            nullable=True,
            comment="Authenticated user that clicked, if any",
        ),
        sa.Column("ip_address", sa.String(45), nullable=True, comment="Client IP address"),
        sa.Column("user_agent", sa.Text(), nullable=True, comment="HTTP User-Agent header"),
        sa.Column("referer", sa.Text(), nullable=True, comment="HTTP Referer header"),
        sa.Column(
            "clicked_at",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="Timestamp when the click occurred",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_click_records")),
    )
    op.create_index(op.f("ix_click_records_link_id"), "click_records", ["link_id"])
    op.create_index(op.f("ix_click_records_clicked_at"), "click_records", ["clicked_at"])
    op.create_index(
        "ix_click_records_link_id_clicked_at",
        "click_records",
        ["link_id", "clicked_at"],
    )

    op.create_table(
        "api_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column(
            "token_hash",
            sa.String(64),
            nullable=False,
            comment="SHA-256 hex digest of the secret",
        ),
        sa.Column(
            "token_prefix",
            sa.String(16),
            nullable=False,
            comment="Leading characters of the secret, for identification",
        ),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_api_tokens")),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_api_tokens_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("token_hash", name=op.f("uq_api_tokens_token_hash")),
    )
    op.create_index(op.f("ix_api_tokens_user_id"), "api_tokens", ["user_id"])


def downgrade() -> None:
    """Drop the engagement and credential tables."""
    op.drop_index(op.f("ix_api_tokens_user_id"), table_name="api_tokens")
    op.drop_table("api_tokens")
    op.drop_index("ix_click_records_link_id_clicked_at", table_name="click_records")
    op.drop_index(op.f("ix_click_records_clicked_at"), table_name="click_records")
    op.drop_index(op.f("ix_click_records_link_id"), table_name="click_records")
    op.drop_table("click_records")
    op.drop_index(op.f("ix_favorites_link_id"), table_name="favorites")
    op.drop_index(op.f("ix_favorites_user_id"), table_name="favorites")
    op.drop_table("favorites")
