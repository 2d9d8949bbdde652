"""initial_schema

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-19 10:12:41.208113

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1a9c2e7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, cats, feed_events, global_stats and purchases tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=128), nullable=False),
        sa.Column("wallet_address", sa.String(length=42), nullable=True),
        sa.Column("balance", sa.Integer(), nullable=False),
        sa.Column("last_claim_at", sa.DateTime(), nullable=True),
        sa.Column("total_feeds", sa.Integer(), nullable=False),
        sa.Column("feeds_today", sa.Integer(), nullable=False),
        sa.Column("last_feed_date", sa.DateTime(), nullable=True),
        sa.Column("total_purchased", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_wallet_address"), "users", ["wallet_address"], unique=False)

    op.create_table(
        "cats",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=20), nullable=False),
        sa.Column("media_url", sa.String(), nullable=False),
        sa.Column("media_type", sa.Enum("IMAGE", "VIDEO", name="mediatype"), nullable=False),
        sa.Column("total_fed", sa.Integer(), nullable=False),
        sa.Column("last_fed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("created_by", sa.String(length=128), nullable=False),
        sa.Column("vibes", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_cats_created_at"), "cats", ["created_at"], unique=False)
    op.create_index(op.f("ix_cats_created_by"), "cats", ["created_by"], unique=False)

    op.create_table(
        "feed_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("cat_id", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_feed_events_user_id"), "feed_events", ["user_id"], unique=False)
    op.create_index(op.f("ix_feed_events_cat_id"), "feed_events", ["cat_id"], unique=False)
    op.create_index(op.f("ix_feed_events_timestamp"), "feed_events", ["timestamp"], unique=False)

    op.create_table(
        "global_stats",
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("total_feeds", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )

    op.create_table(
        "purchases",
        sa.Column("session_id", sa.String(length=255), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("tier_id", sa.String(length=32), nullable=False),
        sa.Column("cattv", sa.Integer(), nullable=False),
        sa.Column("price_usd", sa.Integer(), nullable=False),
        sa.Column(
            "status", sa.Enum("PENDING", "COMPLETED", name="purchasestatus"), nullable=False
        ),
        sa.Column("payment_intent_id", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("session_id"),
    )
    op.create_index(op.f("ix_purchases_user_id"), "purchases", ["user_id"], unique=False)
    op.create_index(op.f("ix_purchases_status"), "purchases", ["status"], unique=False)


def downgrade() -> None:
    """Drop all CatTV tables."""
    op.drop_index(op.f("ix_purchases_status"), table_name="purchases")
    op.drop_index(op.f("ix_purchases_user_id"), table_name="purchases")
    op.drop_table("purchases")
    op.drop_table("global_stats")
    op.drop_index(op.f("ix_feed_events_timestamp"), table_name="feed_events")
    op.drop_index(op.f("ix_feed_events_cat_id"), table_name="feed_events")
    op.drop_index(op.f("ix_feed_events_user_id"), table_name="feed_events")
    op.drop_table("feed_events")
    op.drop_index(op.f("ix_cats_created_by"), table_name="cats")
    op.drop_index(op.f("ix_cats_created_at"), table_name="cats")
    op.drop_table("cats")
    op.drop_index(op.f("ix_users_wallet_address"), table_name="users")
    op.drop_table("users")
    sa.Enum(name="purchasestatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="mediatype").drop(op.get_bind(), checkfirst=True)
