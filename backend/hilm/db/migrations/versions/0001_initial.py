"""initial tables: webhook_updates, transactions, agent_response_cache

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


# No advisory lock: concurrent inserts for one user may compute the same
# display_id, and the unique constraint plus the client retry resolve it.
SET_NEXT_DISPLAY_ID = """
CREATE OR REPLACE FUNCTION set_next_display_id()
RETURNS TRIGGER AS $$
BEGIN
  SELECT COALESCE(MAX(display_id), 0) + 1
  INTO NEW.display_id
  FROM transactions
  WHERE user_id = NEW.user_id;
  RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

TRIGGER = """
CREATE TRIGGER assign_display_id
  BEFORE INSERT ON transactions
  FOR EACH ROW
  EXECUTE FUNCTION set_next_display_id();
"""


def upgrade() -> None:
    op.create_table(
        "webhook_updates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("update_id", sa.BigInteger(), nullable=False),
        sa.Column("payload", postgresql.JSONB(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_webhook_updates_update_id", "webhook_updates", ["update_id"], unique=True)
    op.create_index("ix_webhook_updates_status", "webhook_updates", ["status"])

    op.create_table(
        "transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("display_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(10), nullable=False, server_default="AED"),
        sa.Column("merchant", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("original_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("original_currency", sa.String(10), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "display_id", name="unique_user_display_id"),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.execute(SET_NEXT_DISPLAY_ID)
    op.execute(TRIGGER)

    op.create_table(
        "agent_response_cache",
        sa.Column("cache_key", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("query_text", sa.Text(), nullable=False),
        sa.Column("response", postgresql.JSONB(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_agent_response_cache_user_id", "agent_response_cache", ["user_id"])
    op.create_index("ix_agent_response_cache_expires_at", "agent_response_cache", ["expires_at"])


def downgrade() -> None:
    op.drop_table("agent_response_cache")
    op.execute("DROP TRIGGER IF EXISTS assign_display_id ON transactions")
    op.execute("DROP FUNCTION IF EXISTS set_next_display_id()")
    op.drop_table("transactions")
    op.drop_table("webhook_updates")
