"""Create wizard_sessions and product_bundles tables.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:01.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261019_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if not inspector.has_table("wizard_sessions"):
        op.create_table(
            "wizard_sessions",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("shop_id", sa.String(), nullable=False),
            sa.Column("state", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_wizard_sessions_shop_id", "wizard_sessions", ["shop_id"])
        op.create_index("ix_wizard_sessions_updated_at", "wizard_sessions", ["updated_at"])

    if not inspector.has_table("product_bundles"):
        op.create_table(
            "product_bundles",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("shop_id", sa.String(), nullable=False),
            sa.Column("title", sa.Text(), nullable=False),
            sa.Column("definition", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
            sa.Column(
                "create_section_block",
                sa.Boolean(),
                nullable=False,
                server_default=sa.text("false"),
            ),
            sa.Column("discount_type", sa.Text(), nullable=False),
            sa.Column("discount_value", sa.Text(), nullable=False),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("operation_id", sa.String(), nullable=True),
            sa.Column("operation_status", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_product_bundles_shop_id", "product_bundles", ["shop_id"])
        op.create_index("ix_product_bundles_created_at", "product_bundles", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_product_bundles_created_at", table_name="product_bundles")
    op.drop_index("ix_product_bundles_shop_id", table_name="product_bundles")
    op.drop_table("product_bundles")
    op.drop_index("ix_wizard_sessions_updated_at", table_name="wizard_sessions")
    op.drop_index("ix_wizard_sessions_shop_id", table_name="wizard_sessions")
    op.drop_table("wizard_sessions")
