"""add_publisher_offerings

Revision ID: 8c41f0a2b6d7
Revises: 5e2b7c1d9a30
Create Date: 2026-10-20

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "8c41f0a2b6d7"
down_revision: Union[str, None] = "5e2b7c1d9a30"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "publisher_offerings",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("publisher_id", sa.UUID(), sa.ForeignKey("publishers.id"), nullable=False),
        sa.Column("domain", sa.Text(), nullable=False),
        sa.Column("base_price", sa.BigInteger(), nullable=True),
        sa.Column("priority_rank", sa.Integer(), nullable=False, server_default=sa.text("100")),
        sa.Column("verification_status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_publisher_offerings_domain", "publisher_offerings", ["domain"])

    op.add_column("order_line_items", sa.Column("assigned_by", sa.UUID(), nullable=True))
    op.add_column(
        "order_line_items",
        sa.Column("publisher_offering_id", sa.UUID(), sa.ForeignKey("publisher_offerings.id"), nullable=True),
    )


def downgrade() -> None:
    op.drop_column("order_line_items", "publisher_offering_id")
    op.drop_column("order_line_items", "assigned_by")
    op.drop_index("ix_publisher_offerings_domain", table_name="publisher_offerings")
    op.drop_table("publisher_offerings")
