"""move inventory purchases from accounts to users

Stock is bought once for the whole business and consumed by every customer
account, so purchases now hang off the owning user.

Revision ID: 20261008_0002
Revises: 20261001_0001
Create Date: 2026-10-08 10:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261008_0002"
down_revision: Union[str, Sequence[str], None] = "20261001_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("inventory_purchases", sa.Column("user_id", sa.Integer(), nullable=True))
    op.execute(
        sa.text(
            """
            UPDATE inventory_purchases
            SET user_id = (
                SELECT a.user_id FROM accounts a WHERE a.id = inventory_purchases.account_id
            )
            """
        )
    )

    with op.batch_alter_table("inventory_purchases") as batch_op:
        batch_op.drop_index("ix_inventory_purchases_account_id")
        batch_op.drop_constraint("fk_inventory_purchases_account_id_accounts", type_="foreignkey")
        batch_op.drop_column("account_id")
        batch_op.alter_column("user_id", existing_type=sa.Integer(), nullable=False)
        batch_op.create_foreign_key(
            "fk_inventory_purchases_user_id_users",
            "users",
            ["user_id"],
            ["id"],
            ondelete="CASCADE",
        )
        batch_op.create_index("ix_inventory_purchases_user_id", ["user_id"], unique=False)


def downgrade() -> None:
    op.add_column("inventory_purchases", sa.Column("account_id", sa.Integer(), nullable=True))
    # Hand each purchase to the owner's oldest account.
    op.execute(
        sa.text(
            """
            UPDATE inventory_purchases
            SET account_id = (
                SELECT MIN(a.id) FROM accounts a WHERE a.user_id = inventory_purchases.user_id
            )
            """
        )
    )
    op.execute(sa.text("DELETE FROM inventory_purchases WHERE account_id IS NULL"))

    with op.batch_alter_table("inventory_purchases") as batch_op:
        batch_op.drop_index("ix_inventory_purchases_user_id")
        batch_op.drop_constraint("fk_inventory_purchases_user_id_users", type_="foreignkey")
        batch_op.drop_column("user_id")
        batch_op.alter_column("account_id", existing_type=sa.Integer(), nullable=False)
        batch_op.create_foreign_key(
            "fk_inventory_purchases_account_id_accounts",
            "accounts",
            ["account_id"],
            ["id"],
            ondelete="CASCADE",
        )
        batch_op.create_index("ix_inventory_purchases_account_id", ["account_id"], unique=False)
