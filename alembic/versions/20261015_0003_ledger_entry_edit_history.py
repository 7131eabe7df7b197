"""ledger entry edit history

Revision ID: 20261015_0003
Revises: 20261008_0002
Create Date: 2026-10-15 14:10:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261015_0003"
down_revision: Union[str, Sequence[str], None] = "20261008_0002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("ledger_entries", sa.Column("edit_history", sa.JSON(), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("ledger_entries") as batch_op:
        batch_op.drop_column("edit_history")
