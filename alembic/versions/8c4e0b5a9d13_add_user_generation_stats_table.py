"""add user generation stats table

Revision ID: 8c4e0b5a9d13
Revises: 3f9a1c2d7e41
Create Date: 2026-10-19 10:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '8c4e0b5a9d13'
down_revision: Union[str, None] = '3f9a1c2d7e41'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Free generation counter per signed-in user
    op.create_table(
        'user_generation_stats',
        sa.Column('user_id', sa.String(36), primary_key=True),
        sa.Column('generation_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('has_purchased', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('user_generation_stats')
