"""create ai generations table

Revision ID: 3f9a1c2d7e41
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7e41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Append-only ledger of generated designs
    op.create_table(
        'ai_generations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=True),
        sa.Column('session_id', sa.String(36), nullable=False),
        sa.Column('prompt', sa.Text(), nullable=False),
        sa.Column('style', sa.String(50), nullable=False),
        sa.Column('color_scheme', sa.String(50), nullable=False),
        sa.Column('clothing_type', sa.String(20), nullable=True),
        sa.Column('image_position', sa.String(10), nullable=True),
        sa.Column('included_text', sa.Text(), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    # History is always read per user
    op.create_index('ix_ai_generations_user_id', 'ai_generations', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_ai_generations_user_id', table_name='ai_generations')
    op.drop_table('ai_generations')
