"""create rulebooks and worlds tables

Revision ID: 5b7e2c91d4a0
Revises:
Create Date: 2026-10-19 10:12:44.508113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5b7e2c91d4a0'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the rulebooks and worlds tables."""
    op.create_table(
        'rulebooks',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('game_system', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False, server_default='other'),
        sa.Column('source_url', sa.String(), nullable=False),
        sa.Column('content_extracted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('extraction_state', sa.String(length=16), nullable=False, server_default='uploaded'),
        sa.Column('extraction_error', sa.Text(), nullable=True),
        sa.Column('character_options', sa.JSON(), nullable=False),
        sa.Column('game_mechanics', sa.JSON(), nullable=False),
        sa.Column('detailed_mechanics', sa.JSON(), nullable=False),
        sa.Column('npcs', sa.JSON(), nullable=False),
        sa.Column('locations', sa.JSON(), nullable=False),
        sa.Column('campaigns', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('title', name='uix_rulebook_title'),
    )
    op.create_index(op.f('ix_rulebooks_id'), 'rulebooks', ['id'], unique=False)
    op.create_index(op.f('ix_rulebooks_title'), 'rulebooks', ['title'], unique=False)
    op.create_index(op.f('ix_rulebooks_game_system'), 'rulebooks', ['game_system'], unique=False)
    op.create_index(op.f('ix_rulebooks_extraction_state'), 'rulebooks', ['extraction_state'], unique=False)

    op.create_table(
        'worlds',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('game_system', sa.String(), nullable=False),
        sa.Column('genre', sa.String(), nullable=False, server_default='fantasy'),
        sa.Column('franchise', sa.String(), nullable=False, server_default='custom'),
        sa.Column('rulebook_ids', sa.JSON(), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('requires_rulebook', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_worlds_id'), 'worlds', ['id'], unique=False)
    op.create_index(op.f('ix_worlds_name'), 'worlds', ['name'], unique=False)


def downgrade() -> None:
    """Drop the worlds and rulebooks tables."""
    op.drop_index(op.f('ix_worlds_name'), table_name='worlds')
    op.drop_index(op.f('ix_worlds_id'), table_name='worlds')
    op.drop_table('worlds')
    op.drop_index(op.f('ix_rulebooks_extraction_state'), table_name='rulebooks')
    op.drop_index(op.f('ix_rulebooks_game_system'), table_name='rulebooks')
    op.drop_index(op.f('ix_rulebooks_title'), table_name='rulebooks')
    op.drop_index(op.f('ix_rulebooks_id'), table_name='rulebooks')
    op.drop_table('rulebooks')
