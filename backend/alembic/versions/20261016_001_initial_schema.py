"""Initial schema with all tables

Revision ID: 001
Revises:
Create Date: 2026-10-16

Creates all longform editor database tables:
- transcripts: Word-timed transcripts of source media
- edit_recipes: Versioned edit recipes per deliverable
- renders: Render attempts and their lifecycle
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create transcripts table
    op.create_table(
        'transcripts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('deliverable_id', sa.String(36), nullable=True),
        sa.Column('asset_url', sa.String(2048), nullable=False),
        # Content
        sa.Column('words', sa.JSON(), nullable=False),
        sa.Column('full_text', sa.Text(), nullable=False),
        sa.Column('duration_seconds', sa.Float(), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=False),
        # Timestamps
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_transcripts_deliverable_id', 'transcripts', ['deliverable_id'])
    op.create_index('ix_transcripts_created_at', 'transcripts', ['created_at'])

    # Create edit_recipes table
    op.create_table(
        'edit_recipes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('deliverable_id', sa.String(36), nullable=True),
        sa.Column('transcript_id', sa.String(36), sa.ForeignKey('transcripts.id'), nullable=True),
        sa.Column('instructions', sa.Text(), nullable=False),
        # Versioning
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('operations', sa.JSON(), nullable=False),
        sa.Column('compiler_revision', sa.String(50), nullable=False),
        sa.Column('warnings', sa.JSON(), nullable=False),
        # Timestamps
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('deliverable_id', 'version', name='uq_edit_recipes_deliverable_version'),
    )
    op.create_index('ix_edit_recipes_deliverable_id', 'edit_recipes', ['deliverable_id'])
    op.create_index('ix_edit_recipes_transcript_id', 'edit_recipes', ['transcript_id'])
    op.create_index('ix_edit_recipes_created_at', 'edit_recipes', ['created_at'])

    # Create renders table
    op.create_table(
        'renders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('deliverable_id', sa.String(36), nullable=True),
        sa.Column('recipe_id', sa.String(36), sa.ForeignKey('edit_recipes.id'), nullable=True),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, default='queued'),
        # Collaborator tracking
        sa.Column('provider', sa.String(50), nullable=False),
        sa.Column('provider_job_id', sa.String(100), nullable=True),
        sa.Column('poll_count', sa.Integer(), nullable=False, default=0),
        # Output
        sa.Column('asset_id', sa.String(2048), nullable=True),
        sa.Column('metrics', sa.JSON(), nullable=False),
        # Timestamps
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_renders_deliverable_id', 'renders', ['deliverable_id'])
    op.create_index('ix_renders_recipe_id', 'renders', ['recipe_id'])
    op.create_index('ix_renders_kind', 'renders', ['kind'])
    op.create_index('ix_renders_status', 'renders', ['status'])
    op.create_index('ix_renders_provider_job_id', 'renders', ['provider_job_id'])
    op.create_index('ix_renders_created_at', 'renders', ['created_at'])


def downgrade() -> None:
    # Drop tables in reverse order of creation (respecting foreign keys)
    op.drop_table('renders')
    op.drop_table('edit_recipes')
    op.drop_table('transcripts')
