"""Initial migration

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create projects table
    op.create_table(
        'projects',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column('name', sa.String(256), nullable=False, unique=True),
        sa.Column('repository_url', sa.Text(), nullable=True),
        sa.Column('base_rfc5646_locale', sa.String(20), nullable=False, server_default='en'),
        sa.Column('targeted_rfc5646_locales', postgresql.JSON(), nullable=False),
        sa.Column('skip_imports', postgresql.JSON(), nullable=False),
        sa.Column('key_exclusions', postgresql.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Create blobs table
    op.create_table(
        'blobs',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=False), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('path', sa.String(1024), nullable=False),
        sa.Column('sha', sa.String(64), nullable=False),
        sa.Column('parsed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('project_id', 'path', 'sha', name='uq_blobs_project_path_sha'),
    )

    # Create revisions table
    op.create_table(
        'revisions',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=False), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('sha', sa.String(64), nullable=False),
        sa.Column('message', sa.String(256), nullable=True),
        sa.Column('author', sa.String(256), nullable=True),
        sa.Column('author_email', sa.String(256), nullable=True),
        sa.Column('requested_by_email', sa.String(256), nullable=True),
        sa.Column('committed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('loading', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('ready', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('import_errors', postgresql.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('loaded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('project_id', 'sha', name='uq_revisions_project_sha'),
    )
    op.create_index('ix_revisions_ready', 'revisions', ['ready'])

    # Create keys table
    op.create_table(
        'keys',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=False), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('fingerprint', sa.String(64), nullable=False),
        sa.Column('key', sa.Text(), nullable=False),
        sa.Column('original_key', sa.Text(), nullable=False),
        sa.Column('source_copy', sa.Text(), nullable=False),
        sa.Column('context', sa.Text(), nullable=True),
        sa.Column('importer', sa.String(32), nullable=True, index=True),
        sa.Column('source', sa.String(1024), nullable=True),
        sa.Column('other_data', postgresql.JSON(), nullable=True),
        sa.Column('ready', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('project_id', 'fingerprint', name='uq_keys_project_fingerprint'),
    )

    # Create translations table
    op.create_table(
        'translations',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column('key_id', postgresql.UUID(as_uuid=False), sa.ForeignKey('keys.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('source_rfc5646_locale', sa.String(20), nullable=False),
        sa.Column('rfc5646_locale', sa.String(20), nullable=False),
        sa.Column('source_copy', sa.Text(), nullable=True),
        sa.Column('copy', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('key_id', 'rfc5646_locale', name='uq_translations_key_locale'),
    )

    # Association tables
    op.create_table(
        'revisions_keys',
        sa.Column('revision_id', postgresql.UUID(as_uuid=False), sa.ForeignKey('revisions.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('key_id', postgresql.UUID(as_uuid=False), sa.ForeignKey('keys.id', ondelete='CASCADE'), primary_key=True, index=True),
    )
    op.create_table(
        'revisions_blobs',
        sa.Column('revision_id', postgresql.UUID(as_uuid=False), sa.ForeignKey('revisions.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('blob_id', postgresql.UUID(as_uuid=False), sa.ForeignKey('blobs.id', ondelete='CASCADE'), primary_key=True, index=True),
    )


def downgrade() -> None:
    op.drop_table('revisions_blobs')
    op.drop_table('revisions_keys')
    op.drop_table('translations')
    op.drop_table('keys')
    op.drop_index('ix_revisions_ready', table_name='revisions')
    op.drop_table('revisions')
    op.drop_table('blobs')
    op.drop_table('projects')
