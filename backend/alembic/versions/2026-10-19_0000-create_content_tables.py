"""create_users_feeds_contents_media_submissions

Revision ID: 4b1f0c2a9d3e
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4b1f0c2a9d3e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='Auto-incrementing primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
    ]


def upgrade() -> None:
    """
    Create the content schema.

    Tables:
    1. users - accounts
    2. feeds - distribution channels, moderated by their owner
    3. contents - every content item; type_name discriminates Graphic, Ticker, ...
    4. media - binary attachments of content
    5. submissions - content placed on a feed, with moderation state
    """

    # ================================
    # users
    # ================================
    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('email', sa.String(length=255), nullable=False, comment="User's email address (unique login identifier)"),
        sa.Column('name', sa.String(length=100), nullable=False, comment="User's display name"),
        sa.Column('hashed_password', sa.String(length=255), nullable=True, comment="Bcrypt hash of the user's password"),
        sa.Column('is_active', sa.Boolean(), nullable=False, comment='Disabled accounts can neither log in nor act'),
        sa.Column('is_admin', sa.Boolean(), nullable=False, comment='Administrators pass every capability check'),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True, comment='Last successful login (UTC)'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    # ================================
    # feeds
    # ================================
    op.create_table(
        'feeds',
        *_timestamps(),
        sa.Column('name', sa.String(length=100), nullable=False, comment='Feed name shown to submitters'),
        sa.Column('description', sa.String(length=500), nullable=True, comment='What belongs on this feed'),
        sa.Column('owner_id', sa.Integer(), nullable=True, comment='Moderator of this feed'),
        sa.Column('is_submittable', sa.Boolean(), nullable=False, comment='Whether non-moderators may submit content'),
        sa.Column('is_active', sa.Boolean(), nullable=False, comment='Inactive feeds take no new submissions'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name=op.f('fk_feeds_owner_id_users'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_feeds')),
        sa.UniqueConstraint('name', name=op.f('uq_feeds_name')),
    )
    op.create_index(op.f('ix_feeds_owner_id'), 'feeds', ['owner_id'], unique=False)

    # ================================
    # contents
    # ================================
    op.create_table(
        'contents',
        *_timestamps(),
        sa.Column('type_name', sa.String(length=50), nullable=False, comment='Registered content type name (Graphic, Ticker, ...)'),
        sa.Column('name', sa.String(length=100), nullable=False, comment='Content name shown to moderators'),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='Owner of this content'),
        sa.Column('duration', sa.Integer(), nullable=False, comment='Seconds on screen per rotation'),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True, comment='Do not show before (UTC)'),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True, comment='Do not show after (UTC)'),
        sa.Column('data', sa.Text(), nullable=True, comment='Main type-specific payload (text, HTML, ...)'),
        sa.Column('config', sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql'), nullable=True, comment='Type-specific settings (JSON)'),
        sa.CheckConstraint('duration >= 0', name=op.f('ck_contents_duration_non_negative')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_contents_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_contents')),
    )
    op.create_index(op.f('ix_contents_type_name'), 'contents', ['type_name'], unique=False)
    op.create_index(op.f('ix_contents_user_id'), 'contents', ['user_id'], unique=False)

    # ================================
    # media
    # ================================
    op.create_table(
        'media',
        *_timestamps(),
        sa.Column('content_id', sa.Integer(), nullable=False, comment='Foreign key to contents table'),
        sa.Column('key', sa.String(length=50), nullable=False, comment='Role of this file for its content (original, thumbnail, ...)'),
        sa.Column('file_name', sa.String(length=255), nullable=True),
        sa.Column('file_type', sa.String(length=100), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('file_data', sa.LargeBinary(), nullable=True),
        sa.ForeignKeyConstraint(['content_id'], ['contents.id'], name=op.f('fk_media_content_id_contents'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_media')),
    )
    op.create_index(op.f('ix_media_content_id'), 'media', ['content_id'], unique=False)

    # ================================
    # submissions
    # ================================
    op.create_table(
        'submissions',
        *_timestamps(),
        sa.Column('content_id', sa.Integer(), nullable=False, comment='Foreign key to contents table'),
        sa.Column('feed_id', sa.Integer(), nullable=False, comment='Foreign key to feeds table'),
        sa.Column('duration', sa.Integer(), nullable=False, comment='Seconds on screen in this feed'),
        sa.Column('moderation_flag', sa.Boolean(), nullable=True, comment='NULL pending, true approved, false rejected'),
        sa.Column('moderator_id', sa.Integer(), nullable=True, comment='Who approved or rejected this submission'),
        sa.ForeignKeyConstraint(['content_id'], ['contents.id'], name=op.f('fk_submissions_content_id_contents'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['feed_id'], ['feeds.id'], name=op.f('fk_submissions_feed_id_feeds'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['moderator_id'], ['users.id'], name=op.f('fk_submissions_moderator_id_users'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_submissions')),
        sa.UniqueConstraint('content_id', 'feed_id', name='uq_submission_content_feed'),
    )
    op.create_index(op.f('ix_submissions_content_id'), 'submissions', ['content_id'], unique=False)
    op.create_index(op.f('ix_submissions_feed_id'), 'submissions', ['feed_id'], unique=False)


def downgrade() -> None:
    """Drop the content schema, dependents first."""
    op.drop_index(op.f('ix_submissions_feed_id'), table_name='submissions')
    op.drop_index(op.f('ix_submissions_content_id'), table_name='submissions')
    op.drop_table('submissions')
    op.drop_index(op.f('ix_media_content_id'), table_name='media')
    op.drop_table('media')
    op.drop_index(op.f('ix_contents_user_id'), table_name='contents')
    op.drop_index(op.f('ix_contents_type_name'), table_name='contents')
    op.drop_table('contents')
    op.drop_index(op.f('ix_feeds_owner_id'), table_name='feeds')
    op.drop_table('feeds')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
