"""content scheduling

Revision ID: 0001
Revises:
Create Date: 2026-02-08 02:30:00.000000

Creates users/sessions, the content tables the scheduler publishes to, the
scheduled_content table with its one-pending-per-content partial unique index,
and the schedule history log.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
PENDING_ONLY = sa.text("status = 'pending'")


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='member'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'user_sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('session_token', sa.String(128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_agent', sa.String(255), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
    )
    op.create_index('ix_user_sessions_user_id', 'user_sessions', ['user_id'])
    op.create_index('ix_user_sessions_session_token', 'user_sessions', ['session_token'], unique=True)
    op.create_index('ix_sessions_user_exp', 'user_sessions', ['user_id', 'expires_at'])

    op.create_table(
        'courses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('title', sa.String(300), nullable=False),
        sa.Column('instructor_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('published', sa.Boolean(), server_default=sa.false()),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        'lessons',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('course_id', sa.Uuid(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(300), nullable=False),
        sa.Column('is_preview', sa.Boolean(), server_default=sa.true()),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        'announcements',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('author_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(300), nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        'youtube_uploads',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('title', sa.String(300), nullable=False),
        sa.Column('status', sa.String(30), server_default='uploaded'),
        sa.Column('privacy_status', sa.String(20), server_default='private'),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        'email_programs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('status', sa.String(20), server_default='draft'),
    )

    op.create_table(
        'scheduled_content',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('content_type', sa.String(30), nullable=False),
        sa.Column('content_id', sa.Uuid(), nullable=False),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('auto_publish', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('publish_action', JSON, nullable=False, server_default='{}'),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_retries', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "content_type IN ('course', 'lesson', 'announcement', 'email', 'post', 'youtube_video')",
            name='ck_scheduled_content_type',
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'published', 'cancelled')",
            name='ck_scheduled_content_status',
        ),
    )
    op.create_index('ix_scheduled_content_created_by', 'scheduled_content', ['created_by'])
    op.create_index('ix_scheduled_content_status', 'scheduled_content', ['status'])
    op.create_index(
        'uq_scheduled_content_pending',
        'scheduled_content',
        ['content_type', 'content_id'],
        unique=True,
        postgresql_where=PENDING_ONLY,
        sqlite_where=PENDING_ONLY,
    )
    op.create_index(
        'ix_scheduled_content_due',
        'scheduled_content',
        ['scheduled_for'],
        postgresql_where=PENDING_ONLY,
        sqlite_where=PENDING_ONLY,
    )

    op.create_table(
        'content_schedule_history',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'scheduled_content_id',
            sa.Uuid(),
            sa.ForeignKey('scheduled_content.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('previous_scheduled_for', sa.DateTime(timezone=True), nullable=True),
        sa.Column('new_scheduled_for', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actor_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', JSON, nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "action IN ('scheduled', 'rescheduled', 'published', 'failed', 'cancelled')",
            name='ck_schedule_history_action',
        ),
    )
    op.create_index(
        'ix_content_schedule_history_scheduled_content_id',
        'content_schedule_history',
        ['scheduled_content_id'],
    )


def downgrade() -> None:
    op.drop_table('content_schedule_history')
    op.drop_index('ix_scheduled_content_due', table_name='scheduled_content')
    op.drop_index('uq_scheduled_content_pending', table_name='scheduled_content')
    op.drop_table('scheduled_content')
    op.drop_table('email_programs')
    op.drop_table('youtube_uploads')
    op.drop_table('announcements')
    op.drop_table('lessons')
    op.drop_table('courses')
    op.drop_table('user_sessions')
    op.drop_table('users')
