"""Initial TaskHub schema

Revision ID: b1d4e7a2c9f3
Revises:
Create Date: 2026-09-28 10:12:41.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'b1d4e7a2c9f3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid():
    return postgresql.UUID(as_uuid=True)


def _base_columns():
    return [
        sa.Column('id', _uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    # Users
    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('avatar', sa.String(length=500), nullable=False),
        sa.Column('profile', sa.JSON(), nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False),
        sa.Column('email_verification_token', sa.String(length=64), nullable=True),
        sa.Column('email_verification_expires', sa.DateTime(), nullable=True),
        sa.Column('password_reset_token', sa.String(length=64), nullable=True),
        sa.Column('password_reset_expires', sa.DateTime(), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_email_verification_token', 'users', ['email_verification_token'])
    op.create_index('ix_users_password_reset_token', 'users', ['password_reset_token'])

    # Tasks and their owned rows
    op.create_table(
        'tasks',
        *_base_columns(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('priority', sa.String(length=10), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('estimated_time', sa.Integer(), nullable=True),
        sa.Column('actual_time', sa.Integer(), nullable=True),
        sa.Column('is_markdown', sa.Boolean(), nullable=False),
        sa.Column('created_by', _uuid(), nullable=False),
        sa.Column('parent_task_id', _uuid(), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('recurrence_rule', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_task_id'], ['tasks.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tasks_created_by', 'tasks', ['created_by'])
    op.create_index('ix_tasks_due_date', 'tasks', ['due_date'])

    op.create_table(
        'subtasks',
        *_base_columns(),
        sa.Column('task_id', _uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_subtasks_task_id', 'subtasks', ['task_id'])

    op.create_table(
        'task_attachments',
        *_base_columns(),
        sa.Column('task_id', _uuid(), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('original_name', sa.String(length=255), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('path', sa.String(length=500), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_task_attachments_task_id', 'task_attachments', ['task_id'])

    op.create_table(
        'task_assignees',
        *_base_columns(),
        sa.Column('task_id', _uuid(), nullable=False),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('task_id', 'user_id', name='uq_task_assignee')
    )
    op.create_index('ix_task_assignees_task_id', 'task_assignees', ['task_id'])
    op.create_index('ix_task_assignees_user_id', 'task_assignees', ['user_id'])

    op.create_table(
        'task_dependencies',
        *_base_columns(),
        sa.Column('task_id', _uuid(), nullable=False),
        sa.Column('depends_on_id', _uuid(), nullable=False),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['depends_on_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('task_id', 'depends_on_id', name='uq_task_dependency')
    )
    op.create_index('ix_task_dependencies_task_id', 'task_dependencies', ['task_id'])
    op.create_index('ix_task_dependencies_depends_on_id', 'task_dependencies', ['depends_on_id'])

    # Comments
    op.create_table(
        'comments',
        *_base_columns(),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('task_id', _uuid(), nullable=False),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('parent_comment_id', _uuid(), nullable=True),
        sa.Column('attachments', sa.JSON(), nullable=False),
        sa.Column('is_edited', sa.Boolean(), nullable=False),
        sa.Column('edited_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_comment_id'], ['comments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_comments_task_id', 'comments', ['task_id'])
    op.create_index('ix_comments_user_id', 'comments', ['user_id'])
    op.create_index('ix_comments_parent_comment_id', 'comments', ['parent_comment_id'])

    op.create_table(
        'comment_mentions',
        *_base_columns(),
        sa.Column('comment_id', _uuid(), nullable=False),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('comment_id', 'user_id', name='uq_comment_mention')
    )
    op.create_index('ix_comment_mentions_comment_id', 'comment_mentions', ['comment_id'])

    op.create_table(
        'comment_reactions',
        *_base_columns(),
        sa.Column('comment_id', _uuid(), nullable=False),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('reaction', sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('comment_id', 'user_id', name='uq_comment_reaction')
    )
    op.create_index('ix_comment_reactions_comment_id', 'comment_reactions', ['comment_id'])

    # Teams
    op.create_table(
        'teams',
        *_base_columns(),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('avatar', sa.String(length=500), nullable=False),
        sa.Column('owner_id', _uuid(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_teams_owner_id', 'teams', ['owner_id'])

    op.create_table(
        'team_members',
        *_base_columns(),
        sa.Column('team_id', _uuid(), nullable=False),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('invited_by', _uuid(), nullable=True),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['invited_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('team_id', 'user_id', name='uq_team_member')
    )
    op.create_index('ix_team_members_team_id', 'team_members', ['team_id'])
    op.create_index('ix_team_members_user_id', 'team_members', ['user_id'])

    op.create_table(
        'team_invitations',
        *_base_columns(),
        sa.Column('team_id', _uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('invited_by', _uuid(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['invited_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_team_invitations_team_id', 'team_invitations', ['team_id'])
    op.create_index('ix_team_invitations_email', 'team_invitations', ['email'])
    op.create_index('ix_team_invitations_token', 'team_invitations', ['token'], unique=True)

    # Shared lists
    op.create_table(
        'shared_lists',
        *_base_columns(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('owner_id', _uuid(), nullable=False),
        sa.Column('team_id', _uuid(), nullable=True),
        sa.Column('is_team_list', sa.Boolean(), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('public_access_code', sa.String(length=8), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_shared_lists_owner_id', 'shared_lists', ['owner_id'])
    op.create_index('ix_shared_lists_team_id', 'shared_lists', ['team_id'])
    op.create_index(
        'ix_shared_lists_public_access_code', 'shared_lists', ['public_access_code'], unique=True
    )

    op.create_table(
        'shared_list_members',
        *_base_columns(),
        sa.Column('list_id', _uuid(), nullable=False),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('added_at', sa.DateTime(), nullable=False),
        sa.Column('added_by', _uuid(), nullable=True),
        sa.ForeignKeyConstraint(['list_id'], ['shared_lists.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['added_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('list_id', 'user_id', name='uq_shared_list_member')
    )
    op.create_index('ix_shared_list_members_list_id', 'shared_list_members', ['list_id'])
    op.create_index('ix_shared_list_members_user_id', 'shared_list_members', ['user_id'])

    op.create_table(
        'shared_list_invitations',
        *_base_columns(),
        sa.Column('list_id', _uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('invited_by', _uuid(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.ForeignKeyConstraint(['list_id'], ['shared_lists.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['invited_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_shared_list_invitations_list_id', 'shared_list_invitations', ['list_id'])
    op.create_index('ix_shared_list_invitations_email', 'shared_list_invitations', ['email'])
    op.create_index(
        'ix_shared_list_invitations_token', 'shared_list_invitations', ['token'], unique=True
    )

    op.create_table(
        'shared_list_tasks',
        *_base_columns(),
        sa.Column('list_id', _uuid(), nullable=False),
        sa.Column('task_id', _uuid(), nullable=False),
        sa.Column('added_at', sa.DateTime(), nullable=False),
        sa.Column('added_by', _uuid(), nullable=True),
        sa.ForeignKeyConstraint(['list_id'], ['shared_lists.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['added_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('list_id', 'task_id', name='uq_shared_list_task')
    )
    op.create_index('ix_shared_list_tasks_list_id', 'shared_list_tasks', ['list_id'])
    op.create_index('ix_shared_list_tasks_task_id', 'shared_list_tasks', ['task_id'])

    # Activity and notifications
    op.create_table(
        'activities',
        *_base_columns(),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('task_id', _uuid(), nullable=True),
        sa.Column('team_id', _uuid(), nullable=True),
        sa.Column('shared_list_id', _uuid(), nullable=True),
        sa.Column('comment_id', _uuid(), nullable=True),
        sa.Column('target_user_id', _uuid(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['shared_list_id'], ['shared_lists.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['comment_id'], ['comments.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['target_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_activities_type', 'activities', ['type'])
    op.create_index('ix_activities_user_id', 'activities', ['user_id'])
    op.create_index('ix_activities_task_id', 'activities', ['task_id'])
    op.create_index('ix_activities_team_id', 'activities', ['team_id'])
    op.create_index('ix_activities_shared_list_id', 'activities', ['shared_list_id'])
    op.create_index('ix_activities_target_user_id', 'activities', ['target_user_id'])

    op.create_table(
        'notifications',
        *_base_columns(),
        sa.Column('recipient_id', _uuid(), nullable=False),
        sa.Column('activity_id', _uuid(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['recipient_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['activity_id'], ['activities.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_recipient_id', 'notifications', ['recipient_id'])
    op.create_index('ix_notifications_activity_id', 'notifications', ['activity_id'])
    op.create_index('ix_notifications_read', 'notifications', ['read'])

    op.create_table(
        'notification_preferences',
        *_base_columns(),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('preferences', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    # Analytics
    op.create_table(
        'saved_reports',
        *_base_columns(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('owner_id', _uuid(), nullable=False),
        sa.Column('team_id', _uuid(), nullable=True),
        sa.Column('is_team_report', sa.Boolean(), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('report_type', sa.String(length=30), nullable=False),
        sa.Column('filters', sa.JSON(), nullable=False),
        sa.Column('schedule', sa.JSON(), nullable=True),
        sa.Column('last_generated', sa.JSON(), nullable=True),
        sa.Column('last_generated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_saved_reports_owner_id', 'saved_reports', ['owner_id'])
    op.create_index('ix_saved_reports_team_id', 'saved_reports', ['team_id'])


def downgrade() -> None:
    op.drop_table('saved_reports')
    op.drop_table('notification_preferences')
    op.drop_table('notifications')
    op.drop_table('activities')
    op.drop_table('shared_list_tasks')
    op.drop_table('shared_list_invitations')
    op.drop_table('shared_list_members')
    op.drop_table('shared_lists')
    op.drop_table('team_invitations')
    op.drop_table('team_members')
    op.drop_table('teams')
    op.drop_table('comment_reactions')
    op.drop_table('comment_mentions')
    op.drop_table('comments')
    op.drop_table('task_dependencies')
    op.drop_table('task_assignees')
    op.drop_table('task_attachments')
    op.drop_table('subtasks')
    op.drop_table('tasks')
    op.drop_table('users')
