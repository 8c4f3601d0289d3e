"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

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
    op.create_table(
        'app_user',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('username', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('role', sa.Text(), server_default='user', nullable=False),
        sa.Column('is_blocked', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.Column('timer_sound', sa.Text(), server_default='Gentle Bell', nullable=False),
        sa.Column('alarm_sound', sa.Text(), server_default='Gentle Bell', nullable=False),
        sa.Column('timer_enabled', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('alarm_enabled', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('timezone', sa.Text(), server_default='America/New_York', nullable=False),
        sa.Column('language', sa.Text(), server_default='en', nullable=False),
        sa.Column('email_notifications', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('marketing_emails', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('achievements_enabled', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('data_collection_consent', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('voice_enabled', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('auto_archive_enabled', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('auto_archive_hours', sa.Integer(), server_default='24', nullable=True),
        sa.Column('delete_archived_after_days', sa.Integer(), nullable=True),
    )
    op.create_index('ix_app_user_username', 'app_user', ['username'], unique=True)
    op.create_index('ix_app_user_email', 'app_user', ['email'], unique=True)

    op.create_table(
        'task',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('category', sa.Text(), server_default='Other', nullable=False),
        sa.Column('priority', sa.Text(), server_default='Medium', nullable=False),
        sa.Column('completed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('timer', sa.Integer(), nullable=True),
        sa.Column('youtube_url', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('display_order', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_via', sa.Text(), server_default='manual', nullable=False),
        sa.Column('checklist_items', sa.JSON(), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=True),
        sa.Column('scheduled_end', sa.DateTime(), nullable=True),
        sa.Column('duration_min', sa.Integer(), nullable=True),
        sa.Column('buffer_before', sa.Integer(), server_default='5', nullable=False),
        sa.Column('buffer_after', sa.Integer(), server_default='5', nullable=False),
        sa.Column('is_fixed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('project_end_date', sa.DateTime(), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('recurring_frequency', sa.Text(), nullable=True),
        sa.Column('recurring_interval', sa.Integer(), server_default='1', nullable=False),
        sa.Column('next_due_date', sa.DateTime(), nullable=True),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('days_of_week', sa.JSON(), nullable=True),
        sa.Column('day_of_month', sa.Integer(), nullable=True),
        sa.Column('month_of_year', sa.Integer(), nullable=True),
        sa.Column('parent_task_id', sa.Uuid(), nullable=True),
        sa.Column('archived', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_task_id'], ['task.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_task_user_id', 'task', ['user_id'])
    op.create_index('ix_task_parent_task_id', 'task', ['parent_task_id'])
    op.create_index('ix_task_user_archived', 'task', ['user_id', 'archived'])

    op.create_table(
        'scheduling_settings',
        sa.Column('user_id', sa.Uuid(), primary_key=True),
        sa.Column('slug', sa.Text(), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('booking_window_days', sa.Integer(), server_default='30', nullable=False),
        sa.Column('min_notice_minutes', sa.Integer(), server_default='60', nullable=False),
        sa.Column('slot_duration', sa.Integer(), server_default='30', nullable=False),
        sa.Column('availability', sa.JSON(), nullable=False),
        sa.Column('meeting_title', sa.Text(), server_default='Meeting', nullable=False),
        sa.Column('meeting_description', sa.Text(), nullable=True),
        sa.Column('timezone', sa.Text(), server_default='America/New_York', nullable=False),
        sa.Column('notification_email', sa.Text(), nullable=True),
        sa.Column('blocked_dates', sa.JSON(), nullable=False),
        sa.Column('blocked_time_slots', sa.JSON(), nullable=False),
        sa.Column('show_branding', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('business_name', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('slug', name='uq_scheduling_settings_slug'),
    )

    op.create_table(
        'appointment',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('task_id', sa.Uuid(), nullable=True),
        sa.Column('attendee_name', sa.Text(), nullable=False),
        sa.Column('attendee_email', sa.Text(), nullable=False),
        sa.Column('attendee_notes', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('status', sa.Text(), server_default='scheduled', nullable=False),
        sa.Column('cancellation_token', sa.Text(), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['task_id'], ['task.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('cancellation_token', name='uq_appointment_cancellation_token'),
    )
    op.create_index('ix_appointment_user_id', 'appointment', ['user_id'])
    op.create_index('ix_appointment_task_id', 'appointment', ['task_id'])
    op.create_index('ix_appointment_user_start', 'appointment', ['user_id', 'start_time'])

    op.create_table(
        'schedule_share',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_user_id', sa.Uuid(), nullable=False),
        sa.Column('shared_with_user_id', sa.Uuid(), nullable=False),
        sa.Column('permission', sa.Text(), server_default='view', nullable=False),
        sa.Column('share_type', sa.Text(), server_default='full', nullable=False),
        sa.Column('selected_task_ids', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('declined_at', sa.DateTime(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['owner_user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['shared_with_user_id'], ['app_user.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_schedule_share_owner_user_id', 'schedule_share', ['owner_user_id'])
    op.create_index('ix_schedule_share_shared_with_user_id', 'schedule_share', ['shared_with_user_id'])

    op.create_table(
        'voice_command_session',
        sa.Column('user_id', sa.Uuid(), primary_key=True),
        sa.Column('is_listening', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('pending_action', sa.Text(), nullable=True),
        sa.Column('pending_payload', sa.JSON(), nullable=True),
        sa.Column('active_task_id', sa.Uuid(), nullable=True),
        sa.Column('timer_minutes', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['active_task_id'], ['task.id'], ondelete='SET NULL'),
    )

    op.create_table(
        'timer_session',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('task_id', sa.Uuid(), nullable=True),
        sa.Column('timer_type', sa.Text(), server_default='task', nullable=False),
        sa.Column('planned_duration', sa.Integer(), nullable=False),
        sa.Column('actual_duration', sa.Integer(), nullable=False),
        sa.Column('completed_early', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('early_completion_percentage', sa.Float(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['task_id'], ['task.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_timer_session_user_id', 'timer_session', ['user_id'])

    op.create_table(
        'achievement',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('key', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('icon', sa.Text(), nullable=False),
        sa.Column('target', sa.Integer(), nullable=False),
        sa.Column('category', sa.Text(), nullable=True),
        sa.Column('points', sa.Integer(), server_default='10', nullable=False),
        sa.Column('rarity', sa.Text(), server_default='common', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.UniqueConstraint('key', name='uq_achievement_key'),
    )

    op.create_table(
        'user_achievement',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('achievement_id', sa.Uuid(), nullable=False),
        sa.Column('progress', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_completed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['achievement_id'], ['achievement.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'achievement_id', name='uq_user_achievement'),
    )
    op.create_index('ix_user_achievement_user_id', 'user_achievement', ['user_id'])

    op.create_table(
        'user_stats',
        sa.Column('user_id', sa.Uuid(), primary_key=True),
        sa.Column('total_tasks', sa.Integer(), server_default='0', nullable=False),
        sa.Column('completed_tasks', sa.Integer(), server_default='0', nullable=False),
        sa.Column('current_streak', sa.Integer(), server_default='0', nullable=False),
        sa.Column('longest_streak', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_completion_date', sa.Date(), nullable=True),
        sa.Column('total_points', sa.Integer(), server_default='0', nullable=False),
        sa.Column('work_tasks', sa.Integer(), server_default='0', nullable=False),
        sa.Column('personal_tasks', sa.Integer(), server_default='0', nullable=False),
        sa.Column('shopping_tasks', sa.Integer(), server_default='0', nullable=False),
        sa.Column('health_tasks', sa.Integer(), server_default='0', nullable=False),
        sa.Column('business_tasks', sa.Integer(), server_default='0', nullable=False),
        sa.Column('other_tasks', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_timer_minutes', sa.Integer(), server_default='0', nullable=False),
        sa.Column('timer_tasks_completed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('voice_tasks_created', sa.Integer(), server_default='0', nullable=False),
        sa.Column('tasks_shared', sa.Integer(), server_default='0', nullable=False),
        sa.Column('tasks_received', sa.Integer(), server_default='0', nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
    )

    op.create_table(
        'analytics_event',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('event_type', sa.Text(), nullable=False),
        sa.Column('event_data', sa.JSON(), nullable=False),
        sa.Column('session_id', sa.Text(), nullable=True),
        sa.Column('platform', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_analytics_event_user_id', 'analytics_event', ['user_id'])
    op.create_index('ix_analytics_event_created_at', 'analytics_event', ['created_at'])

    op.create_table(
        'notification',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('task_id', sa.Uuid(), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('scheduled_for', sa.DateTime(), nullable=True),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['task_id'], ['task.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_notification_user_id', 'notification', ['user_id'])

    op.create_table(
        'task_template',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.Text(), server_default='Other', nullable=False),
        sa.Column('tasks', sa.JSON(), nullable=False),
        sa.Column('is_public', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_by_user_id', sa.Uuid(), nullable=True),
        sa.Column('usage_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['app_user.id'], ondelete='CASCADE'),
    )


def downgrade() -> None:
    op.drop_table('task_template')
    op.drop_index('ix_notification_user_id', table_name='notification')
    op.drop_table('notification')
    op.drop_index('ix_analytics_event_created_at', table_name='analytics_event')
    op.drop_index('ix_analytics_event_user_id', table_name='analytics_event')
    op.drop_table('analytics_event')
    op.drop_table('user_stats')
    op.drop_index('ix_user_achievement_user_id', table_name='user_achievement')
    op.drop_table('user_achievement')
    op.drop_table('achievement')
    op.drop_index('ix_timer_session_user_id', table_name='timer_session')
    op.drop_table('timer_session')
    op.drop_table('voice_command_session')
    op.drop_index('ix_schedule_share_shared_with_user_id', table_name='schedule_share')
    op.drop_index('ix_schedule_share_owner_user_id', table_name='schedule_share')
    op.drop_table('schedule_share')
    op.drop_index('ix_appointment_user_start', table_name='appointment')
    op.drop_index('ix_appointment_task_id', table_name='appointment')
    op.drop_index('ix_appointment_user_id', table_name='appointment')
    op.drop_table('appointment')
    op.drop_table('scheduling_settings')
    op.drop_index('ix_task_user_archived', table_name='task')
    op.drop_index('ix_task_parent_task_id', table_name='task')
    op.drop_index('ix_task_user_id', table_name='task')
    op.drop_table('task')
    op.drop_index('ix_app_user_email', table_name='app_user')
    op.drop_index('ix_app_user_username', table_name='app_user')
    op.drop_table('app_user')
