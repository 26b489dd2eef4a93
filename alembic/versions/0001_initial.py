"""Initial schema

Revision ID: 0001_initial
Revises: None
Create Date: 2026-10-18 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(120)),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('role', sa.String(50)),
        sa.Column('agent_ref', sa.String(64), index=True),
        *_timestamps(),
    )
    op.create_table(
        'rubrics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('groups', sa.JSON()),
        sa.Column('parameters', sa.JSON()),
        sa.Column('classifications', sa.JSON()),
        *_timestamps(),
    )
    op.create_table(
        'interactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('channel', sa.String(30), nullable=False, index=True),
        sa.Column('direction', sa.String(10)),
        sa.Column('agent_id', sa.String(64), index=True),
        sa.Column('agent_name', sa.String(120)),
        sa.Column('queue_id', sa.String(64)),
        sa.Column('queue_name', sa.String(120)),
        sa.Column('work_code', sa.String(64)),
        sa.Column('duration_sec', sa.Integer()),
        sa.Column('recording_path', sa.String(512)),
        sa.Column('message_count', sa.Integer()),
        sa.Column('email_count', sa.Integer()),
        sa.Column('transcript_text', sa.Text()),
        sa.Column('evaluated', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column('evaluation_id', sa.Integer()),
        *_timestamps(),
    )
    op.create_table(
        'selection_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('evaluation_form_id', sa.Integer(), sa.ForeignKey('rubrics.id')),
        sa.Column('direction', sa.String(10)),
        sa.Column('queues', sa.JSON()),
        sa.Column('agents', sa.JSON()),
        sa.Column('work_codes', sa.JSON()),
        sa.Column('channels', sa.JSON()),
        sa.Column('min_call_duration', sa.Integer()),
        sa.Column('date_from', sa.DateTime()),
        sa.Column('date_to', sa.DateTime()),
        sa.Column('scheduler_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cron_expression', sa.String(120)),
        sa.Column('max_evaluations', sa.Integer()),
        sa.Column('evaluator_id', sa.String(64)),
        sa.Column('evaluator_name', sa.String(120)),
        *_timestamps(),
    )
    op.create_table(
        'evaluations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('interaction_id', sa.Integer(), sa.ForeignKey('interactions.id'), nullable=False, unique=True),
        sa.Column('rubric_id', sa.Integer(), sa.ForeignKey('rubrics.id'), nullable=False),
        sa.Column('profile_id', sa.Integer()),
        sa.Column('agent_id', sa.String(64), index=True),
        sa.Column('channel', sa.String(30)),
        sa.Column('evaluator_id', sa.String(64)),
        sa.Column('evaluator_name', sa.String(120)),
        sa.Column('ai_parameters', sa.JSON(), nullable=False),
        sa.Column('ai_summary', sa.Text()),
        sa.Column('human_overlay', sa.JSON()),
        sa.Column('additional_comments', sa.Text()),
        sa.Column('agent_comments', sa.Text()),
        sa.Column('section_scores', sa.JSON()),
        sa.Column('total_score', sa.Float()),
        sa.Column('max_score', sa.Float()),
        sa.Column('status', sa.String(20), nullable=False, index=True),
        sa.Column('is_moderated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('moderated_by', sa.String(120)),
        sa.Column('moderated_at', sa.DateTime()),
        *_timestamps(),
    )
    op.create_table(
        'scheduler_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('profile_id', sa.Integer(), nullable=False, index=True),
        sa.Column('profile_name', sa.String(200)),
        sa.Column('trigger', sa.String(10)),
        sa.Column('start_time', sa.DateTime(), nullable=False, index=True),
        sa.Column('end_time', sa.DateTime()),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('interactions_found', sa.Integer()),
        sa.Column('interactions_processed', sa.Integer()),
        sa.Column('job_ids', sa.JSON()),
        sa.Column('error', sa.Text()),
    )


def downgrade() -> None:
    for name in ('scheduler_history', 'evaluations', 'selection_profiles',
                 'interactions', 'rubrics', 'users'):
        op.drop_table(name)
