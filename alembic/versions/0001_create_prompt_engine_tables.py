"""create prompt engine tables

Revision ID: 0001_prompt_engine
Revises:
Create Date: 2026-10-18 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_prompt_engine'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'chapters',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_chapters_id', 'chapters', ['id'])
    op.create_index('ix_chapters_order_index', 'chapters', ['order_index'], unique=True)

    op.create_table(
        'prompt_templates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False, server_default='general'),
        sa.Column('difficulty', sa.String(length=20), nullable=False, server_default='medium'),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('follow_up_questions', sa.JSON(), nullable=False),
        sa.Column('audio_url', sa.String(length=1024), nullable=True),
        sa.Column('chapter_id', sa.Integer(), sa.ForeignKey('chapters.id'), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=True),
        sa.Column('is_library', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('chapter_id', 'order_index', name='uq_prompt_template_chapter_slot'),
    )
    op.create_index('ix_prompt_templates_id', 'prompt_templates', ['id'])
    op.create_index('ix_prompt_templates_category', 'prompt_templates', ['category'])
    op.create_index('ix_prompt_templates_chapter_id', 'prompt_templates', ['chapter_id'])
    op.create_index('ix_prompt_templates_is_library', 'prompt_templates', ['is_library'])

    op.create_table(
        'user_prompts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('parent_story_id', sa.Integer(), nullable=True),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_delivered', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_user_prompts_id', 'user_prompts', ['id'])
    op.create_index('ix_user_prompts_project_id', 'user_prompts', ['project_id'])
    op.create_index('ix_user_prompts_pending', 'user_prompts', ['project_id', 'is_delivered', 'priority'])

    op.create_table(
        'project_prompt_states',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('current_chapter_id', sa.Integer(), sa.ForeignKey('chapters.id'), nullable=False),
        sa.Column('current_chapter_order', sa.Integer(), nullable=False),
        sa.Column('current_prompt_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_prompt_delivered_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_project_prompt_states_id', 'project_prompt_states', ['id'])
    op.create_index('ix_project_prompt_states_project_id', 'project_prompt_states', ['project_id'], unique=True)

    op.create_table(
        'stories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('chapter_id', sa.Integer(), sa.ForeignKey('chapters.id'), nullable=True),
        sa.Column('prompt_template_id', sa.Integer(), sa.ForeignKey('prompt_templates.id'), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='processing'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_stories_id', 'stories', ['id'])
    op.create_index('ix_stories_project_id', 'stories', ['project_id'])
    op.create_index('ix_stories_chapter_id', 'stories', ['chapter_id'])

    op.create_table(
        'prompt_deliveries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('project_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('prompt_template_id', sa.Integer(), nullable=True),
        sa.Column('user_prompt_id', sa.Integer(), nullable=True),
        sa.Column('provenance', sa.String(length=20), nullable=False),
        sa.Column('degraded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('experiment_id', sa.Integer(), nullable=True),
        sa.Column('variant_id', sa.Integer(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_prompt_deliveries_id', 'prompt_deliveries', ['id'])
    op.create_index('ix_prompt_deliveries_project_id', 'prompt_deliveries', ['project_id'])
    op.create_index('ix_prompt_deliveries_user_id', 'prompt_deliveries', ['user_id'])
    op.create_index('ix_prompt_deliveries_prompt_template_id', 'prompt_deliveries', ['prompt_template_id'])

    op.create_table(
        'experiments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('target_metric', sa.String(length=50), nullable=False, server_default='engagement'),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_experiments_id', 'experiments', ['id'])
    op.create_index('ix_experiments_category', 'experiments', ['category'])

    op.create_table(
        'experiment_variants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('experiment_id', sa.Integer(), sa.ForeignKey('experiments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('prompt_template_id', sa.Integer(), sa.ForeignKey('prompt_templates.id'), nullable=True),
        sa.Column('traffic_percentage', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('experiment_id', 'name', name='uq_experiment_variant_name'),
    )
    op.create_index('ix_experiment_variants_id', 'experiment_variants', ['id'])
    op.create_index('ix_experiment_variants_experiment_id', 'experiment_variants', ['experiment_id'])

    op.create_table(
        'experiment_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('experiment_id', sa.Integer(), sa.ForeignKey('experiments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('variant_id', sa.Integer(), sa.ForeignKey('experiment_variants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assigned_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'experiment_id', name='uq_experiment_assignment_user'),
    )
    op.create_index('ix_experiment_assignments_id', 'experiment_assignments', ['id'])
    op.create_index('ix_experiment_assignments_user_id', 'experiment_assignments', ['user_id'])


def downgrade() -> None:
    op.drop_table('experiment_assignments')
    op.drop_table('experiment_variants')
    op.drop_table('experiments')
    op.drop_table('prompt_deliveries')
    op.drop_table('stories')
    op.drop_table('project_prompt_states')
    op.drop_table('user_prompts')
    op.drop_table('prompt_templates')
    op.drop_table('chapters')
