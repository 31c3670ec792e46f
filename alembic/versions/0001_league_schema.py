"""league schema

Revision ID: 0001_league_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

Reference tables, observations, computed scores and scoring runs.
Databases created through create_tables() should be stamped with:

    alembic stamp head
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001_league_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'regions',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(32), nullable=True),
        sa.Column('region_type', sa.String(10), nullable=False),
        sa.Column('population', sa.BigInteger(), nullable=True),
        sa.Column('area_sq_km', sa.Float(), nullable=True),
        sa.Column('zone', sa.String(64), nullable=True),
    )
    op.create_table(
        'categories',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(64), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('weight', sa.Float(), nullable=False, server_default='1.0'),
    )
    op.create_table(
        'metrics',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('category_id', sa.String(64), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('unit', sa.String(64), nullable=True),
        sa.Column('source', sa.String(255), nullable=True),
        sa.Column('polarity', sa.String(10), nullable=False),
        sa.Column('weight', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('source_url', sa.String(500), nullable=True),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_metrics_category_id', 'metrics', ['category_id'])

    op.create_table(
        'observations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('metric_id', sa.String(128), sa.ForeignKey('metrics.id'), nullable=False),
        sa.Column('region_id', sa.String(64), sa.ForeignKey('regions.id'), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('period_label', sa.String(32), nullable=True),
        sa.Column('value', sa.Float(), nullable=False),
        sa.Column('gender', sa.String(32), nullable=True),
        sa.Column('sector', sa.String(32), nullable=True),
        sa.Column('age_group', sa.String(32), nullable=True),
        sa.Column('social_group', sa.String(32), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='final'),
        sa.Column('source_ref', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            'metric_id', 'region_id', 'year', 'period_label',
            'gender', 'sector', 'age_group', 'social_group',
            name='uq_observation_slice',
        ),
    )
    op.create_index('idx_obs_metric_year', 'observations', ['metric_id', 'year'])
    op.create_index('idx_obs_region_year', 'observations', ['region_id', 'year'])

    op.create_table(
        'metric_scores',
        sa.Column('metric_id', sa.String(128), sa.ForeignKey('metrics.id'), primary_key=True),
        sa.Column('region_id', sa.String(64), sa.ForeignKey('regions.id'), primary_key=True),
        sa.Column('year', sa.Integer(), primary_key=True),
        sa.Column('raw_value', sa.Float(), nullable=False),
        sa.Column('norm_score', sa.Float(), nullable=False),
        sa.Column('rank', sa.Integer(), nullable=False),
    )
    op.create_table(
        'category_scores',
        sa.Column('category_id', sa.String(64), sa.ForeignKey('categories.id'), primary_key=True),
        sa.Column('region_id', sa.String(64), sa.ForeignKey('regions.id'), primary_key=True),
        sa.Column('year', sa.Integer(), primary_key=True),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('rank', sa.Integer(), nullable=False),
        sa.Column('metrics_count', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_table(
        'overall_scores',
        sa.Column('region_id', sa.String(64), sa.ForeignKey('regions.id'), primary_key=True),
        sa.Column('year', sa.Integer(), primary_key=True),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('rank', sa.Integer(), nullable=False),
        sa.Column('tier', sa.String(20), nullable=False),
    )

    op.create_table(
        'scoring_runs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('metrics_scored', sa.Integer(), nullable=True),
        sa.Column('metrics_skipped', sa.Integer(), nullable=True),
        sa.Column('metric_scores_count', sa.Integer(), nullable=True),
        sa.Column('category_scores_count', sa.Integer(), nullable=True),
        sa.Column('overall_scores_count', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
    )
    op.create_index('ix_scoring_runs_status', 'scoring_runs', ['status'])


def downgrade() -> None:
    op.drop_index('ix_scoring_runs_status', table_name='scoring_runs')
    op.drop_table('scoring_runs')
    op.drop_table('overall_scores')
    op.drop_table('category_scores')
    op.drop_table('metric_scores')
    op.drop_index('idx_obs_region_year', table_name='observations')
    op.drop_index('idx_obs_metric_year', table_name='observations')
    op.drop_table('observations')
    op.drop_index('ix_metrics_category_id', table_name='metrics')
    op.drop_table('metrics')
    op.drop_table('categories')
    op.drop_table('regions')
