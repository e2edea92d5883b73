"""add admission_groups, quota_records, score_records

Revision ID: 3c7d1e2a4b90
Revises:
Create Date: 2025-06-20 21:10:00
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3c7d1e2a4b90'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'admission_groups',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('college_code', sa.String(), nullable=False),
        sa.Column('college_name', sa.String(), nullable=True),
        sa.Column('group_code', sa.String(), nullable=False),
        sa.Column('group_code_raw', sa.String(), nullable=True),
        sa.Column('group_name', sa.String(), nullable=True),
        sa.Column('province', sa.String(), nullable=False),
        sa.Column('subject_track', sa.String(), nullable=False),
        sa.UniqueConstraint('college_code', 'group_code', 'province', 'subject_track',
                            name='uq_admission_groups_key'),
    )
    op.create_index('ix_admission_groups_college_code', 'admission_groups', ['college_code'])
    op.create_index('ix_admission_groups_province_track', 'admission_groups', ['province', 'subject_track'])

    op.create_table(
        'quota_records',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('province', sa.String(), nullable=True),
        sa.Column('subject_track', sa.String(), nullable=True),
        sa.Column('college_code', sa.String(), nullable=True),
        sa.Column('college_name', sa.String(), nullable=True),
        sa.Column('group_code_raw', sa.String(), nullable=True),
        sa.Column('group_name', sa.String(), nullable=True),
        sa.Column('major_code', sa.String(), nullable=True),
        sa.Column('major_name', sa.String(), nullable=True),
        sa.Column('plan_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tuition', sa.Integer(), nullable=True),
        sa.Column('group_id', sa.String(), sa.ForeignKey('admission_groups.id'), nullable=True),
    )
    op.create_index('ix_quota_records_year', 'quota_records', ['year'])
    op.create_index('ix_quota_records_group_id', 'quota_records', ['group_id'])

    op.create_table(
        'score_records',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('province', sa.String(), nullable=True),
        sa.Column('subject_track', sa.String(), nullable=True),
        sa.Column('college_code', sa.String(), nullable=True),
        sa.Column('college_name', sa.String(), nullable=True),
        sa.Column('major_name', sa.String(), nullable=True),
        sa.Column('group_code_raw', sa.String(), nullable=True),
        sa.Column('alt_group_label', sa.String(), nullable=True),
        sa.Column('min_score', sa.Integer(), nullable=True),
        sa.Column('min_rank', sa.Integer(), nullable=True),
        sa.Column('avg_score', sa.Integer(), nullable=True),
        sa.Column('max_score', sa.Integer(), nullable=True),
        sa.Column('max_rank', sa.Integer(), nullable=True),
        sa.Column('plan_count', sa.Integer(), nullable=True),
        sa.Column('group_id', sa.String(), sa.ForeignKey('admission_groups.id'), nullable=True),
        sa.Column('match_strategy', sa.String(), nullable=True),
        sa.Column('unresolved_reason', sa.String(), nullable=True),
    )
    op.create_index('ix_score_records_year', 'score_records', ['year'])
    op.create_index('ix_score_records_college_code', 'score_records', ['college_code'])
    op.create_index('ix_score_records_group_id', 'score_records', ['group_id'])


def downgrade() -> None:
    op.drop_index('ix_score_records_group_id', table_name='score_records')
    op.drop_index('ix_score_records_college_code', table_name='score_records')
    op.drop_index('ix_score_records_year', table_name='score_records')
    op.drop_table('score_records')

    op.drop_index('ix_quota_records_group_id', table_name='quota_records')
    op.drop_index('ix_quota_records_year', table_name='quota_records')
    op.drop_table('quota_records')

    op.drop_index('ix_admission_groups_province_track', table_name='admission_groups')
    op.drop_index('ix_admission_groups_college_code', table_name='admission_groups')
    op.drop_table('admission_groups')
