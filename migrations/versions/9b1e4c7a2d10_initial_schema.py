"""initial schema

Revision ID: 9b1e4c7a2d10
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '9b1e4c7a2d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SAEnum stores member names
ENUMS = {
    'userrole': ('ADMIN', 'EXPERT', 'STANDARD'),
    'gender': ('MALE', 'FEMALE', 'OTHER', 'NOT_INFORMED'),
    'casetype': ('IDENTIFICATION', 'AGE', 'TRAUMA', 'OTHER'),
    'casestatus': ('PENDING', 'IN_PROGRESS', 'CLOSED', 'ARCHIVED'),
    'evidencetype': ('IMAGE', 'DOCUMENT', 'STATEMENT', 'OTHER'),
    'evidencecategory': ('RADIOGRAPH', 'PHOTOGRAPH', 'PRIOR_REPORT', 'TESTIMONY', 'OTHER'),
    'reporttemplate': ('IDENTIFICATION', 'AGE', 'TRAUMA', 'GENERAL'),
    'reportstatus': ('DRAFT', 'REVIEW', 'FINALIZED'),
    'dentalrecordstatus': ('IDENTIFIED', 'UNIDENTIFIED', 'UNDER_ANALYSIS'),
    'counterparttype': ('CASE', 'DENTAL_RECORD'),
    'auditableentity': ('CASE', 'EVIDENCE', 'REPORT', 'DENTAL_RECORD'),
}


def enum(name):
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        *timestamps(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=True),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('role', enum('userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'cases',
        sa.Column('id', sa.Uuid(), primary_key=True),
        *timestamps(),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('case_type', enum('casetype'), nullable=False),
        sa.Column('status', enum('casestatus'), nullable=False),
        sa.Column('patient_name', sa.String(), nullable=True),
        sa.Column('patient_birth_date', sa.Date(), nullable=True),
        sa.Column('patient_gender', enum('gender'), nullable=False),
        sa.Column('patient_identification', sa.String(), nullable=True),
        sa.Column('assigned_to_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_by_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
    )
    op.create_index('ix_cases_status', 'cases', ['status'])
    op.create_index('ix_cases_assigned_to_id', 'cases', ['assigned_to_id'])

    op.create_table(
        'evidences',
        sa.Column('id', sa.Uuid(), primary_key=True),
        *timestamps(),
        sa.Column('case_id', sa.Uuid(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('evidence_type', enum('evidencetype'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', enum('evidencecategory'), nullable=False),
        sa.Column('files', postgresql.JSONB(), nullable=False),
        sa.Column('collected_on', sa.Date(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('equipment', sa.String(), nullable=True),
        sa.Column('additional_info', postgresql.JSONB(), nullable=True),
        sa.Column('created_by_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
    )
    op.create_index('ix_evidences_case_id', 'evidences', ['case_id'])

    op.create_table(
        'reports',
        sa.Column('id', sa.Uuid(), primary_key=True),
        *timestamps(),
        sa.Column('case_id', sa.Uuid(), sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('template', enum('reporttemplate'), nullable=False),
        sa.Column('content', postgresql.JSONB(), nullable=False),
        sa.Column('attachments', postgresql.JSONB(), nullable=False),
        sa.Column('status', enum('reportstatus'), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_by_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('reviewed_by_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('review_date', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_reports_case_id', 'reports', ['case_id'])

    op.create_table(
        'report_versions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('report_id', sa.Uuid(), sa.ForeignKey('reports.id', ondelete='CASCADE'), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('content', postgresql.JSONB(), nullable=False),
        sa.Column('modified_by_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.UniqueConstraint('report_id', 'version', name='uq_report_versions_report_version'),
    )
    op.create_index('ix_report_versions_report_id', 'report_versions', ['report_id'])

    op.create_table(
        'dental_records',
        sa.Column('id', sa.Uuid(), primary_key=True),
        *timestamps(),
        sa.Column('patient_name', sa.String(), nullable=True),
        sa.Column('patient_birth_date', sa.Date(), nullable=True),
        sa.Column('patient_gender', enum('gender'), nullable=False),
        sa.Column('patient_identification', sa.String(), nullable=True, unique=True),
        sa.Column('status', enum('dentalrecordstatus'), nullable=False),
        sa.Column('characteristics', postgresql.JSONB(), nullable=False),
        sa.Column('radiograph_ids', postgresql.JSONB(), nullable=False),
        sa.Column('photograph_ids', postgresql.JSONB(), nullable=False),
        sa.Column('created_by_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
    )
    op.create_index('ix_dental_records_patient_name', 'dental_records', ['patient_name'])
    op.create_index('ix_dental_records_status', 'dental_records', ['status'])

    op.create_table(
        'match_records',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('dental_record_id', sa.Uuid(), sa.ForeignKey('dental_records.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('counterpart_type', enum('counterparttype'), nullable=False),
        sa.Column('counterpart_id', sa.Uuid(), nullable=False),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('details', postgresql.JSONB(), nullable=False),
        sa.Column('matched_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('dental_record_id', 'sequence', name='uq_match_record_sequence'),
    )
    op.create_index('ix_match_records_dental_record_id', 'match_records', ['dental_record_id'])

    op.create_table(
        'history_entries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('entity_type', enum('auditableentity'), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('actor_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('actor_name', sa.String(), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('entity_type', 'entity_id', 'sequence', name='uq_history_entity_sequence'),
    )
    op.create_index('ix_history_entries_entity_id', 'history_entries', ['entity_id'])


def downgrade() -> None:
    for table in (
        'history_entries', 'match_records', 'dental_records', 'report_versions',
        'reports', 'evidences', 'cases', 'users',
    ):
        op.drop_table(table)
    for name in ENUMS:
        op.execute(f"DROP TYPE IF EXISTS {name}")
