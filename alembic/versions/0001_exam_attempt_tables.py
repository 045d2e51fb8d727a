"""Exam attempt tables - enrollment, access, results, attempt logs, re-exams.

Revision ID: 0001_exam_attempt_tables
Revises:
Create Date: 2026-10-19

The exam, questions and students tables are owned by the content and auth
services and may already exist; they are only created when missing.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_exam_attempt_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists."""
    conn = op.get_bind()
    return sa.inspect(conn).has_table(table_name)


def _timestamps(with_updated_at: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]
    if with_updated_at:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return columns


def _exam_student_columns() -> list[sa.Column]:
    return [
        sa.Column('exam_id', sa.BigInteger(), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
    ]


def upgrade() -> None:
    # ==========================================
    # Shared content tables
    # ==========================================
    if not table_exists('exam'):
        op.create_table(
            'exam',
            sa.Column('exam_id', sa.BigInteger(), primary_key=True, autoincrement=True),
            sa.Column('subject_id', sa.BigInteger(), nullable=True),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('start_date', sa.Date(), nullable=True),
            sa.Column('end_date', sa.Date(), nullable=True),
            sa.Column('fees', sa.DECIMAL(10, 2), nullable=True),
            sa.Column('num_of_ques', sa.Integer(), nullable=True),
            sa.Column('type', sa.String(50), nullable=True),
            sa.Column('duration', sa.Integer(), nullable=True),
            sa.Column('ques_mark', sa.Integer(), nullable=True),
            sa.Column('certificate_bg', sa.Text(), nullable=True),
            *_timestamps(),
        )
        op.create_index('ix_exam_subject_id', 'exam', ['subject_id'])

    if not table_exists('questions'):
        op.create_table(
            'questions',
            sa.Column('question_id', sa.BigInteger(), primary_key=True, autoincrement=True),
            sa.Column('exam_id', sa.BigInteger(), sa.ForeignKey('exam.exam_id', ondelete='CASCADE'), nullable=False),
            sa.Column('question', sa.Text(), nullable=False),
            sa.Column('options', sa.JSON(), nullable=False),
            sa.Column('correct', sa.Text(), nullable=True),
            sa.Column('image_url', sa.Text(), nullable=True),
            *_timestamps(),
        )
        op.create_index('ix_questions_exam_id', 'questions', ['exam_id'])

    if not table_exists('students'):
        op.create_table(
            'students',
            sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
            sa.Column('name', sa.String(100), nullable=False),
            sa.Column('email', sa.String(255), nullable=False, unique=True),
            sa.Column('institute', sa.String(200), nullable=True),
            *_timestamps(),
        )

    # ==========================================
    # Enrollment
    # ==========================================
    op.create_table(
        'enrol_exam',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        *_exam_student_columns(),
        sa.Column('payment_url', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        *_timestamps(),
        sa.UniqueConstraint('exam_id', 'user_id', name='uq_enrol_exam_user'),
    )
    op.create_index('ix_enrol_exam_exam_id', 'enrol_exam', ['exam_id'])
    op.create_index('ix_enrol_exam_user_id', 'enrol_exam', ['user_id'])

    # ==========================================
    # Attempt bookkeeping
    # ==========================================
    op.create_table(
        'exam_access',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        *_exam_student_columns(),
        sa.Column('attempted', sa.String(50), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('exam_id', 'user_id', name='uq_exam_access_user'),
    )
    op.create_index('ix_exam_access_exam_id', 'exam_access', ['exam_id'])
    op.create_index('ix_exam_access_user_id', 'exam_access', ['user_id'])

    # No unique constraint: every final submission adds a row
    op.create_table(
        'result',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        *_exam_student_columns(),
        sa.Column('correct', sa.Integer(), nullable=False),
        sa.Column('incorrect', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('percentage', sa.DECIMAL(5, 2), nullable=False),
        sa.Column('time_taken', sa.Integer(), nullable=True),
        sa.Column('attempted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_result_exam_id', 'result', ['exam_id'])
    op.create_index('ix_result_user_id', 'result', ['user_id'])
    op.create_index('ix_result_attempted_at', 'result', ['attempted_at'])

    op.create_table(
        'user_attempt',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        *_exam_student_columns(),
        sa.Column('answers', sa.JSON(), nullable=False),
        *_timestamps(with_updated_at=False),
    )
    op.create_index('ix_user_attempt_exam_id', 'user_attempt', ['exam_id'])
    op.create_index('ix_user_attempt_user_id', 'user_attempt', ['user_id'])

    # ==========================================
    # Re-exam requests
    # ==========================================
    op.create_table(
        're_attempt',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        *_exam_student_columns(),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        *_timestamps(),
    )
    op.create_index('ix_re_attempt_exam_id', 're_attempt', ['exam_id'])
    op.create_index('ix_re_attempt_user_id', 're_attempt', ['user_id'])
    op.create_index('ix_re_attempt_status', 're_attempt', ['status'])


def downgrade() -> None:
    op.drop_table('re_attempt')
    op.drop_table('user_attempt')
    op.drop_table('result')
    op.drop_table('exam_access')
    op.drop_table('enrol_exam')
