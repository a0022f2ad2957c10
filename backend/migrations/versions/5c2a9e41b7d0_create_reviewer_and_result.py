"""create reviewer and result tables

Revision ID: 5c2a9e41b7d0
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e41b7d0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'reviewer' not in existing_tables:
        op.create_table(
            'reviewer',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
        )
        op.create_index('ix_reviewer_username', 'reviewer', ['username'], unique=True)

    if 'result' not in existing_tables:
        op.create_table(
            'result',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('participant_name', sa.String(length=128), nullable=False),
            sa.Column('participant_secondary_id', sa.String(length=128), nullable=True),
            sa.Column('auto_score', sa.Float(), nullable=False),
            sa.Column('verified_score', sa.Float(), nullable=True),
            sa.Column('rounds', sa.Text(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_result_created_at', 'result', ['created_at'])


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'result' in existing_tables:
        op.drop_index('ix_result_created_at', table_name='result')
        op.drop_table('result')
    if 'reviewer' in existing_tables:
        op.drop_index('ix_reviewer_username', table_name='reviewer')
        op.drop_table('reviewer')
