"""initial buildtrack schema

Revision ID: 4c1e7a2b9d30
Revises:
Create Date: 2026-10-18 09:12:31.204117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4c1e7a2b9d30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1. clients
    op.create_table('clients',
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('plan', sa.String(length=20), nullable=False),
        sa.Column('onboarding_percent', sa.Integer(), server_default='0', nullable=False),
        sa.Column('onboarding_completed_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('current_day_of_14', sa.Integer(), nullable=True),
        sa.Column('next_from_us', sa.Text(), nullable=True),
        sa.Column('next_from_you', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('client_id'),
        sa.UniqueConstraint('user_id', 'plan', name='uq_client_user_plan'),
    )
    op.create_index('idx_clients_email', 'clients', ['email'])
    op.create_index('idx_clients_plan_created', 'clients', ['plan', 'created_at'])

    # 2. client_phase_states
    op.create_table('client_phase_states',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('phase_id', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='NOT_STARTED', nullable=False),
        sa.Column('started_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('checklist', postgresql.JSONB(astext_type=sa.Text()),
                  server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.client_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('client_id', 'phase_id', name='uq_client_phase'),
    )
    op.create_index('idx_phase_states_client', 'client_phase_states', ['client_id'])

    # 3. quiz_submissions
    op.create_table('quiz_submissions',
        sa.Column('submission_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=50), nullable=True),
        sa.Column('brand_name', sa.String(length=255), nullable=False),
        sa.Column('logo_status', sa.String(length=100), nullable=False),
        sa.Column('brand_goals', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('online_presence', sa.String(length=255), nullable=False),
        sa.Column('audience', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('brand_style', sa.String(length=255), nullable=False),
        sa.Column('timeline', sa.String(length=255), nullable=False),
        sa.Column('preferred_kit', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('submission_id'),
    )
    op.create_index('idx_quiz_email_created', 'quiz_submissions', ['email', 'created_at'])
    op.create_index('idx_quiz_preferred_kit', 'quiz_submissions', ['preferred_kit'])

    # 4. onboarding_steps
    op.create_table('onboarding_steps',
        sa.Column('step_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('step_number', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='NOT_STARTED', nullable=False),
        sa.Column('required_fields_total', sa.Integer(), server_default='0', nullable=False),
        sa.Column('required_fields_completed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('time_estimate', sa.String(length=100), nullable=True),
        sa.Column('fields', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('started_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.client_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('step_id'),
        sa.UniqueConstraint('client_id', 'step_number', name='uq_client_onboarding_step'),
    )


def downgrade() -> None:
    op.drop_table('onboarding_steps')
    op.drop_index('idx_quiz_preferred_kit', table_name='quiz_submissions')
    op.drop_index('idx_quiz_email_created', table_name='quiz_submissions')
    op.drop_table('quiz_submissions')
    op.drop_index('idx_phase_states_client', table_name='client_phase_states')
    op.drop_table('client_phase_states')
    op.drop_index('idx_clients_plan_created', table_name='clients')
    op.drop_index('idx_clients_email', table_name='clients')
    op.drop_table('clients')
