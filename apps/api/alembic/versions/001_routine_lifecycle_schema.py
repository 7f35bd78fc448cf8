"""routine lifecycle schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        'routine_document',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('owner_id', 'version', name='uq_routine_document_owner_version'),
        sa.CheckConstraint('version >= 1', name='ck_routine_document_version_positive'),
        sa.CheckConstraint("status IN ('draft', 'active', 'past')", name='ck_routine_document_status'),
    )
    op.create_index('ix_routine_document_owner_id', 'routine_document', ['owner_id'])
    # At most one live active and one live draft per owner
    op.create_index(
        'ux_routine_document_owner_active',
        'routine_document',
        ['owner_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active' AND deleted_at IS NULL"),
        sqlite_where=sa.text("status = 'active' AND deleted_at IS NULL"),
    )
    op.create_index(
        'ux_routine_document_owner_draft',
        'routine_document',
        ['owner_id'],
        unique=True,
        postgresql_where=sa.text("status = 'draft' AND deleted_at IS NULL"),
        sqlite_where=sa.text("status = 'draft' AND deleted_at IS NULL"),
    )

    op.create_table(
        'routine_definition',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('routine_name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('schedule_type', sa.Text(), nullable=False),
        sa.Column('schedule_config', JSONType, nullable=False),
        sa.Column('time_of_day', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("schedule_type IN ('weekly', 'monthly', 'yearly')", name='ck_routine_definition_schedule_type'),
        sa.CheckConstraint("status IN ('pending', 'active', 'archived')", name='ck_routine_definition_status'),
    )
    op.create_index('ix_routine_definition_owner_id', 'routine_definition', ['owner_id'])
    op.create_index('ix_routine_definition_owner_time_of_day', 'routine_definition', ['owner_id', 'time_of_day'])

    op.create_table(
        'routine_item',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('routine_id', sa.Uuid(), nullable=False),
        sa.Column('item_name', sa.Text(), nullable=False),
        sa.Column('item_type', sa.Text(), nullable=False),
        sa.Column('habit_classification', sa.Text(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('sets', sa.Integer(), nullable=True),
        sa.Column('reps', sa.Integer(), nullable=True),
        sa.Column('weight_kg', sa.Float(), nullable=True),
        sa.Column('distance_km', sa.Float(), nullable=True),
        sa.Column('calories', sa.Integer(), nullable=True),
        sa.Column('serving_size', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('item_order', sa.Integer(), nullable=False),
        sa.Column('is_optional', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['routine_id'], ['routine_definition.id'], ondelete='CASCADE'),
        sa.CheckConstraint("habit_classification IN ('good', 'bad', 'neutral')", name='ck_routine_item_classification'),
    )
    op.create_index('ix_routine_item_routine_id', 'routine_item', ['routine_id'])

    op.create_table(
        'routine_completion',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('routine_item_id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('completion_date', sa.Date(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['routine_item_id'], ['routine_item.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_routine_completion_owner_date', 'routine_completion', ['owner_id', 'completion_date'])
    op.create_index('ix_routine_completion_item_id', 'routine_completion', ['routine_item_id'])

    op.create_table(
        'guest_onboarding_session',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('session_id', sa.Text(), nullable=False, unique=True),
        sa.Column('routines', JSONType, nullable=False),
        sa.Column('sleep_routine', JSONType, nullable=True),
        sa.Column('migrated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('migrated_to_owner_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('guest_onboarding_session')
    op.drop_index('ix_routine_completion_item_id', table_name='routine_completion')
    op.drop_index('ix_routine_completion_owner_date', table_name='routine_completion')
    op.drop_table('routine_completion')
    op.drop_index('ix_routine_item_routine_id', table_name='routine_item')
    op.drop_table('routine_item')
    op.drop_index('ix_routine_definition_owner_time_of_day', table_name='routine_definition')
    op.drop_index('ix_routine_definition_owner_id', table_name='routine_definition')
    op.drop_table('routine_definition')
    op.drop_index('ux_routine_document_owner_draft', table_name='routine_document')
    op.drop_index('ux_routine_document_owner_active', table_name='routine_document')
    op.drop_index('ix_routine_document_owner_id', table_name='routine_document')
    op.drop_table('routine_document')
