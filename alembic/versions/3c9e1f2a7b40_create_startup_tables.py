"""create_startup_tables

Revision ID: 3c9e1f2a7b40
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c9e1f2a7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

validation_status = sa.Enum('PENDING', 'VALIDATED', 'REJECTED', name='validationstatus')


def upgrade() -> None:
    op.create_table(
        'startups',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('canonical_name', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('website', sa.String(length=500), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('funding_amount', sa.String(length=100), nullable=True),
        sa.Column('funding_amount_num', sa.BigInteger(), nullable=True),
        sa.Column('round_type', sa.String(length=100), nullable=True),
        sa.Column('date_announced', sa.String(length=10), nullable=True),
        sa.Column('date_announced_at', sa.Date(), nullable=True),
        sa.Column('industry', sa.String(length=100), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('founders', sa.JSON(), nullable=True),
        sa.Column('founders_text', sa.String(length=1000), nullable=True),
        sa.Column('investors', sa.JSON(), nullable=True),
        sa.Column('team_size', sa.String(length=50), nullable=True),
        sa.Column('source_name', sa.String(length=100), nullable=True),
        sa.Column('source_url', sa.String(length=1000), nullable=True),
        sa.Column('source_count', sa.Integer(), nullable=True),
        sa.Column('confidence_score', sa.Float(), nullable=True),
        sa.Column('validation_status', validation_status, nullable=True),
        sa.Column('enrichment_complete', sa.Boolean(), nullable=True),
        sa.Column('needs_revalidation', sa.Boolean(), nullable=True),
        sa.Column('last_validated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('last_updated', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source_url'),
    )
    op.create_index(op.f('ix_startups_name'), 'startups', ['name'], unique=True)
    op.create_index(op.f('ix_startups_canonical_name'), 'startups', ['canonical_name'], unique=False)
    op.create_index(op.f('ix_startups_website'), 'startups', ['website'], unique=False)
    op.create_index(op.f('ix_startups_funding_amount_num'), 'startups', ['funding_amount_num'], unique=False)
    op.create_index(op.f('ix_startups_founders_text'), 'startups', ['founders_text'], unique=False)
    op.create_index('idx_startup_industry_date', 'startups', ['industry', 'date_announced_at'], unique=False)

    op.create_table(
        'pending_startups',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('canonical_name', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('website', sa.String(length=500), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('funding_amount', sa.String(length=100), nullable=True),
        sa.Column('funding_amount_num', sa.BigInteger(), nullable=True),
        sa.Column('round_type', sa.String(length=100), nullable=True),
        sa.Column('date_announced', sa.String(length=10), nullable=True),
        sa.Column('date_announced_at', sa.Date(), nullable=True),
        sa.Column('industry', sa.String(length=100), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('founders', sa.JSON(), nullable=True),
        sa.Column('investors', sa.JSON(), nullable=True),
        sa.Column('evidence', sa.JSON(), nullable=False),
        sa.Column('evidence_sources', sa.String(length=500), nullable=True),
        sa.Column('aggregate_confidence', sa.Float(), nullable=True),
        sa.Column('validation_status', validation_status, nullable=True),
        sa.Column('rejection_reason', sa.String(length=255), nullable=True),
        sa.Column('merged_into_id', sa.Integer(), nullable=True),
        sa.Column('last_validated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_pending_startups_canonical_name'), 'pending_startups', ['canonical_name'], unique=False)
    op.create_index(op.f('ix_pending_startups_aggregate_confidence'), 'pending_startups', ['aggregate_confidence'], unique=False)
    op.create_index('idx_pending_status_sources', 'pending_startups', ['validation_status', 'evidence_sources'], unique=False)

    op.create_table(
        'confidence_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('pending_id', sa.Integer(), nullable=True),
        sa.Column('startup_name', sa.String(length=255), nullable=True),
        sa.Column('previous_score', sa.Float(), nullable=True),
        sa.Column('new_score', sa.Float(), nullable=True),
        sa.Column('sources', sa.JSON(), nullable=True),
        sa.Column('algorithm', sa.String(length=50), nullable=True),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_confidence_history_pending_id'), 'confidence_history', ['pending_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_confidence_history_pending_id'), table_name='confidence_history')
    op.drop_table('confidence_history')
    op.drop_index('idx_pending_status_sources', table_name='pending_startups')
    op.drop_index(op.f('ix_pending_startups_aggregate_confidence'), table_name='pending_startups')
    op.drop_index(op.f('ix_pending_startups_canonical_name'), table_name='pending_startups')
    op.drop_table('pending_startups')
    op.drop_index('idx_startup_industry_date', table_name='startups')
    op.drop_index(op.f('ix_startups_founders_text'), table_name='startups')
    op.drop_index(op.f('ix_startups_funding_amount_num'), table_name='startups')
    op.drop_index(op.f('ix_startups_website'), table_name='startups')
    op.drop_index(op.f('ix_startups_canonical_name'), table_name='startups')
    op.drop_index(op.f('ix_startups_name'), table_name='startups')
    op.drop_table('startups')
    validation_status.drop(op.get_bind(), checkfirst=True)
