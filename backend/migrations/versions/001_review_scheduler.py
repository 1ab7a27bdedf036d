"""Add spaced repetition review items and review events

Revision ID: 001
Revises:
Create Date: 2026-03-02 09:00:00.000000

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

TAGS_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    # Per-learner SM-2 state, one row per (owner, item)
    op.create_table(
        'recall_review_items',
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('id', sa.String(128), nullable=False),
        sa.Column('prompt', sa.Text(), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('hint', sa.Text(), nullable=True),
        sa.Column('tags', TAGS_TYPE, server_default='[]', nullable=False),
        sa.Column('ease_factor', sa.Float(), nullable=False, server_default='2.5'),
        sa.Column('interval_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('repetitions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('next_review_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revision', sa.Integer(), nullable=False, server_default='0'),  # Optimistic concurrency counter
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('last_reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('owner_id', 'id'),
    )
    op.create_index('idx_review_items_owner_due', 'recall_review_items', ['owner_id', 'next_review_at'])

    # Append-only review log; no foreign key so history outlives retired items
    op.create_table(
        'recall_review_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('item_id', sa.String(128), nullable=False),
        sa.Column('quality', sa.Integer(), nullable=False),
        sa.Column('was_correct', sa.Boolean(), nullable=False),
        sa.Column('response_time_seconds', sa.Float(), nullable=False, server_default='0'),
        sa.Column('hints_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ease_factor_after', sa.Float(), nullable=False),
        sa.Column('interval_days_after', sa.Integer(), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_review_events_owner_time', 'recall_review_events', ['owner_id', 'reviewed_at'])
    op.create_index('idx_review_events_item', 'recall_review_events', ['owner_id', 'item_id'])


def downgrade() -> None:
    op.drop_index('idx_review_events_item', table_name='recall_review_events')
    op.drop_index('idx_review_events_owner_time', table_name='recall_review_events')
    op.drop_table('recall_review_events')
    op.drop_index('idx_review_items_owner_due', table_name='recall_review_items')
    op.drop_table('recall_review_items')
