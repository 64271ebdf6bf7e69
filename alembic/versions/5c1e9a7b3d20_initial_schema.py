"""initial schema

Revision ID: 5c1e9a7b3d20
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1e9a7b3d20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create pull_requests, reviews and tracked_repositories tables."""
    op.create_table('pull_requests',
        sa.Column('repository', sa.String(length=200), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('author', sa.String(length=100), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('merged_at', sa.DateTime(), nullable=True),
        sa.Column('additions', sa.Integer(), nullable=False),
        sa.Column('deletions', sa.Integer(), nullable=False),
        sa.Column('changed_files', sa.Integer(), nullable=False),
        sa.Column('has_tests', sa.Boolean(), nullable=False),
        sa.Column('synced_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('repository', 'number')
    )
    op.create_index('ix_pull_requests_author', 'pull_requests', ['author'])
    op.create_index('ix_pull_requests_created_at', 'pull_requests', ['created_at'])

    op.create_table('reviews',
        sa.Column('repository', sa.String(length=200), nullable=False),
        sa.Column('pr_number', sa.Integer(), nullable=False),
        sa.Column('reviewer', sa.String(length=100), nullable=False),
        sa.Column('state', sa.Enum('APPROVED', 'CHANGES_REQUESTED', 'COMMENTED', name='reviewstate'), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.Column('synced_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ['repository', 'pr_number'],
            ['pull_requests.repository', 'pull_requests.number'],
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('repository', 'pr_number', 'reviewer')
    )
    op.create_index('ix_reviews_reviewer', 'reviews', ['reviewer'])

    op.create_table('tracked_repositories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('added_at', sa.DateTime(), nullable=False),
        sa.Column('sync_since', sa.DateTime(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.Column('sync_errors', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('tracked_repositories')
    op.drop_index('ix_reviews_reviewer', table_name='reviews')
    op.drop_table('reviews')
    op.drop_index('ix_pull_requests_created_at', table_name='pull_requests')
    op.drop_index('ix_pull_requests_author', table_name='pull_requests')
    op.drop_table('pull_requests')
    sa.Enum(name='reviewstate').drop(op.get_bind(), checkfirst=True)
