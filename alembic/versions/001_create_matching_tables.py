"""Create user attribute, similarity and community tables

Revision ID: 001_create_matching_tables
Revises:
Create Date: 2025-03-01

"""
import sqlalchemy as sa
from sqlalchemy import inspect

from alembic import op

# revision identifiers, used by Alembic.
revision = '001_create_matching_tables'
down_revision = None
branch_labels = None
depends_on = None

# Byte-order collation on PostgreSQL keeps the pair check in Python string order
PAIR_ID = sa.String(36).with_variant(sa.String(36, collation='C'), 'postgresql')


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    if not table_exists('users'):
        op.create_table(
            'users',
            sa.Column('id', sa.String(36), nullable=False),
            sa.Column('spotify_user_id', sa.String(255), nullable=True),
            sa.Column('nickname', sa.String(100), nullable=True),
            sa.Column('bio', sa.Text(), nullable=True),
            sa.Column('profile_image_url', sa.String(1000), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_users_spotify_user_id', 'users', ['spotify_user_id'], unique=True)

    if not table_exists('user_artists'):
        op.create_table(
            'user_artists',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.String(36), nullable=False),
            sa.Column('artist_id', sa.String(64), nullable=False),
            sa.Column('artist_name', sa.String(255), nullable=True),
            sa.Column('image_url', sa.String(1000), nullable=True),
            sa.Column('popularity', sa.Integer(), nullable=True),
            sa.Column('genres', sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'artist_id', name='unique_user_artist'),
        )
        op.create_index('ix_user_artists_user_id', 'user_artists', ['user_id'])
        op.create_index('ix_user_artists_artist_id', 'user_artists', ['artist_id'])

    if not table_exists('user_hobbies'):
        op.create_table(
            'user_hobbies',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.String(36), nullable=False),
            sa.Column('tag', sa.String(100), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'tag', name='unique_user_hobby'),
        )
        op.create_index('ix_user_hobbies_user_id', 'user_hobbies', ['user_id'])
        op.create_index('ix_user_hobbies_tag', 'user_hobbies', ['tag'])

    if not table_exists('similarities'):
        op.create_table(
            'similarities',
            sa.Column('user_a_id', PAIR_ID, nullable=False),
            sa.Column('user_b_id', PAIR_ID, nullable=False),
            sa.Column('artist_similarity', sa.Float(), nullable=False),
            sa.Column('genre_similarity', sa.Float(), nullable=False),
            sa.Column('combined_similarity', sa.Float(), nullable=False),
            sa.Column('common_artists', sa.JSON(), nullable=True),
            sa.Column('common_genres', sa.JSON(), nullable=True),
            sa.Column('calculated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.ForeignKeyConstraint(['user_a_id'], ['users.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['user_b_id'], ['users.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('user_a_id', 'user_b_id'),
            sa.CheckConstraint('user_a_id < user_b_id', name='canonical_pair_order'),
        )
        op.create_index('ix_similarities_user_b_id', 'similarities', ['user_b_id'])
        op.create_index('ix_similarities_combined_similarity', 'similarities', ['combined_similarity'])

    if not table_exists('communities'):
        op.create_table(
            'communities',
            sa.Column('user_id', sa.String(36), nullable=False),
            sa.Column('community_id', sa.Integer(), nullable=False),
            sa.Column('assigned_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('user_id'),
        )
        op.create_index('ix_communities_community_id', 'communities', ['community_id'])


def downgrade() -> None:
    op.drop_index('ix_communities_community_id', 'communities')
    op.drop_table('communities')

    op.drop_index('ix_similarities_combined_similarity', 'similarities')
    op.drop_index('ix_similarities_user_b_id', 'similarities')
    op.drop_table('similarities')

    op.drop_index('ix_user_hobbies_tag', 'user_hobbies')
    op.drop_index('ix_user_hobbies_user_id', 'user_hobbies')
    op.drop_table('user_hobbies')

    op.drop_index('ix_user_artists_artist_id', 'user_artists')
    op.drop_index('ix_user_artists_user_id', 'user_artists')
    op.drop_table('user_artists')

    op.drop_index('ix_users_spotify_user_id', 'users')
    op.drop_table('users')
