"""Create initial schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '20261018_0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def _has_table(bind, name: str) -> bool:
    return inspect(bind).has_table(name)

def upgrade() -> None:
    bind = op.get_bind()

    # Create users table
    if not _has_table(bind, 'users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('name', sa.String(length=100), nullable=True),
            sa.Column('image', sa.String(length=500), nullable=True),
            sa.Column('hashed_password', sa.String(length=255), nullable=True),
            sa.Column('email_verified', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)

    # Create listings table
    if not _has_table(bind, 'listings'):
        op.create_table('listings',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('owner_id', sa.Integer(), nullable=True),
            sa.Column('title', sa.String(length=100), nullable=False),
            sa.Column('description', sa.Text(), nullable=False),
            sa.Column('category', sa.String(length=50), nullable=False),
            sa.Column('room_count', sa.Integer(), server_default='1', nullable=False),
            sa.Column('bathroom_count', sa.Integer(), server_default='1', nullable=False),
            sa.Column('guest_count', sa.Integer(), server_default='1', nullable=False),
            sa.Column('location_value', sa.String(length=100), nullable=False),
            sa.Column('latitude', sa.Float(), nullable=True),
            sa.Column('longitude', sa.Float(), nullable=True),
            sa.Column('price', sa.Integer(), nullable=False),
            sa.Column('contact_phone', sa.String(length=20), nullable=True),
            sa.Column('payment_method', sa.String(length=50), nullable=True),
            sa.Column('favorites_count', sa.Integer(), server_default='0', nullable=False),
            sa.Column('view_counter', sa.Integer(), server_default='0', nullable=False),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.CheckConstraint('price > 0', name='ck_listings_price_positive'),
            sa.CheckConstraint('favorites_count >= 0', name='ck_listings_favorites_count_non_negative'),
            sa.CheckConstraint('view_counter >= 0', name='ck_listings_view_counter_non_negative'),
            sa.CheckConstraint(
                'room_count >= 0 AND bathroom_count >= 0 AND guest_count >= 0',
                name='ck_listings_capacity_non_negative',
            ),
            sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='SET NULL'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_listings_id'), 'listings', ['id'], unique=False)
        op.create_index(op.f('ix_listings_owner_id'), 'listings', ['owner_id'], unique=False)
        op.create_index(op.f('ix_listings_category'), 'listings', ['category'], unique=False)
        op.create_index(op.f('ix_listings_location_value'), 'listings', ['location_value'], unique=False)
        op.create_index(op.f('ix_listings_view_counter'), 'listings', ['view_counter'], unique=False)
        op.create_index(op.f('ix_listings_created_at'), 'listings', ['created_at'], unique=False)

    # Create listing_images table
    if not _has_table(bind, 'listing_images'):
        op.create_table('listing_images',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('listing_id', sa.Integer(), nullable=False),
            sa.Column('url', sa.String(length=500), nullable=False),
            sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_listing_images_listing_id'), 'listing_images', ['listing_id'], unique=False)

    # Create reservations table
    if not _has_table(bind, 'reservations'):
        op.create_table('reservations',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('listing_id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('start_date', sa.Date(), nullable=False),
            sa.Column('end_date', sa.Date(), nullable=False),
            sa.Column('total_price', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.CheckConstraint('end_date > start_date', name='ck_reservations_range'),
            sa.CheckConstraint('total_price > 0', name='ck_reservations_total_price_positive'),
            sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_reservations_id'), 'reservations', ['id'], unique=False)
        op.create_index(op.f('ix_reservations_listing_id'), 'reservations', ['listing_id'], unique=False)
        op.create_index(op.f('ix_reservations_user_id'), 'reservations', ['user_id'], unique=False)
        op.create_index('ix_reservations_listing_start_end', 'reservations', ['listing_id', 'start_date', 'end_date'], unique=False)

    # Create favorites table
    if not _has_table(bind, 'favorites'):
        op.create_table('favorites',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('listing_id', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'listing_id', name='uq_favorites_user_listing')
        )
        op.create_index(op.f('ix_favorites_user_id'), 'favorites', ['user_id'], unique=False)
        op.create_index(op.f('ix_favorites_listing_id'), 'favorites', ['listing_id'], unique=False)


def downgrade() -> None:
    op.drop_table('favorites')
    op.drop_table('reservations')
    op.drop_table('listing_images')
    op.drop_table('listings')
    op.drop_table('users')
