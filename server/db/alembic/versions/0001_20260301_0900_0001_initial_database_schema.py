"""Initial database schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create trains table
    op.create_table('trains',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('train_number', sa.String(length=32), nullable=False),
        sa.Column('train_name', sa.String(length=255), nullable=False),
        sa.Column('source_station', sa.String(length=255), nullable=False),
        sa.Column('destination_station', sa.String(length=255), nullable=False),
        sa.Column('departure_time', sa.Time(), nullable=False),
        sa.Column('arrival_time', sa.Time(), nullable=False),
        sa.Column('total_seats', sa.Integer(), nullable=False),
        sa.Column('available_seats', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('total_seats > 0', name='ck_train_total_seats_positive'),
        sa.CheckConstraint('available_seats >= 0', name='ck_train_available_seats_non_negative'),
        sa.CheckConstraint('available_seats <= total_seats', name='ck_train_available_seats_lte_total'),
        sa.CheckConstraint('price >= 0', name='ck_train_price_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_trains_train_number'), 'trains', ['train_number'], unique=True)
    op.create_index(op.f('ix_trains_source_station'), 'trains', ['source_station'], unique=False)
    op.create_index(op.f('ix_trains_destination_station'), 'trains', ['destination_station'], unique=False)

    # Create bookings table
    op.create_table('bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('train_id', sa.Uuid(), nullable=False),
        sa.Column('passenger_name', sa.String(length=255), nullable=False),
        sa.Column('passenger_age', sa.Integer(), nullable=False),
        sa.Column('passenger_gender', sa.String(length=16), nullable=False),
        sa.Column('seat_number', sa.String(length=16), nullable=False),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('travel_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('passenger_age BETWEEN 1 AND 120', name='ck_booking_passenger_age_range'),
        sa.CheckConstraint('length(passenger_name) > 0', name='ck_booking_passenger_name_not_empty'),
        sa.CheckConstraint("status IN ('confirmed', 'cancelled')", name='ck_booking_status_valid'),
        sa.CheckConstraint('amount >= 0', name='ck_booking_amount_non_negative'),
        sa.ForeignKeyConstraint(['train_id'], ['trains.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_user_id'), 'bookings', ['user_id'], unique=False)
    op.create_index(op.f('ix_bookings_train_id'), 'bookings', ['train_id'], unique=False)
    op.create_index(op.f('ix_bookings_travel_date'), 'bookings', ['travel_date'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(
        'uq_bookings_confirmed_seat',
        'bookings',
        ['train_id', 'travel_date', 'seat_number'],
        unique=True,
        postgresql_where=sa.text("status = 'confirmed'"),
        sqlite_where=sa.text("status = 'confirmed'"),
    )

    # Create reservations table (legacy development endpoints)
    op.create_table('reservations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('train_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('passenger_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('passenger_count > 0', name='ck_reservation_passenger_count_positive'),
        sa.ForeignKeyConstraint(['train_id'], ['trains.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_reservations_train_id'), 'reservations', ['train_id'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('reservations')
    op.drop_index('uq_bookings_confirmed_seat', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('trains')
