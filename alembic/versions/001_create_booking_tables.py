"""create booking tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000
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


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('second_last_name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('role', sa.Enum('admin', 'client', name='users_role_enum'), nullable=False),
    )

    op.create_table(
        'types_of_service',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
    )

    op.create_table(
        'quotes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('type_of_service_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('types_of_service.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('time', sa.DateTime(), nullable=False, index=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column(
            'state',
            sa.Enum('pending', 'approved', 'rejected', 'requires_proof', 'booked', 'cancelled', 'completed', name='quote_state_enum'),
            nullable=False,
            index=True,
        ),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('test_required', sa.Boolean(), nullable=False, server_default='false'),
    )

    op.create_table(
        'quote_images',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('quote_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('url', sa.String(), nullable=False),
    )

    op.create_table(
        'availability_slots',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('admin_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('start_time', sa.DateTime(), nullable=False, index=True),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('is_booked', sa.Boolean(), nullable=False, server_default='false'),
        sa.CheckConstraint('end_time > start_time', name='ck_availability_slots_end_after_start'),
    )

    op.create_table(
        'appointments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('slot_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('availability_slots.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('quote_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('quotes.id', ondelete='RESTRICT'), nullable=False, unique=True),
        sa.Column('status', sa.Enum('pending', 'booked', 'cancelled', 'completed', name='appointment_status_enum'), nullable=False, index=True),
    )

    op.create_table(
        'payment_proofs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('quote_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('quotes.id', ondelete='RESTRICT'), nullable=False, unique=True),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('is_reviewed', sa.Boolean(), nullable=False, server_default='false'),
    )

    op.create_table(
        'orphaned_blobs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('path', sa.String(), nullable=False, index=True),
        sa.Column('reason', sa.String(), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='pending', index=True),
        sa.Column('created_at', sa.DateTime(), nullable=True, index=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('orphaned_blobs')
    op.drop_table('payment_proofs')
    op.drop_table('appointments')
    op.drop_table('availability_slots')
    op.drop_table('quote_images')
    op.drop_table('quotes')
    op.drop_table('types_of_service')
    op.drop_table('users')
    op.execute('DROP TYPE appointment_status_enum')
    op.execute('DROP TYPE quote_state_enum')
    op.execute('DROP TYPE users_role_enum')
