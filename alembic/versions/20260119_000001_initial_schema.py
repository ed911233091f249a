"""initial scheduling schema

Revision ID: 20260119000001
Revises:
Create Date: 2026-01-19 00:00:01.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260119000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        'sectors',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        _timestamps(),
    )

    op.create_table(
        'profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('full_name', sa.String(120), nullable=False),
        sa.Column('username', sa.String(60)),
        sa.Column('role', sa.String(32), nullable=False, server_default='Normal'),
        sa.Column('sector_id', sa.String(36), sa.ForeignKey('sectors.id', ondelete='SET NULL')),
        sa.Column('avatar', sa.Text),
        sa.Column('status', sa.String(32), nullable=False, server_default='online'),
        sa.Column('observations', sa.Text),
        sa.Column('phone', sa.String(20)),
        _timestamps(),
    )
    op.create_index('ix_profiles_sector_id', 'profiles', ['sector_id'])

    op.create_table(
        'locations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('color', sa.String(16), nullable=False, server_default='#64748b'),
        sa.Column('has_conflict_control', sa.Boolean, nullable=False, server_default=sa.false()),
        _timestamps(),
    )

    op.create_table(
        'appointment_types',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('value', sa.String(64), nullable=False, unique=True),
        sa.Column('label', sa.String(120), nullable=False),
        sa.Column('color', sa.String(16), nullable=False, server_default='#cbd5e1'),
        sa.Column('icon', sa.String(64)),
        _timestamps(),
    )

    op.create_table(
        'appointments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('date', sa.String(10), nullable=False),
        sa.Column('start_time', sa.String(5)),
        sa.Column('end_time', sa.String(5)),
        sa.Column('type', sa.String(64), nullable=False, server_default='sync'),
        sa.Column('description', sa.Text),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('location_id', sa.String(36), sa.ForeignKey('locations.id', ondelete='SET NULL')),
        sa.Column('location_text', sa.Text),
        sa.Column('organizer_only', sa.Boolean, nullable=False, server_default=sa.false()),
        _timestamps(),
        sa.CheckConstraint(
            'NOT (location_id IS NOT NULL AND location_text IS NOT NULL)',
            name='ck_appointments_single_location',
        ),
    )
    op.create_index('ix_appointments_location_id_date', 'appointments', ['location_id', 'date'])
    op.create_index('ix_appointments_date', 'appointments', ['date'])
    op.create_index('ix_appointments_created_by', 'appointments', ['created_by'])

    op.create_table(
        'appointment_attendees',
        sa.Column('id', sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column('appointment_id', sa.String(36), sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        _timestamps(),
        sa.UniqueConstraint('appointment_id', 'user_id', name='uq_appointment_attendees_appointment_user'),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'requested')",
            name='ck_appointment_attendees_status',
        ),
    )
    op.create_index('ix_appointment_attendees_user_id_status', 'appointment_attendees', ['user_id', 'status'])

    op.create_table(
        'messages',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('sender_id', sa.String(36), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('receiver_id', sa.String(36), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('read', sa.Boolean, nullable=False, server_default=sa.false()),
        _timestamps(),
    )
    op.create_index('ix_messages_receiver_id_read', 'messages', ['receiver_id', 'read'])

    # Conflict checks only look at timed bookings at a managed location
    op.execute("""
        CREATE INDEX ix_appointments_timed_bookings
        ON appointments (location_id, date, start_time)
        WHERE location_id IS NOT NULL AND start_time IS NOT NULL
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_appointments_timed_bookings")
    op.drop_index('ix_messages_receiver_id_read', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_appointment_attendees_user_id_status', table_name='appointment_attendees')
    op.drop_table('appointment_attendees')
    op.drop_index('ix_appointments_created_by', table_name='appointments')
    op.drop_index('ix_appointments_date', table_name='appointments')
    op.drop_index('ix_appointments_location_id_date', table_name='appointments')
    op.drop_table('appointments')
    op.drop_table('appointment_types')
    op.drop_table('locations')
    op.drop_index('ix_profiles_sector_id', table_name='profiles')
    op.drop_table('profiles')
    op.drop_table('sectors')
