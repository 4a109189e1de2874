"""Create booking schema

Revision ID: 3b7f2c91a0d4
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3b7f2c91a0d4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SPECIALTIES = (
    'Cardiology', 'Dermatology', 'Endocrinology', 'Gastroenterology', 'General Medicine',
    'Gynecology', 'Neurology', 'Oncology', 'Orthopedics', 'Pediatrics', 'Psychiatry',
    'Pulmonology', 'Radiology', 'Surgery', 'Urology', 'Other',
)

ACTIVE_SLOT = "status IN ('pending', 'confirmed')"


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('user', 'admin', name='user_role'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'doctors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('specialty', sa.Enum(*SPECIALTIES, name='specialty'), nullable=False),
        sa.Column('qualifications', sa.String(length=200), nullable=False),
        sa.Column('experience', sa.Integer(), nullable=False),
        sa.Column('availability', sa.JSON(), nullable=False),
        sa.Column('hospital', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=False),
        sa.Column('city', sa.String(), nullable=False),
        sa.Column('state', sa.String(), nullable=False),
        sa.Column('zip_code', sa.String(length=10), nullable=False),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('consultation_fee', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('rating', sa.Float(), nullable=False),
        sa.Column('total_reviews', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index(op.f('ix_doctors_id'), 'doctors', ['id'], unique=False)
    op.create_index(op.f('ix_doctors_name'), 'doctors', ['name'], unique=False)
    op.create_index(op.f('ix_doctors_specialty'), 'doctors', ['specialty'], unique=False)
    op.create_index(op.f('ix_doctors_city'), 'doctors', ['city'], unique=False)
    op.create_index(op.f('ix_doctors_is_active'), 'doctors', ['is_active'], unique=False)

    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('doctor_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.String(length=5), nullable=False),
        sa.Column('status', sa.Enum('pending', 'confirmed', 'cancelled', 'completed', name='appointment_status'), nullable=False),
        sa.Column('reason', sa.String(length=500), nullable=False),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('symptoms', sa.JSON(), nullable=False),
        sa.Column('consultation_fee', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('payment_status', sa.Enum('pending', 'paid', 'refunded', name='payment_status'), nullable=False),
        sa.Column('cancellation_reason', sa.String(length=200), nullable=True),
        sa.Column('cancelled_by', sa.Enum('user', 'doctor', 'admin', name='cancelled_by'), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('email_sent', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctors.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_appointments_id'), 'appointments', ['id'], unique=False)
    op.create_index('ix_appointments_user_date', 'appointments', ['user_id', 'date'], unique=False)
    op.create_index('ix_appointments_doctor_date', 'appointments', ['doctor_id', 'date'], unique=False)
    op.create_index('ix_appointments_status', 'appointments', ['status'], unique=False)
    # At most one pending or confirmed appointment per doctor slot
    op.create_index(
        'uq_appointments_active_slot',
        'appointments',
        ['doctor_id', 'date', 'time'],
        unique=True,
        postgresql_where=sa.text(ACTIVE_SLOT),
        sqlite_where=sa.text(ACTIVE_SLOT)
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)
    op.create_index(op.f('ix_audit_logs_action'), 'audit_logs', ['action'], unique=False)
    op.create_index(op.f('ix_audit_logs_timestamp'), 'audit_logs', ['timestamp'], unique=False)


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_index('uq_appointments_active_slot', table_name='appointments')
    op.drop_table('appointments')
    op.drop_table('doctors')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_name in ('cancelled_by', 'payment_status', 'appointment_status', 'specialty', 'user_role'):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
