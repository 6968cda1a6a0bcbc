"""Create base tables (users, customers, services, history, ledger, notification log)

Revision ID: 000_create_base_tables
Revises:
Create Date: 2026-10-16

Note: money columns are NUMERIC(10, 2); ids are uuid4 strings.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '000_create_base_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create base tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='TECHNICIAN'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'customers',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(30), nullable=False),
        sa.Column('address', sa.Text()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_customers_name', 'customers', ['name'])
    op.create_index('ix_customers_email', 'customers', ['email'])

    op.create_table(
        'services',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('service_number', sa.String(40), nullable=False),
        sa.Column('customer_id', sa.String(36), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('technician_id', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        # Device
        sa.Column('device_type', sa.String(20), nullable=False),
        sa.Column('brand', sa.String(100), nullable=False),
        sa.Column('model', sa.String(100), nullable=False),
        sa.Column('serial_number', sa.String(100)),
        sa.Column('imei', sa.String(30)),
        # Intake
        sa.Column('problem_description', sa.Text(), nullable=False),
        sa.Column('accessories', sa.Text()),
        sa.Column('physical_condition', sa.Text()),
        # Fees
        sa.Column('estimated_fee', sa.Numeric(10, 2)),
        sa.Column('actual_fee', sa.Numeric(10, 2)),
        sa.Column('status', sa.String(40), nullable=False, server_default='RECEIVED'),
        # Timestamps
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime()),
        sa.Column('delivered_at', sa.DateTime()),
    )
    op.create_index('ix_services_service_number', 'services', ['service_number'], unique=True)
    op.create_index('ix_services_customer_id', 'services', ['customer_id'])
    op.create_index('ix_services_technician_id', 'services', ['technician_id'])
    op.create_index('ix_services_status', 'services', ['status'])
    op.create_index('ix_services_created_at', 'services', ['created_at'])

    op.create_table(
        'service_status_history',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'service_id', sa.String(36),
            sa.ForeignKey('services.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('status', sa.String(40), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('changed_by', sa.String(255), nullable=False),
        sa.Column('changed_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_service_status_history_service_id', 'service_status_history', ['service_id'])

    op.create_table(
        'financial_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('type', sa.String(10), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column(
            'service_id', sa.String(36),
            sa.ForeignKey('services.id', ondelete='SET NULL'), nullable=True, unique=True,
        ),
        sa.Column('recorded_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_financial_records_type', 'financial_records', ['type'])
    op.create_index('ix_financial_records_recorded_at', 'financial_records', ['recorded_at'])

    op.create_table(
        'notification_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('type', sa.String(40), nullable=False),
        sa.Column(
            'service_id', sa.String(36),
            sa.ForeignKey('services.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('customer_email', sa.String(255), nullable=False),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('subject', sa.String(500), nullable=False, server_default=''),
        sa.Column('error', sa.Text()),
        sa.Column('sent_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_notification_logs_type', 'notification_logs', ['type'])
    op.create_index('ix_notification_logs_service_id', 'notification_logs', ['service_id'])
    op.create_index('ix_notification_logs_status', 'notification_logs', ['status'])
    op.create_index('ix_notification_logs_sent_at', 'notification_logs', ['sent_at'])


def downgrade():
    """Drop base tables."""
    tables = [
        'notification_logs',
        'financial_records',
        'service_status_history',
        'services',
        'customers',
        'users',
    ]
    for table in tables:
        op.drop_table(table)
