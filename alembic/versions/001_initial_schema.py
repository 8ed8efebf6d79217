"""Initial schema: employees, attendance, breaks, leave, notifications, violations, audit

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

attendance_status = sa.Enum('pending', 'half_day', 'short_day', 'full_day', name='attendancestatus')
leave_status = sa.Enum('pending', 'approved', 'rejected', name='leavestatus')


def _timestamps():
    # SQL-standard CURRENT_TIMESTAMP works on SQLite and Postgres
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    # Skip if tables already exist (e.g. local SQLite created by create_all())
    bind = op.get_bind()
    if 'employees' in sa.inspect(bind).get_table_names():
        return

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('emp_code', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='EMPLOYEE'),
        sa.Column('reporting_manager_id', sa.Integer(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['reporting_manager_id'], ['employees.id']),
    )
    op.create_index(op.f('ix_employees_id'), 'employees', ['id'], unique=False)
    op.create_index(op.f('ix_employees_emp_code'), 'employees', ['emp_code'], unique=True)
    op.create_index(op.f('ix_employees_email'), 'employees', ['email'], unique=True)
    op.create_index(op.f('ix_employees_reporting_manager_id'), 'employees', ['reporting_manager_id'], unique=False)

    op.create_table(
        'attendance',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('punch_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('punch_in_location', sa.String(), nullable=True),
        sa.Column('punch_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('punch_out_location', sa.String(), nullable=True),
        sa.Column('total_hours', sa.Numeric(5, 2), nullable=True),
        sa.Column('status', attendance_status, nullable=False, server_default='pending'),
        sa.Column('auto_logged_out', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id']),
        sa.UniqueConstraint('employee_id', 'attendance_date', name='uq_attendance_employee_date'),
        sa.CheckConstraint('punch_out IS NULL OR punch_out >= punch_in', name='check_punch_out_after_punch_in'),
    )
    op.create_index(op.f('ix_attendance_id'), 'attendance', ['id'], unique=False)
    op.create_index(op.f('ix_attendance_employee_id'), 'attendance', ['employee_id'], unique=False)
    op.create_index(op.f('ix_attendance_attendance_date'), 'attendance', ['attendance_date'], unique=False)

    op.create_table(
        'attendance_breaks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('attendance_id', sa.Integer(), nullable=False),
        sa.Column('break_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('break_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['attendance_id'], ['attendance.id']),
    )
    op.create_index(op.f('ix_attendance_breaks_id'), 'attendance_breaks', ['id'], unique=False)
    op.create_index(op.f('ix_attendance_breaks_attendance_id'), 'attendance_breaks', ['attendance_id'], unique=False)
    op.create_index(
        'uq_attendance_breaks_open',
        'attendance_breaks',
        ['attendance_id'],
        unique=True,
        sqlite_where=sa.text('break_end IS NULL'),
        postgresql_where=sa.text('break_end IS NULL'),
    )

    op.create_table(
        'leave_categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('has_monthly_quota', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('monthly_quota_days', sa.Numeric(5, 2), nullable=True),
        sa.Column('has_quarterly_quota', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('quarterly_quota_days', sa.Numeric(5, 2), nullable=True),
        sa.Column('has_annual_quota', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('annual_quota_days', sa.Numeric(5, 2), nullable=True),
        sa.Column('requires_approval', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_leave_categories_id'), 'leave_categories', ['id'], unique=False)
    op.create_index(op.f('ix_leave_categories_code'), 'leave_categories', ['code'], unique=True)

    op.create_table(
        'leave_balances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('monthly_balance', sa.Numeric(5, 2), nullable=True),
        sa.Column('quarterly_balance', sa.Numeric(5, 2), nullable=True),
        sa.Column('annual_balance', sa.Numeric(5, 2), nullable=True),
        sa.Column('comp_off_balance', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('last_reset_date', sa.Date(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id']),
        sa.ForeignKeyConstraint(['category_id'], ['leave_categories.id']),
        sa.UniqueConstraint('employee_id', 'category_id', name='uq_leave_balances_employee_category'),
        sa.CheckConstraint('monthly_balance IS NULL OR monthly_balance >= 0', name='check_monthly_balance_non_negative'),
        sa.CheckConstraint('quarterly_balance IS NULL OR quarterly_balance >= 0', name='check_quarterly_balance_non_negative'),
        sa.CheckConstraint('annual_balance IS NULL OR annual_balance >= 0', name='check_annual_balance_non_negative'),
        sa.CheckConstraint('comp_off_balance >= 0', name='check_comp_off_balance_non_negative'),
    )
    op.create_index(op.f('ix_leave_balances_id'), 'leave_balances', ['id'], unique=False)
    op.create_index(op.f('ix_leave_balances_employee_id'), 'leave_balances', ['employee_id'], unique=False)
    op.create_index(op.f('ix_leave_balances_category_id'), 'leave_balances', ['category_id'], unique=False)

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('is_half_day', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('total_days', sa.Numeric(5, 2), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', leave_status, nullable=False, server_default='pending'),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id']),
        sa.ForeignKeyConstraint(['category_id'], ['leave_categories.id']),
        sa.ForeignKeyConstraint(['reviewed_by'], ['employees.id']),
        sa.CheckConstraint('start_date <= end_date', name='check_start_date_le_end_date'),
    )
    op.create_index(op.f('ix_leave_requests_id'), 'leave_requests', ['id'], unique=False)
    op.create_index(op.f('ix_leave_requests_employee_id'), 'leave_requests', ['employee_id'], unique=False)
    op.create_index(op.f('ix_leave_requests_category_id'), 'leave_requests', ['category_id'], unique=False)
    op.create_index('ix_leave_requests_employee_dates', 'leave_requests', ['employee_id', 'start_date', 'end_date'], unique=False)

    op.create_table(
        'leave_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('leave_request_id', sa.Integer(), nullable=True),
        sa.Column('pool', sa.String(20), nullable=False),
        sa.Column('delta_days', sa.Numeric(5, 2), nullable=False),
        sa.Column('action', sa.String(30), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('action_by_employee_id', sa.Integer(), nullable=True),
        sa.Column('action_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id']),
        sa.ForeignKeyConstraint(['category_id'], ['leave_categories.id']),
        sa.ForeignKeyConstraint(['leave_request_id'], ['leave_requests.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['action_by_employee_id'], ['employees.id'], ondelete='SET NULL'),
    )
    op.create_index(op.f('ix_leave_transactions_id'), 'leave_transactions', ['id'], unique=False)
    op.create_index(op.f('ix_leave_transactions_employee_id'), 'leave_transactions', ['employee_id'], unique=False)
    op.create_index(op.f('ix_leave_transactions_category_id'), 'leave_transactions', ['category_id'], unique=False)
    op.create_index(op.f('ix_leave_transactions_leave_request_id'), 'leave_transactions', ['leave_request_id'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(30), nullable=False, server_default='general'),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('action_url', sa.String(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['employees.id']),
    )
    op.create_index(op.f('ix_notifications_id'), 'notifications', ['id'], unique=False)
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)

    op.create_table(
        'break_violations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('manager_id', sa.Integer(), nullable=False),
        sa.Column('report_date', sa.Date(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('attendance_id', sa.Integer(), nullable=False),
        sa.Column('total_break_minutes', sa.Integer(), nullable=False),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['manager_id'], ['employees.id']),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id']),
        sa.ForeignKeyConstraint(['attendance_id'], ['attendance.id']),
    )
    op.create_index(op.f('ix_break_violations_id'), 'break_violations', ['id'], unique=False)
    op.create_index(op.f('ix_break_violations_employee_id'), 'break_violations', ['employee_id'], unique=False)
    op.create_index('ix_break_violations_manager_date', 'break_violations', ['manager_id', 'report_date'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('meta_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['actor_id'], ['employees.id']),
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('break_violations')
    op.drop_table('notifications')
    op.drop_table('leave_transactions')
    op.drop_table('leave_requests')
    op.drop_table('leave_balances')
    op.drop_table('leave_categories')
    op.drop_table('attendance_breaks')
    op.drop_table('attendance')
    op.drop_table('employees')
    leave_status.drop(op.get_bind(), checkfirst=True)
    attendance_status.drop(op.get_bind(), checkfirst=True)
