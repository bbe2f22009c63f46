"""Create production tracking tables

Revision ID: 001_production
Revises:
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers
revision = '001_production'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create users, machines, batches and the work records that reference them"""

    # ====================
    # USERS & SECTIONS
    # ====================
    op.create_table(
        'users',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('employee_code', sa.String(50), unique=True, nullable=False),
        sa.Column('full_name', sa.String(150), nullable=False),
        sa.Column('email', sa.String(255), unique=True, nullable=True),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('status', sa.String(50), server_default='ACTIVE', nullable=False),
        sa.Column('verification_status', sa.String(50), server_default='PENDING', nullable=False),
        sa.Column('created_by_user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_users_employee_code', 'users', ['employee_code'])
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_created_by_user_id', 'users', ['created_by_user_id'])

    op.create_table(
        'section_assignments',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('stage', sa.String(50), nullable=False),
        sa.UniqueConstraint('user_id', 'stage', name='uq_section_assignment_user_stage'),
    )
    op.create_index('ix_section_assignments_user_id', 'section_assignments', ['user_id'])

    # ====================
    # MACHINES
    # ====================
    op.create_table(
        'machines',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('machine_code', sa.String(50), unique=True, nullable=False),
        sa.Column('name', sa.String(150), nullable=True),
        sa.Column('stage', sa.String(50), nullable=True),
        sa.Column('status', sa.String(50), server_default='OPERATIONAL', nullable=False),
    )
    op.create_index('ix_machines_machine_code', 'machines', ['machine_code'])

    # ====================
    # BATCHES
    # ====================
    op.create_table(
        'batches',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('batch_number', sa.String(50), unique=True, nullable=False),
        sa.Column('label', sa.String(200), nullable=False),
        sa.Column('total_quantity', sa.Integer, nullable=False),
        sa.Column('usable_quantity', sa.Integer, server_default='0', nullable=False),
        sa.Column('defective_quantity', sa.Integer, server_default='0', nullable=False),
        sa.Column('scrapped_quantity', sa.Integer, server_default='0', nullable=False),
        sa.Column('current_stage', sa.String(50), server_default='CUTTING', nullable=False),
        sa.Column('status', sa.String(50), server_default='PENDING', nullable=False),
        sa.Column('created_by_user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('total_quantity > 0', name='ck_batch_total_positive'),
        sa.CheckConstraint(
            'usable_quantity >= 0 AND defective_quantity >= 0 AND scrapped_quantity >= 0',
            name='ck_batch_quantities_non_negative'
        ),
    )
    op.create_index('ix_batches_batch_number', 'batches', ['batch_number'])
    op.create_index('ix_batches_current_stage', 'batches', ['current_stage'])
    op.create_index('ix_batches_status', 'batches', ['status'])

    # ====================
    # PRODUCTION LOGS
    # ====================
    op.create_table(
        'production_logs',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('batch_id', UUID(as_uuid=True), sa.ForeignKey('batches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('stage', sa.String(50), nullable=False),
        sa.Column('operator_user_id', UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('machine_id', UUID(as_uuid=True), sa.ForeignKey('machines.id', ondelete='SET NULL'), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('quantity_in', sa.Integer, nullable=True),
        sa.Column('quantity_out', sa.Integer, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('approval_status', sa.String(50), server_default='PENDING', nullable=False),
        sa.Column('approved_by', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_by', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_production_logs_batch_id', 'production_logs', ['batch_id'])
    op.create_index('ix_production_logs_machine_id', 'production_logs', ['machine_id'])
    op.create_index('ix_production_logs_approval_status', 'production_logs', ['approval_status'])
    op.create_index('ix_production_logs_batch_stage', 'production_logs', ['batch_id', 'stage'])
    op.create_index('ix_production_logs_operator_time', 'production_logs', ['operator_user_id', 'start_time', 'end_time'])

    # ====================
    # DEFECT RECORDS
    # ====================
    op.create_table(
        'defect_records',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('batch_id', UUID(as_uuid=True), sa.ForeignKey('batches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('stage', sa.String(50), nullable=False),
        sa.Column('defect_code', sa.String(50), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('severity', sa.String(50), nullable=False),
        sa.Column('production_log_id', UUID(as_uuid=True), sa.ForeignKey('production_logs.id', ondelete='SET NULL'), nullable=True),
        sa.Column('detected_by_user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_defect_quantity_positive'),
    )
    op.create_index('ix_defect_records_batch_stage', 'defect_records', ['batch_id', 'stage'])
    op.create_index('ix_defect_records_production_log_id', 'defect_records', ['production_log_id'])

    # ====================
    # REWORK RECORDS
    # ====================
    op.create_table(
        'rework_records',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('batch_id', UUID(as_uuid=True), sa.ForeignKey('batches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('operator_user_id', UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('managed_by_user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('rework_stage', sa.String(50), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('cured_quantity', sa.Integer, nullable=False),
        sa.Column('scrapped_quantity', sa.Integer, nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('approval_status', sa.String(50), server_default='PENDING', nullable=False),
        sa.Column('approved_by', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_by', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_rework_quantity_positive'),
        sa.CheckConstraint('cured_quantity >= 0 AND scrapped_quantity >= 0', name='ck_rework_split_non_negative'),
        sa.CheckConstraint('cured_quantity + scrapped_quantity = quantity', name='ck_rework_split_matches_quantity'),
    )
    op.create_index('ix_rework_records_operator_user_id', 'rework_records', ['operator_user_id'])
    op.create_index(
        'ix_rework_records_batch_stage_status',
        'rework_records',
        ['batch_id', 'rework_stage', 'approval_status']
    )

    # ====================
    # BOXES
    # ====================
    op.create_table(
        'boxes',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('box_code', sa.String(80), unique=True, nullable=False),
        sa.Column('batch_id', UUID(as_uuid=True), sa.ForeignKey('batches.id', ondelete='CASCADE'), unique=True, nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('status', sa.String(50), server_default='PACKED', nullable=False),
        sa.Column('shipped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='ck_box_quantity_non_negative'),
    )
    op.create_index('ix_boxes_box_code', 'boxes', ['box_code'])
    op.create_index('ix_boxes_status', 'boxes', ['status'])


def downgrade():
    """Drop production tracking tables"""
    op.drop_table('boxes')
    op.drop_table('rework_records')
    op.drop_table('defect_records')
    op.drop_table('production_logs')
    op.drop_table('batches')
    op.drop_table('machines')
    op.drop_table('section_assignments')
    op.drop_table('users')
