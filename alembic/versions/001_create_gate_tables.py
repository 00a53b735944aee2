"""Create access gate tables

Revision ID: 001_create_gate_tables
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_create_gate_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create users, auth_sessions, admin_users, access_requests and applications."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'auth_sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_auth_sessions_user_id', 'auth_sessions', ['user_id'])

    op.create_table(
        'admin_users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('face_encoding', sa.Text(), nullable=True),
        sa.Column('face_photo_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_admin_users_email'),
    )
    op.create_index('ix_admin_users_email', 'admin_users', ['email'])

    op.create_table(
        'access_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('location_lat', sa.Float(), nullable=False),
        sa.Column('location_lng', sa.Float(), nullable=False),
        sa.Column('device_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('photo_url', sa.Text(), nullable=True),
        sa.Column('photo_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_access_requests_device_id', 'access_requests', ['device_id'])
    op.create_index('ix_access_requests_status', 'access_requests', ['status'])
    op.create_index('ix_access_requests_created_at', 'access_requests', ['created_at'])
    op.create_index('idx_access_requests_device_created', 'access_requests', ['device_id', 'created_at'])
    op.create_index('idx_access_requests_status_created', 'access_requests', ['status', 'created_at'])

    op.create_table(
        'applications',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('stage', sa.String(length=20), nullable=False, server_default='application'),
        sa.Column('test_unlocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('assigned_interviewer', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', name='uq_applications_user_id'),
    )
    op.create_index('ix_applications_stage', 'applications', ['stage'])
    op.create_index('ix_applications_created_at', 'applications', ['created_at'])
    op.create_index('idx_applications_stage_created', 'applications', ['stage', 'created_at'])


def downgrade() -> None:
    """Drop the access gate tables."""
    op.drop_index('idx_applications_stage_created', table_name='applications')
    op.drop_index('ix_applications_created_at', table_name='applications')
    op.drop_index('ix_applications_stage', table_name='applications')
    op.drop_table('applications')

    op.drop_index('idx_access_requests_status_created', table_name='access_requests')
    op.drop_index('idx_access_requests_device_created', table_name='access_requests')
    op.drop_index('ix_access_requests_created_at', table_name='access_requests')
    op.drop_index('ix_access_requests_status', table_name='access_requests')
    op.drop_index('ix_access_requests_device_id', table_name='access_requests')
    op.drop_table('access_requests')

    op.drop_index('ix_admin_users_email', table_name='admin_users')
    op.drop_table('admin_users')

    op.drop_index('ix_auth_sessions_user_id', table_name='auth_sessions')
    op.drop_table('auth_sessions')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
