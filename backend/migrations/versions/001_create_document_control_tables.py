"""Create document control tables

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create catalog, folder, document and per-document child tables."""

    # Document type catalog
    op.create_table(
        'document_type',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('code', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('allowed_extensions', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),

        # Auto numbering
        sa.Column('auto_number_enabled', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('auto_number_prefix', sa.Text(), nullable=True),
        sa.Column('auto_number_digits', sa.Integer(), server_default=sa.text('4'), nullable=False),
        sa.Column('auto_number_includes_year', sa.Boolean(), server_default=sa.text('false'), nullable=False),

        sa.Column('requires_approval', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'code', name='uq_document_type_company_code'),
        sa.CheckConstraint('auto_number_digits BETWEEN 1 AND 10', name='ck_document_type_digits'),
    )
    op.create_index('ix_document_type_company_id', 'document_type', ['company_id'])

    # Retention policies
    op.create_table(
        'retention_policy',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('code', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('retention_period_days', sa.Integer(), nullable=False),
        sa.Column('action', sa.Text(), server_default='archive', nullable=False),
        sa.Column('trigger_on', sa.Text(), server_default='created', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'code', name='uq_retention_policy_company_code'),
    )

    # Folder tree (parent_folder_id NULL = root)
    op.create_table(
        'folder',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('parent_folder_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('path', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['parent_folder_id'], ['folder.id'], ondelete='RESTRICT'),
    )
    op.create_index('ix_folder_company_id', 'folder', ['company_id'])
    op.create_index('ix_folder_parent_folder_id', 'folder', ['parent_folder_id'])

    # Documents
    op.create_table(
        'document',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('folder_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('document_type_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('document_number', sa.Text(), nullable=True),

        # File pointer
        sa.Column('file_type', sa.Text(), nullable=True),
        sa.Column('file_size_bytes', sa.BigInteger(), server_default=sa.text('0'), nullable=False),
        sa.Column('content_hash', sa.Text(), nullable=True),
        sa.Column('storage_path', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), server_default=sa.text('1'), nullable=False),

        # Workflow and access
        sa.Column('status', sa.Text(), server_default='draft', nullable=False),
        sa.Column('classification', sa.Text(), server_default='internal', nullable=False),
        sa.Column('access_level', sa.Text(), server_default='private', nullable=False),
        sa.Column('category', sa.Text(), nullable=True),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('owned_by_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('uploaded_by_user_id', postgresql.UUID(as_uuid=True), nullable=False),

        # Checkout lock
        sa.Column('is_checked_out', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('checked_out_by_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('checked_out_at', sa.DateTime(), nullable=True),
        sa.Column('check_out_expires_at', sa.DateTime(), nullable=True),

        # Retention and legal hold
        sa.Column('legal_hold', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('legal_hold_reason', sa.Text(), nullable=True),
        sa.Column('legal_hold_set_at', sa.DateTime(), nullable=True),
        sa.Column('legal_hold_set_by_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('retention_policy_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('retention_expires_at', sa.DateTime(), nullable=True),

        # Periodic review
        sa.Column('review_date', sa.DateTime(), nullable=True),
        sa.Column('review_frequency_days', sa.Integer(), nullable=True),
        sa.Column('last_reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('last_reviewed_by_user_id', postgresql.UUID(as_uuid=True), nullable=True),

        # Approval
        sa.Column('approved_by_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('approval_notes', sa.Text(), nullable=True),

        sa.Column('created_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['folder_id'], ['folder.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['document_type_id'], ['document_type.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['retention_policy_id'], ['retention_policy.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('document_type_id', 'document_number', name='uq_document_type_number'),
    )
    op.create_index('ix_document_company_id', 'document', ['company_id'])
    op.create_index('ix_document_folder_id', 'document', ['folder_id'])
    op.create_index('ix_document_company_status', 'document', ['company_id', 'status'])

    # Content history, one row per stored revision
    op.create_table(
        'document_version',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('document_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('version_number', sa.Integer(), nullable=False),
        sa.Column('content_hash', sa.Text(), nullable=True),
        sa.Column('storage_path', sa.Text(), nullable=True),
        sa.Column('file_size_bytes', sa.BigInteger(), server_default=sa.text('0'), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['document_id'], ['document.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('document_id', 'version_number', name='uq_document_version_number'),
    )

    # Checkout lease history
    op.create_table(
        'checkout_lease',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('document_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('checked_out_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('superseded_at', sa.DateTime(), nullable=True),
        sa.Column('released_at', sa.DateTime(), nullable=True),
        sa.Column('release_reason', sa.Text(), nullable=True),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['document_id'], ['document.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_checkout_lease_document_user', 'checkout_lease', ['document_id', 'user_id'])

    # Per-document grants to one user or one department
    op.create_table(
        'access_grant',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('document_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('department_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('access_level', sa.Text(), nullable=False),
        sa.Column('granted_by_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['document_id'], ['document.id'], ondelete='CASCADE'),
        sa.CheckConstraint('(user_id IS NULL) <> (department_id IS NULL)', name='ck_access_grant_single_principal'),
        sa.CheckConstraint("access_level IN ('view', 'edit')", name='ck_access_grant_level'),
    )
    op.create_index('ix_access_grant_document_id', 'access_grant', ['document_id'])

    # Number counters, one row per (type, year); year 0 when numbers omit the year
    op.create_table(
        'document_sequence',
        sa.Column('document_type_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('year', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('last_value', sa.BigInteger(), server_default=sa.text('0'), nullable=False),

        sa.PrimaryKeyConstraint('document_type_id', 'year'),
        sa.ForeignKeyConstraint(['document_type_id'], ['document_type.id'], ondelete='CASCADE'),
    )


def downgrade():
    """Drop document control tables in reverse dependency order."""
    op.drop_table('document_sequence')

    op.drop_index('ix_access_grant_document_id', table_name='access_grant')
    op.drop_table('access_grant')

    op.drop_index('ix_checkout_lease_document_user', table_name='checkout_lease')
    op.drop_table('checkout_lease')

    op.drop_table('document_version')

    op.drop_index('ix_document_company_status', table_name='document')
    op.drop_index('ix_document_folder_id', table_name='document')
    op.drop_index('ix_document_company_id', table_name='document')
    op.drop_table('document')

    op.drop_index('ix_folder_parent_folder_id', table_name='folder')
    op.drop_index('ix_folder_company_id', table_name='folder')
    op.drop_table('folder')

    op.drop_table('retention_policy')

    op.drop_index('ix_document_type_company_id', table_name='document_type')
    op.drop_table('document_type')
