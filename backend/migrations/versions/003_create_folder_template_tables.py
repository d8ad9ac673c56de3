"""Create folder_template and folder_template_application tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-17 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '003'
down_revision = '002'
branch_labels = None
depends_on = None


def upgrade():
    """Create folder template tables."""
    op.create_table(
        'folder_template',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('code', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('applies_to_scope', sa.Text(), server_default='project', nullable=False),
        sa.Column('structure', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column('is_default', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'code', name='uq_folder_template_company_code'),
        sa.CheckConstraint(
            "applies_to_scope IN ('company', 'property', 'tenant', 'department', 'project', 'area', 'personal')",
            name='ck_folder_template_scope',
        ),
    )
    op.create_index('ix_folder_template_company_scope', 'folder_template', ['company_id', 'applies_to_scope'])

    op.create_table(
        'folder_template_application',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('template_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('root_folder_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('root_path', sa.Text(), nullable=False),
        sa.Column('folders_created', sa.Integer(), server_default='0', nullable=False),
        sa.Column('applied_by_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('applied_at', sa.DateTime(), server_default=sa.text("(NOW() AT TIME ZONE 'utc')"), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['template_id'], ['folder_template.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['root_folder_id'], ['folder.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_folder_template_application_template', 'folder_template_application', ['template_id'])


def downgrade():
    """Drop folder template tables."""
    op.drop_index('ix_folder_template_application_template', table_name='folder_template_application')
    op.drop_table('folder_template_application')
    op.drop_index('ix_folder_template_company_scope', table_name='folder_template')
    op.drop_table('folder_template')
