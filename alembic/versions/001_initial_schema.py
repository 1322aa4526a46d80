"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create documents table
    op.create_table(
        'documents',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('file_name', sa.String(), nullable=False),
        sa.Column('mime_type', sa.String(), nullable=False),
        sa.Column('storage_key', sa.String(), nullable=False),
        sa.Column('sha256', sa.String(64), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('page_count', sa.Integer(), nullable=True),
        sa.Column('kind', sa.Enum('original', 'signed', name='documentkind'), nullable=False),
        sa.Column('source_document_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('storage_key', name='uq_documents_storage_key'),
    )
    op.create_index('ix_documents_sha256', 'documents', ['sha256'])
    op.create_index('ix_documents_kind', 'documents', ['kind'])
    op.create_index('ix_documents_source_document_id', 'documents', ['source_document_id'])
    
    # Create audit_records table
    op.create_table(
        'audit_records',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('source_document_id', sa.String(), nullable=False),
        sa.Column('result_document_id', sa.String(), nullable=False),
        sa.Column('source_digest', sa.String(64), nullable=False),
        sa.Column('result_digest', sa.String(64), nullable=False),
        sa.Column('fields_summary', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_audit_records_source_document_id', 'audit_records', ['source_document_id'])
    op.create_index('ix_audit_records_result_document_id', 'audit_records', ['result_document_id'])
    op.create_index('ix_audit_records_created_at', 'audit_records', ['created_at'])


def downgrade() -> None:
    op.drop_table('audit_records')
    op.drop_table('documents')
    sa.Enum(name='documentkind').drop(op.get_bind(), checkfirst=True)
