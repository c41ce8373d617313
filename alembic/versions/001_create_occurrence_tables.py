"""Create occurrence, attachment and evaluation tables

Revision ID: 001_create_occurrence_tables
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_occurrence_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the occurrence tables with their constraints and indexes"""

    op.create_table('occurrences',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('owner_id', sa.Uuid(as_uuid=True), nullable=False,
                 comment="User who submitted the occurrence"),

        # Report content
        sa.Column('location', sa.String(255), nullable=False),
        sa.Column('category', sa.String(255), nullable=False),
        sa.Column('asset_id', sa.String(255), nullable=True,
                 comment="Physical asset (patrimony) identifier"),
        sa.Column('description', sa.Text, nullable=False),

        # Status workflow
        sa.Column('status', sa.String(20), nullable=False, server_default='open',
                 comment="Occurrence status: open, in_progress, resolved, closed"),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),

        sa.CheckConstraint(
            "status IN ('open', 'in_progress', 'resolved', 'closed')",
            name='chk_occurrences_status'
        ),
    )

    op.create_table('occurrence_attachments',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('occurrence_id', sa.Uuid(as_uuid=True),
                 sa.ForeignKey('occurrences.id', ondelete='CASCADE'), nullable=False),
        sa.Column('file_path', sa.String(512), nullable=False,
                 comment="Reference resolvable by the attachment store"),
        sa.Column('original_filename', sa.String(255), nullable=True),
        sa.Column('content_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table('occurrence_evaluations',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('occurrence_id', sa.Uuid(as_uuid=True),
                 sa.ForeignKey('occurrences.id', ondelete='CASCADE'), nullable=False),
        sa.Column('owner_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('score', sa.Integer, nullable=False),
        sa.Column('comment', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        sa.UniqueConstraint('occurrence_id', name='uq_occurrence_evaluations_occurrence'),
        sa.CheckConstraint('score BETWEEN 1 AND 5', name='chk_occurrence_evaluations_score'),
    )

    # Indexes for the owner listing and detail lookups
    op.create_index('ix_occurrences_owner_id', 'occurrences', ['owner_id'])
    op.create_index('idx_occurrences_owner_created', 'occurrences', ['owner_id', 'created_at'])
    op.create_index('ix_occurrence_attachments_occurrence_id', 'occurrence_attachments', ['occurrence_id'])


def downgrade():
    """Remove occurrence tables and related objects"""

    op.drop_index('ix_occurrence_attachments_occurrence_id', 'occurrence_attachments')
    op.drop_index('idx_occurrences_owner_created', 'occurrences')
    op.drop_index('ix_occurrences_owner_id', 'occurrences')

    op.drop_table('occurrence_evaluations')
    op.drop_table('occurrence_attachments')
    op.drop_table('occurrences')
