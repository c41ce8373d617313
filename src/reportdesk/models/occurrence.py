"""
SQLAlchemy model for Occurrences
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Index, String, Text, Uuid
from sqlalchemy.sql import func

from ..database.core import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Occurrence(Base):
    """
    SQLAlchemy model for Occurrences table

    An incident reported by a user. The owner is referenced by id only and
    never reassigned; status moves forward through
    open, in_progress, resolved, closed.
    """
    __tablename__ = 'occurrences'

    # Primary key
    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    owner_id = Column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
        doc="User who submitted the occurrence"
    )

    # Report content
    location = Column(
        String(255),
        nullable=False,
        doc="Where the occurrence was observed"
    )
    category = Column(
        String(255),
        nullable=False,
        doc="Occurrence category, e.g. Lighting, Plumbing"
    )
    asset_id = Column(
        String(255),
        nullable=True,
        doc="Optional - physical asset (patrimony) identifier"
    )
    description = Column(
        Text,
        nullable=False,
        doc="Free-text description of the problem"
    )

    # Status workflow
    status = Column(
        String(20),
        nullable=False,
        default='open',
        server_default='open',
        doc="Occurrence status: open, in_progress, resolved, closed"
    )

    # Timestamps
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now()
    )
    resolved_at = Column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the occurrence entered the resolved status"
    )
    closed_at = Column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the occurrence was closed"
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('open', 'in_progress', 'resolved', 'closed')",
            name='chk_occurrences_status'
        ),
        Index('idx_occurrences_owner_created', 'owner_id', 'created_at'),
    )

    def __repr__(self):
        return f"<Occurrence(id={self.id}, category='{self.category}', status='{self.status}', owner={self.owner_id})>"
