"""
SQLAlchemy model for occurrence attachments
"""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.sql import func

from ..database.core import Base
from .occurrence import utcnow


class OccurrenceAttachment(Base):
    """
    An image stored for an occurrence.

    Only the storage reference is kept here; the bytes live in the
    attachment store. Rows are written once and removed with their parent.
    """
    __tablename__ = 'occurrence_attachments'

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    occurrence_id = Column(
        Uuid(as_uuid=True),
        ForeignKey('occurrences.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
        doc="Occurrence this attachment belongs to"
    )
    file_path = Column(
        String(512),
        nullable=False,
        doc="Opaque reference resolvable by the attachment store"
    )
    original_filename = Column(
        String(255),
        nullable=True,
        doc="Filename as sent by the client"
    )
    content_type = Column(
        String(100),
        nullable=False,
        doc="MIME type of the stored image"
    )
    file_size = Column(
        Integer,
        nullable=False,
        doc="Size of the stored image in bytes"
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )

    def __repr__(self):
        return f"<OccurrenceAttachment(id={self.id}, occurrence={self.occurrence_id}, path='{self.file_path}')>"
