"""
SQLAlchemy model for occurrence evaluations
"""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.sql import func

from ..database.core import Base
from .occurrence import utcnow


class OccurrenceEvaluation(Base):
    """
    The owner's rating of a resolved occurrence.

    At most one row per occurrence; the unique constraint on
    ``occurrence_id`` is what makes that hold under concurrent submissions.
    """
    __tablename__ = 'occurrence_evaluations'

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    occurrence_id = Column(
        Uuid(as_uuid=True),
        ForeignKey('occurrences.id', ondelete='CASCADE'),
        nullable=False,
        unique=True,
        doc="Evaluated occurrence"
    )
    owner_id = Column(
        Uuid(as_uuid=True),
        nullable=False,
        doc="User who submitted the evaluation"
    )
    score = Column(
        Integer,
        nullable=False,
        doc="Rating from 1 to 5"
    )
    comment = Column(
        String(500),
        nullable=True
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint('score BETWEEN 1 AND 5', name='chk_occurrence_evaluations_score'),
    )

    def __repr__(self):
        return f"<OccurrenceEvaluation(id={self.id}, occurrence={self.occurrence_id}, score={self.score})>"
