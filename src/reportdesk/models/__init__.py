"""
SQLAlchemy models for the ReportDesk occurrence service
"""

from .occurrence import Occurrence
from .attachment import OccurrenceAttachment
from .evaluation import OccurrenceEvaluation

__all__ = [
    "Occurrence",
    "OccurrenceAttachment",
    "OccurrenceEvaluation",
]
