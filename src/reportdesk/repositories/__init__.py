"""
Data access for occurrences and their sub-records
"""

from .occurrences import OccurrenceRepository
from .attachments import AttachmentRepository
from .evaluations import EvaluationRepository, DuplicateEvaluation

__all__ = [
    "OccurrenceRepository",
    "AttachmentRepository",
    "EvaluationRepository",
    "DuplicateEvaluation",
]
